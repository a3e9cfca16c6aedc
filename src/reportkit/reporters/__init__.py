from .console import ConsoleReporter
from .junit import XmlReportsWritingListener
from .tree import Classification, Outcome, ResultTree
from .xml import EngineReport, TestcaseEntry, XmlReportSerializer

__all__ = [
    "Classification",
    "ConsoleReporter",
    "EngineReport",
    "Outcome",
    "ResultTree",
    "TestcaseEntry",
    "XmlReportSerializer",
    "XmlReportsWritingListener",
]
