# Lightweight package init: the CLI stack (typer/rich) is only imported on demand.
__all__ = ["TestRunner", "XmlReportsWritingListener", "ConsoleReporter"]

def __getattr__(name):
    if name == "TestRunner":
        from .runners.runner import TestRunner as _TestRunner
        return _TestRunner
    if name == "XmlReportsWritingListener":
        from .reporters.junit import XmlReportsWritingListener as _Listener
        return _Listener
    if name == "ConsoleReporter":
        from .reporters.console import ConsoleReporter as _ConsoleReporter
        return _ConsoleReporter
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
