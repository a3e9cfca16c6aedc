import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, List, Optional
from xml.sax.saxutils import escape

from .timing import format_seconds, format_timestamp
from .tree import Classification, Outcome

# Everything outside the XML 1.0 Char production.
_ILLEGAL_XML_CHARS = re.compile("[^\t\n\r\x20-\ud7ff\ue000-\ufffd\U00010000-\U0010ffff]")

_TEXT_ENTITIES = {"\"": "&quot;", "'": "&apos;"}
_ATTR_ENTITIES = dict(_TEXT_ENTITIES, **{"\n": "&#10;", "\r": "&#13;", "\t": "&#9;"})


def clean_text(text: str) -> str:
    return _ILLEGAL_XML_CHARS.sub(lambda m: f"&#{ord(m.group())};", text)


def clean_comment(text: str) -> str:
    text = clean_text(text).replace("--", "- -")
    return text + " " if text.endswith("-") else text


@dataclass
class TestcaseEntry:
    unique_id: str
    name: str
    classname: str
    time: timedelta
    classification: Classification

    __test__ = False


@dataclass
class EngineReport:
    unique_id: str
    name: str
    hostname: str
    timestamp: datetime
    time: timedelta
    properties: Dict[str, str] = field(default_factory=dict)
    testcases: List[TestcaseEntry] = field(default_factory=list)

    def _count(self, outcome: Outcome) -> int:
        return sum(1 for t in self.testcases if t.classification.outcome is outcome)

    @property
    def tests(self) -> int:
        return len(self.testcases)

    @property
    def skipped(self) -> int:
        return self._count(Outcome.SKIPPED)

    @property
    def failures(self) -> int:
        return self._count(Outcome.FAILURE)

    @property
    def errors(self) -> int:
        return self._count(Outcome.ERROR)

    @property
    def successes(self) -> int:
        return self._count(Outcome.SUCCESS)


class XmlReportSerializer:
    def __init__(self, indent: Optional[str] = "  "):
        self.indent = indent

    def build(self, report: EngineReport) -> ET.Element:
        suite = ET.Element("testsuite", {
            "name": clean_text(report.name),
            "tests": str(report.tests),
            "skipped": str(report.skipped),
            "failures": str(report.failures),
            "errors": str(report.errors),
            "hostname": clean_text(report.hostname),
            "time": format_seconds(report.time),
            "timestamp": format_timestamp(report.timestamp),
        })
        suite.append(ET.Comment(clean_comment(f"Unique ID: {report.unique_id}")))

        properties = ET.SubElement(suite, "properties")
        for name, value in report.properties.items():
            ET.SubElement(properties, "property", {"name": clean_text(name), "value": clean_text(value)})

        for entry in report.testcases:
            self._add_testcase(suite, entry)
        return suite

    def _add_testcase(self, suite: ET.Element, entry: TestcaseEntry) -> None:
        testcase = ET.SubElement(suite, "testcase", {
            "name": clean_text(entry.name),
            "classname": clean_text(entry.classname),
            "time": format_seconds(entry.time),
        })
        testcase.append(ET.Comment(clean_comment(f"Unique ID: {entry.unique_id}")))

        classification = entry.classification
        if classification.outcome is Outcome.SKIPPED:
            skipped = ET.SubElement(testcase, "skipped")
            if classification.reason:
                skipped.text = clean_text(classification.reason)
        elif classification.outcome in (Outcome.FAILURE, Outcome.ERROR) and classification.cause:
            cause = classification.cause
            attrs = {"message": clean_text(cause.message)} if cause.message else {}
            attrs["type"] = clean_text(cause.type_name)
            element = ET.SubElement(testcase, classification.outcome.value, attrs)
            element.text = clean_text(cause.render())

    def to_string(self, report: EngineReport) -> str:
        lines = ['<?xml version="1.0" encoding="UTF-8"?>']
        self._render(self.build(report), 0, lines)
        return ("\n" if self.indent else "").join(lines) + "\n"

    def to_bytes(self, report: EngineReport) -> bytes:
        return self.to_string(report).encode("utf-8")

    def _render(self, element: ET.Element, level: int, lines: List[str]) -> None:
        # empty elements are written as <tag/>, quotes and apostrophes are always escaped
        pad = self.indent * level if self.indent else ""
        if element.tag is ET.Comment:
            lines.append(f"{pad}<!--{element.text}-->")
            return
        tag = element.tag
        attrs = "".join(f' {k}="{escape(v, _ATTR_ENTITIES)}"' for k, v in element.items())
        children = list(element)
        if children:
            lines.append(f"{pad}<{tag}{attrs}>")
            for child in children:
                self._render(child, level + 1, lines)
            lines.append(f"{pad}</{tag}>")
        elif element.text:
            lines.append(f"{pad}<{tag}{attrs}>{escape(element.text, _TEXT_ENTITIES)}</{tag}>")
        else:
            lines.append(f"{pad}<{tag}{attrs}/>")
