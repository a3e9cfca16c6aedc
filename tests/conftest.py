"""Shared fixtures for reportkit tests."""

import io
import xml.etree.ElementTree as ET
from pathlib import Path
from typing import Callable

import pytest

from reportkit.clock import DEFAULT_CLOCK
from reportkit.reporters.junit import XmlReportsWritingListener
from reportkit.runners.runner import TestRunner


def _contains_sequence(content: str, *parts: str) -> None:
    index = 0
    for part in parts:
        found = content.find(part, index)
        assert found >= 0, f"{part!r} not found after offset {index} in:\n{content}"
        index = found + len(part)


@pytest.fixture
def contains_sequence() -> Callable[..., None]:
    """Assert that ``parts`` occur in ``content`` in the given order."""
    return _contains_sequence


@pytest.fixture
def execute(tmp_path: Path) -> Callable[..., str]:
    """Run engines with an XML listener writing into ``tmp_path``; returns the diagnostics."""

    def _execute(*engines, clock=DEFAULT_CLOCK, parallelism: int = 1, **kwargs) -> str:
        out = io.StringIO()
        listener = XmlReportsWritingListener(tmp_path, out, clock, **kwargs)
        TestRunner([listener], parallelism=parallelism).run(engines)
        return out.getvalue()

    return _execute


@pytest.fixture
def read_report(tmp_path: Path) -> Callable[[str], str]:
    """Read a report from ``tmp_path`` and check that it is well-formed XML."""

    def _read(filename: str) -> str:
        path = tmp_path / filename
        assert path.exists(), f"File does not exist: {path}"
        content = path.read_text(encoding="utf-8")
        ET.fromstring(content.encode("utf-8"))
        return content

    return _read
