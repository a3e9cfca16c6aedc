import getpass
import logging
import os
import platform
import socket
import sys
import threading
import traceback
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Dict, Mapping, Optional, TextIO, Union
from urllib.parse import quote

from ..clock import DEFAULT_CLOCK, Clock
from ..listener import TestExecutionListener
from ..plan import ExecutionResult, TestIdentifier, TestPlan
from .timing import elapsed
from .tree import ResultTree
from .xml import EngineReport, TestcaseEntry, XmlReportSerializer

if TYPE_CHECKING:
    from ..config import ReportsConfig

log = logging.getLogger(__name__)


def report_file_name(engine_id: str) -> str:
    # %XX quoting keeps distinct engine ids distinct
    return f"TEST-{quote(engine_id, safe='')}.xml"


def _user_name() -> str:
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return ""


def environment_properties(extra: Optional[Mapping[str, str]] = None,
                           include_environment: bool = False) -> Dict[str, str]:
    """Snapshot of the interpreter/platform properties, sorted by name."""
    props = {
        "file.separator": os.sep,
        "path.separator": os.pathsep,
        "line.separator": os.linesep,
        "os.name": platform.system(),
        "os.version": platform.release(),
        "os.arch": platform.machine(),
        "python.version": platform.python_version(),
        "python.implementation": platform.python_implementation(),
        "python.executable": sys.executable,
        "user.dir": os.getcwd(),
        "user.name": _user_name(),
    }
    if include_environment:
        props.update({f"env.{k}": v for k, v in os.environ.items()})
    if extra:
        props.update({str(k): str(v) for k, v in extra.items()})
    return dict(sorted(props.items()))


class State(str, Enum):
    NOT_STARTED = "not_started"
    STARTED = "started"
    FINISHED = "finished"


class XmlReportsWritingListener(TestExecutionListener):
    def __init__(self, reports_dir: Union[str, Path], out: Optional[TextIO] = None,
                 clock: Clock = DEFAULT_CLOCK, *, hostname: Optional[str] = None,
                 extra_properties: Optional[Mapping[str, str]] = None,
                 include_environment: bool = False,
                 serializer: Optional[XmlReportSerializer] = None):
        self.reports_dir = Path(reports_dir)
        self.out = out if out is not None else sys.stderr
        self.clock = clock
        self.hostname = hostname
        self.extra_properties = dict(extra_properties or {})
        self.include_environment = include_environment
        self.serializer = serializer or XmlReportSerializer()
        self.state = State.NOT_STARTED
        self._lock = threading.Lock()
        self._reset()

    @classmethod
    def from_config(cls, config: "ReportsConfig", out: Optional[TextIO] = None,
                    clock: Clock = DEFAULT_CLOCK) -> "XmlReportsWritingListener":
        return cls(config.directory, out, clock,
                   hostname=config.hostname,
                   extra_properties=config.properties,
                   include_environment=config.include_environment)

    def _reset(self) -> None:
        self._tree: Optional[ResultTree] = None
        self._pending: Dict[str, TestIdentifier] = {}
        self._started_at: Optional[datetime] = None
        self._host = ""
        self._properties: Dict[str, str] = {}
        self._writable = False

    # ---------- lifecycle ----------
    def test_plan_execution_started(self, plan: TestPlan) -> None:
        with self._lock:
            if self.state is State.STARTED:
                log.warning("Test plan started twice; discarding previous run state")
            self._started_at = self.clock.now()
            self._host = self.hostname or socket.gethostname()
            self._properties = environment_properties(self.extra_properties, self.include_environment)
            self._tree = ResultTree(plan, self.clock, started_at=self._started_at)
            self._pending = {root.unique_id: root for root in plan.roots}
            self.state = State.STARTED
        self._writable = self._create_reports_dir()

    def test_plan_execution_finished(self, plan: TestPlan) -> None:
        if not self._accepting("test_plan_execution_finished"):
            return
        with self._lock:
            remaining = list(self._pending.values())
        if remaining:
            finished_at = self.clock.now()
            for root in remaining:
                self._complete(root, finished_at)
        with self._lock:
            self.state = State.FINISHED
            self._reset()

    def dynamic_test_registered(self, identifier: TestIdentifier) -> None:
        if self._accepting("dynamic_test_registered"):
            self._tree.register(identifier)

    def execution_started(self, identifier: TestIdentifier) -> None:
        if self._accepting("execution_started"):
            self._tree.started(identifier)

    def execution_skipped(self, identifier: TestIdentifier, reason: str) -> None:
        if not self._accepting("execution_skipped"):
            return
        node = self._tree.skipped(identifier, reason)
        self._complete(identifier, node.finish)

    def execution_finished(self, identifier: TestIdentifier, result: ExecutionResult) -> None:
        if not self._accepting("execution_finished"):
            return
        node = self._tree.finished(identifier, result)
        self._complete(identifier, node.finish)

    def _accepting(self, event: str) -> bool:
        if self.state is not State.STARTED:
            log.warning("Ignoring %s while %s", event, self.state.value)
            return False
        return True

    # ---------- reports ----------
    def _complete(self, root: TestIdentifier, finished_at: datetime) -> None:
        with self._lock:
            if self._pending.pop(root.unique_id, None) is None:
                return
        report = self._build_report(root, finished_at)
        if self._writable:
            self._write(report)

    def _build_report(self, root: TestIdentifier, finished_at: datetime) -> EngineReport:
        tree = self._tree
        testcases = [
            TestcaseEntry(
                unique_id=test.unique_id,
                name=test.display_name,
                classname=root.unique_id,
                time=tree.duration(test, finished_at),
                classification=tree.classify(test),
            )
            for test in tree.tests_under(root)
        ]
        return EngineReport(
            unique_id=root.unique_id,
            name=root.unique_id,
            hostname=self._host,
            timestamp=self._started_at,
            time=elapsed(self._started_at, finished_at),
            properties=dict(self._properties),
            testcases=testcases,
        )

    def _create_reports_dir(self) -> bool:
        try:
            self.reports_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            self._print_exception(f"Could not create reports directory: {self.reports_dir}", exc)
            return False
        return True

    def _write(self, report: EngineReport) -> None:
        path = self.reports_dir / report_file_name(report.unique_id)
        try:
            path.write_bytes(self.serializer.to_bytes(report))
        except Exception as exc:  # one engine's report never stops the others
            self._print_exception(f"Could not write XML report for engine {report.unique_id}: {path}", exc)
        else:
            log.debug("Wrote %s (%d tests, %d failures, %d errors, %d skipped)",
                      path, report.tests, report.failures, report.errors, report.skipped)

    def _print_exception(self, message: str, exc: BaseException) -> None:
        log.warning("%s (%s: %s)", message, type(exc).__name__, exc)
        self.out.write(message + "\n")
        self.out.write("".join(traceback.format_exception(type(exc), exc, exc.__traceback__)))
        self.out.flush()
