
from concurrent.futures import ThreadPoolExecutor
from contextlib import nullcontext
from dataclasses import dataclass, field
from typing import Callable, ClassVar, Dict, Iterable, List, Optional, Union
import importlib
import logging

from ..listener import CompositeListener, TestExecutionListener
from ..plan import ABORT_SIGNALS, ExecutionResult, NodeKind, Status, TestIdentifier, TestPlan

log = logging.getLogger(__name__)


class SuiteLoadError(Exception):
    pass


@dataclass
class TestCase:
    id: str
    func: Callable[[], None]
    display_name: Optional[str] = None
    skip_reason: Optional[str] = None
    kind: ClassVar[NodeKind] = NodeKind.TEST
    __test__ = False

    def mark_skipped(self, reason: str) -> "TestCase":
        self.skip_reason = reason
        return self

    def run(self) -> None:
        return self.func()


@dataclass
class TestContainer:
    id: str
    display_name: Optional[str] = None
    children: List[Union[TestCase, "TestContainer"]] = field(default_factory=list)
    before_all: Optional[Callable[[], None]] = None
    after_all: Optional[Callable[[], None]] = None
    skip_reason: Optional[str] = None
    kind: ClassVar[NodeKind] = NodeKind.CONTAINER
    __test__ = False

    def add_test(self, id: str, func: Callable[[], None], display_name: Optional[str] = None) -> TestCase:
        test = TestCase(id, func, display_name)
        self.children.append(test)
        return test

    def add_container(self, id: str, display_name: Optional[str] = None) -> "TestContainer":
        container = TestContainer(id, display_name)
        self.children.append(container)
        return container

    def mark_skipped(self, reason: str) -> "TestContainer":
        self.skip_reason = reason
        return self


@dataclass
class Engine(TestContainer):
    """Root of a test tree; one report file is produced per engine."""
    kind: ClassVar[NodeKind] = NodeKind.ENGINE


Node = Union[TestCase, TestContainer]


def _invoke(func: Optional[Callable[[], None]]) -> ExecutionResult:
    if func is None:
        return ExecutionResult.successful()
    try:
        func()
    except ABORT_SIGNALS as e:
        return ExecutionResult.aborted(e)
    except Exception as e:
        return ExecutionResult.failed(e)
    return ExecutionResult.successful()


class TestRunner:
    """Executes engines in-process and fires lifecycle events at the listeners.

    With ``parallelism > 1`` the tests of a container run on a thread pool;
    containers themselves always run on the calling thread.
    """

    __test__ = False

    def __init__(self, listeners: Iterable[TestExecutionListener] = (), parallelism: int = 1):
        if parallelism < 1:
            raise ValueError(f"parallelism must be at least 1, got {parallelism}")
        self.listener = CompositeListener(listeners)
        self.parallelism = parallelism
        self._nodes: Dict[str, Node] = {}

    def discover(self, engines: Iterable[Engine]) -> TestPlan:
        plan = TestPlan()
        self._nodes = {}

        def visit(node: Node, parent_id: Optional[str]) -> None:
            unique_id = node.id if parent_id is None else f"{parent_id}:{node.id}"
            if unique_id in self._nodes:
                raise ValueError(f"Duplicate unique id {unique_id!r}")
            self._nodes[unique_id] = node
            plan.add(TestIdentifier(unique_id, node.display_name or node.id, parent_id, node.kind))
            for child in getattr(node, "children", ()):
                visit(child, unique_id)

        for engine in engines:
            visit(engine, None)
        return plan

    def run(self, engines: Iterable[Engine]) -> TestPlan:
        plan = self.discover(engines)
        log.debug("Executing %d engines, %d nodes", len(plan.roots), len(plan))
        self.listener.test_plan_execution_started(plan)
        pool = ThreadPoolExecutor(max_workers=self.parallelism) if self.parallelism > 1 else nullcontext()
        with pool as executor:
            for root in plan.roots:
                self._execute(plan, root, executor)
        self.listener.test_plan_execution_finished(plan)
        return plan

    def _execute(self, plan: TestPlan, identifier: TestIdentifier,
                 executor: Optional[ThreadPoolExecutor]) -> None:
        node = self._nodes[identifier.unique_id]
        if node.skip_reason is not None:
            self.listener.execution_skipped(identifier, node.skip_reason)
            return
        self.listener.execution_started(identifier)
        if isinstance(node, TestCase):
            result = _invoke(node.func)
        else:
            result = _invoke(node.before_all)
            if result.status is Status.SUCCESSFUL:
                self._execute_children(plan, identifier, executor)
            after = _invoke(node.after_all)
            if result.status is Status.SUCCESSFUL:
                result = after
        self.listener.execution_finished(identifier, result)

    def _execute_children(self, plan: TestPlan, identifier: TestIdentifier,
                          executor: Optional[ThreadPoolExecutor]) -> None:
        futures = []
        for child in plan.get_children(identifier):
            if executor is not None and child.is_test:
                futures.append(executor.submit(self._execute, plan, child, executor))
            else:
                self._execute(plan, child, executor)
        for future in futures:
            future.result()


def load_suite(suite: str) -> List[Engine]:
    """Import a suite module and return the engines from its ``discover()``."""
    candidates = [suite] if "." in suite else [f"reportkit.testsuites.{suite}", suite]
    module = None
    for name in candidates:
        try:
            module = importlib.import_module(name)
            break
        except ModuleNotFoundError as e:
            if e.name is None or not (name == e.name or name.startswith(e.name + ".")):
                raise
    if module is None:
        raise SuiteLoadError(f"Test suite {suite!r} not found")
    discover = getattr(module, "discover", None)
    if not callable(discover):
        raise SuiteLoadError(f"Test suite {module.__name__!r} has no discover() function")
    engines = discover()
    return [engines] if isinstance(engines, Engine) else list(engines)
