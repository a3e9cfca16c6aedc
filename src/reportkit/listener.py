from typing import Iterable, List

from .plan import ExecutionResult, TestIdentifier, TestPlan


class TestExecutionListener:
    """Lifecycle callbacks fired by a runner. Every method is a no-op by default."""

    __test__ = False

    def test_plan_execution_started(self, plan: TestPlan) -> None:
        pass

    def test_plan_execution_finished(self, plan: TestPlan) -> None:
        pass

    def dynamic_test_registered(self, identifier: TestIdentifier) -> None:
        pass

    def execution_started(self, identifier: TestIdentifier) -> None:
        pass

    def execution_skipped(self, identifier: TestIdentifier, reason: str) -> None:
        pass

    def execution_finished(self, identifier: TestIdentifier, result: ExecutionResult) -> None:
        pass


class CompositeListener(TestExecutionListener):
    """Fans every callback out to the registered listeners, in order."""

    def __init__(self, listeners: Iterable[TestExecutionListener] = ()) -> None:
        self.listeners: List[TestExecutionListener] = list(listeners)

    def register(self, listener: TestExecutionListener) -> None:
        self.listeners.append(listener)

    def test_plan_execution_started(self, plan: TestPlan) -> None:
        for listener in self.listeners:
            listener.test_plan_execution_started(plan)

    def test_plan_execution_finished(self, plan: TestPlan) -> None:
        for listener in self.listeners:
            listener.test_plan_execution_finished(plan)

    def dynamic_test_registered(self, identifier: TestIdentifier) -> None:
        for listener in self.listeners:
            listener.dynamic_test_registered(identifier)

    def execution_started(self, identifier: TestIdentifier) -> None:
        for listener in self.listeners:
            listener.execution_started(identifier)

    def execution_skipped(self, identifier: TestIdentifier, reason: str) -> None:
        for listener in self.listeners:
            listener.execution_skipped(identifier, reason)

    def execution_finished(self, identifier: TestIdentifier, result: ExecutionResult) -> None:
        for listener in self.listeners:
            listener.execution_finished(identifier, result)
