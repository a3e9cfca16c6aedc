
import sys
from collections import Counter
from typing import Optional, TextIO

from ..listener import TestExecutionListener
from ..plan import ExecutionResult, TestIdentifier, TestPlan
from .tree import Outcome, ResultTree

LABELS = {
    Outcome.SUCCESS: "PASS",
    Outcome.SKIPPED: "SKIP",
    Outcome.FAILURE: "FAIL",
    Outcome.ERROR: "ERROR",
}


class ConsoleReporter(TestExecutionListener):
    """Prints one status line per test once the plan has finished."""

    def __init__(self, out: Optional[TextIO] = None):
        self.out = out if out is not None else sys.stdout
        self.totals: Counter = Counter()
        self._tree: Optional[ResultTree] = None

    def test_plan_execution_started(self, plan: TestPlan) -> None:
        self.totals.clear()
        self._tree = ResultTree(plan)

    def dynamic_test_registered(self, identifier: TestIdentifier) -> None:
        self._tree.register(identifier)

    def execution_started(self, identifier: TestIdentifier) -> None:
        self._tree.started(identifier)

    def execution_skipped(self, identifier: TestIdentifier, reason: str) -> None:
        self._tree.skipped(identifier, reason)

    def execution_finished(self, identifier: TestIdentifier, result: ExecutionResult) -> None:
        self._tree.finished(identifier, result)

    def test_plan_execution_finished(self, plan: TestPlan) -> None:
        for root in plan.roots:
            print(f"Engine: {root.display_name}", file=self.out)
            for test in self._tree.tests_under(root):
                outcome = self._tree.classify(test).outcome
                self.totals[outcome] += 1
                print(f" - {test.unique_id}: {LABELS[outcome]}", file=self.out)

    @property
    def passed(self) -> int: return self.totals[Outcome.SUCCESS]
    @property
    def failed(self) -> int: return self.totals[Outcome.FAILURE]
    @property
    def errors(self) -> int: return self.totals[Outcome.ERROR]
    @property
    def skipped(self) -> int: return self.totals[Outcome.SKIPPED]
