"""Tests for ResultTree: event accumulation and outcome classification."""

from datetime import timedelta

import pytest

from reportkit.clock import EPOCH, FixedClock, IncrementingClock
from reportkit.plan import Cause, ExecutionResult, NodeKind, Status, TestIdentifier, TestPlan
from reportkit.reporters.tree import INCOMPLETE, Outcome, ResultTree

ENGINE = TestIdentifier("e", "Engine", kind=NodeKind.ENGINE)
CONTAINER = TestIdentifier("e:c", "Container", "e", NodeKind.CONTAINER)
INNER = TestIdentifier("e:c:i", "Inner", "e:c", NodeKind.CONTAINER)
TEST = TestIdentifier("e:c:i:t", "test", "e:c:i")
SIBLING = TestIdentifier("e:s", "sibling", "e")

ASSERTION = Cause("AssertionError", "expected", "  File x\n", assertion=True)
ERROR = Cause("ValueError", "bad value", "  File y\n")


@pytest.fixture
def tree() -> ResultTree:
    return ResultTree(TestPlan([ENGINE, CONTAINER, INNER, TEST, SIBLING]), FixedClock(EPOCH), started_at=EPOCH)


class TestNodeLocalOutcomes:
    def test_successful_test_is_success(self, tree: ResultTree) -> None:
        tree.started(TEST)
        tree.finished(TEST, ExecutionResult.successful())

        assert tree.classify(TEST).outcome is Outcome.SUCCESS

    def test_own_skip_uses_own_reason(self, tree: ResultTree) -> None:
        tree.skipped(TEST, "not today")

        classification = tree.classify(TEST)
        assert classification.outcome is Outcome.SKIPPED
        assert classification.reason == "not today"

    def test_assertion_cause_is_failure(self, tree: ResultTree) -> None:
        tree.started(TEST)
        tree.finished(TEST, ExecutionResult.failed(ASSERTION))

        classification = tree.classify(TEST)
        assert classification.outcome is Outcome.FAILURE
        assert classification.cause is ASSERTION

    def test_other_cause_is_error(self, tree: ResultTree) -> None:
        tree.started(TEST)
        tree.finished(TEST, ExecutionResult.failed(ERROR))

        assert tree.classify(TEST).outcome is Outcome.ERROR

    def test_aborted_test_is_skipped_with_rendered_cause(self, tree: ResultTree) -> None:
        tree.started(TEST)
        tree.finished(TEST, ExecutionResult.aborted(Cause("TestAborted", "later", "  File z\n")))

        classification = tree.classify(TEST)
        assert classification.outcome is Outcome.SKIPPED
        assert classification.reason == "TestAborted: later\n  File z\n"

    def test_failed_result_without_cause_is_error(self, tree: ResultTree) -> None:
        tree.started(TEST)
        tree.finished(TEST, ExecutionResult(Status.FAILED))

        assert tree.classify(TEST).outcome is Outcome.ERROR


class TestInheritedOutcomes:
    def test_skipped_ancestor_propagates_with_prefix(self, tree: ResultTree) -> None:
        tree.skipped(CONTAINER, "disabled")

        classification = tree.classify(TEST)
        assert classification.outcome is Outcome.SKIPPED
        assert classification.reason == "parent was skipped: disabled"

    def test_nearest_skipped_ancestor_wins(self, tree: ResultTree) -> None:
        tree.skipped(ENGINE, "outer")
        tree.skipped(INNER, "inner")

        assert tree.classify(TEST).reason == "parent was skipped: inner"

    def test_ancestor_setup_failure_propagates(self, tree: ResultTree) -> None:
        tree.started(CONTAINER)
        tree.finished(CONTAINER, ExecutionResult.failed(ASSERTION))

        classification = tree.classify(TEST)
        assert classification.outcome is Outcome.FAILURE
        assert classification.cause is ASSERTION

    def test_ancestor_setup_error_propagates_as_error(self, tree: ResultTree) -> None:
        tree.finished(ENGINE, ExecutionResult.failed(ERROR))

        assert tree.classify(TEST).outcome is Outcome.ERROR
        assert tree.classify(SIBLING).outcome is Outcome.ERROR

    def test_only_nearest_finished_ancestor_decides_failure(self, tree: ResultTree) -> None:
        tree.finished(INNER, ExecutionResult.successful())
        tree.finished(CONTAINER, ExecutionResult.successful())
        tree.finished(ENGINE, ExecutionResult.failed(ERROR))

        assert tree.classify(TEST).outcome is Outcome.SUCCESS
        assert tree.classify(SIBLING).outcome is Outcome.ERROR

    def test_unfinished_intermediate_ancestors_are_passed_over(self, tree: ResultTree) -> None:
        tree.started(CONTAINER)
        tree.started(INNER)
        tree.finished(ENGINE, ExecutionResult.failed(ASSERTION))

        classification = tree.classify(TEST)
        assert classification.outcome is Outcome.FAILURE
        assert classification.cause is ASSERTION

    def test_skip_is_checked_before_failure(self, tree: ResultTree) -> None:
        tree.finished(INNER, ExecutionResult.failed(ASSERTION))
        tree.skipped(CONTAINER, "disabled")

        assert tree.classify(TEST).outcome is Outcome.SKIPPED

    def test_own_result_takes_precedence_over_ancestor_failure(self, tree: ResultTree) -> None:
        tree.started(TEST)
        tree.finished(TEST, ExecutionResult.successful())
        tree.finished(CONTAINER, ExecutionResult.failed(ERROR))

        assert tree.classify(TEST).outcome is Outcome.SUCCESS

    def test_untouched_test_without_signals_is_success(self, tree: ResultTree) -> None:
        tree.finished(ENGINE, ExecutionResult.successful())

        assert tree.classify(TEST).outcome is Outcome.SUCCESS

    def test_started_but_unfinished_test_is_incomplete_error(self, tree: ResultTree) -> None:
        tree.started(TEST)

        classification = tree.classify(TEST)
        assert classification.outcome is Outcome.ERROR
        assert classification.cause is INCOMPLETE


class TestEvents:
    def test_repeated_terminal_event_is_ignored(self, tree: ResultTree) -> None:
        tree.started(TEST)
        tree.finished(TEST, ExecutionResult.failed(ERROR))
        tree.finished(TEST, ExecutionResult.successful())
        tree.skipped(TEST, "late")

        assert tree.classify(TEST).outcome is Outcome.ERROR

    def test_unknown_identifier_is_added_to_plan(self, tree: ResultTree) -> None:
        dynamic = TestIdentifier("e:c:dyn", "dyn", "e:c")

        tree.started(dynamic)

        assert "e:c:dyn" in tree.plan
        assert tree.tests_under(ENGINE) == [TEST, dynamic, SIBLING]

    def test_tests_under_excludes_containers(self, tree: ResultTree) -> None:
        assert tree.tests_under(ENGINE) == [TEST, SIBLING]


class TestDurations:
    def test_duration_between_start_and_finish(self) -> None:
        tree = ResultTree(TestPlan([ENGINE, SIBLING]), IncrementingClock(EPOCH, timedelta(milliseconds=250)))

        tree.started(SIBLING)
        tree.finished(SIBLING, ExecutionResult.successful())

        assert tree.duration(SIBLING, EPOCH) == timedelta(milliseconds=250)

    def test_start_is_recorded_once(self) -> None:
        tree = ResultTree(TestPlan([ENGINE, SIBLING]), IncrementingClock(EPOCH, timedelta(seconds=1)))

        tree.started(SIBLING)
        tree.finished(SIBLING, ExecutionResult.successful())
        tree.started(SIBLING)

        assert tree.duration(SIBLING, EPOCH) == timedelta(seconds=1)

    def test_root_uses_plan_start_without_reading_clock(self) -> None:
        clock = IncrementingClock(EPOCH + timedelta(seconds=10), timedelta(seconds=1))
        tree = ResultTree(TestPlan([ENGINE]), clock, started_at=EPOCH)

        tree.started(ENGINE)
        tree.finished(ENGINE, ExecutionResult.successful())

        assert tree.duration(ENGINE, EPOCH) == timedelta(seconds=10)

    def test_skipped_node_has_zero_duration(self, tree: ResultTree) -> None:
        tree.skipped(SIBLING, "no")

        assert tree.duration(SIBLING, EPOCH + timedelta(seconds=5)) == timedelta(0)

    def test_unfinished_node_runs_until_end(self) -> None:
        tree = ResultTree(TestPlan([ENGINE, SIBLING]), FixedClock(EPOCH))

        tree.started(SIBLING)

        assert tree.duration(SIBLING, EPOCH + timedelta(seconds=2)) == timedelta(seconds=2)

    def test_never_seen_node_has_zero_duration(self, tree: ResultTree) -> None:
        assert tree.duration(TEST, EPOCH + timedelta(seconds=2)) == timedelta(0)
