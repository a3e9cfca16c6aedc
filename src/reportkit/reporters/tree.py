import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Dict, List, Optional

from ..clock import DEFAULT_CLOCK, Clock
from ..plan import Cause, ExecutionResult, Status, TestIdentifier, TestPlan
from .timing import elapsed

log = logging.getLogger(__name__)

PARENT_SKIPPED_PREFIX = "parent was skipped: "

INCOMPLETE = Cause("reportkit.IncompleteExecution", "execution did not complete")
UNKNOWN_FAILURE = Cause("reportkit.UnknownFailure", "no cause was reported")


class Outcome(str, Enum):
    SUCCESS = "success"
    SKIPPED = "skipped"
    FAILURE = "failure"
    ERROR = "error"


@dataclass(frozen=True)
class Classification:
    outcome: Outcome
    reason: Optional[str] = None
    cause: Optional[Cause] = None

    @classmethod
    def from_cause(cls, cause: Cause) -> "Classification":
        return cls(Outcome.FAILURE if cause.assertion else Outcome.ERROR, cause=cause)


@dataclass
class Node:
    identifier: TestIdentifier
    start: Optional[datetime] = None
    finish: Optional[datetime] = None
    skip_reason: Optional[str] = None
    result: Optional[ExecutionResult] = None

    @property
    def terminated(self) -> bool:
        return self.skip_reason is not None or self.result is not None

    def skip_signal(self) -> Optional[str]:
        """Reason descendants inherit when this node was skipped or aborted."""
        if self.skip_reason is not None:
            return self.skip_reason
        if self.result is not None and self.result.status is Status.ABORTED:
            return self.result.cause.headline if self.result.cause else ""
        return None

    def failure_signal(self) -> Optional[Cause]:
        if self.result is not None and self.result.status is Status.FAILED:
            return self.result.cause or UNKNOWN_FAILURE
        return None


class ResultTree:
    """Accumulates per-node state and classifies tests once the run is over.

    Roots start at ``started_at`` (the plan-start instant); every other node
    reads the clock on its first start event and on its terminal event.
    """

    def __init__(self, plan: TestPlan, clock: Clock = DEFAULT_CLOCK,
                 started_at: Optional[datetime] = None):
        self.plan = plan
        self.clock = clock
        self._nodes: Dict[str, Node] = {}
        self._lock = threading.Lock()
        for root in plan.roots:
            self._nodes[root.unique_id] = Node(root, start=started_at)

    def _node(self, identifier: TestIdentifier) -> Node:
        node = self._nodes.get(identifier.unique_id)
        if node is None:
            if identifier.unique_id not in self.plan:
                self.plan.add(identifier)
            node = self._nodes[identifier.unique_id] = Node(identifier)
        return node

    def get(self, unique_id: str) -> Optional[Node]:
        with self._lock:
            return self._nodes.get(unique_id)

    def register(self, identifier: TestIdentifier) -> None:
        with self._lock:
            self.plan.add(identifier)

    def started(self, identifier: TestIdentifier) -> Node:
        with self._lock:
            node = self._node(identifier)
            if node.start is None:
                node.start = self.clock.now()
            return node

    def skipped(self, identifier: TestIdentifier, reason: Optional[str]) -> Node:
        with self._lock:
            node = self._node(identifier)
            if node.terminated:
                log.debug("Ignoring repeated terminal event for %s", identifier.unique_id)
                return node
            node.skip_reason = reason or ""
            node.finish = self.clock.now()
            return node

    def finished(self, identifier: TestIdentifier, result: ExecutionResult) -> Node:
        with self._lock:
            node = self._node(identifier)
            if node.terminated:
                log.debug("Ignoring repeated terminal event for %s", identifier.unique_id)
                return node
            node.result = result
            node.finish = self.clock.now()
            return node

    def tests_under(self, root: TestIdentifier) -> List[TestIdentifier]:
        with self._lock:
            return [i for i in self.plan.get_descendants(root) if i.is_test]

    def duration(self, identifier: TestIdentifier, end: datetime) -> timedelta:
        """Elapsed time of a node; unfinished nodes end at ``end``."""
        node = self.get(identifier.unique_id)
        if node is None:
            return timedelta(0)
        finish = node.finish or end
        start = node.start or finish
        return elapsed(start, finish)

    def _ancestors(self, identifier: TestIdentifier) -> List[Node]:
        nodes = []
        parent = self.plan.get_parent(identifier)
        while parent is not None:
            node = self._nodes.get(parent.unique_id)
            if node is not None:
                nodes.append(node)
            parent = self.plan.get_parent(parent)
        return nodes

    def classify(self, identifier: TestIdentifier) -> Classification:
        with self._lock:
            node = self._nodes.get(identifier.unique_id)
            if node is not None and node.skip_reason is not None:
                return Classification(Outcome.SKIPPED, reason=node.skip_reason)

            if node is not None and node.result is not None:
                result = node.result
                if result.status is Status.ABORTED:
                    return Classification(Outcome.SKIPPED,
                                          reason=result.cause.render() if result.cause else "")
                if result.status is Status.FAILED:
                    return Classification.from_cause(result.cause or UNKNOWN_FAILURE)
                return Classification(Outcome.SUCCESS)

            ancestors = self._ancestors(identifier)
            for ancestor in ancestors:
                reason = ancestor.skip_signal()
                if reason is not None:
                    return Classification(Outcome.SKIPPED, reason=PARENT_SKIPPED_PREFIX + reason)
            finished = next((a for a in ancestors if a.result is not None), None)
            if finished is not None and finished.failure_signal() is not None:
                return Classification.from_cause(finished.failure_signal())

            if node is not None and node.start is not None:
                return Classification(Outcome.ERROR, cause=INCOMPLETE)
            return Classification(Outcome.SUCCESS)
