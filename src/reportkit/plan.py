import traceback
import unittest
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Union


class TestAborted(Exception):
    """Raised by a test (or container hook) to abort instead of failing."""

    __test__ = False


ABORT_SIGNALS = (TestAborted, unittest.SkipTest)


def abort(reason: str = "") -> None:
    raise TestAborted(reason)


def assume(condition: bool, message: str = "assumption failed") -> None:
    if not condition:
        raise TestAborted(message)


class NodeKind(str, Enum):
    ENGINE = "engine"
    CONTAINER = "container"
    TEST = "test"


@dataclass(frozen=True)
class TestIdentifier:
    unique_id: str
    display_name: str
    parent_id: Optional[str] = None
    kind: NodeKind = NodeKind.TEST

    __test__ = False

    @property
    def is_root(self) -> bool:
        return self.parent_id is None

    @property
    def is_test(self) -> bool:
        return self.kind is NodeKind.TEST


def qualified_type_name(exc_type: type) -> str:
    # same convention as traceback: builtins are shown bare
    if exc_type.__module__ in ("builtins", "__main__"):
        return exc_type.__qualname__
    return f"{exc_type.__module__}.{exc_type.__qualname__}"


@dataclass(frozen=True)
class Cause:
    """Terminal cause of a failed or aborted node.

    ``assertion`` marks intentional check failures; those are reported as
    ``<failure>``, every other cause as ``<error>``.
    """

    type_name: str
    message: str = ""
    stack_trace: str = ""
    assertion: bool = False

    @classmethod
    def from_exception(cls, exc: BaseException) -> "Cause":
        frames = "".join(traceback.format_tb(exc.__traceback__)) if exc.__traceback__ else ""
        return cls(
            type_name=qualified_type_name(type(exc)),
            message=str(exc),
            stack_trace=frames,
            assertion=isinstance(exc, AssertionError),
        )

    @property
    def headline(self) -> str:
        return f"{self.type_name}: {self.message}" if self.message else self.type_name

    def render(self) -> str:
        if not self.stack_trace:
            return self.headline
        return f"{self.headline}\n{self.stack_trace}"


CauseLike = Union[Cause, BaseException]


def _as_cause(cause: CauseLike) -> Cause:
    return cause if isinstance(cause, Cause) else Cause.from_exception(cause)


class Status(str, Enum):
    SUCCESSFUL = "successful"
    ABORTED = "aborted"
    FAILED = "failed"


@dataclass(frozen=True)
class ExecutionResult:
    status: Status
    cause: Optional[Cause] = None

    @classmethod
    def successful(cls) -> "ExecutionResult":
        return cls(Status.SUCCESSFUL)

    @classmethod
    def failed(cls, cause: CauseLike) -> "ExecutionResult":
        return cls(Status.FAILED, _as_cause(cause))

    @classmethod
    def aborted(cls, cause: CauseLike) -> "ExecutionResult":
        return cls(Status.ABORTED, _as_cause(cause))


class TestPlan:
    """Discovery-ordered collection of identifiers."""

    __test__ = False

    def __init__(self, identifiers: Iterable[TestIdentifier] = ()) -> None:
        self._identifiers: Dict[str, TestIdentifier] = {}
        self._children: Dict[str, List[str]] = {}
        for identifier in identifiers:
            self.add(identifier)

    def add(self, identifier: TestIdentifier) -> None:
        if identifier.unique_id in self._identifiers:
            return
        self._identifiers[identifier.unique_id] = identifier
        self._children.setdefault(identifier.unique_id, [])
        if identifier.parent_id is not None:
            self._children.setdefault(identifier.parent_id, []).append(identifier.unique_id)

    def __contains__(self, unique_id: object) -> bool:
        return unique_id in self._identifiers

    def __len__(self) -> int:
        return len(self._identifiers)

    def __iter__(self) -> Iterator[TestIdentifier]:
        return iter(list(self._identifiers.values()))

    @property
    def roots(self) -> List[TestIdentifier]:
        return [i for i in self._identifiers.values() if i.is_root]

    def get(self, unique_id: str) -> TestIdentifier:
        try:
            return self._identifiers[unique_id]
        except KeyError:
            raise KeyError(f"No identifier {unique_id!r} in test plan") from None

    def get_parent(self, identifier: TestIdentifier) -> Optional[TestIdentifier]:
        if identifier.parent_id is None:
            return None
        return self._identifiers.get(identifier.parent_id)

    def get_children(self, identifier: TestIdentifier) -> List[TestIdentifier]:
        return [self._identifiers[c] for c in self._children.get(identifier.unique_id, [])]

    def get_descendants(self, identifier: TestIdentifier) -> List[TestIdentifier]:
        """All descendants in pre-order (discovery order)."""
        result: List[TestIdentifier] = []
        stack = list(reversed(self.get_children(identifier)))
        while stack:
            current = stack.pop()
            result.append(current)
            stack.extend(reversed(self.get_children(current)))
        return result
