from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Optional, Union


OperationKind = Literal["run", "optimize", "generate-tests", "run-tests"]
OperationStatus = Literal["idle", "pending", "succeeded", "failed"]
Panel = Literal["optimize-result", "generated-tests", "test-results"]
Difficulty = Literal["easy", "medium", "hard"]

OPERATION_KINDS: tuple[OperationKind, ...] = ("run", "optimize", "generate-tests", "run-tests")
DIFFICULTIES: tuple[Difficulty, ...] = ("easy", "medium", "hard")

# Panel fed by each kind; run output has no modal of its own.
PANEL_FOR_KIND: dict[OperationKind, Panel] = {
    "optimize": "optimize-result",
    "generate-tests": "generated-tests",
    "run-tests": "test-results",
}


@dataclass(frozen=True)
class CaseResult:
    name: str
    passed: bool
    output: Optional[str] = None
    error: Optional[str] = None


@dataclass(frozen=True)
class RunTestsReport:
    results: list[CaseResult]

    @property
    def total(self) -> int:
        return len(self.results)

    @property
    def passed_count(self) -> int:
        return sum(1 for r in self.results if r.passed)

    @property
    def failed_count(self) -> int:
        return self.total - self.passed_count

    def summary(self) -> str:
        return f"{self.passed_count} of {self.total} passed"


# run/optimize/generate-tests carry text, run-tests carries a report.
Payload = Union[str, RunTestsReport]


@dataclass(frozen=True)
class ModelSummary:
    id: str
    name: str
    provider: str
    type: str
    status: str
    description: Optional[str] = None
    avg_response_time: Optional[float] = None
    total_requests: Optional[int] = None
    success_rate: Optional[float] = None
    raw: dict[str, Any] = field(default_factory=dict, compare=False, repr=False)


@dataclass(frozen=True)
class SessionView:
    """Read-only snapshot of one session, with staleness resolved against the buffer."""

    kind: OperationKind
    status: OperationStatus
    source_version: Optional[int]
    stale: bool
    result: Optional[Payload] = None
    error: Optional[str] = None
