"""Per-case and per-run result dataclasses for Endy."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from endy._internal.errors import EndyError
    from endy.suite.models import TestCase

__all__ = [
    "CaseResult",
    "CaseStatus",
    "RunMode",
    "RunOutcome",
    "RunResult",
]


class RunMode(Enum):
    """Execution mode, selected once per run."""

    ASSERTION = auto()
    BENCHMARK = auto()


class RunOutcome(Enum):
    """Terminal state of a run."""

    COMPLETED = auto()
    ABORTED = auto()


class CaseStatus(Enum):
    """Classification of a single executed case."""

    PASSED = auto()
    ASSERTION_FAILED = auto()
    BENCHMARK_FAILED = auto()


@dataclass(frozen=True)
class CaseResult:
    """Outcome of one executed test case.

    Attributes:
        case: The test case that ran.
        status: Pass/fail classification.
        sent_body: Payload actually sent (JSON-encoded body in assertion mode).
        status_code: Received HTTP status (assertion mode, 0 otherwise).
        response_body: Received response body (assertion mode).
        output: Captured load generator output (benchmark mode).
        return_code: Load generator exit code (benchmark mode).
        latency_ms: Wall time spent on the case in milliseconds.
    """

    case: TestCase
    status: CaseStatus
    sent_body: str = ""
    status_code: int = 0
    response_body: str = ""
    output: str = ""
    return_code: int | None = None
    latency_ms: float = 0.0

    @property
    def passed(self) -> bool:
        """Return True if the case passed."""
        return self.status is CaseStatus.PASSED


@dataclass
class RunResult:
    """Complete result of a suite run.

    Attributes:
        mode: Mode the run executed in.
        outcome: COMPLETED if every case passed, ABORTED otherwise.
        results: Results of the cases that executed, in order.
        error: The error that aborted the run, if any.
        duration_seconds: Wall-clock duration of the run.
        total_cases: Number of cases in the suite.
    """

    mode: RunMode
    outcome: RunOutcome
    results: list[CaseResult] = field(default_factory=list)
    error: EndyError | None = None
    duration_seconds: float = 0.0
    total_cases: int = 0

    @property
    def completed(self) -> bool:
        """Return True if the run finished without a fatal condition."""
        return self.outcome is RunOutcome.COMPLETED

    @property
    def aborted_at(self) -> int | None:
        """Return the suite index of the case that aborted the run."""
        if self.error is None:
            return None
        case = getattr(self.error, "case", None)
        return case.index if case is not None else None

    @property
    def passed_count(self) -> int:
        """Return the number of cases that passed."""
        return sum(1 for r in self.results if r.passed)
