from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum, StrEnum
from typing import Any

Record = dict[str, Any]
"""One generated record: JSON-compatible mapping in its natural field order."""


class Outcome(StrEnum):
    """Terminal outcome of a generation run."""

    SUCCEEDED = "succeeded"
    EXHAUSTED = "exhausted"
    DEADLINE_EXCEEDED = "deadline_exceeded"
    SINK_FAILED = "sink_failed"
    INTERRUPTED = "interrupted"


class ExitCode(IntEnum):
    """Process exit status, stable for automation."""

    SUCCESS = 0
    FAILURE = 1
    VALIDATION = 2
    EXHAUSTED = 3
    DEADLINE = 4
    INTERRUPTED = 130


_OUTCOME_EXIT_CODES: dict[Outcome, ExitCode] = {
    Outcome.SUCCEEDED: ExitCode.SUCCESS,
    Outcome.EXHAUSTED: ExitCode.EXHAUSTED,
    Outcome.DEADLINE_EXCEEDED: ExitCode.DEADLINE,
    Outcome.SINK_FAILED: ExitCode.FAILURE,
    Outcome.INTERRUPTED: ExitCode.INTERRUPTED,
}


@dataclass
class GenerationProgress:
    """Running counters for one generation run.

    Owned by the pipeline; other components report deltas.
    """

    target: int
    generated: int = 0
    duplicates: int = 0
    malformed: int = 0
    batches: int = 0
    elapsed: float = 0.0
    rate: float = 0.0
    eta: float | None = None

    @property
    def percent(self) -> float:
        if self.target <= 0:
            return 100.0
        return self.generated / self.target * 100

    def record_written(self, elapsed: float) -> None:
        self.generated += 1
        self.update_timing(elapsed)

    def update_timing(self, elapsed: float) -> None:
        self.elapsed = elapsed
        if elapsed > 0 and self.generated > 0:
            self.rate = self.generated / elapsed
            self.eta = (self.target - self.generated) / self.rate


@dataclass
class GenerationResult:
    """Result returned from :meth:`GenerationPipeline.run`."""

    outcome: Outcome
    target: int
    written: int = 0
    duplicates: int = 0
    malformed: int = 0
    batches: int = 0
    elapsed: float = 0.0
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCEEDED

    @property
    def shortfall(self) -> int:
        return self.target - self.written

    @property
    def exit_code(self) -> ExitCode:
        return _OUTCOME_EXIT_CODES[self.outcome]
