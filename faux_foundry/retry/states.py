"""States and bookkeeping for one retry episode.

An episode is one request for ``count`` candidate records::

    ATTEMPTING ──ok──────────────────────────────► SUCCEEDED
        │
        └─fail─► RETRYING | SHRINKING | DEGRADING ──► (next attempt)
                                         │
                                         └─fail─► FALLING_BACK (terminal)

    transport failure with attempts used up ────► EXHAUSTED (terminal)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum

from faux_foundry.core.exceptions import ErrorKind
from faux_foundry.core.types import Record


class EpisodeState(StrEnum):
    ATTEMPTING = "ATTEMPTING"
    RETRYING = "RETRYING"
    SHRINKING = "SHRINKING"
    DEGRADING = "DEGRADING"
    FALLING_BACK = "FALLING_BACK"
    SUCCEEDED = "SUCCEEDED"
    EXHAUSTED = "EXHAUSTED"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = frozenset(
    {EpisodeState.SUCCEEDED, EpisodeState.FALLING_BACK, EpisodeState.EXHAUSTED}
)


@dataclass
class RetryState:
    """Mutable per-episode counters. Reset for every episode."""

    timeout: float
    batch_size: int
    attempt: int = 0
    consecutive_failures: int = 0
    state: EpisodeState = EpisodeState.ATTEMPTING


@dataclass(frozen=True)
class Decision:
    """One transition taken after a failed attempt."""

    attempt: int
    error: ErrorKind
    state: EpisodeState
    batch_size: int
    timeout: float


@dataclass
class EpisodeResult:
    records: list[Record]
    state: EpisodeState
    attempts: int
    decisions: list[Decision] = field(default_factory=list)

    @property
    def exhausted(self) -> bool:
        return self.state is EpisodeState.EXHAUSTED

    @property
    def used_fallback(self) -> bool:
        return self.state is EpisodeState.FALLING_BACK
