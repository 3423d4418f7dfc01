from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from faux_foundry.core.types import Record
from faux_foundry.dedup.canonical import DEFAULT_POLICY, NormalizationPolicy, digest

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DedupStats:
    unique: int
    duplicates: int
    malformed: int = 0

    @property
    def total(self) -> int:
        return self.unique + self.duplicates + self.malformed

    @property
    def duplicate_rate(self) -> float:
        seen = self.unique + self.duplicates
        return self.duplicates / seen if seen else 0.0

    def __str__(self) -> str:
        return (
            f"Unique: {self.unique}, Duplicates: {self.duplicates}, "
            f"Malformed: {self.malformed}, Rate: {self.duplicate_rate * 100:.2f}%"
        )


class Deduplicator:
    """Run-wide duplicate filter over canonical record digests.

    The digest index only grows: one 32-byte entry per unique record
    admitted during the run. It is never persisted.

    :meth:`is_unique` is a check-and-insert and is not synchronized;
    callers running concurrent batches must serialize access.
    """

    def __init__(self, policy: NormalizationPolicy = DEFAULT_POLICY) -> None:
        self._policy = policy
        self._seen: set[bytes] = set()
        self._duplicates = 0
        self._malformed = 0

    @property
    def policy(self) -> NormalizationPolicy:
        return self._policy

    def is_unique(self, record: Record) -> bool:
        """Return ``True`` and admit *record* if it has not been seen before.

        Records whose digest cannot be computed are counted as malformed
        and rejected.
        """
        try:
            key = digest(record, self._policy)
        except (TypeError, ValueError) as exc:
            self._malformed += 1
            logger.warning("Dropping malformed record: %s", exc)
            return False

        if key in self._seen:
            self._duplicates += 1
            return False

        self._seen.add(key)
        return True

    def filter_unique(self, records: Iterable[Record]) -> list[Record]:
        return [r for r in records if self.is_unique(r)]

    def stats(self) -> DedupStats:
        return DedupStats(
            unique=len(self._seen),
            duplicates=self._duplicates,
            malformed=self._malformed,
        )

    def __len__(self) -> int:
        return len(self._seen)
