from __future__ import annotations

from typing import Any

from faux_foundry.core.types import Record
from faux_foundry.retry.fallback import synthesize_records
from faux_foundry.sources.base import BatchSource
from faux_foundry.spec.models import Specification


class SyntheticBatchSource(BatchSource):
    """Offline source that builds records procedurally from the field schema.

    Never touches a network and never fails; useful for dry runs,
    pipeline smoke tests and environments without a model server.
    """

    def __init__(self, start: int = 0) -> None:
        self._cursor = start

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> SyntheticBatchSource:
        return cls(start=int(config.get("seed") or 0))

    async def request_batch(
        self,
        spec: Specification,
        count: int,
        timeout: float,
    ) -> list[Record]:
        records = synthesize_records(spec, count, start=self._cursor)
        self._cursor += count
        return records
