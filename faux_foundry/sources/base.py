from __future__ import annotations

from abc import ABC, abstractmethod

from faux_foundry.core.types import Record
from faux_foundry.spec.models import Specification


class BatchSource(ABC):
    """Produces candidate records for a specification.

    Implementations must return within ``timeout`` seconds or raise
    :class:`~faux_foundry.core.exceptions.BatchSourceError` with
    ``ErrorKind.TIMEOUT``. Returning fewer than ``count`` records is a
    partial success, not an error.
    """

    @abstractmethod
    async def request_batch(
        self,
        spec: Specification,
        count: int,
        timeout: float,
    ) -> list[Record]:
        """Return up to ``count`` candidate records.

        Raises:
            BatchSourceError: classified failure.
        """
        ...

    async def aclose(self) -> None:
        """Release any held resources."""
        return None
