from __future__ import annotations

from abc import ABC, abstractmethod

from faux_foundry.core.types import Record


class StreamSink(ABC):
    """Abstract base class for record sinks.

    Sinks accept confirmed-unique records one at a time. Every method
    raises :class:`~faux_foundry.core.exceptions.SinkError` on failure;
    callers must treat that as fatal to the run.
    """

    @abstractmethod
    def write(self, record: Record) -> None:
        """Encode and persist one record."""
        ...

    @abstractmethod
    def flush(self) -> None:
        """Push any buffered records to the underlying storage."""
        ...

    @abstractmethod
    def close(self) -> None:
        """Flush, then release resources. Safe to call more than once."""
        ...

    @property
    @abstractmethod
    def count(self) -> int:
        """Number of records accepted by :meth:`write`."""
        ...

    @property
    def flushed(self) -> int:
        """Records that reached storage; buffered sinks override this."""
        return self.count

    def __enter__(self) -> StreamSink:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
