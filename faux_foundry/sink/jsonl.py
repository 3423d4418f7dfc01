from __future__ import annotations

import gzip
import json
import logging
import sys
from pathlib import Path
from typing import TextIO

from faux_foundry.core.exceptions import SinkError
from faux_foundry.core.types import Record
from faux_foundry.sink.base import StreamSink

logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 100

_STDOUT_TARGETS = frozenset({"", "-", "stdout"})


class JsonlSink(StreamSink):
    """JSON Lines sink with a small bounded write buffer.

    Records are encoded as soon as they are written, in their natural
    field order, and held as encoded lines until ``buffer_size`` of them
    have accumulated. A target path ending in ``.gz`` is gzip-compressed
    transparently.
    """

    def __init__(
        self,
        target: str | Path | TextIO | None = None,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
    ) -> None:
        if buffer_size < 1:
            raise ValueError(f"buffer_size must be positive, got {buffer_size}")
        self._buffer_size = buffer_size
        self._buffer: list[str] = []
        self._high_water_mark = 0
        self._count = 0
        self._flushed = 0
        self._closed = False
        self._failed = False
        self._owns_stream = False
        self._compressed = False

        if target is None or (isinstance(target, str) and target in _STDOUT_TARGETS):
            self._stream: TextIO = sys.stdout
            self._path = "stdout"
        elif isinstance(target, str | Path):
            self._path = str(target)
            self._stream = self._open(Path(target))
            self._owns_stream = True
        else:
            self._stream = target
            self._path = getattr(target, "name", "<stream>")

    def _open(self, path: Path) -> TextIO:
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            if path.suffix == ".gz":
                self._compressed = True
                return gzip.open(path, "wt", encoding="utf-8")
            return open(path, "w", encoding="utf-8")  # noqa: SIM115
        except OSError as exc:
            raise SinkError(f"cannot open {path}: {exc}") from exc

    # ---- interface ----

    def write(self, record: Record) -> None:
        if self._closed:
            raise SinkError(f"sink {self._path} is closed")
        if self._failed:
            raise SinkError(f"sink {self._path} failed earlier")
        try:
            line = json.dumps(record, ensure_ascii=False, allow_nan=False)
        except (TypeError, ValueError) as exc:
            raise SinkError(f"cannot encode record: {exc}") from exc

        self._buffer.append(line)
        self._high_water_mark = max(self._high_water_mark, len(self._buffer))
        self._count += 1
        if len(self._buffer) >= self._buffer_size:
            self.flush()

    def flush(self) -> None:
        """Hand buffered lines to the stream.

        The first failure is final: buffered lines are discarded and
        nothing is written to the stream again, so a failed write can
        never land twice.
        """
        if self._closed or self._failed:
            return
        try:
            if self._buffer:
                self._stream.write("\n".join(self._buffer) + "\n")
                self._flushed += len(self._buffer)
                self._buffer.clear()
            self._stream.flush()
        except (OSError, ValueError) as exc:
            self._discard()
            raise SinkError(f"{self._path}: {exc}") from exc

    def close(self) -> None:
        if self._closed:
            return
        try:
            self.flush()
        finally:
            self._closed = True
            if self._owns_stream:
                try:
                    self._stream.close()
                except (OSError, ValueError) as exc:
                    raise SinkError(f"{self._path}: {exc}") from exc
        logger.info("Closed %s after %d records", self._path, self._flushed)

    def _discard(self) -> None:
        self._failed = True
        if self._buffer:
            logger.error(
                "Discarding %d buffered records after a write failure on %s",
                len(self._buffer),
                self._path,
            )
        self._buffer.clear()

    # ---- introspection ----

    @property
    def count(self) -> int:
        return self._count

    @property
    def flushed(self) -> int:
        """Records handed to the underlying stream without error."""
        return self._flushed

    @property
    def failed(self) -> bool:
        return self._failed

    @property
    def path(self) -> str:
        return self._path

    @property
    def compressed(self) -> bool:
        return self._compressed

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    @property
    def buffered(self) -> int:
        return len(self._buffer)

    @property
    def high_water_mark(self) -> int:
        """Largest number of records ever held in the buffer at once."""
        return self._high_water_mark


def open_sink(
    target: str | Path | None = None,
    buffer_size: int = DEFAULT_BUFFER_SIZE,
) -> JsonlSink:
    """Open a JSONL sink; ``None``, ``"-"`` or ``"stdout"`` write to stdout."""
    return JsonlSink(target, buffer_size=buffer_size)
