"""Generation pipeline: drives episodes until ``target`` records are written.

The pipeline runs one backend request at a time and is the only writer
to its sink. A run ends in exactly one :class:`Outcome`:

* ``SUCCEEDED``: ``target`` unique records written and flushed.
* ``EXHAUSTED``: an episode produced no candidates, or
  ``max_stalled_batches`` consecutive batches added nothing new.
* ``DEADLINE_EXCEEDED``: the overall ``timeout`` elapsed.
* ``SINK_FAILED``: a write, flush or close failed.
* ``INTERRUPTED``: :meth:`GenerationPipeline.request_stop` was called.

Records already written are never rolled back. ``GenerationResult.written``
counts records the sink reports as flushed, so buffered records lost to a
sink failure are not counted.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable, Iterable

from faux_foundry.core.exceptions import SinkError
from faux_foundry.core.types import (
    GenerationProgress,
    GenerationResult,
    Outcome,
    Record,
)
from faux_foundry.dedup.deduplicator import Deduplicator
from faux_foundry.retry.config import RetryConfig
from faux_foundry.retry.engine import RetryStrategyEngine
from faux_foundry.retry.states import EpisodeResult
from faux_foundry.sink.base import StreamSink
from faux_foundry.sources.base import BatchSource
from faux_foundry.spec.models import Specification

logger = logging.getLogger(__name__)

DEFAULT_MAX_STALLED_BATCHES = 25

ProgressCallback = Callable[[GenerationProgress], None]


class GenerationPipeline:
    def __init__(
        self,
        spec: Specification,
        source: BatchSource,
        sink: StreamSink,
        *,
        retry_config: RetryConfig | None = None,
        deduplicator: Deduplicator | None = None,
        timeout: float | None = None,
        max_stalled_batches: int = DEFAULT_MAX_STALLED_BATCHES,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        if max_stalled_batches < 1:
            raise ValueError("max_stalled_batches must be positive")
        self._spec = spec
        self._sink = sink
        self._engine = RetryStrategyEngine(source, retry_config)
        self._dedup = deduplicator or Deduplicator()
        self._timeout = timeout
        self._max_stalled = max_stalled_batches
        self._on_progress = on_progress
        self._progress = GenerationProgress(target=spec.target)
        self._stop = asyncio.Event()
        self._started_at = 0.0

    @property
    def progress(self) -> GenerationProgress:
        return self._progress

    @property
    def deduplicator(self) -> Deduplicator:
        return self._dedup

    @property
    def engine(self) -> RetryStrategyEngine:
        return self._engine

    def request_stop(self) -> None:
        """Stop issuing backend requests; the run ends ``INTERRUPTED``."""
        self._stop.set()

    async def run(self) -> GenerationResult:
        self._started_at = time.monotonic()
        logger.info(
            "Generating %d records for %r (batch size %d)",
            self._spec.target,
            self._spec.dataset.domain,
            self._spec.batch_size,
        )

        try:
            async with asyncio.timeout(self._timeout):
                outcome, error = await self._loop()
        except TimeoutError:
            outcome = Outcome.DEADLINE_EXCEEDED
            error = f"generation timed out after {self._timeout:.1f}s"
        except SinkError as exc:
            outcome = Outcome.SINK_FAILED
            error = exc.message

        try:
            self._sink.close()
        except SinkError as exc:
            if outcome is Outcome.SUCCEEDED:
                outcome = Outcome.SINK_FAILED
                error = exc.message
            else:
                logger.error("Failed to close sink after %s: %s", outcome, exc)

        result = self._result(outcome, error)
        if result.succeeded:
            logger.info(
                "Wrote %d records in %.1fs (%d duplicates dropped)",
                result.written,
                result.elapsed,
                result.duplicates,
            )
        else:
            logger.error(
                "Generation %s: %d/%d records written (%s)",
                outcome,
                result.written,
                result.target,
                error,
            )
        return result

    async def _loop(self) -> tuple[Outcome, str | None]:
        target = self._spec.target
        stalled = 0

        while self._progress.generated < target:
            if self._stop.is_set():
                return Outcome.INTERRUPTED, "stopped before completion"

            remaining = target - self._progress.generated
            batch_size = min(self._spec.batch_size, remaining)

            episode = await self._next_episode(batch_size)
            if episode is None:
                return Outcome.INTERRUPTED, "stopped before completion"

            self._progress.batches += 1
            if episode.exhausted:
                return (
                    Outcome.EXHAUSTED,
                    f"no records after {episode.attempts} attempts in batch "
                    f"{self._progress.batches}",
                )

            written = self._write_unique(episode.records)
            logger.info(
                "Batch %d: %d candidates, %d new (%d/%d)",
                self._progress.batches,
                len(episode.records),
                written,
                self._progress.generated,
                target,
            )
            if self._on_progress is not None:
                self._on_progress(self._progress)

            if written == 0:
                stalled += 1
                if stalled >= self._max_stalled:
                    return (
                        Outcome.EXHAUSTED,
                        f"no new unique records in {stalled} consecutive batches",
                    )
            else:
                stalled = 0

        self._sink.flush()
        return Outcome.SUCCEEDED, None

    async def _next_episode(self, batch_size: int) -> EpisodeResult | None:
        """Run one episode, abandoning it if a stop is requested meanwhile."""
        episode_task = asyncio.create_task(
            self._engine.run_episode(self._spec, batch_size)
        )
        stop_task = asyncio.create_task(self._stop.wait())
        try:
            done, _ = await asyncio.wait(
                {episode_task, stop_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            stop_task.cancel()
            if not episode_task.done():
                episode_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await episode_task

        if episode_task in done:
            return episode_task.result()
        return None

    def _write_unique(self, records: Iterable[Record]) -> int:
        target = self._spec.target
        written = 0
        for record in records:
            if self._progress.generated >= target:
                break
            if not self._dedup.is_unique(record):
                continue
            self._sink.write(record)
            written += 1
            self._progress.record_written(self._elapsed())

        stats = self._dedup.stats()
        self._progress.duplicates = stats.duplicates
        self._progress.malformed = stats.malformed
        self._progress.update_timing(self._elapsed())
        return written

    def _elapsed(self) -> float:
        return time.monotonic() - self._started_at

    def _result(self, outcome: Outcome, error: str | None) -> GenerationResult:
        return GenerationResult(
            outcome=outcome,
            target=self._spec.target,
            written=min(self._progress.generated, self._sink.flushed),
            duplicates=self._progress.duplicates,
            malformed=self._progress.malformed,
            batches=self._progress.batches,
            elapsed=self._elapsed(),
            error=error,
        )
