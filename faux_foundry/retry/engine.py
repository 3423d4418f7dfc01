"""Retry strategy engine: obtains candidate records despite backend failures.

Each call to :meth:`RetryStrategyEngine.run_episode` is one episode.
After a failed attempt the engine picks the next state from the error
classification, the attempt number ``a`` and the batch size ``b``
(``n`` is ``max_attempts``):

    ==============================  ============  ==============================
    failure                         next state    effect
    ==============================  ============  ==============================
    any, while DEGRADING            FALLING_BACK  synthesize records, stop
    TRANSPORT / UNAVAILABLE, a>=n   EXHAUSTED     stop with no records
    TRANSPORT / UNAVAILABLE         RETRYING      wait ``retry_delay``
    TIMEOUT / MALFORMED, a>=n       FALLING_BACK  synthesize records, stop
    TIMEOUT / MALFORMED, a==n-1     DEGRADING     use a degraded spec
    TIMEOUT, ``a == 1``             RETRYING      timeout *= backoff (capped)
    TIMEOUT, ``b > min``            SHRINKING     b *= shrink, timeout reset
    TIMEOUT, ``b <= min``           DEGRADING     use a degraded spec
    MALFORMED, ``a <= 2``           RETRYING      unchanged
    MALFORMED, ``a > 2``            DEGRADING     use a degraded spec
    ==============================  ============  ==============================

A backend that answers but times out or returns garbage therefore always
reaches fallback within ``max_attempts``, however large the batch; only
an unreachable backend exhausts an episode. An attempt that returns no
records counts as ``MALFORMED``. The engine never deduplicates; it only
hands candidates back to the caller.
"""

from __future__ import annotations

import asyncio
import logging

from faux_foundry.core.exceptions import BatchSourceError, ErrorKind
from faux_foundry.core.types import Record
from faux_foundry.retry.config import RetryConfig
from faux_foundry.retry.degrade import degrade_spec
from faux_foundry.retry.fallback import synthesize_records
from faux_foundry.retry.states import Decision, EpisodeResult, EpisodeState, RetryState
from faux_foundry.sources.base import BatchSource
from faux_foundry.spec.models import Specification

logger = logging.getLogger(__name__)


class RetryStrategyEngine:
    def __init__(self, source: BatchSource, config: RetryConfig | None = None) -> None:
        self._source = source
        self._config = config or RetryConfig()
        # Run-wide, so consecutive fallback batches do not repeat each other.
        self._fallback_cursor = 0

    @property
    def config(self) -> RetryConfig:
        return self._config

    @property
    def fallback_cursor(self) -> int:
        return self._fallback_cursor

    async def run_episode(self, spec: Specification, count: int) -> EpisodeResult:
        """Try to obtain up to ``count`` candidate records for ``spec``."""
        cfg = self._config
        rs = RetryState(timeout=cfg.base_timeout, batch_size=count)
        decisions: list[Decision] = []
        active_spec = spec

        while True:
            rs.attempt += 1
            logger.debug(
                "Attempt %d: %d records (timeout %.1fs, state %s)",
                rs.attempt,
                rs.batch_size,
                rs.timeout,
                rs.state,
            )
            try:
                records = await self._attempt(active_spec, rs.batch_size, rs.timeout)
                if not records:
                    raise BatchSourceError(ErrorKind.MALFORMED, "empty batch")
            except BatchSourceError as exc:
                error = exc.kind
                logger.info(
                    "Attempt %d failed (%s): %s", rs.attempt, error, exc.message
                )
            else:
                rs.state = EpisodeState.SUCCEEDED
                return EpisodeResult(
                    records=records[:count],
                    state=rs.state,
                    attempts=rs.attempt,
                    decisions=decisions,
                )

            rs.consecutive_failures += 1
            rs.state = self._next_state(rs, error)
            decisions.append(
                Decision(
                    attempt=rs.attempt,
                    error=error,
                    state=rs.state,
                    batch_size=rs.batch_size,
                    timeout=rs.timeout,
                )
            )

            match rs.state:
                case EpisodeState.FALLING_BACK:
                    records = synthesize_records(
                        spec, count, start=self._fallback_cursor
                    )
                    self._fallback_cursor += count
                    logger.warning(
                        "Backend failed after %d attempts; "
                        "synthesized %d fallback records",
                        rs.attempt,
                        count,
                    )
                    return EpisodeResult(
                        records=records,
                        state=rs.state,
                        attempts=rs.attempt,
                        decisions=decisions,
                    )
                case EpisodeState.EXHAUSTED:
                    logger.error(
                        "Episode exhausted after %d attempts (last error: %s)",
                        rs.attempt,
                        error,
                    )
                    return EpisodeResult(
                        records=[],
                        state=rs.state,
                        attempts=rs.attempt,
                        decisions=decisions,
                    )
                case EpisodeState.RETRYING:
                    if error is ErrorKind.TIMEOUT:
                        rs.timeout = min(
                            rs.timeout * cfg.backoff_multiplier, cfg.max_timeout
                        )
                        logger.info("Increased timeout to %.1fs, retrying", rs.timeout)
                    elif error in (ErrorKind.TRANSPORT, ErrorKind.UNAVAILABLE):
                        if cfg.retry_delay > 0:
                            await asyncio.sleep(cfg.retry_delay)
                case EpisodeState.SHRINKING:
                    rs.batch_size = max(
                        cfg.min_batch_size, int(rs.batch_size * cfg.shrink_factor)
                    )
                    rs.timeout = cfg.base_timeout
                    logger.info(
                        "Reduced batch size to %d, reset timeout to %.1fs",
                        rs.batch_size,
                        rs.timeout,
                    )
                case EpisodeState.DEGRADING:
                    active_spec = degrade_spec(spec)
                    logger.info(
                        "Degraded specification to %d fields",
                        len(active_spec.dataset.fields),
                    )

    def _next_state(self, rs: RetryState, error: ErrorKind) -> EpisodeState:
        cfg = self._config
        if rs.state is EpisodeState.DEGRADING:
            return EpisodeState.FALLING_BACK
        if error in (ErrorKind.TRANSPORT, ErrorKind.UNAVAILABLE):
            if rs.attempt >= cfg.max_attempts:
                return EpisodeState.EXHAUSTED
            return EpisodeState.RETRYING

        # Timeout and malformed chains must end in fallback within the budget.
        if rs.attempt >= cfg.max_attempts:
            return EpisodeState.FALLING_BACK
        if rs.attempt + 1 >= cfg.max_attempts:
            return EpisodeState.DEGRADING

        match error:
            case ErrorKind.TIMEOUT:
                if rs.attempt == 1:
                    return EpisodeState.RETRYING
                if rs.batch_size > cfg.min_batch_size:
                    return EpisodeState.SHRINKING
                return EpisodeState.DEGRADING
            case ErrorKind.MALFORMED:
                if rs.attempt <= 2:
                    return EpisodeState.RETRYING
                return EpisodeState.DEGRADING
            case _:
                return EpisodeState.RETRYING

    async def _attempt(
        self, spec: Specification, count: int, timeout: float
    ) -> list[Record]:
        try:
            async with asyncio.timeout(timeout):
                return await self._source.request_batch(spec, count, timeout)
        except TimeoutError as exc:
            raise BatchSourceError(
                ErrorKind.TIMEOUT, f"no response within {timeout:.1f}s"
            ) from exc
