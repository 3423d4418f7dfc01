from __future__ import annotations

import logging
from pathlib import Path

from faux_foundry.config import build_source
from faux_foundry.core.exceptions import (
    BatchSourceError,
    ErrorKind,
    FauxFoundryError,
    SinkError,
    SpecError,
    UnsupportedProviderError,
)
from faux_foundry.core.types import (
    ExitCode,
    GenerationProgress,
    GenerationResult,
    Outcome,
    Record,
)
from faux_foundry.dedup.deduplicator import Deduplicator
from faux_foundry.pipeline.orchestrator import GenerationPipeline, ProgressCallback
from faux_foundry.retry.config import RetryConfig
from faux_foundry.retry.engine import RetryStrategyEngine
from faux_foundry.sink.base import StreamSink
from faux_foundry.sink.jsonl import JsonlSink, open_sink
from faux_foundry.sources.base import BatchSource
from faux_foundry.spec.loader import load_spec, parse_spec
from faux_foundry.spec.models import Specification

logger = logging.getLogger(__name__)

__all__ = [
    "BatchSource",
    "BatchSourceError",
    "Deduplicator",
    "ErrorKind",
    "ExitCode",
    "FauxFoundryError",
    "GenerationPipeline",
    "GenerationProgress",
    "GenerationResult",
    "JsonlSink",
    "Outcome",
    "Record",
    "RetryConfig",
    "RetryStrategyEngine",
    "SinkError",
    "SpecError",
    "Specification",
    "StreamSink",
    "UnsupportedProviderError",
    "generate",
    "load_spec",
    "open_sink",
    "parse_spec",
]


async def generate(
    spec: Specification | str | Path,
    output: str | Path | None = None,
    *,
    source: BatchSource | None = None,
    retry_config: RetryConfig | None = None,
    timeout: float | None = None,
    api_key: str | None = None,
    seed: int | None = None,
    on_progress: ProgressCallback | None = None,
) -> GenerationResult:
    """Generate ``spec.dataset.count`` unique records into ``output``.

    Usage::

        spec = load_spec("customers.yaml")
        result = await generate(spec, "customers.jsonl.gz", timeout=3600)
        if not result.succeeded:
            print(result.outcome, result.error)

    ``spec`` may be a loaded :class:`Specification` or a path to a YAML
    file. When ``source`` is omitted one is built for
    ``spec.model.provider``. A source passed in is left open for the
    caller to close.
    """
    if not isinstance(spec, Specification):
        spec = load_spec(spec)

    owns_source = source is None
    if source is None:
        source = build_source(spec.model.provider, api_key=api_key, seed=seed)
    if retry_config is None:
        base_timeout = spec.model.timeout_seconds
        retry_config = RetryConfig(
            base_timeout=base_timeout,
            max_timeout=max(RetryConfig().max_timeout, base_timeout),
        )

    try:
        pipeline = GenerationPipeline(
            spec,
            source,
            open_sink(output),
            retry_config=retry_config,
            timeout=timeout,
            on_progress=on_progress,
        )
        return await pipeline.run()
    finally:
        if owns_source:
            await source.aclose()
