from faux_foundry.pipeline.orchestrator import (
    DEFAULT_MAX_STALLED_BATCHES,
    GenerationPipeline,
    ProgressCallback,
)

__all__ = [
    "DEFAULT_MAX_STALLED_BATCHES",
    "GenerationPipeline",
    "ProgressCallback",
]
