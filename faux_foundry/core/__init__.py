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

__all__ = [
    "BatchSourceError",
    "ErrorKind",
    "ExitCode",
    "FauxFoundryError",
    "GenerationProgress",
    "GenerationResult",
    "Outcome",
    "Record",
    "SinkError",
    "SpecError",
    "UnsupportedProviderError",
]
