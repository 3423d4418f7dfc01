from faux_foundry.sources.base import BatchSource
from faux_foundry.sources.prompt import build_prompt, parse_records
from faux_foundry.sources.synthetic import SyntheticBatchSource

__all__ = [
    "BatchSource",
    "SyntheticBatchSource",
    "build_prompt",
    "parse_records",
]
