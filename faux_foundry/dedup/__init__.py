from faux_foundry.dedup.canonical import (
    DEFAULT_POLICY,
    NormalizationPolicy,
    canonicalize,
    digest,
)
from faux_foundry.dedup.deduplicator import DedupStats, Deduplicator

__all__ = [
    "DEFAULT_POLICY",
    "DedupStats",
    "Deduplicator",
    "NormalizationPolicy",
    "canonicalize",
    "digest",
]
