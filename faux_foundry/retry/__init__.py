from faux_foundry.retry.config import RetryConfig
from faux_foundry.retry.degrade import degrade_spec
from faux_foundry.retry.engine import RetryStrategyEngine
from faux_foundry.retry.fallback import synthesize_records, synthesize_value
from faux_foundry.retry.patterns import PatternError, expand_pattern
from faux_foundry.retry.states import Decision, EpisodeResult, EpisodeState, RetryState

__all__ = [
    "Decision",
    "EpisodeResult",
    "EpisodeState",
    "PatternError",
    "RetryConfig",
    "RetryState",
    "RetryStrategyEngine",
    "degrade_spec",
    "expand_pattern",
    "synthesize_records",
    "synthesize_value",
]
