from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RetryConfig(BaseModel):
    """Knobs of the retry strategy engine, fixed for one run.

    Passed explicitly to :class:`RetryStrategyEngine` so independent
    pipelines can use different settings side by side.
    """

    model_config = ConfigDict(frozen=True)

    max_attempts: int = Field(default=8, ge=1)
    """Attempts per episode before it ends ``EXHAUSTED``."""

    base_timeout: float = Field(default=30.0, gt=0)
    max_timeout: float = Field(default=300.0, gt=0)
    backoff_multiplier: float = Field(default=2.0, gt=1)
    shrink_factor: float = Field(default=0.5, gt=0, lt=1)
    min_batch_size: int = Field(default=1, ge=1)

    retry_delay: float = Field(default=0.5, ge=0)
    """Seconds to wait before re-issuing after a transport or availability error."""

    @model_validator(mode="after")
    def _check_timeouts(self) -> RetryConfig:
        if self.max_timeout < self.base_timeout:
            raise ValueError(
                f"max_timeout ({self.max_timeout}) must be >= "
                f"base_timeout ({self.base_timeout})"
            )
        return self
