"""Configuration management for the faux-foundry CLI.

Reads a TOML config file and provides a typed Config dataclass.
Default location: ``~/.config/faux-foundry/config.toml``.
Override with the ``FAUX_FOUNDRY_CONFIG`` environment variable.

Example::

    [retry]
    max_attempts = 8
    base_timeout = 30
    max_timeout = 300

    [output]
    buffer_size = 100

    [generation]
    timeout = "2h"
    max_stalled_batches = 25

    [llm]
    api_key = "sk-..."
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from faux_foundry.retry.config import RetryConfig
from faux_foundry.sink.jsonl import DEFAULT_BUFFER_SIZE
from faux_foundry.spec.duration import parse_duration

_DEFAULT_CONFIG_DIR = Path("~/.config/faux-foundry").expanduser()


def _config_path() -> Path:
    env = os.environ.get("FAUX_FOUNDRY_CONFIG")
    if env:
        return Path(env).expanduser()
    return _DEFAULT_CONFIG_DIR / "config.toml"


@dataclass
class Config:
    api_key: str = ""

    # Retry engine
    max_attempts: int = 8
    base_timeout: float = 30.0
    max_timeout: float = 300.0
    backoff_multiplier: float = 2.0
    shrink_factor: float = 0.5
    min_batch_size: int = 1
    retry_delay: float = 0.5

    buffer_size: int = DEFAULT_BUFFER_SIZE

    # Overall run deadline in seconds; None means unbounded
    timeout: float | None = None
    max_stalled_batches: int = 25

    def retry_config(self, **overrides: Any) -> RetryConfig:
        """Build retry settings, with ``overrides`` taking precedence."""
        data: dict[str, Any] = {
            "max_attempts": self.max_attempts,
            "base_timeout": self.base_timeout,
            "max_timeout": self.max_timeout,
            "backoff_multiplier": self.backoff_multiplier,
            "shrink_factor": self.shrink_factor,
            "min_batch_size": self.min_batch_size,
            "retry_delay": self.retry_delay,
        }
        data.update(overrides)
        data["max_timeout"] = max(data["max_timeout"], data["base_timeout"])
        return RetryConfig.model_validate(data)


def load_config() -> Config:
    """Load config from disk, falling back to defaults + env overrides."""
    path = _config_path()
    cfg = Config()

    if path.exists():
        with open(path, "rb") as f:
            data = tomllib.load(f)
        retry_section = data.get("retry", {})
        output_section = data.get("output", {})
        generation_section = data.get("generation", {})
        llm_section = data.get("llm", {})

        cfg.max_attempts = int(retry_section.get("max_attempts", cfg.max_attempts))
        cfg.base_timeout = parse_duration(
            retry_section.get("base_timeout", cfg.base_timeout)
        )
        cfg.max_timeout = parse_duration(
            retry_section.get("max_timeout", cfg.max_timeout)
        )
        cfg.backoff_multiplier = float(
            retry_section.get("backoff_multiplier", cfg.backoff_multiplier)
        )
        cfg.shrink_factor = float(retry_section.get("shrink_factor", cfg.shrink_factor))
        cfg.min_batch_size = int(
            retry_section.get("min_batch_size", cfg.min_batch_size)
        )
        cfg.retry_delay = float(retry_section.get("retry_delay", cfg.retry_delay))

        cfg.buffer_size = int(output_section.get("buffer_size", cfg.buffer_size))

        if "timeout" in generation_section:
            cfg.timeout = parse_duration(generation_section["timeout"])
        cfg.max_stalled_batches = int(
            generation_section.get("max_stalled_batches", cfg.max_stalled_batches)
        )

        cfg.api_key = llm_section.get("api_key", cfg.api_key)

    # Environment variables always take precedence
    cfg.api_key = os.environ.get("OPENAI_API_KEY", cfg.api_key)
    cfg.max_attempts = int(
        os.environ.get("FAUX_FOUNDRY_MAX_ATTEMPTS", str(cfg.max_attempts))
    )
    cfg.buffer_size = int(
        os.environ.get("FAUX_FOUNDRY_BUFFER_SIZE", str(cfg.buffer_size))
    )
    env_timeout = os.environ.get("FAUX_FOUNDRY_TIMEOUT")
    if env_timeout:
        cfg.timeout = parse_duration(env_timeout)

    return cfg


def config_exists() -> bool:
    return _config_path().exists()


def config_path_display() -> str:
    return str(_config_path())
