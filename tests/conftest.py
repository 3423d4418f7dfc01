from __future__ import annotations

from pathlib import Path

import pytest

from faux_foundry.retry.config import RetryConfig
from faux_foundry.spec.models import Specification
from tests.stubs import MemorySink, ScriptedSource, make_spec

SPEC_YAML = """\
model:
  provider: ollama
  endpoint: http://localhost:11434/
  name: llama3.1:8b
  batch_size: 4
  temperature: 0.7
  timeout: 45s
dataset:
  count: 12
  domain: Customer records for a retail bank
  fields:
    - name: id
      type: string
      pattern: "^CUS[0-9]{8}$"
    - name: full_name
      type: string
      required: true
      description: Customer's full name
    - name: tier
      type: enum
      values: [bronze, silver, gold]
    - name: balance
      type: float
      range: [0, 100000]
"""


@pytest.fixture()
def spec() -> Specification:
    return make_spec()


@pytest.fixture()
def spec_file(tmp_path: Path) -> Path:
    path = tmp_path / "customers.yaml"
    path.write_text(SPEC_YAML, encoding="utf-8")
    return path


@pytest.fixture()
def fast_retry() -> RetryConfig:
    """Retry settings with short timeouts and no delays."""
    return RetryConfig(
        max_attempts=8,
        base_timeout=0.05,
        max_timeout=0.2,
        retry_delay=0,
    )


@pytest.fixture()
def sink() -> MemorySink:
    return MemorySink()


@pytest.fixture()
def source() -> ScriptedSource:
    return ScriptedSource()


@pytest.fixture(autouse=True)
def _isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from the user's config file and environment."""
    monkeypatch.setenv("FAUX_FOUNDRY_CONFIG", str(tmp_path / "no-config.toml"))
    for var in (
        "OPENAI_API_KEY",
        "FAUX_FOUNDRY_MAX_ATTEMPTS",
        "FAUX_FOUNDRY_TIMEOUT",
        "FAUX_FOUNDRY_BUFFER_SIZE",
    ):
        monkeypatch.delenv(var, raising=False)
