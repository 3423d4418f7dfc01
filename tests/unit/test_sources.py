from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from typing import Any

import litellm
import pytest
from litellm.exceptions import APIConnectionError, NotFoundError

from faux_foundry.core.exceptions import BatchSourceError, ErrorKind
from faux_foundry.sources.litellm import LiteLLMBatchSource
from faux_foundry.sources.prompt import build_prompt, parse_records
from faux_foundry.sources.synthetic import SyntheticBatchSource
from faux_foundry.spec.models import Specification
from tests.stubs import make_spec

FIELDS = [
    {"name": "id", "type": "string", "pattern": "^CUS[0-9]{8}$"},
    {"name": "full_name", "type": "string", "required": True, "description": "Name"},
    {"name": "tier", "type": "enum", "values": ["bronze", "gold"]},
    {"name": "age", "type": "integer", "range": [18, 90]},
]


@pytest.fixture()
def customer_spec() -> Specification:
    return make_spec(fields=FIELDS)


def _response(text: str | None) -> SimpleNamespace:
    message = SimpleNamespace(content=text)
    return SimpleNamespace(choices=[SimpleNamespace(message=message)])


# ── Prompt ───────────────────────────────────────────────────────────


class TestBuildPrompt:
    def test_describes_every_field(self, customer_spec: Specification) -> None:
        prompt = build_prompt(customer_spec, 7)

        assert prompt.startswith("Generate 7 unique JSON records for Retail bank")
        assert "- id (string) [required] (pattern: ^CUS[0-9]{8}$)" in prompt
        assert "- full_name (string) [required]: Name" in prompt
        assert "- tier (enum) (values: bronze, gold)" in prompt
        assert "- age (integer) (range: 18-90)" in prompt
        assert "Output only valid JSON objects" in prompt


class TestParseRecords:
    def test_one_object_per_line(self, customer_spec: Specification) -> None:
        text = '{"id": "CUS1", "full_name": "Ada"}\n{"id": "CUS2", "full_name": "Bo"}'
        assert [r["id"] for r in parse_records(text, customer_spec)] == ["CUS1", "CUS2"]

    def test_array_fenced_and_prose(self, customer_spec: Specification) -> None:
        text = (
            "Here are your records:\n```json\n"
            '[{"id": "CUS1", "full_name": "Ada", "tags": {"vip": true}},\n'
            ' {"id": "CUS2", "full_name": "Bo"}]\n```\nHope this helps!'
        )
        records = parse_records(text, customer_spec)
        assert [r["id"] for r in records] == ["CUS1", "CUS2"]
        assert records[0]["tags"] == {"vip": True}

    def test_braces_inside_strings(self, customer_spec: Specification) -> None:
        text = '{"id": "CUS1", "full_name": "Curly } Brace {"}'
        assert parse_records(text, customer_spec)[0]["full_name"] == "Curly } Brace {"

    def test_trailing_commas_are_repaired(self, customer_spec: Specification) -> None:
        text = '{"id": "CUS1", "full_name": "Ada", "tags": ["a", "b",],}'
        assert parse_records(text, customer_spec) == [
            {"id": "CUS1", "full_name": "Ada", "tags": ["a", "b"]}
        ]

    def test_skips_broken_and_incomplete_objects(
        self, customer_spec: Specification
    ) -> None:
        text = "\n".join(
            [
                '{"id": "CUS1", "full_name": "Ada"}',
                '{"id": "CUS2", full_name: Bo}',
                '{"tier": "gold"}',
                '{"id": "CUS3"',
            ]
        )
        assert [r["id"] for r in parse_records(text, customer_spec)] == ["CUS1"]

    def test_no_required_fields_accepts_any_object(self) -> None:
        spec = make_spec(fields=[{"name": "note", "type": "text"}])
        assert parse_records('{"other": 1} {}', spec) == [{"other": 1}]

    def test_no_objects(self, customer_spec: Specification) -> None:
        assert parse_records("I cannot help with that.", customer_spec) == []


# ── LiteLLM source ───────────────────────────────────────────────────


class TestLiteLLMBatchSource:
    async def test_parses_completion(
        self, customer_spec: Specification, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        calls: list[dict[str, Any]] = []
        lines = [json.dumps({"id": f"CUS{i}", "full_name": f"N{i}"}) for i in range(5)]

        async def fake_acompletion(**kwargs: Any) -> SimpleNamespace:
            calls.append(kwargs)
            return _response("\n".join(lines))

        monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
        source = LiteLLMBatchSource(provider="ollama", seed=7)
        records = await source.request_batch(customer_spec, 3, timeout=5)

        assert [r["id"] for r in records] == ["CUS0", "CUS1", "CUS2"]
        assert calls[0]["model"] == "ollama/llama3.1:8b"
        assert calls[0]["api_base"] == "http://localhost:11434"
        assert calls[0]["temperature"] == 0.7
        assert calls[0]["seed"] == 7
        assert "api_key" not in calls[0]

    async def test_hosted_provider_uses_default_base(
        self, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        calls: list[dict[str, Any]] = []

        async def fake_acompletion(**kwargs: Any) -> SimpleNamespace:
            calls.append(kwargs)
            return _response('{"id": "CUS1"}')

        monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
        spec = make_spec(fields=FIELDS[:1], name="gpt-4o-mini")
        source = LiteLLMBatchSource(provider="openai", api_key="sk-test")
        await source.request_batch(spec, 1, timeout=5)

        assert calls[0]["model"] == "openai/gpt-4o-mini"
        assert calls[0]["api_key"] == "sk-test"
        assert "api_base" not in calls[0]

    async def test_unparseable_response_is_malformed(
        self, customer_spec: Specification, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def fake_acompletion(**kwargs: Any) -> SimpleNamespace:
            return _response("Sorry, I can't produce JSON today.")

        monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
        with pytest.raises(BatchSourceError) as excinfo:
            await LiteLLMBatchSource().request_batch(customer_spec, 3, timeout=5)
        assert excinfo.value.kind is ErrorKind.MALFORMED

    async def test_empty_response_is_malformed(
        self, customer_spec: Specification, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def fake_acompletion(**kwargs: Any) -> SimpleNamespace:
            return _response(None)

        monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
        with pytest.raises(BatchSourceError) as excinfo:
            await LiteLLMBatchSource().request_batch(customer_spec, 3, timeout=5)
        assert excinfo.value.kind is ErrorKind.MALFORMED

    async def test_slow_backend_times_out(
        self, customer_spec: Specification, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def fake_acompletion(**kwargs: Any) -> SimpleNamespace:
            await asyncio.sleep(3600)
            return _response("")

        monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
        with pytest.raises(BatchSourceError) as excinfo:
            await LiteLLMBatchSource().request_batch(customer_spec, 3, timeout=0.01)
        assert excinfo.value.kind is ErrorKind.TIMEOUT

    async def test_connection_error_is_transport(
        self, customer_spec: Specification, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def fake_acompletion(**kwargs: Any) -> SimpleNamespace:
            raise APIConnectionError(
                message="connection refused",
                llm_provider="ollama",
                model="llama3.1:8b",
            )

        monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
        with pytest.raises(BatchSourceError) as excinfo:
            await LiteLLMBatchSource().request_batch(customer_spec, 3, timeout=5)
        assert excinfo.value.kind is ErrorKind.TRANSPORT

    async def test_missing_model_is_unavailable(
        self, customer_spec: Specification, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        async def fake_acompletion(**kwargs: Any) -> SimpleNamespace:
            raise NotFoundError(
                message="model not found",
                model="llama3.1:8b",
                llm_provider="ollama",
            )

        monkeypatch.setattr(litellm, "acompletion", fake_acompletion)
        with pytest.raises(BatchSourceError) as excinfo:
            await LiteLLMBatchSource().request_batch(customer_spec, 3, timeout=5)
        assert excinfo.value.kind is ErrorKind.UNAVAILABLE

    def test_model_name_keeps_existing_prefix(self) -> None:
        spec = make_spec(name="ollama/mistral")
        assert LiteLLMBatchSource().model_name(spec) == "ollama/mistral"


# ── Synthetic source ─────────────────────────────────────────────────


async def test_synthetic_source_advances_between_batches(
    customer_spec: Specification,
) -> None:
    source = SyntheticBatchSource()
    first = await source.request_batch(customer_spec, 3, timeout=1)
    second = await source.request_batch(customer_spec, 3, timeout=1)

    assert [r["id"] for r in first] == ["CUS00000000", "CUS00000001", "CUS00000002"]
    assert [r["id"] for r in second] == ["CUS00000003", "CUS00000004", "CUS00000005"]


async def test_synthetic_source_seed_offsets_start(customer_spec: Specification) -> None:
    source = SyntheticBatchSource.from_config({"seed": 100})
    records = await source.request_batch(customer_spec, 1, timeout=1)
    assert records[0]["id"] == "CUS00000100"
