from __future__ import annotations

from pathlib import Path
from typing import Any

import pytest
from pydantic import ValidationError

from faux_foundry.core.exceptions import SpecError
from faux_foundry.spec.duration import parse_duration
from faux_foundry.spec.loader import dump_spec, load_spec, parse_spec
from faux_foundry.spec.models import FieldSpec, FieldType, Specification


def _spec_dict(**dataset: Any) -> dict[str, Any]:
    return {
        "dataset": {
            "count": 10,
            "fields": [{"name": "id"}],
            **dataset,
        }
    }


class TestLoadSpec:
    def test_loads_yaml_file(self, spec_file: Path) -> None:
        spec = load_spec(spec_file)

        assert spec.target == 12
        assert spec.batch_size == 4
        assert spec.model.endpoint == "http://localhost:11434"
        assert spec.model.timeout_seconds == 45
        assert [f.name for f in spec.dataset.fields] == [
            "id",
            "full_name",
            "tier",
            "balance",
        ]
        assert spec.dataset.fields[2].type is FieldType.ENUM

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(SpecError, match="not found"):
            load_spec(tmp_path / "missing.yaml")

    def test_invalid_yaml(self) -> None:
        with pytest.raises(SpecError, match="YAML"):
            parse_spec("dataset: [unclosed")

    def test_not_a_mapping(self) -> None:
        with pytest.raises(SpecError, match="mapping"):
            parse_spec("- just\n- a list\n")

    def test_validation_errors_name_the_location(self) -> None:
        with pytest.raises(SpecError) as excinfo:
            parse_spec(_spec_dict(count=0))
        assert "dataset.count" in excinfo.value.message

    def test_model_section_is_optional(self) -> None:
        spec = parse_spec(_spec_dict())
        assert spec.model.provider == "ollama"
        assert spec.model.name == "llama3.1:8b"
        assert spec.batch_size == 32

    def test_dump_round_trip(self, spec_file: Path) -> None:
        spec = load_spec(spec_file)
        assert parse_spec(dump_spec(spec)) == spec


class TestValidation:
    def test_primary_fields_are_required(self) -> None:
        spec = parse_spec(
            _spec_dict(
                fields=[
                    {"name": "id"},
                    {"name": "email"},
                    {"name": "name"},
                    {"name": "x"},
                ]
            )
        )
        assert [f.required for f in spec.dataset.fields] == [True, True, True, False]

    @pytest.mark.parametrize(
        "field",
        [
            {"name": "1bad"},
            {"name": "has-dash"},
            {"name": "x" * 51},
            {"name": "tier", "type": "enum"},
            {"name": "age", "type": "integer", "range": [10, 5]},
            {"name": "age", "type": "integer", "range": [1, 2, 3]},
            {"name": "code", "pattern": "[unclosed"},
            {"name": "x", "type": "blob"},
            {"name": "x", "unknown_key": 1},
        ],
    )
    def test_invalid_fields(self, field: dict[str, Any]) -> None:
        with pytest.raises(ValidationError):
            FieldSpec.model_validate(field)

    def test_empty_range_is_dropped(self) -> None:
        assert FieldSpec(name="n", type=FieldType.INTEGER, range=[]).range is None

    def test_duplicate_field_names(self) -> None:
        with pytest.raises(SpecError, match="duplicate field name"):
            parse_spec(_spec_dict(fields=[{"name": "a"}, {"name": "a"}]))

    def test_field_count_limits(self) -> None:
        with pytest.raises(SpecError):
            parse_spec(_spec_dict(fields=[]))
        with pytest.raises(SpecError):
            parse_spec(_spec_dict(fields=[{"name": f"f{i}"} for i in range(101)]))

    @pytest.mark.parametrize(
        "model",
        [
            {"endpoint": "localhost:11434"},
            {"batch_size": 0},
            {"batch_size": 1001},
            {"temperature": 2.5},
            {"timeout": "soon"},
            {"name": "  "},
        ],
    )
    def test_invalid_model(self, model: dict[str, Any]) -> None:
        with pytest.raises(SpecError):
            parse_spec({"model": model, **_spec_dict()})

    def test_numeric_timeout(self) -> None:
        spec = parse_spec({"model": {"timeout": 90}, **_spec_dict()})
        assert spec.model.timeout_seconds == 90

    def test_with_count(self) -> None:
        spec = parse_spec(_spec_dict())
        bigger = spec.with_count(500)
        assert bigger.target == 500
        assert spec.target == 10
        with pytest.raises(ValidationError):
            spec.with_count(0)

    def test_required_fields(self) -> None:
        spec: Specification = parse_spec(
            _spec_dict(
                fields=[{"name": "id"}, {"name": "x", "required": True}, {"name": "y"}]
            )
        )
        assert [f.name for f in spec.dataset.required_fields] == ["id", "x"]


class TestParseDuration:
    @pytest.mark.parametrize(
        ("text", "seconds"),
        [
            ("30s", 30),
            ("5m", 300),
            ("2h", 7200),
            ("1h30m", 5400),
            ("250ms", 0.25),
            ("1.5s", 1.5),
            ("45", 45),
            (" 10S ", 10),
            (12, 12),
        ],
    )
    def test_valid(self, text: str | int, seconds: float) -> None:
        assert parse_duration(text) == pytest.approx(seconds)

    @pytest.mark.parametrize("text", ["", "abc", "10x", "5m junk", "0s", "-5", 0])
    def test_invalid(self, text: str | int) -> None:
        with pytest.raises(SpecError):
            parse_duration(text)
