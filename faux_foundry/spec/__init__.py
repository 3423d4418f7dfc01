from faux_foundry.spec.duration import parse_duration
from faux_foundry.spec.loader import dump_spec, load_spec, parse_spec
from faux_foundry.spec.models import (
    DatasetConfig,
    FieldSpec,
    FieldType,
    ModelConfig,
    Specification,
)

__all__ = [
    "DatasetConfig",
    "FieldSpec",
    "FieldType",
    "ModelConfig",
    "Specification",
    "dump_spec",
    "load_spec",
    "parse_duration",
    "parse_spec",
]
