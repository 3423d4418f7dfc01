from __future__ import annotations

from faux_foundry.spec.models import Specification

# Fields kept when a specification marks none as required.
DEGRADED_FIELD_COUNT = 3


def degrade_spec(spec: Specification) -> Specification:
    """Return a reduced-difficulty copy of ``spec``.

    Keeps only required fields (or the first few when none are
    required) and sets the temperature to its most deterministic value.
    The original is left untouched.
    """
    degraded = spec.model_copy(deep=True)
    required = [f for f in degraded.dataset.fields if f.required]
    degraded.dataset.fields = required or degraded.dataset.fields[:DEGRADED_FIELD_COUNT]
    degraded.model.temperature = 0.0
    degraded.dataset.domain = f"Simplified {spec.dataset.domain}"
    return degraded
