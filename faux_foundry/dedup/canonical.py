"""Canonical form and digest of a record.

Two records are duplicates when their canonical forms serialize to the
same bytes. The canonical form:

* sorts mapping keys at every nesting level,
* strips leading/trailing whitespace from string leaves
  (``NormalizationPolicy.trim_strings``),
* sorts lists made only of str/int/float/bool by the compact JSON text
  of each element (``NormalizationPolicy.sort_scalar_lists``),
* keeps lists holding mappings, lists or nulls in their original order,
  canonicalizing each element,
* folds integral floats into ints, since JSON does not distinguish
  ``1`` from ``1.0``.
"""

from __future__ import annotations

import hashlib
import json
import math
from dataclasses import dataclass
from typing import Any

from faux_foundry.core.types import Record

DIGEST_SIZE = hashlib.sha256().digest_size


@dataclass(frozen=True)
class NormalizationPolicy:
    """Controls which differences are ignored when comparing records."""

    trim_strings: bool = True
    sort_scalar_lists: bool = True


DEFAULT_POLICY = NormalizationPolicy()


def canonicalize(record: Record, policy: NormalizationPolicy = DEFAULT_POLICY) -> dict:
    return _canonical_mapping(record, policy)


def digest(record: Record, policy: NormalizationPolicy = DEFAULT_POLICY) -> bytes:
    """Return the 32-byte SHA-256 digest of the record's canonical form.

    Raises:
        TypeError: A value (or key) is not JSON-serializable.
        ValueError: A float is NaN or infinite.
    """
    return hashlib.sha256(serialize(canonicalize(record, policy))).digest()


def serialize(canonical: Any) -> bytes:
    return json.dumps(
        canonical,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    ).encode("utf-8")


def _canonical_mapping(mapping: dict, policy: NormalizationPolicy) -> dict:
    out: dict[str, Any] = {}
    for key in sorted(mapping, key=_key_order):
        if not isinstance(key, str):
            raise TypeError(f"record keys must be strings, got {type(key).__name__}")
        out[key] = _canonical_value(mapping[key], policy)
    return out


def _key_order(key: Any) -> str:
    return key if isinstance(key, str) else repr(key)


def _canonical_value(value: Any, policy: NormalizationPolicy) -> Any:
    # bool before int: bool is an int subclass
    if value is None or isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip() if policy.trim_strings else value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if not math.isfinite(value):
            raise ValueError(f"non-finite float {value!r} cannot be canonicalized")
        if value.is_integer():
            return int(value)
        return value
    if isinstance(value, dict):
        return _canonical_mapping(value, policy)
    if isinstance(value, list | tuple):
        items = [_canonical_value(v, policy) for v in value]
        if policy.sort_scalar_lists and _all_scalars(items):
            items.sort(key=_projection)
        return items
    raise TypeError(f"unsupported value type {type(value).__name__}")


def _all_scalars(items: list[Any]) -> bool:
    return all(isinstance(v, str | int | float) for v in items)


def _projection(value: Any) -> str:
    return json.dumps(value, ensure_ascii=False)
