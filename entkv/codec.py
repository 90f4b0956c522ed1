"""
Order-preserving value codec.

Every value written into a key or column goes through this module so that
the store's byte-wise sort order matches the value's natural order:

- Integers are encoded as a sign character followed by a fixed number of
  digits. Non-negative numbers are prefixed with "0" and zero padded.
  Negative numbers are prefixed with "-" and store the 9's complement of
  their magnitude, so -10 sorts before -5.
- Composite values (flat mappings of scalars) are packed in reverse
  declaration order, each component prefixed with "#".

Example:
    >>> encode_scalar(-10, 999), encode_scalar(-5, 999), encode_scalar(5, 999)
    ('-989', '-994', '0005')
    >>> pack_composite({"first": "Clem", "last": "Fandango"})
    '#Fandango#Clem'

Invariants:
    - a < b  <=>  encode_scalar(a, M) < encode_scalar(b, M) for |a|, |b| <= M
    - decode_scalar(encode_scalar(n, M)) == n
    - Encoded values never contain DELIMITER as data
"""

from __future__ import annotations

import re
from typing import Any, Mapping, Sequence

from .errors import SchemaMismatch, ValidationError

DELIMITER = "#"
KIND_SEPARATOR = ":"
NEGATIVE_PREFIX = "-"
POSITIVE_PREFIX = "0"
DEFAULT_MAX_MAGNITUDE = 10**15 - 1

_ENCODED_NUMBER = re.compile(r"[-0][0-9]+")


def is_scalar(value: Any) -> bool:
    """Whether a value can be stored as a single encoded scalar."""
    return isinstance(value, (str, int)) and not isinstance(value, bool)


def _width(max_magnitude: int) -> int:
    if max_magnitude <= 0:
        raise ValueError(f"max_magnitude must be positive, got {max_magnitude}")
    return len(str(max_magnitude))


def encode_scalar(n: int, max_magnitude: int = DEFAULT_MAX_MAGNITUDE) -> str:
    """Encode an integer as a fixed-width, byte-sortable string.

    Args:
        n: Integer to encode
        max_magnitude: Largest absolute value the field may hold

    Returns:
        Sign-prefixed decimal string of width len(str(max_magnitude)) + 1

    Raises:
        ValidationError: If n is not an integer or |n| > max_magnitude
    """
    if isinstance(n, bool) or not isinstance(n, int):
        raise ValidationError(f"Only integers can be order-encoded, got {type(n).__name__}")
    if abs(n) > max_magnitude:
        raise ValidationError(f"Value {n} exceeds max magnitude {max_magnitude}")

    width = _width(max_magnitude)
    if n < 0:
        complement = (10**width - 1) - abs(n)
        return f"{NEGATIVE_PREFIX}{complement:0{width}d}"
    return f"{POSITIVE_PREFIX}{n:0{width}d}"


def decode_scalar(s: str) -> int:
    """Exact inverse of encode_scalar; the width is read from the string."""
    if not looks_like_number(s):
        raise ValidationError(f"Not an encoded number: {s!r}")

    digits = s[1:]
    if s[0] == NEGATIVE_PREFIX:
        return -((10 ** len(digits) - 1) - int(digits))
    return int(digits)


def looks_like_number(value: Any) -> bool:
    return isinstance(value, str) and _ENCODED_NUMBER.fullmatch(value) is not None


def looks_like_composite(value: Any) -> bool:
    return isinstance(value, str) and value.startswith(DELIMITER)


def looks_encoded(value: Any) -> bool:
    """Whether a stored column value carries a composite or numeric marker.

    This is only a hint: a plain string such as "0123" also matches, so the
    field's stored kind decides how the value is decoded.
    """
    return looks_like_composite(value) or looks_like_number(value)


def _check_component(name: str, value: Any) -> None:
    if isinstance(value, (Mapping, list, tuple, set)):
        raise ValidationError("Cannot store nested composite attributes", field_name=name)
    if not is_scalar(value):
        raise ValidationError(
            f"Composite component '{name}' must be a string or integer",
            field_name=name,
        )
    if isinstance(value, str) and DELIMITER in value:
        raise ValidationError(
            f"Composite component '{name}' must not contain '{DELIMITER}'",
            field_name=name,
        )


def encode_string(value: str, field_name: str | None = None) -> str:
    """Return a string scalar as stored, rejecting the composite delimiter.

    A stored string carrying '#' would read back as a packed composite.
    """
    if DELIMITER in value:
        raise ValidationError(
            f"Field '{field_name}' must not contain '{DELIMITER}'",
            field_name=field_name,
        )
    return value


def encode_component(value: Any) -> str:
    if isinstance(value, int) and not isinstance(value, bool):
        return encode_scalar(value)
    return value


def pack_composite(value: Mapping[str, Any]) -> str:
    """Pack a flat mapping of scalars into one sortable string.

    Components are emitted in reverse declaration order so that a prefix of
    the packed string addresses the trailing declared components.

    Raises:
        ValidationError: If the mapping is empty, or a component is nested,
            non-scalar or contains '#'
    """
    if not isinstance(value, Mapping):
        raise ValidationError(f"Composite value must be a mapping, got {type(value).__name__}")
    if not value:
        raise ValidationError("Composite value must have at least one component")

    packed = ""
    for name in reversed(list(value.keys())):
        component = value[name]
        _check_component(name, component)
        packed = f"{packed}{DELIMITER}{encode_component(component)}"
    return packed


def unpack_composite(
    s: str,
    component_names: Sequence[str],
    kinds: Sequence[str] | None = None,
) -> dict[str, Any]:
    """Inverse of pack_composite.

    Args:
        s: Packed value, e.g. "#Fandango#Clem"
        component_names: Component names in declaration order
        kinds: Optional per-component kind ("string" or "number")

    Raises:
        SchemaMismatch: If the component count differs from the schema
    """
    if not looks_like_composite(s):
        raise ValidationError(f"Not a packed composite: {s!r}")

    values = s.split(DELIMITER)[1:]
    values.reverse()
    if len(values) != len(component_names):
        raise SchemaMismatch(
            f"Composite value has {len(values)} components, schema has {len(component_names)}",
            expected=len(component_names),
            actual=len(values),
        )

    result: dict[str, Any] = {}
    for index, name in enumerate(component_names):
        raw = values[index]
        if kinds is not None and kinds[index] == "number":
            result[name] = decode_scalar(raw)
        else:
            result[name] = raw
    return result


def component_kind(value: Any) -> str:
    return "number" if isinstance(value, int) and not isinstance(value, bool) else "string"


def pack_schema(value: Mapping[str, Any]) -> str:
    """Describe a composite value as "#name:kind" pairs in reverse order."""
    if not value:
        raise ValidationError("Composite value must have at least one component")
    schema = ""
    for name in reversed(list(value.keys())):
        _check_component(name, value[name])
        schema = f"{schema}{DELIMITER}{name}{KIND_SEPARATOR}{component_kind(value[name])}"
    return schema


def unpack_schema(s: str) -> tuple[tuple[str, ...], tuple[str, ...]]:
    """Parse packed schema data into (component names, kinds) in declaration order."""
    entries = s.split(DELIMITER)[1:]
    entries.reverse()

    names: list[str] = []
    kinds: list[str] = []
    for entry in entries:
        name, _, kind = entry.partition(KIND_SEPARATOR)
        names.append(name)
        kinds.append(kind or "string")
    return tuple(names), tuple(kinds)
