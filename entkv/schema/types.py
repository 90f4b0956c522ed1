"""
Descriptor table types for entkv.

This module defines the static, per-entity-type description of fields:
- Role: How a field is indexed (Plain, Unique, Searchable, Reference, ...)
- Layout: How records of a type are stored (Flat or TimeSeries)
- FieldKind: The scalar kind recorded in type metadata
- FieldDescriptor: One field's role and role options
- EntityType: Name, layout and ordered descriptor table of a record type

Descriptor tables are built once when a type is declared and never
mutated afterwards.

Invariants:
    - Field names are unique within an EntityType
    - "id" and "timestamp" are reserved for record identity
    - Unique fields are only legal under the Flat layout
    - Composite fields are Searchable or Plain, never Unique

Example:
    >>> User = EntityType(
    ...     name="User",
    ...     fields=(
    ...         unique("email"),
    ...         searchable("name", composite=True),
    ...         ref("account", "Account"),
    ...     ),
    ... )
"""

from __future__ import annotations

from dataclasses import dataclass
from dataclasses import field as dataclass_field
from enum import Enum
from typing import Any

from ..codec import DEFAULT_MAX_MAGNITUDE

RESERVED_NAMES = frozenset({"id", "timestamp"})


class Role(Enum):
    """Indexing role of a field."""

    PLAIN = "Plain"
    UNIQUE = "Unique"
    SEARCHABLE = "Searchable"
    REFERENCE = "Ref"
    PRIMARY_KEY = "PrimaryKey"
    WILDCARD = "Wildcard"


class Layout(Enum):
    """Storage layout of an entity type."""

    FLAT = "Flat"
    TIME_SERIES = "TimeSeries"


class FieldKind(Enum):
    """Scalar kind persisted as type metadata."""

    STRING = "string"
    NUMBER = "number"
    COMPOSITE = "composite"

    @classmethod
    def from_str(cls, value: str) -> FieldKind:
        """Convert string to FieldKind."""
        for kind in cls:
            if kind.value == value:
                return kind
        raise ValueError(f"Invalid field kind: {value}")

    @classmethod
    def of(cls, value: Any) -> FieldKind:
        """Kind of a record value."""
        if isinstance(value, dict):
            return cls.COMPOSITE
        if isinstance(value, int) and not isinstance(value, bool):
            return cls.NUMBER
        return cls.STRING


def _target_name(target: Any) -> str:
    entity_type = getattr(target, "entity_type", None)
    if isinstance(entity_type, EntityType):
        return entity_type.name
    if isinstance(target, EntityType):
        return target.name
    if isinstance(target, str):
        return target
    raise TypeError(f"Invalid reference target: {target!r}")


@dataclass(frozen=True)
class FieldDescriptor:
    """Role and role options of a single field.

    Attributes:
        name: Field name on the record
        role: Indexing role
        composite: Whether values are flat mappings of scalars
        signed: Whether numeric values may be negative
        max_magnitude: Largest absolute numeric value (sets encoded width)
        reference_target: Name of the referenced entity type (Ref only)
    """

    name: str
    role: Role = Role.PLAIN
    composite: bool = False
    signed: bool = False
    max_magnitude: int = DEFAULT_MAX_MAGNITUDE
    reference_target: str | None = None

    def __post_init__(self) -> None:
        """Validate field descriptor."""
        if not self.name:
            raise ValueError("Field name cannot be empty")
        if self.max_magnitude <= 0:
            raise ValueError(f"max_magnitude must be positive for field '{self.name}'")
        if self.role == Role.REFERENCE and not self.reference_target:
            raise ValueError(f"reference_target required for Ref field '{self.name}'")
        if self.role != Role.REFERENCE and self.reference_target is not None:
            raise ValueError(f"reference_target only applies to Ref fields ('{self.name}')")

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        result: dict[str, Any] = {"name": self.name, "role": self.role.value}
        if self.composite:
            result["composite"] = True
        if self.signed:
            result["signed"] = True
        if self.max_magnitude != DEFAULT_MAX_MAGNITUDE:
            result["max_magnitude"] = self.max_magnitude
        if self.reference_target is not None:
            result["reference_target"] = self.reference_target
        return result


def field(
    name: str,
    role: Role | str = Role.PLAIN,
    *,
    composite: bool = False,
    signed: bool = False,
    max_magnitude: int = DEFAULT_MAX_MAGNITUDE,
    reference_target: Any = None,
) -> FieldDescriptor:
    """Convenience function to create a FieldDescriptor.

    Args:
        name: Field name
        role: Role or role name ("Plain", "Unique", "Searchable", "Ref")
        composite: Composite values
        signed: Allow negative numbers
        max_magnitude: Numeric bound
        reference_target: Target entity type, class or type name

    Returns:
        FieldDescriptor instance

    Example:
        >>> age = field("age", "Searchable", signed=True, max_magnitude=999)
    """
    if isinstance(role, str):
        role = Role(role)
    return FieldDescriptor(
        name=name,
        role=role,
        composite=composite,
        signed=signed,
        max_magnitude=max_magnitude,
        reference_target=_target_name(reference_target) if reference_target is not None else None,
    )


def unique(name: str) -> FieldDescriptor:
    """Declare a Unique field."""
    return field(name, Role.UNIQUE)


def searchable(
    name: str,
    *,
    composite: bool = False,
    signed: bool = False,
    max_magnitude: int = DEFAULT_MAX_MAGNITUDE,
) -> FieldDescriptor:
    """Declare a Searchable field."""
    return field(
        name,
        Role.SEARCHABLE,
        composite=composite,
        signed=signed,
        max_magnitude=max_magnitude,
    )


def ref(name: str, target: Any) -> FieldDescriptor:
    """Declare a Reference field pointing at another entity type."""
    return field(name, Role.REFERENCE, reference_target=target)


@dataclass(frozen=True)
class EntityType:
    """Definition of an entity type.

    Attributes:
        name: Type name; its uppercase form prefixes every key
        layout: Flat (single table) or TimeSeries (per-type table)
        fields: Ordered descriptor table
    """

    name: str
    layout: Layout = Layout.FLAT
    fields: tuple[FieldDescriptor, ...] = dataclass_field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate entity type definition."""
        if not self.name:
            raise ValueError("Entity type name cannot be empty")

        names = [f.name for f in self.fields]
        if len(names) != len(set(names)):
            raise ValueError(f"Duplicate field name in entity type '{self.name}'")

    @property
    def key(self) -> str:
        """Uppercase key prefix, e.g. USER."""
        return self.name.upper()

    def get_field(self, name: str) -> FieldDescriptor | None:
        """Get field descriptor by name."""
        for f in self.fields:
            if f.name == name:
                return f
        return None

    def get_field_names(self) -> list[str]:
        """Get list of field names."""
        return [f.name for f in self.fields]

    def fields_with_role(self, role: Role) -> list[FieldDescriptor]:
        return [f for f in self.fields if f.role == role]

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "layout": self.layout.value,
            "fields": [f.to_dict() for f in self.fields],
        }

    def __hash__(self) -> int:
        return hash(self.name)
