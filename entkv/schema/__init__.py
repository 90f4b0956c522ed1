"""
Schema module for entkv.

This module provides the static descriptor tables for record types:
- Type definitions (EntityType, FieldDescriptor, Role, Layout)
- Field declaration helpers (field, unique, searchable, ref)
- Entity registry for type lookup and validation

Invariants:
    - Descriptor tables are immutable once declared
    - All types must be registered before a Session serves queries
    - Unique fields never appear on TimeSeries types
"""

from .registry import (
    DuplicateRegistrationError,
    EntityRegistry,
    RegistryFrozenError,
    validate_entity_type,
)
from .types import (
    EntityType,
    FieldDescriptor,
    FieldKind,
    Layout,
    Role,
    field,
    ref,
    searchable,
    unique,
)

__all__ = [
    # Types
    "EntityType",
    "FieldDescriptor",
    "FieldKind",
    "Layout",
    "Role",
    "field",
    "unique",
    "searchable",
    "ref",
    # Registry
    "EntityRegistry",
    "RegistryFrozenError",
    "DuplicateRegistrationError",
    "validate_entity_type",
]
