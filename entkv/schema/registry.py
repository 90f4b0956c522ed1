"""
Entity registry for entkv.

The EntityRegistry is the authority for all declared record types.
It provides:
- Registration of Entity subclasses with descriptor validation
- Lookup by type name (used to build reference stubs)
- Schema fingerprinting for consistency checks
- Freeze mechanism to prevent runtime modifications

Invariants:
    - Registry is mutable during startup, frozen before serving
    - Type names are globally unique
    - Every Ref target must be registered before freeze()
    - Unique fields are rejected on TimeSeries types

Example:
    >>> registry = EntityRegistry()
    >>> registry.register(User)
    >>> registry.register(Account)
    >>> registry.freeze()
    'sha256:...'
"""

from __future__ import annotations

import hashlib
import json
import logging
import threading
from typing import TYPE_CHECKING, Dict, Iterator, Optional

from ..errors import ConfigurationError
from .types import RESERVED_NAMES, EntityType, Layout, Role

if TYPE_CHECKING:
    from ..entity import Entity

logger = logging.getLogger(__name__)

# Roles a user may declare on a field; the others are implicit.
DECLARABLE_ROLES = frozenset({Role.PLAIN, Role.UNIQUE, Role.SEARCHABLE, Role.REFERENCE})


class RegistryFrozenError(Exception):
    """Raised when attempting to modify a frozen registry."""
    pass


class DuplicateRegistrationError(Exception):
    """Raised when attempting to register a duplicate type name."""
    pass


def validate_entity_type(entity_type: EntityType) -> None:
    """Check a descriptor table for role misuse.

    Raises:
        ConfigurationError: If a field uses a reserved name or an illegal role
    """
    for f in entity_type.fields:
        if f.name in RESERVED_NAMES:
            raise ConfigurationError(
                f"Field name '{f.name}' is reserved in type '{entity_type.name}'",
                type_name=entity_type.name,
            )
        if f.role not in DECLARABLE_ROLES:
            raise ConfigurationError(
                f"Role {f.role.value} cannot be declared on field '{f.name}'",
                type_name=entity_type.name,
            )
        if f.role == Role.UNIQUE and entity_type.layout == Layout.TIME_SERIES:
            raise ConfigurationError(
                f"Unique field '{f.name}' is not allowed on TimeSeries type '{entity_type.name}'",
                type_name=entity_type.name,
            )
        if f.role == Role.UNIQUE and f.composite:
            raise ConfigurationError(
                f"Unique field '{f.name}' cannot be composite",
                type_name=entity_type.name,
            )


class EntityRegistry:
    """Registry of Entity subclasses keyed by type name.

    Thread-safety:
        - Registration is thread-safe (uses internal lock)
        - Lookups after freeze are lock-free
        - Freeze is atomic and irreversible
    """

    def __init__(self) -> None:
        """Initialize an empty, mutable registry."""
        self._entities: Dict[str, type[Entity]] = {}
        self._frozen = False
        self._fingerprint: Optional[str] = None
        self._lock = threading.Lock()

    @property
    def frozen(self) -> bool:
        """Whether the registry is frozen."""
        return self._frozen

    @property
    def fingerprint(self) -> Optional[str]:
        """Schema fingerprint (available after freeze)."""
        return self._fingerprint

    def register(self, entity_cls: type[Entity]) -> type[Entity]:
        """Register an Entity subclass.

        Returns the class so the method can be used as a decorator.

        Raises:
            RegistryFrozenError: If registry is frozen
            DuplicateRegistrationError: If the type name is already registered
            ConfigurationError: If the descriptor table is invalid
        """
        entity_type = getattr(entity_cls, "entity_type", None)
        if not isinstance(entity_type, EntityType):
            raise ConfigurationError(
                f"{entity_cls.__name__} does not declare an entity_type",
                type_name=entity_cls.__name__,
            )

        with self._lock:
            if self._frozen:
                raise RegistryFrozenError(
                    f"Cannot register entity type '{entity_type.name}': registry is frozen"
                )

            existing = self._entities.get(entity_type.name)
            if existing is not None and existing is not entity_cls:
                raise DuplicateRegistrationError(
                    f"name '{entity_type.name}' already registered by {existing.__name__}"
                )

            validate_entity_type(entity_type)
            self._entities[entity_type.name] = entity_cls

            logger.debug(
                "Registered entity type",
                extra={"type_name": entity_type.name, "layout": entity_type.layout.value},
            )

        return entity_cls

    def get(self, name: str) -> type[Entity]:
        """Get an Entity subclass by type name.

        Raises:
            ConfigurationError: If the type is not registered
        """
        entity_cls = self._entities.get(name)
        if entity_cls is None:
            raise ConfigurationError(f"Entity type '{name}' is not registered", type_name=name)
        return entity_cls

    def __contains__(self, name: object) -> bool:
        return name in self._entities

    def entity_types(self) -> Iterator[EntityType]:
        """Iterate over all registered entity types."""
        for entity_cls in self._entities.values():
            yield entity_cls.entity_type

    def freeze(self) -> str:
        """Validate references, freeze the registry and compute its fingerprint.

        Raises:
            RegistryFrozenError: If already frozen
            ConfigurationError: If a Ref target is not registered
        """
        with self._lock:
            if self._frozen:
                raise RegistryFrozenError("Registry is already frozen")

            for entity_type in self.entity_types():
                for f in entity_type.fields_with_role(Role.REFERENCE):
                    if f.reference_target not in self._entities:
                        raise ConfigurationError(
                            f"Ref field '{f.name}' targets unregistered type "
                            f"'{f.reference_target}'",
                            type_name=entity_type.name,
                        )

            self._fingerprint = self._compute_fingerprint()
            self._frozen = True

            logger.info(
                "Entity registry frozen",
                extra={"types": len(self._entities), "fingerprint": self._fingerprint},
            )
            return self._fingerprint

    def _compute_fingerprint(self) -> str:
        canonical = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"))
        return f"sha256:{hashlib.sha256(canonical.encode('utf-8')).hexdigest()}"

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "entity_types": [
                self._entities[name].entity_type.to_dict() for name in sorted(self._entities)
            ]
        }
