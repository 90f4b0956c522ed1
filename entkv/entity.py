"""
Entity base class.

Record types subclass Entity and declare their descriptor table as the
`entity_type` class attribute:

    class User(Entity):
        entity_type = EntityType(
            name="User",
            fields=(unique("email"), searchable("name", composite=True)),
        )

    user = User("u1", email="a@b.com", name={"first": "Clem", "last": "Fandango"})
    await user.store(session)
    await User("u1").load(session)

Field values live in a per-instance mapping and are exposed as
attributes. Unset fields read as None and are not written.

Invariants:
    - Only declared fields (plus id and timestamp) can be set
    - The descriptor table is validated when the subclass is created
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, ClassVar, Dict, Optional

from .errors import NotFoundError, ValidationError
from .schema.registry import validate_entity_type
from .schema.types import RESERVED_NAMES, EntityType

if TYPE_CHECKING:
    from .session import Session


def _find_suggestions(unknown: str, known: list[str]) -> list[str]:
    """Find similar field names for suggestions."""
    suggestions = []
    unknown_lower = unknown.lower()

    for name in known:
        if (
            (name.lower().startswith(unknown_lower[:3]) if len(unknown_lower) >= 3 else False)
            or unknown_lower in name.lower()
            or name.lower() in unknown_lower
        ):
            suggestions.append(name)

    return suggestions[:3]


class Entity:
    """A typed record.

    Attributes:
        id: Record identity
        timestamp: Second identity component of TimeSeries records
    """

    entity_type: ClassVar[EntityType]

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        entity_type = cls.__dict__.get("entity_type")
        if entity_type is not None:
            validate_entity_type(entity_type)

    def __init__(self, id: str, timestamp: Optional[int] = None, **values: Any) -> None:
        object.__setattr__(self, "_values", {})
        self.id = id
        self.timestamp = timestamp
        for name, value in values.items():
            setattr(self, name, value)

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or name == "entity_type":
            raise AttributeError(name)
        values = self.__dict__.get("_values")
        if values is not None and self.entity_type.get_field(name) is not None:
            return values.get(name)
        raise AttributeError(f"{type(self).__name__} has no attribute '{name}'")

    def __setattr__(self, name: str, value: Any) -> None:
        if name in RESERVED_NAMES:
            object.__setattr__(self, name, value)
            return

        if self.entity_type.get_field(name) is None:
            known = self.entity_type.get_field_names()
            msg = f"Unknown field '{name}' for {self.entity_type.name}"
            suggestions = _find_suggestions(name, known)
            if suggestions:
                msg += f". Did you mean: {suggestions}?"
            raise ValidationError(msg, field_name=name)

        self._values[name] = value

    def get(self, name: str) -> Any:
        return self._values.get(name)

    def values(self) -> Dict[str, Any]:
        """Set field values in declaration order."""
        return {
            name: self._values[name]
            for name in self.entity_type.get_field_names()
            if name in self._values
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Entity):
            return NotImplemented
        return (
            type(self) is type(other)
            and self.id == other.id
            and self.timestamp == other.timestamp
            and self.values() == other.values()
        )

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        fields = ", ".join(f"{name}={value!r}" for name, value in self.values().items())
        identity = f"id={self.id!r}"
        if self.timestamp is not None:
            identity += f", timestamp={self.timestamp!r}"
        return f"{type(self).__name__}({identity}{', ' if fields else ''}{fields})"

    async def store(self, session: Session) -> None:
        """Write every row of this record and its decode metadata.

        Raises:
            ValidationError: If a value does not fit its field declaration
            StoreError: If the store fails
        """
        await session.strategy_for(type(self)).store_entity(self)

    async def load(self, session: Session) -> Entity:
        """Replace this record's field values with the stored ones.

        Raises:
            NotFoundError: If nothing is stored under this identity
        """
        strategy = session.strategy_for(type(self))
        rows = await session.store.query(strategy.key.lookup(self))
        if not rows:
            raise NotFoundError(
                f"{self.entity_type.name} {self.id} not found",
                resource_type=self.entity_type.name,
                resource_id=self.id,
            )
        loaded = await strategy.load_entity(rows, strategy.key)

        self.timestamp = loaded.timestamp
        self._values.clear()
        self._values.update(loaded.values())
        return self
