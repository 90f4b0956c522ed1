"""
entkv: typed entities and secondary-index queries over a single-table
sorted key-value store.

Declare a record type, register it and store/query records through a
Session:

    class User(Entity):
        entity_type = EntityType(
            name="User",
            fields=(unique("email"), searchable("name", composite=True)),
        )

    registry = EntityRegistry()
    registry.register(User)
    registry.freeze()

    session = Session(InMemoryStore(), registry)
    await User("u1", email="a@b.com", name={"first": "Clem", "last": "Fandango"}).store(session)
    [user] = await session.query(User).select("name").match({"last": "Fandango"})
"""

from .config import EntKvConfig, ObservabilityConfig, QueryConfig, StoreConfig
from .entity import Entity
from .errors import (
    ConfigurationError,
    EntKvError,
    NotFoundError,
    SchemaMismatch,
    StoreError,
    UnsupportedOperation,
    ValidationError,
)
from .log import setup_logging
from .query import Condition, Query
from .schema import (
    EntityRegistry,
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
from .session import Session
from .store import InMemoryStore, QuerySpec, Store

__version__ = "1.0.0"

__all__ = [
    # Records
    "Entity",
    "EntityType",
    "FieldDescriptor",
    "FieldKind",
    "Layout",
    "Role",
    "field",
    "unique",
    "searchable",
    "ref",
    "EntityRegistry",
    # Session and queries
    "Session",
    "Query",
    "Condition",
    # Stores
    "Store",
    "QuerySpec",
    "InMemoryStore",
    # Config
    "EntKvConfig",
    "StoreConfig",
    "QueryConfig",
    "ObservabilityConfig",
    "setup_logging",
    # Errors
    "EntKvError",
    "ConfigurationError",
    "ValidationError",
    "UnsupportedOperation",
    "SchemaMismatch",
    "NotFoundError",
    "StoreError",
]
