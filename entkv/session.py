"""
Session: the context object every strategy and query is built from.

A Session bundles what used to be process-wide state:
- Configuration (table names, fan-out cap, metadata ordering)
- The store backend
- The entity registry used to resolve reference targets
- The schema/type metadata cache

Lifecycle: construct once at startup, share across tasks, never mutate
configuration afterwards. Strategies are built lazily per entity type.

Example:
    >>> registry = EntityRegistry()
    >>> registry.register(User)
    >>> registry.freeze()
    >>> session = Session(InMemoryStore(), registry)
    >>> await User("u1", email="a@b.com").store(session)
    >>> await session.query(User).by_id("u1")
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Dict, Optional, Set

from .config import EntKvConfig
from .errors import ConfigurationError
from .meta import MetaRepository
from .query import Query
from .schema.registry import EntityRegistry
from .schema.types import EntityType
from .store.base import Store
from .strategies import STRATEGIES, StorageStrategy

if TYPE_CHECKING:
    from .entity import Entity

logger = logging.getLogger(__name__)


class Session:
    """Shared context for storing and querying entities.

    Attributes:
        store: Store backend
        registry: Registered entity types
        config: entkv configuration
        meta: Schema/type metadata cache
    """

    def __init__(
        self,
        store: Store,
        registry: EntityRegistry,
        config: Optional[EntKvConfig] = None,
    ) -> None:
        self.store = store
        self.registry = registry
        self.config = config or EntKvConfig()
        self.config.validate()
        self.meta = MetaRepository(
            store,
            table_name=self.config.store.table_name,
            index_name=self.config.store.index_name,
        )
        self._strategies: Dict[str, StorageStrategy] = {}
        self._warmed: Set[str] = set()
        self._warm_lock = asyncio.Lock()

    def strategy_for(self, entity_cls: type[Entity]) -> StorageStrategy:
        """Storage strategy of an entity class, built on first use.

        Raises:
            ConfigurationError: If the class is unregistered or its layout
                has no strategy
        """
        entity_type = entity_cls.entity_type
        strategy = self._strategies.get(entity_type.name)
        if strategy is not None:
            return strategy

        if entity_type.name not in self.registry:
            raise ConfigurationError(
                f"Entity type '{entity_type.name}' is not registered", type_name=entity_type.name
            )

        strategy_cls = STRATEGIES.get(entity_type.layout)
        if strategy_cls is None:
            raise ConfigurationError(
                f"No storage strategy registered for layout {entity_type.layout.value}",
                type_name=entity_type.name,
            )

        strategy = strategy_cls(self, entity_cls)
        self._strategies[entity_type.name] = strategy
        return strategy

    def query(self, entity_cls: type[Entity]) -> Query:
        return Query(self, entity_cls)

    async def warm(self, entity_type: EntityType) -> None:
        """Bulk-load a type's metadata once per session."""
        async with self._warm_lock:
            if entity_type.name in self._warmed:
                return
            count = await self.meta.fetch_all(entity_type)
            self._warmed.add(entity_type.name)

        logger.debug(
            "Warmed metadata cache", extra={"type_name": entity_type.name, "rows": count}
        )
