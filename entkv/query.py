"""
Query algebra over entity types.

    query = session.query(User)
    users = await query.select("email").equals("a@b.com")
    users = await query.select("name").match({"last": "Fandango"})
    users = await query.select("age").range(start=-5, end=5)
    users = await query.select("name").match({"last": "F"}).where("team", "core")
    user = await query.by_id("u1")
    everyone = await query.fetch()

A Condition is built eagerly: asking a driver for an operation it does not
support raises immediately, before anything is awaited. Awaiting the
condition runs its queries in order and loads every returned row.

Invariants:
    - Results of a split range are concatenated in query order
    - Rows are loaded with bounded fan-out; the call returns only after
      every row has been assembled
    - Bulk results warm the type's metadata cache once per session
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Generator, List, Optional, Tuple

from .attributes import WILDCARD, Attribute
from .concurrency import gather_bounded
from .errors import NotFoundError, ValidationError
from .schema.types import Layout
from .store.base import QuerySpec, Row

if TYPE_CHECKING:
    from .entity import Entity
    from .session import Session
    from .strategies.base import StorageStrategy

logger = logging.getLogger(__name__)


class Condition:
    """Pending query on one field.

    Attributes:
        attribute: Driver of the selected field
        specs: Store queries to run, in order
        filters: Encoded (column, value) equality filters
    """

    def __init__(self, query: Query, attribute: Attribute) -> None:
        self.query = query
        self.attribute = attribute
        self.specs: List[QuerySpec] = []
        self.filters: Tuple[Tuple[str, Any], ...] = ()

    def equals(self, value: Any) -> Condition:
        self.specs = [self.attribute.equals(value)]
        return self

    def match(self, value: Any) -> Condition:
        self.specs = [self.attribute.match(value)]
        return self

    def range(self, start: Any = None, end: Any = None, id: Any = None) -> Condition:
        self.specs = self.attribute.range(start=start, end=end, id=id)
        return self

    def where(self, field_name: str, value: Any) -> Condition:
        """Keep only records whose field equals value.

        Filters are evaluated by the store after the key condition.
        """
        encoded = self.query.strategy.driver(field_name).encode_operand(value)
        self.filters = self.filters + ((field_name, encoded),)
        return self

    def __await__(self) -> Generator[Any, None, List[Entity]]:
        return self.execute().__await__()

    async def execute(self) -> List[Entity]:
        """Run the queries and load every returned row.

        Raises:
            ValidationError: If no operation was chosen
        """
        if not self.specs:
            raise ValidationError(
                f"No operation chosen for '{self.attribute.name}'", field_name=self.attribute.name
            )

        store = self.query.session.store
        rows: List[Row] = []
        for spec in self.specs:
            if self.filters:
                spec = spec.with_filters(self.filters)
            rows.extend(await store.query(spec))

        return await self.query.load(rows, self.attribute)


class Query:
    """Entry point for querying one entity type.

    Example:
        >>> query = Query(session, User)
        >>> [user] = await query.select("email").equals("a@b.com")
    """

    def __init__(self, session: Session, entity_cls: type[Entity]) -> None:
        self.session = session
        self.entity_cls = entity_cls
        self.strategy: StorageStrategy = session.strategy_for(entity_cls)

    @property
    def layout(self) -> Layout:
        return self.strategy.layout

    def select(self, field_name: str) -> Condition:
        """Bind a condition to the driver of a field.

        Raises:
            ValidationError: If the field is unknown or its role cannot be
                queried under the type's layout
        """
        attribute = self.strategy.driver(field_name)
        if not attribute.supports(self.layout):
            raise ValidationError(
                f"{attribute.role.value} field '{field_name}' cannot be queried on "
                f"{self.layout.value} type {self.strategy.entity_type.name}",
                field_name=field_name,
            )
        return Condition(self, attribute)

    async def by_id(self, id: str, start: Optional[int] = None, end: Optional[int] = None) -> Any:
        """Look a record up by identity.

        Flat types return the single record. TimeSeries types return every
        record of the id (optionally bounded by timestamp), newest first.

        Raises:
            NotFoundError: If nothing is stored under the id
        """
        condition = self.select("id")
        if self.layout == Layout.TIME_SERIES and (start is not None or end is not None):
            condition.range(start=start, end=end, id=id)
        else:
            condition.equals(id)

        results = await condition
        if not results:
            raise NotFoundError(
                f"{self.strategy.entity_type.name} {id} not found",
                resource_type=self.strategy.entity_type.name,
                resource_id=id,
            )

        if self.layout == Layout.TIME_SERIES:
            return results
        return results[0]

    async def fetch(self) -> List[Entity]:
        """Every record of the type."""
        return await self.select(WILDCARD).equals(WILDCARD)

    async def load(self, rows: List[Row], attribute: Attribute) -> List[Entity]:
        """Turn query rows into records, one record per row."""
        rows = [row for row in rows if self.strategy.owns(row)]
        if len(rows) > 1:
            await self.session.warm(self.strategy.entity_type)

        records = await gather_bounded(
            (self.strategy.load_entity([row], attribute) for row in rows),
            self.strategy.fanout,
        )

        logger.debug(
            "Query loaded records",
            extra={
                "type_name": self.strategy.entity_type.name,
                "field": attribute.name,
                "records": len(records),
            },
        )
        return records
