"""
Attribute drivers for entkv.

One driver class per field role. Strategies look drivers up through
DRIVERS (role -> class), optionally overridden per layout.

Invariants:
    - Every declarable role has exactly one default driver
    - A role without a driver is a ConfigurationError, never a silent Plain
"""

from __future__ import annotations

from typing import Dict, Mapping, Optional

from ..errors import ConfigurationError
from ..schema.types import Role
from .base import Attribute, PlainAttribute
from .key import RelationalKeyAttribute, TimeSeriesKeyAttribute
from .ref import RefAttribute
from .searchable import SearchableAttribute, TimeSeriesSearchableAttribute
from .unique import UniqueAttribute
from .wildcard import WILDCARD, WildcardAttribute

DRIVERS: Dict[Role, type[Attribute]] = {
    Role.PLAIN: PlainAttribute,
    Role.UNIQUE: UniqueAttribute,
    Role.SEARCHABLE: SearchableAttribute,
    Role.REFERENCE: RefAttribute,
    Role.WILDCARD: WildcardAttribute,
}


def driver_class(
    role: Role,
    overrides: Optional[Mapping[Role, type[Attribute]]] = None,
    type_name: Optional[str] = None,
) -> type[Attribute]:
    """Resolve the driver class for a role.

    Raises:
        ConfigurationError: If no driver is registered for the role
    """
    if overrides and role in overrides:
        return overrides[role]
    try:
        return DRIVERS[role]
    except KeyError:
        raise ConfigurationError(
            f"No attribute driver registered for role {role.value}", type_name=type_name
        ) from None


__all__ = [
    "Attribute",
    "PlainAttribute",
    "RelationalKeyAttribute",
    "TimeSeriesKeyAttribute",
    "UniqueAttribute",
    "SearchableAttribute",
    "TimeSeriesSearchableAttribute",
    "RefAttribute",
    "WildcardAttribute",
    "WILDCARD",
    "DRIVERS",
    "driver_class",
]
