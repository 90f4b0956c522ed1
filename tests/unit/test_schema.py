"""
Unit tests for descriptor tables and the entity registry.

Tests cover:
- Field declaration helpers
- Descriptor validation (reserved names, illegal roles)
- Registration, freezing and fingerprints
- Reference target validation
"""

import pytest

from entkv.entity import Entity
from entkv.errors import ConfigurationError
from entkv.schema import (
    DuplicateRegistrationError,
    EntityRegistry,
    EntityType,
    FieldKind,
    Layout,
    RegistryFrozenError,
    Role,
    field,
    ref,
    searchable,
    unique,
    validate_entity_type,
)


class Account(Entity):
    entity_type = EntityType(name="Account", fields=(unique("slug"),))


class Member(Entity):
    entity_type = EntityType(
        name="Member",
        fields=(
            unique("email"),
            searchable("name", composite=True),
            ref("account", Account),
        ),
    )


class TestFieldDescriptors:
    """Tests for FieldDescriptor and helpers."""

    def test_field_with_role_name(self):
        """Roles can be given by name."""
        age = field("age", "Searchable", signed=True, max_magnitude=999)

        assert age.role == Role.SEARCHABLE
        assert age.signed
        assert age.max_magnitude == 999

    def test_ref_target_from_class(self):
        """Reference targets resolve to the target's type name."""
        account = ref("account", Account)

        assert account.role == Role.REFERENCE
        assert account.reference_target == "Account"

    def test_ref_requires_target(self):
        """A Ref descriptor without a target is invalid."""
        with pytest.raises(ValueError, match="reference_target required"):
            field("account", Role.REFERENCE)

    def test_invalid_max_magnitude(self):
        with pytest.raises(ValueError):
            searchable("age", max_magnitude=0)

    def test_to_dict_omits_defaults(self):
        assert unique("email").to_dict() == {"name": "email", "role": "Unique"}
        assert searchable("name", composite=True).to_dict() == {
            "name": "name",
            "role": "Searchable",
            "composite": True,
        }


class TestEntityType:
    """Tests for EntityType."""

    def test_key_is_uppercase(self):
        assert Member.entity_type.key == "MEMBER"

    def test_duplicate_field_names(self):
        """Field names must be unique within a type."""
        with pytest.raises(ValueError, match="Duplicate field"):
            EntityType(name="Bad", fields=(unique("a"), searchable("a")))

    def test_fields_with_role(self):
        names = [f.name for f in Member.entity_type.fields_with_role(Role.REFERENCE)]
        assert names == ["account"]

    def test_field_kind_of(self):
        assert FieldKind.of({"a": 1}) == FieldKind.COMPOSITE
        assert FieldKind.of(5) == FieldKind.NUMBER
        assert FieldKind.of("5") == FieldKind.STRING


class TestValidation:
    """Tests for descriptor validation."""

    def test_unique_on_time_series_rejected_at_declaration(self):
        """Declaring a Unique field on a TimeSeries type raises ConfigurationError."""
        with pytest.raises(ConfigurationError, match="not allowed on TimeSeries"):

            class Reading(Entity):
                entity_type = EntityType(
                    name="Reading",
                    layout=Layout.TIME_SERIES,
                    fields=(unique("serial"),),
                )

    def test_reserved_names_rejected(self):
        with pytest.raises(ConfigurationError, match="reserved"):
            validate_entity_type(EntityType(name="Bad", fields=(searchable("timestamp"),)))

    def test_implicit_roles_cannot_be_declared(self):
        with pytest.raises(ConfigurationError, match="cannot be declared"):
            validate_entity_type(EntityType(name="Bad", fields=(field("key", Role.PRIMARY_KEY),)))

    def test_composite_unique_rejected(self):
        with pytest.raises(ConfigurationError, match="cannot be composite"):
            validate_entity_type(
                EntityType(name="Bad", fields=(field("code", Role.UNIQUE, composite=True),))
            )


class TestEntityRegistry:
    """Tests for EntityRegistry."""

    def test_register_and_get(self):
        registry = EntityRegistry()

        registry.register(Account)

        assert registry.get("Account") is Account
        assert "Account" in registry

    def test_register_as_decorator(self):
        registry = EntityRegistry()

        @registry.register
        class Tag(Entity):
            entity_type = EntityType(name="Tag", fields=(searchable("label"),))

        assert registry.get("Tag") is Tag

    def test_get_unknown_raises(self):
        with pytest.raises(ConfigurationError, match="not registered"):
            EntityRegistry().get("Nope")

    def test_duplicate_name_raises(self):
        registry = EntityRegistry()
        registry.register(Account)

        class OtherAccount(Entity):
            entity_type = EntityType(name="Account")

        with pytest.raises(DuplicateRegistrationError, match="already registered"):
            registry.register(OtherAccount)

    def test_freeze_blocks_registration(self):
        registry = EntityRegistry()
        registry.register(Account)
        registry.freeze()

        assert registry.frozen
        with pytest.raises(RegistryFrozenError):
            registry.register(Member)

    def test_freeze_requires_ref_targets(self):
        """Freezing fails if a Ref target was never registered."""
        registry = EntityRegistry()
        registry.register(Member)

        with pytest.raises(ConfigurationError, match="unregistered type 'Account'"):
            registry.freeze()

    def test_fingerprint_is_stable(self):
        """Registration order does not change the fingerprint."""
        first = EntityRegistry()
        first.register(Account)
        first.register(Member)

        second = EntityRegistry()
        second.register(Member)
        second.register(Account)

        fingerprint = first.freeze()

        assert fingerprint.startswith("sha256:")
        assert fingerprint == second.freeze()
        assert first.fingerprint == fingerprint
