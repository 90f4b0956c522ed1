"""
Unit tests for the Entity base class.

Tests cover:
- Field access and unknown-field suggestions
- Equality and representation
"""

import pytest

from entkv.entity import Entity
from entkv.errors import ValidationError
from entkv.schema import EntityType, searchable, unique


class Book(Entity):
    entity_type = EntityType(
        name="Book",
        fields=(unique("isbn"), searchable("title"), searchable("pages")),
    )


class TestEntity:
    """Tests for Entity."""

    def test_values_are_attributes(self):
        book = Book("b1", isbn="978-0", title="Dune")

        assert book.id == "b1"
        assert book.timestamp is None
        assert book.isbn == "978-0"
        assert book.title == "Dune"
        assert book.pages is None

    def test_values_in_declaration_order(self):
        book = Book("b1", pages=412, isbn="978-0")

        assert list(book.values()) == ["isbn", "pages"]

    def test_assignment(self):
        book = Book("b1")
        book.pages = 100

        assert book.get("pages") == 100

    def test_unknown_field_suggests(self):
        """Unknown fields raise ValidationError with close matches."""
        with pytest.raises(ValidationError, match="Did you mean: \\['title'\\]") as exc_info:
            Book("b1", titel="Dune")

        assert exc_info.value.field_name == "titel"

    def test_unknown_attribute_read(self):
        with pytest.raises(AttributeError):
            Book("b1").author

    def test_equality(self):
        assert Book("b1", title="Dune") == Book("b1", title="Dune")
        assert Book("b1", title="Dune") != Book("b2", title="Dune")
        assert Book("b1", title="Dune") != Book("b1", title="Emma")

    def test_repr(self):
        assert repr(Book("b1", title="Dune")) == "Book(id='b1', title='Dune')"
