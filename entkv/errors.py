"""
Error types for entkv.

This module defines all exception types raised by the indexing layer:
- EntKvError: Base exception
- ConfigurationError: Missing strategy/driver or illegal type declaration
- ValidationError: Role misuse or invalid field values
- UnsupportedOperation: Query operation a driver does not support
- SchemaMismatch: Stored composite value disagrees with its schema
- NotFoundError: No row/metadata for the requested identity
- StoreError: Transport or store failure

Invariants:
    - All errors inherit from EntKvError
    - Errors are never recovered internally; they surface to the caller
    - StoreError is raised by store implementations only
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional


class EntKvError(Exception):
    """Base exception for all entkv errors.

    Attributes:
        message: Error message
        code: Error code for programmatic handling
        details: Additional error context
    """

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "ENTKV_ERROR"
        self.details = details or {}


class ConfigurationError(EntKvError):
    """Type or session is not set up correctly.

    Raised when:
    - No storage strategy is registered for a layout
    - No driver is registered for a declared role
    - A field role is illegal for the entity layout
    """

    def __init__(self, message: str, type_name: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="CONFIGURATION_ERROR",
            details={"type_name": type_name},
        )
        self.type_name = type_name


class ValidationError(EntKvError):
    """A value or operation is not valid for a field.

    Raised when:
    - A composite value is stored under a Unique role
    - A composite value contains nested values
    - A number is outside the configured magnitude
    """

    def __init__(
        self,
        message: str,
        field_name: Optional[str] = None,
        errors: Optional[List[str]] = None,
    ) -> None:
        super().__init__(
            message,
            code="VALIDATION_ERROR",
            details={"field": field_name, "errors": errors or []},
        )
        self.field_name = field_name
        self.errors = errors or []


class UnsupportedOperation(ValidationError):
    """A driver was asked for a query operation it does not support."""

    def __init__(self, role: str, operation: str, field_name: Optional[str] = None) -> None:
        super().__init__(
            f"{role} attributes cannot be queried by {operation}",
            field_name=field_name,
        )
        self.code = "UNSUPPORTED_OPERATION"
        self.role = role
        self.operation = operation


class SchemaMismatch(EntKvError):
    """Decoded composite does not match its stored schema."""

    def __init__(
        self,
        message: str,
        expected: Optional[int] = None,
        actual: Optional[int] = None,
    ) -> None:
        super().__init__(
            message,
            code="SCHEMA_MISMATCH",
            details={"expected": expected, "actual": actual},
        )
        self.expected = expected
        self.actual = actual


class NotFoundError(EntKvError):
    """Resource not found.

    Raised when:
    - by_id/load finds no row for an identity
    - Schema or type metadata has not been written for a field
    """

    def __init__(self, message: str, resource_type: str, resource_id: str) -> None:
        super().__init__(
            message,
            code="NOT_FOUND",
            details={"resource_type": resource_type, "resource_id": resource_id},
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class StoreError(EntKvError):
    """The underlying store failed an operation.

    No retries are performed by entkv; the original error is chained.
    """

    def __init__(self, message: str, operation: Optional[str] = None) -> None:
        super().__init__(
            message,
            code="STORE_ERROR",
            details={"operation": operation},
        )
        self.operation = operation
