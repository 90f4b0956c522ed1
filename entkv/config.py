"""
Configuration management for entkv.

All configuration is done via environment variables.
This module provides typed configuration classes with validation.

Invariants:
    - All settings have sensible defaults for local development
    - A config object is built once at startup and never mutated
    - Secrets are never logged or exposed in error messages

How to change safely:
    - Add new settings with defaults that maintain backward compatibility
    - Keep from_env() and the dataclass defaults in sync
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)

MAX_FANOUT = 64


@dataclass(frozen=True)
class StoreConfig:
    """Store and table configuration.

    Attributes:
        table_name: Base table; TimeSeries types use "{table_name}-{TYPE}"
        index_name: Secondary index keyed on (sk, data)
        region: AWS region for DynamoDB
        endpoint_url: Custom endpoint URL (for DynamoDB Local)
        access_key_id: AWS access key ID (optional, uses AWS credential chain)
        secret_access_key: AWS secret access key (optional)
    """

    table_name: str = "entkv"
    index_name: str = "sk-data-index"
    region: str = "us-east-1"
    endpoint_url: str | None = None
    access_key_id: str | None = None
    secret_access_key: str | None = None

    @classmethod
    def from_env(cls) -> StoreConfig:
        """Load configuration from environment variables."""
        return cls(
            table_name=os.getenv("ENTKV_TABLE", "entkv"),
            index_name=os.getenv("ENTKV_INDEX", "sk-data-index"),
            region=os.getenv("AWS_REGION", os.getenv("AWS_DEFAULT_REGION", "us-east-1")),
            endpoint_url=os.getenv("DYNAMODB_ENDPOINT"),
            access_key_id=os.getenv("AWS_ACCESS_KEY_ID"),
            secret_access_key=os.getenv("AWS_SECRET_ACCESS_KEY"),
        )


@dataclass(frozen=True)
class QueryConfig:
    """Query engine configuration.

    Attributes:
        fanout: Maximum concurrent field/row resolutions
        sync_metadata: Persist schema/type metadata before writing rows
    """

    fanout: int = 4
    sync_metadata: bool = True

    @classmethod
    def from_env(cls) -> QueryConfig:
        """Load configuration from environment variables."""
        return cls(
            fanout=int(os.getenv("ENTKV_FANOUT", "4")),
            sync_metadata=os.getenv("ENTKV_SYNC_METADATA", "true").lower() == "true",
        )


@dataclass(frozen=True)
class ObservabilityConfig:
    """Logging configuration.

    Attributes:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
        log_format: Log format (json, text)
    """

    log_level: str = "INFO"
    log_format: str = "json"

    @classmethod
    def from_env(cls) -> ObservabilityConfig:
        """Load configuration from environment variables."""
        return cls(
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "json"),
        )


@dataclass(frozen=True)
class EntKvConfig:
    """Complete entkv configuration.

    Attributes:
        store: Store and table configuration
        query: Query engine configuration
        observability: Logging configuration
    """

    store: StoreConfig = field(default_factory=StoreConfig)
    query: QueryConfig = field(default_factory=QueryConfig)
    observability: ObservabilityConfig = field(default_factory=ObservabilityConfig)

    @classmethod
    def from_env(cls) -> EntKvConfig:
        """Load complete configuration from environment variables.

        Raises:
            ValueError: If configuration is invalid.
        """
        config = cls(
            store=StoreConfig.from_env(),
            query=QueryConfig.from_env(),
            observability=ObservabilityConfig.from_env(),
        )
        config.validate()
        return config

    def validate(self) -> None:
        """Validate configuration consistency.

        Raises:
            ValueError: If configuration is invalid.
        """
        if not self.store.table_name:
            raise ValueError("ENTKV_TABLE must not be empty")
        if not self.store.index_name:
            raise ValueError("ENTKV_INDEX must not be empty")
        if not 1 <= self.query.fanout <= MAX_FANOUT:
            raise ValueError(f"ENTKV_FANOUT must be between 1 and {MAX_FANOUT}")
        if self.observability.log_format not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be one of: json, text")
        if self.store.access_key_id and not self.store.secret_access_key:
            logger.warning("AWS_ACCESS_KEY_ID set without AWS_SECRET_ACCESS_KEY")

    def log_config(self) -> None:
        """Log configuration (redacting secrets)."""
        logger.info(
            "entkv configuration loaded",
            extra={
                "table_name": self.store.table_name,
                "index_name": self.store.index_name,
                "region": self.store.region,
                "endpoint_url": self.store.endpoint_url,
                "fanout": self.query.fanout,
                "sync_metadata": self.query.sync_metadata,
                "log_level": self.observability.log_level,
            },
        )
