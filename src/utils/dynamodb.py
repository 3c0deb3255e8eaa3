"""
Centralized DynamoDB table access utilities.

Provides singleton-pattern table accessors with lazy initialization
and test monkeypatch support.
"""

import os
from typing import TYPE_CHECKING, Optional

import boto3
from botocore.config import Config

if TYPE_CHECKING:
    from mypy_boto3_dynamodb import DynamoDBServiceResource
    from mypy_boto3_dynamodb.service_resource import Table


# Module-level cache for test overrides
_table_overrides: dict[str, Optional["Table"]] = {}

# Store errors are surfaced to the caller, never retried here
_NO_RETRY_CONFIG = Config(retries={"total_max_attempts": 1, "mode": "standard"})


def get_required_env(name: str, default: Optional[str] = None) -> str:
    """Get a required environment variable.

    In Lambda/production, the env var must be set. For tests, a default can be
    provided to allow the code to run in mocked environments.

    Args:
        name: Environment variable name
        default: Optional default for test environments

    Returns:
        The environment variable value

    Raises:
        ValueError: If the env var is not set and no default is provided
    """
    value = os.getenv(name, default)
    if value is None:
        raise ValueError(f"Required environment variable '{name}' is not set")
    return value


def _get_dynamodb() -> "DynamoDBServiceResource":
    """Get DynamoDB resource with optional endpoint override for LocalStack."""
    return boto3.resource(
        "dynamodb", endpoint_url=os.getenv("DYNAMODB_ENDPOINT"), config=_NO_RETRY_CONFIG
    )


class TableAccessor:
    """Centralized access to DynamoDB tables with environment-based naming."""

    _instance: Optional["TableAccessor"] = None

    def __new__(cls) -> "TableAccessor":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def table(self, entity: str) -> "Table":
        """
        Get the table holding an entity.

        ``<ENTITY>_TABLE_NAME`` wins over the shared ``TABLE_NAME`` so a
        single entity can be moved to its own table.
        """
        if override := _table_overrides.get(entity):
            return override
        if shared := _table_overrides.get("entities"):
            return shared
        table_name = os.getenv(f"{entity.upper()}_TABLE_NAME") or get_required_env("TABLE_NAME")
        return _get_dynamodb().Table(table_name)


# Singleton instance for import
tables = TableAccessor()


# Test utilities
def override_table(table_name: str, table: Optional["Table"]) -> None:
    """Override a table for testing. Set to None to clear override."""
    _table_overrides[table_name] = table


def clear_all_overrides() -> None:
    """Clear all table overrides (call in test teardown)."""
    _table_overrides.clear()


def reset_singleton() -> None:
    """Reset the singleton instance (for testing isolation)."""
    TableAccessor._instance = None
