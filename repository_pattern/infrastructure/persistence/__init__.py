"""Persistence package.

Exports the query descriptor, the model provider, reusable scopes and the
SQLAlchemy repository implementation.
"""

from repository_pattern.infrastructure.persistence.model_provider import ModelProvider
from repository_pattern.infrastructure.persistence.query import ALL_COLUMNS, Query
from repository_pattern.infrastructure.persistence.scopes import (
    QueryScope,
    compose,
    ordered_by,
    where_equals,
)
from repository_pattern.infrastructure.persistence.repositories import (
    SqlRepository,
    repository_for,
)

__all__ = [
    "ALL_COLUMNS",
    "ModelProvider",
    "Query",
    "QueryScope",
    "SqlRepository",
    "compose",
    "ordered_by",
    "repository_for",
    "where_equals",
]
