"""Generic repository pattern over SQLAlchemy's async ORM.

Application code depends on RepositoryInterface; SqlRepository implements it
for any model mapped on repository_pattern.infrastructure.database.Base.
"""

from repository_pattern.domain.errors import ConfigurationError, NotFoundError, RepositoryError
from repository_pattern.domain.models import Page
from repository_pattern.domain.repositories import RepositoryInterface
from repository_pattern.infrastructure.database import Base
from repository_pattern.infrastructure.persistence import (
    ModelProvider,
    Query,
    SqlRepository,
    compose,
    ordered_by,
    repository_for,
    where_equals,
)

__all__ = [
    "Base",
    "ConfigurationError",
    "ModelProvider",
    "NotFoundError",
    "Page",
    "Query",
    "RepositoryError",
    "RepositoryInterface",
    "SqlRepository",
    "compose",
    "ordered_by",
    "repository_for",
    "where_equals",
]
