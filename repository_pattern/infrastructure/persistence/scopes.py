"""Reusable query scopes.

A scope is any callable taking a Query and returning a Query.  Scopes are
applied by the repository immediately before a terminal operation runs.
"""

from __future__ import annotations

from collections.abc import Callable
from functools import reduce
from typing import Any

from .query import Query

QueryScope = Callable[[Query[Any]], Query[Any]]


def compose(*scopes: QueryScope) -> QueryScope:
    """Combine scopes into one that applies them left to right."""

    def composed(query: Query[Any]) -> Query[Any]:
        return reduce(lambda acc, scope: scope(acc), scopes, query)

    return composed


def where_equals(**criteria: Any) -> QueryScope:
    def scope(query: Query[Any]) -> Query[Any]:
        for column, value in criteria.items():
            query = query.where(column, "=", value)
        return query

    return scope


def ordered_by(column: str, direction: str = "asc") -> QueryScope:
    def scope(query: Query[Any]) -> Query[Any]:
        return query.order_by(column, direction)

    return scope
