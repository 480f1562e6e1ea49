"""Immutable query descriptor used as the repository's pending query.

A Query wraps a SQLAlchemy Select over one mapped model plus the pieces that
must only be attached when rows are actually loaded:
  - options: loader options (selectinload chains from with_()).
  - counts:  labelled correlated subqueries from with_count().
  - hidden / visible: visibility applied to returned entities.

Every shaping method returns a new Query (dataclasses.replace); nothing is
mutated in place, so a Query can be shared, stored as a scope input, or
discarded without affecting other holders.  Statements for rows, counts,
aggregates and plucks are built on demand by the *_statement() methods.
"""

from __future__ import annotations

import operator as op
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass, replace
from typing import Any, Generic, TypeVar

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import load_only

from repository_pattern.domain.repositories.base import ALL_COLUMNS

from .relations import (
    as_names,
    eager_load_option,
    model_attribute,
    related_count,
    relationship_property,
)

ModelT = TypeVar("ModelT")

_OPERATORS: dict[str, Callable[[Any, Any], Any]] = {
    "=": op.eq,
    "==": op.eq,
    "!=": op.ne,
    "<>": op.ne,
    "<": op.lt,
    "<=": op.le,
    ">": op.gt,
    ">=": op.ge,
    "like": lambda column, value: column.like(value),
    "not like": lambda column, value: column.not_like(value),
    "ilike": lambda column, value: column.ilike(value),
    "in": lambda column, value: column.in_(list(value)),
    "not in": lambda column, value: column.not_in(list(value)),
}

_SCALAR_AGGREGATES = frozenset({"min", "max", "sum", "avg"})


def is_operator(value: Any) -> bool:
    return isinstance(value, str) and value.lower() in _OPERATORS


def is_all_columns(columns: Sequence[Any] | None) -> bool:
    return columns is None or list(columns) in ([], ["*"])


@dataclass(frozen=True, eq=False)
class Query(Generic[ModelT]):
    model: type[ModelT]
    statement: Select[Any]
    options: tuple[Any, ...] = ()
    counts: tuple[tuple[str, Any], ...] = ()
    hidden: frozenset[str] | None = None
    visible: frozenset[str] | None = None

    @classmethod
    def for_model(cls, model: type[ModelT]) -> Query[ModelT]:
        return cls(model=model, statement=select(model))

    def column(self, column: Any) -> Any:
        """Resolve an attribute name to the model's ORM attribute; pass expressions through."""
        if isinstance(column, str):
            return model_attribute(self.model, column)
        return column

    # --- filters ---

    def filter(self, *criteria: Any) -> Query[ModelT]:
        return replace(self, statement=self.statement.where(*criteria))

    def where(self, column: Any, operator: Any = "=", value: Any = None) -> Query[ModelT]:
        # where("status", "paid") means where("status", "=", "paid")
        if value is None and not is_operator(operator):
            operator, value = "=", operator
        if not is_operator(operator):
            raise ValueError(f"Unsupported operator {operator!r}")
        compare = _OPERATORS[operator.lower()]
        return self.filter(compare(self.column(column), value))

    def where_in(self, column: Any, values: Iterable[Any]) -> Query[ModelT]:
        return self.filter(self.column(column).in_(list(values)))

    def where_not_in(self, column: Any, values: Iterable[Any]) -> Query[ModelT]:
        return self.filter(self.column(column).not_in(list(values)))

    def where_between(self, column: Any, values: Sequence[Any]) -> Query[ModelT]:
        if len(values) != 2:
            raise ValueError(f"where_between expects (low, high), got {values!r}")
        low, high = values
        return self.filter(self.column(column).between(low, high))

    def where_null(self, column: Any) -> Query[ModelT]:
        return self.filter(self.column(column).is_(None))

    def where_not_null(self, column: Any) -> Query[ModelT]:
        return self.filter(self.column(column).is_not(None))

    def where_has(
        self, relation: str, constraint: Callable[[Any], Any] | None = None
    ) -> Query[ModelT]:
        """Filter on related rows; constraint receives the related model class."""
        prop = relationship_property(self.model, relation)
        attr = getattr(self.model, relation)
        criterion = constraint(prop.mapper.class_) if constraint is not None else None
        return self.filter(attr.any(criterion) if prop.uselist else attr.has(criterion))

    def has(self, relation: str) -> Query[ModelT]:
        return self.where_has(relation)

    def where_key(self, ident: Any) -> Query[ModelT]:
        """Filter on the primary key; composite keys are given as tuples."""
        columns = self._primary_key()
        values = ident if isinstance(ident, tuple) else (ident,)
        if len(values) != len(columns):
            raise ValueError(
                f"{self.model.__name__} has a {len(columns)}-column primary key, got {ident!r}"
            )
        return self.filter(*(column == value for column, value in zip(columns, values)))

    def where_key_in(self, idents: Iterable[Any]) -> Query[ModelT]:
        columns = self._primary_key()
        idents = list(idents)
        if len(columns) == 1:
            return self.filter(columns[0].in_(idents))
        return self.filter(
            or_(*(and_(*(c == v for c, v in zip(columns, ident))) for ident in idents))
        )

    def _primary_key(self) -> tuple[Any, ...]:
        return tuple(sa_inspect(self.model).primary_key)

    # --- ordering and limits ---

    def order_by(self, column: Any, direction: str = "asc") -> Query[ModelT]:
        direction = direction.lower()
        if direction not in ("asc", "desc"):
            raise ValueError(f"Order direction must be 'asc' or 'desc', got {direction!r}")
        expr = self.column(column)
        expr = expr.desc() if direction == "desc" else expr.asc()
        return replace(self, statement=self.statement.order_by(expr))

    def order_by_desc(self, column: Any) -> Query[ModelT]:
        return self.order_by(column, "desc")

    def take(self, limit: int | None) -> Query[ModelT]:
        return replace(self, statement=self.statement.limit(limit))

    def skip(self, offset: int | None) -> Query[ModelT]:
        return replace(self, statement=self.statement.offset(offset))

    # --- eager loading and visibility ---

    def with_(self, *relations: Any) -> Query[ModelT]:
        options = tuple(eager_load_option(self.model, path) for path in as_names(relations))
        return replace(self, options=self.options + options)

    def with_count(self, *relations: Any) -> Query[ModelT]:
        counts = tuple(
            (f"{name}_count", related_count(self.model, name)) for name in as_names(relations)
        )
        return replace(self, counts=self.counts + counts)

    def hide(self, fields: Iterable[str]) -> Query[ModelT]:
        return replace(self, hidden=frozenset(fields))

    def show(self, fields: Iterable[str]) -> Query[ModelT]:
        return replace(self, visible=frozenset(fields))

    def apply_visibility(self, entities: list[ModelT]) -> list[ModelT]:
        for entity in entities:
            entity.reset_visibility()  # type: ignore[attr-defined]
            if self.hidden is not None:
                entity.set_hidden(self.hidden)  # type: ignore[attr-defined]
            if self.visible is not None:
                entity.set_visible(self.visible)  # type: ignore[attr-defined]
        return entities

    # --- statements ---

    def select_statement(self, columns: Sequence[Any] | None = ALL_COLUMNS) -> Select[Any]:
        """Statement returning entities (followed by with_count columns, if any)."""
        stmt = self.statement
        if self.counts:
            stmt = stmt.add_columns(*(expr.label(label) for label, expr in self.counts))
        options = list(self.options)
        if not is_all_columns(columns):
            options.append(load_only(*(self.column(c) for c in columns)))
        return stmt.options(*options) if options else stmt

    def _without_paging(self) -> Select[Any]:
        return self.statement.order_by(None).limit(None).offset(None)

    def count_statement(self, column: Any = "*") -> Select[Any]:
        if column == "*":
            return select(func.count()).select_from(self._without_paging().subquery())
        return self._without_paging().with_only_columns(
            func.count(self.column(column)), maintain_column_froms=True
        )

    def aggregate_statement(self, function: str, column: Any) -> Select[Any]:
        if function not in _SCALAR_AGGREGATES:
            raise ValueError(f"Unsupported aggregate function {function!r}")
        expr = getattr(func, function)(self.column(column))
        return self._without_paging().with_only_columns(expr, maintain_column_froms=True)

    def pluck_statement(self, value: Any, key: Any = None) -> Select[Any]:
        columns = [self.column(value)]
        if key is not None:
            columns.append(self.column(key))
        return self.statement.with_only_columns(*columns, maintain_column_froms=True)
