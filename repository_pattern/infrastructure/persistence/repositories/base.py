"""SQLAlchemy implementation of RepositoryInterface.

SqlRepository holds two pieces of state between calls:
  - _query: the pending Query (immutable; replaced by every chainable call).
  - _scope: an optional Query -> Query function applied before execution.

Terminal operations run inside _terminal(), which applies the scope, hands
back the query to execute and, whether the operation succeeds or raises,
installs a fresh query from the ModelProvider.  Collection reads and
aggregates also clear the scope; single-entity reads and mutations keep it.

The repository flushes but never commits: the transaction boundary belongs
to whoever owns the AsyncSession.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Iterator, Mapping, Sequence
from contextlib import contextmanager
from typing import Any, Generic, TypeVar

from sqlalchemy import delete as sql_delete
from sqlalchemy import inspect as sa_inspect
from sqlalchemy import update as sql_update
from sqlalchemy.ext.asyncio import AsyncSession

from repository_pattern.domain.errors import ConfigurationError, NotFoundError
from repository_pattern.domain.models.page import Page
from repository_pattern.domain.repositories.base import ALL_COLUMNS, Columns, RepositoryInterface
from repository_pattern.infrastructure.database import Base, settings
from repository_pattern.infrastructure.persistence import relations as relation_loading
from repository_pattern.infrastructure.persistence.model_provider import ModelProvider
from repository_pattern.infrastructure.persistence.query import Query
from repository_pattern.infrastructure.persistence.scopes import QueryScope

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class SqlRepository(RepositoryInterface[ModelT], Generic[ModelT]):
    """Generic repository over one mapped model.

    Subclasses declare the model as a class attribute:

        class OrderRepository(SqlRepository[Order]):
            model = Order          # or "Order", or "app.models:Order"

    or pass it to the constructor: SqlRepository(session, model=Order).
    """

    model: type[Any] | str | None = None
    per_page: int = settings.repository_per_page

    def __init__(
        self,
        session: AsyncSession,
        model: type[ModelT] | str | None = None,
        provider: ModelProvider[ModelT] | None = None,
    ) -> None:
        self._session = session
        self._provider = provider if provider is not None else ModelProvider()
        self._identifier = model if model is not None else type(self).model
        if self._identifier is None:
            raise ConfigurationError(f"{type(self).__name__} does not declare a model")
        self._scope: QueryScope | None = None
        self._query: Query[ModelT] = self._provider.new_query(self._identifier)

    @property
    def session(self) -> AsyncSession:
        return self._session

    @property
    def query(self) -> Query[ModelT]:
        """The pending query, before scope application."""
        return self._query

    # --- model lifecycle and scopes ---

    def get_model(self) -> type[ModelT]:
        return self._query.model

    def reset_model(self) -> None:
        self._query = self._provider.new_query(self._identifier)
        logger.debug("Reset pending query for %s", self._query.model.__name__)

    def scope_query(self, scope: QueryScope) -> SqlRepository[ModelT]:
        self._scope = scope
        return self

    def reset_scope(self) -> SqlRepository[ModelT]:
        self._scope = None
        return self

    def _apply_scope(self) -> SqlRepository[ModelT]:
        if self._scope is not None:
            self._query = self._scope(self._query)
            logger.debug("Applied scope to %s query", self._query.model.__name__)
        return self

    @contextmanager
    def _terminal(self, *, clear_scope: bool) -> Iterator[Query[ModelT]]:
        try:
            self._apply_scope()
            yield self._query
        finally:
            self.reset_model()
            if clear_scope:
                self.reset_scope()

    def _shape(self, query: Query[ModelT]) -> SqlRepository[ModelT]:
        self._query = query
        return self

    # --- execution helpers ---

    async def _fetch(
        self, query: Query[ModelT], columns: Columns | None = ALL_COLUMNS
    ) -> list[ModelT]:
        result = await self._session.execute(query.select_statement(columns))
        labels = [label for label, _ in query.counts]
        if labels:
            rows = [(entity, dict(zip(labels, values))) for entity, *values in result.all()]
        else:
            rows = [(entity, {}) for entity in result.scalars().all()]
        entities = [entity.attach_counts(counts) for entity, counts in rows]
        return query.apply_visibility(entities)

    async def _fetch_first(
        self, query: Query[ModelT], columns: Columns | None = ALL_COLUMNS
    ) -> ModelT | None:
        entities = await self._fetch(query.take(1), columns)
        return entities[0] if entities else None

    def _check_attributes(self, model: type[Any], values: Mapping[str, Any]) -> None:
        attrs = sa_inspect(model).attrs
        for key in values:
            if key not in attrs:
                raise TypeError(f"{key!r} is an invalid keyword argument for {model.__name__}")

    async def _insert(self, model: type[ModelT], attributes: Mapping[str, Any]) -> ModelT:
        entity = model(**attributes)
        self._session.add(entity)
        await self._session.flush()
        await self._session.refresh(entity)
        return entity

    async def _assign(self, entity: ModelT, values: Mapping[str, Any]) -> ModelT:
        self._check_attributes(type(entity), values)
        for key, value in values.items():
            setattr(entity, key, value)
        await self._session.flush()
        return entity

    @staticmethod
    def _key_criteria(entity: Any) -> list[Any]:
        mapper = sa_inspect(type(entity))
        identity = mapper.primary_key_from_instance(entity)
        return [
            mapper.get_property_by_column(column).class_attribute == value
            for column, value in zip(mapper.primary_key, identity)
        ]

    # --- mutations ---

    async def create(self, attributes: Mapping[str, Any]) -> ModelT:
        with self._terminal(clear_scope=False) as query:
            return await self._insert(query.model, attributes)

    async def update(self, entity: ModelT, values: Mapping[str, Any]) -> ModelT:
        with self._terminal(clear_scope=False):
            return await self._assign(entity, values)

    async def update_quietly(self, entity: ModelT, values: Mapping[str, Any]) -> ModelT:
        """Write values with a bulk UPDATE by primary key.

        Mapper events (before_update / after_update) do not fire and the
        change is not recorded as unit-of-work history.  The in-session entity
        is synchronised with the new values.
        """
        model = type(entity)
        self._check_attributes(model, values)
        with self._terminal(clear_scope=False):
            if values:
                stmt = sql_update(model).where(*self._key_criteria(entity)).values(**values)
                await self._session.execute(stmt)
            return entity

    async def update_or_create(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> ModelT:
        values = dict(values or {})
        with self._terminal(clear_scope=False) as query:
            entity = await self._fetch_first(_matching(query, attributes))
            if entity is not None:
                return await self._assign(entity, values)
            return await self._insert(query.model, {**attributes, **values})

    async def delete(self, entity: ModelT) -> bool:
        with self._terminal(clear_scope=False):
            await self._session.delete(entity)
            await self._session.flush()
            return True

    async def destroy(self, ids: Any) -> int:
        idents = list(ids) if isinstance(ids, (list, set, frozenset)) else [ids]
        with self._terminal(clear_scope=False):
            if not idents:
                return 0
            query = self._provider.new_query(self._identifier).where_key_in(idents)
            entities = (await self._session.scalars(query.select_statement())).all()
            for entity in entities:
                await self._session.delete(entity)
            await self._session.flush()
            return len(entities)

    async def force_delete(self, entity: ModelT) -> bool:
        """Delete the entity's row with a bulk DELETE, bypassing ORM events and cascades."""
        with self._terminal(clear_scope=False):
            stmt = sql_delete(type(entity)).where(*self._key_criteria(entity))
            result = await self._session.execute(stmt)
            return bool(result.rowcount)

    # --- single-entity reads ---

    async def find(self, id: Any, columns: Columns = ALL_COLUMNS) -> ModelT | None:
        with self._terminal(clear_scope=False) as query:
            return await self._fetch_first(query.where_key(id), columns)

    async def find_or_fail(self, id: Any, columns: Columns = ALL_COLUMNS) -> ModelT:
        with self._terminal(clear_scope=False) as query:
            entity = await self._fetch_first(query.where_key(id), columns)
            if entity is None:
                raise NotFoundError(query.model, [id])
            return entity

    async def first_where(self, field: str, value: Any = None) -> ModelT | None:
        with self._terminal(clear_scope=False) as query:
            return await self._fetch_first(query.where(field, "=", value))

    async def first(self, columns: Columns = ALL_COLUMNS) -> ModelT | None:
        with self._terminal(clear_scope=False) as query:
            return await self._fetch_first(query, columns)

    async def first_or_new(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> ModelT:
        with self._terminal(clear_scope=False) as query:
            entity = await self._fetch_first(_matching(query, attributes))
            if entity is None:
                entity = query.model(**{**attributes, **(values or {})})
            return entity

    async def first_or_create(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> ModelT:
        with self._terminal(clear_scope=False) as query:
            entity = await self._fetch_first(_matching(query, attributes))
            if entity is None:
                entity = await self._insert(query.model, {**attributes, **(values or {})})
            return entity

    # --- collection reads ---

    async def find_by_field(
        self, field: str, value: Any = None, columns: Columns = ALL_COLUMNS
    ) -> list[ModelT]:
        with self._terminal(clear_scope=True) as query:
            return await self._fetch(query.where(field, "=", value), columns)

    async def find_where_not_in(
        self, field: str, values: Iterable[Any], columns: Columns = ALL_COLUMNS
    ) -> list[ModelT]:
        with self._terminal(clear_scope=True) as query:
            return await self._fetch(query.where_not_in(field, values), columns)

    async def find_where_between(
        self, field: str, values: Sequence[Any], columns: Columns = ALL_COLUMNS
    ) -> list[ModelT]:
        with self._terminal(clear_scope=True) as query:
            return await self._fetch(query.where_between(field, values), columns)

    async def all(self, columns: Columns = ALL_COLUMNS) -> list[ModelT]:
        return await self.get(columns)

    async def get(self, columns: Columns = ALL_COLUMNS) -> list[ModelT]:
        with self._terminal(clear_scope=True) as query:
            return await self._fetch(query, columns)

    async def paginate(
        self,
        per_page: int | None = None,
        columns: Columns = ALL_COLUMNS,
        page_name: str = "page",
        page: int | None = None,
    ) -> Page[ModelT]:
        per_page = self.per_page if per_page is None else per_page
        page = 1 if page is None else page
        if per_page < 1:
            raise ValueError(f"per_page must be at least 1, got {per_page}")
        if page < 1:
            raise ValueError(f"page must be at least 1, got {page}")
        with self._terminal(clear_scope=True) as query:
            total = await self._session.scalar(query.count_statement()) or 0
            items = await self._fetch(query.take(per_page).skip((page - 1) * per_page), columns)
        return Page(
            items=items,
            total=total,
            per_page=per_page,
            current_page=page,
            page_name=page_name,
        )

    async def limit(self, limit: int, columns: Columns = ALL_COLUMNS) -> list[ModelT]:
        self.take(limit)
        return await self.all(columns)

    # --- query shaping ---

    def order_by(self, column: Any, direction: str = "asc") -> SqlRepository[ModelT]:
        return self._shape(self._query.order_by(column, direction))

    def order_by_desc(self, column: Any) -> SqlRepository[ModelT]:
        return self._shape(self._query.order_by_desc(column))

    def where(self, column: Any, operator: Any = "=", value: Any = None) -> SqlRepository[ModelT]:
        return self._shape(self._query.where(column, operator, value))

    def where_has(
        self, relation: str, constraint: Callable[[Any], Any] | None = None
    ) -> SqlRepository[ModelT]:
        return self._shape(self._query.where_has(relation, constraint))

    def where_null(self, column: Any) -> SqlRepository[ModelT]:
        return self._shape(self._query.where_null(column))

    def where_between(self, column: Any, values: Sequence[Any]) -> SqlRepository[ModelT]:
        return self._shape(self._query.where_between(column, values))

    def with_(self, *relations: Any) -> SqlRepository[ModelT]:
        return self._shape(self._query.with_(*relations))

    def with_count(self, *relations: Any) -> SqlRepository[ModelT]:
        return self._shape(self._query.with_count(*relations))

    def has(self, relation: str) -> SqlRepository[ModelT]:
        return self._shape(self._query.has(relation))

    def take(self, limit: int) -> SqlRepository[ModelT]:
        return self._shape(self._query.take(limit))

    def hidden(self, fields: Iterable[str]) -> SqlRepository[ModelT]:
        return self._shape(self._query.hide(fields))

    def visible(self, fields: Iterable[str]) -> SqlRepository[ModelT]:
        return self._shape(self._query.show(fields))

    # --- aggregates ---

    async def count(self, column: Any = "*") -> int:
        with self._terminal(clear_scope=True) as query:
            return await self._session.scalar(query.count_statement(column)) or 0

    async def _aggregate(self, function: str, column: Any) -> Any:
        with self._terminal(clear_scope=True) as query:
            return await self._session.scalar(query.aggregate_statement(function, column))

    async def min(self, column: Any) -> Any:
        return await self._aggregate("min", column)

    async def max(self, column: Any) -> Any:
        return await self._aggregate("max", column)

    async def sum(self, column: Any) -> Any:
        result = await self._aggregate("sum", column)
        return 0 if result is None else result

    async def avg(self, column: Any) -> Any:
        return await self._aggregate("avg", column)

    async def average(self, column: Any) -> Any:
        return await self.avg(column)

    async def where_count(self, field: str, value: Any) -> int:
        with self._terminal(clear_scope=True) as query:
            stmt = query.where(field, "=", value).count_statement()
            return await self._session.scalar(stmt) or 0

    async def pluck(self, value: Any, key: Any = None) -> list[Any] | dict[Any, Any]:
        with self._terminal(clear_scope=True) as query:
            rows = (await self._session.execute(query.pluck_statement(value, key))).all()
        if key is None:
            return [row[0] for row in rows]
        return {row[1]: row[0] for row in rows}

    # --- relation loading ---

    async def load(self, entities: Any, *relations: str) -> Any:
        await relation_loading.load_relations(
            self._session, _entities(entities), relation_loading.as_names(relations)
        )
        return entities

    async def load_missing(self, entities: Any, *relations: str) -> Any:
        await relation_loading.load_relations(
            self._session,
            _entities(entities),
            relation_loading.as_names(relations),
            missing_only=True,
        )
        return entities

    async def load_morph(self, entities: Any, relation: str, relations: Mapping[Any, Any]) -> Any:
        targets = await relation_loading.morph_targets(
            self._session, _entities(entities), relation, relations
        )
        for target, names in targets:
            await relation_loading.load_relations(self._session, [target], names)
        return entities

    async def load_aggregate(
        self, entities: Any, relations: Any, column: str, function: str | None = None
    ) -> Any:
        await relation_loading.load_aggregates(
            self._session,
            _entities(entities),
            relation_loading.as_names(relations),
            column,
            function,
        )
        return entities

    async def _load_terminal_aggregate(
        self, entities: Any, relations: Any, column: str | None, function: str
    ) -> Any:
        with self._terminal(clear_scope=True):
            await relation_loading.load_aggregates(
                self._session,
                _entities(entities),
                relation_loading.as_names(relations),
                column,
                function,
            )
        return entities

    async def load_count(self, entities: Any, *relations: str) -> Any:
        return await self._load_terminal_aggregate(entities, relations, None, "count")

    async def load_max(self, entities: Any, relations: Any, column: str) -> Any:
        return await self._load_terminal_aggregate(entities, relations, column, "max")

    async def load_min(self, entities: Any, relations: Any, column: str) -> Any:
        return await self._load_terminal_aggregate(entities, relations, column, "min")

    async def load_sum(self, entities: Any, relations: Any, column: str) -> Any:
        return await self._load_terminal_aggregate(entities, relations, column, "sum")

    async def load_avg(self, entities: Any, relations: Any, column: str) -> Any:
        return await self._load_terminal_aggregate(entities, relations, column, "avg")

    async def load_exists(self, entities: Any, *relations: str) -> Any:
        return await self._load_terminal_aggregate(entities, relations, None, "exists")

    async def load_morph_aggregate(
        self,
        entities: Any,
        relation: str,
        relations: Mapping[Any, Any],
        column: str | None,
        function: str | None = None,
    ) -> Any:
        targets = await relation_loading.morph_targets(
            self._session, _entities(entities), relation, relations
        )
        for target, names in targets:
            await relation_loading.load_aggregates(self._session, [target], names, column, function)
        return entities

    async def load_morph_count(
        self, entities: Any, relation: str, relations: Mapping[Any, Any]
    ) -> Any:
        return await self.load_morph_aggregate(entities, relation, relations, None, "count")

    async def load_morph_max(
        self, entities: Any, relation: str, relations: Mapping[Any, Any], column: str
    ) -> Any:
        return await self.load_morph_aggregate(entities, relation, relations, column, "max")

    async def load_morph_min(
        self, entities: Any, relation: str, relations: Mapping[Any, Any], column: str
    ) -> Any:
        return await self.load_morph_aggregate(entities, relation, relations, column, "min")

    async def load_morph_sum(
        self, entities: Any, relation: str, relations: Mapping[Any, Any], column: str
    ) -> Any:
        return await self.load_morph_aggregate(entities, relation, relations, column, "sum")

    async def load_morph_avg(
        self, entities: Any, relation: str, relations: Mapping[Any, Any], column: str
    ) -> Any:
        return await self.load_morph_aggregate(entities, relation, relations, column, "avg")


def _entities(entities: Any) -> list[Any]:
    return relation_loading.as_entities(entities)


def _matching(query: Query[Any], attributes: Mapping[str, Any]) -> Query[Any]:
    for column, value in attributes.items():
        query = query.where(column, "=", value)
    return query
