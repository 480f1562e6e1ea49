"""Generic repository interface.

RepositoryInterface[T] is the contract application code depends on.  The
SQLAlchemy implementation lives in repository_pattern/infrastructure/persistence/
and is wired at the application boundary; tests can substitute a fake.

Design notes:
  - All store-touching methods are async to accommodate async drivers.
  - Chainable methods (where, order_by, with_, take, hidden, ...) return the
    repository and never execute anything.  Terminal methods execute the
    pending query and reset it.
  - A scope is a function from query to query, applied immediately before a
    terminal operation executes.  It is cleared after collection reads and
    aggregates, and kept after single-entity reads and mutations.
  - Relation-loading methods take already-fetched entities and return them.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Iterable, Mapping, Sequence
from typing import Any, Generic, TypeVar

from repository_pattern.domain.models.page import Page

T = TypeVar("T")

Scope = Callable[[Any], Any]
Columns = Sequence[Any]
Entities = Any  # a single entity or a sequence of entities

ALL_COLUMNS: tuple[str, ...] = ("*",)


class RepositoryInterface(ABC, Generic[T]):
    """Query, mutation and aggregation surface over a single model type."""

    # --- model lifecycle and scopes ---

    @abstractmethod
    def get_model(self) -> type[T]:
        """Return the model class this repository wraps."""

    @abstractmethod
    def reset_model(self) -> None:
        """Discard any pending query state and start from a fresh query."""

    @abstractmethod
    def scope_query(self, scope: Scope) -> RepositoryInterface[T]:
        """Store a scope to apply before the next terminal operation."""

    @abstractmethod
    def reset_scope(self) -> RepositoryInterface[T]:
        """Clear the pending scope."""

    # --- mutations ---

    @abstractmethod
    async def create(self, attributes: Mapping[str, Any]) -> T:
        """Insert a new entity and return it with generated fields populated."""

    @abstractmethod
    async def update(self, entity: T, values: Mapping[str, Any]) -> T:
        """Assign values to entity and persist them."""

    @abstractmethod
    async def update_quietly(self, entity: T, values: Mapping[str, Any]) -> T:
        """Persist values without firing model events."""

    @abstractmethod
    async def update_or_create(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> T:
        """Update the first entity matching attributes, or create one."""

    @abstractmethod
    async def delete(self, entity: T) -> bool:
        """Delete entity through the ORM."""

    @abstractmethod
    async def destroy(self, ids: Any) -> int:
        """Delete the entities with the given primary key(s); return how many."""

    @abstractmethod
    async def force_delete(self, entity: T) -> bool:
        """Delete entity's row directly, bypassing ORM events and cascades."""

    # --- single-entity reads ---

    @abstractmethod
    async def find(self, id: Any, columns: Columns = ALL_COLUMNS) -> T | None:
        """Return the entity with the given primary key, or None."""

    @abstractmethod
    async def find_or_fail(self, id: Any, columns: Columns = ALL_COLUMNS) -> T:
        """Return the entity with the given primary key or raise NotFoundError."""

    @abstractmethod
    async def first_where(self, field: str, value: Any = None) -> T | None:
        """Return the first entity whose field equals value."""

    @abstractmethod
    async def first(self, columns: Columns = ALL_COLUMNS) -> T | None:
        """Return the first entity of the pending query."""

    @abstractmethod
    async def first_or_new(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> T:
        """Return the first match, or a new unsaved entity."""

    @abstractmethod
    async def first_or_create(
        self, attributes: Mapping[str, Any], values: Mapping[str, Any] | None = None
    ) -> T:
        """Return the first match, or create and return a new entity."""

    # --- collection reads ---

    @abstractmethod
    async def find_by_field(
        self, field: str, value: Any = None, columns: Columns = ALL_COLUMNS
    ) -> list[T]:
        """Return every entity whose field equals value."""

    @abstractmethod
    async def find_where_not_in(
        self, field: str, values: Iterable[Any], columns: Columns = ALL_COLUMNS
    ) -> list[T]:
        """Return every entity whose field is not one of values."""

    @abstractmethod
    async def find_where_between(
        self, field: str, values: Sequence[Any], columns: Columns = ALL_COLUMNS
    ) -> list[T]:
        """Return every entity whose field lies in the inclusive (low, high) range."""

    @abstractmethod
    async def all(self, columns: Columns = ALL_COLUMNS) -> list[T]:
        """Execute the pending query and return every result."""

    @abstractmethod
    async def get(self, columns: Columns = ALL_COLUMNS) -> list[T]:
        """Execute the pending query and return every result."""

    @abstractmethod
    async def paginate(
        self,
        per_page: int | None = None,
        columns: Columns = ALL_COLUMNS,
        page_name: str = "page",
        page: int | None = None,
    ) -> Page[T]:
        """Return one page of results together with the total row count."""

    @abstractmethod
    async def limit(self, limit: int, columns: Columns = ALL_COLUMNS) -> list[T]:
        """Take at most limit rows and execute the query."""

    # --- query shaping ---

    @abstractmethod
    def order_by(self, column: Any, direction: str = "asc") -> RepositoryInterface[T]:
        """Add an ORDER BY clause."""

    @abstractmethod
    def order_by_desc(self, column: Any) -> RepositoryInterface[T]:
        """Add a descending ORDER BY clause."""

    @abstractmethod
    def where(self, column: Any, operator: Any = "=", value: Any = None) -> RepositoryInterface[T]:
        """Add a comparison filter; the two-argument form means equality."""

    @abstractmethod
    def where_has(
        self, relation: str, constraint: Callable[[Any], Any] | None = None
    ) -> RepositoryInterface[T]:
        """Keep entities with at least one related row matching constraint."""

    @abstractmethod
    def where_null(self, column: Any) -> RepositoryInterface[T]:
        """Keep entities whose column is NULL."""

    @abstractmethod
    def where_between(self, column: Any, values: Sequence[Any]) -> RepositoryInterface[T]:
        """Keep entities whose column lies in the inclusive (low, high) range."""

    @abstractmethod
    def with_(self, *relations: str) -> RepositoryInterface[T]:
        """Eager-load relations (dotted paths load nested relations)."""

    @abstractmethod
    def with_count(self, *relations: str) -> RepositoryInterface[T]:
        """Attach a <relation>_count attribute to every result."""

    @abstractmethod
    def has(self, relation: str) -> RepositoryInterface[T]:
        """Keep entities with at least one related row."""

    @abstractmethod
    def take(self, limit: int) -> RepositoryInterface[T]:
        """Limit the number of rows the pending query returns."""

    @abstractmethod
    def hidden(self, fields: Iterable[str]) -> RepositoryInterface[T]:
        """Exclude fields from the serialized form of the next results."""

    @abstractmethod
    def visible(self, fields: Iterable[str]) -> RepositoryInterface[T]:
        """Restrict the serialized form of the next results to fields."""

    # --- aggregates ---

    @abstractmethod
    async def count(self, column: Any = "*") -> int:
        """Count matching rows (or non-null values of column)."""

    @abstractmethod
    async def min(self, column: Any) -> Any:
        """Smallest value of column."""

    @abstractmethod
    async def max(self, column: Any) -> Any:
        """Largest value of column."""

    @abstractmethod
    async def sum(self, column: Any) -> Any:
        """Sum of column; 0 when nothing matches."""

    @abstractmethod
    async def avg(self, column: Any) -> Any:
        """Average of column."""

    @abstractmethod
    async def average(self, column: Any) -> Any:
        """Alias of avg()."""

    @abstractmethod
    async def where_count(self, field: str, value: Any) -> int:
        """Count rows whose field equals value."""

    @abstractmethod
    async def pluck(self, value: Any, key: Any = None) -> list[Any] | dict[Any, Any]:
        """Return one column's values, or a key -> value mapping."""

    # --- relation loading ---

    @abstractmethod
    async def load(self, entities: Entities, *relations: str) -> Entities:
        """Load relations onto already-fetched entities."""

    @abstractmethod
    async def load_missing(self, entities: Entities, *relations: str) -> Entities:
        """Load only the relations that are not loaded yet."""

    @abstractmethod
    async def load_morph(
        self, entities: Entities, relation: str, relations: Mapping[Any, Any]
    ) -> Entities:
        """Load relation, then per-type nested relations on its polymorphic targets."""

    @abstractmethod
    async def load_aggregate(
        self, entities: Entities, relations: Any, column: str, function: str | None = None
    ) -> Entities:
        """Attach an aggregate of a related column to the entities."""

    @abstractmethod
    async def load_count(self, entities: Entities, *relations: str) -> Entities:
        """Attach <relation>_count attributes."""

    @abstractmethod
    async def load_max(self, entities: Entities, relations: Any, column: str) -> Entities:
        """Attach <relation>_max_<column> attributes."""

    @abstractmethod
    async def load_min(self, entities: Entities, relations: Any, column: str) -> Entities:
        """Attach <relation>_min_<column> attributes."""

    @abstractmethod
    async def load_sum(self, entities: Entities, relations: Any, column: str) -> Entities:
        """Attach <relation>_sum_<column> attributes."""

    @abstractmethod
    async def load_avg(self, entities: Entities, relations: Any, column: str) -> Entities:
        """Attach <relation>_avg_<column> attributes."""

    @abstractmethod
    async def load_exists(self, entities: Entities, *relations: str) -> Entities:
        """Attach <relation>_exists attributes."""

    @abstractmethod
    async def load_morph_aggregate(
        self,
        entities: Entities,
        relation: str,
        relations: Mapping[Any, Any],
        column: str,
        function: str | None = None,
    ) -> Entities:
        """Attach aggregates to the polymorphic targets of relation."""

    @abstractmethod
    async def load_morph_count(
        self, entities: Entities, relation: str, relations: Mapping[Any, Any]
    ) -> Entities:
        """Attach counts to the polymorphic targets of relation."""

    @abstractmethod
    async def load_morph_max(
        self, entities: Entities, relation: str, relations: Mapping[Any, Any], column: str
    ) -> Entities:
        """Attach maxima to the polymorphic targets of relation."""

    @abstractmethod
    async def load_morph_min(
        self, entities: Entities, relation: str, relations: Mapping[Any, Any], column: str
    ) -> Entities:
        """Attach minima to the polymorphic targets of relation."""

    @abstractmethod
    async def load_morph_sum(
        self, entities: Entities, relation: str, relations: Mapping[Any, Any], column: str
    ) -> Entities:
        """Attach sums to the polymorphic targets of relation."""

    @abstractmethod
    async def load_morph_avg(
        self, entities: Entities, relation: str, relations: Mapping[Any, Any], column: str
    ) -> Entities:
        """Attach averages to the polymorphic targets of relation."""
