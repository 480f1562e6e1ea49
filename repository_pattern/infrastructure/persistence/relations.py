"""Relationship helpers shared by Query and SqlRepository.

Covers relationship lookup by name, eager-load options for dotted paths,
correlated count subqueries for with_count(), and loading relations or
relation aggregates onto entities that were already fetched.

Entity-level loading goes through AsyncSession.refresh() with explicit
attribute names, which loads lazy relationships without implicit IO.
Aggregates run one query per entity and relation and are stored on the
entity under predictable names (orders_count, orders_sum_total, ...).
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from sqlalchemy import func, select
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import RelationshipProperty, selectinload, with_parent

from repository_pattern.domain.models.page import Page

logger = logging.getLogger(__name__)

AGGREGATE_FUNCTIONS = frozenset({"count", "min", "max", "sum", "avg", "exists"})


def relationship_property(model: type[Any], name: str) -> RelationshipProperty[Any]:
    """Return the relationship called name on model, or raise AttributeError."""
    try:
        return sa_inspect(model).relationships[name]
    except KeyError:
        raise AttributeError(f"{model.__name__} has no relationship {name!r}") from None


def model_attribute(model: type[Any], name: str) -> Any:
    """Return the ORM attribute called name on model, or raise AttributeError."""
    if name not in sa_inspect(model).all_orm_descriptors.keys():
        raise AttributeError(f"{model.__name__} has no attribute {name!r}")
    return getattr(model, name)


def eager_load_option(model: type[Any], path: str) -> Any:
    """Build a selectinload() chain for a dotted relation path like 'orders.tags'."""
    option = None
    current = model
    for name in path.split("."):
        prop = relationship_property(current, name)
        attr = getattr(current, name)
        option = selectinload(attr) if option is None else option.selectinload(attr)
        current = prop.mapper.class_
    return option


def related_count(model: type[Any], name: str) -> Any:
    """Correlated scalar subquery counting the rows related to each parent."""
    prop = relationship_property(model, name)
    source = prop.secondary if prop.secondary is not None else prop.mapper.class_
    return select(func.count()).select_from(source).where(prop.primaryjoin).scalar_subquery()


def aggregate_alias(relation: str, function: str | None, column: str | None) -> str:
    if function is None:
        return f"{relation}_{column}"
    if column in (None, "*") or function in ("count", "exists"):
        return f"{relation}_{function}"
    return f"{relation}_{function}_{column}"


def as_entities(entities: Any) -> list[Any]:
    """Normalise a single entity, a sequence of entities or a Page to a list."""
    if entities is None:
        return []
    if isinstance(entities, Page):
        return list(entities.items)
    if isinstance(entities, (list, tuple, set, frozenset)):
        return list(entities)
    return [entities]


def as_names(relations: Any) -> list[str]:
    """Flatten a relation name or nested iterables of names to a list."""
    if isinstance(relations, str):
        return [relations]
    names: list[str] = []
    for relation in relations:
        names.extend(as_names(relation))
    return names


def related_objects(entity: Any, name: str) -> list[Any]:
    """Return the loaded value(s) of a relationship as a list."""
    value = getattr(entity, name)
    if value is None:
        return []
    if relationship_property(type(entity), name).uselist:
        return list(value)
    return [value]


async def load_relations(
    session: AsyncSession,
    entities: Sequence[Any],
    relations: Iterable[str],
    *,
    missing_only: bool = False,
) -> None:
    paths = [path.split(".") for path in relations]
    for entity in entities:
        for path in paths:
            await _load_path(session, entity, path, missing_only)


async def _load_path(
    session: AsyncSession, entity: Any, names: list[str], missing_only: bool
) -> None:
    name, rest = names[0], names[1:]
    relationship_property(type(entity), name)
    if not missing_only or name in sa_inspect(entity).unloaded:
        await session.refresh(entity, attribute_names=[name])
    if rest:
        for related in related_objects(entity, name):
            await _load_path(session, related, rest, missing_only)


async def load_aggregates(
    session: AsyncSession,
    entities: Sequence[Any],
    relations: Iterable[str],
    column: str | None,
    function: str | None,
) -> None:
    if function is not None and function not in AGGREGATE_FUNCTIONS:
        raise ValueError(f"Unsupported aggregate function {function!r}")
    names = list(relations)
    for entity in entities:
        for name in names:
            value = await _relation_aggregate(session, entity, name, column, function)
            setattr(entity, aggregate_alias(name, function, column), value)


async def _relation_aggregate(
    session: AsyncSession,
    entity: Any,
    name: str,
    column: str | None,
    function: str | None,
) -> Any:
    model = type(entity)
    target = relationship_property(model, name).mapper.class_
    criterion = with_parent(entity, getattr(model, name))

    if function == "exists":
        stmt = select(select(target).where(criterion).exists())
        return bool(await session.scalar(stmt))
    if function == "count":
        stmt = select(func.count()).select_from(target).where(criterion)
        return await session.scalar(stmt)
    if column is None:
        raise ValueError(f"Aggregate {function!r} requires a column")

    attr = model_attribute(target, column)
    if function is None:
        stmt = select(attr).where(criterion).limit(1)
    else:
        stmt = select(getattr(func, function)(attr)).where(criterion)
    return await session.scalar(stmt)


def relations_for_type(target: Any, relations_by_type: Mapping[Any, Any]) -> list[str]:
    """Collect the relations configured for target's class or any of its bases.

    Keys may be classes or class names.
    """
    class_names = {cls.__name__ for cls in type(target).__mro__}
    names: list[str] = []
    for key, relations in relations_by_type.items():
        if isinstance(key, type):
            matches = isinstance(target, key)
        else:
            matches = key in class_names
        if not matches:
            continue
        for name in as_names(relations):
            if name not in names:
                names.append(name)
    return names


async def morph_targets(
    session: AsyncSession,
    entities: Sequence[Any],
    relation: str,
    relations_by_type: Mapping[Any, Any],
) -> list[tuple[Any, list[str]]]:
    """Load relation on entities and pair each target with its configured relations."""
    await load_relations(session, entities, [relation], missing_only=True)
    pairs: list[tuple[Any, list[str]]] = []
    seen = 0
    for entity in entities:
        for target in related_objects(entity, relation):
            seen += 1
            names = relations_for_type(target, relations_by_type)
            if names:
                pairs.append((target, names))
    if seen and not pairs:
        logger.warning(
            "No %s targets matched the configured types %s",
            relation,
            [k if isinstance(k, str) else k.__name__ for k in relations_by_type],
        )
    return pairs
