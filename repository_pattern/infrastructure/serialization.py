"""Attribute visibility and dict serialization for mapped models.

SerializableMixin gives every model a to_dict() honouring two sets:
  - hidden:  attribute names excluded from the output.
  - visible: when non-empty, the only attribute names allowed in the output.

Class-level defaults are declared with __hidden__ / __visible__; per-instance
overrides are set by the repository's hidden() / visible() operations.
Only attributes that are already loaded are serialized, so to_dict() never
triggers lazy IO on an async session.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Any, ClassVar

from sqlalchemy import inspect as sa_inspect


class SerializableMixin:
    __hidden__: ClassVar[frozenset[str]] = frozenset()
    __visible__: ClassVar[frozenset[str]] = frozenset()

    def get_hidden(self) -> frozenset[str]:
        return self.__dict__.get("_hidden", frozenset(type(self).__hidden__))

    def get_visible(self) -> frozenset[str]:
        return self.__dict__.get("_visible", frozenset(type(self).__visible__))

    def set_hidden(self, fields: Iterable[str]) -> SerializableMixin:
        self._hidden = frozenset(fields)
        return self

    def set_visible(self, fields: Iterable[str]) -> SerializableMixin:
        self._visible = frozenset(fields)
        return self

    def reset_visibility(self) -> SerializableMixin:
        """Drop per-instance overrides so the class defaults apply again."""
        self.__dict__.pop("_hidden", None)
        self.__dict__.pop("_visible", None)
        return self

    def attach_counts(self, counts: Mapping[str, Any]) -> SerializableMixin:
        """Replace the counts attached by the previous with_count() read."""
        for key in self.__dict__.pop("_counts", ()):
            self.__dict__.pop(key, None)
        for key, value in counts.items():
            setattr(self, key, value)
        self._counts = tuple(counts)
        return self

    def is_visible(self, key: str) -> bool:
        visible = self.get_visible()
        if visible and key not in visible:
            return False
        return key not in self.get_hidden()

    def to_dict(self) -> dict[str, Any]:
        """Serialize loaded columns, loaded relations and aggregate attributes."""
        return self._serialize(frozenset())

    def _serialize(self, seen: frozenset[int]) -> dict[str, Any]:
        seen = seen | {id(self)}
        state = sa_inspect(self)
        mapper = state.mapper
        unloaded = state.unloaded
        data: dict[str, Any] = {}

        for attr in mapper.column_attrs:
            if attr.key not in unloaded:
                data[attr.key] = getattr(self, attr.key)

        for rel in mapper.relationships:
            if rel.key in unloaded:
                continue
            value = getattr(self, rel.key)
            if value is None:
                data[rel.key] = None
            elif rel.uselist:
                data[rel.key] = [
                    _serialize_related(item, seen) for item in value if id(item) not in seen
                ]
            elif id(value) not in seen:
                data[rel.key] = _serialize_related(value, seen)

        # Aggregates attached by with_count() / load_count() and friends.
        for key, value in vars(self).items():
            if not key.startswith("_") and key not in mapper.attrs and key not in data:
                data[key] = value

        return {key: value for key, value in data.items() if self.is_visible(key)}


def _serialize_related(value: Any, seen: frozenset[int]) -> Any:
    if isinstance(value, SerializableMixin):
        return value._serialize(seen)
    return value
