"""Model Provider: resolves a model identifier to a mapped class.

An identifier may be:
  - a mapped class (Order),
  - a class name registered on the declarative base ("Order"),
  - an import path ("app.models:Order" or "app.models.Order").

The resolved class must be a mapped subclass of the configured base;
anything else raises ConfigurationError.  The provider keeps no state
between calls, so every new_query() starts from a clean select().
"""

from __future__ import annotations

import importlib
import logging
from typing import Any, Generic, TypeVar

from sqlalchemy import inspect as sa_inspect

from repository_pattern.domain.errors import ConfigurationError
from repository_pattern.infrastructure.database import Base

from .query import Query

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)


class ModelProvider(Generic[ModelT]):
    def __init__(self, base: type[Any] = Base) -> None:
        self._base = base

    @property
    def base(self) -> type[Any]:
        return self._base

    def resolve(self, identifier: type[ModelT] | str) -> type[ModelT]:
        model = self._locate(identifier) if isinstance(identifier, str) else identifier
        if not isinstance(model, type) or not issubclass(model, self._base):
            raise ConfigurationError(
                f"{_describe(identifier)} must be a subclass of "
                f"{self._base.__module__}.{self._base.__qualname__}"
            )
        if sa_inspect(model, raiseerr=False) is None:
            raise ConfigurationError(f"{_describe(identifier)} is not a mapped model")
        logger.debug("Resolved model %s to %s", _describe(identifier), model.__qualname__)
        return model

    def new_query(self, identifier: type[ModelT] | str) -> Query[ModelT]:
        return Query.for_model(self.resolve(identifier))

    def _locate(self, name: str) -> Any:
        if ":" in name or "." in name:
            return _import_path(name)
        matches = [
            mapper.class_
            for mapper in self._base.registry.mappers
            if mapper.class_.__name__ == name
        ]
        if not matches:
            raise ConfigurationError(
                f"No model named {name!r} is registered on {self._base.__name__}"
            )
        if len(matches) > 1:
            qualified = sorted(f"{m.__module__}.{m.__qualname__}" for m in matches)
            raise ConfigurationError(f"Model name {name!r} is ambiguous: {qualified}")
        return matches[0]


def _import_path(path: str) -> Any:
    module_name, sep, attr = path.partition(":")
    if not sep:
        module_name, _, attr = path.rpartition(".")
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigurationError(f"Cannot import model {path!r}: {exc}") from exc
    try:
        return getattr(module, attr)
    except AttributeError:
        raise ConfigurationError(f"Module {module_name!r} has no attribute {attr!r}") from None


def _describe(identifier: Any) -> str:
    if isinstance(identifier, type):
        return f"Class {identifier.__qualname__}"
    return repr(identifier)
