"""Repository error taxonomy.

Only two failures originate in this package: a repository whose model cannot
be resolved (ConfigurationError) and a "find or fail" lookup that matched
nothing (NotFoundError).  Database and driver errors are never wrapped.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any


class RepositoryError(RuntimeError):
    """Base class for errors raised by the repository layer."""


class ConfigurationError(RepositoryError):
    """The declared model does not resolve to a mapped data-model class."""


class NotFoundError(RepositoryError, LookupError):
    """No entity matched a lookup that is required to succeed."""

    def __init__(self, model: type[Any] | str, ids: Sequence[Any] = ()) -> None:
        self.model = model
        self.ids = list(ids)
        name = model if isinstance(model, str) else model.__name__
        message = f"No query results for model [{name}]"
        if self.ids:
            message += " " + ", ".join(str(i) for i in self.ids)
        super().__init__(message)
