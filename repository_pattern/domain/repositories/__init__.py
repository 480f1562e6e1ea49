"""Domain repository interfaces.

The abstraction is defined here with abc.ABC and @abstractmethod.  The
concrete SQLAlchemy implementation lives in
repository_pattern/infrastructure/persistence/ and is wired at the
application boundary via dependency injection.
"""

from .base import ALL_COLUMNS, RepositoryInterface, Scope

__all__ = ["ALL_COLUMNS", "RepositoryInterface", "Scope"]
