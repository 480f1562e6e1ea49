"""Domain value objects returned by repositories.

Pure Pydantic models with no ORM or infrastructure dependencies.
"""

from .page import Page

__all__ = ["Page"]
