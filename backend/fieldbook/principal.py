"""Principal abstraction for authenticated callers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class Principal(Protocol):
    """Represents the authenticated entity making a request."""

    @property
    def id(self) -> str:
        """Unique identifier for audit trails."""
        ...


@dataclass(frozen=True)
class UserPrincipal:
    """Authenticated user; name and phone seed the booking display snapshot."""

    user_id: str
    name: str = ""
    phone: Optional[str] = None

    @property
    def id(self) -> str:
        return self.user_id

    @property
    def display_name(self) -> str:
        return self.name or self.user_id
