from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class UserDisplay:
    name: str | None = None
    avatar_ref: str | None = None


class IdentityProvider(Protocol):
    def current_user_id(self) -> str | None: ...

    def current_user_display(self) -> UserDisplay | None: ...


class StaticIdentity:
    """Fixed identity, as issued by the host's sign-in; `user_id=None` means signed out."""

    def __init__(self, user_id: str | None = None, display: UserDisplay | None = None) -> None:
        self._user_id = (user_id or "").strip() or None
        self._display = display

    @classmethod
    def anonymous(cls) -> "StaticIdentity":
        return cls(None)

    def current_user_id(self) -> str | None:
        return self._user_id

    def current_user_display(self) -> UserDisplay | None:
        if self._user_id is None:
            return None
        return self._display
