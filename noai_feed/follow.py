from __future__ import annotations

from typing import Iterator

from .local_state import LocalStateStore

DEFAULT_FOLLOW_KEY = "noai_following"


class FollowSet:
    """
    Author ids the current session follows.

    Persisted as one JSON list under a fixed key and rewritten on every
    mutation. A missing or unreadable value loads as an empty set.
    """

    def __init__(self, state: LocalStateStore, *, key: str = DEFAULT_FOLLOW_KEY) -> None:
        self._state = state
        self._key = key
        self._ids: list[str] = self._load()

    def __contains__(self, author_id: object) -> bool:
        return author_id in self._ids

    def __iter__(self) -> Iterator[str]:
        return iter(list(self._ids))

    def __len__(self) -> int:
        return len(self._ids)

    def ids(self) -> frozenset[str]:
        return frozenset(self._ids)

    def follow(self, author_id: str) -> bool:
        aid = (author_id or "").strip()
        if not aid:
            raise ValueError("author_id must be non-empty")
        if aid in self._ids:
            return False

        self._ids.append(aid)
        self._save()
        return True

    def unfollow(self, author_id: str) -> bool:
        aid = (author_id or "").strip()
        if aid not in self._ids:
            return False

        self._ids.remove(aid)
        self._save()
        return True

    def toggle(self, author_id: str) -> bool:
        """Flip membership; returns True when now following."""
        aid = (author_id or "").strip()
        if aid in self._ids:
            self.unfollow(aid)
            return False
        self.follow(aid)
        return True

    def _load(self) -> list[str]:
        value = self._state.get_json(self._key)
        if not isinstance(value, list):
            return []

        out: list[str] = []
        for item in value:
            if isinstance(item, str) and item.strip() and item.strip() not in out:
                out.append(item.strip())
        return out

    def _save(self) -> None:
        self._state.set_json(self._key, list(self._ids))
