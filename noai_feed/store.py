"""Boundary to the external document store that holds published posts."""

from __future__ import annotations

from typing import Any, Callable, Literal, Mapping, Protocol, Sequence

from .errors import StreamError

# One ordered snapshot: (document id, stored record) pairs.
Snapshot = Sequence[tuple[str, Mapping[str, Any]]]
SnapshotCallback = Callable[[Snapshot], None]
ErrorCallback = Callable[[StreamError], None]
Direction = Literal["desc", "asc"]


class Subscription(Protocol):
    def cancel(self) -> None:
        """Stop delivery. Safe to call more than once."""
        ...


class PostStore(Protocol):
    def append(self, record: Mapping[str, Any]) -> str:
        """Create a post and return its id. Raises WriteError."""
        ...

    def subscribe_ordered(
        self,
        collection_path: str,
        order_field: str,
        direction: Direction,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> Subscription:
        """Deliver the full ordered collection on every change."""
        ...

    def update_field(self, doc_id: str, field_path: str, value: Any) -> None:
        """Partial update of one field. Raises WriteError."""
        ...
