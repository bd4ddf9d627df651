from __future__ import annotations

import copy
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Mapping

from .errors import StreamError, WriteError
from .normalize import coerce_timestamp
from .store import Direction, ErrorCallback, Snapshot, SnapshotCallback

_PENDING_SORT_KEY = datetime.max.replace(tzinfo=timezone.utc)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class _Listener:
    collection_path: str
    order_field: str
    direction: Direction
    on_snapshot: SnapshotCallback
    on_error: ErrorCallback


class InMemorySubscription:
    def __init__(self, store: "InMemoryPostStore", key: int) -> None:
        self._store = store
        self._key = key
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def cancel(self) -> None:
        if not self._active:
            return
        self._active = False
        self._store._remove_listener(self._key)


class InMemoryPostStore:
    """
    Synchronous post store for offline demos and tests.

    Behaves like a live document store: every change delivers the full ordered
    collection to each listener. With `defer_timestamps` (the default) a new
    post is first delivered with a pending timestamp and then re-delivered once
    the timestamp is resolved, as a server-assigned timestamp would be.
    """

    def __init__(
        self,
        *,
        collection_path: str = "/artifacts/default-app-id/public/data/posts",
        clock: Callable[[], datetime] | None = None,
        defer_timestamps: bool = True,
        id_prefix: str = "post_",
    ) -> None:
        self._collection_path = collection_path
        self._clock = clock or _utc_now
        self._defer_timestamps = bool(defer_timestamps)
        self._id_prefix = id_prefix

        self._docs: dict[str, dict[str, Any]] = {}
        self._listeners: dict[int, _Listener] = {}
        self._next_doc = 0
        self._next_listener = 0
        self._fail_writes = 0

    @property
    def collection_path(self) -> str:
        return self._collection_path

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def get(self, doc_id: str) -> dict[str, Any] | None:
        doc = self._docs.get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    def seed_document(self, doc_id: str, record: Mapping[str, Any]) -> None:
        """Insert a document with a caller-chosen id, then notify listeners."""
        self._docs[doc_id] = dict(record)
        self._notify()

    def fail_next_write(self, count: int = 1) -> None:
        if count < 0:
            raise ValueError("count must be >= 0")
        self._fail_writes = count

    def break_stream(self, message: str = "stream disconnected") -> None:
        """Fail every live subscription; failed subscriptions receive nothing further."""
        listeners = list(self._listeners.values())
        self._listeners.clear()
        for listener in listeners:
            listener.on_error(StreamError(message))

    def append(self, record: Mapping[str, Any]) -> str:
        self._check_write("append")

        self._next_doc += 1
        doc_id = f"{self._id_prefix}{self._next_doc}"

        doc = dict(record)
        if self._defer_timestamps:
            doc["timestamp"] = None
            self._docs[doc_id] = doc
            self._notify()
            doc["timestamp"] = self._clock()
        else:
            doc["timestamp"] = self._clock()
            self._docs[doc_id] = doc

        self._notify()
        return doc_id

    def update_field(self, doc_id: str, field_path: str, value: Any) -> None:
        self._check_write("update")

        doc = self._docs.get(doc_id)
        if doc is None:
            raise WriteError(f"No such post: {doc_id}")

        key = (field_path or "").strip()
        if not key:
            raise WriteError("field_path must be non-empty")

        doc[key] = copy.deepcopy(value)
        self._notify()

    def subscribe_ordered(
        self,
        collection_path: str,
        order_field: str,
        direction: Direction,
        on_snapshot: SnapshotCallback,
        on_error: ErrorCallback,
    ) -> InMemorySubscription:
        self._next_listener += 1
        key = self._next_listener
        listener = _Listener(
            collection_path=collection_path,
            order_field=order_field,
            direction=direction,
            on_snapshot=on_snapshot,
            on_error=on_error,
        )
        self._listeners[key] = listener

        sub = InMemorySubscription(self, key)
        listener.on_snapshot(self._snapshot(listener))
        return sub

    def _remove_listener(self, key: int) -> None:
        self._listeners.pop(key, None)

    def _check_write(self, op: str) -> None:
        if self._fail_writes > 0:
            self._fail_writes -= 1
            raise WriteError(f"Simulated {op} failure")

    def _snapshot(self, listener: _Listener) -> Snapshot:
        if listener.collection_path != self._collection_path:
            return []

        def _key(item: tuple[str, dict[str, Any]]) -> datetime:
            ts = coerce_timestamp(item[1].get(listener.order_field))
            return ts if ts is not None else _PENDING_SORT_KEY

        items = sorted(self._docs.items(), key=_key, reverse=listener.direction == "desc")
        return [(doc_id, copy.deepcopy(doc)) for doc_id, doc in items]

    def _notify(self) -> None:
        for key in list(self._listeners):
            listener = self._listeners.get(key)
            if listener is None:
                continue
            listener.on_snapshot(self._snapshot(listener))
