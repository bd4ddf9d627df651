from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AbstractSet, Callable, Iterable

from .config_schema import FeedConfig
from .errors import StreamError
from .event_log import EventLog, NullEventLog
from .feed import FeedMode, apply_follow_filter, merge
from .normalize import post_from_record
from .post import Post
from .seed import seed_posts
from .store import PostStore, Snapshot, Subscription


@dataclass(frozen=True)
class FeedUpdate:
    """Delivered to listeners after every recompute or stream failure."""

    posts: tuple[Post, ...]
    error: StreamError | None = None


FeedListener = Callable[[FeedUpdate], None]


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class FeedReconciler:
    """
    Keeps one ordered view over the live remote stream plus the local seed set.

    Each delivered snapshot replaces the remote list and the merged order is
    recomputed from scratch. At most one subscription is live; deliveries from
    a released or superseded subscription are dropped. A stream failure keeps
    the last good list.
    """

    def __init__(
        self,
        store: PostStore,
        *,
        config: FeedConfig | None = None,
        seed: Iterable[Post] | None = None,
        log: EventLog | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._config = config or FeedConfig()
        self._log = log or NullEventLog()
        self._clock = clock or _utc_now

        if seed is not None:
            self._seed = tuple(seed)
        elif self._config.include_seed_posts:
            self._seed = seed_posts(self._clock())
        else:
            self._seed = ()

        self._seed_likes: dict[str, frozenset[str]] = {}
        self._remote: tuple[Post, ...] = ()
        self._ordered: tuple[Post, ...] = ()
        self._listeners: list[FeedListener] = []

        self._subscription: Subscription | None = None
        self._generation = 0
        self._active_generation: int | None = None
        self._last_error: StreamError | None = None

        self._recompute()

    @property
    def subscribed(self) -> bool:
        return self._active_generation is not None

    @property
    def last_error(self) -> StreamError | None:
        return self._last_error

    def add_listener(self, listener: FeedListener) -> Callable[[], None]:
        """Register a listener; returns a function that removes it."""
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _remove

    def subscribe(self) -> None:
        self.release()

        self._generation += 1
        generation = self._generation
        self._active_generation = generation
        self._last_error = None

        self._log.info(
            "feed_subscribe",
            collection_path=self._config.posts_collection_path,
            order_field=self._config.order_field,
            direction=self._config.direction,
        )

        sub = self._store.subscribe_ordered(
            self._config.posts_collection_path,
            self._config.order_field,
            self._config.direction,
            lambda snapshot: self._on_snapshot(generation, snapshot),
            lambda err: self._on_error(generation, err),
        )

        if self._active_generation == generation:
            self._subscription = sub
        else:
            # failed during the initial delivery
            sub.cancel()

    def release(self) -> None:
        """Stop listening. Safe to call repeatedly."""
        was_active = self._active_generation is not None
        self._active_generation = None

        sub, self._subscription = self._subscription, None
        if sub is not None:
            sub.cancel()

        if was_active:
            self._log.info("feed_release")

    def ordered_posts(self) -> list[Post]:
        return list(self._ordered)

    def view(
        self,
        mode: FeedMode | str,
        follow_set: AbstractSet[str],
        viewer_id: str | None,
    ) -> list[Post]:
        return apply_follow_filter(self._ordered, follow_set, viewer_id, mode)

    def seed_post(self, post_id: str) -> Post | None:
        for p in self._seed:
            if p.id == post_id:
                return p.with_likes(self._seed_likes.get(p.id, p.likes))
        return None

    def remote_post(self, post_id: str) -> Post | None:
        for p in self._remote:
            if p.id == post_id:
                return p
        return None

    def apply_seed_like(self, post_id: str, likes: Iterable[str]) -> None:
        """Record local-only like state for a seed post."""
        if self.seed_post(post_id) is None:
            raise KeyError(f"Not a seed post: {post_id}")

        self._seed_likes[post_id] = frozenset(likes)
        self._recompute()
        self._notify(FeedUpdate(posts=self._ordered, error=self._last_error))

    def _on_snapshot(self, generation: int, snapshot: Snapshot) -> None:
        if generation != self._active_generation:
            return

        self._remote = tuple(post_from_record(doc_id, record) for doc_id, record in snapshot)
        self._last_error = None
        self._recompute()

        self._log.info("feed_snapshot", remote_posts=len(self._remote), total_posts=len(self._ordered))
        self._notify(FeedUpdate(posts=self._ordered))

    def _on_error(self, generation: int, err: StreamError) -> None:
        if generation != self._active_generation:
            return

        # the store ends a subscription once it reports a failure
        self._active_generation = None
        sub, self._subscription = self._subscription, None
        if sub is not None:
            sub.cancel()

        self._last_error = err
        self._log.warning("feed_stream_error", message=str(err), kept_posts=len(self._ordered))
        self._notify(FeedUpdate(posts=self._ordered, error=err))

    def _recompute(self) -> None:
        seeds = [p.with_likes(self._seed_likes[p.id]) if p.id in self._seed_likes else p for p in self._seed]
        self._ordered = tuple(merge(self._remote, seeds, now=self._clock()))

    def _notify(self, update: FeedUpdate) -> None:
        for listener in list(self._listeners):
            listener(update)
