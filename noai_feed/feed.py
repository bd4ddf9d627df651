from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import AbstractSet, Iterable

from .post import Post, PostOrigin


class FeedMode(str, Enum):
    GLOBAL = "global"
    FOLLOWING = "following"


def resolved_timestamp(post: Post, now: datetime) -> datetime:
    """Pending server timestamps count as `now`, i.e. the most recent."""
    return post.created_at if post.created_at is not None else now


def merge(
    remote_posts: Iterable[Post],
    seed_posts: Iterable[Post],
    *,
    now: datetime | None = None,
) -> list[Post]:
    """
    Concatenate remote then seed posts and order newest first.

    The sort is stable, so posts with equal timestamps keep their input order.
    """
    ref = now or datetime.now(timezone.utc)
    combined = [*remote_posts, *seed_posts]
    # sorted(reverse=True) keeps equal keys in input order
    return sorted(combined, key=lambda p: resolved_timestamp(p, ref), reverse=True)


def apply_follow_filter(
    ordered_posts: Iterable[Post],
    follow_set: AbstractSet[str],
    viewer_id: str | None,
    mode: FeedMode | str,
) -> list[Post]:
    if FeedMode(mode) is FeedMode.GLOBAL:
        return list(ordered_posts)

    return [
        p
        for p in ordered_posts
        if p.author_id in follow_set or (viewer_id is not None and p.author_id == viewer_id)
    ]


def toggle_like(post: Post, user_id: str) -> frozenset[str]:
    if user_id in post.likes:
        return post.likes - {user_id}
    return post.likes | {user_id}


def should_commit_like(post: Post) -> bool:
    """Only store-backed posts are written; seed post likes stay local."""
    return post.origin is PostOrigin.REMOTE
