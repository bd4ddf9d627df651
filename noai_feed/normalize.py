from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Mapping

from .post import Post, PostOrigin


def _coerce_str(value: Any) -> str | None:
    if isinstance(value, str):
        s = value.strip()
        return s if s else None
    return None


def _coerce_id(value: Any) -> str | None:
    if isinstance(value, str):
        v = value.strip()
        return v if v else None
    if isinstance(value, int) and not isinstance(value, bool):
        return str(value)
    return None


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def coerce_timestamp(value: Any) -> datetime | None:
    """
    Resolve a stored timestamp into an aware UTC datetime.

    Accepts datetimes, ISO-8601 strings (a trailing "Z" is allowed) and epoch
    seconds. Anything else, including None, means "not yet resolved".
    """
    if isinstance(value, datetime):
        return _as_utc(value)

    if isinstance(value, bool):
        return None

    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(float(value), tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return None

    s = _coerce_str(value)
    if s is None:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return _as_utc(datetime.fromisoformat(s))
    except ValueError:
        return None


def coerce_likes(value: Any) -> frozenset[str]:
    if not isinstance(value, (list, tuple, set, frozenset)):
        return frozenset()

    out: set[str] = set()
    for item in value:
        uid = _coerce_id(item)
        if uid:
            out.add(uid)
    return frozenset(out)


def post_from_record(
    doc_id: str,
    record: Mapping[str, Any],
    *,
    origin: PostOrigin = PostOrigin.REMOTE,
) -> Post:
    """
    Best-effort conversion of a stored post record into a Post.

    Malformed fields degrade instead of failing: a missing image becomes
    image_ref=None (rendered with a placeholder), bad likes become an empty set
    and an unreadable timestamp is treated as pending.
    """
    author_id = (
        _coerce_id(record.get("authorId"))
        or _coerce_id(record.get("author_id"))
        or ""
    )

    display_name = _coerce_str(record.get("authorName")) or _coerce_str(
        record.get("author_display_name")
    )
    avatar = _coerce_str(record.get("authorAvatar")) or _coerce_str(
        record.get("author_avatar_ref")
    )

    image_ref = _coerce_str(record.get("imageUrl")) or _coerce_str(record.get("image_ref"))
    caption = _coerce_str(record.get("caption")) or ""

    raw_ts = record.get("timestamp")
    if raw_ts is None:
        raw_ts = record.get("created_at")

    return Post(
        id=str(doc_id),
        author_id=author_id,
        origin=origin,
        author_display_name=display_name,
        author_avatar_ref=avatar,
        image_ref=image_ref,
        caption=caption,
        created_at=coerce_timestamp(raw_ts),
        likes=coerce_likes(record.get("likes")),
    )


def new_post_record(
    *,
    author_id: str,
    author_display_name: str | None,
    author_avatar_ref: str | None,
    image_ref: str,
    caption: str,
) -> dict[str, Any]:
    """
    Build the record appended to the store for a freshly published post.

    The timestamp is left unresolved; the store assigns it.
    """
    return {
        "authorId": author_id,
        "authorName": author_display_name,
        "authorAvatar": author_avatar_ref,
        "imageUrl": image_ref,
        "caption": caption,
        "timestamp": None,
        "likes": [],
    }


def likes_value(likes: frozenset[str]) -> list[str]:
    """Serialize a like set for a field update; sorted for stable writes."""
    return sorted(likes)
