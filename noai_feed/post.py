from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Iterable


class PostOrigin(str, Enum):
    """Where a post came from; seed posts are never written to the store."""

    REMOTE = "remote"
    SEED = "seed"


@dataclass(frozen=True)
class Post:
    """
    A feed post.

    Author presentation fields are captured when the post is created and are
    not refreshed afterwards. `created_at` is None while the store has not yet
    resolved its server timestamp. Only `likes` changes after creation.
    """

    id: str
    author_id: str
    origin: PostOrigin = PostOrigin.REMOTE

    author_display_name: str | None = None
    author_avatar_ref: str | None = None

    image_ref: str | None = None
    caption: str = ""
    created_at: datetime | None = None
    likes: frozenset[str] = frozenset()

    @property
    def is_seed(self) -> bool:
        return self.origin is PostOrigin.SEED

    @property
    def timestamp_pending(self) -> bool:
        return self.created_at is None

    def with_likes(self, likes: Iterable[str]) -> "Post":
        return dataclasses.replace(self, likes=frozenset(likes))
