from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from .post import Post, PostOrigin


@dataclass(frozen=True)
class DemoUser:
    id: str
    name: str
    handle: str
    avatar_ref: str
    bio: str


DEMO_USERS: tuple[DemoUser, ...] = (
    DemoUser(
        id="user_maya",
        name="Maya Creative",
        handle="@maya_art",
        avatar_ref="https://placehold.co/100x100/FFB7B2/ffffff?text=M",
        bio="Digital purist. 📸",
    ),
    DemoUser(
        id="user_liam",
        name="Liam Analog",
        handle="@liam_film",
        avatar_ref="https://placehold.co/100x100/B5EAD7/ffffff?text=L",
        bio="Film grain & reality.",
    ),
    DemoUser(
        id="user_sarah",
        name="Sarah Real",
        handle="@sarah_life",
        avatar_ref="https://placehold.co/100x100/E2F0CB/ffffff?text=S",
        bio="No filters, just life.",
    ),
)

_USERS_BY_ID = {u.id: u for u in DEMO_USERS}

# (post id, author id, image ref, caption, age, likes)
_SEED_ROWS: tuple[tuple[str, str, str, str, timedelta, tuple[str, ...]], ...] = (
    (
        "mock_1",
        "user_maya",
        "https://placehold.co/600x400/FFB7B2/ffffff?text=Sketching+in+Park",
        "Sunday morning sketches. No AI, just ink.",
        timedelta(hours=1),
        ("user_liam",),
    ),
    (
        "mock_2",
        "user_liam",
        "https://placehold.co/600x400/B5EAD7/ffffff?text=Old+Camera",
        "Found this beauty at the flea market.",
        timedelta(hours=2),
        (),
    ),
    (
        "mock_3",
        "user_sarah",
        "https://placehold.co/600x400/E2F0CB/ffffff?text=Coffee+Spill",
        "Oops. Authentic mess.",
        timedelta(hours=3),
        ("user_maya", "user_liam"),
    ),
)


def seed_posts(now: datetime | None = None) -> tuple[Post, ...]:
    """Demo posts timestamped relative to `now` (UTC now by default)."""
    ref = now or datetime.now(timezone.utc)

    out: list[Post] = []
    for post_id, author_id, image_ref, caption, age, likes in _SEED_ROWS:
        author = _USERS_BY_ID[author_id]
        out.append(
            Post(
                id=post_id,
                author_id=author_id,
                origin=PostOrigin.SEED,
                author_display_name=author.name,
                author_avatar_ref=author.avatar_ref,
                image_ref=image_ref,
                caption=caption,
                created_at=ref - age,
                likes=frozenset(likes),
            )
        )
    return tuple(out)
