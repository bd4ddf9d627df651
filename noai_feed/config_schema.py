from __future__ import annotations

import re
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

_HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")
_STORAGE_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_.-]*$")


def _validate_hex_color(value: str) -> str:
    color = (value or "").strip()
    if not _HEX_COLOR_RE.fullmatch(color):
        raise ValueError("must be a hex colour like #ec4899")
    return color.lower()


PositiveInt = Annotated[int, Field(ge=1)]


class EditorConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_width: PositiveInt = 800
    jpeg_quality: int = Field(80, ge=1, le=95)
    stroke_width: PositiveInt = 5
    stroke_color: str = "#ec4899"

    @field_validator("stroke_color")
    @classmethod
    def _stroke_color_must_be_hex(cls, v: str) -> str:
        return _validate_hex_color(v)


class FeedConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    app_id: str = "default-app-id"
    collection_path: str | None = None
    order_field: str = "timestamp"
    direction: Literal["desc", "asc"] = "desc"
    include_seed_posts: bool = True
    default_caption: str = "Just captured this #nofilter #noai"
    placeholder_image_url: str = "https://placehold.co/600x400/f0f0f0/666?text=Image+Unavailable"

    @field_validator("app_id", "order_field")
    @classmethod
    def _must_be_non_empty(cls, v: str) -> str:
        value = (v or "").strip()
        if not value:
            raise ValueError("must be non-empty")
        return value

    @property
    def posts_collection_path(self) -> str:
        path = (self.collection_path or "").strip()
        return path or f"/artifacts/{self.app_id}/public/data/posts"


class StorageConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    state_path: str = "noai_state.sqlite"
    follow_key: str = "noai_following"

    @field_validator("follow_key")
    @classmethod
    def _follow_key_must_be_valid(cls, v: str) -> str:
        key = (v or "").strip()
        if not _STORAGE_KEY_RE.fullmatch(key):
            raise ValueError("must be a simple storage key")
        return key


class LoggingConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    path: str | None = None
    overwrite: bool = False


class AppConfig(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    editor: EditorConfig = Field(default_factory=EditorConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
