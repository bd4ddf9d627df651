from __future__ import annotations

from .config import load_config
from .config_schema import AppConfig
from .controller import ActionResult, FeedItem, Screen, SessionContext, ViewController
from .editor import EditorDraft, EditorSession, FlattenedImage, load_image
from .errors import (
    ConfigError,
    DecodeError,
    DraftClosedError,
    InvalidFilter,
    StorageError,
    StreamError,
    WriteError,
)
from .feed import FeedMode, apply_follow_filter, merge, toggle_like
from .filters import FilterId
from .identity import StaticIdentity, UserDisplay
from .offline import InMemoryPostStore
from .post import Post, PostOrigin
from .reconciler import FeedReconciler, FeedUpdate

__all__ = [
    "ActionResult",
    "AppConfig",
    "ConfigError",
    "DecodeError",
    "DraftClosedError",
    "EditorDraft",
    "EditorSession",
    "FeedItem",
    "FeedMode",
    "FeedReconciler",
    "FeedUpdate",
    "FilterId",
    "FlattenedImage",
    "InMemoryPostStore",
    "InvalidFilter",
    "Post",
    "PostOrigin",
    "Screen",
    "SessionContext",
    "StaticIdentity",
    "StorageError",
    "StreamError",
    "UserDisplay",
    "ViewController",
    "WriteError",
    "apply_follow_filter",
    "load_config",
    "load_image",
    "merge",
    "toggle_like",
]
