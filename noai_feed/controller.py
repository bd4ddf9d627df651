"""Screen orchestration: wires user actions to the editor, feed and store."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Iterable

from .canvas import CanvasRect, to_backing_point
from .config_schema import AppConfig
from .editor import EditorSession
from .errors import DecodeError, StorageError, WriteError
from .event_log import EventLog, NullEventLog
from .feed import FeedMode, should_commit_like, toggle_like
from .filters import FilterId
from .follow import FollowSet
from .identity import IdentityProvider
from .local_state import LocalStateStore
from .normalize import likes_value, new_post_record
from .post import Post
from .reconciler import FeedListener, FeedReconciler
from .seed import DEMO_USERS, DemoUser
from .store import PostStore


class Screen(str, Enum):
    FEED = "feed"
    EDITOR = "editor"
    PEOPLE = "people"


@dataclass(frozen=True)
class ActionResult:
    ok: bool
    kind: str | None = None
    message: str | None = None
    value: Any = None

    @classmethod
    def success(cls, value: Any = None) -> "ActionResult":
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, kind: str, message: str) -> "ActionResult":
        return cls(ok=False, kind=kind, message=message)


@dataclass(frozen=True)
class FeedItem:
    post: Post
    image_ref: str
    image_is_placeholder: bool
    like_count: int
    liked_by_viewer: bool
    can_like: bool

    @property
    def is_seed(self) -> bool:
        return self.post.is_seed


@dataclass(frozen=True)
class PersonItem:
    user: DemoUser
    following: bool


@dataclass
class SessionContext:
    """
    Everything one signed-in (or signed-out) session holds.

    Built with `create`, torn down with `close`, which releases the feed
    subscription, drops any draft and closes resources the context opened.
    """

    config: AppConfig
    identity: IdentityProvider
    store: PostStore
    follows: FollowSet
    reconciler: FeedReconciler
    editor: EditorSession
    log: EventLog
    _owned: list[Any] = field(default_factory=list, repr=False)

    @classmethod
    def create(
        cls,
        config: AppConfig,
        identity: IdentityProvider,
        store: PostStore,
        *,
        state: LocalStateStore | None = None,
        log: EventLog | None = None,
        seed: Iterable[Post] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> "SessionContext":
        owned: list[Any] = []

        if log is None:
            if config.logging.path:
                log = EventLog.open(Path(config.logging.path), overwrite=config.logging.overwrite)
                owned.append(log)
            else:
                log = NullEventLog()
        log.set_user_id(identity.current_user_id())

        if state is None:
            state = LocalStateStore.open(config.storage.state_path)
            owned.append(state)

        return cls(
            config=config,
            identity=identity,
            store=store,
            follows=FollowSet(state, key=config.storage.follow_key),
            reconciler=FeedReconciler(store, config=config.feed, seed=seed, log=log, clock=clock),
            editor=EditorSession(config=config.editor),
            log=log,
            _owned=owned,
        )

    @property
    def user_id(self) -> str | None:
        return self.identity.current_user_id()

    def close(self) -> None:
        self.reconciler.release()
        self.editor.cancel()
        while self._owned:
            self._owned.pop().close()


_NOT_SIGNED_IN = "Sign in to post, like or follow."


class ViewController:
    def __init__(self, context: SessionContext) -> None:
        self._ctx = context
        self._screen = Screen.FEED
        self._mode = FeedMode.GLOBAL

    @property
    def context(self) -> SessionContext:
        return self._ctx

    @property
    def screen(self) -> Screen:
        return self._screen

    @property
    def feed_mode(self) -> FeedMode:
        return self._mode

    @property
    def can_write(self) -> bool:
        return self._ctx.user_id is not None

    @property
    def stream_error(self) -> str | None:
        err = self._ctx.reconciler.last_error
        return str(err) if err is not None else None

    def add_feed_listener(self, listener: FeedListener) -> Callable[[], None]:
        return self._ctx.reconciler.add_listener(listener)

    # -- navigation --

    def show_feed(self) -> None:
        self._screen = Screen.FEED
        if not self._ctx.reconciler.subscribed:
            self._ctx.reconciler.subscribe()

    def show_editor(self, data: bytes | None = None) -> ActionResult:
        self._leave_feed()
        self._screen = Screen.EDITOR
        if data is None:
            return ActionResult.success()
        return self.open_image(data)

    def show_people(self) -> None:
        self._leave_feed()
        self._screen = Screen.PEOPLE

    def set_feed_mode(self, mode: FeedMode | str) -> None:
        self._mode = FeedMode(mode)

    def teardown(self) -> None:
        self._ctx.close()

    # -- editor --

    def open_image(self, data: bytes) -> ActionResult:
        try:
            draft = self._ctx.editor.open(data)
        except DecodeError as e:
            self._ctx.log.warning("image_decode_failed", message=str(e))
            return ActionResult.failure("decode_error", "That file isn't an image we can read. Try another one.")

        self._ctx.log.info(
            "editor_opened",
            width=draft.display_size[0],
            height=draft.display_size[1],
            scale=draft.scale,
        )
        return ActionResult.success(draft.display_size)

    def select_filter(self, filter_id: FilterId | str) -> ActionResult:
        draft = self._ctx.editor.draft
        if draft is None:
            return ActionResult.failure("no_draft", "Open an image first.")
        draft.set_filter(filter_id)
        return ActionResult.success(draft.filter_id)

    def pointer_down(self, client_x: float, client_y: float, rect: CanvasRect) -> None:
        draft = self._ctx.editor.draft
        if draft is None:
            return
        draft.begin_stroke(to_backing_point(client_x, client_y, rect, draft.display_size))

    def pointer_move(self, client_x: float, client_y: float, rect: CanvasRect) -> None:
        draft = self._ctx.editor.draft
        if draft is None:
            return
        draft.append_stroke_point(to_backing_point(client_x, client_y, rect, draft.display_size))

    def pointer_up(self) -> None:
        draft = self._ctx.editor.draft
        if draft is None:
            return
        draft.end_stroke()

    def cancel_editor(self) -> None:
        self._ctx.editor.cancel()
        self.show_feed()

    def publish(self, caption: str | None = None) -> ActionResult:
        user_id = self._ctx.user_id
        if user_id is None:
            return ActionResult.failure("unauthenticated", _NOT_SIGNED_IN)

        draft = self._ctx.editor.draft
        if draft is None:
            return ActionResult.failure("no_draft", "Open an image first.")

        draft.end_stroke()
        image = self._ctx.editor.flatten()

        display = self._ctx.identity.current_user_display()
        text = (caption or "").strip() or self._ctx.config.feed.default_caption
        record = new_post_record(
            author_id=user_id,
            author_display_name=(display.name if display else None) or "Demo User",
            author_avatar_ref=display.avatar_ref if display else None,
            image_ref=image.as_data_url(),
            caption=text,
        )

        try:
            post_id = self._ctx.store.append(record)
        except WriteError as e:
            # keep the draft so the user can retry
            self._ctx.log.exception("post_publish_failed", exc=e)
            return ActionResult.failure("write_error", "Couldn't publish your post. Please try again.")

        self._ctx.log.info("post_published", post_id=post_id, bytes=len(image.data))
        self._ctx.editor.cancel()
        self._mode = FeedMode.GLOBAL
        self.show_feed()
        return ActionResult.success(post_id)

    # -- feed --

    def toggle_like(self, post: Post) -> ActionResult:
        user_id = self._ctx.user_id
        if user_id is None:
            return ActionResult.failure("unauthenticated", _NOT_SIGNED_IN)

        reconciler = self._ctx.reconciler

        if not should_commit_like(post):
            current = reconciler.seed_post(post.id) or post
            likes = toggle_like(current, user_id)
            reconciler.apply_seed_like(post.id, likes)
            return ActionResult.success(likes)

        current = reconciler.remote_post(post.id) or post
        likes = toggle_like(current, user_id)
        try:
            self._ctx.store.update_field(post.id, "likes", likes_value(likes))
        except WriteError as e:
            self._ctx.log.exception("like_update_failed", exc=e, post_id=post.id)
            return ActionResult.failure("write_error", "Couldn't update your like. Please try again.")

        self._ctx.log.info("like_toggled", post_id=post.id, liked=user_id in likes)
        return ActionResult.success(likes)

    def toggle_follow(self, author_id: str) -> ActionResult:
        if self._ctx.user_id is None:
            return ActionResult.failure("unauthenticated", _NOT_SIGNED_IN)

        try:
            following = self._ctx.follows.toggle(author_id)
        except ValueError:
            return ActionResult.failure("invalid_author", "This post has no author to follow.")
        except StorageError as e:
            self._ctx.log.exception("follow_update_failed", exc=e)
            return ActionResult.failure("storage_error", "Couldn't save who you follow.")

        self._ctx.log.info("follow_toggled", author_id=author_id, following=following)
        return ActionResult.success(following)

    def feed_items(self) -> list[FeedItem]:
        viewer = self._ctx.user_id
        placeholder = self._ctx.config.feed.placeholder_image_url
        posts = self._ctx.reconciler.view(self._mode, self._ctx.follows.ids(), viewer)

        return [
            FeedItem(
                post=p,
                image_ref=p.image_ref or placeholder,
                image_is_placeholder=p.image_ref is None,
                like_count=len(p.likes),
                liked_by_viewer=viewer is not None and viewer in p.likes,
                can_like=viewer is not None,
            )
            for p in posts
        ]

    def people(self) -> list[PersonItem]:
        follows = self._ctx.follows
        return [PersonItem(user=u, following=u.id in follows) for u in DEMO_USERS]

    def _leave_feed(self) -> None:
        if self._ctx.reconciler.subscribed:
            self._ctx.reconciler.release()
