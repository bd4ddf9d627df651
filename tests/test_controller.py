from __future__ import annotations

import io
import json
import tempfile
import unittest
from datetime import datetime, timedelta, timezone
from pathlib import Path

from PIL import Image

from noai_feed.canvas import CanvasRect
from noai_feed.config_schema import AppConfig, LoggingConfig, StorageConfig
from noai_feed.controller import Screen, SessionContext, ViewController
from noai_feed.errors import InvalidFilter
from noai_feed.feed import FeedMode
from noai_feed.filters import FilterId
from noai_feed.identity import StaticIdentity, UserDisplay
from noai_feed.local_state import LocalStateStore
from noai_feed.offline import InMemoryPostStore

_T0 = datetime(2025, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


class _Clock:
    def __init__(self) -> None:
        self.ticks = 0

    def __call__(self) -> datetime:
        self.ticks += 1
        return _T0 + timedelta(seconds=self.ticks)


def _png(size: tuple[int, int] = (1000, 500), color: tuple[int, int, int] = (180, 200, 220)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


class _ControllerTestCase(unittest.TestCase):
    user_id: str | None = "me"

    def setUp(self) -> None:
        self.store = InMemoryPostStore(clock=_Clock(), defer_timestamps=False)
        self.state = LocalStateStore.open(":memory:")
        self.addCleanup(self.state.close)

        identity = StaticIdentity(self.user_id, UserDisplay(name="Me", avatar_ref="https://example.com/me.png"))
        self.ctx = SessionContext.create(
            AppConfig(),
            identity,
            self.store,
            state=self.state,
            clock=lambda: _T0,
        )
        self.controller = ViewController(self.ctx)
        self.addCleanup(self.controller.teardown)

    def _publish(self, caption: str = "hello") -> str:
        self.assertTrue(self.controller.show_editor(_png()).ok)
        result = self.controller.publish(caption)
        self.assertTrue(result.ok, msg=result.message)
        return str(result.value)


class TestNavigation(_ControllerTestCase):
    def test_feed_subscribes_and_leaving_releases(self) -> None:
        self.controller.show_feed()
        self.assertEqual(self.controller.screen, Screen.FEED)
        self.assertEqual(self.store.listener_count, 1)

        self.controller.show_feed()
        self.assertEqual(self.store.listener_count, 1)

        self.controller.show_people()
        self.assertEqual(self.controller.screen, Screen.PEOPLE)
        self.assertEqual(self.store.listener_count, 0)

        self.controller.show_feed()
        self.controller.show_editor()
        self.assertEqual(self.controller.screen, Screen.EDITOR)
        self.assertEqual(self.store.listener_count, 0)

    def test_teardown_releases_everything(self) -> None:
        self.controller.show_feed()
        self.controller.show_editor(_png())
        draft = self.ctx.editor.draft
        self.controller.show_feed()

        self.controller.teardown()
        self.assertEqual(self.store.listener_count, 0)
        self.assertIsNone(self.ctx.editor.draft)
        assert draft is not None
        self.assertTrue(draft.closed)

    def test_seed_posts_visible_before_any_delivery(self) -> None:
        items = self.controller.feed_items()
        self.assertEqual([i.post.id for i in items], ["mock_1", "mock_2", "mock_3"])
        self.assertTrue(all(i.is_seed for i in items))


class TestEditorFlow(_ControllerTestCase):
    def test_publish_appends_flattened_post(self) -> None:
        self.controller.set_feed_mode(FeedMode.FOLLOWING)
        self.assertTrue(self.controller.show_editor(_png()).ok)
        self.assertEqual(self.controller.select_filter("warm").value, FilterId.WARM)

        rect = CanvasRect(left=0, top=0, width=400, height=200)
        self.controller.pointer_down(50, 100, rect)
        self.controller.pointer_move(150, 100, rect)
        self.controller.pointer_up()

        draft = self.ctx.editor.draft
        assert draft is not None
        self.assertEqual(draft.strokes[0].points, ((100.0, 200.0), (300.0, 200.0)))

        result = self.controller.publish("  ")
        self.assertTrue(result.ok)
        self.assertEqual(self.controller.screen, Screen.FEED)
        self.assertEqual(self.controller.feed_mode, FeedMode.GLOBAL)
        self.assertIsNone(self.ctx.editor.draft)

        doc = self.store.get(str(result.value))
        assert doc is not None
        self.assertEqual(doc["authorId"], "me")
        self.assertEqual(doc["authorName"], "Me")
        self.assertEqual(doc["caption"], "Just captured this #nofilter #noai")
        self.assertTrue(doc["imageUrl"].startswith("data:image/jpeg;base64,"))

        first = self.controller.feed_items()[0]
        self.assertEqual(first.post.id, result.value)
        self.assertFalse(first.is_seed)

    def test_write_error_keeps_the_draft(self) -> None:
        self.controller.show_editor(_png())
        draft = self.ctx.editor.draft
        self.store.fail_next_write()

        result = self.controller.publish("hello")
        self.assertFalse(result.ok)
        self.assertEqual(result.kind, "write_error")
        self.assertIs(self.ctx.editor.draft, draft)
        self.assertEqual(self.controller.screen, Screen.EDITOR)

        self.assertTrue(self.controller.publish("hello").ok)

    def test_decode_error_is_reported(self) -> None:
        result = self.controller.show_editor(b"not an image")
        self.assertFalse(result.ok)
        self.assertEqual(result.kind, "decode_error")
        self.assertIsNone(self.ctx.editor.draft)

    def test_invalid_filter_propagates(self) -> None:
        self.controller.show_editor(_png())
        with self.assertRaises(InvalidFilter):
            self.controller.select_filter("ai_magic")

    def test_actions_without_draft(self) -> None:
        self.controller.pointer_down(1, 1, CanvasRect(0, 0, 10, 10))
        self.controller.pointer_move(2, 2, CanvasRect(0, 0, 10, 10))
        self.controller.pointer_up()
        self.assertEqual(self.controller.select_filter("warm").kind, "no_draft")
        self.assertEqual(self.controller.publish().kind, "no_draft")

    def test_cancel_discards_and_returns_to_feed(self) -> None:
        self.controller.show_editor(_png())
        draft = self.ctx.editor.draft
        self.controller.cancel_editor()

        assert draft is not None
        self.assertTrue(draft.closed)
        self.assertEqual(self.controller.screen, Screen.FEED)
        self.assertEqual(self.store.listener_count, 1)


class TestLikesAndFollows(_ControllerTestCase):
    def test_remote_like_round_trip(self) -> None:
        post_id = self._publish()
        item = self.controller.feed_items()[0]

        self.assertTrue(self.controller.toggle_like(item.post).ok)
        self.assertEqual(self.store.get(post_id)["likes"], ["me"])
        liked = self.controller.feed_items()[0]
        self.assertTrue(liked.liked_by_viewer)
        self.assertEqual(liked.like_count, 1)

        # a stale item still toggles from the current state
        self.assertTrue(self.controller.toggle_like(item.post).ok)
        self.assertEqual(self.store.get(post_id)["likes"], [])

    def test_like_write_error(self) -> None:
        self._publish()
        item = self.controller.feed_items()[0]
        self.store.fail_next_write()

        result = self.controller.toggle_like(item.post)
        self.assertEqual(result.kind, "write_error")

    def test_seed_likes_stay_local(self) -> None:
        self.controller.show_feed()
        seed = next(i for i in self.controller.feed_items() if i.post.id == "mock_2")

        result = self.controller.toggle_like(seed.post)
        self.assertEqual(result.value, frozenset({"me"}))
        self.assertIsNone(self.store.get("mock_2"))

        again = next(i for i in self.controller.feed_items() if i.post.id == "mock_2")
        self.assertTrue(again.liked_by_viewer)

    def test_following_view(self) -> None:
        self._publish()
        self.assertTrue(self.controller.toggle_follow("user_liam").value)
        self.controller.set_feed_mode("following")

        authors = [i.post.author_id for i in self.controller.feed_items()]
        self.assertEqual(authors, ["me", "user_liam"])

        people = {p.user.id: p.following for p in self.controller.people()}
        self.assertEqual(people, {"user_maya": False, "user_liam": True, "user_sarah": False})

        self.assertFalse(self.controller.toggle_follow("user_liam").value)
        self.assertEqual([i.post.author_id for i in self.controller.feed_items()], ["me"])

    def test_follow_without_author_fails_cleanly(self) -> None:
        self.controller.show_feed()
        self.store.seed_document("anon", {"imageUrl": "x.jpg", "timestamp": _T0})
        post = next(i.post for i in self.controller.feed_items() if i.post.id == "anon")
        self.assertEqual(post.author_id, "")

        for author_id in (post.author_id, "   "):
            with self.subTest(author_id=author_id):
                result = self.controller.toggle_follow(author_id)
                self.assertFalse(result.ok)
                self.assertEqual(result.kind, "invalid_author")
        self.assertEqual(self.ctx.follows.ids(), frozenset())

    def test_missing_image_uses_placeholder(self) -> None:
        self.controller.show_feed()
        self.store.seed_document("broken", {"authorId": "x", "caption": "?", "timestamp": _T0})

        item = next(i for i in self.controller.feed_items() if i.post.id == "broken")
        self.assertTrue(item.image_is_placeholder)
        self.assertEqual(item.image_ref, AppConfig().feed.placeholder_image_url)

    def test_stream_error_keeps_feed(self) -> None:
        self._publish()
        before = [i.post.id for i in self.controller.feed_items()]

        self.store.break_stream("network down")
        self.assertEqual(self.controller.stream_error, "network down")
        self.assertEqual([i.post.id for i in self.controller.feed_items()], before)


class TestSignedOut(_ControllerTestCase):
    user_id = None

    def test_writes_disabled_but_feed_readable(self) -> None:
        self.controller.show_feed()
        items = self.controller.feed_items()
        self.assertEqual(len(items), 3)
        self.assertFalse(any(i.can_like for i in items))
        self.assertFalse(self.controller.can_write)

        self.assertEqual(self.controller.toggle_like(items[0].post).kind, "unauthenticated")
        self.assertEqual(self.controller.toggle_follow("user_maya").kind, "unauthenticated")

        self.controller.show_editor(_png())
        self.assertEqual(self.controller.publish().kind, "unauthenticated")
        self.assertIsNotNone(self.ctx.editor.draft)


class TestSessionContextCreate(unittest.TestCase):
    def test_opens_state_and_event_log_from_config(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            cfg = AppConfig(
                storage=StorageConfig(state_path=str(Path(td) / "state.sqlite")),
                logging=LoggingConfig(path=str(Path(td) / "events.log"), overwrite=True),
            )
            store = InMemoryPostStore(clock=_Clock(), defer_timestamps=False)
            ctx = SessionContext.create(cfg, StaticIdentity("me"), store, clock=lambda: _T0)
            controller = ViewController(ctx)

            controller.show_feed()
            controller.toggle_follow("user_maya")
            controller.teardown()

            lines = (Path(td) / "events.log").read_text(encoding="utf-8").splitlines()
            events = [json.loads(line)["event"] for line in lines if line.strip()]
            self.assertIn("feed_subscribe", events)
            self.assertIn("follow_toggled", events)
            self.assertIn("feed_release", events)
            self.assertTrue(all(json.loads(line).get("user_id") == "me" for line in lines))

            with LocalStateStore.open(Path(td) / "state.sqlite") as state:
                self.assertEqual(state.get_json("noai_following"), ["user_maya"])


if __name__ == "__main__":
    unittest.main()
