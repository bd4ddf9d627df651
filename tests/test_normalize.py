from __future__ import annotations

import unittest
from datetime import datetime, timezone

from noai_feed.normalize import coerce_timestamp, likes_value, new_post_record, post_from_record
from noai_feed.post import PostOrigin


class TestNormalize(unittest.TestCase):
    def test_post_from_full_record(self) -> None:
        record = {
            "authorId": "u1",
            "authorName": "Demo User",
            "authorAvatar": "https://example.com/a.png",
            "imageUrl": "data:image/jpeg;base64,AAAA",
            "caption": "  hello  ",
            "timestamp": "2025-01-02T03:04:05Z",
            "likes": ["u2", "u3"],
        }
        post = post_from_record("doc1", record)
        self.assertEqual(post.id, "doc1")
        self.assertEqual(post.origin, PostOrigin.REMOTE)
        self.assertEqual(post.author_id, "u1")
        self.assertEqual(post.author_display_name, "Demo User")
        self.assertEqual(post.caption, "hello")
        self.assertEqual(post.created_at, datetime(2025, 1, 2, 3, 4, 5, tzinfo=timezone.utc))
        self.assertEqual(post.likes, frozenset({"u2", "u3"}))

    def test_malformed_fields_degrade(self) -> None:
        post = post_from_record("doc2", {"authorId": "u1", "imageUrl": "  ", "likes": "u2"})
        self.assertIsNone(post.image_ref)
        self.assertEqual(post.likes, frozenset())
        self.assertIsNone(post.created_at)
        self.assertTrue(post.timestamp_pending)
        self.assertEqual(post.caption, "")

    def test_likes_drop_duplicates_and_non_strings(self) -> None:
        post = post_from_record("doc3", {"authorId": "u1", "likes": ["u2", "u2", None, "", 7]})
        self.assertEqual(post.likes, frozenset({"u2", "7"}))

    def test_coerce_timestamp_variants(self) -> None:
        naive = datetime(2025, 1, 1, 12, 0, 0)
        self.assertEqual(coerce_timestamp(naive), naive.replace(tzinfo=timezone.utc))
        self.assertEqual(coerce_timestamp(0), datetime(1970, 1, 1, tzinfo=timezone.utc))
        self.assertIsNone(coerce_timestamp(None))
        self.assertIsNone(coerce_timestamp("not a date"))
        self.assertIsNone(coerce_timestamp(True))

    def test_new_post_record_leaves_timestamp_pending(self) -> None:
        record = new_post_record(
            author_id="u1",
            author_display_name="Demo User",
            author_avatar_ref=None,
            image_ref="data:image/jpeg;base64,AAAA",
            caption="Just captured this",
        )
        self.assertIsNone(record["timestamp"])
        self.assertEqual(record["likes"], [])
        self.assertEqual(record["authorId"], "u1")

        post = post_from_record("new", record)
        self.assertTrue(post.timestamp_pending)

    def test_likes_value_is_sorted(self) -> None:
        self.assertEqual(likes_value(frozenset({"b", "a"})), ["a", "b"])


if __name__ == "__main__":
    unittest.main()
