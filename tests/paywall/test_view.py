"""
Region view: teaser vs full shaping against a real (SQLite) session.
"""
import unittest
from unittest.mock import patch

from historybox.core.errors import NotFound
from historybox.models.region_unlock import RegionUnlock
from historybox.paywall.models import LOCKED_CAPTION
from historybox.paywall.view import get_region_view
from tests.support import add_memories, add_region, add_user, new_session


@patch("historybox.paywall.access.get_unlock_batch_size", return_value=10)
@patch("historybox.paywall.access.get_teaser_post_limit", return_value=10)
@patch("historybox.paywall.access.get_teaser_description_words", return_value=5)
class TestRegionView(unittest.TestCase):
    def setUp(self):
        self.db = new_session()
        self.owner = add_user(self.db, "owner")
        self.region = add_region(self.db, "tdr1x")
        self.memories = add_memories(self.db, self.region, self.owner, 25)

    def tearDown(self):
        self.db.close()

    def test_anonymous_teaser_newest_first(self, *_):
        view = get_region_view(self.db, "tdr1x", None)
        self.assertFalse(view.unlocked)
        self.assertFalse(view.can_unlock)
        self.assertEqual(len(view.posts), 10)
        self.assertEqual(view.posts[0].id, self.memories[-1].id)
        for post in view.posts:
            self.assertTrue(post.blurred)
            self.assertEqual(post.caption, LOCKED_CAPTION)
            self.assertTrue(post.image_url)

    def test_viewer_without_unlock_sees_teaser(self, *_):
        viewer = add_user(self.db, "viewer")
        view = get_region_view(self.db, "tdr1x", viewer)
        self.assertFalse(view.unlocked)
        self.assertTrue(view.can_unlock)
        self.assertEqual(view.unlocked_count, 0)

    def test_unlocked_viewer_sees_full_posts(self, *_):
        viewer = add_user(self.db, "viewer")
        self.db.add(RegionUnlock(user_id=viewer.id, region_id=self.region.id, unlocked_count=20))
        self.db.commit()

        view = get_region_view(self.db, "tdr1x", viewer)
        self.assertTrue(view.unlocked)
        self.assertEqual(view.unlocked_count, 20)
        self.assertEqual(len(view.posts), 20)
        self.assertFalse(any(p.blurred for p in view.posts))
        self.assertEqual(view.posts[0].caption, "caption 24")

    def test_unknown_region(self, *_):
        with self.assertRaises(NotFound):
            get_region_view(self.db, "zzzzz", None)
