import unittest
from unittest.mock import patch

from historybox.core.errors import NotFound
from historybox.models.region_unlock import RegionUnlock
from historybox.services.users.service import UserService
from tests.support import add_memories, add_region, add_user, new_session


class TestUserService(unittest.TestCase):
    def setUp(self):
        self.db = new_session()
        self.service = UserService(self.db)

    def tearDown(self):
        self.db.close()

    @patch("historybox.services.users.service.get_signup_bonus_coins", return_value=3)
    def test_get_or_create_is_idempotent(self, _):
        first = self.service.get_or_create_user("sub-1", "+989120000000")
        second = self.service.get_or_create_user("sub-1")
        self.assertEqual(first.id, second.id)
        self.assertEqual(first.coins, 3)
        self.assertEqual(second.phone_number, "+989120000000")

    def test_require_unknown_user(self):
        with self.assertRaises(NotFound):
            self.service.require_by_external_id("nobody")

    def test_stats(self):
        user = add_user(self.db, "sub-2", coins=7)
        region = add_region(self.db, "tdr1x")
        add_memories(self.db, region, user, 2)
        other = add_region(self.db, "ezs42")
        self.db.add(RegionUnlock(user_id=user.id, region_id=region.id, unlocked_count=2))
        self.db.add(RegionUnlock(user_id=user.id, region_id=other.id, unlocked_count=0))
        self.db.commit()

        self.assertEqual(self.service.get_stats(user), {"coins": 7, "memories": 2, "unlocked_regions": 1})
