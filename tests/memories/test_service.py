import unittest
from unittest.mock import patch

from historybox.core.errors import InsufficientFunds, InvalidInput, NotFound
from historybox.models.memory import Memory
from historybox.models.region import Region
from historybox.services.memories.service import MemoryInput, MemoryService
from tests.support import add_user, new_session


def _input(**overrides) -> MemoryInput:
    data = dict(title="Old bazaar", image_url="https://img.example/b.jpg", latitude=42.6, longitude=-5.6)
    data.update(overrides)
    return MemoryInput(**data)


@patch("historybox.services.regions.service.get_region_precision", return_value=5)
@patch("historybox.services.memories.service.get_memory_cost_coins", return_value=6)
class TestMemoryService(unittest.TestCase):
    def setUp(self):
        self.db = new_session()
        self.user = add_user(self.db, coins=10)
        self.service = MemoryService(self.db)

    def tearDown(self):
        self.db.close()

    def _region(self, geohash) -> Region:
        self.db.expire_all()
        return self.db.query(Region).filter(Region.geohash == geohash).one()

    def test_create_charges_and_counts(self, *_):
        memory, coins = self.service.create_memory(self.user, _input(description="Spice stalls at dusk"))
        self.db.commit()
        self.assertEqual(coins, 4)
        self.assertEqual(memory.caption, "Spice stalls at dusk")
        self.assertEqual(self._region("ezs42").post_count, 1)

    def test_caption_falls_back_to_title(self, *_):
        memory, _ = self.service.create_memory(self.user, _input())
        self.assertEqual(memory.caption, "Old bazaar")

    def test_insufficient_funds_writes_nothing(self, *_):
        poor = add_user(self.db, "poor", coins=5)
        with self.assertRaises(InsufficientFunds):
            self.service.create_memory(poor, _input())
        self.db.rollback()
        self.assertEqual(self.db.query(Region).count(), 0)
        self.assertEqual(self.db.query(Memory).count(), 0)

    def test_missing_fields_and_bad_coordinates(self, *_):
        with self.assertRaises(InvalidInput):
            self.service.create_memory(self.user, _input(title=""))
        with self.assertRaises(InvalidInput):
            self.service.create_memory(self.user, _input(latitude=123))

    def test_move_changes_region_counts(self, *_):
        memory, _ = self.service.create_memory(self.user, _input())
        self.db.commit()

        self.service.update_memory(self.user, memory.id, {"latitude": 12.97, "longitude": 77.59, "title": "Moved"})
        self.db.commit()

        self.assertEqual(self._region("ezs42").post_count, 0)
        moved = self.db.query(Memory).filter(Memory.id == memory.id).one()
        self.assertEqual(moved.title, "Moved")
        self.assertEqual(self.db.query(Region).filter(Region.id == moved.region_id).one().post_count, 1)

    def test_delete_decrements(self, *_):
        memory, _ = self.service.create_memory(self.user, _input())
        self.db.commit()
        self.service.delete_memory(self.user, memory.id)
        self.db.commit()
        self.assertEqual(self._region("ezs42").post_count, 0)
        self.assertEqual(self.db.query(Memory).count(), 0)

    def test_other_users_memory_is_not_found(self, *_):
        memory, _ = self.service.create_memory(self.user, _input())
        stranger = add_user(self.db, "stranger")
        with self.assertRaises(NotFound):
            self.service.get_owned(stranger, memory.id)
        with self.assertRaises(NotFound):
            self.service.delete_memory(stranger, memory.id)

    def test_list_recent_clamps_limit(self, *_):
        rich = add_user(self.db, "rich", coins=30)
        for i in range(3):
            self.service.create_memory(rich, _input(title=f"m{i}", latitude=10 + i))
        self.db.commit()
        self.assertEqual(len(self.service.list_recent(1)), 1)
        self.assertEqual(len(self.service.list_recent(0)), 1)
        self.assertEqual(len(self.service.list_recent()), 3)
