import unittest
from unittest.mock import MagicMock

from leetmentor.gateway import GatewayError
from leetmentor.normalize import Problem
from leetmentor.recommend import (
    ADDED, DUPLICATE, EMPTY, ERROR, SKIPPED, RecommendationEngine, clean_topic,
)
from leetmentor.storage import ReviewCatalogStore, SolvedProblemStore, Storage, TopicCacheStore

RECS = (
    '[{"title": "Contains Duplicate", "url": "https://leetcode.com/problems/contains-duplicate/"},'
    ' {"title": "Group Anagrams"}]'
)


class TestRecommendationEngine(unittest.TestCase):
    def setUp(self):
        self.storage = Storage.in_memory()
        self.gateway = MagicMock()
        self.topics = TopicCacheStore(self.storage.local)
        self.catalog = ReviewCatalogStore(self.storage.local)
        self.solved = SolvedProblemStore(self.storage.local)
        self.engine = RecommendationEngine(self.gateway, self.topics, self.catalog, self.solved)

    def test_get_topic_caches_first_answer(self):
        self.gateway.ask.return_value = '  "Hash Table".\n'
        self.assertEqual(self.engine.get_topic("Two Sum"), "Hash Table")
        self.assertEqual(self.engine.get_topic("Two Sum"), "Hash Table")
        self.assertEqual(self.gateway.ask.call_count, 1)
        self.assertEqual(self.topics.get("Two Sum"), "Hash Table")

    def test_get_topic_uses_existing_cache(self):
        self.topics.set_if_absent("Two Sum", "Arrays")
        self.assertEqual(self.engine.get_topic("Two Sum"), "Arrays")
        self.gateway.ask.assert_not_called()

    def test_not_found_title_is_a_no_op(self):
        self.assertEqual(self.engine.get_recommendations("Title not found"), [])
        self.assertEqual(self.engine.run_cycle("Title not found").status, SKIPPED)
        self.assertEqual(self.engine.run_cycle("").status, SKIPPED)
        self.gateway.ask.assert_not_called()

    def test_run_cycle_adds_entry(self):
        self.gateway.ask.side_effect = ["Hash Table", RECS]
        result = self.engine.run_cycle("Two Sum")

        self.assertEqual(result.status, ADDED)
        self.assertEqual(result.topic, "Hash Table")
        self.assertEqual(result.problems[1], Problem("Group Anagrams", "https://leetcode.com/problems/group-anagrams/"))
        entries = self.engine.review_catalog()
        self.assertEqual(len(entries), 1)
        self.assertEqual(entries[0].concept, "Hash Table")
        self.assertEqual(entries[0].source, "Two Sum")
        self.assertEqual(entries[0].problems, result.problems)
        self.assertTrue(self.catalog.has_notification())
        self.assertEqual(self.solved.all(), [{"title": "Two Sum", "topic": "Hash Table"}])

        prompt = self.gateway.ask.call_args_list[1][0][0]
        self.assertIn("Hash Table", prompt)
        self.assertIn("Two Sum", prompt)

    def test_same_concept_and_source_stored_once(self):
        self.gateway.ask.side_effect = ["Hash Table", RECS, RECS]
        self.assertEqual(self.engine.run_cycle("Two Sum").status, ADDED)
        self.assertEqual(self.engine.run_cycle("Two Sum").status, DUPLICATE)
        self.assertEqual(len(self.catalog.entries()), 1)

    def test_unparsable_output_leaves_catalog_unchanged(self):
        self.gateway.ask.side_effect = ["Hash Table", "Practice more hash maps, you got this!"]
        result = self.engine.run_cycle("Two Sum")
        self.assertEqual(result.status, EMPTY)
        self.assertEqual(self.catalog.entries(), [])
        self.assertFalse(self.catalog.has_notification())

    def test_gateway_failure_is_reported(self):
        self.gateway.ask.side_effect = GatewayError("Model error 500", status=500)
        result = self.engine.run_cycle("Two Sum")
        self.assertEqual(result.status, ERROR)
        self.assertEqual(self.catalog.entries(), [])

    def test_clean_topic(self):
        self.assertEqual(clean_topic("**Two Pointers**\nBecause..."), "Two Pointers")
        self.assertEqual(clean_topic("\n\n"), "")


if __name__ == "__main__":
    unittest.main()
