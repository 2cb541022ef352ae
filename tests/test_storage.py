import json
import shutil
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from leetmentor.storage import (
    ChatHistoryStore, JsonFileStore, LastHintStore, MemoryStore, ReviewCatalogStore,
    SolvedProblemStore, Storage, TopicCacheStore,
)


class TestJsonFileStore(unittest.TestCase):
    def setUp(self):
        self.tmp = Path(tempfile.mkdtemp())
        self.path = self.tmp / "nested" / "local.json"

    def tearDown(self):
        shutil.rmtree(self.tmp, ignore_errors=True)

    def test_round_trip_through_disk(self):
        store = JsonFileStore(self.path)
        store.set({"a": [1, 2], "b": {"x": "y"}})
        store.remove("b")

        reloaded = JsonFileStore(self.path)
        self.assertEqual(reloaded.get(["a", "b"]), {"a": [1, 2]})
        self.assertEqual(json.loads(self.path.read_text(encoding="utf-8")), {"a": [1, 2]})

    def test_corrupt_file_is_moved_aside(self):
        self.path.parent.mkdir(parents=True)
        self.path.write_text("{not json", encoding="utf-8")
        store = JsonFileStore(self.path)
        self.assertEqual(store.keys(), [])
        self.assertEqual(store.backup_path.read_text(encoding="utf-8"), "{not json")

        store.set({"a": 1})
        self.assertEqual(store.backup_path.read_text(encoding="utf-8"), "{not json")
        self.assertEqual(JsonFileStore(self.path).get("a"), {"a": 1})

    def test_failed_set_leaves_previous_file_loadable(self):
        store = JsonFileStore(self.path)
        history = {"chatHistory_two-sum": [{"role": "user", "text": "how do I start?"}]}
        store.set(history)

        store.set({"reviewList": [object()]})

        self.assertEqual(store.get("reviewList"), {})
        reloaded = JsonFileStore(self.path)
        self.assertEqual(reloaded.get("chatHistory_two-sum"), history)
        reloaded.set({"topicCache": {"Two Sum": "Hash Table"}})
        self.assertEqual(sorted(JsonFileStore(self.path).keys()),
                         ["chatHistory_two-sum", "topicCache"])
        self.assertEqual([p.name for p in self.path.parent.iterdir()], ["local.json"])

    def test_interrupted_write_keeps_old_file(self):
        store = JsonFileStore(self.path)
        store.set({"a": 1})
        with patch("leetmentor.storage.os.replace", side_effect=OSError("disk full")):
            store.set({"b": 2})
        self.assertEqual(json.loads(self.path.read_text(encoding="utf-8")), {"a": 1})
        self.assertEqual([p.name for p in self.path.parent.iterdir()], ["local.json"])

    def test_unwritable_location_does_not_raise(self):
        blocker = self.tmp / "file"
        blocker.write_text("x", encoding="utf-8")
        store = JsonFileStore(blocker / "local.json")
        store.set({"a": 1})
        self.assertEqual(store.get("a"), {"a": 1})


class TestMemoryStore(unittest.TestCase):
    def test_values_are_copied(self):
        store = MemoryStore()
        value = {"list": [1]}
        store.set({"k": value})
        value["list"].append(2)
        got = store.get("k")["k"]
        got["list"].append(3)
        self.assertEqual(store.get("k"), {"k": {"list": [1]}})


class TestRepositories(unittest.TestCase):
    def setUp(self):
        self.storage = Storage.in_memory()

    def test_chat_history_per_problem(self):
        history = ChatHistoryStore(self.storage.local)
        turns = [{"role": "user", "text": "hi"}, {"role": "model", "text": "hello"}]
        history.save("two-sum", turns)
        self.assertEqual(history.load("two-sum"), turns)
        self.assertEqual(history.load("3sum"), [])
        self.assertIn("chatHistory_two-sum", self.storage.local.keys())

    def test_topic_cache_first_writer_wins(self):
        topics = TopicCacheStore(self.storage.local)
        self.assertEqual(topics.set_if_absent("Two Sum", "Hash Table"), "Hash Table")
        self.assertEqual(topics.set_if_absent("Two Sum", "Arrays"), "Hash Table")
        self.assertEqual(topics.get("Two Sum"), "Hash Table")
        self.assertIsNone(topics.get("3Sum"))

    def test_review_catalog_rejects_duplicate_pair(self):
        catalog = ReviewCatalogStore(self.storage.local)
        entry = {"concept": "Hash Table", "source": "Two Sum", "problems": [{"title": "A", "url": "u"}]}
        self.assertTrue(catalog.add(entry))
        self.assertTrue(catalog.has_notification())
        catalog.set_notification(False)

        other = dict(entry, problems=[{"title": "B", "url": "v"}])
        self.assertFalse(catalog.add(other))
        self.assertEqual(catalog.entries(), [entry])
        self.assertFalse(catalog.has_notification())

        self.assertTrue(catalog.add(dict(entry, source="3Sum")))
        self.assertEqual(len(catalog.entries()), 2)

    def test_solved_problems_unique_by_title(self):
        solved = SolvedProblemStore(self.storage.local)
        self.assertTrue(solved.add("Two Sum", "Hash Table"))
        self.assertFalse(solved.add("Two Sum", "Arrays"))
        self.assertEqual(solved.all(), [{"title": "Two Sum", "topic": "Hash Table"}])

    def test_clear_all_removes_only_owned_keys(self):
        ChatHistoryStore(self.storage.local).save("two-sum", [{"role": "user", "text": "x"}])
        TopicCacheStore(self.storage.local).set_if_absent("Two Sum", "Hash Table")
        LastHintStore(self.storage.session).set("two-sum", "hint")
        self.storage.local.set({"geminiApiKey": "keep-me"})

        self.storage.clear_all()

        self.assertEqual(self.storage.local.keys(), ["geminiApiKey"])
        self.assertEqual(self.storage.session.keys(), [])


if __name__ == "__main__":
    unittest.main()
