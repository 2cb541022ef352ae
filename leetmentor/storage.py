"""Key-value storage and the repositories built on top of it"""

import contextlib
import copy
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Union

from . import config

logger = logging.getLogger(__name__)

CHAT_HISTORY_PREFIX = "chatHistory_"
LAST_HINT_PREFIX = "lastShortHint_"
REVIEW_LIST_KEY = "reviewList"
TOPIC_CACHE_KEY = "topicCache"
SOLVED_PROBLEMS_KEY = "solvedProblems"
NOTIFICATION_KEY = "hasNotification"

Keys = Union[str, Iterable[str]]


def _as_list(keys: Keys) -> List[str]:
    if isinstance(keys, str):
        return [keys]
    return list(keys)


class MemoryStore:
    """
    In-memory key-value store.
    Used for the 'session' namespace and as a fake in tests.
    """

    def __init__(self, initial: Dict = None):
        self._data: Dict = copy.deepcopy(initial) if initial else {}

    def get(self, keys: Keys) -> Dict:
        """Return a dict holding the requested keys that exist"""
        return {k: copy.deepcopy(self._data[k]) for k in _as_list(keys) if k in self._data}

    def set(self, items: Dict):
        """Write every key in items"""
        for key, value in items.items():
            self._data[key] = copy.deepcopy(value)

    def remove(self, keys: Keys):
        for key in _as_list(keys):
            self._data.pop(key, None)

    def keys(self) -> List[str]:
        return list(self._data.keys())

    def clear(self):
        self._data = {}


class JsonFileStore(MemoryStore):
    """
    Persistent key-value store backed by a single JSON file.
    Used for the 'local' namespace. Every write rewrites the whole file.
    """

    def __init__(self, storage_path: Path = None):
        super().__init__()
        self.storage_path = Path(storage_path or config.LOCAL_STORE_FILE)
        self.load()

    def set(self, items: Dict):
        try:
            json.dumps(items)
        except (TypeError, ValueError) as e:
            logger.error(f"Not storing {sorted(items)}: values are not JSON serializable ({e})")
            return
        super().set(items)
        self.save()

    def remove(self, keys: Keys):
        super().remove(keys)
        self.save()

    def clear(self):
        super().clear()
        self.save()

    def save(self):
        """Save store to disk, replacing the old file only once the new one is written"""
        tmp_path = None
        try:
            payload = json.dumps(self._data, indent=2, ensure_ascii=False)
            self.storage_path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=self.storage_path.parent,
                                            prefix=f".{self.storage_path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, self.storage_path)
            tmp_path = None
            logger.debug(f"Saved {len(self._data)} keys to {self.storage_path}")
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Failed to save store {self.storage_path}: {e}")
        finally:
            if tmp_path is not None:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_path)

    @property
    def backup_path(self) -> Path:
        return self.storage_path.with_name(self.storage_path.name + ".corrupt")

    def load(self):
        """Load store from disk; an unreadable file is moved aside rather than overwritten"""
        try:
            if self.storage_path.exists():
                with open(self.storage_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                self._data = data if isinstance(data, dict) else {}
                logger.info(f"Loaded {len(self._data)} keys from {self.storage_path}")
        except ValueError as e:
            logger.error(f"Corrupt store {self.storage_path}, moving it to {self.backup_path}: {e}")
            self._data = {}
            try:
                os.replace(self.storage_path, self.backup_path)
            except OSError as move_error:
                logger.error(f"Failed to move corrupt store aside: {move_error}")
        except OSError as e:
            logger.error(f"Failed to load store {self.storage_path}: {e}")
            self._data = {}


class Storage:
    """The two storage namespaces: 'session' (per run) and 'local' (persistent)"""

    def __init__(self, session: MemoryStore = None, local: MemoryStore = None):
        self.session = session if session is not None else MemoryStore()
        self.local = local if local is not None else JsonFileStore()

    @classmethod
    def in_memory(cls) -> "Storage":
        return cls(session=MemoryStore(), local=MemoryStore())

    def clear_all(self):
        """Remove every namespaced key from both areas"""
        for area in (self.session, self.local):
            owned = [k for k in area.keys() if _is_owned_key(k)]
            if owned:
                area.remove(owned)
        logger.info("All stored mentor data cleared")


def _is_owned_key(key: str) -> bool:
    return (
        key.startswith(CHAT_HISTORY_PREFIX)
        or key.startswith(LAST_HINT_PREFIX)
        or key in (REVIEW_LIST_KEY, TOPIC_CACHE_KEY, SOLVED_PROBLEMS_KEY, NOTIFICATION_KEY)
    )


# ── Repositories ─────────────────────────────────────────────────────────────

class ChatHistoryStore:
    """Per-problem transcripts, stored as lists of {role, text} dicts"""

    def __init__(self, store: MemoryStore):
        self.store = store

    @staticmethod
    def key_for(problem_key: str) -> str:
        return f"{CHAT_HISTORY_PREFIX}{problem_key}"

    def load(self, problem_key: str) -> List[Dict]:
        key = self.key_for(problem_key)
        turns = self.store.get(key).get(key, [])
        return turns if isinstance(turns, list) else []

    def save(self, problem_key: str, turns: List[Dict]):
        self.store.set({self.key_for(problem_key): list(turns)})


class LastHintStore:
    """Last short hint shown per problem"""

    def __init__(self, store: MemoryStore):
        self.store = store

    def get(self, problem_key: str) -> Optional[str]:
        key = f"{LAST_HINT_PREFIX}{problem_key}"
        return self.store.get(key).get(key)

    def set(self, problem_key: str, hint: str):
        self.store.set({f"{LAST_HINT_PREFIX}{problem_key}": hint})


class TopicCacheStore:
    """Problem title -> concept label. First computed value wins."""

    def __init__(self, store: MemoryStore):
        self.store = store

    def _all(self) -> Dict[str, str]:
        cache = self.store.get(TOPIC_CACHE_KEY).get(TOPIC_CACHE_KEY, {})
        return cache if isinstance(cache, dict) else {}

    def get(self, title: str) -> Optional[str]:
        return self._all().get(title)

    def set_if_absent(self, title: str, topic: str) -> str:
        """Store topic unless one is already cached; return the cached value"""
        cache = self._all()
        if title in cache:
            return cache[title]
        cache[title] = topic
        self.store.set({TOPIC_CACHE_KEY: cache})
        return topic


class ReviewCatalogStore:
    """Ordered review entries plus the unread-notification flag"""

    def __init__(self, store: MemoryStore):
        self.store = store

    def entries(self) -> List[Dict]:
        entries = self.store.get(REVIEW_LIST_KEY).get(REVIEW_LIST_KEY, [])
        return entries if isinstance(entries, list) else []

    def add(self, entry: Dict) -> bool:
        """
        Append entry unless one with the same (concept, source) exists.
        Returns True when the entry was inserted.
        """
        entries = self.entries()
        pair = (entry.get("concept"), entry.get("source"))
        if any((e.get("concept"), e.get("source")) == pair for e in entries):
            logger.info(f"Review entry already present for {pair}")
            return False
        entries.append(entry)
        self.store.set({REVIEW_LIST_KEY: entries})
        self.set_notification(True)
        return True

    def has_notification(self) -> bool:
        return bool(self.store.get(NOTIFICATION_KEY).get(NOTIFICATION_KEY, False))

    def set_notification(self, flag: bool):
        self.store.set({NOTIFICATION_KEY: flag})


class SolvedProblemStore:
    """Unique {title, topic} records, one per title"""

    def __init__(self, store: MemoryStore):
        self.store = store

    def all(self) -> List[Dict]:
        solved = self.store.get(SOLVED_PROBLEMS_KEY).get(SOLVED_PROBLEMS_KEY, [])
        return solved if isinstance(solved, list) else []

    def add(self, title: str, topic: str) -> bool:
        solved = self.all()
        if any(item.get("title") == title for item in solved):
            return False
        solved.append({"title": title, "topic": topic})
        self.store.set({SOLVED_PROBLEMS_KEY: solved})
        return True
