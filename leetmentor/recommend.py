"""Recommendation engine: topic labels, practice problems and the review catalog"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from . import config
from .gateway import GatewayError, ModelGateway
from .normalize import Problem
from .parsing import extract_problems
from .prompts import RECOMMENDATION_PROMPT, TOPIC_PROMPT
from .storage import ReviewCatalogStore, SolvedProblemStore, TopicCacheStore

logger = logging.getLogger(__name__)

# Cycle outcomes
ADDED = "added"
DUPLICATE = "duplicate"
EMPTY = "empty"
ERROR = "error"
SKIPPED = "skipped"


@dataclass
class ReviewEntry:
    concept: str
    source: str
    problems: List[Problem] = field(default_factory=list)

    def to_dict(self) -> Dict:
        return {
            "concept": self.concept,
            "source": self.source,
            "problems": [p.to_dict() for p in self.problems],
        }

    @classmethod
    def from_dict(cls, data: Dict) -> "ReviewEntry":
        problems = [
            Problem(title=p.get("title", ""), url=p.get("url", ""))
            for p in data.get("problems", []) if isinstance(p, dict)
        ]
        return cls(concept=data.get("concept", ""), source=data.get("source", ""), problems=problems)


@dataclass
class RecommendationResult:
    status: str
    topic: str = ""
    problems: List[Problem] = field(default_factory=list)
    error: str = ""


def clean_topic(raw: str) -> str:
    """First non-empty line, without quotes or trailing punctuation"""
    for line in raw.splitlines():
        line = line.strip(" \t\"'`*.")
        if line:
            return line
    return ""


def _has_title(title: str) -> bool:
    return bool(title and title.strip()) and title.strip() != config.NOT_FOUND_TITLE


class RecommendationEngine:
    """
    Every few helpful turns the conversation asks this engine for
    practice problems related to the current one. Results are merged into
    the persisted review catalog, one entry per (concept, source).
    """

    def __init__(self, gateway: ModelGateway, topics: TopicCacheStore,
                 catalog: ReviewCatalogStore, solved: SolvedProblemStore):
        self.gateway = gateway
        self.topics = topics
        self.catalog = catalog
        self.solved = solved

    def get_topic(self, title: str) -> str:
        """Cached concept label for title; one remote call on a miss"""
        cached = self.topics.get(title)
        if cached:
            return cached
        raw = self.gateway.ask(TOPIC_PROMPT.format(title=title))
        topic = clean_topic(raw)
        if not topic:
            return ""
        logger.info(f"Topic for '{title}': {topic}")
        return self.topics.set_if_absent(title, topic)

    def get_recommendations(self, title: str) -> List[Problem]:
        if not _has_title(title):
            logger.info("No problem title available, skipping recommendations")
            return []
        topic = self.get_topic(title)
        text = self.gateway.ask(RECOMMENDATION_PROMPT.format(topic=topic or title, title=title))
        return extract_problems(text)

    def run_cycle(self, title: str) -> RecommendationResult:
        """Fetch recommendations for title and merge them into the catalog"""
        if not _has_title(title):
            return RecommendationResult(status=SKIPPED)
        try:
            problems = self.get_recommendations(title)
        except GatewayError as e:
            logger.error(f"Recommendation cycle failed for '{title}': {e}")
            return RecommendationResult(status=ERROR, error=str(e))

        topic = self.topics.get(title) or ""
        if topic:
            self.solved.add(title, topic)
        if not problems:
            return RecommendationResult(status=EMPTY, topic=topic)

        entry = ReviewEntry(concept=topic or "General", source=title, problems=problems)
        inserted = self.catalog.add(entry.to_dict())
        status = ADDED if inserted else DUPLICATE
        return RecommendationResult(status=status, topic=entry.concept, problems=problems)

    def review_catalog(self) -> List[ReviewEntry]:
        return [ReviewEntry.from_dict(e) for e in self.catalog.entries() if isinstance(e, dict)]
