"""Conversation manager: per-problem transcripts, query routing and persistence"""

import zlib
import logging
import threading
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from . import config
from .classifier import classify, is_helpful, GREETING, SHORT_HINT, OFF_TOPIC
from .gateway import GatewayError, ModelGateway
from .page import ContextExtractor, problem_slug
from .prompts import (
    SYSTEM_INSTRUCTION, CONTEXT_TEMPLATE, GREETING_RESPONSE, OFF_TOPIC_RESPONSE,
    ERROR_RESPONSE, NO_RECOMMENDATIONS_RESPONSE, RECOMMENDATIONS_ADDED_RESPONSE,
    GENERIC_TOPIC, SHORT_HINTS,
)
from .recommend import RecommendationEngine, ADDED, EMPTY, ERROR
from .storage import (
    Storage, ChatHistoryStore, LastHintStore, TopicCacheStore,
    ReviewCatalogStore, SolvedProblemStore,
)

logger = logging.getLogger(__name__)

# Transcript key used when the page is not a problem page
GENERAL_KEY = "general"


class ChatTurn:
    """Single conversation turn"""

    def __init__(self, role: str, text: str):
        self.role = role  # 'user' or 'model'
        self.text = text

    def to_dict(self) -> Dict:
        return {"role": self.role, "text": self.text}

    @classmethod
    def from_dict(cls, data: Dict) -> "ChatTurn":
        return cls(role=data.get("role", "user"), text=data.get("text", ""))

    def __eq__(self, other):
        if not isinstance(other, ChatTurn):
            return NotImplemented
        return self.role == other.role and self.text == other.text

    def __repr__(self):
        return f"ChatTurn({self.role!r}, {self.text[:40]!r})"


@dataclass
class ChatSession:
    """In-memory state for the problem currently on screen"""
    problem_key: str
    problem_url: str = ""
    transcript: List[ChatTurn] = field(default_factory=list)
    helpful_count: int = 0


class ChatView:
    """
    Presentation callbacks. The default implementation does nothing;
    the CLI overrides these to print.
    """

    def show_turn(self, turn: ChatTurn):
        pass

    def show_loading(self):
        pass

    def clear_loading(self):
        pass

    def show_notice(self, text: str):
        pass

    def show_error(self, text: str):
        pass

    def clear(self):
        pass

    def update_badge(self, count: int, unread: bool):
        pass


class ConversationManager:
    """
    Owns the transcript for the active problem.

    Every submitted query is classified; greetings, short-hint requests and
    off-topic questions get a canned answer, everything else goes to the model
    gateway together with the problem context. Transcripts are checkpointed
    after every completed turn under chatHistory_<problem slug>.
    """

    def __init__(self, gateway: ModelGateway, storage: Storage, page: ContextExtractor,
                 view: ChatView = None, recommender: RecommendationEngine = None,
                 helpful_threshold: int = None):
        self.gateway = gateway
        self.storage = storage
        self.page = page
        self.view = view or ChatView()
        self.history = ChatHistoryStore(storage.local)
        self.last_hints = LastHintStore(storage.session)
        self.recommender = recommender or RecommendationEngine(
            gateway,
            TopicCacheStore(storage.local),
            ReviewCatalogStore(storage.local),
            SolvedProblemStore(storage.local),
        )
        self.helpful_threshold = helpful_threshold or config.HELPFUL_TURN_THRESHOLD
        self.session: Optional[ChatSession] = None
        self._busy = threading.Lock()

    # ── Page lifecycle ───────────────────────────────────────────────────────

    def on_hook_ready(self):
        self.view.show_notice(GREETING_RESPONSE)
        self.refresh_badge()

    def on_problem_changed(self, url: str):
        """Drop in-memory state and restore the transcript for the new problem"""
        key = problem_slug(url) or GENERAL_KEY
        turns = [ChatTurn.from_dict(t) for t in self.history.load(key) if isinstance(t, dict)]
        self.session = ChatSession(problem_key=key, problem_url=url, transcript=turns)
        logger.info(f"Switched to problem '{key}' with {len(turns)} stored turns")
        self.view.clear()
        for turn in turns:
            self.view.show_turn(turn)

    def _sync_page(self) -> ChatSession:
        url = self.page.current_url() or ""
        if self.session is None or self.session.problem_url != url:
            self.on_problem_changed(url)
        return self.session

    @property
    def transcript(self) -> List[ChatTurn]:
        return list(self.session.transcript) if self.session else []

    # ── Submission ───────────────────────────────────────────────────────────

    def submit(self, query: str) -> Optional[str]:
        """
        Handle one user query and return the reply text.
        Returns None for empty input, while another reply is pending, and
        when the model call fails or its reply is discarded.
        """
        query = (query or "").strip()
        if not query:
            return None
        if not self._busy.acquire(blocking=False):
            logger.info("Ignoring query while a reply is pending")
            return None
        try:
            session = self._sync_page()
            intent = classify(query)
            if intent == GREETING:
                return self._canned_reply(session, query, GREETING_RESPONSE)
            if intent == SHORT_HINT:
                return self._short_hint(session, query)
            if intent == OFF_TOPIC:
                return self._canned_reply(session, query, OFF_TOPIC_RESPONSE)
            return self._ask_model(session, query)
        finally:
            self._busy.release()

    def _append(self, session: ChatSession, turn: ChatTurn):
        session.transcript.append(turn)
        self.view.show_turn(turn)

    def _persist(self, session: ChatSession):
        self.history.save(session.problem_key, [t.to_dict() for t in session.transcript])

    def _canned_reply(self, session: ChatSession, query: str, reply: str) -> str:
        self._append(session, ChatTurn("user", query))
        self._append(session, ChatTurn("model", reply))
        self._persist(session)
        return reply

    def _short_hint(self, session: ChatSession, query: str) -> str:
        title = self.page.context().title
        topic = ""
        if title and title != config.NOT_FOUND_TITLE:
            try:
                topic = self.recommender.get_topic(title)
            except GatewayError as e:
                logger.warning(f"Topic lookup failed, using a generic hint: {e}")
        hint = self._pick_hint(session.problem_key, topic or GENERIC_TOPIC)
        self.last_hints.set(session.problem_key, hint)
        return self._canned_reply(session, query, hint)

    def _pick_hint(self, problem_key: str, topic: str) -> str:
        """Rotate through the hint pool, never repeating the last hint shown"""
        pool = [h.format(topic=topic) for h in SHORT_HINTS]
        last = self.last_hints.get(problem_key)
        if last in pool:
            start = pool.index(last) + 1
        else:
            start = zlib.crc32(f"{problem_key}:{topic}".encode("utf-8"))
        for offset in range(len(pool)):
            hint = pool[(start + offset) % len(pool)]
            if hint != last:
                return hint
        return pool[0]

    def _build_blocks(self, session: ChatSession, query: str):
        ctx = self.page.context()
        prompt = CONTEXT_TEMPLATE.format(
            title=ctx.title,
            description=ctx.description,
            code=ctx.code or config.NO_CODE_TEXT,
            question=query,
        )
        earlier = [(t.role, t.text) for t in session.transcript[:-1]]
        return [("system", SYSTEM_INSTRUCTION)] + earlier + [("user", prompt)], ctx.title

    def _ask_model(self, session: ChatSession, query: str) -> Optional[str]:
        user_turn = ChatTurn("user", query)
        self._append(session, user_turn)
        helpful = is_helpful(query)
        blocks, title = self._build_blocks(session, query)

        self.view.show_loading()
        try:
            reply = self.gateway.generate(blocks)
        except GatewayError as e:
            self.view.clear_loading()
            if session.transcript and session.transcript[-1] is user_turn:
                session.transcript.pop()
            logger.error(f"Model call failed: {e}")
            self.view.show_error(ERROR_RESPONSE.format(error=e))
            return None
        self.view.clear_loading()

        current = self.session
        if current is None or current.problem_key != session.problem_key:
            logger.warning(f"Discarding reply for '{session.problem_key}' after navigation")
            return None
        if current is not session:
            # Reloaded from storage, which never saw the pending user turn
            self._append(current, user_turn)

        self._append(current, ChatTurn("model", reply))
        self._persist(current)
        self._count_turn(current, helpful, title)
        return reply

    def _count_turn(self, session: ChatSession, helpful: bool, title: str):
        if session.helpful_count >= self.helpful_threshold:
            session.helpful_count = 0
            self.run_recommendations(title)
        elif helpful:
            session.helpful_count += 1

    # ── Recommendations & review catalog ─────────────────────────────────────

    def run_recommendations(self, title: str):
        result = self.recommender.run_cycle(title)
        if result.status == ADDED:
            self.view.show_notice(
                RECOMMENDATIONS_ADDED_RESPONSE.format(count=len(result.problems), topic=result.topic)
            )
            self.refresh_badge()
        elif result.status in (EMPTY, ERROR):
            self.view.show_notice(NO_RECOMMENDATIONS_RESPONSE)
        else:
            logger.info(f"Recommendation cycle for '{title}' finished: {result.status}")
        return result

    def refresh_badge(self):
        catalog = self.recommender.catalog
        self.view.update_badge(len(catalog.entries()), catalog.has_notification())

    def mark_reviews_read(self):
        self.recommender.catalog.set_notification(False)
        self.refresh_badge()

    def reset(self):
        """Clear every stored transcript, cache and review entry"""
        self.storage.clear_all()
        if self.session:
            self.session.transcript = []
            self.session.helpful_count = 0
        self.view.clear()
        self.refresh_badge()
