"""Problem page context and lifecycle notifications"""

import re
import logging
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from . import config

logger = logging.getLogger(__name__)

_SLUG_RE = re.compile(r"/problems/([^/?#]+)")


def problem_slug(url: str) -> Optional[str]:
    """
    Problem key for a page URL.
    'https://leetcode.com/problems/two-sum/description/' -> 'two-sum'
    """
    if not url:
        return None
    path = urlparse(url).path if "://" in url else url
    match = _SLUG_RE.search(path)
    return match.group(1).lower() if match else None


def html_to_text(html: str) -> str:
    """Reduce a problem description (usually HTML) to readable text"""
    if not html:
        return ""
    if "<" not in html:
        return html.strip()
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(["script", "style"]):
        tag.decompose()
    text = soup.get_text(separator="\n")
    lines = [line.strip() for line in text.splitlines()]
    return "\n".join(line for line in lines if line)


@dataclass
class ProblemContext:
    title: str = config.NOT_FOUND_TITLE
    description: str = config.NOT_FOUND_DESCRIPTION
    code: str = ""


class ContextExtractor:
    """Reads the live page. Hosts provide their own implementation."""

    def current_url(self) -> str:
        raise NotImplementedError

    def context(self) -> ProblemContext:
        raise NotImplementedError


class StaticPage(ContextExtractor):
    """A page whose state is set directly (CLI sessions, tests)"""

    def __init__(self, url: str = "", title: str = None, description: str = None, code: str = ""):
        self.url = url
        self.title = title
        self.description = description
        self.code = code

    def open(self, url: str, title: str = None, description: str = None, code: str = ""):
        self.url = url
        self.title = title
        self.description = description
        self.code = code

    def current_url(self) -> str:
        return self.url

    def context(self) -> ProblemContext:
        title = self.title
        if not title:
            slug = problem_slug(self.url)
            title = slug.replace("-", " ").title() if slug else config.NOT_FOUND_TITLE
        description = html_to_text(self.description or "") or config.NOT_FOUND_DESCRIPTION
        return ProblemContext(title=title, description=description, code=self.code or "")


class PageLifecycle:
    """
    Watches the page URL and notifies listeners.

    on_hook_ready handlers fire once, the first time a problem page is seen.
    on_problem_changed handlers fire with the new URL whenever it changes.
    """

    def __init__(self, url_source: Callable[[], str]):
        self.url_source = url_source
        self.last_url: Optional[str] = None
        self._ready = False
        self._changed: List[Callable[[str], None]] = []
        self._hook_ready: List[Callable[[], None]] = []
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def on_problem_changed(self, handler: Callable[[str], None]):
        self._changed.append(handler)

    def on_hook_ready(self, handler: Callable[[], None]):
        self._hook_ready.append(handler)

    def poll(self) -> bool:
        """Check the URL once. Returns True if listeners were notified of a change."""
        url = self.url_source() or ""
        if not self._ready and problem_slug(url):
            self._ready = True
            for handler in self._hook_ready:
                handler()
        if url == self.last_url:
            return False
        previous, self.last_url = self.last_url, url
        logger.info(f"Page changed: {previous} -> {url}")
        for handler in self._changed:
            handler(url)
        return True

    def _watch(self, interval: float):
        while True:
            try:
                self.poll()
            except Exception:
                logger.exception("Page watcher handler failed")
            if self._stop.wait(interval):
                break

    def start(self, interval: float = None):
        if self._thread and self._thread.is_alive():
            return self
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._watch, args=(interval or config.PAGE_POLL_INTERVAL,), daemon=True
        )
        self._thread.start()
        return self

    def stop(self):
        self._stop.set()
        if self._thread:
            self._thread.join()
            self._thread = None
