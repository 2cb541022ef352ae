"""Problem normalization: turn loosely-shaped model output into Problems"""

import re
import logging
from dataclasses import dataclass, asdict
from typing import Dict, Iterable, List, Optional
from urllib.parse import unquote, urlparse

from . import config

logger = logging.getLogger(__name__)

_TITLE_FIELDS = ("title", "name", "label", "text")
_URL_FIELDS = ("url", "link", "href")

_SLUG_STRIP_RE = re.compile(r"[^a-z0-9]+")
_WORD_SPLIT_RE = re.compile(r"[-_\s]+")


@dataclass(frozen=True)
class Problem:
    """A practice problem recommendation"""
    title: str
    url: str

    def to_dict(self) -> Dict:
        return asdict(self)


def slugify(title: str) -> str:
    """'Two Sum' -> 'two-sum'"""
    return _SLUG_STRIP_RE.sub("-", title.lower()).strip("-")


def problem_url(slug: str) -> str:
    return f"{config.SITE_ORIGIN}{config.PROBLEM_PATH_PREFIX}{slug}/"


def absolute_url(url: str) -> str:
    """Rewrite site-relative and protocol-relative URLs to absolute ones"""
    url = url.strip()
    if url.startswith("//"):
        return "https:" + url
    if url.startswith("/"):
        return config.SITE_ORIGIN + url
    return url


def title_from_url(url: str) -> str:
    """
    Infer a title from a problem URL.
    '/problems/add-two-numbers/' -> 'Add Two Numbers'
    """
    try:
        path = urlparse(url).path if "://" in url else url
    except ValueError:
        return ""
    segments = [s for s in path.split("/") if s]
    if not segments:
        return ""
    segment = segments[-1]
    if "problems" in segments:
        index = segments.index("problems")
        if index + 1 < len(segments):
            segment = segments[index + 1]
    words = [w for w in _WORD_SPLIT_RE.split(unquote(segment)) if w]
    return " ".join(w[:1].upper() + w[1:] for w in words)


def _first_text(candidate: Dict, fields: Iterable[str]) -> str:
    for field in fields:
        value = candidate.get(field)
        if value is None or isinstance(value, (dict, list)):
            continue
        text = str(value).strip()
        if text:
            return text
    return ""


def normalize(candidate) -> Optional[Problem]:
    """
    Normalize a candidate into a Problem.

    Accepts a Problem, a plain string (taken as a title) or a mapping with any
    of title/name/label/text and any of url/link/href. Returns None when
    neither a title nor a url can be recovered. Never raises.
    """
    if isinstance(candidate, Problem):
        title, url = candidate.title.strip(), candidate.url.strip()
    elif isinstance(candidate, str):
        title, url = candidate.strip(), ""
    elif isinstance(candidate, dict):
        title = _first_text(candidate, _TITLE_FIELDS)
        url = _first_text(candidate, _URL_FIELDS)
    else:
        return None

    if url:
        url = absolute_url(url)
    if not url and title:
        slug = slugify(title)
        if slug:
            url = problem_url(slug)
    if not title and url:
        title = title_from_url(url)

    if not title and not url:
        return None
    return Problem(title=title, url=url)


def normalize_all(candidates: Iterable) -> List[Problem]:
    """Normalize every candidate, dropping the ones that yield nothing"""
    problems = []
    for candidate in candidates:
        problem = normalize(candidate)
        if problem is None:
            logger.debug(f"Dropped unusable candidate: {candidate!r}")
            continue
        problems.append(problem)
    return problems


def dedupe_problems(problems: Iterable[Problem]) -> List[Problem]:
    """Keep the first occurrence of each url"""
    seen = set()
    unique = []
    for problem in problems:
        key = (problem.url or problem.title).lower().rstrip("/")
        if key in seen:
            continue
        seen.add(key)
        unique.append(problem)
    return unique
