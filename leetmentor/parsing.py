"""
Recommendation text parsing.

Models asked for "a JSON array and nothing else" do not always comply, so
extraction runs an ordered chain of strategies and stops at the first one
that yields at least one usable problem.
"""

import re
import json
import logging
from typing import List, Optional, Sequence

from .normalize import Problem, normalize_all, dedupe_problems

logger = logging.getLogger(__name__)

_ARRAY_RE = re.compile(r"\[.*\]", re.S)
_FENCE_RE = re.compile(r"```(?:json)?", re.I)
_TRAILING_COMMA_RE = re.compile(r",\s*([\]}])")
_SMART_QUOTES = str.maketrans({"“": '"', "”": '"', "‘": "'", "’": "'"})

_URL_RE = re.compile(r"https?://[^\s<>()\[\]\"'`,]+|(?<![\w/])/problems/[^\s<>()\[\]\"'`,]+", re.I)
_ORDINAL_RE = re.compile(r"^\s*(?:[-*•>]+|\(?\d+[.):]|\(?[a-z][.)])\s*", re.I)
_TITLE_JUNK = " \t-–—:|*_\"'`[]()<>,;"


class ParseStrategy:
    """A single way of pulling candidate problems out of model text"""

    name = "base"

    def parse(self, text: str) -> Optional[List]:
        raise NotImplementedError


class JsonArrayStrategy(ParseStrategy):
    """Locate a [...] block and parse it as JSON"""

    name = "json"

    def _snippet(self, text: str) -> Optional[str]:
        match = _ARRAY_RE.search(_FENCE_RE.sub("", text))
        return match.group(0) if match else None

    def _load(self, snippet: str) -> Optional[List]:
        try:
            data = json.loads(snippet)
        except ValueError:
            return None
        return data if isinstance(data, list) else None

    def parse(self, text: str) -> Optional[List]:
        snippet = self._snippet(text)
        if snippet is None:
            return None
        return self._load(snippet)


class LenientJsonStrategy(JsonArrayStrategy):
    """Same as JsonArrayStrategy after removing trailing commas"""

    name = "lenient-json"

    def parse(self, text: str) -> Optional[List]:
        snippet = self._snippet(text)
        if snippet is None:
            return None
        cleaned = _TRAILING_COMMA_RE.sub(r"\1", snippet.translate(_SMART_QUOTES))
        return self._load(cleaned)


class LineUrlStrategy(ParseStrategy):
    """One problem per line: an embedded URL plus whatever text surrounds it"""

    name = "lines"

    def parse(self, text: str) -> Optional[List]:
        candidates = []
        for line in text.splitlines():
            line = line.strip()
            if not line:
                continue
            match = _URL_RE.search(line)
            if not match:
                continue
            url = match.group(0).rstrip(".")
            rest = (line[:match.start()] + " " + line[match.end():]).strip()
            rest = _ORDINAL_RE.sub("", rest)
            title = " ".join(rest.replace("](", " ").split()).strip(_TITLE_JUNK)
            candidates.append({"title": title, "url": url})
        return candidates or None


DEFAULT_STRATEGIES = (JsonArrayStrategy(), LenientJsonStrategy(), LineUrlStrategy())


def extract_problems(text: str, strategies: Sequence[ParseStrategy] = DEFAULT_STRATEGIES) -> List[Problem]:
    """Run the strategy chain over text; return normalized, deduplicated problems"""
    if not text or not text.strip():
        return []
    for strategy in strategies:
        candidates = strategy.parse(text)
        if not candidates:
            continue
        problems = dedupe_problems(normalize_all(candidates))
        if problems:
            logger.info(f"Extracted {len(problems)} problems using '{strategy.name}' strategy")
            return problems
    logger.warning("No recommendations could be extracted from model output")
    return []
