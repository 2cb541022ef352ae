"""Query classification for the mentor chat"""

import re
from typing import Optional

# Intent keys, in precedence order
GREETING = "greeting"
SHORT_HINT = "short_hint"
OFF_TOPIC = "off_topic"
DEFAULT = "default"

_GREET_RE = re.compile(
    r'^\s*(hi+|hello+|hey+|hiya|howdy|yo|greetings|'
    r'good\s*(morning|afternoon|evening|day))\s*[!?.,]*\s*$', re.I)

_SHORT_HINT_RE = re.compile(
    r'^\s*(please\s+)?((can|could)\s+you\s+)?(give\s+me\s+|i\s+(want|need)\s+)?'
    r'(just\s+)?(a\s+)?(small|tiny|quick|short|little|mini)\s+(hint|nudge)'
    r'(\s+please)?\s*[!?.]*\s*$|'
    r'^\s*(just\s+a\s+hint|a\s+little\s+nudge|nudge(\s+me)?)\s*(please)?\s*[!?.]*\s*$',
    re.I)

_OFF_TOPIC_RE = re.compile(
    r'\b(capital|news|weather|president|prime\s+minister|what\s+is\s+happening|'
    r'who\s+is|country|stock\s+price|election|celebrity|football|cricket|movie)s?\b',
    re.I)

_HELPFUL_TERMS = (
    'hint', 'debug', 'approach', 'complexity', 'edge case', 'optimi',
    'bug', 'error', 'stuck', 'intuition', 'algorithm', 'data structure',
    'test case', 'time limit', 'wrong answer', 'why', 'explain',
)

# Question phrasing that asks for guidance
_QUESTION_RE = re.compile(
    r'^\s*(can\s+you|could\s+you|would\s+you|how\s+(do|can|should)\s+i|'
    r'what\s+if|is\s+there|should\s+i|why\s+(does|is|do)|where\s+(is|am)|'
    r'what\s+(am\s+i|should)|help\s+me)\b', re.I)


def is_greeting(query: str) -> bool:
    return bool(_GREET_RE.match(query))


def is_short_hint(query: str) -> bool:
    return bool(_SHORT_HINT_RE.match(query))


def is_off_topic(query: str) -> bool:
    return bool(_OFF_TOPIC_RE.search(query))


def is_helpful(query: str) -> bool:
    """True if the query asks for substantive guidance on the problem"""
    q = query.lower()
    if any(term in q for term in _HELPFUL_TERMS):
        return True
    return bool(_QUESTION_RE.match(q))


def classify(query: str) -> Optional[str]:
    """Return the intent key for query, or None for empty input"""
    q = query.strip()
    if not q:
        return None
    if is_greeting(q):     return GREETING
    if is_short_hint(q):   return SHORT_HINT
    if is_off_topic(q):    return OFF_TOPIC
    return DEFAULT
