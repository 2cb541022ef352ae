"""LeetMentor - Socratic chat mentor for LeetCode problems"""

__version__ = "0.1.0"
__author__ = "LeetMentor contributors"

from .conversation import ChatTurn, ChatSession, ChatView, ConversationManager
from .gateway import GatewayError, ModelGateway, extract_text
from .normalize import Problem, normalize
from .page import PageLifecycle, ProblemContext, StaticPage, problem_slug
from .parsing import extract_problems
from .recommend import RecommendationEngine, ReviewEntry
from .storage import JsonFileStore, MemoryStore, Storage

__all__ = [
    "ChatTurn", "ChatSession", "ChatView", "ConversationManager",
    "GatewayError", "ModelGateway", "extract_text",
    "Problem", "normalize",
    "PageLifecycle", "ProblemContext", "StaticPage", "problem_slug",
    "extract_problems",
    "RecommendationEngine", "ReviewEntry",
    "JsonFileStore", "MemoryStore", "Storage",
]
