"""Prompt templates, canned responses and the short-hint pool"""

from . import config

SYSTEM_INSTRUCTION = (
    "You are an expert LeetCode programming mentor. Your goal is to help the user "
    "solve the current problem without giving them the answer.\n"
    "Follow these rules:\n"
    "1. NEVER provide the full, correct code solution.\n"
    "2. Guide the user with Socratic questions, hints and suggestions for debugging.\n"
    "3. Nudge them in the right direction, e.g. \"Have you considered what happens "
    "if the input array is empty?\"\n"
    "4. Stay strictly on the topic of the provided LeetCode problem. If asked about "
    "anything else, refuse and ask them to focus on the problem."
)

CONTEXT_TEMPLATE = (
    "Problem Title: {title}\n"
    "Problem Description: --- {description} ---\n"
    "My Current Code: --- {code} ---\n"
    "My Question: \"{question}\""
)

TOPIC_PROMPT = (
    "Based on the LeetCode problem title \"{title}\", what is the single most important "
    "data structure or algorithmic concept required to solve it efficiently?\n"
    "Respond with ONLY the name of the concept (e.g. \"Hash Table\", \"Two Pointers\", "
    "\"Dynamic Programming\", \"Binary Search\")."
)

RECOMMENDATION_PROMPT = (
    "List 2-3 classic, essential LeetCode problems that are excellent for practicing "
    "the concept of \"{topic}\".\n"
    "Do not include the original problem \"{title}\".\n"
    "Respond as a JSON array of {{\"title\", \"url\"}} objects, and nothing else.\n"
    "Example format: [{{\"title\": \"Problem A\", \"url\": \"" + config.SITE_ORIGIN
    + "/problems/problem-a/\"}}]"
)

GREETING_RESPONSE = (
    "Hello! 👋 I'm your LeetCode mentor. Ask me for a hint, help debugging, "
    "or a nudge on the approach for this problem."
)

OFF_TOPIC_RESPONSE = (
    "I can't help with general knowledge or news. I'm an on-problem coding mentor, "
    "so please ask about the current LeetCode problem."
)

ERROR_RESPONSE = "Sorry, I encountered an error. Please try again. ({error})"

NO_RECOMMENDATIONS_RESPONSE = (
    "I couldn't generate recommendations for this problem right now."
)

RECOMMENDATIONS_ADDED_RESPONSE = (
    "📚 Added {count} practice problem(s) on \"{topic}\" to your review list."
)

GENERIC_TOPIC = "the core technique"

SHORT_HINTS = (
    "Think about which {topic} idea fits this problem, and what it lets you avoid recomputing.",
    "Try a tiny example by hand first. Which step of {topic} do you repeat most?",
    "What is the brute-force approach, and where does {topic} cut down the work?",
    "Consider the edge cases: empty input, a single element, duplicates. Does your {topic} approach hold?",
    "What do you need to remember as you scan the input? That state is the heart of {topic} here.",
    "Can you state the invariant your {topic} solution keeps after each step?",
)
