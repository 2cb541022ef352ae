"""Configuration module for LeetMentor"""

import os
from pathlib import Path

# Base directories
BASE_DIR = Path(os.environ.get("LEETMENTOR_HOME", Path.home() / ".leetmentor"))
DATA_DIR = BASE_DIR / "storage"
LOCAL_STORE_FILE = DATA_DIR / "local.json"

# Site the mentor is attached to
SITE_ORIGIN = "https://leetcode.com"
PROBLEM_PATH_PREFIX = "/problems/"
NOT_FOUND_TITLE = "Title not found"
NOT_FOUND_DESCRIPTION = "Description not found"
NO_CODE_TEXT = "I haven't written any code yet."

# Model gateway settings
API_ENDPOINT = os.environ.get("LEETMENTOR_ENDPOINT", "http://localhost:3000/api/generate")
API_MODE = os.environ.get("LEETMENTOR_API_MODE", "proxy")  # 'proxy' or 'chat'
API_KEY = os.environ.get("LEETMENTOR_API_KEY", "")
MODEL_NAME = os.environ.get("LEETMENTOR_MODEL", "meta-llama/Llama-3.1-8B-Instruct")
MAX_TOKENS = 300
TEMPERATURE = 0.2
REQUEST_TIMEOUT = 30  # seconds
USER_AGENT = "LeetMentor/0.1 (+https://github.com/leetmentor/leetmentor)"

# Conversation settings
HELPFUL_TURN_THRESHOLD = 3  # helpful turns between recommendation cycles

# Page watcher
PAGE_POLL_INTERVAL = 1.0  # seconds

# CLI settings
CLI_PROMPT = "You"
CLI_ASSISTANT = "Mentor"
CLI_WIDTH = 80
CLI_WORD_DELAY = 0.03        # seconds between words when revealing a reply
CLI_THINKING_INTERVAL = 0.3  # seconds per frame of the "thinking" indicator
