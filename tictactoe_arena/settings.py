# Defaults for the tic-tac-toe arena; anything here can be overridden in config.json

import os

from dotenv import load_dotenv

load_dotenv()

CONFIG_FILE = os.getenv("ARENA_CONFIG", "config.json")

# --- Models ---
DEFAULT_API_KEY_ENV = "OPENAI_API_KEY"
# Values shipped in example configs; treated the same as a missing key
PLACEHOLDER_API_KEYS = {
    "",
    "your-openai-api-key-here",
    "your-api-key-here",
    "sk-...",
}
DEFAULT_REASONING_EFFORT = "medium"
# Model families that take `max_completion_tokens` instead of `max_tokens`
MAX_COMPLETION_TOKENS_PREFIXES = ("gpt-5", "o1", "o3", "o4")

# --- Tournament ---
DEFAULT_ROUNDS = 1
DEFAULT_TIMEOUT_MS = 60_000
DEFAULT_MAX_TOKENS = 1000
DEFAULT_MAX_RETRIES = 3
DEFAULT_BACKOFF_BASE_MS = 1000
DEFAULT_BACKOFF_MULTIPLIER = 2.0

# --- Logs ---
LOGS_DIR = os.getenv("ARENA_LOGS_DIR", "logs")
MATCHES_DIR = os.path.join(LOGS_DIR, "matches")
OUTCOMES_FILE = os.path.join(LOGS_DIR, "outcomes.jsonl")
STATISTICS_FILE = os.path.join(LOGS_DIR, "statistics.json")

# --- Prompts ---
VERBOSE_SYSTEM_PROMPT = """
You are playing a competitive game of tic-tac-toe on a 3x3 board. Rows and columns are numbered 0 to 2, starting from the top left corner. First one to get 3 in a straight line across, down, or diagonally wins.

Each turn you'll be shown the current board, where '-' marks an empty cell, along with the list of empty cells and the moves played so far. Think about your move as much as you like, but the LAST line of your response must contain only your move formatted as `row,col`, for example:
1,2
""".strip()

MINIMAL_SYSTEM_PROMPT = """
You are playing tic-tac-toe on a 3x3 board with rows and columns numbered 0 to 2. '-' marks an empty cell. Reply with your move only, formatted as `row,col` (for example `1,2`), and nothing else.
""".strip()
