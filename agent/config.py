"""Centralized companion configuration.

Reads from environment variables with sensible defaults so that the service
works out of the box while remaining fully customizable.
"""

import os

from dotenv import load_dotenv

load_dotenv()


# ── LLM Settings ──────────────────────────────────────────────────────────────
MODEL_NAME: str = os.getenv("AGENT_MODEL", "gemini-2.0-flash")
TEMPERATURE: float = float(os.getenv("AGENT_TEMPERATURE", "0.7"))
MAX_GENERATION_ATTEMPTS: int = int(os.getenv("AGENT_MAX_GENERATION_ATTEMPTS", "3"))
GREETING_MAX_TOKENS: int = int(os.getenv("AGENT_GREETING_MAX_TOKENS", "50"))

# ── Storage ───────────────────────────────────────────────────────────────────
DATA_DIR: str = os.path.abspath(os.getenv("AGENT_DATA_DIR", "./workspace"))
os.makedirs(DATA_DIR, exist_ok=True)

USERS_PATH: str = os.getenv("AGENT_USERS_PATH", os.path.join(DATA_DIR, "users.json"))

GENERATION_LOG_DIR: str = os.path.join(DATA_DIR, ".generation_logs")
os.makedirs(GENERATION_LOG_DIR, exist_ok=True)

# ── Memory policy ─────────────────────────────────────────────────────────────
CHAT_WINDOW_SIZE: int = int(os.getenv("AGENT_CHAT_WINDOW_SIZE", "5"))
GREETING_WINDOW_SIZE: int = int(os.getenv("AGENT_GREETING_WINDOW_SIZE", "3"))

# "migrate" upgrades legacy string entries and never forgets;
# "expire" drops items older than MEMORY_RETENTION_DAYS.
MEMORY_POLICY: str = os.getenv("AGENT_MEMORY_POLICY", "migrate").strip().lower()
MEMORY_RETENTION_DAYS: int = int(os.getenv("AGENT_MEMORY_RETENTION_DAYS", "30"))

# ── Assets ────────────────────────────────────────────────────────────────────
SLANG_PATH: str = os.getenv(
    "AGENT_SLANG_PATH",
    os.path.join(os.path.dirname(os.path.abspath(__file__)), "slang.json"),
)

# ── Logging ───────────────────────────────────────────────────────────────────
LOG_LEVEL: str = os.getenv("AGENT_LOG_LEVEL", "INFO").upper()

# ── API Keys ──────────────────────────────────────────────────────────────────
GOOGLE_API_KEY: str = os.getenv("GOOGLE_API_KEY", "")
