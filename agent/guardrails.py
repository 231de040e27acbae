"""Generation guardrails — moderation detection, attempt logging and retry limits.

All guardrail logic lives here to keep nodes.py and graph.py focused on
their primary responsibilities.
"""

import json
import os
import time
from typing import Optional

from agent import config

# ── Moderation detection ──────────────────────────────────────────────────────

# Substrings (upper-cased) that reveal a content-policy rejection in the
# text of a provider error or in a finish reason.
MODERATION_SIGNALS = ("SAFETY", "BLOCKED", "PROHIBITED_CONTENT", "BLOCKLIST", "SPII")


def is_moderation_signal(text: Optional[str]) -> bool:
    """Return True if *text* names a moderation block."""
    if not text:
        return False
    upper = str(text).upper()
    return any(signal in upper for signal in MODERATION_SIGNALS)


# ── Generation-attempt logger ─────────────────────────────────────────────────


class GenerationLogger:
    """Append-only JSON-lines logger for every generation attempt."""

    def __init__(self, log_dir: str = config.GENERATION_LOG_DIR):
        self._log_path = os.path.join(log_dir, "generation.jsonl")

    def log(
        self,
        username: str,
        attempt: int,
        outcome: str,
        detail: str = "",
    ) -> None:
        """Write a single log entry."""
        entry = {
            "ts": time.strftime("%Y-%m-%dT%H:%M:%S%z"),
            "username": username,
            "attempt": attempt,
            "outcome": outcome,
            "detail": detail[:500],  # keep logs compact
        }
        with open(self._log_path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")


# Shared singleton
generation_logger = GenerationLogger()


# ── Retry limit ───────────────────────────────────────────────────────────────


def attempts_exhausted(
    attempts: int, max_attempts: int = config.MAX_GENERATION_ATTEMPTS
) -> bool:
    """Return True once *attempts* blocked generations used up the budget."""
    return attempts >= max_attempts
