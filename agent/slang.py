"""Slang dictionary and the informal rewrite pass applied to replies.

The dictionary maps an informal word to its canonical form. It is loaded
once per path and exposed read-only; the rewrite pass runs it backwards,
turning canonical words in generated text into their informal variant.
"""

import json
import re
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping

from agent import config

PUNCTUATION = ".,!?;:\"'()…"

_WHITESPACE = re.compile(r"(\s+)")


class SlangDictionary:
    """Immutable informal → canonical word mapping with a reverse index."""

    def __init__(self, entries: Mapping[str, str]) -> None:
        self.entries: Mapping[str, str] = MappingProxyType(dict(entries))
        reverse: dict[str, str] = {}
        for informal, canonical in self.entries.items():
            reverse.setdefault(canonical, informal)  # first key wins
        self._by_canonical: Mapping[str, str] = MappingProxyType(reverse)

    def __len__(self) -> int:
        return len(self.entries)

    def _rewrite_token(self, token: str) -> str:
        core = token.strip(PUNCTUATION)
        if not core or core not in self._by_canonical:
            return token
        start = len(token) - len(token.lstrip(PUNCTUATION))
        end = start + len(core)
        return token[:start] + self._by_canonical[core] + token[end:]

    def apply(self, text: str) -> str:
        """Rewrite every whitespace-delimited token of *text*, keeping spacing."""
        parts = _WHITESPACE.split(text)
        return "".join(
            part if not part or part.isspace() else self._rewrite_token(part)
            for part in parts
        )


@lru_cache(maxsize=None)
def load_slang(path: str = config.SLANG_PATH) -> SlangDictionary:
    """Load the dictionary at *path* once and share it for the process lifetime."""
    with open(path, "r", encoding="utf-8") as f:
        return SlangDictionary(json.load(f))
