"""Persistent JSON-backed user store.

Reads and writes a single JSON file holding one document per user, keyed by
user id. Every document carries the user's short-term window and long-term
memory as described in `memory.schema`.
"""

import copy
import json
import os
import re
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from agent import config
from agent.errors import PersistenceError, UserNotFound
from memory.schema import User, empty_long_term_memory

_ID_PATTERN = re.compile(r"^[0-9a-f]{32}$")


def is_valid_id(user_id: object) -> bool:
    """Return True if *user_id* has the shape of an id issued by the store."""
    return isinstance(user_id, str) and bool(_ID_PATTERN.match(user_id))


class UserStore:
    """File-backed document store of users, safe for concurrent writers in one process."""

    def __init__(self, path: str = config.USERS_PATH) -> None:
        self._path = path
        self._lock = threading.RLock()
        with self._lock:
            if not os.path.exists(self._path):
                self._write({})

    # ── Internal I/O ──────────────────────────────────────────────────────

    def _read(self) -> Dict[str, User]:
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                return json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise PersistenceError(f"Could not read {self._path}: {exc}") from exc

    def _write(self, data: dict) -> None:
        tmp_path = f"{self._path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2, ensure_ascii=False)
            os.replace(tmp_path, self._path)
        except OSError as exc:
            raise PersistenceError(f"Could not write {self._path}: {exc}") from exc

    # ── Public API ────────────────────────────────────────────────────────

    def create_user(self, username: str) -> User:
        """Create an empty memory aggregate for *username* and return it.

        Raises:
            ValueError: If the username is already taken.
        """
        with self._lock:
            data = self._read()
            if any(u["username"] == username for u in data.values()):
                raise ValueError(f"Username '{username}' is already taken")
            user: User = {
                "id": uuid.uuid4().hex,
                "username": username,
                "created_at": datetime.now(timezone.utc).isoformat(),
                "short_term_memory": [],
                "long_term_memory": empty_long_term_memory(),
            }
            data[user["id"]] = user
            self._write(data)
            return copy.deepcopy(user)

    def find_by_username(self, username: str) -> Optional[User]:
        for user in self._read().values():
            if user["username"] == username:
                return user
        return None

    def find_by_id(self, user_id: str) -> Optional[User]:
        return self._read().get(user_id)

    def save(self, user: User) -> None:
        """Overwrite the stored document of *user*."""
        with self._lock:
            data = self._read()
            data[user["id"]] = user
            self._write(data)

    def update(self, user_id: str, mutate: Callable[[User], User]) -> User:
        """Atomically apply *mutate* to the freshest copy of a user document.

        The read, the mutation and the write happen under one lock, so two
        requests for the same user cannot overwrite each other's changes.

        Raises:
            UserNotFound: If no document has *user_id*.
        """
        with self._lock:
            data = self._read()
            current = data.get(user_id)
            if current is None:
                raise UserNotFound(f"No user with id '{user_id}'")
            updated = mutate(copy.deepcopy(current))
            data[user_id] = updated
            self._write(data)
            return copy.deepcopy(updated)
