"""Core chat operations consumed by the HTTP layer and the CLI."""

import logging
import random
from typing import Any, Dict, Optional

from agent import config
from agent.errors import InvalidId, MissingField, UserNotFound
from agent.graph import graph
from agent.llm import GeminiGenerator, Generator
from agent.prompts import greeting_prompt, validate_mood
from agent.slang import SlangDictionary, load_slang
from memory.schema import User
from memory.store import UserStore, is_valid_id
from memory.window import make_turn, push

logger = logging.getLogger(__name__)


def _require(**fields: Optional[str]) -> None:
    missing = [name for name, value in fields.items() if not value or not str(value).strip()]
    if missing:
        raise MissingField(*missing)


class ChatService:
    """Send messages and open conversations on behalf of stored users."""

    def __init__(
        self,
        store: Optional[UserStore] = None,
        generator: Optional[Generator] = None,
        slang: Optional[SlangDictionary] = None,
        rng: Optional[random.Random] = None,
        memory_policy: str = config.MEMORY_POLICY,
        chat_window_size: int = config.CHAT_WINDOW_SIZE,
        greeting_window_size: int = config.GREETING_WINDOW_SIZE,
        max_attempts: int = config.MAX_GENERATION_ATTEMPTS,
    ) -> None:
        self.store = store or UserStore()
        self.generator = generator or GeminiGenerator()
        self.slang = slang or load_slang()
        self.rng = rng or random.Random()
        self.memory_policy = memory_policy
        self.chat_window_size = chat_window_size
        self.greeting_window_size = greeting_window_size
        self.max_attempts = max_attempts

    def _run_config(self) -> Dict[str, Any]:
        return {
            "configurable": {
                "store": self.store,
                "generator": self.generator,
                "slang": self.slang,
                "rng": self.rng,
                "memory_policy": self.memory_policy,
                "window_size": self.chat_window_size,
                "max_attempts": self.max_attempts,
            },
            # Each attempt walks compose → generate; leave room for the fixed nodes.
            "recursion_limit": 2 * self.max_attempts + 10,
        }

    def send_message(
        self, username: str, message: str, mood: Optional[str] = None
    ) -> Dict[str, Any]:
        """Answer *message* from *username*, learning from it on the way.

        Returns:
            ``{"response", "extracted_memories", "relevant_memories"}``.

        Raises:
            MissingField: If username or message is absent.
            InvalidMood: If mood is not a supported mood.
            UserNotFound: If no user has this username.
            GenerationError: If the generation service failed for a reason
                other than moderation.
            PersistenceError: If the turn could not be stored.
        """
        _require(username=username, message=message)
        validate_mood(mood)

        state = graph.invoke(
            {"username": username, "message": message, "mood": mood},
            config=self._run_config(),
        )
        return {
            "response": state["response"],
            "extracted_memories": state["extracted_memories"],
            "relevant_memories": state["relevant_memories"],
        }

    def start_conversation(self, username: str, mood: str) -> Dict[str, str]:
        """Generate a mood-specific greeting and remember it.

        Moderation blocks are not retried here and propagate to the caller.
        """
        _require(username=username, mood=mood)
        validate_mood(mood)

        user = self.store.find_by_username(username)
        if user is None:
            raise UserNotFound(f"User '{username}' not found")
        user_id = user["id"]
        if not is_valid_id(user_id):
            raise InvalidId(f"Invalid user id format: {user_id!r}")

        initial_message = self.generator.generate(
            greeting_prompt(username, mood), max_tokens=config.GREETING_MAX_TOKENS
        )

        turn = make_turn("agent", initial_message)
        bound = self.greeting_window_size

        def remember(doc: User) -> User:
            doc["short_term_memory"] = push(doc.get("short_term_memory", []), turn, bound)
            return doc

        self.store.update(user_id, remember)
        logger.info("Started %s conversation for %s", mood, username)
        return {"initial_message": initial_message}
