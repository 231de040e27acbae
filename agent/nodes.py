"""Graph node functions.

Each function takes the current ChatState and returns a partial state update.
LangGraph merges the returned dict into the shared state automatically.

Collaborators (user store, generation service, slang dictionary, random
source) travel in ``config["configurable"]`` so the graph itself stays a
stateless, shareable object.
"""

import logging
import random

from langchain_core.runnables import RunnableConfig

from agent import config as settings
from agent.errors import GenerationError, InvalidId, ModerationBlocked, UserNotFound
from agent.guardrails import generation_logger
from agent.llm import RELAXED_SAFETY_SETTINGS
from agent.prompts import FALLBACK_MESSAGE, choose_template, compose_prompt, personalize, render_memory_context
from memory.extractor import extract
from memory.lifecycle import update_long_term_memory
from memory.retriever import retrieve
from memory.schema import User, empty_long_term_memory
from memory.store import is_valid_id
from memory.window import make_turn, push

logger = logging.getLogger(__name__)


def _configurable(config: RunnableConfig) -> dict:
    return (config or {}).get("configurable", {})


def _policy(config: RunnableConfig) -> str:
    return _configurable(config).get("memory_policy", settings.MEMORY_POLICY)


# ── Memory engine ────────────────────────────────────────────────────────────


def load_user_node(state: dict, config: RunnableConfig) -> dict:
    """Look the sender up by username and validate the stored id."""
    store = _configurable(config)["store"]
    user = store.find_by_username(state["username"])
    if user is None:
        raise UserNotFound(f"User '{state['username']}' not found")
    if not is_valid_id(user.get("id")):
        raise InvalidId(f"Invalid user id format: {user.get('id')!r}")
    return {"user": user, "attempts": 0, "blocked": False, "fell_back": False}


def extract_node(state: dict) -> dict:
    """Run the rule table over the user's message."""
    return {"extracted_memories": extract(state["message"])}


def recall_node(state: dict, config: RunnableConfig) -> dict:
    """Merge the new candidates and select the memories the message mentions.

    The merged memory only lives in the state here; it is persisted by
    ``commit_node`` once a reply exists.
    """
    long_term = update_long_term_memory(
        state["user"].get("long_term_memory") or empty_long_term_memory(),
        state["extracted_memories"],
        policy=_policy(config),
    )
    relevant = retrieve(long_term, state["message"])
    return {
        "long_term_memory": long_term,
        "relevant_memories": relevant,
        "memory_context": render_memory_context(relevant),
    }


# ── Generation ───────────────────────────────────────────────────────────────


def compose_node(state: dict, config: RunnableConfig) -> dict:
    """Pick a fresh template and assemble the full prompt."""
    rng = _configurable(config).get("rng") or random
    template = choose_template(state.get("mood"), rng)
    personalized = personalize(template, state["username"], state["message"])
    prompt = compose_prompt(
        state.get("memory_context", ""),
        state["user"].get("short_term_memory", []),
        personalized,
    )
    return {"prompt": prompt}


def generate_node(state: dict, config: RunnableConfig) -> dict:
    """Call the generation service once, recording moderation blocks."""
    generator = _configurable(config)["generator"]
    attempt = state.get("attempts", 0) + 1
    relaxed = state.get("mood") == "roast" or bool(
        state.get("relevant_memories", {}).get("preferences")
    )
    safety = RELAXED_SAFETY_SETTINGS if relaxed else None

    try:
        text = generator.generate(state["prompt"], safety_settings=safety)
    except ModerationBlocked as exc:
        logger.warning(
            "Generation for %s blocked by moderation (attempt %d)", state["username"], attempt
        )
        generation_logger.log(state["username"], attempt, "blocked", str(exc))
        return {"attempts": attempt, "blocked": True}
    except GenerationError as exc:
        generation_logger.log(state["username"], attempt, "error", str(exc))
        raise

    generation_logger.log(state["username"], attempt, "ok")
    return {"attempts": attempt, "blocked": False, "response": text}


def fallback_node(state: dict) -> dict:
    """Replace the reply with the fixed apology after the last blocked attempt."""
    logger.warning(
        "Falling back to apology for %s after %d blocked attempts",
        state["username"],
        state.get("attempts", 0),
    )
    return {"response": FALLBACK_MESSAGE, "fell_back": True}


def polish_node(state: dict, config: RunnableConfig) -> dict:
    """Rewrite canonical words of the reply into their slang form."""
    slang = _configurable(config)["slang"]
    return {"response": slang.apply(state["response"])}


# ── Persistence ──────────────────────────────────────────────────────────────


def commit_node(state: dict, config: RunnableConfig) -> dict:
    """Persist the turn: merged long-term memory plus user and agent turns.

    The candidates are merged again into the freshest stored document so a
    concurrent turn for the same user is not overwritten; merging is
    idempotent, so this gives the same result when there was no race.
    """
    options = _configurable(config)
    store = options["store"]
    bound = options.get("window_size", settings.CHAT_WINDOW_SIZE)
    user_id = state["user"]["id"]
    if not is_valid_id(user_id):
        raise InvalidId(f"Invalid user id format: {user_id!r}")

    user_turn = make_turn("user", state["message"])
    agent_turn = make_turn("agent", state["response"])

    def mutate(user: User) -> User:
        user["long_term_memory"] = update_long_term_memory(
            user.get("long_term_memory") or empty_long_term_memory(),
            state["extracted_memories"],
            policy=_policy(config),
        )
        window = push(user.get("short_term_memory", []), user_turn, bound)
        user["short_term_memory"] = push(window, agent_turn, bound)
        return user

    return {"user": store.update(user_id, mutate)}
