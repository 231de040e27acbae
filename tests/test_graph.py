"""Tests for the chat graph and the ChatService operations.

These tests verify routing, the moderation retry loop and what gets
persisted. They do NOT require API keys — the generator is scripted.
"""

import pytest

from conftest import FakeGenerator


def test_graph_compiles():
    """The graph compiles without errors."""
    from agent.graph import graph

    assert graph is not None


def test_graph_has_expected_nodes():
    """The compiled graph has every memory and generation node."""
    from agent.graph import graph

    node_names = set(graph.get_graph().nodes.keys())
    for expected in ("load_user", "extract", "recall", "compose", "generate",
                     "fallback", "polish", "commit"):
        assert expected in node_names, f"'{expected}' node missing. Found: {node_names}"


def test_chat_state_has_retry_fields():
    from agent.state import ChatState

    for key in ("attempts", "blocked", "fell_back", "response"):
        assert key in ChatState.__annotations__


# ── Routing ──────────────────────────────────────────────────────────────────


def test_route_success_goes_to_polish():
    from agent.graph import _after_generate

    assert _after_generate({"blocked": False, "attempts": 1}, {}) == "polish"


def test_route_blocked_retries_while_attempts_remain():
    from agent.graph import _after_generate

    config = {"configurable": {"max_attempts": 3}}
    assert _after_generate({"blocked": True, "attempts": 1}, config) == "compose"
    assert _after_generate({"blocked": True, "attempts": 2}, config) == "compose"


def test_route_blocked_falls_back_when_attempts_used_up():
    from agent.graph import _after_generate

    config = {"configurable": {"max_attempts": 3}}
    assert _after_generate({"blocked": True, "attempts": 3}, config) == "fallback"


# ── send_message ─────────────────────────────────────────────────────────────


def test_send_message_learns_recalls_and_replies(make_service, store, user):
    generator = FakeGenerator("Taip, kava yra šaunu!")
    service = make_service(generator)

    result = service.send_message("jonas", "Man labai patinka kava")

    assert result["response"] == "Taip, kava yra faina!"
    assert [i["content"] for i in result["extracted_memories"]["preferences"]] == ["kava"]
    assert [i["content"] for i in result["relevant_memories"]["preferences"]] == ["kava"]

    prompt = generator.calls[0]["prompt"]
    assert "Speak Lithuanian language only" in prompt
    assert "PREFERENCES: Patinka: kava" in prompt
    assert "jonas" in prompt and "Man labai patinka kava" in prompt
    # A recalled preference relaxes the moderation thresholds.
    assert generator.calls[0]["safety_settings"] is not None

    stored = store.find_by_id(user["id"])
    assert [i["content"] for i in stored["long_term_memory"]["preferences"]] == ["kava"]
    assert [(t["sender"], t["text"]) for t in stored["short_term_memory"]] == [
        ("user", "Man labai patinka kava"),
        ("agent", "Taip, kava yra faina!"),
    ]


def test_send_message_without_memories_uses_default_safety(make_service, user):
    generator = FakeGenerator("Labas!")
    make_service(generator).send_message("jonas", "Kaip sekasi?")

    assert generator.calls[0]["safety_settings"] is None


def test_history_from_previous_turns_reaches_the_prompt(make_service, user):
    generator = FakeGenerator("Pirmas atsakymas", "Antras atsakymas")
    service = make_service(generator)

    service.send_message("jonas", "Labas")
    service.send_message("jonas", "Kas naujo?")

    second_prompt = generator.calls[1]["prompt"]
    assert "POKALBIO ISTORIJA:\nVartotojas: Labas\nAI: Pirmas atsakymas" in second_prompt


def test_duplicate_preference_is_stored_once(make_service, store, user):
    service = make_service(FakeGenerator("a", "b"))

    service.send_message("jonas", "Man labai patinka kava")
    service.send_message("jonas", "Man niekada nepatinka kava")

    prefs = store.find_by_id(user["id"])["long_term_memory"]["preferences"]
    assert [i["content"] for i in prefs] == ["kava"]
    assert prefs[0]["is_positive"] is True


def test_window_is_bounded(make_service, store, user):
    service = make_service(FakeGenerator(default="ok"), chat_window_size=5)

    for n in range(4):
        service.send_message("jonas", f"žinutė {n}")

    window = store.find_by_id(user["id"])["short_term_memory"]
    assert len(window) == 5
    assert [t["text"] for t in window] == ["ok", "žinutė 2", "ok", "žinutė 3", "ok"]


def test_legacy_memories_are_migrated_on_next_message(make_service, store, user):
    def legacy(doc):
        doc["long_term_memory"]["preferences"] = ["arbata"]
        return doc

    store.update(user["id"], legacy)
    make_service(FakeGenerator("ok")).send_message("jonas", "Ar turime arbata?")

    prefs = store.find_by_id(user["id"])["long_term_memory"]["preferences"]
    assert prefs[0]["content"] == "arbata"
    assert prefs[0]["is_positive"] is True
    assert prefs[0]["context"]["timestamp"]


# ── Moderation retry ─────────────────────────────────────────────────────────


def test_third_attempt_succeeds_after_two_blocks(make_service, user):
    from agent.errors import ModerationBlocked

    generator = FakeGenerator(
        ModerationBlocked("Candidate was blocked due to SAFETY"),
        ModerationBlocked("Candidate was blocked due to SAFETY"),
        "Trečias kartas",
    )
    result = make_service(generator).send_message("jonas", "Labas")

    assert result["response"] == "Trečias kartas"
    assert len(generator.calls) == 3


def test_three_blocks_fall_back_to_apology(make_service, store, user):
    from agent.errors import ModerationBlocked
    from agent.prompts import FALLBACK_MESSAGE

    generator = FakeGenerator(*(ModerationBlocked("SAFETY") for _ in range(3)), default="never")
    result = make_service(generator).send_message("jonas", "Labas")

    assert result["response"] == FALLBACK_MESSAGE
    assert len(generator.calls) == 3
    window = store.find_by_id(user["id"])["short_term_memory"]
    assert window[-1]["text"] == FALLBACK_MESSAGE


def test_generation_error_propagates_and_persists_nothing(make_service, store, user):
    from agent.errors import GenerationError

    generator = FakeGenerator(GenerationError("quota exceeded"))
    with pytest.raises(GenerationError):
        make_service(generator).send_message("jonas", "Man labai patinka kava")

    assert len(generator.calls) == 1
    stored = store.find_by_id(user["id"])
    assert stored["short_term_memory"] == []
    assert stored["long_term_memory"]["preferences"] == []


def test_roast_mood_uses_sarcastic_templates(make_service, user):
    from agent.prompts import ROAST_TEMPLATES

    generator = FakeGenerator("ha")
    make_service(generator).send_message("jonas", "Labas", mood="roast")

    prompt = generator.calls[0]["prompt"]
    tails = [t.replace("{username}", "jonas", 1).replace("{message}", "Labas", 1) for t in ROAST_TEMPLATES]
    assert any(prompt.endswith(tail) for tail in tails)
    assert generator.calls[0]["safety_settings"] is not None


# ── Input validation ─────────────────────────────────────────────────────────


@pytest.mark.parametrize("username, message", [("", "Labas"), ("jonas", ""), (None, "Labas"), ("jonas", "   ")])
def test_missing_fields(make_service, user, username, message):
    from agent.errors import MissingField

    with pytest.raises(MissingField):
        make_service().send_message(username, message)


def test_unknown_user(make_service):
    from agent.errors import UserNotFound

    with pytest.raises(UserNotFound):
        make_service().send_message("niekas", "Labas")


def test_unknown_mood(make_service, user):
    from agent.errors import InvalidMood

    with pytest.raises(InvalidMood):
        make_service().send_message("jonas", "Labas", mood="grumpy")


def test_corrupted_user_id_is_rejected(make_service, store, user):
    from agent.errors import InvalidId

    def corrupt(doc):
        doc["id"] = "not-an-id"
        return doc

    store.update(user["id"], corrupt)

    with pytest.raises(InvalidId):
        make_service().send_message("jonas", "Labas")


# ── start_conversation ───────────────────────────────────────────────────────


def test_start_conversation_greets_and_remembers(make_service, store, user):
    generator = FakeGenerator("Labas, Jonai!")
    result = make_service(generator).start_conversation("jonas", "happy")

    assert result == {"initial_message": "Labas, Jonai!"}
    call = generator.calls[0]
    assert call["max_tokens"] == 50
    assert "jonas is feeling really good today" in call["prompt"]
    assert "Speak Lithuanian language only" in call["prompt"]
    window = store.find_by_id(user["id"])["short_term_memory"]
    assert [(t["sender"], t["text"]) for t in window] == [("agent", "Labas, Jonai!")]


def test_start_conversation_uses_greeting_bound(make_service, store, user):
    from memory.window import make_turn

    def seed(doc):
        doc["short_term_memory"] = [make_turn("agent", f"old {n}") for n in range(3)]
        return doc

    store.update(user["id"], seed)
    make_service(FakeGenerator("naujas"), greeting_window_size=3).start_conversation("jonas", "sad")

    window = store.find_by_id(user["id"])["short_term_memory"]
    assert [t["text"] for t in window] == ["old 1", "old 2", "naujas"]


def test_start_conversation_does_not_retry_moderation(make_service, store, user):
    from agent.errors import ModerationBlocked

    generator = FakeGenerator(ModerationBlocked("SAFETY"))
    with pytest.raises(ModerationBlocked):
        make_service(generator).start_conversation("jonas", "roast")

    assert len(generator.calls) == 1
    assert store.find_by_id(user["id"])["short_term_memory"] == []


def test_start_conversation_requires_mood(make_service, user):
    from agent.errors import MissingField

    with pytest.raises(MissingField):
        make_service().start_conversation("jonas", None)
