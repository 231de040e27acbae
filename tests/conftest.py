"""Shared fixtures: an isolated user store, a scripted generator and a small slang set.

No test here needs an API key — the generation service is always faked.
"""

import random

import pytest


class FakeGenerator:
    """Scripted stand-in for the Gemini generation service.

    Each call consumes the next outcome: a string is returned, an exception
    instance is raised. Once the script is used up every call returns
    ``default``.
    """

    def __init__(self, *outcomes, default="Labas!"):
        self.outcomes = list(outcomes)
        self.default = default
        self.calls = []

    def generate(self, prompt, max_tokens=None, safety_settings=None):
        self.calls.append(
            {"prompt": prompt, "max_tokens": max_tokens, "safety_settings": safety_settings}
        )
        if not self.outcomes:
            return self.default
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


@pytest.fixture(autouse=True)
def _isolated_generation_log(tmp_path, monkeypatch):
    """Keep generation-attempt logs out of the real data directory."""
    from agent import nodes
    from agent.guardrails import GenerationLogger

    monkeypatch.setattr(nodes, "generation_logger", GenerationLogger(log_dir=str(tmp_path)))


@pytest.fixture()
def store(tmp_path):
    from memory.store import UserStore

    return UserStore(path=str(tmp_path / "users.json"))


@pytest.fixture()
def user(store):
    return store.create_user("jonas")


@pytest.fixture()
def slang():
    from agent.slang import SlangDictionary

    return SlangDictionary({"jo": "taip", "faina": "šaunu", "nzn": "nežinau", "nežn": "nežinau"})


@pytest.fixture()
def make_service(store, slang):
    """Build a ChatService around the shared store and a given FakeGenerator."""
    from agent.chat import ChatService

    def _make(generator=None, **kwargs):
        return ChatService(
            store=store,
            generator=generator or FakeGenerator(),
            slang=slang,
            rng=random.Random(0),
            **kwargs,
        )

    return _make
