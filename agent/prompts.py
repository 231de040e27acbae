"""Prompt text and prompt assembly.

Everything the model reads is built here: the global behavioural rules,
the reply templates, the greeting sentences and the rendering of retrieved
memory into a context block.
"""

import random
from typing import Iterable, List, Mapping, Optional

from agent.errors import InvalidMood
from memory.schema import CATEGORIES, MemoryItem, Turn
from memory.window import render

# Global rules for every AI response
GLOBAL_RULES = """
  Speak Lithuanian language only, refuse to speak any other language.
  Answer short and simple like a friend.
  Keep conversation alive and interesting, but don't push it too much.
"""

CHAT_TEMPLATES = (
    'Username: {username}, asking: "{message}". Answer short and in a funny style. Keep conversation alive.',
    'User {username} says: "{message}". Reply humorously, keep it light and fun.',
    '{username} has a question: "{message}". Make the answer funny, keep it brief and entertaining.',
    'Here\'s what {username} asked: "{message}". Give a funny and witty reply, don\'t make it too long.',
)

ROAST_TEMPLATES = (
    '{username} just said: "{message}". Roast them with friendly sarcasm, one or two sentences.',
    'Oh look, {username} thinks "{message}" is worth saying. Reply with a dry, sarcastic jab.',
    '{username} wrote: "{message}". Pretend to be deeply unimpressed and tease them about it.',
    'Respond to {username}\'s "{message}" like a sarcastic best friend who has heard it all before.',
    '{username} asks: "{message}". Answer, but roll your eyes so hard it shows in the text.',
    'Here comes {username} again with "{message}". Give a witty, mocking comeback, keep it short.',
    '{username} says "{message}". Reply with playful sarcasm, never cruel, always brief.',
    'Mock {username}\'s "{message}" gently, like a comedian roasting a friend on stage.',
)

GREETINGS = {
    "happy": "{username} is feeling really good today. Greet them with positivity and ask how you can contribute to their great day!",
    "sad": "{username} is feeling a bit sad today. Greet them warmly and offer friendly support to lift their spirits.",
    "normal": "{username} is feeling normal today. Greet them and ask how you can assist!",
    "roast": "{username} showed up again. Greet them with a sarcastic, teasing remark and dare them to say something interesting.",
}

MOODS = frozenset(GREETINGS)

FALLBACK_MESSAGE = "Atsiprašau, į tai negaliu atsakyti. Gal pakalbėkime apie ką nors kita?"

POLARITY_LABELS = {True: "Patinka", False: "Nepatinka"}


def validate_mood(mood: Optional[str]) -> None:
    if mood is not None and mood not in MOODS:
        raise InvalidMood(
            f"Invalid mood '{mood}'. Must be one of: {', '.join(sorted(MOODS))}"
        )


def _render_item(category: str, item: MemoryItem) -> str:
    if category == "preferences":
        label = POLARITY_LABELS[item.get("is_positive", True) is not False]
        return f"{label}: {item['content']}"
    return item["content"]


def render_memory_context(relevant: Mapping[str, List[MemoryItem]]) -> str:
    """One ``CATEGORY: item, item`` line per category with retrieved items."""
    lines: List[str] = []
    for category in CATEGORIES:
        items = relevant.get(category) or []
        if items:
            rendered = ", ".join(_render_item(category, item) for item in items)
            lines.append(f"{category.upper()}: {rendered}")
    return "\n".join(lines)


def choose_template(mood: Optional[str] = None, rng: Optional[random.Random] = None) -> str:
    templates = ROAST_TEMPLATES if mood == "roast" else CHAT_TEMPLATES
    return (rng or random).choice(templates)


def personalize(template: str, username: str, message: str) -> str:
    """Substitute the first ``{username}`` and the first ``{message}`` placeholder."""
    return template.replace("{username}", username, 1).replace("{message}", message, 1)


def compose_prompt(memory_context: str, history: Iterable[Turn], personalized: str) -> str:
    prompt = f"""
{GLOBAL_RULES}
VARTOTOJO KONTEKSTAS:
{memory_context}

POKALBIO ISTORIJA:
{render(history)}

{personalized}
"""
    return prompt.strip()


def greeting_prompt(username: str, mood: str) -> str:
    """Combine the global rules with the greeting sentence for *mood*."""
    validate_mood(mood)
    return f"{GLOBAL_RULES} {GREETINGS[mood].replace('{username}', username, 1)}"
