"""Rule-based extraction of long-term memories from a single utterance.

Rules are plain data: every ``ExtractionRule`` names the category it feeds,
a compiled pattern whose first group captures the remembered content, and
whether the category carries sentiment. ``extract`` walks the whole table
in order; every matching rule contributes one candidate.
"""

import re
from datetime import datetime, timezone
from typing import Dict, List, NamedTuple, Optional, Pattern

from memory.schema import CATEGORIES, MemoryContext, MemoryItem, TimeOfDay


class ExtractionRule(NamedTuple):
    category: str
    pattern: Pattern[str]
    has_sentiment: bool


class RuleMatch(NamedTuple):
    category: str
    pattern: str
    matched: str
    captured: str


def _rules(category: str, has_sentiment: bool, *patterns: str) -> List[ExtractionRule]:
    return [
        ExtractionRule(category, re.compile(p, re.IGNORECASE), has_sentiment)
        for p in patterns
    ]


RULES: tuple[ExtractionRule, ...] = tuple(
    _rules(
        "preferences",
        True,
        r"(?:mano favoritas|aš teikiu pirmenybę|mano pasirinkimas yra) (.+)",
        r"(?:man )?(?:labai )?(?:patinka|mėgstu|dievinu|esu didelis gerbėjas"
        r"|esate nuostabūs|esate puikus|esate mano favoritas) (.+)",
        r"aš (?:absoliučiai )?(?:myliu|dievinau|nekenčiu|nemėgstu|niekada nemėgčiau) (.+)",
        r"man (?:visiškai )?nepatinka (.+)",
        r"negalėčiau įsivaizduoti gyvenimo be (.+)",
        r"mano mėgstamiausias dalykas yra (.+)",
        r"negaliu pakęsti (.+)",
        r"aš norėčiau daugiau (.+)",
    )
    + _rules(
        "facts",
        False,
        r"Aš (?:esu iš|gyvenu|šiuo metu esu) (.+)",
        r"Mano (?:amžius|vardas|gimtadienis) (?:yra)? (.+)",
        r"Aš dirbu (?:kaip|pagal profesiją) (.+)",
        r"Aš turiu (.+)",
        r"Mano mėgstamiausia spalva (?:yra)? (.+)",
        r"Man patinka (.+)",
        r"Mano hobis (?:yra|yra hobis) (.+)",
        r"Aš užsiimu (.+)",
    )
    + _rules(
        "relationships",
        False,
        r"Mano (?:brolis|sesuo|mama|tėtis|partneris|draugas|kolegė|žmona|vyras) (?:yra|buvo)? ?(.+)",
        r"Mano (?:brolis|sesuo|mama|tėtis|partneris|draugas|kolega|šeimos narys) (?:vardu)? (.+)",
        r"(?:Turiu|Yra) (?:brolį|seserį|mamą|tėtį|partnerį|draugą|kolegos) (?:vardu )?(.+)",
        r"mano artimas žmogus (?:yra|vardu) (.+)",
        r"mano draugas (?:yra|vardu)? (.+)",
        r"mano komandos narys (?:yra)? (.+)",
    )
)

# Any of these anywhere in the utterance flips every preference to negative.
NEGATION_MARKERS = ("ne", "niekada", "nenoriu", "nemėgstu", "nekenčiu", "nepatinka")


def time_of_day(moment: datetime) -> TimeOfDay:
    """Bucket the local hour of *moment* into morning, afternoon or evening."""
    hour = moment.astimezone().hour if moment.tzinfo else moment.hour
    if hour < 12:
        return "morning"
    if hour < 18:
        return "afternoon"
    return "evening"


def build_context(utterance: str, now: Optional[datetime] = None) -> MemoryContext:
    """Compute the extraction context shared by every candidate of an utterance."""
    now = now or datetime.now(timezone.utc)
    return {
        "timestamp": now.isoformat(),
        "message_length": len(utterance.split(" ")),
        "time_of_day": time_of_day(now),
    }


def is_negative(utterance: str) -> bool:
    lowered = utterance.lower()
    return any(marker in lowered for marker in NEGATION_MARKERS)


def extract(
    utterance: str, now: Optional[datetime] = None
) -> Dict[str, List[MemoryItem]]:
    """Return candidate memories per category for *utterance*.

    Every category is present in the result, possibly empty. Polarity is
    decided once for the whole utterance, so all preference candidates
    share it.
    """
    context = build_context(utterance, now)
    positive = not is_negative(utterance)
    extracted: Dict[str, List[MemoryItem]] = {category: [] for category in CATEGORIES}

    for rule in RULES:
        match = rule.pattern.search(utterance)
        if not match:
            continue
        content = match.group(1).strip()
        if not content:
            continue
        item: MemoryItem = {"content": content, "context": dict(context)}
        if rule.has_sentiment:
            item["is_positive"] = positive
        extracted[rule.category].append(item)

    return extracted


def explain(utterance: str) -> List[RuleMatch]:
    """List every rule that fires on *utterance*, for debugging the rule table."""
    matches: List[RuleMatch] = []
    for rule in RULES:
        match = rule.pattern.search(utterance)
        if match:
            matches.append(
                RuleMatch(rule.category, rule.pattern.pattern, match.group(0), match.group(1))
            )
    return matches
