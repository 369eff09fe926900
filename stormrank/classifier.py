"""
Event classifier (free-text label -> canonical category)
========================================================

`EVTYPE` is typed by hand and has hundreds of spellings for a few dozen
phenomena ("TSTM WIND", "THUNDERSTORM WINDS", "RECORD HEAT", "WARM WEATHER",
...). We fold them into a small set of categories using an ordered table of
(pattern, category) rules:

- patterns are case-insensitive regular expressions (mostly alternations),
- rules are tried top to bottom and the FIRST match wins,
- a label that matches nothing becomes its own title-cased category.

Order is part of the data. "STORM SURGE/WIND" must be Storm Surge, so the
surge rule sits above Wind and Storm; "HEATWAVE/DROUGHT" is Heat because Heat
sits above Drought. Changing the order changes the ranking.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Dict, Iterable, List, Sequence, Tuple
import re

FALLBACK_CATEGORY = "Unclassified"


@dataclass(frozen=True)
class Rule:
    pattern: re.Pattern
    category: str

    def matches(self, label: str) -> bool:
        return self.pattern.search(label) is not None


def build_rules(pairs: Iterable[Tuple[str, str]]) -> Tuple[Rule, ...]:
    """Compile (regex, category) pairs into an ordered rule table."""
    return tuple(Rule(re.compile(p, re.IGNORECASE), c) for p, c in pairs)


# (pattern, category) in precedence order
RULE_TABLE: Sequence[Tuple[str, str]] = (
    (r"summary", "Summary"),
    (r"surge|storm tide", "Storm Surge"),
    (r"\bdam\b", "Dam"),
    (r"tornado|torndao|funnel|gustnado|landspout", "Tornado"),
    (r"waterspout|water spout|wayterspout", "Waterspout"),
    (r"hail", "Hail"),
    (r"flood|fld|high water|rising water|stream|urban", "Flood"),
    (r"heat|warm|\bhot\b|high temp|record high|hyperthermia", "Heat"),
    # "DRY MICROBURST" (and its "MIRCOBURST" misspelling) is a wind event
    (r"drought|\bdry(?!\s*mi[cr]+o?burst)|driest|low rainfall", "Drought"),
    (r"fire|smoke", "Fire"),
    (r"mud|land ?slide|rock ?slide|landslump|slump|debris flow", "Mudslide"),
    (r"volcan|\bvog\b", "Volcanic"),
    (r"dust|saharan", "Dust"),
    (r"fog", "Fog"),
    (r"sleet", "Sleet"),
    (r"\bice\b|\bicy\b|freez|frost|glaze", "Ice"),
    (r"snow|blizzard|avalanc|winter|wintry", "Snow"),
    (r"cold|chill|low temp|record low|hypothermia|\bcool", "Cold"),
    (r"surf|\bseas\b|swell|wave|rip current|marine|tsunami|rogue|coastal|\btides?\b", "High Seas"),
    (r"storm|tstm|thunder|lightning|lighting|ligntning|hurricane|typhoon|tropical", "Storm"),
    (r"rain|precip|shower|drizzle|\bwet", "Rain"),
    (r"wind|wnd|gust|microburst|downburst|turbulence", "Wind"),
)

RULES: Tuple[Rule, ...] = build_rules(RULE_TABLE)


def fallback_category(label: str) -> str:
    """Title-case an unmatched label ("  coastal  erosion" -> "Coastal Erosion")."""
    text = " ".join(str(label).split())
    return text.title() if text else FALLBACK_CATEGORY


def classify(label: str, rules: Sequence[Rule] = RULES) -> str:
    """Return the category of the first rule matching `label`."""
    text = "" if label is None else str(label)
    for rule in rules:
        if rule.matches(text):
            return rule.category
    return fallback_category(text)


def vocabulary(labels: Iterable[str], rules: Sequence[Rule] = RULES) -> Dict[str, str]:
    """Map each distinct label to its category (each label classified once)."""
    out: Dict[str, str] = {}
    for label in labels:
        if label not in out:
            out[label] = classify(label, rules)
    return out


def categories(rules: Sequence[Rule] = RULES) -> List[str]:
    """Distinct categories a rule table can produce, in table order."""
    seen: List[str] = []
    for r in rules:
        if r.category not in seen:
            seen.append(r.category)
    return seen
