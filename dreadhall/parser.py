"""Player input parsing and emotional analysis.

parse_input("Look at the mirror") → command "examine", target "at the mirror"
The first word is the command, normalised through SYNONYMS; the rest is the
target. Intensity is the mean weight of the emotional keywords present.

analyze_input() scores three word categories (aggressive, anxious, obsessive)
as matched words / category size, and flags repetition (a word used more than
twice), forceful phrasing ("!" or forceful words) and hesitant phrasing ("?"
or hesitant words).

extract_keywords() pulls the words worth tracking as obsessions out of a
command target.
"""

from __future__ import annotations

import re

from pydantic import BaseModel

EMOTIONAL_KEYWORDS: dict[str, float] = {
    # aggressive
    "attack": 0.8, "break": 0.6, "smash": 0.8, "destroy": 0.9,
    "kill": 1.0, "fight": 0.7, "punch": 0.6,
    # anxious
    "run": 0.6, "hide": 0.7, "escape": 0.8, "flee": 0.9,
    "avoid": 0.5, "leave": 0.4,
    # obsessive
    "check": 0.4, "examine": 0.3, "inspect": 0.3, "study": 0.4,
    "watch": 0.5, "observe": 0.4, "repeat": 0.6,
}

SYNONYMS: dict[str, str] = {
    "look": "examine", "view": "examine", "see": "examine",
    "attack": "fight", "hit": "fight", "strike": "fight",
    "go": "move", "walk": "move", "run": "move",
    "grab": "take", "get": "take", "pickup": "take",
}

AGGRESSIVE_WORDS = frozenset({"attack", "break", "smash", "destroy", "kill", "fight", "punch"})
ANXIOUS_WORDS = frozenset({"run", "hide", "escape", "flee", "avoid", "leave"})
OBSESSIVE_WORDS = frozenset({"check", "examine", "inspect", "study", "watch", "observe", "repeat"})

FORCEFUL_WORDS = ("must", "need", "now", "immediately", "demand")
HESITANT_WORDS = ("maybe", "perhaps", "might", "try", "attempt")
INSIGNIFICANT_WORDS = frozenset({"the", "a", "an", "in", "on", "at", "to", "for", "of", "with"})


class ParsedInput(BaseModel):
    command: str
    target: str = ""
    intensity: float = 0.0


class InputAnalysis(BaseModel):
    aggression: float = 0.0
    anxiety: float = 0.0
    obsession: float = 0.0
    is_repetitive: bool = False
    is_forceful: bool = False
    is_hesitant: bool = False


def _emotional_intensity(text: str) -> float:
    weights = [w for word, w in EMOTIONAL_KEYWORDS.items() if word in text]
    return sum(weights) / len(weights) if weights else 0.0


def parse_input(text: str) -> ParsedInput:
    text = text.lower().strip()
    parts = text.split(" ", 1)
    command = SYNONYMS.get(parts[0], parts[0])
    target = parts[1].strip() if len(parts) > 1 else ""
    return ParsedInput(command=command, target=target, intensity=_emotional_intensity(text))


def _category_level(text: str, words: frozenset[str]) -> float:
    return sum(1 for w in words if w in text) / len(words)


def _is_repetitive(text: str) -> bool:
    counts: dict[str, int] = {}
    for word in re.findall(r"[a-z']+", text):
        counts[word] = counts.get(word, 0) + 1
        if counts[word] > 2:
            return True
    return False


def analyze_input(text: str) -> InputAnalysis:
    text = text.lower()
    return InputAnalysis(
        aggression=_category_level(text, AGGRESSIVE_WORDS),
        anxiety=_category_level(text, ANXIOUS_WORDS),
        obsession=_category_level(text, OBSESSIVE_WORDS),
        is_repetitive=_is_repetitive(text),
        is_forceful="!" in text or any(w in text for w in FORCEFUL_WORDS),
        is_hesitant="?" in text or any(w in text for w in HESITANT_WORDS),
    )


def extract_keywords(text: str) -> list[str]:
    """Emotional keywords plus any word longer than two letters that isn't filler."""
    return [
        word for word in re.findall(r"[a-z']+", text.lower())
        if word in EMOTIONAL_KEYWORDS or (word not in INSIGNIFICANT_WORDS and len(word) > 2)
    ]
