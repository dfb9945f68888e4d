"""Keyword-table parsing of free-text vibe input into a structured intent."""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

SPEEDS = ("slow", "medium", "fast")
DEFAULT_SPEED = "medium"

_ENERGY_BY_SPEED = {"fast": "high", "slow": "low"}

KeywordTable = Mapping[str, tuple[str, ...]]


@dataclass(frozen=True)
class Intent:
    vibe: str
    environment: str = ""
    speed: str = DEFAULT_SPEED
    energy: str = "medium"
    valence: str = "neutral"
    genre: str = ""


def _freeze(table: Mapping[str, tuple[str, ...] | list[str]]) -> KeywordTable:
    return MappingProxyType({name: tuple(keywords) for name, keywords in table.items()})


@dataclass(frozen=True)
class KeywordTables:
    """Ordered keyword tables; category order and keyword order both matter."""

    environments: KeywordTable
    speeds: KeywordTable
    vibes: KeywordTable
    genres: KeywordTable = field(default_factory=lambda: MappingProxyType({}))
    negative_vibes: frozenset[str] = frozenset({"sad", "dark"})
    positive_vibes: frozenset[str] = frozenset({"happy", "energetic"})

    @classmethod
    def build(cls, *, environments, speeds, vibes, genres=None, negative_vibes=None, positive_vibes=None):
        kwargs = {}
        if negative_vibes is not None:
            kwargs["negative_vibes"] = frozenset(negative_vibes)
        if positive_vibes is not None:
            kwargs["positive_vibes"] = frozenset(positive_vibes)
        return cls(
            environments=_freeze(environments),
            speeds=_freeze(speeds),
            vibes=_freeze(vibes),
            genres=_freeze(genres or {}),
            **kwargs,
        )


DEFAULT_TABLES = KeywordTables.build(
    environments={
        "gym": ["gym", "workout", "fitness", "training", "exercise"],
        "study": ["study", "focus", "concentration", "work", "office"],
        "party": ["party", "dance", "club", "celebration", "rave"],
        "sleep": ["sleep", "bedtime", "night", "relax", "calm"],
        "drive": ["drive", "car", "road", "travel", "cruise"],
        "cafe": ["cafe", "coffee", "background", "ambient"],
    },
    speeds={
        "slow": ["slow", "chill", "relaxed", "mellow", "downtempo", "peaceful"],
        "medium": ["medium", "moderate", "steady", "groove", "normal"],
        "fast": ["fast", "upbeat", "energetic", "high tempo", "uptempo", "intense"],
    },
    vibes={
        "sad": ["sad", "melancholy", "depressing", "emotional", "crying"],
        "happy": ["happy", "joyful", "cheerful", "positive", "uplifting"],
        "chill": ["chill", "lofi", "calm", "peaceful", "zen"],
        "energetic": ["energetic", "hype", "pump", "motivational", "power"],
        "romantic": ["romantic", "love", "heart", "valentine", "couple"],
        "dark": ["dark", "gothic", "scary", "horror", "evil"],
    },
)


def first_match(text: str, table: KeywordTable) -> str:
    """Return the first category whose keywords occur in ``text``, else ``""``."""
    for category, keywords in table.items():
        if any(keyword in text for keyword in keywords):
            return category
    return ""


class IntentParser:
    """First-match-wins intent detection over a set of keyword tables.

    Adapters own their parser instance so each provider can tune its tables
    and genre rules independently.
    """

    def __init__(self, tables: KeywordTables = DEFAULT_TABLES) -> None:
        self.tables = tables

    def parse(self, raw_input: str) -> Intent:
        raw = str(raw_input or "")
        text = raw.lower()

        environment = first_match(text, self.tables.environments)
        speed = first_match(text, self.tables.speeds) or DEFAULT_SPEED
        detected_vibe = first_match(text, self.tables.vibes)
        genre = self.detect_genre(text, vibe=detected_vibe, environment=environment)

        tokens = raw.split()
        vibe = detected_vibe or (tokens[0] if tokens else "")
        return Intent(
            vibe=vibe,
            environment=environment,
            speed=speed,
            energy=_ENERGY_BY_SPEED.get(speed, "medium"),
            valence=self.valence_for(vibe),
            genre=genre,
        )

    def detect_genre(self, text: str, *, vibe: str, environment: str) -> str:
        return first_match(text, self.tables.genres)

    def valence_for(self, vibe: str) -> str:
        if vibe in self.tables.negative_vibes:
            return "negative"
        if vibe in self.tables.positive_vibes:
            return "positive"
        return "neutral"


_DEFAULT_PARSER = IntentParser()


def parse_intent(raw_input: str) -> Intent:
    return _DEFAULT_PARSER.parse(raw_input)
