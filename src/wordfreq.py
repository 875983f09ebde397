"""

    Word frequency model

    Copyright © 2025 Miðeind ehf.

    The Creative Commons Attribution-NonCommercial 4.0
    International Public License (CC-BY-NC 4.0) applies to this software.
    For further information, see https://github.com/mideind/Netskrafl

    This module computes a heuristic commonness score for a word,
    an estimate of how often it appears in tournament games,
    and a qualitative difficulty tier. The scores are used to rank
    and filter search results.

    The computation is deterministic and depends only on the word's
    letters and length, plus two curated lists that boost the scores
    of well-known words. No network or storage access is involved.

"""

from __future__ import annotations

from typing import (
    Any,
    Dict,
    Iterable,
    Iterator,
    List,
    Literal,
    Mapping,
    Optional,
    Sequence,
)

from dataclasses import dataclass, replace

from alphabets import EnglishAlphabet


Difficulty = Literal["common", "uncommon", "rare", "expert"]
DIFFICULTIES: Sequence[Difficulty] = ("common", "uncommon", "rare", "expert")

# Affix patterns that adjust the scores when found anywhere in a word
HIGH_FREQUENCY_PATTERNS = ("RE", "UN", "IN", "ED", "ER", "ING", "LY", "EST")
MEDIUM_FREQUENCY_PATTERNS = ("PRE", "DIS", "OVER", "OUT", "TION", "ABLE", "MENT")
LOW_FREQUENCY_PATTERNS = ("ANTI", "INTER", "SUPER", "NESS", "WARD", "SHIP")

HIGH_POINT_LETTERS = frozenset("JQXZ")

HIGH_FREQUENCY_WORDS = frozenset(
    (
        "THE", "AND", "FOR", "ARE", "BUT", "NOT", "YOU", "ALL", "CAN", "HER",
        "WAS", "ONE", "OUR", "HAD", "BY", "WORD", "WHAT", "SAID", "EACH",
        "WHICH", "SHE", "DO", "HOW", "THEIR", "IF", "WILL", "UP", "OTHER",
        "ABOUT", "OUT", "MANY", "THEN", "THEM", "THESE", "SO", "SOME",
        "WOULD", "MAKE", "LIKE", "INTO", "HIM", "HAS", "TWO", "MORE", "GO",
        "NO", "WAY", "COULD", "MY", "THAN", "FIRST", "BEEN", "CALL", "WHO",
        "ITS", "NOW", "FIND", "LONG", "DOWN", "DAY", "DID", "GET", "COME",
        "MADE", "MAY", "PART",
    )
)

COMMON_GAME_WORDS = frozenset(
    (
        "QI", "XI", "XU", "ZA", "ZO", "JO", "KA", "KI", "OX", "EX", "AX",
        "MY", "BY", "OF", "TO", "IN", "IT", "IS", "BE", "AS", "AT", "SO",
        "WE", "HE", "ON", "RE", "OR", "AN", "IF", "DO", "GO", "NO", "UP",
        "AM", "US", "OH", "AH", "OW", "OY", "YE", "YA", "YO", "SH", "HM",
        "UM", "UH", "ER", "EH",
    )
)

MIN_SCORE = 1
MAX_SCORE = 100


def _clamp(value: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, value))


def difficulty_for(frequency: int) -> Difficulty:
    """Map a (clamped) frequency score to a difficulty tier"""
    if frequency >= 70:
        return "common"
    if frequency >= 50:
        return "uncommon"
    if frequency >= 25:
        return "rare"
    return "expert"


@dataclass(frozen=True)
class FrequencyRecord:
    """Frequency information for a single word"""

    word: str
    frequency: int
    game_frequency: int
    difficulty: Difficulty
    scrabble_score: int
    length: int

    def to_serializable(self) -> List[Any]:
        """Compact list form, used in cache payloads"""
        return [
            self.frequency,
            self.game_frequency,
            self.difficulty,
            self.scrabble_score,
        ]

    @classmethod
    def from_serializable(cls, word: str, j: Sequence[Any]) -> FrequencyRecord:
        frequency, game_frequency, difficulty, scrabble_score = j
        if difficulty not in DIFFICULTIES:
            raise ValueError(f"Unknown difficulty {difficulty!r}")
        return cls(
            word=word,
            frequency=int(frequency),
            game_frequency=int(game_frequency),
            difficulty=difficulty,
            scrabble_score=int(scrabble_score),
            length=len(word),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Wire form of the record, as returned with search results"""
        return {
            "word": self.word,
            "frequency": self.frequency,
            "gameFrequency": self.game_frequency,
            "difficulty": self.difficulty,
            "scrabbleScore": self.scrabble_score,
            "length": self.length,
        }


def base_score(word: str) -> FrequencyRecord:
    """Compute the frequency record of a word before any
    curated-list overrides are applied"""
    alphabet = EnglishAlphabet
    w = word.upper()
    length = len(w)
    frequency = 50
    game_frequency = 30

    # Length bands are exclusive; the first match wins
    if length <= 4:
        frequency += 30
        game_frequency += 40
    elif length <= 6:
        frequency += 20
        game_frequency += 20
    elif length <= 8:
        frequency += 10
        game_frequency += 10
    elif length >= 12:
        frequency -= 30
        game_frequency -= 20

    # Affix adjustments are cumulative, one per pattern present
    for pattern in HIGH_FREQUENCY_PATTERNS:
        if pattern in w:
            frequency += 15
            game_frequency += 10
    for pattern in MEDIUM_FREQUENCY_PATTERNS:
        if pattern in w:
            frequency += 8
            game_frequency += 5
    for pattern in LOW_FREQUENCY_PATTERNS:
        if pattern in w:
            frequency -= 10
            game_frequency -= 5

    vowel_ratio = alphabet.vowel_ratio(w)
    if vowel_ratio > 0.6:
        frequency -= 15
    elif vowel_ratio < 0.2:
        frequency -= 20

    high_point = sum(1 for c in w if c in HIGH_POINT_LETTERS)
    frequency -= 20 * high_point
    game_frequency -= 15 * high_point

    frequency = _clamp(frequency)
    game_frequency = _clamp(game_frequency)

    return FrequencyRecord(
        word=w,
        frequency=frequency,
        game_frequency=game_frequency,
        difficulty=difficulty_for(frequency),
        scrabble_score=alphabet.tile_score(w),
        length=length,
    )


def apply_overrides(record: FrequencyRecord) -> FrequencyRecord:
    """Boost the scores of words found in the curated lists.
    High-frequency words take precedence over short game words.

    The boost is always computed from the word's base score, never
    from the incoming record, so that applying the overrides to an
    already overridden record does not boost it again."""
    w = record.word
    if w in HIGH_FREQUENCY_WORDS:
        base = base_score(w)
        return replace(
            base,
            frequency=min(MAX_SCORE, base.frequency + 30),
            game_frequency=min(MAX_SCORE, base.game_frequency + 20),
            difficulty="common",
        )
    if w in COMMON_GAME_WORDS:
        base = base_score(w)
        difficulty = base.difficulty
        if difficulty in ("rare", "expert"):
            difficulty = "uncommon"
        return replace(
            base,
            frequency=min(MAX_SCORE, base.frequency + 25),
            game_frequency=min(MAX_SCORE, base.game_frequency + 35),
            difficulty=difficulty,
        )
    return record


def score(word: str) -> FrequencyRecord:
    """Return the full frequency record of a word"""
    return apply_overrides(base_score(word))


def score_all(words: Iterable[str]) -> Iterator[FrequencyRecord]:
    return (score(w) for w in words)


# Record returned for words that have no entry in a frequency table
DEFAULT_FREQUENCY = 50
DEFAULT_DIFFICULTY: Difficulty = "uncommon"


class FrequencyTable(Mapping[str, FrequencyRecord]):
    """A mapping of words to their frequency records"""

    def __init__(self, records: Optional[Mapping[str, FrequencyRecord]] = None) -> None:
        self._records: Dict[str, FrequencyRecord] = dict(records or {})

    def __getitem__(self, word: str) -> FrequencyRecord:
        return self._records[word]

    def __iter__(self) -> Iterator[str]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def add(self, record: FrequencyRecord) -> None:
        self._records[record.word] = record

    def lookup(self, word: str) -> FrequencyRecord:
        """Return the record for a word, or a neutral default
        if the word is not in the table"""
        record = self._records.get(word)
        if record is not None:
            return record
        return FrequencyRecord(
            word=word,
            frequency=DEFAULT_FREQUENCY,
            game_frequency=DEFAULT_FREQUENCY,
            difficulty=DEFAULT_DIFFICULTY,
            scrabble_score=EnglishAlphabet.tile_score(word),
            length=len(word),
        )
