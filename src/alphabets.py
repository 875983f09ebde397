"""

    Alphabet encapsulation module

    Copyright © 2025 Miðeind ehf.

    The Creative Commons Attribution-NonCommercial 4.0
    International Public License (CC-BY-NC 4.0) applies to this software.
    For further information, see https://github.com/mideind/Netskrafl

    The alphabet knows the letters of the tile set, their point values,
    which of them are vowels and which characters act as blank tiles
    in a rack. Currently English is the only supported alphabet.

"""

from __future__ import annotations

from typing import (
    Counter as CounterType,
    List,
    Literal,
    Mapping,
    Tuple,
)

import abc
from collections import Counter


LetterDifficulty = Literal["easy", "medium", "hard", "extreme"]
LetterInfo = Tuple[str, int, LetterDifficulty]


class Alphabet(abc.ABC):
    """Base class for alphabets particular to languages,
    i.e. the letters used in a game"""

    # The following are overridden in derived classes
    order = ""
    vowels = ""
    scores: Mapping[str, int] = {}

    # Rack characters that stand for a blank tile
    blanks = "?."

    def __init__(self) -> None:
        # Sanity checks
        assert len(self.order) == len(set(self.order))
        assert all(c in self.order for c in self.vowels)
        assert all(c in self.scores for c in self.order)

        self.letter_set = frozenset(self.order)
        self.vowel_set = frozenset(self.vowels)

    def alphagram(self, word: str) -> str:
        """Return the sorted-letter signature of a word, identifying
        its anagram class"""
        return "".join(sorted(word))

    def letter_counts(self, word: str) -> CounterType[str]:
        """Return a multiset of the letters in the word"""
        return Counter(word)

    def vowel_count(self, word: str) -> int:
        vs = self.vowel_set
        return sum(1 for c in word if c in vs)

    def vowel_ratio(self, word: str) -> float:
        """Fraction of the word's letters that are vowels"""
        if not word:
            return 0.0
        return self.vowel_count(word) / len(word)

    def tile_score(self, word: str) -> int:
        """Sum of the point values of the letters in the word.
        Characters outside the alphabet count as zero."""
        sc = self.scores
        return sum(sc.get(c, 0) for c in word)

    def is_blank(self, c: str) -> bool:
        return c in self.blanks

    def clean_rack(self, rack: str) -> str:
        """Uppercase the rack and remove anything that is neither
        a letter nor a blank marker"""
        rack = rack.upper()
        return "".join(c for c in rack if c in self.letter_set or c in self.blanks)

    @staticmethod
    def letter_difficulty(value: int) -> LetterDifficulty:
        """Classify a tile by its point value"""
        if value >= 8:
            return "extreme"
        if value >= 4:
            return "hard"
        if value >= 2:
            return "medium"
        return "easy"

    def letter_breakdown(self, word: str) -> List[LetterInfo]:
        """Return (letter, value, difficulty) for each letter in the word"""
        result: List[LetterInfo] = []
        for c in word.upper():
            value = self.scores.get(c, 0)
            result.append((c, value, self.letter_difficulty(value)))
        return result


class _EnglishAlphabet(Alphabet):
    """The English alphabet"""

    order = "ABCDEFGHIJKLMNOPQRSTUVWXYZ"
    vowels = "AEIOU"

    # Standard English tile values
    scores = {
        "A": 1, "B": 3, "C": 3, "D": 2, "E": 1, "F": 4, "G": 2,
        "H": 4, "I": 1, "J": 8, "K": 5, "L": 1, "M": 3, "N": 1,
        "O": 1, "P": 3, "Q": 10, "R": 1, "S": 1, "T": 1, "U": 1,
        "V": 4, "W": 4, "X": 8, "Y": 4, "Z": 10,
    }


EnglishAlphabet = _EnglishAlphabet()
