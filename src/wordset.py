"""

    Word set module

    Copyright © 2025 Miðeind ehf.

    The Creative Commons Attribution-NonCommercial 4.0
    International Public License (CC-BY-NC 4.0) applies to this software.
    For further information, see https://github.com/mideind/Netskrafl

    WordSet is the canonical in-memory representation of the dictionary:
    a deduplicated, immutable collection of uppercase words, each between
    MIN_WORD_LENGTH and MAX_WORD_LENGTH letters long, supporting O(1)
    membership tests.

    Two derived indices are built once at construction time:

    WordSet.with_length(n)
        Returns the words of length n. Used by the matcher to avoid
        scanning the whole corpus when the length is known in advance.

    WordSet.anagram_class(alphagram)
        Returns the words having the given sorted-letter signature.
        Used for exact anagram lookups when the rack contains no blanks.

    A WordSet is never patched in place; a reload replaces it wholesale.

"""

from __future__ import annotations

from typing import (
    Dict,
    FrozenSet,
    Iterable,
    Iterator,
    List,
    Optional,
    Tuple,
)

from alphabets import Alphabet, EnglishAlphabet


MIN_WORD_LENGTH = 2
MAX_WORD_LENGTH = 15

_EMPTY: FrozenSet[str] = frozenset()


def normalize_word(line: str) -> Optional[str]:
    """Trim and uppercase a line from a word list, returning None
    if the result is not an acceptable word"""
    word = line.strip().upper()
    if not (MIN_WORD_LENGTH <= len(word) <= MAX_WORD_LENGTH):
        return None
    return word


class WordSet:
    """An immutable set of dictionary words"""

    __slots__ = ("_words", "_by_length", "_by_alphagram", "alphabet")

    def __init__(
        self, words: Iterable[str] = (), alphabet: Alphabet = EnglishAlphabet
    ) -> None:
        self.alphabet = alphabet
        ws = set()
        for w in words:
            nw = normalize_word(w)
            if nw is not None:
                ws.add(nw)
        self._words: FrozenSet[str] = frozenset(ws)
        by_length: Dict[int, set[str]] = {}
        by_alphagram: Dict[str, set[str]] = {}
        alphagram = alphabet.alphagram
        for w in self._words:
            by_length.setdefault(len(w), set()).add(w)
            by_alphagram.setdefault(alphagram(w), set()).add(w)
        self._by_length = {n: frozenset(s) for n, s in by_length.items()}
        self._by_alphagram = {a: frozenset(s) for a, s in by_alphagram.items()}

    @classmethod
    def from_lines(
        cls, lines: Iterable[str], alphabet: Alphabet = EnglishAlphabet
    ) -> WordSet:
        """Build a word set from the lines of a word list resource"""
        return cls(lines, alphabet)

    @classmethod
    def from_text(cls, text: str, alphabet: Alphabet = EnglishAlphabet) -> WordSet:
        """Build a word set from a newline-delimited text"""
        return cls(text.splitlines(), alphabet)

    def __contains__(self, word: object) -> bool:
        """Enable simple lookup syntax: "word" in wordset"""
        if not isinstance(word, str):
            return False
        return word.upper() in self._words

    def __len__(self) -> int:
        return len(self._words)

    def __iter__(self) -> Iterator[str]:
        return iter(self._words)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, WordSet):
            return self._words == other._words
        if isinstance(other, (set, frozenset)):
            return self._words == other
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._words)

    def __repr__(self) -> str:
        return f"<WordSet of {len(self._words)} words>"

    @property
    def words(self) -> FrozenSet[str]:
        """The underlying frozen set of words"""
        return self._words

    def sorted(self) -> List[str]:
        """Return the words as a lexicographically sorted list"""
        return sorted(self._words)

    def lengths(self) -> Tuple[int, ...]:
        """Return the word lengths present in the set, in ascending order"""
        return tuple(sorted(self._by_length))

    def with_length(self, length: int) -> FrozenSet[str]:
        """Return the words having the given length"""
        return self._by_length.get(length, _EMPTY)

    def anagram_class(self, alphagram: str) -> FrozenSet[str]:
        """Return the words whose sorted-letter signature
        equals the given alphagram"""
        return self._by_alphagram.get(alphagram, _EMPTY)

    def is_valid(self, word: str) -> bool:
        if not word:
            return False
        return word.strip().upper() in self._words

    def judge(self, words: Iterable[str]) -> Tuple[bool, Dict[str, bool]]:
        """Judge a play consisting of one or more words. The play is
        valid only if every word is found in the set."""
        verdicts = {w.strip().upper(): self.is_valid(w) for w in words}
        return bool(verdicts) and all(verdicts.values()), verdicts
