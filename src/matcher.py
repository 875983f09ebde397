"""

    Word matching engine

    Copyright © 2025 Miðeind ehf.

    The Creative Commons Attribution-NonCommercial 4.0
    International Public License (CC-BY-NC 4.0) applies to this software.
    For further information, see https://github.com/mideind/Netskrafl

    MatchEngine answers queries over an immutable WordSet. It has no
    state of its own apart from the word set and an optional frequency
    table, so a single instance may be shared by concurrent readers.

    The main query functions are:

    MatchEngine.find_anagrams(rack, allow_partial)
        Returns the words that can be built from the letters of the rack.
        The rack may contain blanks ('?' or '.'), each of which stands
        for any single letter. Unless allow_partial is set, all tiles of
        the rack must be used. For example, find_anagrams("CAT?") returns
        four-letter words such as CATS, CAST, CHAT and TACO.

    MatchEngine.find_matches(mask, pool)
        Returns the words matching a fixed-length mask, where '_' (or '?')
        matches any letter, optionally constrained by a pool of letters
        from which the wildcard positions must be filled.
        For example, find_matches("_AT") returns CAT, BAT, EAT and so on.

    MatchEngine.hooks(word)
        Returns the single letters that can be put in front of or
        behind the word to form another valid word.

    MatchEngine.word_anagrams(word)
        Returns other words consisting of the same letters.

    MatchEngine.search(query)
        Runs a complete SearchQuery: the anagram or pattern match,
        followed by the post-filters, sorting and frequency annotation.

"""

from __future__ import annotations

from typing import (
    Any,
    Counter as CounterType,
    Dict,
    FrozenSet,
    Iterable,
    List,
    Literal,
    Mapping,
    NamedTuple,
    Optional,
    Sequence,
)

from collections import Counter
from dataclasses import dataclass, field

from alphabets import EnglishAlphabet
from errors import InvalidQuery
from wordfreq import DIFFICULTIES, FrequencyRecord, FrequencyTable
from wordset import MAX_WORD_LENGTH, MIN_WORD_LENGTH, WordSet


SearchType = Literal["anagram", "pattern"]
SortOrder = Literal["asc", "desc"]

# Characters in a mask that match any letter
MASK_WILDCARDS = "_?"

# Maximum number of results from word_anagrams()
WORD_ANAGRAM_LIMIT = 20

# Default cap on the number of search results
DEFAULT_RESULT_LIMIT = 10000


def _check_str(name: str, value: Any) -> str:
    if value is None:
        return ""
    if not isinstance(value, str):
        raise InvalidQuery(f"{name} must be a string")
    return value


@dataclass(frozen=True)
class SearchQuery:
    """The parameters of a single search request"""

    search_type: SearchType = "anagram"
    letters: str = ""
    pattern: str = ""
    allow_partial: bool = False
    selected_lengths: FrozenSet[int] = field(default_factory=frozenset)
    starts_with: str = ""
    ends_with: str = ""
    contains: str = ""
    contains_all: str = ""
    q_without_u: bool = False
    no_vowels: bool = False
    is_vowel_heavy: bool = False
    sort_order: SortOrder = "asc"
    # "all" or one of the difficulty tiers
    frequency_filter: str = "all"
    # Inclusive frequency range; applied only when both bounds are given
    min_probability: Optional[int] = None
    max_probability: Optional[int] = None
    sort_by_frequency: bool = False

    def __post_init__(self) -> None:
        if self.search_type not in ("anagram", "pattern"):
            raise InvalidQuery(f"Unknown search type {self.search_type!r}")
        if self.sort_order not in ("asc", "desc"):
            raise InvalidQuery(f"Unknown sort order {self.sort_order!r}")
        for name in (
            "letters",
            "pattern",
            "starts_with",
            "ends_with",
            "contains",
            "contains_all",
        ):
            # Normalize string options to uppercase, treating None as empty
            value = _check_str(name, getattr(self, name)).strip().upper()
            object.__setattr__(self, name, value)
        pattern = self.pattern
        if any(
            not (c in MASK_WILDCARDS or c in EnglishAlphabet.letter_set) for c in pattern
        ):
            raise InvalidQuery(f"Invalid character in pattern {pattern!r}")
        try:
            lengths = frozenset(int(n) for n in self.selected_lengths or ())
        except (TypeError, ValueError):
            raise InvalidQuery("selectedLengths must be a collection of integers")
        object.__setattr__(self, "selected_lengths", lengths)
        if self.frequency_filter not in ("all", *DIFFICULTIES):
            raise InvalidQuery(f"Unknown frequency filter {self.frequency_filter!r}")
        for name in ("min_probability", "max_probability"):
            value = getattr(self, name)
            if value is not None and (
                isinstance(value, bool) or not isinstance(value, (int, float))
            ):
                raise InvalidQuery(f"{name} must be a number")
        if (
            self.min_probability is not None
            and self.max_probability is not None
            and self.min_probability > self.max_probability
        ):
            raise InvalidQuery("min_probability must not exceed max_probability")

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> SearchQuery:
        """Create a query from the camelCase parameters of a
        searchWords request"""
        if not isinstance(params, Mapping):
            raise InvalidQuery("searchParams must be an object")
        lengths = params.get("selectedLengths") or ()
        if isinstance(lengths, (str, bytes)) or not isinstance(lengths, Iterable):
            raise InvalidQuery("selectedLengths must be a list of integers")
        return cls(
            search_type=params.get("searchType") or "anagram",
            letters=params.get("letters") or "",
            pattern=params.get("pattern") or "",
            allow_partial=bool(params.get("allowPartial", False)),
            selected_lengths=frozenset(lengths),
            starts_with=params.get("startsWith") or "",
            ends_with=params.get("endsWith") or "",
            contains=params.get("contains") or "",
            contains_all=params.get("containsAll") or "",
            q_without_u=bool(params.get("qWithoutU", False)),
            no_vowels=bool(params.get("noVowels", False)),
            is_vowel_heavy=bool(params.get("isVowelHeavy", False)),
            sort_order=params.get("sortOrder") or "asc",
            frequency_filter=params.get("frequencyFilter") or "all",
            min_probability=params.get("minProbability"),
            max_probability=params.get("maxProbability"),
            sort_by_frequency=bool(params.get("sortByFrequency", False)),
        )


class Hooks(NamedTuple):
    """Front and back hooks of a word"""

    front: List[str]
    back: List[str]

    def to_dict(self) -> Dict[str, List[str]]:
        return {"front": self.front, "back": self.back}


@dataclass(frozen=True)
class SearchResult:
    word: str
    frequency: FrequencyRecord

    def to_dict(self) -> Dict[str, Any]:
        return {"word": self.word, "frequency": self.frequency.to_dict()}


def split_rack(rack: str) -> tuple[CounterType[str], int]:
    """Return the letter counts and the number of blanks in a rack"""
    alphabet = EnglishAlphabet
    counts: CounterType[str] = Counter()
    blanks = 0
    for c in rack:
        if alphabet.is_blank(c):
            blanks += 1
        else:
            counts[c] += 1
    return counts, blanks


def can_make_word(word: str, rack: str) -> bool:
    """Return True if the word can be built from the rack,
    where each blank in the rack stands for any single letter"""
    if not word or not rack:
        return False
    counts, blanks = split_rack(rack.upper())
    return _buildable(word.upper(), counts, blanks)


def _buildable(word: str, counts: CounterType[str], blanks: int) -> bool:
    # Work on a copy, as the counts are shared between candidate words
    remaining = counts.copy()
    for c in word:
        if remaining[c] > 0:
            remaining[c] -= 1
        elif blanks > 0:
            blanks -= 1
        else:
            return False
    return True


class MatchEngine:
    """Stateless query layer over an immutable word set"""

    def __init__(
        self,
        words: WordSet,
        frequencies: Optional[FrequencyTable] = None,
        result_limit: int = DEFAULT_RESULT_LIMIT,
    ) -> None:
        self.words = words
        self.frequencies = frequencies if frequencies is not None else FrequencyTable()
        self.result_limit = result_limit
        self.alphabet = words.alphabet

    def find_anagrams(self, rack: str, allow_partial: bool = False) -> List[str]:
        """Return the words that can be built from the rack, in no
        particular order. Unless allow_partial is True, the word must
        use every tile of the rack."""
        rack = self.alphabet.clean_rack(rack)
        if not rack:
            return []
        counts, blanks = split_rack(rack)
        ws = self.words
        if not allow_partial:
            if not blanks:
                # Cheap path: look up the anagram class of the rack
                return list(ws.anagram_class(self.alphabet.alphagram(rack)))
            return [w for w in ws.with_length(len(rack)) if _buildable(w, counts, blanks)]
        result: List[str] = []
        for length in ws.lengths():
            if length > len(rack):
                break
            result.extend(w for w in ws.with_length(length) if _buildable(w, counts, blanks))
        return result

    def find_matches(self, mask: str = "", pool: str = "") -> List[str]:
        """Return the words matching the mask, constrained by the pool.

        If a mask is given, only words of the mask's length whose
        letters equal the mask's fixed letters are considered.
        If a pool is given, the mask's fixed letters are first taken
        from the pool; the remaining pool must then cover the letters
        at the wildcard positions (or all the word's letters, if there
        is no mask).
        """
        mask = mask.strip().upper()
        pool = "".join(c for c in pool.upper() if c in self.alphabet.letter_set)
        if not mask and not pool:
            return []
        fixed = [(ix, c) for ix, c in enumerate(mask) if c not in MASK_WILDCARDS]
        wild = [ix for ix, c in enumerate(mask) if c in MASK_WILDCARDS]
        remaining: Optional[CounterType[str]] = None
        if pool:
            pool_counts = Counter(pool)
            needed_fixed = Counter(c for _, c in fixed)
            if not needed_fixed <= pool_counts:
                # The mask's own letters cannot be taken from the pool
                return []
            remaining = pool_counts - needed_fixed
        if mask:
            candidates: Iterable[str] = self.words.with_length(len(mask))
        else:
            candidates = self.words
        result: List[str] = []
        for w in candidates:
            if any(w[ix] != c for ix, c in fixed):
                continue
            if remaining is not None:
                needed = Counter(w[ix] for ix in wild) if mask else Counter(w)
                if not needed <= remaining:
                    continue
            result.append(w)
        return result

    def filter_words(self, words: Iterable[str], query: SearchQuery) -> List[str]:
        """Apply the query's post-filters; all filters must pass"""
        alphabet = self.alphabet
        vowels = alphabet.vowel_set
        lengths = query.selected_lengths
        starts_with = query.starts_with
        ends_with = query.ends_with
        contains = query.contains
        contains_all = set(query.contains_all)
        table = self.frequencies
        freq_filter = query.frequency_filter
        prob_range = (
            query.min_probability is not None and query.max_probability is not None
        )

        def accept(w: str) -> bool:
            if lengths and len(w) not in lengths:
                return False
            if not (MIN_WORD_LENGTH <= len(w) <= MAX_WORD_LENGTH):
                return False
            if starts_with and not w.startswith(starts_with):
                return False
            if ends_with and not w.endswith(ends_with):
                return False
            if contains and contains not in w:
                return False
            if contains_all and not contains_all.issubset(w):
                return False
            if query.q_without_u and ("Q" not in w or "U" in w):
                return False
            if query.no_vowels and any(c in vowels for c in w):
                return False
            if query.is_vowel_heavy and not alphabet.vowel_ratio(w) > 0.6:
                return False
            if freq_filter != "all":
                record = table.get(w)
                if record is None or record.difficulty != freq_filter:
                    return False
            if prob_range:
                record = table.get(w)
                if record is not None and not (
                    query.min_probability <= record.frequency <= query.max_probability  # type: ignore[operator]
                ):
                    return False
            return True

        return [w for w in words if accept(w)]

    @staticmethod
    def sort_words(words: Iterable[str], order: SortOrder = "asc") -> List[str]:
        """Sort by length in the given order; words of equal length
        are always in ascending lexicographic order"""
        if order == "desc":
            return sorted(words, key=lambda w: (-len(w), w))
        return sorted(words, key=lambda w: (len(w), w))

    def hooks(self, word: str) -> Hooks:
        """Return the front and back hooks of a word"""
        word = word.strip().upper()
        ws = self.words
        order = self.alphabet.order
        front = [c for c in order if c + word in ws]
        back = [c for c in order if word + c in ws]
        return Hooks(front=front, back=back)

    def word_anagrams(self, word: str, limit: int = WORD_ANAGRAM_LIMIT) -> List[str]:
        """Return other words made of the same letters, in
        lexicographic order, at most limit of them"""
        word = word.strip().upper()
        same = self.words.anagram_class(self.alphabet.alphagram(word))
        return sorted(w for w in same if w != word)[:limit]

    def search(self, query: SearchQuery) -> List[SearchResult]:
        """Run a complete search query"""
        if query.search_type == "anagram":
            if query.letters:
                words: Iterable[str] = self.find_anagrams(query.letters, query.allow_partial)
            else:
                # No rack: the filters alone select the words
                words = self.words
        else:
            words = self.find_matches(query.pattern, query.letters)
        filtered = self.filter_words(words, query)
        table = self.frequencies
        if query.sort_by_frequency:
            filtered.sort(key=lambda w: (-table.lookup(w).frequency, w))
        else:
            filtered = self.sort_words(filtered, query.sort_order)
        return [SearchResult(w, table.lookup(w)) for w in filtered[: self.result_limit]]

    def analyze(self, word: str) -> Dict[str, Any]:
        """Return an analysis of a single word, as shown in a
        word lookup: validity, score, letters, hooks and anagrams"""
        word = word.strip().upper()
        alphabet = self.alphabet
        valid = word in self.words
        result: Dict[str, Any] = {
            "word": word,
            "valid": valid,
            "score": alphabet.tile_score(word),
            "letters": [
                {"letter": c, "value": v, "difficulty": d}
                for c, v, d in alphabet.letter_breakdown(word)
            ],
        }
        if valid:
            result["hooks"] = self.hooks(word).to_dict()
            result["anagrams"] = self.word_anagrams(word)
            result["frequency"] = self.frequencies.lookup(word).to_dict()
        return result

    def judge(self, words: Sequence[str]) -> Dict[str, Any]:
        """Judge a play of one or more words"""
        valid, verdicts = self.words.judge(words)
        return {"valid": valid, "words": verdicts}
