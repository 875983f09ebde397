"""

    Dictionary compression codec

    Copyright © 2025 Miðeind ehf.

    The Creative Commons Attribution-NonCommercial 4.0
    International Public License (CC-BY-NC 4.0) applies to this software.
    For further information, see https://github.com/mideind/Netskrafl

    This module encodes a word set into a compact byte payload and
    decodes it back, losslessly.

    Encoding first scans the corpus for a fixed set of candidate prefixes
    and suffixes. Those that occur in more than AFFIX_SUPPORT words are
    ranked by how often they occur, and the top AFFIX_TABLE_SIZE of each
    kind become the affix tables for this particular payload. Since the
    tables depend on the corpus, they are shipped inside the payload.

    Each word is then encoded as one of the following entries,
    tried in this order:

        C<word>             a curated very common word
        P<nn><remainder>    prefix table entry nn + remainder
        S<nn><remainder>    remainder + suffix table entry nn
        L<word>             a literal word

    Within each table, the first entry (in rank order) that matches the
    word is used. Decoding simply indexes into the shipped tables and
    never searches them.

    The entries, together with the tables, are stored as a JSON
    document which is then zlib-compressed.

    The frequency table that accompanies a cached dictionary is
    stored in the same way, as zlib-compressed JSON.

"""

from __future__ import annotations

from typing import Any, Iterable, List, Mapping, Sequence, Tuple

import json
import zlib
from collections import Counter

from errors import CorruptPayload
from wordfreq import FrequencyRecord, FrequencyTable
from wordset import MAX_WORD_LENGTH, MIN_WORD_LENGTH, WordSet


PAYLOAD_VERSION = 1

COMMON_PREFIXES = (
    "RE", "UN", "IN", "IM", "IL", "IR", "DIS", "MIS", "PRE", "PRO",
    "EN", "EM", "OVER", "UNDER", "OUT", "UP", "DOWN", "BACK", "FORE",
)

COMMON_SUFFIXES = (
    "ING", "ED", "ER", "EST", "LY", "NESS", "MENT", "TION", "SION",
    "ABLE", "IBLE", "FUL", "LESS", "ISH", "OUS", "AL", "IC", "IVE",
)

COMMON_WORDS = frozenset(
    (
        "THE", "AND", "FOR", "ARE", "BUT", "NOT", "YOU", "ALL", "CAN", "HER",
        "WAS", "ONE", "OUR", "OUT", "DAY", "GET", "HAS", "HIM", "HIS", "HOW",
        "MAN", "NEW", "NOW", "OLD", "SEE", "TWO", "WAY", "WHO", "BOY", "DID",
        "ITS", "LET", "PUT", "SAY", "SHE", "TOO", "USE", "WANT", "WILL", "WITH",
    )
)

# An affix must occur in more than this many words to be retained
AFFIX_SUPPORT = 10
# Maximum number of retained prefixes and suffixes
AFFIX_TABLE_SIZE = 20

TAG_COMMON = "C"
TAG_PREFIX = "P"
TAG_SUFFIX = "S"
TAG_LITERAL = "L"

# Table indices are written as two decimal digits
_INDEX_WIDTH = 2


def _rank_affixes(counts: Mapping[str, int], candidates: Sequence[str]) -> List[str]:
    """Return the affixes with sufficient support, most frequent first.
    Ties keep the order of the candidate list."""
    supported = [a for a in candidates if counts.get(a, 0) > AFFIX_SUPPORT]
    # Stable sort: equal counts retain candidate order
    supported.sort(key=lambda a: -counts[a])
    return supported[:AFFIX_TABLE_SIZE]


def affix_tables(words: Iterable[str]) -> Tuple[List[str], List[str]]:
    """Analyze the corpus and return the (prefixes, suffixes) tables
    to be used for encoding it"""
    prefix_counts: Counter[str] = Counter()
    suffix_counts: Counter[str] = Counter()
    for w in words:
        lw = len(w)
        for p in COMMON_PREFIXES:
            if lw > len(p) and w.startswith(p):
                prefix_counts[p] += 1
        for s in COMMON_SUFFIXES:
            if lw > len(s) and w.endswith(s):
                suffix_counts[s] += 1
    return (
        _rank_affixes(prefix_counts, COMMON_PREFIXES),
        _rank_affixes(suffix_counts, COMMON_SUFFIXES),
    )


def encode_word(word: str, prefixes: Sequence[str], suffixes: Sequence[str]) -> str:
    """Encode a single word using the given affix tables"""
    if word in COMMON_WORDS:
        return TAG_COMMON + word
    lw = len(word)
    for ix, p in enumerate(prefixes):
        if lw > len(p) and word.startswith(p):
            return f"{TAG_PREFIX}{ix:02d}{word[len(p):]}"
    for ix, s in enumerate(suffixes):
        if lw > len(s) and word.endswith(s):
            return f"{TAG_SUFFIX}{ix:02d}{word[:-len(s)]}"
    return TAG_LITERAL + word


def decode_word(entry: str, prefixes: Sequence[str], suffixes: Sequence[str]) -> str:
    """Decode a single entry, raising CorruptPayload if it is malformed"""
    if not isinstance(entry, str) or not entry:
        raise CorruptPayload(f"Invalid entry {entry!r}")
    tag = entry[0]
    if tag == TAG_COMMON or tag == TAG_LITERAL:
        return entry[1:]
    if tag == TAG_PREFIX or tag == TAG_SUFFIX:
        digits = entry[1 : 1 + _INDEX_WIDTH]
        if len(digits) != _INDEX_WIDTH or not digits.isdigit():
            raise CorruptPayload(f"Invalid affix index in entry {entry!r}")
        ix = int(digits)
        rest = entry[1 + _INDEX_WIDTH :]
        table = prefixes if tag == TAG_PREFIX else suffixes
        if ix >= len(table):
            raise CorruptPayload(f"Affix index {ix} out of range in entry {entry!r}")
        return table[ix] + rest if tag == TAG_PREFIX else rest + table[ix]
    raise CorruptPayload(f"Unknown tag in entry {entry!r}")


def _pack(obj: Any) -> bytes:
    j = json.dumps(obj, ensure_ascii=False, separators=(",", ":"))
    return zlib.compress(j.encode("utf-8"))


def _unpack(payload: bytes) -> Any:
    if not isinstance(payload, (bytes, bytearray, memoryview)):
        raise CorruptPayload("Payload is not a byte string")
    try:
        return json.loads(zlib.decompress(bytes(payload)).decode("utf-8"))
    except (zlib.error, UnicodeDecodeError, ValueError) as e:
        raise CorruptPayload(f"Unable to decode payload: {e}") from e


def encode(words: Iterable[str]) -> bytes:
    """Encode a word set into a compressed byte payload"""
    wl = sorted(words)
    prefixes, suffixes = affix_tables(wl)
    return _pack(
        {
            "v": PAYLOAD_VERSION,
            "prefixes": prefixes,
            "suffixes": suffixes,
            "words": [encode_word(w, prefixes, suffixes) for w in wl],
        }
    )


def decode(payload: bytes) -> WordSet:
    """Decode a payload created by encode() back into a word set"""
    d = _unpack(payload)
    if not isinstance(d, dict) or d.get("v") != PAYLOAD_VERSION:
        raise CorruptPayload("Missing or unknown payload version")
    prefixes = d.get("prefixes")
    suffixes = d.get("suffixes")
    entries = d.get("words")
    if not (
        isinstance(prefixes, list)
        and isinstance(suffixes, list)
        and isinstance(entries, list)
    ):
        raise CorruptPayload("Payload is missing its tables or word list")
    if not all(isinstance(a, str) and a for a in prefixes + suffixes):
        raise CorruptPayload("Invalid affix table")
    words: List[str] = []
    for entry in entries:
        w = decode_word(entry, prefixes, suffixes)
        if not (MIN_WORD_LENGTH <= len(w) <= MAX_WORD_LENGTH) or w != w.strip().upper():
            raise CorruptPayload(f"Decoded word {w!r} violates the word constraints")
        words.append(w)
    return WordSet(words)


def encode_frequencies(table: Mapping[str, FrequencyRecord]) -> bytes:
    """Encode a frequency table into a compressed byte payload"""
    return _pack(
        {
            "v": PAYLOAD_VERSION,
            "records": {w: table[w].to_serializable() for w in sorted(table)},
        }
    )


def decode_frequencies(payload: bytes) -> FrequencyTable:
    """Decode a payload created by encode_frequencies()"""
    d = _unpack(payload)
    if not isinstance(d, dict) or d.get("v") != PAYLOAD_VERSION:
        raise CorruptPayload("Missing or unknown frequency payload version")
    records = d.get("records")
    if not isinstance(records, dict):
        raise CorruptPayload("Frequency payload is missing its records")
    table = FrequencyTable()
    try:
        for w, j in records.items():
            table.add(FrequencyRecord.from_serializable(w, j))
    except (TypeError, ValueError) as e:
        raise CorruptPayload(f"Invalid frequency record: {e}") from e
    return table


def compression_ratio(words: Iterable[str], payload: bytes) -> float:
    """Return the size saving of the payload, in percent, relative
    to a plain JSON list of the words"""
    original = len(json.dumps(sorted(words), separators=(",", ":")).encode("utf-8"))
    if original == 0:
        return 0.0
    return (1.0 - len(payload) / original) * 100.0
