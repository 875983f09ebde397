"""
Tests for the word frequency model.
"""

from __future__ import annotations

import pytest

import wordfreq
from wordfreq import (
    DEFAULT_FREQUENCY,
    FrequencyRecord,
    FrequencyTable,
    apply_overrides,
    base_score,
    difficulty_for,
    score,
)


class TestBaseScore:
    """Test the heuristic scoring before overrides."""

    def test_short_plain_word(self) -> None:
        """A short word with no patterns gets the short-word bonus only."""
        r = base_score("cat")
        assert r.word == "CAT"
        assert (r.frequency, r.game_frequency) == (80, 70)
        assert r.difficulty == "common"
        assert r.scrabble_score == 5
        assert r.length == 3

    def test_patterns_are_cumulative(self) -> None:
        """Each pattern present adjusts the scores once."""
        # Length 7: +10/+10; contains RE, IN, ING: 3 x +15/+10
        r = base_score("READING")
        assert (r.frequency, r.game_frequency) == (100, 70)

    def test_vowel_poor_word(self) -> None:
        # Length 6: +20/+20; no vowels: -20
        r = base_score("RHYTHM")
        assert (r.frequency, r.game_frequency) == (50, 50)
        assert r.difficulty == "uncommon"

    def test_vowel_heavy_word(self) -> None:
        # Length 5: +20/+20; vowel ratio 0.8: -15
        r = base_score("AUDIO")
        assert (r.frequency, r.game_frequency) == (55, 50)

    def test_clamped_to_minimum(self) -> None:
        """Scores never drop below 1."""
        r = base_score("ZZZ")
        assert r.frequency == 1
        assert r.game_frequency == 25
        assert r.difficulty == "expert"

    def test_long_word_penalty(self) -> None:
        # Length 13: -30/-20; no patterns, vowel ratio 5/13
        r = base_score("ABCDEFGHIJOUA")
        assert r.length == 13
        assert r.frequency < 50

    @pytest.mark.parametrize(
        "frequency,difficulty",
        [(100, "common"), (70, "common"), (69, "uncommon"), (50, "uncommon"),
         (49, "rare"), (25, "rare"), (24, "expert"), (1, "expert")],
    )
    def test_difficulty_tiers(self, frequency: int, difficulty: str) -> None:
        assert difficulty_for(frequency) == difficulty


class TestOverrides:
    """Test the curated-list overrides."""

    def test_high_frequency_word(self) -> None:
        """THE is forced to the common tier and capped at 100."""
        r = score("THE")
        assert r.difficulty == "common"
        assert r.frequency == 100
        assert r.game_frequency == 90

    def test_game_word(self) -> None:
        """Short game words are boosted without changing an uncommon tier."""
        r = score("QI")
        assert (r.frequency, r.game_frequency) == (85, 90)
        assert r.difficulty == "uncommon"

    def test_game_word_rare_is_demoted(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """A rare or expert game word is moved to the uncommon tier."""
        rare = FrequencyRecord("XU", 30, 30, "rare", 9, 2)
        monkeypatch.setattr(wordfreq, "base_score", lambda word: rare)
        r = apply_overrides(rare)
        assert r.difficulty == "uncommon"
        assert (r.frequency, r.game_frequency) == (55, 65)

    def test_high_frequency_list_takes_precedence(self) -> None:
        """A word on both lists gets only the high-frequency boost."""
        base = base_score("BY")
        r = apply_overrides(base)
        assert r.frequency == min(100, base.frequency + 30)
        assert r.game_frequency == min(100, base.game_frequency + 20)
        assert r.difficulty == "common"

    @pytest.mark.parametrize("word", ["THE", "QI", "ZA", "CAT", "BY"])
    def test_override_is_idempotent(self, word: str) -> None:
        """Overriding an already overridden record changes nothing."""
        once = apply_overrides(base_score(word))
        assert apply_overrides(once) == once
        assert apply_overrides(apply_overrides(once)) == once
        assert score(word) == once

    def test_unlisted_word_unchanged(self) -> None:
        base = base_score("RHYTHM")
        assert apply_overrides(base) is base


class TestFrequencyTable:
    """Test the frequency table mapping."""

    def test_lookup_default(self) -> None:
        """Unknown words get a neutral default record."""
        table = FrequencyTable()
        r = table.lookup("CAT")
        assert r.frequency == DEFAULT_FREQUENCY
        assert r.difficulty == "uncommon"
        assert r.scrabble_score == 5
        assert "CAT" not in table

    def test_add_and_lookup(self) -> None:
        table = FrequencyTable()
        table.add(score("THE"))
        assert len(table) == 1
        assert table["THE"].difficulty == "common"
        assert table.lookup("THE") is table["THE"]

    def test_serializable_form(self) -> None:
        r = score("QI")
        assert FrequencyRecord.from_serializable("QI", r.to_serializable()) == r

    def test_bad_difficulty_rejected(self) -> None:
        with pytest.raises(ValueError):
            FrequencyRecord.from_serializable("QI", [85, 90, "legendary", 11])

    def test_wire_form(self) -> None:
        d = score("CAT").to_dict()
        assert d == {
            "word": "CAT",
            "frequency": 80,
            "gameFrequency": 70,
            "difficulty": "common",
            "scrabbleScore": 5,
            "length": 3,
        }
