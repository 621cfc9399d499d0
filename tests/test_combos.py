"""Tests for combo statistics and confidence intervals."""

from __future__ import annotations

import pytest

from matchpulse.core.config import ComboConfig
from matchpulse.core.constants import PLAYER_NAMES
from matchpulse.core.random_source import TelemetryRandom
from matchpulse.synthesis.combos import (
    combo_win_rate,
    confidence_interval,
    synthesize_combos,
    wilson_interval,
)


class TestWinRate:
    def test_ratio(self):
        assert combo_win_rate(3, 4) == 0.75

    def test_zero_attempts(self):
        """Nothing attempted is a 0.0 rate, not a division error."""
        assert combo_win_rate(0, 0) == 0.0

    @pytest.mark.parametrize("successes,attempts", [(5, 4), (-1, 4), (0, -1)])
    def test_invalid_counts(self, successes, attempts):
        with pytest.raises(ValueError):
            combo_win_rate(successes, attempts)


class TestConfidenceInterval:
    def test_fixed_is_symmetric_and_unclamped(self):
        """The fixed band may leave [0, 1]."""
        low, high = confidence_interval(0, 10)
        assert low == pytest.approx(-0.1)
        assert high == pytest.approx(0.1)

        low, high = confidence_interval(10, 10, delta=0.2)
        assert low == pytest.approx(0.8)
        assert high == pytest.approx(1.2)

    def test_wilson_bounds(self):
        low, high = wilson_interval(0, 10)
        assert low == 0.0
        assert high == pytest.approx(0.2775, abs=1e-3)

        low, high = wilson_interval(10, 10)
        assert high == 1.0
        assert low == pytest.approx(0.7225, abs=1e-3)

    def test_wilson_contains_estimate(self):
        for attempts in range(1, 30):
            for successes in range(attempts + 1):
                low, high = wilson_interval(successes, attempts)
                assert 0.0 <= low <= successes / attempts <= high <= 1.0

    def test_wilson_no_data(self):
        assert wilson_interval(0, 0) == (0.0, 1.0)

    def test_unknown_method(self):
        with pytest.raises(ValueError):
            confidence_interval(1, 2, method="bootstrap")


class TestSynthesizeCombos:
    @pytest.mark.parametrize("seed", range(5))
    def test_persisted_combos(self, db, make_match, seed):
        match = make_match()
        config = ComboConfig()
        with db.transaction() as repo:
            count = synthesize_combos(repo, match.id, config, TelemetryRandom(seed))

        combos = db.get_combos(match.id)
        assert len(combos) == count
        assert config.min_combos <= count <= config.max_combos
        for combo in combos:
            assert 2 <= len(set(combo.members)) == len(combo.members) <= 3
            assert set(combo.members) <= set(PLAYER_NAMES)
            assert combo.context in ("offense", "defense")
            assert 0 <= combo.successes <= combo.attempts
            assert config.min_attempts <= combo.attempts <= config.max_attempts
            assert combo.win_rate == combo.successes / combo.attempts
            assert combo.confidence_interval_low <= combo.win_rate <= combo.confidence_interval_high
            assert combo.confidence_interval_high - combo.confidence_interval_low == pytest.approx(0.2)
            assert combo.details.combo_type == ("duo" if len(combo.members) == 2 else "trio")
            assert combo.details.interval_method == "fixed"

    def test_wilson_combos_stay_in_unit_interval(self, db, make_match):
        match = make_match()
        with db.transaction() as repo:
            synthesize_combos(repo, match.id, ComboConfig(interval_method="wilson"), TelemetryRandom(3))
        for combo in db.get_combos(match.id):
            assert 0.0 <= combo.confidence_interval_low <= combo.win_rate <= combo.confidence_interval_high <= 1.0
            assert combo.details.interval_method == "wilson"

    def test_ranked_by_win_rate(self, db, make_match):
        match = make_match()
        with db.transaction() as repo:
            synthesize_combos(repo, match.id, ComboConfig(min_combos=6, max_combos=6), TelemetryRandom(9))
        rates = [c.win_rate for c in db.get_combos(match.id)]
        assert rates == sorted(rates, reverse=True)
