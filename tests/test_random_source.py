"""Tests for the seedable random source and its Box-Muller noise model."""

from __future__ import annotations

import statistics
import string
from datetime import datetime, timedelta

import pytest

from matchpulse.core.random_source import TelemetryRandom


class TestReproducibility:
    def test_same_seed_same_sequence(self):
        """Two sources with one seed produce identical draws."""
        a, b = TelemetryRandom(42), TelemetryRandom(42)
        assert [a.integer(0, 1000) for _ in range(20)] == [b.integer(0, 1000) for _ in range(20)]
        assert a.token() == b.token()
        assert a.gaussian() == b.gaussian()

    def test_different_seeds_diverge(self):
        a, b = TelemetryRandom(1), TelemetryRandom(2)
        assert [a.random() for _ in range(5)] != [b.random() for _ in range(5)]


class TestDraws:
    def test_integer_is_inclusive(self):
        """Both ends of the integer range are reachable."""
        rng = TelemetryRandom(0)
        seen = {rng.integer(1, 3) for _ in range(500)}
        assert seen == {1, 2, 3}

    def test_integer_rejects_reversed_range(self):
        with pytest.raises(ValueError):
            TelemetryRandom(0).integer(5, 4)

    def test_uniform_bounds(self):
        rng = TelemetryRandom(3)
        for _ in range(500):
            assert 2.0 <= rng.uniform(2.0, 5.0) < 5.0

    def test_sample_is_distinct(self):
        rng = TelemetryRandom(7)
        pool = ["a", "b", "c", "d"]
        for _ in range(100):
            picked = rng.sample(pool, 3)
            assert len(set(picked)) == 3
            assert set(picked) <= set(pool)

    def test_sample_too_many(self):
        with pytest.raises(ValueError):
            TelemetryRandom(0).sample(["a", "b"], 3)

    def test_choice_empty(self):
        with pytest.raises(ValueError):
            TelemetryRandom(0).choice([])

    def test_chance_extremes(self):
        rng = TelemetryRandom(5)
        assert not any(rng.chance(0.0) for _ in range(100))
        assert all(rng.chance(1.0) for _ in range(100))


class TestNoiseModel:
    def test_gaussian_moments(self):
        """Box-Muller draws have roughly the requested mean and spread."""
        rng = TelemetryRandom(11)
        values = [rng.gaussian(100.0, 10.0) for _ in range(5000)]
        assert statistics.fmean(values) == pytest.approx(100.0, abs=1.0)
        assert statistics.pstdev(values) == pytest.approx(10.0, abs=1.0)

    def test_zero_std_returns_mean(self):
        rng = TelemetryRandom(0)
        assert rng.gaussian(450.0, 0.0) == 450.0

    def test_perturb_floor(self):
        """Perturbed values never drop below the floor."""
        rng = TelemetryRandom(9)
        values = [rng.perturb(100, 200, floor=100) for _ in range(500)]
        assert min(values) >= 100
        assert all(isinstance(v, int) for v in values)


class TestInstants:
    def test_instant_inside_half_open_window(self):
        rng = TelemetryRandom(4)
        start = datetime(2025, 1, 1, 12, 0, 0)
        end = start + timedelta(seconds=2)
        for _ in range(500):
            ts = rng.instant_between(start, end)
            assert start <= ts < end

    def test_empty_window_rejected(self):
        start = datetime(2025, 1, 1)
        with pytest.raises(ValueError):
            TelemetryRandom(0).instant_between(start, start)

    def test_token_alphabet(self):
        token = TelemetryRandom(0).token(32)
        assert len(token) == 32
        assert set(token) <= set(string.ascii_letters + string.digits + "_-")
