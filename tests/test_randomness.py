"""
Tests for the RNG provider layer.
"""

import pytest

from procgen.randomness import (
    RngAlgorithm, SeededRng, create_rng, default_seed, draw_index, fnv1a_32, pick,
)


def draws(rng, n=20):
    return [rng() for _ in range(n)]


class TestCreateRng:
    """Seeded streams are pure functions of (seed, algorithm, call index)."""

    @pytest.mark.parametrize("algorithm", list(RngAlgorithm))
    def test_same_seed_same_stream(self, algorithm):
        assert draws(create_rng("alpha", algorithm)) == draws(create_rng("alpha", algorithm))

    @pytest.mark.parametrize("algorithm", list(RngAlgorithm))
    def test_different_seed_different_stream(self, algorithm):
        assert draws(create_rng("alpha", algorithm)) != draws(create_rng("beta", algorithm))

    @pytest.mark.parametrize("algorithm", list(RngAlgorithm))
    def test_values_in_unit_interval(self, algorithm):
        for value in draws(create_rng("range", algorithm), 500):
            assert 0.0 <= value < 1.0

    def test_empty_seed_is_valid_and_deterministic(self):
        rng = create_rng("")
        assert rng.seed == ""
        assert draws(rng) == draws(create_rng(""))

    def test_missing_seed_comes_from_clock(self):
        rng = create_rng(None, clock=lambda: 1700000000.123)
        assert rng.seed == "1700000000123"

    def test_clock_seed_replays(self):
        first = create_rng(None, clock=lambda: 42.5)
        replay = create_rng(first.seed)
        assert draws(first) == draws(replay)

    def test_algorithms_produce_different_streams(self):
        assert draws(create_rng("alpha", RngAlgorithm.PCG64)) != draws(create_rng("alpha", RngAlgorithm.MULBERRY32))

    def test_draw_count_tracks_calls(self):
        rng = create_rng("count")
        assert rng.draw_count == 0
        rng()
        rng.next()
        assert rng.draw_count == 2

    def test_instances_do_not_share_state(self):
        a = create_rng("shared")
        b = create_rng("shared")
        a()
        a()
        assert b.draw_count == 0
        assert b() == create_rng("shared")()

    def test_default_algorithm_is_pcg64(self):
        assert create_rng("x").algorithm is RngAlgorithm.PCG64
        assert isinstance(create_rng("x"), SeededRng)


class TestHashing:
    """FNV-1a over UTF-16 code units."""

    def test_empty_string_is_offset_basis(self):
        assert fnv1a_32("") == 2166136261

    def test_known_ascii_value(self):
        assert fnv1a_32("a") == 0xE40C292C

    def test_fits_32_bits(self):
        assert 0 <= fnv1a_32("Éléonore des Brumes ✨") <= 0xFFFFFFFF


class TestHelpers:

    def test_default_seed_is_epoch_millis(self):
        assert default_seed(lambda: 1.5) == "1500"

    def test_draw_index_floor(self):
        assert draw_index(lambda: 0.0, 5) == 0
        assert draw_index(lambda: 0.5, 4) == 2

    def test_draw_index_clamped_at_top(self):
        assert draw_index(lambda: 0.9999999999999999, 3) == 2

    def test_pick_uses_floor_index(self):
        assert pick(("a", "b", "c", "d"), lambda: 0.74) == "c"
