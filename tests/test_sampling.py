"""
Tests for the sampling layer.
"""

from procgen.contracts.records import CandidateRecord
from procgen.randomness import create_rng
from procgen.sampling import pick_unique_bounded, sample_without_replacement


def record(id, text=None):
    return CandidateRecord(id=id, display_text=text or f"name{id}")


class TestSampleWithoutReplacement:

    def test_k_distinct_elements(self):
        pool = [record(i) for i in range(10)]
        drawn = sample_without_replacement(pool, 4, create_rng("s"))
        assert len(drawn) == 4
        assert len({r.id for r in drawn}) == 4

    def test_k_above_pool_is_permutation(self):
        pool = [record(i) for i in range(5)]
        drawn = sample_without_replacement(pool, 50, create_rng("s"))
        assert sorted(r.id for r in drawn) == [0, 1, 2, 3, 4]

    def test_zero_and_negative_k(self):
        pool = [record(1)]
        assert sample_without_replacement(pool, 0, create_rng("s")) == []
        assert sample_without_replacement(pool, -3, create_rng("s")) == []

    def test_pool_not_mutated(self):
        pool = [record(i) for i in range(6)]
        snapshot = list(pool)
        sample_without_replacement(pool, 3, create_rng("s"))
        assert pool == snapshot

    def test_deterministic(self):
        pool = [record(i) for i in range(20)]
        first = sample_without_replacement(pool, 7, create_rng("again"))
        second = sample_without_replacement(pool, 7, create_rng("again"))
        assert first == second

    def test_one_draw_per_element(self):
        rng = create_rng("draws")
        sample_without_replacement([record(i) for i in range(8)], 3, rng)
        assert rng.draw_count == 3


class TestPickUniqueBounded:

    def test_empty_pool(self):
        assert pick_unique_bounded([], set(), create_rng("s")) is None

    def test_unique_until_exhausted(self):
        pool = [record(i) for i in range(4)]
        used = set()
        rng = create_rng("unique")
        picked = [pick_unique_bounded(pool, used, rng).id for _ in range(4)]
        assert sorted(picked) == [0, 1, 2, 3]
        assert used == {0, 1, 2, 3}

    def test_repeat_after_exhaustion_draws_once(self):
        pool = [record(i) for i in range(2)]
        used = {0, 1}
        rng = create_rng("repeat")
        assert pick_unique_bounded(pool, used, rng).id in (0, 1)
        assert rng.draw_count == 1

    def test_duplicate_ids_do_not_loop(self):
        pool = [record(7, "Ana"), record(7, "Anna")]
        used = set()
        rng = create_rng("dup")
        assert pick_unique_bounded(pool, used, rng).id == 7
        assert pick_unique_bounded(pool, used, rng).id == 7
        assert used == {7}

    def test_used_ids_outside_pool_ignored(self):
        pool = [record(1), record(2)]
        used = {99, 100, 101}
        picked = pick_unique_bounded(pool, used, create_rng("x"))
        assert picked.id in (1, 2)
        assert picked.id in used

    def test_custom_id_function(self):
        pool = ["a", "b", "c"]
        used = set()
        rng = create_rng("ids")
        picked = {pick_unique_bounded(pool, used, rng, id_fn=lambda s: s) for _ in range(3)}
        assert picked == {"a", "b", "c"}
