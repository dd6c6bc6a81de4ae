"""
Tests for the keyword relevance layer.
"""

import pytest

from procgen.contracts.records import CandidateRecord
from procgen.ranking import (
    KeywordScorer, MatchTier, ScorerConfig, TermExpansionTable, collation_key,
    match_tier, split_keywords,
)


def candidate(id, text, secondary=(), family_name=None):
    return CandidateRecord(id=id, display_text=text, secondary_texts=tuple(secondary), family_name=family_name)


class TestSplitKeywords:

    def test_separators_and_trimming(self):
        assert split_keywords("feu; glace | ombre,,  ") == ("feu", "glace", "ombre")

    def test_limit(self):
        assert split_keywords("a,b,c,d,e,f,g") == ("a", "b", "c", "d", "e", "f")
        assert split_keywords("a,b,c", limit=2) == ("a", "b")

    def test_missing(self):
        assert split_keywords(None) == ()
        assert split_keywords("") == ()


class TestMatchTier:

    @pytest.mark.parametrize("text,term,tier", [
        ("feu", "feu", MatchTier.EXACT),
        ("garde-feu", "feu", MatchTier.WORD),
        ("la mer noire", "mer noire", MatchTier.WORD),
        ("feux follets", "feu", MatchTier.PREFIX),
        ("enfeu", "feu", MatchTier.SUBSTRING),
        ("eau", "feu", MatchTier.NONE),
        ("", "feu", MatchTier.NONE),
        ("feu", "", MatchTier.NONE),
    ])
    def test_tiers(self, text, term, tier):
        assert match_tier(text, term) is tier


class TestKeywordScorer:

    def test_exact_beats_substring(self):
        scorer = KeywordScorer()
        terms = scorer.prepare_terms("feu")
        assert scorer.score("feu", terms) > scorer.score("enfeu", terms)

    def test_tier_points(self):
        scorer = KeywordScorer(expansions=TermExpansionTable())
        terms = scorer.prepare_terms("feu")
        assert scorer.score("Feu", terms) == 100.0
        assert scorer.score("Garde-Feu", terms) == 60.0
        assert scorer.score("Feux follets", terms) == 30.0
        assert scorer.score("Enfeu", terms) == 10.0
        assert scorer.score("Ondin", terms) == 0.0

    def test_accents_ignored(self):
        scorer = KeywordScorer(expansions=TermExpansionTable())
        assert scorer.score("Forêt", scorer.prepare_terms("foret")) == 100.0

    def test_scores_sum_across_terms(self):
        scorer = KeywordScorer(expansions=TermExpansionTable())
        terms = scorer.prepare_terms("garde, feu")
        assert scorer.score("Garde-Feu", terms) == 120.0

    def test_secondary_weight(self):
        scorer = KeywordScorer(expansions=TermExpansionTable())
        terms = scorer.prepare_terms("reptile")
        assert scorer.score("Salamandre", terms, secondary=("reptile",)) == 50.0

    def test_expansion_weight(self):
        scorer = KeywordScorer()
        terms = scorer.prepare_terms("feu")
        assert scorer.score("Flamme", terms) == 50.0

    def test_family_name_is_primary(self):
        scorer = KeywordScorer(expansions=TermExpansionTable())
        terms = scorer.prepare_terms("feu")
        assert scorer.score_candidate(candidate(1, "Aelis", family_name="Feuillard"), terms) == 30.0

    def test_duplicate_keywords_counted_once(self):
        scorer = KeywordScorer(expansions=TermExpansionTable())
        assert [t.term for t in scorer.prepare_terms("Feu, feu ; FÉU")] == ["feu"]

    def test_expanded_terms_follow_direct_terms(self):
        terms = KeywordScorer().prepare_terms("feu")
        assert terms[0].term == "feu" and terms[0].weight == 1.0
        assert all(t.expanded_from == "feu" and t.weight == 0.5 for t in terms[1:])
        assert "flamme" in {t.term for t in terms}

    def test_custom_weights(self):
        scorer = KeywordScorer(ScorerConfig(exact_points=7.0), TermExpansionTable())
        assert scorer.score("feu", scorer.prepare_terms("feu")) == 7.0


class TestRank:

    def test_order_by_tier(self):
        pool = [
            candidate(1, "Enfeu"),
            candidate(2, "Garde-Feu"),
            candidate(3, "Feu"),
            candidate(4, "Feux Follets"),
            candidate(5, "Ondin"),
        ]
        outcome = KeywordScorer(expansions=TermExpansionTable()).rank(pool, "feu")
        assert outcome.ranked and not outcome.fallback
        assert [c.id for c in outcome.candidates] == [3, 2, 4, 1]
        assert outcome.scores == (100.0, 60.0, 30.0, 10.0)
        assert outcome.terms == ("feu",)

    def test_expansion_reaches_secondary_texts(self):
        pool = [
            candidate(41, "Garde-Feu", ("élémentaire", "gardien des braises")),
            candidate(42, "Salamandre", ("reptile", "vit dans les flammes")),
            candidate(43, "Ondin", ("esprit", "habite les rivières")),
        ]
        outcome = KeywordScorer().rank(pool, "feu")
        assert [c.id for c in outcome.candidates] == [41, 42]

    def test_ties_use_accent_folded_collation(self):
        pool = [
            candidate(1, "Zéphyr du feu"),
            candidate(2, "Élan du feu"),
            candidate(3, "Aube du feu"),
        ]
        outcome = KeywordScorer(expansions=TermExpansionTable()).rank(pool, "feu")
        assert [c.id for c in outcome.candidates] == [3, 2, 1]

    def test_no_match_falls_back_to_full_pool(self):
        pool = [candidate(1, "Ondin"), candidate(2, "Sylphe")]
        outcome = KeywordScorer().rank(pool, "zzz")
        assert outcome.fallback and not outcome.ranked
        assert outcome.candidates == tuple(pool)

    def test_no_keywords_leaves_pool_untouched(self):
        pool = [candidate(2, "B"), candidate(1, "A")]
        outcome = KeywordScorer().rank(pool, None)
        assert not outcome.ranked and not outcome.fallback
        assert outcome.candidates == tuple(pool)

    def test_empty_pool_with_keywords(self):
        outcome = KeywordScorer().rank([], "feu")
        assert outcome.fallback
        assert outcome.candidates == ()


class TestTermExpansionTable:

    def test_register_and_expand(self):
        table = TermExpansionTable()
        table.register("Brume", ["Brouillard", "brume", "Vapeur"])
        assert table.expand("brume") == ("brouillard", "vapeur")
        assert "BRUME" in table
        assert len(table) == 1

    def test_register_extends(self):
        table = TermExpansionTable({"mer": ["vague"]})
        table.register("mer", ["écume"])
        assert table.expand("mer") == ("ecume", "vague")

    def test_default_tables_are_independent(self):
        first = TermExpansionTable.default()
        first.register("feu", ["phénix"])
        assert "phenix" not in TermExpansionTable.default().expand("feu")

    def test_collation_key_folds_accents_first(self):
        assert sorted(["Zoé", "Élan", "aube"], key=collation_key) == ["aube", "Élan", "Zoé"]
