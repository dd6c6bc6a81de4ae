"""
Tests for text normalization, de-duplication and genre canonicalization.
"""

import pytest

from procgen.normalization import (
    GenreCanonicalizer, GenreClass, canonicalize_genre, dedupe, expand_genre,
    genres_compatible, normalize_text, same_genre,
)


class TestNormalizeText:

    def test_accents_case_and_whitespace(self):
        assert normalize_text("  Ámélie  ") == "amelie"
        assert normalize_text("Jean \t  Luc") == "jean luc"

    def test_missing_text_is_empty_key(self):
        assert normalize_text(None) == ""
        assert normalize_text("") == ""

    def test_cedilla_and_ligature_marks(self):
        assert normalize_text("François") == "francois"


class TestDedupe:

    def test_accent_variants_collapse(self):
        assert dedupe(["Ámélie ", "amelie"], lambda s: s) == ["Ámélie "]

    def test_first_occurrence_wins_in_order(self):
        items = ["Bob", "Ámélie ", "BOB", "amelie", "Chloé"]
        assert dedupe(items, lambda s: s) == ["Bob", "Ámélie ", "Chloé"]

    def test_empty_keys_dropped(self):
        assert dedupe(["", "  ", None, "x"], lambda s: s) == ["x"]

    def test_key_function_applied(self):
        rows = [{"id": 1, "v": "Eva"}, {"id": 2, "v": "éva"}]
        assert [r["id"] for r in dedupe(rows, lambda r: r["v"])] == [1]


class TestGenreCanonicalization:

    @pytest.mark.parametrize("label,code", [
        ("Femme", "F"),
        ("f", "F"),
        ("FÉMININ", "F"),
        ("female", "F"),
        ("homme", "M"),
        ("Masculin", "M"),
        ("M", "M"),
        ("Non-binaire", "NB"),
        ("neutre.", "NB"),
        (" nb ", "NB"),
    ])
    def test_known_labels(self, label, code):
        assert canonicalize_genre(label) == code

    @pytest.mark.parametrize("label", ["xyz", "", "   ", None, 3])
    def test_unknown_is_none(self, label):
        assert canonicalize_genre(label) is None

    def test_expand_feminine_superset(self):
        expected = {"F", "f", "Féminin", "féminin", "Female", "female", "Femme", "femme"}
        assert expected <= expand_genre("f")

    def test_expand_unknown_is_singleton(self):
        assert expand_genre("xyz") == frozenset({"xyz"})
        assert expand_genre("  xyz ") == frozenset({"xyz"})

    def test_compatibility(self):
        assert genres_compatible("F", "femme")
        assert not genres_compatible("F", "M")
        assert genres_compatible(None, "M")
        assert genres_compatible("NB", None)

    @pytest.mark.parametrize("wanted,have,expected", [
        ("F", "FEMME", True),
        ("F", "Féminin ", True),
        ("femme", "f", True),
        ("F", "M", False),
        ("xyz", "xyz", True),
        ("xyz", " xyz ", True),
        ("F", "xyz", False),
        ("xyz", "F", False),
    ])
    def test_same_genre(self, wanted, have, expected):
        assert same_genre(wanted, have) is expected

    def test_custom_table_injected(self):
        canonicalizer = GenreCanonicalizer((
            GenreClass(code="X", synonyms=frozenset({"autre"}), variants=frozenset({"X", "Autre"})),
        ))
        assert canonicalizer.canonicalize("Autre") == "X"
        assert canonicalizer.canonicalize("femme") is None
        assert canonicalizer.codes == frozenset({"X"})
