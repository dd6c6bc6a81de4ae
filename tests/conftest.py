"""
Shared pool factories.

Pools are explicit, never random: every test states the exact records it
draws from.
"""

import pytest

from procgen.contracts.records import CandidatePools, CandidateRecord, GenerationRequest, NarrativeFragment
from procgen.engine import GenerationEngine


def _make_name(id, text, culture_id=1, categorie_id=None, genre=None, family_name=None, **attributes):
    return CandidateRecord(
        id=id,
        display_text=text,
        genre=genre,
        culture_id=culture_id,
        categorie_id=categorie_id,
        family_name=family_name,
        attributes=tuple(attributes.items()),
    )


def _make_fragment(id, text, **scope):
    return NarrativeFragment(id=id, text=text, **scope)


def _make_record(id, text, secondary=(), **fields):
    attributes = tuple(fields.pop("attributes", ()))
    return CandidateRecord(id=id, display_text=text, secondary_texts=tuple(secondary), attributes=attributes, **fields)


@pytest.fixture
def make_name():
    return _make_name


@pytest.fixture
def make_fragment():
    return _make_fragment


@pytest.fixture
def make_record():
    return _make_record


@pytest.fixture
def names():
    """Five names, all scoped to culture 1."""
    return (
        _make_name(1, "Aelis", genre="F"),
        _make_name(2, "Brann", genre="M"),
        _make_name(3, "Cyrielle", genre="Féminin"),
        _make_name(4, "Doran", genre="homme", family_name="Vey"),
        _make_name(5, "Eloi", genre="M", family_name="Marchetour"),
    )


@pytest.fixture
def fragments():
    """Three unscoped fragments without length bounds."""
    return (
        _make_fragment(101, "{name} a grandi au bord d'un lac gelé."),
        _make_fragment(102, "On raconte que {name} a trahi un serment."),
        _make_fragment(103, "Une cicatrice barre la joue de {name}."),
    )


@pytest.fixture
def request_alpha():
    return GenerationRequest(count=2, culture_id=1, seed="alpha")


@pytest.fixture
def engine():
    return GenerationEngine()


@pytest.fixture
def pools(names, fragments):
    return CandidatePools(
        names=names,
        fragments=fragments,
        places=(
            _make_record(11, "Port-Brume", secondary=("port",), categorie_id=7, attributes=(("type", "port"),)),
            _make_record(12, "Les Crêtes Ardentes", secondary=("montagne",), categorie_id=7, attributes=(("type", "montagne"),)),
            _make_record(13, "Val des Cendres", categorie_id=8, attributes=(("type", "vallée"),)),
        ),
        titles=(
            _make_record(21, "Dame", genre="F", culture_id=1),
            _make_record(22, "Sire", genre="M", culture_id=1),
            _make_record(23, "Haut-Juge", culture_id=2),
        ),
        concepts=(
            _make_record(31, "La Marée Rouge", categorie_id=7,
                         attributes=(("type", "événement"), ("mood", "sombre"), ("keywords", "marée, sang, lune"))),
            _make_record(32, "Le Pacte des Cendres", categorie_id=7,
                         attributes=(("type", "intrigue"), ("mood", None), ("keywords", None))),
        ),
        creatures=(
            _make_record(41, "Garde-Feu", secondary=("élémentaire", "gardien des braises"),
                         attributes=(("type", "élémentaire"), ("description", "gardien des braises"))),
            _make_record(42, "Salamandre", secondary=("reptile", "vit dans les flammes"),
                         attributes=(("type", "reptile"), ("description", "vit dans les flammes"))),
            _make_record(43, "Ondin", secondary=("esprit", "habite les rivières"),
                         attributes=(("type", "esprit"), ("description", "habite les rivières"))),
        ),
    )
