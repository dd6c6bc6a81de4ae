"""
Normalization & Canonicalization Layer

RESPONSIBILITY: Canonical keys for candidate text, de-duplication, and the
closed genre code set
ALLOWED INPUTS: Raw strings and candidate sequences from the calling layer
OUTPUTS: Normalized keys, de-duplicated lists, canonical genre codes and
query variant sets

WHAT THIS LAYER MUST NOT DO:
============================
- Reject unknown genre values (they pass through as an "unknown" bucket)
- Reorder candidates (first occurrence wins, original order kept)
- Raise on any string input

BOUNDARY ENFORCEMENT:
=====================
Every function here is total and pure. Tables are frozen; custom tables are
injected by constructing a new GenreCanonicalizer, never by mutation.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Callable, Dict, FrozenSet, Iterable, List, Optional, TypeVar
import re
import unicodedata


T = TypeVar("T")

_WHITESPACE = re.compile(r"\s+")


# =============================================================================
# TEXT NORMALIZATION
# =============================================================================

def normalize_text(text: Optional[str]) -> str:
    """
    Canonical key of a piece of text.

    Lowercase, NFD-decompose, drop combining marks, collapse whitespace,
    trim. "Ámélie " and "amelie" share a key.
    """
    if not text:
        return ""
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    return _WHITESPACE.sub(" ", stripped).strip()


def dedupe(items: Iterable[T], key_fn: Callable[[T], Optional[str]]) -> List[T]:
    """
    Keep the first item per normalized key, in original order.

    Items whose normalized key is empty are dropped entirely.
    """
    seen = set()
    kept: List[T] = []
    for item in items:
        key = normalize_text(key_fn(item))
        if not key or key in seen:
            continue
        seen.add(key)
        kept.append(item)
    return kept


# =============================================================================
# GENRE CANONICALIZATION (Closed code set)
# =============================================================================

@dataclass(frozen=True)
class GenreClass:
    """
    One canonical genre code.

    synonyms: lowercase inputs recognized as this class.
    variants: spellings historically stored for this class, used to query
    heterogeneous legacy data.
    """
    code: str
    synonyms: FrozenSet[str]
    variants: FrozenSet[str]


DEFAULT_GENRE_CLASSES = (
    GenreClass(
        code="M",
        synonyms=frozenset({"m", "masculin", "male", "homme"}),
        variants=frozenset({
            "M", "m", "Masculin", "masculin", "Male", "male", "Homme", "homme",
        }),
    ),
    GenreClass(
        code="F",
        synonyms=frozenset({"f", "féminin", "feminin", "female", "femme"}),
        variants=frozenset({
            "F", "f", "Féminin", "féminin", "Feminin", "feminin",
            "Female", "female", "Femme", "femme",
        }),
    ),
    GenreClass(
        code="NB",
        synonyms=frozenset({
            "nb", "non-binaire", "non binaire", "nonbinaire",
            "neutre", "neutral", "neutre.",
        }),
        variants=frozenset({
            "NB", "nb", "Non-binaire", "non-binaire", "Non binaire", "non binaire",
            "Nonbinaire", "nonbinaire", "Neutre", "neutre", "Neutral", "neutral",
        }),
    ),
)


class GenreCanonicalizer:
    """
    Maps free-form genre labels to the closed code set and back to the set
    of stored variants.

    Deterministic: matching is a case-insensitive lookup in frozen tables.
    """

    def __init__(self, classes: Iterable[GenreClass] = DEFAULT_GENRE_CLASSES):
        self._classes: Dict[str, GenreClass] = {}
        self._by_synonym: Dict[str, GenreClass] = {}
        for genre_class in classes:
            self._classes[genre_class.code] = genre_class
            for synonym in genre_class.synonyms:
                self._by_synonym[synonym] = genre_class

    @property
    def codes(self) -> FrozenSet[str]:
        return frozenset(self._classes)

    def _lookup(self, value: object) -> Optional[GenreClass]:
        if not isinstance(value, str):
            return None
        raw = value.strip()
        if not raw:
            return None
        match = self._by_synonym.get(unicodedata.normalize("NFC", raw).lower())
        if match is not None:
            return match
        return self._classes.get(raw)

    def canonicalize(self, value: object) -> Optional[str]:
        """
        Return the canonical code, or None for missing/unrecognized input.

        None means "unknown", not an error.
        """
        match = self._lookup(value)
        return match.code if match is not None else None

    def expand(self, value: object) -> FrozenSet[str]:
        """
        Return every stored variant for a recognized class.

        Unrecognized input yields a singleton holding the (trimmed) input,
        so callers always have at least one lookup value.
        """
        match = self._lookup(value)
        if match is not None:
            return match.variants
        if not isinstance(value, str):
            return frozenset({str(value)})
        raw = value.strip()
        return frozenset({raw if raw else value})


_DEFAULT_CANONICALIZER = GenreCanonicalizer()


def canonicalize_genre(value: object) -> Optional[str]:
    """Canonical code ("M", "F", "NB") or None."""
    return _DEFAULT_CANONICALIZER.canonicalize(value)


def expand_genre(value: object) -> FrozenSet[str]:
    """Query variant set for a genre label (never empty)."""
    return _DEFAULT_CANONICALIZER.expand(value)


def genres_compatible(
    wanted: Optional[str],
    have: Optional[str],
    canonicalizer: GenreCanonicalizer = _DEFAULT_CANONICALIZER,
) -> bool:
    """
    True when either side is unset or their variant sets intersect.
    """
    if wanted is None or have is None:
        return True
    return bool(canonicalizer.expand(wanted) & canonicalizer.expand(have))


def same_genre(
    wanted: str,
    have: str,
    canonicalizer: GenreCanonicalizer = _DEFAULT_CANONICALIZER,
) -> bool:
    """
    True when a stored genre belongs to the class of the wanted genre.

    Both sides recognized: compare canonical codes, so "FEMME" or "Féminin "
    match "F". Otherwise the stored value must be one of the variants of the
    wanted label.
    """
    wanted_code = canonicalizer.canonicalize(wanted)
    have_code = canonicalizer.canonicalize(have)
    if wanted_code is not None and have_code is not None:
        return wanted_code == have_code
    variants = canonicalizer.expand(wanted)
    return have in variants or (isinstance(have, str) and have.strip() in variants)
