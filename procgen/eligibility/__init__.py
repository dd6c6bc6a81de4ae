"""
Fragment Eligibility Layer

RESPONSIBILITY: Decide which fragments (and candidates) are in scope for a
subject
ALLOWED INPUTS: NarrativeFragment / CandidateRecord, the composed subject
name length, the request filters
OUTPUTS: Booleans and filtered tuples

WHAT THIS LAYER MUST NOT DO:
============================
- Draw random numbers
- Reorder the pool (filtering keeps input order)
- Treat an unset value as a mismatch: an unset fragment scope field is a
  wildcard, an unset filter does not constrain

Each predicate is an independent function so new criteria can be added
without touching the others; is_eligible is their conjunction.
"""

from __future__ import annotations
from typing import Callable, Iterable, Optional, Tuple

from ..contracts.base import RecordId
from ..contracts.records import CandidateRecord, GenerationRequest, NarrativeFragment
from ..normalization import same_genre


FragmentPredicate = Callable[[NarrativeFragment], bool]


def _same_id(wanted: Optional[RecordId], have: Optional[RecordId]) -> bool:
    # Ids arrive as ints from the store and as strings from JSON snapshots.
    if wanted is None or have is None:
        return True
    return str(wanted) == str(have)


# =============================================================================
# PREDICATES
# =============================================================================

def applies_to_matches(fragment: NarrativeFragment, applies_to: Optional[str]) -> bool:
    """Fragment target kind is unset or equals the requested kind."""
    if applies_to is None or fragment.applies_to is None:
        return True
    return fragment.applies_to == applies_to


def culture_matches(fragment: NarrativeFragment, culture_id: Optional[RecordId]) -> bool:
    return _same_id(culture_id, fragment.culture_id)


def categorie_matches(fragment: NarrativeFragment, categorie_id: Optional[RecordId]) -> bool:
    return _same_id(categorie_id, fragment.categorie_id)


def genre_matches(fragment: NarrativeFragment, genre: Optional[str]) -> bool:
    """Fragment genre is unset or in the same genre class as the filter genre."""
    if genre is None or fragment.genre is None:
        return True
    return same_genre(genre, fragment.genre)


def length_within_bounds(fragment: NarrativeFragment, subject_name_length: int) -> bool:
    """Inclusive min/max name-length bounds; each bound optional."""
    if fragment.min_name_length is not None and subject_name_length < fragment.min_name_length:
        return False
    if fragment.max_name_length is not None and subject_name_length > fragment.max_name_length:
        return False
    return True


# =============================================================================
# COMPOSED FILTERS
# =============================================================================

def is_eligible(
    fragment: NarrativeFragment,
    subject_name_length: int,
    filters: GenerationRequest,
    applies_to: Optional[str] = None,
    subject_genre: Optional[str] = None,
) -> bool:
    """
    Conjunction of all predicates.

    subject_genre stands in for the filter genre when the request leaves it
    unset, so a fragment written for "F" is not attached to an "M" subject.
    """
    genre = filters.genre if filters.genre is not None else subject_genre
    return (
        applies_to_matches(fragment, applies_to)
        and culture_matches(fragment, filters.culture_id)
        and categorie_matches(fragment, filters.categorie_id)
        and genre_matches(fragment, genre)
        and length_within_bounds(fragment, subject_name_length)
    )


def eligible_fragments(
    fragments: Iterable[NarrativeFragment],
    subject_name_length: int,
    filters: GenerationRequest,
    applies_to: Optional[str] = None,
    subject_genre: Optional[str] = None,
) -> Tuple[NarrativeFragment, ...]:
    """Eligible subset for one subject, in pool order."""
    return tuple(
        f for f in fragments
        if is_eligible(f, subject_name_length, filters, applies_to, subject_genre)
    )


def fragments_in_scope(
    fragments: Iterable[NarrativeFragment],
    filters: GenerationRequest,
    applies_to: Optional[str] = None,
) -> Tuple[NarrativeFragment, ...]:
    """Scope-only filter (no subject, so no length gate)."""
    return tuple(
        f for f in fragments
        if applies_to_matches(f, applies_to)
        and culture_matches(f, filters.culture_id)
        and categorie_matches(f, filters.categorie_id)
        and genre_matches(f, filters.genre)
    )


def candidate_in_scope(candidate: CandidateRecord, filters: GenerationRequest) -> bool:
    """
    Culture / categorie / univers / genre scope of a candidate record.

    Idempotent with any pre-filtering the caller already did. Unlike
    fragments, a candidate with an unset field is excluded when the filter
    is set.
    """
    for wanted, have in (
        (filters.culture_id, candidate.culture_id),
        (filters.categorie_id, candidate.categorie_id),
        (filters.univers_id, candidate.univers_id),
    ):
        if wanted is not None and (have is None or str(wanted) != str(have)):
            return False
    if filters.genre is not None:
        if candidate.genre is None or not same_genre(filters.genre, candidate.genre):
            return False
    return True
