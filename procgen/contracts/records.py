"""
Input Contracts

Read-only shapes the calling layer hands to the engine after fetching them
from storage. The engine never mutates these; every transformation yields
new objects.

WHAT THESE TYPES MUST NOT CONTAIN:
- Storage handles or lazy relations
- Derived/generated data (see events.py)
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional, Tuple

from .base import RecordId


@dataclass(frozen=True)
class CandidateRecord:
    """
    A row-like unit (name, title, place, concept, creature) eligible for
    sampling.

    secondary_texts carry lower-weight searchable labels (type, description,
    keywords, mood). attributes are carried through verbatim to the
    generated item, in order.
    """
    id: RecordId
    display_text: str
    genre: Optional[str] = None
    culture_id: Optional[RecordId] = None
    categorie_id: Optional[RecordId] = None
    univers_id: Optional[RecordId] = None
    family_name: Optional[str] = None
    secondary_texts: Tuple[str, ...] = field(default_factory=tuple)
    attributes: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    def attribute(self, key: str, default: Any = None) -> Any:
        for name, value in self.attributes:
            if name == key:
                return value
        return default


@dataclass(frozen=True)
class NarrativeFragment:
    """
    Reusable narrative snippet with optional scope and name-length bounds.

    The text may embed the subject-name placeholder ("{name}"); unset scope
    fields act as wildcards.
    """
    id: RecordId
    text: str
    applies_to: Optional[str] = None
    genre: Optional[str] = None
    culture_id: Optional[RecordId] = None
    categorie_id: Optional[RecordId] = None
    min_name_length: Optional[int] = None
    max_name_length: Optional[int] = None

    def __post_init__(self):
        for bound in (self.min_name_length, self.max_name_length):
            if bound is not None and bound < 0:
                raise ValueError("name length bounds must be non-negative")
        if (
            self.min_name_length is not None
            and self.max_name_length is not None
            and self.min_name_length > self.max_name_length
        ):
            raise ValueError("min_name_length must not exceed max_name_length")


@dataclass(frozen=True)
class GenerationRequest:
    """
    Filter set of one generation request, already validated upstream
    (count in [1, 200], ids numeric, strings trimmed).
    """
    count: int = 10
    culture_id: Optional[RecordId] = None
    categorie_id: Optional[RecordId] = None
    univers_id: Optional[RecordId] = None
    genre: Optional[str] = None
    seed: Optional[str] = None
    keywords: Optional[str] = None

    def with_scope(
        self,
        culture_id: Optional[RecordId] = None,
        categorie_id: Optional[RecordId] = None,
        genre: Optional[str] = None,
    ) -> GenerationRequest:
        """Return a copy where the given values fill the unset filters."""
        return GenerationRequest(
            count=self.count,
            culture_id=self.culture_id if self.culture_id is not None else culture_id,
            categorie_id=self.categorie_id if self.categorie_id is not None else categorie_id,
            univers_id=self.univers_id,
            genre=self.genre if self.genre is not None else genre,
            seed=self.seed,
            keywords=self.keywords,
        )

    def echo(self) -> Tuple[Tuple[str, Any], ...]:
        """Filter pairs echoed back in the response (wire key names)."""
        return (
            ("cultureId", self.culture_id),
            ("categorieId", self.categorie_id),
            ("universId", self.univers_id),
            ("genre", self.genre),
            ("keywords", self.keywords),
        )


@dataclass(frozen=True)
class CandidatePools:
    """
    Snapshot of every pool a request may draw from, already fetched by the
    calling layer.
    """
    names: Tuple[CandidateRecord, ...] = field(default_factory=tuple)
    fragments: Tuple[NarrativeFragment, ...] = field(default_factory=tuple)
    places: Tuple[CandidateRecord, ...] = field(default_factory=tuple)
    titles: Tuple[CandidateRecord, ...] = field(default_factory=tuple)
    concepts: Tuple[CandidateRecord, ...] = field(default_factory=tuple)
    creatures: Tuple[CandidateRecord, ...] = field(default_factory=tuple)

    def find_title(self, title_id: RecordId) -> Optional[CandidateRecord]:
        for title in self.titles:
            if str(title.id) == str(title_id):
                return title
        return None
