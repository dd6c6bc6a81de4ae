"""
Output and Audit Contracts

Types the engine produces. Generated items are ephemeral: created per
request, returned, never persisted by the engine.

DETERMINISM:
============
Everything reachable from GenerationResponse.to_dict() is a pure function
of (seed, filters, pool snapshot). Wall-clock data lives only in the audit
types at the bottom of this module, which are never serialized into a
response.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple
from enum import Enum

from .base import RecordId, Timestamp


# =============================================================================
# GENERATED ITEMS
# =============================================================================

class ItemKind(Enum):
    """What a generated item describes."""
    NPC = "npc"
    CHARACTER_NAME = "nomPersonnage"
    PLACE = "lieu"
    TITLE = "titre"
    STORY_FRAGMENT = "fragment"
    CONCEPT = "concept"
    CREATURE = "creature"


class SegmentKind(Enum):
    """Kinds of discrete segments a composed text is built from."""
    FRAGMENT = "fragment"
    ROLE = "role"
    TRAITS = "traits"
    HOOK = "hook"
    SCENE = "scene"


@dataclass(frozen=True)
class TextSegment:
    """One inspectable unit of composed text."""
    kind: SegmentKind
    text: str
    source_id: Optional[RecordId] = None


@dataclass(frozen=True)
class GeneratedItem:
    """
    IMMUTABLE generated item.

    fragment_ids is the provenance of composed_text; attributes holds the
    kind-specific fields (role, traits, miniBio, elevatorPitch, ...) in the
    order they were produced.
    """
    id: str
    kind: ItemKind
    candidate_id: Optional[RecordId]
    name: str
    full_name: Optional[str] = None
    family_name: Optional[str] = None
    display_name: Optional[str] = None
    genre: Optional[str] = None
    culture_id: Optional[RecordId] = None
    categorie_id: Optional[RecordId] = None
    composed_text: Optional[str] = None
    fragment_ids: Tuple[RecordId, ...] = field(default_factory=tuple)
    segments: Tuple[TextSegment, ...] = field(default_factory=tuple)
    attributes: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)

    def attribute(self, key: str, default: Any = None) -> Any:
        for name, value in self.attributes:
            if name == key:
                return value
        return default

    def to_dict(self) -> Dict[str, Any]:
        """
        Wire representation (camelCase keys, tuples as lists).

        Attributes follow the core keys and never replace them.
        """
        data: Dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "candidateId": self.candidate_id,
            "name": self.name,
            "fullName": self.full_name,
            "familyName": self.family_name,
            "displayName": self.display_name,
            "genre": self.genre,
            "cultureId": self.culture_id,
            "categorieId": self.categorie_id,
            "composedText": self.composed_text,
            "fragmentIds": list(self.fragment_ids),
        }
        core_keys = frozenset(data)
        for key, value in self.attributes:
            if key in core_keys:
                continue
            data[key] = list(value) if isinstance(value, tuple) else value
        return data


@dataclass(frozen=True)
class GenerationResponse:
    """
    Engine output for one request.

    warning: set when the result is empty or a fallback path was taken.
    info: set when a ranking/repeat explanation helps the caller.
    """
    seed: str
    filters: Tuple[Tuple[str, Any], ...]
    items: Tuple[GeneratedItem, ...]
    warning: Optional[str] = None
    info: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.items)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "seed": self.seed,
            "count": self.count,
            "filters": dict(self.filters),
            "items": [item.to_dict() for item in self.items],
        }
        if self.warning is not None:
            data["warning"] = self.warning
        if self.info is not None:
            data["info"] = self.info
        return data

    def to_json(self) -> str:
        """Canonical JSON text; identical inputs give identical text."""
        from ..domain.serialization import canonical_dumps
        return canonical_dumps(self.to_dict())


# =============================================================================
# OBSERVABILITY CONTRACTS
# =============================================================================

class AuditEventType(Enum):
    """Types of audit events."""
    POOL_PREPARATION = "pool_preparation"
    RANKING = "ranking"
    GENERATION = "generation"
    FALLBACK = "fallback"
    REJECTION = "rejection"


@dataclass(frozen=True)
class AuditLogEntry:
    """Immutable audit log entry."""
    entry_id: str
    event_type: AuditEventType
    timestamp: Timestamp
    layer: str
    action: str
    entity_id: Optional[str] = None
    metadata: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class MetricPoint:
    """Immutable metric data point."""
    metric_name: str
    value: float
    timestamp: Timestamp
    labels: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)
