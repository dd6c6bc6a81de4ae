"""
Contracts Module

This module defines the explicit data transfer objects that form the
contracts between the calling layer, the engine layers and the caller again.
All inter-layer communication MUST use these contracts. No layer may import
implementation details from another layer.

DESIGN PRINCIPLES:
==================
1. All contract types are immutable (frozen dataclasses)
2. Errors are data (Error / Result), never hidden fallbacks
3. Generated output is a pure function of seed, filters and pools
4. Hash-based identity for generated items
"""

from .base import Error, ErrorCode, ItemId, RecordId, Result, Timestamp
from .records import CandidatePools, CandidateRecord, GenerationRequest, NarrativeFragment
from .events import (
    AuditEventType, AuditLogEntry, GeneratedItem, GenerationResponse,
    ItemKind, MetricPoint, SegmentKind, TextSegment,
)

__all__ = [
    "Error", "ErrorCode", "ItemId", "RecordId", "Result", "Timestamp",
    "CandidatePools", "CandidateRecord", "GenerationRequest", "NarrativeFragment",
    "AuditEventType", "AuditLogEntry", "GeneratedItem", "GenerationResponse",
    "ItemKind", "MetricPoint", "SegmentKind", "TextSegment",
]
