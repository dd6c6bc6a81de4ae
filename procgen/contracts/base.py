"""
Base Contracts and Shared Types

These are the foundational types used across all layers.
All types here are IMMUTABLE and represent pure data.
No behavior beyond construction checks, no side effects, no dependencies
on other layers.

BOUNDARY ENFORCEMENT:
=====================
- This module is READ-ONLY from all layers
- Layers may import types but MUST NOT modify this module
- All types are frozen dataclasses for immutability guarantee
"""

from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Tuple, Union
from enum import Enum, auto
import hashlib


# Opaque identifier as handed over by the storage layer (integer keys in the
# relational store, strings in the offline snapshots).
RecordId = Union[int, str]


# =============================================================================
# ERROR STATES (Explicit, never silent)
# =============================================================================

class ErrorCode(Enum):
    """
    Explicit error codes for deterministic error handling.

    The generators themselves are total; these codes describe domain
    conflicts and front-end failures that are reported as data.
    """
    # Request conflicts
    INCOMPATIBLE_TITLE = auto()
    TITLE_NOT_FOUND = auto()
    UNKNOWN_GENERATOR = auto()

    # Pool snapshot errors (command-line front end)
    POOL_UNREADABLE = auto()
    POOL_MALFORMED = auto()


@dataclass(frozen=True)
class Error:
    """
    Immutable error representation with full context.
    Errors are data, not exceptions - they can be stored and queried.
    """
    code: ErrorCode
    message: str
    timestamp: datetime
    context: Tuple[Tuple[str, str], ...] = field(default_factory=tuple)

    def with_context(self, key: str, value: str) -> Error:
        """Return new Error with additional context (immutable)."""
        return Error(
            code=self.code,
            message=self.message,
            timestamp=self.timestamp,
            context=self.context + ((key, value),)
        )

    @staticmethod
    def create(code: ErrorCode, message: str) -> Error:
        return Error(code=code, message=message, timestamp=Timestamp.now().value)


@dataclass(frozen=True)
class Result:
    """
    Generic result type for operations that can fail.
    Either contains a value OR an error, never both.
    """
    value: Optional[object] = None
    error: Optional[Error] = None

    @property
    def is_success(self) -> bool:
        return self.error is None

    @property
    def is_failure(self) -> bool:
        return self.error is not None

    @staticmethod
    def success(value: object) -> Result:
        return Result(value=value, error=None)

    @staticmethod
    def failure(error: Error) -> Result:
        return Result(value=None, error=error)


# =============================================================================
# IDENTITY TYPES (Deterministic, hash-derived)
# =============================================================================

@dataclass(frozen=True)
class ItemId:
    """
    Identifier of a generated item.
    Derived from (seed, position, candidate) so replays reproduce it.
    """
    value: str

    @staticmethod
    def generate(seed: str, index: int, candidate_id: Optional[RecordId]) -> ItemId:
        """Generate deterministic item ID."""
        content = f"{seed}|{index}|{candidate_id if candidate_id is not None else '-'}"
        item_hash = hashlib.sha256(content.encode('utf-8')).hexdigest()[:16]
        return ItemId(value=f"item_{item_hash}")


# =============================================================================
# TEMPORAL TYPES (Audit only, never part of generated output)
# =============================================================================

@dataclass(frozen=True)
class Timestamp:
    """
    Immutable timestamp with explicit semantics.
    All timestamps are UTC, never local time.
    """
    value: datetime

    def __post_init__(self):
        # Ensure UTC timezone
        if self.value.tzinfo is None:
            object.__setattr__(self, 'value', self.value.replace(tzinfo=timezone.utc))

    @staticmethod
    def now() -> Timestamp:
        return Timestamp(value=datetime.now(timezone.utc))

    def to_iso(self) -> str:
        return self.value.isoformat()
