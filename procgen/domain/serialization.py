import json
from dataclasses import asdict, is_dataclass
from enum import Enum
from typing import Any


class CanonicalEncoder(json.JSONEncoder):
    """
    JSON Encoder that prioritizes byte stability over flexibility.

    RULES:
    1. Enums MUST use their .value.
    2. Tuples are lists (handled natively by json).
    3. Sets -> Lists (sorted for determinism).
    4. Objects exposing to_dict() are serialized through it.
    """

    def default(self, obj: Any) -> Any:
        if isinstance(obj, Enum):
            return obj.value
        if isinstance(obj, (set, frozenset)):
            return sorted(obj, key=str)
        if hasattr(obj, "to_dict"):
            return obj.to_dict()
        if is_dataclass(obj) and not isinstance(obj, type):
            return asdict(obj)

        return super().default(obj)


def canonical_dumps(payload: Any) -> str:
    """Serialize with sorted keys and fixed separators."""
    return json.dumps(
        payload,
        cls=CanonicalEncoder,
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
    )
