"""
Procedural Narrative Generation Engine

This package turns a seed, a filter set and pools of candidate records and
text fragments into reproducible, ranked, composed narrative output (NPC
biographies, character names, places, titles, story fragments, concepts,
creatures). Each layer communicates only through explicit contracts, never
through shared mutable state.

LAYER STRUCTURE:
================

1. RNG PROVIDER (randomness/)
   - Responsibility: seed string → reproducible float stream
   - Outputs: SeededRng (per request, never global)
   - MUST NOT: Touch module-level random state

2. NORMALIZATION (normalization/)
   - Responsibility: Canonical text keys, de-duplication, genre codes
   - Outputs: Normalized keys, de-duplicated lists, "M" / "F" / "NB"
   - MUST NOT: Reject unknown values

3. SAMPLING (sampling/)
   - Responsibility: Draws without replacement, unique picks with bounded
     repeat fallback
   - MUST NOT: Own an RNG

4. RANKING (ranking/)
   - Responsibility: Tiered keyword scoring, pluggable term expansion
   - MUST NOT: Branch on domain vocabulary, drop the pool on no match

5. ELIGIBILITY (eligibility/)
   - Responsibility: Scope and name-length predicates for fragments,
     scope filter for candidates
   - MUST NOT: Draw random numbers

6. COMPOSITION (composition/)
   - Responsibility: Segment-list text from fragments and vocabulary
   - MUST NOT: Filter fragments, return empty text

7. OBSERVABILITY (observability/)
   - Responsibility: Audit log and metrics per engine instance
   - MUST NOT: Feed anything back into a response

CONSTRAINTS ENFORCED:
=====================
- Immutability-first: all contract types are frozen
- Deterministic: identical seed, filters and pools give byte-identical JSON
- Explicit errors: domain conflicts are Result failures, never hidden
- No I/O in the engine: pools arrive already fetched (the CLI is the only
  file reader)
"""

from .contracts import (
    CandidatePools, CandidateRecord, GeneratedItem, GenerationRequest,
    GenerationResponse, ItemKind, NarrativeFragment,
)
from .engine import EngineConfig, GenerationEngine, generate

__version__ = "0.1.0"

__all__ = [
    "CandidatePools", "CandidateRecord", "GeneratedItem", "GenerationRequest",
    "GenerationResponse", "ItemKind", "NarrativeFragment",
    "EngineConfig", "GenerationEngine", "generate",
]
