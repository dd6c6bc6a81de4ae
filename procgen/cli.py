"""
Generation CLI
==============

Runs one generator against a JSON pool snapshot and prints the canonical
JSON response. This is the only place in the package that touches files.

SNAPSHOT FORMAT:
    {"names": [...], "fragments": [...], "places": [...], "titles": [...],
     "concepts": [...], "creatures": [...]}

Candidate keys: id, displayText, genre, cultureId, categorieId, universId,
familyName, secondaryTexts. Any other key is carried through as an item
attribute; type / description / mood / keywords are also searchable.

Fragment keys: id, text, appliesTo, genre, cultureId, categorieId,
minNameLength, maxNameLength.

USAGE:
    python -m procgen.cli npcs --pool pools.json --count 5 --seed alpha

EXIT CODES:
    0 success, 1 generator refused the request, 2 unreadable pool file
"""
import argparse
import json
import sys
from typing import Any, Dict, List, Optional, Sequence

from .contracts.base import Error, ErrorCode, RecordId
from .contracts.records import CandidatePools, CandidateRecord, GenerationRequest, NarrativeFragment
from .engine import GENERATORS, EngineConfig, GenerationEngine
from .randomness import RngAlgorithm, RngConfig


_CANDIDATE_KEYS = {
    "id", "displayText", "genre", "cultureId", "categorieId", "universId",
    "familyName", "secondaryTexts",
}
_SEARCHABLE_ATTRIBUTES = ("type", "description", "mood", "keywords")
_POOL_KEYS = ("names", "places", "titles", "concepts", "creatures")


class PoolLoadError(Exception):
    """A pool snapshot could not be read or does not have the expected shape."""

    def __init__(self, error: Error):
        super().__init__(error.message)
        self.error = error


def _malformed(message: str, where: str) -> PoolLoadError:
    return PoolLoadError(
        Error.create(ErrorCode.POOL_MALFORMED, message).with_context("where", where)
    )


def parse_record_id(value: Any) -> RecordId:
    """Numeric strings become ints, like the relational store's keys."""
    if isinstance(value, bool):
        raise ValueError("boolean is not an id")
    if isinstance(value, int):
        return value
    text = str(value).strip()
    return int(text) if text.isdigit() else text


def _optional_id(value: Any) -> Optional[RecordId]:
    return None if value is None else parse_record_id(value)


def candidate_from_dict(data: Dict[str, Any], where: str) -> CandidateRecord:
    if not isinstance(data, dict):
        raise _malformed("candidate must be an object", where)
    if data.get("id") is None or not isinstance(data.get("displayText"), str):
        raise _malformed("candidate needs 'id' and a string 'displayText'", where)

    attributes = tuple((k, v) for k, v in data.items() if k not in _CANDIDATE_KEYS)
    secondary = data.get("secondaryTexts")
    if secondary is None:
        secondary = [
            v for k, v in attributes
            if k in _SEARCHABLE_ATTRIBUTES and isinstance(v, str) and v.strip()
        ]
    if not isinstance(secondary, list):
        raise _malformed("'secondaryTexts' must be a list", where)

    try:
        return CandidateRecord(
            id=parse_record_id(data["id"]),
            display_text=data["displayText"],
            genre=data.get("genre"),
            culture_id=_optional_id(data.get("cultureId")),
            categorie_id=_optional_id(data.get("categorieId")),
            univers_id=_optional_id(data.get("universId")),
            family_name=data.get("familyName"),
            secondary_texts=tuple(str(s) for s in secondary),
            attributes=tuple((k, tuple(v) if isinstance(v, list) else v) for k, v in attributes),
        )
    except ValueError as e:
        raise _malformed(str(e), where) from e


def fragment_from_dict(data: Dict[str, Any], where: str) -> NarrativeFragment:
    if not isinstance(data, dict):
        raise _malformed("fragment must be an object", where)
    if data.get("id") is None or not isinstance(data.get("text"), str):
        raise _malformed("fragment needs 'id' and a string 'text'", where)
    try:
        return NarrativeFragment(
            id=parse_record_id(data["id"]),
            text=data["text"],
            applies_to=data.get("appliesTo"),
            genre=data.get("genre"),
            culture_id=_optional_id(data.get("cultureId")),
            categorie_id=_optional_id(data.get("categorieId")),
            min_name_length=data.get("minNameLength"),
            max_name_length=data.get("maxNameLength"),
        )
    except (TypeError, ValueError) as e:
        raise _malformed(str(e), where) from e


def pools_from_dict(data: Any) -> CandidatePools:
    if not isinstance(data, dict):
        raise _malformed("snapshot must be a JSON object", "$")

    def rows(key: str) -> List[Any]:
        value = data.get(key, [])
        if not isinstance(value, list):
            raise _malformed(f"'{key}' must be a list", key)
        return value

    built = {
        key: tuple(candidate_from_dict(row, f"{key}[{i}]") for i, row in enumerate(rows(key)))
        for key in _POOL_KEYS
    }
    fragments = tuple(
        fragment_from_dict(row, f"fragments[{i}]") for i, row in enumerate(rows("fragments"))
    )
    return CandidatePools(fragments=fragments, **built)


def load_pools(path: str) -> CandidatePools:
    """Read a snapshot file; raises PoolLoadError on any failure."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except OSError as e:
        raise PoolLoadError(
            Error.create(ErrorCode.POOL_UNREADABLE, f"cannot read {path}: {e.strerror or e}")
            .with_context("path", path)
        ) from e
    except json.JSONDecodeError as e:
        raise PoolLoadError(
            Error.create(ErrorCode.POOL_MALFORMED, f"invalid JSON in {path}: {e.msg} (line {e.lineno})")
            .with_context("path", path)
        ) from e
    return pools_from_dict(data)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="procgen",
        description="Deterministic narrative generation over a JSON pool snapshot",
    )
    parser.add_argument("generator", choices=GENERATORS, help="Generator to run")
    parser.add_argument("--pool", required=True, help="Path to the JSON pool snapshot")
    parser.add_argument("--count", type=int, default=10, help="Number of items (1-200)")
    parser.add_argument("--seed", help="Seed string; omitted means clock-derived")
    parser.add_argument("--culture-id", help="Culture filter")
    parser.add_argument("--categorie-id", help="Categorie filter")
    parser.add_argument("--univers-id", help="Univers filter")
    parser.add_argument("--genre", help="Genre filter (any known spelling)")
    parser.add_argument("--keywords", help="Keywords separated by , ; or |")
    parser.add_argument("--title-id", help="Title to prefix character names with")
    parser.add_argument("--topic", help="Topic for concept briefs")
    parser.add_argument("--concept-id", help="Restrict concepts to one record")
    parser.add_argument("--applies-to", help="Fragment target kind")
    parser.add_argument(
        "--rng",
        choices=[a.value for a in RngAlgorithm],
        help="RNG algorithm (default: PROCGEN_RNG_ALGORITHM or pcg64)",
    )
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not 1 <= args.count <= 200:
        parser.error("--count must be between 1 and 200")

    try:
        config = EngineConfig.from_env()
    except ValueError as e:
        parser.error(str(e))
    if args.rng:
        config.rng = RngConfig(algorithm=RngAlgorithm(args.rng))

    try:
        pools = load_pools(args.pool)
    except PoolLoadError as e:
        print(f"error: {e.error.message}", file=sys.stderr)
        return 2

    request = GenerationRequest(
        count=args.count,
        culture_id=_optional_id(args.culture_id),
        categorie_id=_optional_id(args.categorie_id),
        univers_id=_optional_id(args.univers_id),
        genre=args.genre,
        seed=args.seed,
        keywords=args.keywords,
    )
    result = GenerationEngine(config).run(
        args.generator,
        request,
        pools,
        title_id=_optional_id(args.title_id),
        topic=args.topic,
        applies_to=args.applies_to,
        concept_id=_optional_id(args.concept_id),
    )
    if result.is_failure:
        print(f"error: {result.error.message}", file=sys.stderr)
        return 1

    print(result.value.to_json())
    return 0


if __name__ == "__main__":
    sys.exit(main())
