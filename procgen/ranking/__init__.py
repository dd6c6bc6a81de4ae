"""
Keyword Relevance Layer

RESPONSIBILITY: Score candidates against caller keywords and order them
ALLOWED INPUTS: Candidate records, a raw keyword string
OUTPUTS: RankingOutcome (ordered candidates, aligned scores, fallback flag)

WHAT THIS LAYER MUST NOT DO:
============================
- Branch on a domain ("if term == 'feu'"): synonyms come from a
  TermExpansionTable injected by the caller
- Drop the pool when nothing matches: a zero top score falls back to the
  unranked full pool and says so
- Depend on process locale (ordering must be identical on every host)

SCORING:
========
Per term, the best tier on the normalized primary text
    EXACT > WORD (whole-word) > PREFIX (word start) > SUBSTRING
plus the best tier on secondary texts times secondary_weight. Terms
injected by expansion count times expansion_weight. Scores are summed
across terms.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple
import re

from ..contracts.records import CandidateRecord
from ..normalization import normalize_text


_KEYWORD_SEPARATORS = re.compile(r"[,;|]")
_WORD = r"[^\W_]"


def split_keywords(raw: Optional[str], limit: int = 6) -> Tuple[str, ...]:
    """Split a caller keyword string on , ; | and keep the first `limit`."""
    if not raw:
        return ()
    parts = [part.strip() for part in _KEYWORD_SEPARATORS.split(raw)]
    return tuple(part for part in parts if part)[:limit]


def collation_key(text: str) -> Tuple[str, str, str]:
    """
    Locale-aware ordering key that does not read process locale.

    Accent- and case-insensitive first ("Élan" sorts with "elan"), then
    case-folded, then raw text as a stable final tie-break.
    """
    return (normalize_text(text), text.casefold(), text)


# =============================================================================
# TERM EXPANSION (Pluggable domain synonyms)
# =============================================================================

class TermExpansionTable:
    """
    Maps a normalized query term to a bag of related terms.

    New domains are added with register(); the scorer never needs to change.
    """

    def __init__(self, entries: Optional[Mapping[str, Iterable[str]]] = None):
        self._entries: Dict[str, FrozenSet[str]] = {}
        for term, related in (entries or {}).items():
            self.register(term, related)

    def register(self, term: str, related: Iterable[str]):
        """Register (or extend) the related terms of a query term."""
        key = normalize_text(term)
        if not key:
            return
        extra = frozenset(normalize_text(r) for r in related) - {"", key}
        self._entries[key] = self._entries.get(key, frozenset()) | extra

    def expand(self, term: str) -> Tuple[str, ...]:
        """Related terms, sorted for determinism."""
        return tuple(sorted(self._entries.get(normalize_text(term), frozenset())))

    def __contains__(self, term: str) -> bool:
        return normalize_text(term) in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    @classmethod
    def default(cls) -> TermExpansionTable:
        """Fresh table with the built-in fantasy vocabulary."""
        return cls(DEFAULT_EXPANSIONS)


DEFAULT_EXPANSIONS: Mapping[str, Tuple[str, ...]] = {
    "feu": ("flamme", "braise", "cendre", "brasier", "incendie", "ardent", "brûlant", "volcanique", "infernal"),
    "eau": ("rivière", "lac", "marée", "pluie", "source", "océan", "torrent"),
    "glace": ("givre", "gel", "neige", "froid", "hiver", "glacier"),
    "ombre": ("nuit", "ténèbres", "obscur", "spectre", "brume", "spectral"),
    "lumière": ("aube", "soleil", "lueur", "clarté", "aurore", "lanterne"),
    "forêt": ("bois", "arbre", "sylve", "racine", "feuille", "fongique", "mycèle"),
    "mort": ("tombe", "crypte", "ossement", "nécrotique", "spectre", "deuil"),
    "mer": ("port", "marée", "vague", "océan", "récif", "abysse"),
    "pierre": ("roc", "mont", "granit", "falaise", "caverne"),
    "tempête": ("orage", "foudre", "vent", "tonnerre", "ouragan"),
}


# =============================================================================
# SCORER
# =============================================================================

class MatchTier(Enum):
    """Strength of a single term match, strongest first."""
    EXACT = "exact"
    WORD = "word"
    PREFIX = "prefix"
    SUBSTRING = "substring"
    NONE = "none"


@dataclass
class ScorerConfig:
    """Configuration for keyword scoring."""
    exact_points: float = 100.0
    word_points: float = 60.0
    prefix_points: float = 30.0
    substring_points: float = 10.0
    secondary_weight: float = 0.5
    expansion_weight: float = 0.5
    max_keywords: int = 6


@dataclass(frozen=True)
class ScoredTerm:
    """A normalized query term and the weight its matches carry."""
    term: str
    weight: float = 1.0
    expanded_from: Optional[str] = None


def match_tier(text: str, term: str) -> MatchTier:
    """Best tier of `term` inside `text`; both already normalized."""
    if not term or not text:
        return MatchTier.NONE
    if text == term:
        return MatchTier.EXACT
    escaped = re.escape(term)
    if re.search(rf"(?<!{_WORD}){escaped}(?!{_WORD})", text):
        return MatchTier.WORD
    if re.search(rf"(?<!{_WORD}){escaped}", text):
        return MatchTier.PREFIX
    if term in text:
        return MatchTier.SUBSTRING
    return MatchTier.NONE


class KeywordScorer:
    """
    Tiered, deterministic term-matching scorer.

    Same candidate and same terms always produce the same score; no model,
    no corpus statistics.
    """

    def __init__(
        self,
        config: Optional[ScorerConfig] = None,
        expansions: Optional[TermExpansionTable] = None,
    ):
        self._config = config or ScorerConfig()
        self._expansions = expansions if expansions is not None else TermExpansionTable.default()
        self._points = {
            MatchTier.EXACT: self._config.exact_points,
            MatchTier.WORD: self._config.word_points,
            MatchTier.PREFIX: self._config.prefix_points,
            MatchTier.SUBSTRING: self._config.substring_points,
            MatchTier.NONE: 0.0,
        }

    @property
    def expansions(self) -> TermExpansionTable:
        return self._expansions

    def prepare_terms(self, keywords: Optional[str]) -> Tuple[ScoredTerm, ...]:
        """
        Split, normalize and expand caller keywords.

        Direct terms come first in caller order; expansions follow, each
        kept once and never duplicating a direct term.
        """
        direct: List[str] = []
        for keyword in split_keywords(keywords, self._config.max_keywords):
            term = normalize_text(keyword)
            if term and term not in direct:
                direct.append(term)

        terms = [ScoredTerm(term=t) for t in direct]
        seen = set(direct)
        for source in direct:
            for related in self._expansions.expand(source):
                if related in seen:
                    continue
                seen.add(related)
                terms.append(ScoredTerm(
                    term=related,
                    weight=self._config.expansion_weight,
                    expanded_from=source,
                ))
        return tuple(terms)

    def _best_points(self, texts: Sequence[str], term: str) -> float:
        best = 0.0
        for text in texts:
            best = max(best, self._points[match_tier(text, term)])
        return best

    def score(
        self,
        text: str,
        terms: Sequence[ScoredTerm],
        secondary: Sequence[str] = (),
    ) -> float:
        """Score one primary text (plus secondary texts) against terms."""
        return self._score_normalized(
            (normalize_text(text),),
            tuple(normalize_text(s) for s in secondary),
            terms,
        )

    def _score_normalized(
        self,
        primary: Sequence[str],
        secondary: Sequence[str],
        terms: Sequence[ScoredTerm],
    ) -> float:
        total = 0.0
        for scored in terms:
            points = self._best_points(primary, scored.term)
            points += self._config.secondary_weight * self._best_points(secondary, scored.term)
            total += scored.weight * points
        return total

    def score_candidate(self, candidate: CandidateRecord, terms: Sequence[ScoredTerm]) -> float:
        """Display text and family name are primary; the rest is secondary."""
        primary = [normalize_text(candidate.display_text)]
        if candidate.family_name:
            primary.append(normalize_text(candidate.family_name))
        secondary = tuple(normalize_text(s) for s in candidate.secondary_texts if s)
        return self._score_normalized(primary, secondary, terms)

    def rank(
        self,
        candidates: Sequence[CandidateRecord],
        keywords: Optional[str],
    ) -> RankingOutcome:
        """
        Order candidates by relevance to keywords.

        No keywords: the pool is returned untouched. Keywords with a zero top
        score: the unranked full pool, flagged as a fallback. Otherwise only
        matching candidates, by descending score then collation of display
        text.
        """
        terms = self.prepare_terms(keywords)
        pool = tuple(candidates)
        term_names = tuple(t.term for t in terms if t.expanded_from is None)

        if not terms:
            return RankingOutcome(candidates=pool, scores=(0.0,) * len(pool), terms=())

        scored = [(self.score_candidate(c, terms), c) for c in pool]
        top = max((s for s, _ in scored), default=0.0)
        if top <= 0.0:
            return RankingOutcome(
                candidates=pool,
                scores=(0.0,) * len(pool),
                terms=term_names,
                fallback=True,
            )

        matched = [(s, c) for s, c in scored if s > 0.0]
        matched.sort(key=lambda sc: (-sc[0], collation_key(sc[1].display_text), str(sc[1].id)))
        return RankingOutcome(
            candidates=tuple(c for _, c in matched),
            scores=tuple(s for s, _ in matched),
            terms=term_names,
            ranked=True,
        )


@dataclass(frozen=True)
class RankingOutcome:
    """
    Result of ranking a pool.

    ranked: keywords matched and candidates are in relevance order.
    fallback: keywords were given but nothing matched; candidates is the
    unranked full pool.
    """
    candidates: Tuple[CandidateRecord, ...]
    scores: Tuple[float, ...]
    terms: Tuple[str, ...]
    ranked: bool = False
    fallback: bool = False
