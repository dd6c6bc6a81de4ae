"""
Engine Orchestration Module

This module provides the unified interface for coordinating the generation
layers while maintaining strict boundary separation.

DESIGN PRINCIPLES:
==================
1. Layers communicate ONLY through contracts
2. One RNG per request, threaded through every layer that draws
3. All operations are traceable through the audit log; nothing audited
   ever reaches a response
4. Generators are total: empty pools, unmatched keywords and unknown genres
   produce a response with a warning, never an exception

LAYER FLOW (per request):
=========================
1. Scope filter + dedupe: pool → in-scope unique candidates
2. Ranking: keywords → ordered candidates (or unranked fallback)
3. Sampling: candidates → subjects / listed records
4. Eligibility: per subject, fragments → eligible fragments
5. Composition: subject + eligible fragments → composed text
"""

from __future__ import annotations
from dataclasses import dataclass, replace
from typing import Any, Callable, List, Mapping, Optional, Sequence, Tuple
import os
import time

from .contracts.base import Error, ErrorCode, ItemId, RecordId, Result
from .contracts.events import (
    AuditEventType, AuditLogEntry, GeneratedItem, GenerationResponse,
    ItemKind, SegmentKind, TextSegment,
)
from .contracts.records import (
    CandidatePools, CandidateRecord, GenerationRequest, NarrativeFragment,
)
from .composition import (
    ComposerConfig, Composition, NarrativeComposer, compose_full_name,
    compose_topic_brief, enrich_concept,
)
from .eligibility import candidate_in_scope, eligible_fragments, fragments_in_scope
from .normalization import canonicalize_genre, dedupe, genres_compatible
from .observability import AuditLog, MetricsCollector, ObservabilityConfig
from .randomness import RngAlgorithm, RngConfig, SeededRng, create_rng
from .ranking import KeywordScorer, RankingOutcome, ScorerConfig, TermExpansionTable
from .sampling import pick_unique_bounded, sample_without_replacement


ENV_RNG_ALGORITHM = "PROCGEN_RNG_ALGORITHM"

GENERATORS = (
    "npcs", "character-names", "places", "titles", "fragments", "concepts", "creatures",
)

KEYWORD_FALLBACK_WARNING = "No candidate matches the keywords; results drawn from the full pool."
CONCEPT_CATEGORY_FALLBACK_WARNING = "No concept in this category; generated from all concepts."
TOPIC_WITHOUT_CATEGORY_INFO = "Tip: select a category to organize your concepts."


def _no_match(label: str) -> str:
    return f"No {label} matches the filters."


@dataclass
class EngineConfig:
    """Unified configuration for the generation engine."""
    rng: RngConfig = None
    scorer: ScorerConfig = None
    composer: ComposerConfig = None
    observability: ObservabilityConfig = None

    def __post_init__(self):
        self.rng = self.rng or RngConfig()
        self.scorer = self.scorer or ScorerConfig()
        self.composer = self.composer or ComposerConfig()
        self.observability = self.observability or ObservabilityConfig()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> EngineConfig:
        """Defaults, overridden by PROCGEN_RNG_ALGORITHM when set."""
        env = os.environ if environ is None else environ
        config = cls()
        raw = (env.get(ENV_RNG_ALGORITHM) or "").strip()
        if raw:
            try:
                config.rng = RngConfig(algorithm=RngAlgorithm(raw.lower()))
            except ValueError:
                choices = ", ".join(a.value for a in RngAlgorithm)
                raise ValueError(f"{ENV_RNG_ALGORITHM}={raw!r} is not one of: {choices}") from None
        return config


def check_title_compatibility(
    request: GenerationRequest,
    title: CandidateRecord,
) -> Optional[Error]:
    """
    Conflict between explicit filters and a title's own scope, if any.

    Only fields set on both sides can conflict.
    """
    for field_name, wanted, have in (
        ("culture", request.culture_id, title.culture_id),
        ("categorie", request.categorie_id, title.categorie_id),
        ("univers", request.univers_id, title.univers_id),
    ):
        if wanted is not None and have is not None and str(wanted) != str(have):
            return (
                Error.create(
                    ErrorCode.INCOMPATIBLE_TITLE,
                    f"Title is incompatible with the selected {field_name}",
                )
                .with_context("title_id", str(title.id))
                .with_context("field", field_name)
            )
    if not genres_compatible(request.genre, title.genre):
        return (
            Error.create(ErrorCode.INCOMPATIBLE_TITLE, "Title is incompatible with the selected genre")
            .with_context("title_id", str(title.id))
            .with_context("field", "genre")
        )
    return None


def _with_attribute(
    attributes: Tuple[Tuple[str, Any], ...],
    key: str,
    value: Any,
) -> Tuple[Tuple[str, Any], ...]:
    if any(name == key for name, _ in attributes):
        return attributes
    return attributes + ((key, value),)


def _join(*notes: Optional[str]) -> Optional[str]:
    kept = [n for n in notes if n]
    return " ".join(kept) if kept else None


class GenerationEngine:
    """
    Procedural generation engine.

    Owns a keyword scorer, a composer, an audit log and a metrics collector.
    Holds no per-request state: every generator builds its own RNG from the
    request seed, so the same request against the same pools returns a
    byte-identical response on any engine instance.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        expansions: Optional[TermExpansionTable] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._config = config or EngineConfig()
        self._clock = clock
        self._scorer = KeywordScorer(self._config.scorer, expansions)
        self._composer = NarrativeComposer(self._config.composer)
        self._audit = AuditLog("engine", self._config.observability.audit_enabled)
        self._metrics = MetricsCollector(self._config.observability.metrics_enabled)

    @property
    def config(self) -> EngineConfig:
        return self._config

    @property
    def scorer(self) -> KeywordScorer:
        return self._scorer

    # =========================================================================
    # INTERNAL PIPELINE STEPS
    # =========================================================================

    def _create_rng(self, seed: Optional[str]) -> SeededRng:
        return create_rng(seed, self._config.rng.algorithm, self._clock)

    def _echo(self, request: GenerationRequest) -> Tuple[Tuple[str, Any], ...]:
        return request.echo() + (("canonicalGenre", canonicalize_genre(request.genre)),)

    def _prepare_pool(
        self,
        generator: str,
        candidates: Sequence[CandidateRecord],
        scope: GenerationRequest,
        key_fn: Callable[[CandidateRecord], Optional[str]] = lambda c: c.display_text,
    ) -> List[CandidateRecord]:
        """Scope filter, then dedupe by normalized key."""
        in_scope = [c for c in candidates if candidate_in_scope(c, scope)]
        pool = dedupe(in_scope, key_fn)
        self._audit.record(
            AuditEventType.POOL_PREPARATION,
            action="pool_prepared",
            metadata=(
                ("generator", generator),
                ("received", str(len(candidates))),
                ("in_scope", str(len(in_scope))),
                ("unique", str(len(pool))),
            )
        )
        self._metrics.record("pool_size", float(len(pool)), {"generator": generator})
        return pool

    def _fallback(self, generator: str, reason: str, seed: str):
        self._audit.record(
            AuditEventType.FALLBACK,
            action=reason,
            entity_id=seed,
            metadata=(("generator", generator),)
        )
        self._metrics.record("fallbacks_total", 1.0, {"generator": generator, "reason": reason})

    def _rank(
        self,
        generator: str,
        pool: Sequence[CandidateRecord],
        request: GenerationRequest,
        seed: str,
    ) -> Tuple[RankingOutcome, Optional[str], Optional[str]]:
        """Rank the pool; returns (outcome, warning, info)."""
        outcome = self._scorer.rank(pool, request.keywords)
        if outcome.fallback:
            self._fallback(generator, "keywords_unmatched", seed)
            return outcome, KEYWORD_FALLBACK_WARNING, None
        if not outcome.ranked:
            return outcome, None, None

        self._audit.record(
            AuditEventType.RANKING,
            action="pool_ranked",
            entity_id=seed,
            metadata=(
                ("generator", generator),
                ("terms", ",".join(outcome.terms)),
                ("matched", str(len(outcome.candidates))),
                ("top_score", f"{outcome.scores[0]:.2f}"),
            )
        )
        info = f"Ranked by keywords: {', '.join(outcome.terms)}."
        if len(outcome.candidates) < request.count:
            info += f" Only {len(outcome.candidates)} candidates match the keywords."
        return outcome, None, info

    def _select_listing(
        self,
        outcome: RankingOutcome,
        count: int,
        rng: SeededRng,
    ) -> List[CandidateRecord]:
        """Top `count` in rank order when ranked, else a uniform sample."""
        if outcome.ranked:
            return list(outcome.candidates[:max(0, count)])
        return sample_without_replacement(outcome.candidates, count, rng)

    def _select_subjects(
        self,
        pool: Sequence[CandidateRecord],
        outcome: RankingOutcome,
        count: int,
        rng: SeededRng,
    ) -> Tuple[List[CandidateRecord], Optional[str]]:
        """
        Exactly `count` subjects from a non-empty pool.

        Keyword matches come first in rank order; the rest is drawn from the
        whole in-scope pool with pick_unique_bounded, which repeats only once
        every distinct id of the pool has been used.
        """
        used = set()
        subjects: List[CandidateRecord] = []
        if outcome.ranked:
            for candidate in outcome.candidates[:max(0, count)]:
                used.add(candidate.id)
                subjects.append(candidate)
        while len(subjects) < count:
            subjects.append(pick_unique_bounded(pool, used, rng))

        distinct = len({c.id for c in pool})
        info = None
        if distinct < count:
            info = f"Only {distinct} distinct candidates available; some are repeated."
        return subjects, info

    def _finish(
        self,
        generator: str,
        rng: SeededRng,
        filters: Tuple[Tuple[str, Any], ...],
        items: Sequence[GeneratedItem],
        started: float,
        warning: Optional[str] = None,
        info: Optional[str] = None,
    ) -> GenerationResponse:
        response = GenerationResponse(
            seed=rng.seed,
            filters=tuple(filters),
            items=tuple(items),
            warning=warning,
            info=info,
        )
        self._audit.record(
            AuditEventType.GENERATION,
            action=f"{generator}_generated",
            entity_id=rng.seed,
            metadata=(
                ("generator", generator),
                ("items", str(response.count)),
                ("draws", str(rng.draw_count)),
            )
        )
        labels = {"generator": generator}
        self._metrics.record("generation_requests_total", 1.0, labels)
        self._metrics.record("items_generated_total", float(response.count), labels)
        self._metrics.record("generation_duration_ms", (time.perf_counter() - started) * 1000, labels)
        return response

    def _listing_item(
        self,
        kind: ItemKind,
        seed: str,
        index: int,
        record: CandidateRecord,
        attributes: Optional[Tuple[Tuple[str, Any], ...]] = None,
    ) -> GeneratedItem:
        return GeneratedItem(
            id=ItemId.generate(seed, index, record.id).value,
            kind=kind,
            candidate_id=record.id,
            name=record.display_text,
            genre=record.genre,
            culture_id=record.culture_id,
            categorie_id=record.categorie_id,
            attributes=record.attributes if attributes is None else attributes,
        )

    # =========================================================================
    # CHARACTER GENERATORS
    # =========================================================================

    def _generate_subjects(
        self,
        generator: str,
        kind: ItemKind,
        request: GenerationRequest,
        names: Sequence[CandidateRecord],
        fragments: Sequence[NarrativeFragment],
        title: Optional[CandidateRecord] = None,
        extra_filters: Tuple[Tuple[str, Any], ...] = (),
    ) -> GenerationResponse:
        started = time.perf_counter()
        rng = self._create_rng(request.seed)
        filters = self._echo(request) + extra_filters

        pool = self._prepare_pool(
            generator, names, request,
            key_fn=lambda n: compose_full_name(n.display_text, n.family_name),
        )
        if not pool:
            self._fallback(generator, "empty_pool", rng.seed)
            return self._finish(generator, rng, filters, (), started, warning=_no_match("name"))

        outcome, warning, rank_info = self._rank(generator, pool, request, rng.seed)
        subjects, repeat_info = self._select_subjects(pool, outcome, request.count, rng)

        items = []
        for index, subject in enumerate(subjects):
            full_name = compose_full_name(subject.display_text, subject.family_name)
            eligible = eligible_fragments(
                fragments,
                len(full_name),
                request,
                applies_to=ItemKind.NPC.value,
                subject_genre=subject.genre,
            )
            composition = self._composer.compose(full_name, eligible, rng)
            items.append(self._subject_item(kind, rng.seed, index, subject, full_name, composition, title))

        return self._finish(
            generator, rng, filters, items, started,
            warning=warning,
            info=_join(rank_info, repeat_info),
        )

    def _subject_item(
        self,
        kind: ItemKind,
        seed: str,
        index: int,
        subject: CandidateRecord,
        full_name: str,
        composition: Composition,
        title: Optional[CandidateRecord],
    ) -> GeneratedItem:
        attributes = tuple(subject.attributes)
        display_name = None
        if kind is ItemKind.CHARACTER_NAME:
            display_name = (
                f"{title.display_text} {subject.display_text}" if title is not None
                else subject.display_text
            )
            attributes += (
                ("titreId", title.id if title is not None else None),
                ("titreValeur", title.display_text if title is not None else None),
                ("miniBio", self._composer.mini_bio(composition.text)),
            )
        attributes += (
            ("role", composition.role),
            ("traits", composition.traits),
            ("hook", composition.hook),
        )
        return GeneratedItem(
            id=ItemId.generate(seed, index, subject.id).value,
            kind=kind,
            candidate_id=subject.id,
            name=subject.display_text,
            full_name=full_name or subject.display_text,
            family_name=(subject.family_name or "").strip() or None,
            display_name=display_name,
            genre=subject.genre,
            culture_id=subject.culture_id,
            categorie_id=subject.categorie_id,
            composed_text=composition.text,
            fragment_ids=composition.fragment_ids,
            segments=composition.segments,
            attributes=attributes,
        )

    def generate_npcs(
        self,
        request: GenerationRequest,
        names: Sequence[CandidateRecord],
        fragments: Sequence[NarrativeFragment],
    ) -> GenerationResponse:
        """
        NPC ideas: one composed biography per picked name.

        Always returns request.count items when the in-scope pool is
        non-empty; names repeat only once every distinct name is used.
        """
        return self._generate_subjects("npcs", ItemKind.NPC, request, names, fragments)

    def generate_character_names(
        self,
        request: GenerationRequest,
        names: Sequence[CandidateRecord],
        fragments: Sequence[NarrativeFragment],
        title: Optional[CandidateRecord] = None,
    ) -> Result:
        """
        Character names with display name and mini biography.

        A title conflicting with an explicit filter yields a failed Result
        (INCOMPATIBLE_TITLE). Otherwise the title's scope fills the unset
        filters and the Result holds the GenerationResponse.
        """
        if title is not None:
            error = check_title_compatibility(request, title)
            if error is not None:
                self._audit.record(
                    AuditEventType.REJECTION,
                    action="title_incompatible",
                    entity_id=str(title.id),
                    metadata=error.context,
                )
                return Result.failure(error)
            request = request.with_scope(title.culture_id, title.categorie_id, title.genre)

        response = self._generate_subjects(
            "character-names",
            ItemKind.CHARACTER_NAME,
            request,
            names,
            fragments,
            title=title,
            extra_filters=(("titreId", title.id if title is not None else None),),
        )
        return Result.success(response)

    # =========================================================================
    # LISTING GENERATORS
    # =========================================================================

    def _generate_listing(
        self,
        generator: str,
        kind: ItemKind,
        label: str,
        request: GenerationRequest,
        candidates: Sequence[CandidateRecord],
        scope: GenerationRequest,
        required_attributes: Tuple[str, ...] = (),
    ) -> GenerationResponse:
        started = time.perf_counter()
        rng = self._create_rng(request.seed)
        filters = self._echo(scope)

        pool = self._prepare_pool(generator, candidates, scope)
        if not pool:
            self._fallback(generator, "empty_pool", rng.seed)
            return self._finish(generator, rng, filters, (), started, warning=_no_match(label))

        outcome, warning, info = self._rank(generator, pool, request, rng.seed)
        picked = self._select_listing(outcome, request.count, rng)

        items = []
        for index, record in enumerate(picked):
            attributes = record.attributes
            for key in required_attributes:
                attributes = _with_attribute(attributes, key, None)
            items.append(self._listing_item(kind, rng.seed, index, record, attributes))
        return self._finish(generator, rng, filters, items, started, warning=warning, info=info)

    def generate_places(
        self,
        request: GenerationRequest,
        places: Sequence[CandidateRecord],
    ) -> GenerationResponse:
        """Places in scope; the genre filter does not apply to places."""
        return self._generate_listing(
            "places", ItemKind.PLACE, "place", request, places,
            scope=replace(request, genre=None),
            required_attributes=("type",),
        )

    def generate_titles(
        self,
        request: GenerationRequest,
        titles: Sequence[CandidateRecord],
    ) -> GenerationResponse:
        """Titles in culture / categorie / genre scope."""
        return self._generate_listing(
            "titles", ItemKind.TITLE, "title", request, titles,
            scope=request,
            required_attributes=("type",),
        )

    def generate_creatures(
        self,
        request: GenerationRequest,
        creatures: Sequence[CandidateRecord],
    ) -> GenerationResponse:
        """Creatures, ranked over name plus type and description."""
        return self._generate_listing(
            "creatures", ItemKind.CREATURE, "creature", request, creatures,
            scope=replace(request, genre=None),
            required_attributes=("type", "description"),
        )

    def generate_story_fragments(
        self,
        request: GenerationRequest,
        fragments: Sequence[NarrativeFragment],
        applies_to: Optional[str] = None,
    ) -> GenerationResponse:
        """Sample of fragments in scope; no subject, so no length gate."""
        started = time.perf_counter()
        rng = self._create_rng(request.seed)
        filters = self._echo(request) + (("appliesTo", applies_to),)

        pool = dedupe(fragments_in_scope(fragments, request, applies_to), lambda f: f.text)
        self._metrics.record("pool_size", float(len(pool)), {"generator": "fragments"})
        if not pool:
            self._fallback("fragments", "empty_pool", rng.seed)
            return self._finish("fragments", rng, filters, (), started, warning=_no_match("story fragment"))

        items = []
        for index, fragment in enumerate(sample_without_replacement(pool, request.count, rng)):
            items.append(GeneratedItem(
                id=ItemId.generate(rng.seed, index, fragment.id).value,
                kind=ItemKind.STORY_FRAGMENT,
                candidate_id=fragment.id,
                name=fragment.text,
                genre=fragment.genre,
                culture_id=fragment.culture_id,
                categorie_id=fragment.categorie_id,
                composed_text=fragment.text,
                fragment_ids=(fragment.id,),
                segments=(TextSegment(SegmentKind.FRAGMENT, fragment.text, fragment.id),),
                attributes=(
                    ("appliesTo", fragment.applies_to),
                    ("minNameLength", fragment.min_name_length),
                    ("maxNameLength", fragment.max_name_length),
                ),
            ))
        return self._finish("fragments", rng, filters, items, started)

    def generate_concepts(
        self,
        request: GenerationRequest,
        concepts: Sequence[CandidateRecord],
        topic: Optional[str] = None,
        concept_id: Optional[RecordId] = None,
    ) -> GenerationResponse:
        """
        Enriched concepts from the pool, or topic-driven briefs.

        An empty category falls back to every concept (with a warning)
        unless a specific concept_id was asked for.
        """
        if topic is not None and topic.strip():
            return self._generate_topic_briefs(request, topic)

        started = time.perf_counter()
        rng = self._create_rng(request.seed)
        filters = (
            ("categorieId", request.categorie_id),
            ("conceptId", concept_id),
            ("topic", None),
            ("keywords", request.keywords),
        )

        selected = [
            c for c in concepts
            if concept_id is None or str(c.id) == str(concept_id)
        ]
        scope = GenerationRequest(categorie_id=request.categorie_id)
        pool = self._prepare_pool("concepts", selected, scope)

        category_warning = None
        if not pool and concept_id is None and request.categorie_id is not None:
            pool = self._prepare_pool("concepts", concepts, GenerationRequest())
            if pool:
                category_warning = CONCEPT_CATEGORY_FALLBACK_WARNING
                self._fallback("concepts", "category_empty", rng.seed)
        if not pool:
            self._fallback("concepts", "empty_pool", rng.seed)
            return self._finish("concepts", rng, filters, (), started, warning=_no_match("concept"))

        outcome, keyword_warning, info = self._rank("concepts", pool, request, rng.seed)
        picked = self._select_listing(outcome, request.count, rng)

        items = [
            self._listing_item(ItemKind.CONCEPT, rng.seed, index, concept, enrich_concept(concept, rng))
            for index, concept in enumerate(picked)
        ]
        return self._finish(
            "concepts", rng, filters, items, started,
            warning=_join(category_warning, keyword_warning),
            info=info,
        )

    def _generate_topic_briefs(self, request: GenerationRequest, topic: str) -> GenerationResponse:
        started = time.perf_counter()
        rng = self._create_rng(request.seed)
        subject = topic.strip()
        filters = (
            ("categorieId", request.categorie_id),
            ("conceptId", None),
            ("topic", subject),
            ("keywords", request.keywords),
        )

        items = []
        for index in range(min(request.count, self._config.composer.max_topic_ideas)):
            brief = compose_topic_brief(subject, rng)
            items.append(GeneratedItem(
                id=ItemId.generate(rng.seed, index, None).value,
                kind=ItemKind.CONCEPT,
                candidate_id=None,
                name=brief.title,
                categorie_id=request.categorie_id,
                attributes=brief.attributes,
            ))
        info = TOPIC_WITHOUT_CATEGORY_INFO if request.categorie_id is None else None
        return self._finish("concepts", rng, filters, items, started, info=info)

    # =========================================================================
    # DISPATCH
    # =========================================================================

    def run(
        self,
        generator: str,
        request: GenerationRequest,
        pools: CandidatePools,
        title_id: Optional[RecordId] = None,
        topic: Optional[str] = None,
        applies_to: Optional[str] = None,
        concept_id: Optional[RecordId] = None,
    ) -> Result:
        """
        Run a generator by name against a pool snapshot.

        Always returns a Result: the response on success, UNKNOWN_GENERATOR,
        TITLE_NOT_FOUND or INCOMPATIBLE_TITLE otherwise.
        """
        if generator == "npcs":
            return Result.success(self.generate_npcs(request, pools.names, pools.fragments))
        if generator == "character-names":
            title = None
            if title_id is not None:
                title = pools.find_title(title_id)
                if title is None:
                    return Result.failure(
                        Error.create(ErrorCode.TITLE_NOT_FOUND, f"Title {title_id} not found")
                        .with_context("title_id", str(title_id))
                    )
            return self.generate_character_names(request, pools.names, pools.fragments, title)
        if generator == "places":
            return Result.success(self.generate_places(request, pools.places))
        if generator == "titles":
            return Result.success(self.generate_titles(request, pools.titles))
        if generator == "fragments":
            return Result.success(self.generate_story_fragments(request, pools.fragments, applies_to))
        if generator == "concepts":
            return Result.success(self.generate_concepts(request, pools.concepts, topic, concept_id))
        if generator == "creatures":
            return Result.success(self.generate_creatures(request, pools.creatures))
        return Result.failure(
            Error.create(ErrorCode.UNKNOWN_GENERATOR, f"Unknown generator: {generator}")
            .with_context("choices", ",".join(GENERATORS))
        )

    # =========================================================================
    # OBSERVABILITY INTERFACE
    # =========================================================================

    def get_audit_log(self, event_type: Optional[AuditEventType] = None) -> List[AuditLogEntry]:
        """Copy of the audit log, optionally filtered by event type."""
        return self._audit.get_entries(event_type)

    def get_metrics(self) -> MetricsCollector:
        """Get metrics collector."""
        return self._metrics


def generate(
    request: GenerationRequest,
    names: Sequence[CandidateRecord],
    fragments: Sequence[NarrativeFragment],
    config: Optional[EngineConfig] = None,
) -> GenerationResponse:
    """One-shot NPC generation with a throwaway engine."""
    return GenerationEngine(config).generate_npcs(request, names, fragments)
