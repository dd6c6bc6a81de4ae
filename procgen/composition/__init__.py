"""
Narrative Composition Layer

RESPONSIBILITY: Build composed text for a subject from eligible fragments
and vocabulary-drawn clauses
ALLOWED INPUTS: Subject full name, eligible fragments, the request RNG
OUTPUTS: Composition (ordered segments, joined text, provenance)

WHAT THIS LAYER MUST NOT DO:
============================
- Filter fragments (eligibility is decided upstream, per subject)
- Own an RNG or reorder draws: callers rely on a fixed draw order
  (fragment count, fragments, role, traits, hook, scene)
- Return an empty text: with no eligible fragment the descriptive clauses
  still produce one

Text is an ordered list of TextSegment joined once at the end, so every
segment can be inspected on its own.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, List, Optional, Sequence, Tuple
import re

from ..contracts.base import RecordId
from ..contracts.events import SegmentKind, TextSegment
from ..contracts.records import CandidateRecord, NarrativeFragment
from ..normalization import normalize_text
from ..randomness import pick
from ..ranking import split_keywords
from ..sampling import Rng, sample_without_replacement


@dataclass
class ComposerConfig:
    """Configuration for text composition."""
    name_placeholder: str = "{name}"
    mini_bio_max_sentences: int = 5
    mini_bio_max_chars: int = 420
    max_topic_ideas: int = 50


# =============================================================================
# VOCABULARY TABLES
# =============================================================================

@dataclass(frozen=True)
class NpcVocabulary:
    """Fixed tables the descriptive clauses are drawn from."""
    roles: Tuple[str, ...] = (
        "cartographe", "archiviste", "éclaireur", "forgeron", "messager",
        "médecin de campagne", "érudit itinérant", "marchande", "gardien",
        "diplomate",
    )
    traits: Tuple[str, ...] = (
        "pragmatique", "audacieux", "méfiant", "loyal", "curieux",
        "imprévisible", "patient", "ambitieux", "mélancolique", "rusé",
    )
    hooks: Tuple[str, ...] = (
        "une dette ancienne", "un pacte qu'il regrette", "un héritage interdit",
        "un secret de famille", "un nom qu'on lui a volé",
        "une promesse jamais tenue", "un crime dont il n'est pas sûr",
        "une prophétie incomplète",
    )
    places: Tuple[str, ...] = (
        "les ruines", "les bas-fonds", "la frontière", "les archives",
        "les ports", "les montagnes", "les plaines", "les marchés",
    )


@dataclass(frozen=True)
class ConceptVocabulary:
    """Fallback values for concepts missing a mood or keywords."""
    moods: Tuple[str, ...] = ("mystérieux", "épique", "sombre", "onirique", "tendu", "lumineux")
    first_keywords: Tuple[str, ...] = ("secret", "quête", "rituel", "héritage", "frontière", "anomalie")
    second_keywords: Tuple[str, ...] = ("alliance", "trahison", "mémoire", "artefact", "serment", "mensonge")
    third_keywords: Tuple[str, ...] = ("prix", "conséquence", "danger", "révélation", "dilemme", "menace")


@dataclass(frozen=True)
class BriefVocabulary:
    """Tables for topic-driven concept briefs."""
    angles: Tuple[str, ...] = (
        "durabilité", "confort", "performance", "style", "innovation",
        "accessibilité", "personnalisation", "éthique", "prix malin", "communauté",
    )
    formats: Tuple[str, ...] = (
        "challenge UGC", "expérience retail", "campagne social-first",
        "partenariat influence", "activation événementielle", "mini-série vidéo",
        "test AR / try-on", "programme d'ambassadeurs", "stunt PR",
        "produit-service (abonnement)",
    )
    audiences: Tuple[str, ...] = (
        "étudiants", "jeunes actifs", "sportifs", "parents", "professionnels",
        "urbains", "randonneurs", "créatifs", "fans de mode",
    )
    channels: Tuple[str, ...] = (
        "TikTok", "Instagram", "YouTube Shorts", "affichage (OOH)", "podcasts",
        "newsletter", "pop-up store", "partenariats locaux", "événements",
        "site + landing",
    )
    deliverables: Tuple[str, ...] = (
        "3 vidéos courtes (15-30s)", "1 landing page", "1 kit influence",
        "1 plan media", "1 concept visuel (key visual)", "1 slogan + variantes",
        "1 mécanique UGC", "1 activation terrain",
    )
    verbs: Tuple[str, ...] = (
        "réinventer", "simplifier", "réduire", "améliorer", "déclencher",
        "transformer", "réconcilier",
    )
    benefits: Tuple[str, ...] = (
        "le quotidien", "la mobilité", "la confiance", "la liberté",
        "le bien-être", "la créativité", "l'engagement",
    )
    kpis: Tuple[str, ...] = (
        "Taux de visionnage (VTR)", "CTR vers la landing", "Taux d'ajout au panier",
        "Coût par lead", "UGC créés", "Trafic en boutique",
    )


# =============================================================================
# TEXT HELPERS
# =============================================================================

_SENTENCE_BREAK = re.compile(r"(?<=[.!?])\s+")


def cap_first(text: str) -> str:
    """Trim and upper-case the first character only."""
    t = text.strip()
    if not t:
        return t
    return t[0].upper() + t[1:]


def compose_full_name(first: Optional[str], family: Optional[str]) -> str:
    """
    Join first and family name with a single space.

    When the normalized first name already contains the normalized family
    name ("Jean Dupont" + "dupont"), the first name is returned alone.
    """
    first = (first or "").strip()
    family = (family or "").strip()
    if not family:
        return first
    if normalize_text(family) in normalize_text(first):
        return first
    return f"{first} {family}".strip()


def _near(place: str) -> str:
    # French contraction of "près de" with a definite article.
    if place.startswith("les "):
        return "près des " + place[4:]
    if place.startswith("le "):
        return "près du " + place[3:]
    return "près de " + place


def to_mini_bio(
    text: Optional[str],
    max_sentences: int = 5,
    max_chars: int = 420,
) -> Optional[str]:
    """
    Leading sentences of text, at most max_sentences and max_chars.

    Stops at the first sentence that would overflow the character cap.
    None for empty input or when the first sentence alone is too long.
    """
    if not text or not text.strip():
        return None
    sentences = [s.strip() for s in _SENTENCE_BREAK.split(text.strip()) if s.strip()]
    kept: List[str] = []
    for sentence in sentences[:max_sentences]:
        if len(" ".join(kept + [sentence])) > max_chars:
            break
        kept.append(sentence)
    bio = " ".join(kept).strip()
    return bio or None


# =============================================================================
# NPC COMPOSITION
# =============================================================================

@dataclass(frozen=True)
class Composition:
    """Composed text of one subject and where it came from."""
    segments: Tuple[TextSegment, ...]
    text: str
    fragment_ids: Tuple[RecordId, ...]
    role: str
    traits: Tuple[str, ...]
    hook: str


class NarrativeComposer:
    """
    Composes subject text from fragments plus descriptive clauses.

    Deterministic given the RNG: the same rng state, name and eligible pool
    always produce the same Composition.
    """

    def __init__(
        self,
        config: Optional[ComposerConfig] = None,
        vocabulary: Optional[NpcVocabulary] = None,
    ):
        self._config = config or ComposerConfig()
        self._vocabulary = vocabulary or NpcVocabulary()

    @property
    def config(self) -> ComposerConfig:
        return self._config

    def fragment_count(self, eligible_size: int, rng: Rng) -> int:
        """min(2, size) under three eligible fragments, else 2 or 3 on a coin flip."""
        if eligible_size >= 3:
            return 2 if rng() < 0.5 else 3
        return min(2, eligible_size)

    def _substitute(self, text: str, full_name: str) -> str:
        return text.replace(self._config.name_placeholder, full_name).strip()

    def compose(
        self,
        full_name: str,
        eligible: Sequence[NarrativeFragment],
        rng: Rng,
    ) -> Composition:
        vocab = self._vocabulary
        picked = sample_without_replacement(eligible, self.fragment_count(len(eligible), rng), rng)

        segments: List[TextSegment] = []
        for fragment in picked:
            text = self._substitute(fragment.text, full_name)
            if text:
                segments.append(TextSegment(SegmentKind.FRAGMENT, text, fragment.id))

        role = cap_first(pick(vocab.roles, rng))
        traits = tuple(sample_without_replacement(vocab.traits, 2, rng))
        hook = cap_first(f"Porte {pick(vocab.hooks, rng)}.")
        place = pick(vocab.places, rng)

        segments.append(TextSegment(SegmentKind.ROLE, f"Rôle: {role}."))
        segments.append(TextSegment(SegmentKind.TRAITS, f"Traits: {', '.join(traits)}."))
        segments.append(TextSegment(SegmentKind.HOOK, hook))
        segments.append(TextSegment(
            SegmentKind.SCENE,
            cap_first(f"On le dit {traits[0]} mais parfois {traits[-1]}; on l'a aperçu {_near(place)}."),
        ))

        return Composition(
            segments=tuple(segments),
            text=" ".join(s.text for s in segments),
            fragment_ids=tuple(f.id for f in picked),
            role=role,
            traits=traits,
            hook=hook,
        )

    def mini_bio(self, text: Optional[str]) -> Optional[str]:
        return to_mini_bio(
            text,
            self._config.mini_bio_max_sentences,
            self._config.mini_bio_max_chars,
        )


# =============================================================================
# CONCEPT ENRICHMENT
# =============================================================================

def enrich_concept(
    concept: CandidateRecord,
    rng: Rng,
    vocabulary: Optional[ConceptVocabulary] = None,
) -> Tuple[Tuple[str, Any], ...]:
    """
    Creative fields for a stored concept.

    Missing mood or keywords are drawn, in that order, from the vocabulary;
    present values consume no draw.
    """
    vocab = vocabulary or ConceptVocabulary()
    title = concept.display_text
    mood = concept.attribute("mood") or pick(vocab.moods, rng)
    keywords = split_keywords(concept.attribute("keywords"))
    k1 = keywords[0] if len(keywords) > 0 else pick(vocab.first_keywords, rng)
    k2 = keywords[1] if len(keywords) > 1 else pick(vocab.second_keywords, rng)
    k3 = keywords[2] if len(keywords) > 2 else pick(vocab.third_keywords, rng)

    return (
        ("type", concept.attribute("type")),
        ("mood", mood),
        ("keywords", concept.attribute("keywords")),
        ("elevatorPitch", (
            f"« {title} » est une idée {mood} centrée sur {k1} et {k2}. "
            "Elle sert de moteur narratif et ouvre des arcs de quête, de conflit et de révélation."
        )),
        ("twist", f"Twist : {k2} n'est qu'un écran ; la véritable cause implique {k3}."),
        ("hook", (
            f"Accroche : quand {k1} refait surface, vos personnages doivent choisir "
            "entre préserver l'ordre ou dévoiler la vérité."
        )),
        ("questions", (
            f"Qui contrôle « {title} » et pourquoi ?",
            f"Quel est le prix exact de {k1} dans votre univers ?",
        )),
    )


@dataclass(frozen=True)
class ConceptBrief:
    """One topic-driven concept idea."""
    title: str
    attributes: Tuple[Tuple[str, Any], ...] = field(default_factory=tuple)


def compose_topic_brief(
    topic: str,
    rng: Rng,
    vocabulary: Optional[BriefVocabulary] = None,
) -> ConceptBrief:
    """
    Brief-style concept idea around a free-text topic.

    Draw order: angle, format, audience, channel, verb, benefit, then two
    extra channels, three deliverables and three KPIs.
    """
    vocab = vocabulary or BriefVocabulary()
    subject = topic.strip()
    label = cap_first(subject)

    angle = pick(vocab.angles, rng)
    brief_format = pick(vocab.formats, rng)
    audience = pick(vocab.audiences, rng)
    channel = pick(vocab.channels, rng)
    verb = pick(vocab.verbs, rng)
    benefit = pick(vocab.benefits, rng)
    channels = (channel, pick(vocab.channels, rng), pick(vocab.channels, rng))
    deliverables = tuple(pick(vocab.deliverables, rng) for _ in range(3))
    kpis = tuple(pick(vocab.kpis, rng) for _ in range(3))

    angle_label = cap_first(angle)
    return ConceptBrief(
        title=f"{label} : {angle_label}",
        attributes=(
            ("type", "Concept réaliste (brief)"),
            ("mood", "innovant"),
            ("keywords", ", ".join((subject, angle, audience, channel))),
            ("elevatorPitch", (
                f"Concept {brief_format} pour {label}, centré sur {angle}, ciblant {audience}. "
                f"On déclenche l'essai via {channel}, puis on convertit avec une promesse simple et mesurable."
            )),
            ("insight", f"Les gens veulent {verb} {benefit} sans sacrifier {angle}."),
            ("hook", f"Accroche: et si vos {subject} prouvaient (en 10 secondes) la différence ?"),
            ("channels", channels),
            ("deliverables", deliverables),
            ("slogans", (
                f"{label}. {angle_label} qui se voit.",
                f"Marchez plus loin, pensez {angle_label}.",
                f"{angle_label} sans compromis.",
            )),
            ("kpis", kpis),
        ),
    )
