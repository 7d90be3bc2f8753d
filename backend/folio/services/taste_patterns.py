"""
Taste pattern bundles and the pure functions that build and combine them.

A bundle is a frequency-ranked summary of hooks, tones, keywords and the
like. Two bundles are stored per user (collection-derived and
training-derived); the combined view is always ``merge_bundles`` of the two.

Ranking is deterministic everywhere: frequency desc, then (where recency is
tracked) last-seen desc, then the value itself ascending.
"""
from __future__ import annotations

import math
from collections import Counter
from typing import Any, Iterable

from pydantic import BaseModel, Field

from folio.dna import ItemAnalysis, TasteSignals

EMPTY_VALUES = {"", "unknown"}

# Full rebuild top-N per field.
AGGREGATE_CAPS = {
    "top_hooks": 10,
    "preferred_structures": 5,
    "common_keywords": 20,
    "niches": 5,
    "target_audiences": 3,
    "dominant_tones": 10,
    "style_markers": 8,
    "emotional_triggers": 6,
    "sentence_patterns": 5,
    "rhetorical_devices": 5,
}

# Incremental training caps.
TRAINING_CAPS = {
    "dominant_tones": 12,
    "avoid_tones": 12,
    "style_markers": 10,
    "common_keywords": 20,
    "top_hooks": 12,
}

# Combined view caps.
MERGE_CAPS = {
    "top_hooks": 12,
    "preferred_structures": 5,
    "common_keywords": 20,
    "niches": 5,
    "target_audiences": 3,
    "dominant_tones": 12,
    "avoid_tones": 12,
    "style_markers": 10,
    "emotional_triggers": 6,
    "sentence_patterns": 5,
    "rhetorical_devices": 5,
}

# Full refinement caps.
REFINE_CAPS = {
    "tones": 10,
    "keywords": 15,
    "hooks": 10,
    "styles": 8,
}

CONFIDENCE_CAP = 0.95

# Tallies kept for evicted values beyond each list cap.
TALLY_RESERVE = 10


class PerformancePatterns(BaseModel):
    top_hooks: list[str] = Field(default_factory=list)
    preferred_structures: list[str] = Field(default_factory=list)
    common_keywords: list[str] = Field(default_factory=list)
    sentiment_profile: dict[str, int] = Field(default_factory=dict)
    formats: dict[str, int] = Field(default_factory=dict)
    niches: list[str] = Field(default_factory=list)
    target_audiences: list[str] = Field(default_factory=list)


class AestheticPatterns(BaseModel):
    dominant_tones: list[str] = Field(default_factory=list)
    avoid_tones: list[str] = Field(default_factory=list)
    voice_signature: str = "unknown"
    complexity_preference: str = "unknown"
    style_markers: list[str] = Field(default_factory=list)
    emotional_triggers: list[str] = Field(default_factory=list)
    pacing: str = "unknown"


class VoiceSignature(BaseModel):
    sentence_patterns: list[str] = Field(default_factory=list)
    vocabulary_level: str = "unknown"
    rhetorical_devices: list[str] = Field(default_factory=list)


class PatternBundle(BaseModel):
    performance: PerformancePatterns = Field(default_factory=PerformancePatterns)
    aesthetic: AestheticPatterns = Field(default_factory=AestheticPatterns)
    voice: VoiceSignature = Field(default_factory=VoiceSignature)

    def is_empty(self) -> bool:
        return self == PatternBundle()

    @classmethod
    def load(cls, raw: dict[str, Any] | None) -> "PatternBundle":
        if not raw:
            return cls()
        return cls.model_validate(raw)


def _normalize(value: str) -> str:
    return value.strip().lower()


def count_frequency(values: Iterable[str]) -> Counter:
    """Count values, ignoring empties and the ``unknown`` placeholder."""
    counter: Counter = Counter()
    for value in values:
        if value is None:
            continue
        key = _normalize(str(value))
        if key in EMPTY_VALUES:
            continue
        counter[key] += 1
    return counter


def rank_values(
    counts: dict[str, int],
    limit: int | None = None,
    last_seen: dict[str, int] | None = None,
) -> list[str]:
    last_seen = last_seen or {}
    ranked = sorted(counts, key=lambda v: (-counts[v], -last_seen.get(v, -1), v))
    return ranked if limit is None else ranked[:limit]


def top_values(values: Iterable[str], limit: int) -> list[str]:
    return rank_values(count_frequency(values), limit)


def mode(values: Iterable[str], default: str = "unknown") -> str:
    ranked = top_values(values, 1)
    return ranked[0] if ranked else default


def confidence_score(rating_count: int) -> float:
    return min(CONFIDENCE_CAP, math.log10(max(0, rating_count) + 1) / 2)


def aggregate_analyses(analyses: list[ItemAnalysis]) -> PatternBundle:
    """Fold per-item analyses into a frequency-ranked bundle."""
    perf = [a.performance for a in analyses]
    aest = [a.aesthetic for a in analyses]

    hooks = [h for p in perf for h in p.hooks]
    styles = [s for a in aest for s in a.style]

    performance = PerformancePatterns(
        top_hooks=top_values(hooks, AGGREGATE_CAPS["top_hooks"]),
        preferred_structures=top_values((p.structure for p in perf), AGGREGATE_CAPS["preferred_structures"]),
        common_keywords=top_values((k for p in perf for k in p.keywords), AGGREGATE_CAPS["common_keywords"]),
        sentiment_profile=dict(count_frequency(p.sentiment for p in perf)),
        formats=dict(count_frequency(p.format for p in perf)),
        niches=top_values((p.niche for p in perf), AGGREGATE_CAPS["niches"]),
        target_audiences=top_values((p.target_audience for p in perf), AGGREGATE_CAPS["target_audiences"]),
    )
    complexity = mode(a.complexity for a in aest)
    aesthetic = AestheticPatterns(
        dominant_tones=top_values((t for a in aest for t in a.tone), AGGREGATE_CAPS["dominant_tones"]),
        avoid_tones=[],
        voice_signature=mode(a.voice for a in aest),
        complexity_preference=complexity,
        style_markers=top_values(styles, AGGREGATE_CAPS["style_markers"]),
        emotional_triggers=top_values(
            (t for a in aest for t in a.emotional_triggers), AGGREGATE_CAPS["emotional_triggers"]
        ),
        pacing=mode(a.pacing for a in aest),
    )
    voice = VoiceSignature(
        sentence_patterns=top_values(hooks, AGGREGATE_CAPS["sentence_patterns"]),
        vocabulary_level=complexity,
        rhetorical_devices=top_values(styles, AGGREGATE_CAPS["rhetorical_devices"]),
    )
    return PatternBundle(performance=performance, aesthetic=aesthetic, voice=voice)


def _union(first: list[str], second: list[str], cap: int, exclude: set[str] | None = None) -> list[str]:
    exclude = exclude or set()
    out: list[str] = []
    for value in [*first, *second]:
        if value in exclude or value in out:
            continue
        out.append(value)
    return out[:cap]


def _sum_histograms(a: dict[str, int], b: dict[str, int]) -> dict[str, int]:
    out = dict(a)
    for key, count in b.items():
        out[key] = out.get(key, 0) + count
    return out


def _pick(training: str, collection: str) -> str:
    return training if _normalize(training) not in EMPTY_VALUES else collection


def merge_bundles(collection: PatternBundle, training: PatternBundle) -> PatternBundle:
    """Combine the two stored bundles; training signal is ordered first."""
    if training.is_empty():
        return collection.model_copy(deep=True)
    if collection.is_empty():
        return training.model_copy(deep=True)

    cp, tp = collection.performance, training.performance
    ca, ta = collection.aesthetic, training.aesthetic
    cv, tv = collection.voice, training.voice

    avoid = _union(ta.avoid_tones, ca.avoid_tones, MERGE_CAPS["avoid_tones"])
    performance = PerformancePatterns(
        top_hooks=_union(tp.top_hooks, cp.top_hooks, MERGE_CAPS["top_hooks"]),
        preferred_structures=_union(
            tp.preferred_structures, cp.preferred_structures, MERGE_CAPS["preferred_structures"]
        ),
        common_keywords=_union(tp.common_keywords, cp.common_keywords, MERGE_CAPS["common_keywords"]),
        sentiment_profile=_sum_histograms(tp.sentiment_profile, cp.sentiment_profile),
        formats=_sum_histograms(tp.formats, cp.formats),
        niches=_union(tp.niches, cp.niches, MERGE_CAPS["niches"]),
        target_audiences=_union(tp.target_audiences, cp.target_audiences, MERGE_CAPS["target_audiences"]),
    )
    aesthetic = AestheticPatterns(
        dominant_tones=_union(ta.dominant_tones, ca.dominant_tones, MERGE_CAPS["dominant_tones"], set(avoid)),
        avoid_tones=avoid,
        voice_signature=_pick(ta.voice_signature, ca.voice_signature),
        complexity_preference=_pick(ta.complexity_preference, ca.complexity_preference),
        style_markers=_union(ta.style_markers, ca.style_markers, MERGE_CAPS["style_markers"]),
        emotional_triggers=_union(ta.emotional_triggers, ca.emotional_triggers, MERGE_CAPS["emotional_triggers"]),
        pacing=_pick(ta.pacing, ca.pacing),
    )
    voice = VoiceSignature(
        sentence_patterns=_union(tv.sentence_patterns, cv.sentence_patterns, MERGE_CAPS["sentence_patterns"]),
        vocabulary_level=_pick(tv.vocabulary_level, cv.vocabulary_level),
        rhetorical_devices=_union(tv.rhetorical_devices, cv.rhetorical_devices, MERGE_CAPS["rhetorical_devices"]),
    )
    return PatternBundle(performance=performance, aesthetic=aesthetic, voice=voice)


class SignalTally:
    """Per-value (count, last_seen) bookkeeping for the training bundle.

    Stored as ``{field: {value: [count, last_seen]}}``.
    """

    FIELDS = ("dominant_tones", "avoid_tones", "common_keywords", "top_hooks", "style_markers")

    def __init__(self, data: dict[str, dict[str, list[int]]] | None = None):
        self.data: dict[str, dict[str, list[int]]] = {
            field: {k: list(v) for k, v in ((data or {}).get(field) or {}).items()} for field in self.FIELDS
        }

    def bump(self, field: str, value: str, seq: int) -> None:
        entry = self.data[field].setdefault(value, [0, seq])
        entry[0] += 1
        entry[1] = seq

    def drop(self, field: str, value: str) -> None:
        self.data[field].pop(value, None)

    def rank(self, field: str, values: list[str], cap: int) -> list[str]:
        tallies = self.data[field]
        counts = {v: tallies.get(v, [0, -1])[0] for v in values}
        last_seen = {v: tallies.get(v, [0, -1])[1] for v in values}
        kept = rank_values(counts, cap, last_seen)
        self._prune(field, kept)
        return kept

    def _prune(self, field: str, kept: list[str]) -> None:
        """Keep tallies for listed values plus a small reserve of the best evicted ones."""
        tallies = self.data[field]
        spare = {v: t for v, t in tallies.items() if v not in kept}
        reserve = rank_values({v: t[0] for v, t in spare.items()}, TALLY_RESERVE, {v: t[1] for v, t in spare.items()})
        self.data[field] = {v: tallies[v] for v in (*kept, *reserve) if v in tallies}

    def to_dict(self) -> dict[str, dict[str, list[int]]]:
        return {field: {k: list(v) for k, v in values.items()} for field, values in self.data.items()}


def _add(values: list[str], value: str) -> None:
    if value not in values:
        values.append(value)


def _remove(values: list[str], value: str) -> None:
    if value in values:
        values.remove(value)


def _clean(values: Iterable[str]) -> list[str]:
    return list(count_frequency(values))


def apply_training_signals(
    bundle: PatternBundle,
    tally: SignalTally,
    liked: list[TasteSignals],
    disliked: list[TasteSignals],
    seq: int,
) -> PatternBundle:
    """Nudge a training bundle toward liked signals and away from disliked ones.

    List membership is deduplicated, so replaying the same rating never
    grows a list. Every list is cut to its cap with ``SignalTally.rank``.
    """
    bundle = bundle.model_copy(deep=True)
    perf, aest = bundle.performance, bundle.aesthetic

    for signals in liked:
        for tone in _clean(signals.tones):
            tally.bump("dominant_tones", tone, seq)
            _add(aest.dominant_tones, tone)
            _remove(aest.avoid_tones, tone)
            tally.drop("avoid_tones", tone)
        for keyword in _clean(signals.keywords):
            tally.bump("common_keywords", keyword, seq)
            _add(perf.common_keywords, keyword)
        for hook in _clean(signals.hooks):
            tally.bump("top_hooks", hook, seq)
            _add(perf.top_hooks, hook)
        for style in _clean(signals.styles):
            tally.bump("style_markers", style, seq)
            _add(aest.style_markers, style)

    for signals in disliked:
        for tone in _clean(signals.tones):
            tally.bump("avoid_tones", tone, seq)
            _add(aest.avoid_tones, tone)
            _remove(aest.dominant_tones, tone)
            tally.drop("dominant_tones", tone)
        for keyword in _clean(signals.keywords):
            _remove(perf.common_keywords, keyword)
            tally.drop("common_keywords", keyword)
        for hook in _clean(signals.hooks):
            _remove(perf.top_hooks, hook)
            tally.drop("top_hooks", hook)
        for style in _clean(signals.styles):
            _remove(aest.style_markers, style)
            tally.drop("style_markers", style)

    aest.dominant_tones = tally.rank("dominant_tones", aest.dominant_tones, TRAINING_CAPS["dominant_tones"])
    aest.avoid_tones = tally.rank("avoid_tones", aest.avoid_tones, TRAINING_CAPS["avoid_tones"])
    aest.style_markers = tally.rank("style_markers", aest.style_markers, TRAINING_CAPS["style_markers"])
    perf.common_keywords = tally.rank("common_keywords", perf.common_keywords, TRAINING_CAPS["common_keywords"])
    perf.top_hooks = tally.rank("top_hooks", perf.top_hooks, TRAINING_CAPS["top_hooks"])
    return bundle


class RefinementResult(BaseModel):
    bundle: PatternBundle
    tally: dict[str, dict[str, list[int]]]
    trained_preferences: dict[str, list[str]]
    trained_dislikes: dict[str, list[str]]


def _signal_counts(
    events: list[tuple[list[TasteSignals], list[TasteSignals]]], side: int, attr: str
) -> tuple[Counter, dict[str, int]]:
    counts: Counter = Counter()
    last_seen: dict[str, int] = {}
    for seq, event in enumerate(events, start=1):
        for signals in event[side]:
            for value in _clean(getattr(signals, attr)):
                counts[value] += 1
                last_seen[value] = seq
    return counts, last_seen


def refine_from_history(events: list[tuple[list[TasteSignals], list[TasteSignals]]]) -> RefinementResult:
    """Recompute the training side from the full rating history.

    ``events`` holds one ``(liked, disliked)`` pair per rating, oldest first.
    Tones and keywords use strict set difference: a value seen on both sides
    lands in neither list.
    """
    out: dict[str, dict[str, Any]] = {}
    for attr in ("tones", "keywords", "hooks", "styles"):
        liked_counts, liked_seen = _signal_counts(events, 0, attr)
        disliked_counts, disliked_seen = _signal_counts(events, 1, attr)
        out[attr] = {
            "liked": liked_counts,
            "liked_seen": liked_seen,
            "disliked": disliked_counts,
            "disliked_seen": disliked_seen,
        }

    def only(attr: str, side: str, other: str, cap: int) -> list[str]:
        data = out[attr]
        counts = {v: c for v, c in data[side].items() if v not in data[other]}
        return rank_values(counts, cap, data[f"{side}_seen"])

    def liked_only(attr: str, cap: int) -> list[str]:
        data = out[attr]
        return rank_values(dict(data["liked"]), cap, data["liked_seen"])

    dominant_tones = only("tones", "liked", "disliked", REFINE_CAPS["tones"])
    avoid_tones = only("tones", "disliked", "liked", REFINE_CAPS["tones"])
    keywords = only("keywords", "liked", "disliked", REFINE_CAPS["keywords"])
    avoid_keywords = only("keywords", "disliked", "liked", REFINE_CAPS["keywords"])
    hooks = liked_only("hooks", REFINE_CAPS["hooks"])
    styles = liked_only("styles", REFINE_CAPS["styles"])
    avoid_hooks = only("hooks", "disliked", "liked", REFINE_CAPS["hooks"])
    avoid_styles = only("styles", "disliked", "liked", REFINE_CAPS["styles"])

    bundle = PatternBundle(
        performance=PerformancePatterns(top_hooks=hooks, common_keywords=keywords),
        aesthetic=AestheticPatterns(dominant_tones=dominant_tones, avoid_tones=avoid_tones, style_markers=styles),
    )

    def tallies(attr: str, side: str, kept: list[str]) -> dict[str, list[int]]:
        data = out[attr]
        return {v: [data[side][v], data[f"{side}_seen"][v]] for v in kept}

    tally = {
        "dominant_tones": tallies("tones", "liked", dominant_tones),
        "avoid_tones": tallies("tones", "disliked", avoid_tones),
        "common_keywords": tallies("keywords", "liked", keywords),
        "top_hooks": tallies("hooks", "liked", hooks),
        "style_markers": tallies("styles", "liked", styles),
    }
    return RefinementResult(
        bundle=bundle,
        tally=tally,
        trained_preferences={
            "reinforced_hooks": hooks,
            "reinforced_tones": dominant_tones,
            "reinforced_styles": styles,
            "reinforced_keywords": keywords,
        },
        trained_dislikes={
            "avoid_hooks": avoid_hooks,
            "avoid_tones": avoid_tones,
            "avoid_styles": avoid_styles,
            "avoid_keywords": avoid_keywords,
        },
    )
