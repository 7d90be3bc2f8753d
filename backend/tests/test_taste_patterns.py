from collections import Counter

from folio.dna import AestheticDNA, ItemAnalysis, PerformanceDNA, TasteSignals
from folio.services.taste_patterns import (
    AGGREGATE_CAPS,
    CONFIDENCE_CAP,
    MERGE_CAPS,
    TALLY_RESERVE,
    TRAINING_CAPS,
    AestheticPatterns,
    PatternBundle,
    PerformancePatterns,
    SignalTally,
    aggregate_analyses,
    apply_training_signals,
    confidence_score,
    count_frequency,
    merge_bundles,
    mode,
    rank_values,
    refine_from_history,
)


def _analysis(hooks=(), tones=(), keywords=(), voice="unknown", sentiment="neutral", fmt="unknown"):
    return ItemAnalysis(
        performance=PerformanceDNA(hooks=list(hooks), keywords=list(keywords), sentiment=sentiment, format=fmt),
        aesthetic=AestheticDNA(tone=list(tones), voice=voice),
    )


def test_count_frequency_ignores_empty_and_unknown():
    counts = count_frequency(["Calm", "calm ", "", "unknown", "UNKNOWN", None, "bold"])

    assert counts == Counter({"calm": 2, "bold": 1})


def test_rank_values_breaks_ties_lexicographically():
    assert rank_values({"beta": 2, "alpha": 2, "gamma": 3}) == ["gamma", "alpha", "beta"]


def test_rank_values_uses_recency_before_value():
    ranked = rank_values({"alpha": 1, "beta": 1}, last_seen={"alpha": 1, "beta": 5})

    assert ranked == ["beta", "alpha"]


def test_mode_defaults_to_unknown():
    assert mode([]) == "unknown"
    assert mode(["", "unknown"]) == "unknown"
    assert mode(["casual", "hype", "casual"]) == "casual"


def test_top_n_never_excludes_a_more_frequent_value():
    # hook-k appears k times, so the cap forces some values out
    analyses = [_analysis(hooks=[f"hook-{k:02d}"]) for k in range(1, 16) for _ in range(k)]
    bundle = aggregate_analyses(analyses)

    kept = bundle.performance.top_hooks
    assert len(kept) == AGGREGATE_CAPS["top_hooks"]
    counts = count_frequency(h for a in analyses for h in a.performance.hooks)
    weakest_kept = min(counts[h] for h in kept)
    excluded = set(counts) - set(kept)
    assert all(counts[h] <= weakest_kept for h in excluded)


def test_aggregate_builds_histograms_and_singletons():
    bundle = aggregate_analyses(
        [
            _analysis(tones=["calm"], voice="casual", sentiment="positive", fmt="vlog"),
            _analysis(tones=["calm", "bold"], voice="casual", sentiment="positive", fmt="tutorial"),
            _analysis(tones=["bold"], voice="hype", sentiment="negative", fmt="vlog"),
        ]
    )

    assert bundle.performance.sentiment_profile == {"positive": 2, "negative": 1}
    assert bundle.performance.formats == {"vlog": 2, "tutorial": 1}
    assert bundle.aesthetic.dominant_tones == ["bold", "calm"]
    assert bundle.aesthetic.voice_signature == "casual"
    assert bundle.aesthetic.avoid_tones == []


def test_confidence_is_monotonic_and_capped():
    previous = -1.0
    for n in range(0, 2000):
        score = confidence_score(n)
        assert score >= previous
        assert score <= CONFIDENCE_CAP
        previous = score
    assert confidence_score(0) == 0.0
    assert confidence_score(10_000) == CONFIDENCE_CAP


def _training_bundle():
    return PatternBundle(
        performance=PerformancePatterns(top_hooks=["question"], common_keywords=["python"]),
        aesthetic=AestheticPatterns(
            dominant_tones=["educational"], avoid_tones=["dramatic"], voice_signature="casual"
        ),
    )


def test_merge_passes_training_through_when_collection_empty():
    training = _training_bundle()

    assert merge_bundles(PatternBundle(), training) == training
    assert merge_bundles(training, PatternBundle()) == training


def test_merge_orders_training_first_and_respects_avoid_tones():
    collection = PatternBundle(
        performance=PerformancePatterns(top_hooks=["listicle", "question"], sentiment_profile={"positive": 2}),
        aesthetic=AestheticPatterns(dominant_tones=["dramatic", "humorous"], voice_signature="hype", pacing="fast"),
    )
    training = _training_bundle()
    training.performance.sentiment_profile = {"positive": 1, "curious": 1}

    merged = merge_bundles(collection, training)

    assert merged.performance.top_hooks == ["question", "listicle"]
    assert merged.aesthetic.dominant_tones == ["educational", "humorous"]
    assert merged.aesthetic.avoid_tones == ["dramatic"]
    assert merged.performance.sentiment_profile == {"positive": 3, "curious": 1}
    assert merged.aesthetic.voice_signature == "casual"
    # training has no pacing, so collection's wins
    assert merged.aesthetic.pacing == "fast"


def test_merge_never_exceeds_caps():
    many = [f"value-{i}" for i in range(40)]
    others = [f"other-{i}" for i in range(40)]
    collection = PatternBundle(
        performance=PerformancePatterns(top_hooks=many, common_keywords=many, niches=many),
        aesthetic=AestheticPatterns(dominant_tones=many, style_markers=many, emotional_triggers=many),
    )
    training = PatternBundle(
        performance=PerformancePatterns(top_hooks=others, common_keywords=others, niches=others),
        aesthetic=AestheticPatterns(dominant_tones=others, avoid_tones=others, style_markers=others),
    )

    merged = merge_bundles(collection, training)

    assert len(merged.performance.top_hooks) <= MERGE_CAPS["top_hooks"]
    assert len(merged.performance.common_keywords) <= MERGE_CAPS["common_keywords"]
    assert len(merged.performance.niches) <= MERGE_CAPS["niches"]
    assert len(merged.aesthetic.dominant_tones) <= MERGE_CAPS["dominant_tones"]
    assert len(merged.aesthetic.avoid_tones) <= MERGE_CAPS["avoid_tones"]
    assert len(merged.aesthetic.style_markers) <= MERGE_CAPS["style_markers"]
    assert len(merged.aesthetic.emotional_triggers) <= MERGE_CAPS["emotional_triggers"]


def test_replaying_both_liked_does_not_duplicate():
    tally = SignalTally()
    a = TasteSignals(tones=["educational"], keywords=["python"], hooks=["how-to promise"], styles=["numeric"])
    b = TasteSignals(tones=["educational", "humorous"], keywords=["python"], hooks=["question"], styles=["numeric"])

    bundle = apply_training_signals(PatternBundle(), tally, [a, b], [], seq=1)
    bundle = apply_training_signals(bundle, tally, [a, b], [], seq=2)

    for values in (
        bundle.aesthetic.dominant_tones,
        bundle.performance.common_keywords,
        bundle.performance.top_hooks,
        bundle.aesthetic.style_markers,
    ):
        assert len(values) == len(set(values))
    assert bundle.aesthetic.dominant_tones == ["educational", "humorous"]
    assert tally.data["dominant_tones"]["educational"] == [4, 2]


def test_dislike_moves_tone_to_avoid_list():
    tally = SignalTally()
    liked = TasteSignals(tones=["dramatic"])
    bundle = apply_training_signals(PatternBundle(), tally, [liked], [], seq=1)

    bundle = apply_training_signals(bundle, tally, [], [TasteSignals(tones=["dramatic"], hooks=["x"])], seq=2)

    assert bundle.aesthetic.dominant_tones == []
    assert bundle.aesthetic.avoid_tones == ["dramatic"]
    assert "dramatic" not in tally.data["dominant_tones"]


def test_eviction_keeps_frequent_values_over_new_ones():
    tally = SignalTally()
    bundle = PatternBundle()
    for seq in range(1, 6):
        bundle = apply_training_signals(bundle, tally, [TasteSignals(tones=["educational"])], [], seq=seq)

    newcomers = [f"tone-{i:02d}" for i in range(TRAINING_CAPS["dominant_tones"])]
    bundle = apply_training_signals(bundle, tally, [TasteSignals(tones=newcomers)], [], seq=6)

    tones = bundle.aesthetic.dominant_tones
    assert len(tones) == TRAINING_CAPS["dominant_tones"]
    assert tones[0] == "educational"
    assert newcomers[-1] not in tones


def test_tallies_stay_bounded_as_new_keywords_arrive():
    tally = SignalTally()
    bundle = PatternBundle()
    for seq in range(1, 41):
        keywords = [f"kw-{seq:02d}-{i}" for i in range(5)]
        bundle = apply_training_signals(bundle, tally, [TasteSignals(keywords=keywords)], [], seq=seq)

    cap = TRAINING_CAPS["common_keywords"]
    assert len(bundle.performance.common_keywords) == cap
    assert len(tally.data["common_keywords"]) == cap + TALLY_RESERVE
    assert set(bundle.performance.common_keywords) <= set(tally.data["common_keywords"])


def test_tally_round_trips_through_storage_format():
    tally = SignalTally()
    tally.bump("top_hooks", "question", 3)

    restored = SignalTally(tally.to_dict())

    assert restored.data["top_hooks"] == {"question": [1, 3]}
    assert restored.data["avoid_tones"] == {}


def test_refine_applies_strict_set_difference():
    liked = TasteSignals(tones=["educational", "calm"], keywords=["python", "guide"], hooks=["question"])
    disliked = TasteSignals(tones=["calm", "dramatic"], keywords=["guide"], hooks=["question", "shock value"])

    result = refine_from_history([([liked], [disliked])])

    aest = result.bundle.aesthetic
    assert aest.dominant_tones == ["educational"]
    assert aest.avoid_tones == ["dramatic"]
    assert result.bundle.performance.common_keywords == ["python"]
    # hooks are reinforced from likes alone
    assert result.bundle.performance.top_hooks == ["question"]
    assert result.trained_dislikes["avoid_hooks"] == ["shock value"]
    assert result.trained_dislikes["avoid_keywords"] == []
    assert result.trained_preferences["reinforced_tones"] == ["educational"]


def test_refine_ranks_by_frequency_then_recency():
    events = [
        ([TasteSignals(tones=["calm"])], []),
        ([TasteSignals(tones=["bold"])], []),
        ([TasteSignals(tones=["calm"])], []),
        ([TasteSignals(tones=["zany"])], []),
    ]

    result = refine_from_history(events)

    assert result.bundle.aesthetic.dominant_tones == ["calm", "zany", "bold"]
    assert result.tally["dominant_tones"]["calm"] == [2, 3]
