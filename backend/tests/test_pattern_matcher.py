from folio.services import pattern_matcher


def test_tutorial_title_maps_to_how_to_promise():
    analysis = pattern_matcher.analyze_title("Python tutorial for beginners")

    assert analysis.source == "patterns"
    assert "how-to promise" in analysis.performance.hooks
    assert analysis.performance.format == "tutorial"
    assert analysis.performance.target_audience == "beginners"
    assert "educational" in analysis.aesthetic.tone
    assert analysis.aesthetic.complexity == "simple"


def test_vs_title_maps_to_comparison():
    analysis = pattern_matcher.analyze_title("iPhone vs Android camera test")

    assert analysis.performance.structure == "comparison"
    assert "competitive" in analysis.aesthetic.tone
    assert analysis.aesthetic.voice == "analytical"


def test_defaults_when_nothing_matches():
    analysis = pattern_matcher.analyze_title("Sunday")

    assert analysis.performance.hooks == []
    assert analysis.performance.structure == "statement"
    assert analysis.performance.sentiment == "neutral"
    assert analysis.performance.format == "unknown"
    assert analysis.performance.target_audience == "general"
    assert analysis.aesthetic.complexity == "moderate"
    assert analysis.performance.length == len("Sunday")


def test_match_first_respects_table_order():
    table = {"first": ["cat"], "second": ["cat", "dog"]}

    assert pattern_matcher.match_first("a cat and a dog", table, "none") == "first"
    assert pattern_matcher.match_first("a dog", table, "none") == "second"
    assert pattern_matcher.match_first("a bird", table, "none") == "none"


def test_match_all_is_case_insensitive():
    assert pattern_matcher.match_all("FUNNY PRANK", pattern_matcher.TONE_PATTERNS) == ["humorous"]


def test_extract_basic_keywords_ranks_by_frequency_and_skips_stopwords():
    keywords = pattern_matcher.extract_basic_keywords("The secret guide to Python: python coding")

    assert keywords[0] == "python"
    assert "the" not in keywords
    assert set(keywords) == {"python", "secret", "guide", "coding"}


def test_taste_signals_match_analysis_lists():
    signals = pattern_matcher.taste_signals("How to cook pasta: funny guide")

    assert "how-to promise" in signals.hooks
    assert {"educational", "humorous"} <= set(signals.tones)
    assert "pasta" in signals.keywords
