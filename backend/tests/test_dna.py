from folio.dna import (
    DNA_SCHEMA_VERSION,
    AestheticDNA,
    PerformanceDNA,
    load_analysis,
    load_performance,
    upgrade_document,
)


def test_upgrade_renames_camel_case_keys():
    doc = upgrade_document({"hooks": ["listicle"], "predictedScore": 80, "targetAudience": "gamers"})

    assert doc["schema_version"] == DNA_SCHEMA_VERSION
    assert doc["predicted_score"] == 80
    assert doc["target_audience"] == "gamers"
    assert "predictedScore" not in doc


def test_load_performance_from_version_one_document():
    perf = load_performance({"hooks": "question", "predictedScore": "71.6", "structure": "question"})

    assert perf.hooks == ["question"]
    assert perf.predicted_score == 72


def test_scores_are_clamped():
    assert PerformanceDNA(predicted_score=250).predicted_score == 100
    assert AestheticDNA(taste_score=-4).taste_score == 0
    assert AestheticDNA(taste_score="n/a").taste_score == 50


def test_list_fields_drop_blanks():
    aest = AestheticDNA(tone=["calm", " ", None, "bold "])

    assert aest.tone == ["calm", "bold"]


def test_load_analysis_needs_both_documents():
    assert load_analysis({"hooks": []}, None) is None
    analysis = load_analysis({"hooks": ["listicle"]}, {"tone": ["humorous"]})
    assert analysis.source == "stored"
    assert analysis.aesthetic.tone == ["humorous"]
