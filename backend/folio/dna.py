"""
Typed content descriptors stored on collection items.

PerformanceDNA describes the persuasive mechanics of a title, AestheticDNA
its stylistic qualities. Both are persisted as JSON documents carrying a
``schema_version``; older documents are upgraded on load by
``upgrade_document`` rather than being dropped.

Schema history:
  1 - camelCase keys (predictedScore, targetAudience, tasteScore,
      emotionalTriggers), no version field
  2 - snake_case keys, explicit schema_version
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator

DNA_SCHEMA_VERSION = 2

_V1_RENAMES = {
    "predictedScore": "predicted_score",
    "targetAudience": "target_audience",
    "tasteScore": "taste_score",
    "emotionalTriggers": "emotional_triggers",
}


def _clean_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        value = [value]
    return [str(v).strip() for v in value if v is not None and str(v).strip()]


def _clamp_score(value: Any) -> int:
    try:
        score = int(round(float(value)))
    except (TypeError, ValueError):
        return 50
    return max(0, min(100, score))


class PerformanceDNA(BaseModel):
    schema_version: int = DNA_SCHEMA_VERSION
    hooks: list[str] = Field(default_factory=list)
    structure: str = "unknown"
    length: int = 0
    keywords: list[str] = Field(default_factory=list)
    sentiment: str = "neutral"
    predicted_score: int = 50
    format: str = "unknown"
    niche: str = "unknown"
    target_audience: str = "general"

    @field_validator("hooks", "keywords", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> list[str]:
        return _clean_list(value)

    @field_validator("predicted_score", mode="before")
    @classmethod
    def _score(cls, value: Any) -> int:
        return _clamp_score(value)

    @field_validator("length", mode="before")
    @classmethod
    def _length(cls, value: Any) -> int:
        try:
            return max(0, int(value))
        except (TypeError, ValueError):
            return 0


class AestheticDNA(BaseModel):
    schema_version: int = DNA_SCHEMA_VERSION
    tone: list[str] = Field(default_factory=list)
    voice: str = "unknown"
    complexity: str = "unknown"
    style: list[str] = Field(default_factory=list)
    taste_score: int = 50
    emotional_triggers: list[str] = Field(default_factory=list)
    pacing: str = "unknown"

    @field_validator("tone", "style", "emotional_triggers", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> list[str]:
        return _clean_list(value)

    @field_validator("taste_score", mode="before")
    @classmethod
    def _score(cls, value: Any) -> int:
        return _clamp_score(value)


class ItemAnalysis(BaseModel):
    """Result of analyzing one title."""

    performance: PerformanceDNA
    aesthetic: AestheticDNA
    source: str = "llm"


class TasteSignals(BaseModel):
    """Lightweight per-title signals used by training refinement."""

    tones: list[str] = Field(default_factory=list)
    keywords: list[str] = Field(default_factory=list)
    hooks: list[str] = Field(default_factory=list)
    styles: list[str] = Field(default_factory=list)

    @field_validator("tones", "keywords", "hooks", "styles", mode="before")
    @classmethod
    def _lists(cls, value: Any) -> list[str]:
        return _clean_list(value)


def upgrade_document(raw: dict[str, Any]) -> dict[str, Any]:
    """Bring a stored DNA document up to the current schema version."""
    doc = dict(raw)
    version = doc.get("schema_version", 1)
    if version < 2:
        for old, new in _V1_RENAMES.items():
            if old in doc and new not in doc:
                doc[new] = doc.pop(old)
        version = 2
    doc["schema_version"] = version
    return doc


def load_performance(raw: dict[str, Any] | None) -> PerformanceDNA | None:
    if not raw:
        return None
    return PerformanceDNA.model_validate(upgrade_document(raw))


def load_aesthetic(raw: dict[str, Any] | None) -> AestheticDNA | None:
    if not raw:
        return None
    return AestheticDNA.model_validate(upgrade_document(raw))


def load_analysis(performance: dict[str, Any] | None, aesthetic: dict[str, Any] | None) -> ItemAnalysis | None:
    perf = load_performance(performance)
    aest = load_aesthetic(aesthetic)
    if perf is None or aest is None:
        return None
    return ItemAnalysis(performance=perf, aesthetic=aest, source="stored")
