"""Pydantic models for analyzer output.

Analyzers are free-form backends, so the schema is lenient: unknown keys are
ignored, classification strings are case-insensitive, and operations are kept
raw so that one malformed operation can be rejected without discarding the
rest of the payload.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, JsonValue, field_validator
from pydantic.alias_generators import to_camel

from entitystate.domain.model import Classification

NEW_ENTITY_MARKER = "new"


class AnalyzerBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


class AnalyzerClassification(AnalyzerBaseModel):
    name: str
    current_classification: Classification | None = None
    recommended_classification: Classification | None = None
    reasoning: str = ""
    scene_relevant: bool = False
    sentiment: str | None = None
    updates: list[JsonValue] = Field(default_factory=list["JsonValue"])

    @field_validator("current_classification", mode="before")
    @classmethod
    def _current(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip().lower()
            return None if normalized in ("", NEW_ENTITY_MARKER) else normalized
        return value

    @field_validator("recommended_classification", mode="before")
    @classmethod
    def _recommended(cls, value: object) -> object:
        if isinstance(value, str):
            normalized = value.strip().lower()
            return normalized or None
        return value

    @field_validator("reasoning", mode="before")
    @classmethod
    def _reasoning(cls, value: object) -> object:
        return "" if value is None else value


class AnalyzerPayload(AnalyzerBaseModel):
    operations: list[JsonValue] = Field(default_factory=list["JsonValue"])
    classifications: list[AnalyzerClassification] = Field(
        default_factory=list["AnalyzerClassification"]
    )
    scene_entities: list[str] = Field(default_factory=list[str])
