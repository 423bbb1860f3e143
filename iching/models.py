"""
models.py -- Pydantic models for the I Ching consultation pipeline.

Defines: Hexagram, ConsultationContext, AIInterpretation, ConsultationRecord,
StoredConsultation, Consultation, ConsultationResult.
All data crossing component boundaries uses these models.
JSON field names are camelCase; Python attributes are snake_case.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from iching.catalog import BINARY_TO_NUMBER, HEXAGRAM_NAMES


# ---------------------------------------------------------------------------
# Valid enumerations
# ---------------------------------------------------------------------------

LineValue = Literal[6, 7, 8, 9]
ConsultationMethod = Literal["digital_coins", "manual_entry"]
ConsultationStatus = Literal["active", "archived"]
InterpretationSource = Literal["cache", "model", "fallback"]

VALID_LINE_VALUES: frozenset[int] = frozenset({6, 7, 8, 9})
CHANGING_LINE_VALUES: frozenset[int] = frozenset({6, 9})
YANG_LINE_VALUES: frozenset[int] = frozenset({7, 9})

LINE_TYPES: dict[int, str] = {
    6: "old yin",
    7: "young yang",
    8: "young yin",
    9: "old yang",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ---------------------------------------------------------------------------
# Hexagram
# ---------------------------------------------------------------------------

class Hexagram(_CamelModel):
    """A cast hexagram. lines[0] is the bottom line."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        str_strip_whitespace=True,
    )

    number: int = Field(ge=1, le=64)
    name: str = Field(min_length=1)
    lines: list[LineValue] = Field(min_length=6, max_length=6)
    changing_lines: list[int]

    @model_validator(mode="before")
    @classmethod
    def _derive_changing_lines(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        if "changing_lines" in data or "changingLines" in data:
            return data
        lines = data.get("lines")
        if isinstance(lines, (list, tuple)):
            derived = [i for i, v in enumerate(lines, start=1) if v in CHANGING_LINE_VALUES]
            data = {**data, "changing_lines": derived}
        return data

    @model_validator(mode="after")
    def _check_reading(self) -> Hexagram:
        expected = [i for i, v in enumerate(self.lines, start=1) if v in CHANGING_LINE_VALUES]
        if self.changing_lines != expected:
            raise ValueError(
                f"changing lines {self.changing_lines} must be {expected} for lines {self.lines}"
            )
        pattern = "".join("1" if v in YANG_LINE_VALUES else "0" for v in self.lines)
        if BINARY_TO_NUMBER[pattern] != self.number:
            raise ValueError(
                f"lines {self.lines} form hexagram {BINARY_TO_NUMBER[pattern]}, not {self.number}"
            )
        if self.name != HEXAGRAM_NAMES[self.number]:
            raise ValueError(
                f"hexagram {self.number} is {HEXAGRAM_NAMES[self.number]!r}, not {self.name!r}"
            )
        return self

    @property
    def has_changing_lines(self) -> bool:
        return bool(self.changing_lines)


class ConsultationContext(_CamelModel):
    """Everything the interpretation layer needs for one consultation."""

    question: str
    hexagram: Hexagram
    timestamp: datetime = Field(default_factory=_utcnow)
    method: ConsultationMethod = "digital_coins"

    @field_validator("question")
    @classmethod
    def _question_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Question cannot be empty")
        return value


# ---------------------------------------------------------------------------
# Interpretation
# ---------------------------------------------------------------------------

class AIInterpretation(_CamelModel):
    """Interpretation returned by the LLM or the fallback generator."""

    interpretation: str = Field(min_length=1)
    guidance: Optional[str] = None
    practical_advice: Optional[str] = None
    cultural_context: Optional[str] = None

    @field_validator("interpretation")
    @classmethod
    def _interpretation_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("interpretation cannot be blank")
        return value


# ---------------------------------------------------------------------------
# Persisted consultation
# ---------------------------------------------------------------------------

class ConsultationMetadata(_CamelModel):
    method: ConsultationMethod = "digital_coins"
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


class ConsultationRecord(BaseModel):
    """Flattened row handed to the consultation store."""

    user_id: str
    question: str
    hexagram_number: int = Field(ge=1, le=64)
    hexagram_name: str
    lines: list[LineValue]
    changing_lines: list[int] = Field(default_factory=list)
    interpretation: AIInterpretation
    consultation_method: ConsultationMethod = "digital_coins"
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    status: ConsultationStatus = "active"
    tags: list[str] = Field(default_factory=list)
    notes: Optional[str] = None


class StoredConsultation(ConsultationRecord):
    """A ConsultationRecord as returned by the store."""

    id: str
    created_at: datetime
    updated_at: datetime


class ConsultationUpdate(BaseModel):
    """Fields a caller may change after creation."""

    notes: Optional[str] = None
    tags: Optional[list[str]] = None
    status: Optional[ConsultationStatus] = None


class Consultation(_CamelModel):
    """Application-level consultation record."""

    id: str
    user_id: str
    question: str
    hexagram: Hexagram
    interpretation: AIInterpretation
    metadata: ConsultationMetadata
    status: ConsultationStatus = "active"
    tags: list[str] = Field(default_factory=list)
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_stored(cls, stored: StoredConsultation) -> Consultation:
        return cls(
            id=stored.id,
            user_id=stored.user_id,
            question=stored.question,
            hexagram=Hexagram(
                number=stored.hexagram_number,
                name=stored.hexagram_name,
                lines=stored.lines,
                changing_lines=stored.changing_lines,
            ),
            interpretation=stored.interpretation,
            metadata=ConsultationMetadata(
                method=stored.consultation_method,
                ip_address=stored.ip_address,
                user_agent=stored.user_agent,
            ),
            status=stored.status,
            tags=list(stored.tags),
            notes=stored.notes,
            created_at=stored.created_at,
            updated_at=stored.updated_at,
        )


class ConsultationResult(_CamelModel):
    """Outcome of ConsultationOrchestrator.create_consultation."""

    consultation: Consultation
    hexagram: Hexagram
    interpretation: AIInterpretation
    source: InterpretationSource
    model: str
    complexity: float


def format_consultation_summary(consultation: Consultation) -> str:
    """One-line history entry for a consultation."""
    date = consultation.created_at.strftime("%Y-%m-%d")
    time = consultation.created_at.strftime("%H:%M:%S")
    hexagram = consultation.hexagram
    changing = ""
    if hexagram.changing_lines:
        changing = " with changing lines: " + ", ".join(str(p) for p in hexagram.changing_lines)
    return (
        f'{date} {time}: "{consultation.question}" - '
        f"Hexagram {hexagram.number} ({hexagram.name}){changing}"
    )
