"""
Evaluation records - input side of the aggregators.

Raw records from the data store are loosely shaped. Every coercion the
aggregators rely on happens here, once:
  - criterion scores clamped to [0, 4], numeric values to [0, 10]
  - non-finite weights become None (evaluation) or 0 (competency link)
  - identifiers trimmed, naive timestamps taken as UTC
"""

from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from competency_engine.models._coerce import (
    as_utc,
    clamp_float,
    clean_id,
    finite_float,
)
from competency_engine.models.enumerations import GradeKey

SCORE_MIN = 0.0
SCORE_MAX = 4.0
NUMERIC_MIN = 0.0
NUMERIC_MAX = 10.0
LINK_WEIGHT_MAX = 100.0


class CriterionEvaluation(BaseModel):
    """One judgment of one student against one curriculum criterion."""

    student_id: str = Field(..., description="Student identifier")

    criterion_id: str = Field(..., description="Criterion identifier (key of the criteria index)")

    score: float = Field(
        default=0.0,
        description="Achievement level 0-4, clamped at validation"
    )

    weight: Optional[float] = Field(
        default=None,
        description="Evaluation-level weight; overrides the criterion weight"
    )

    grade_key: Optional[GradeKey] = Field(
        default=None,
        description="UI mirror of the score"
    )

    teacher_email: Optional[str] = None

    at: datetime = Field(..., description="When the judgment was recorded")

    @field_validator("student_id", "criterion_id", mode="before")
    @classmethod
    def strip_ids(cls, v: Any) -> str:
        return clean_id(v)

    @field_validator("score", mode="before")
    @classmethod
    def clamp_score(cls, v: Any) -> float:
        return clamp_float(v, SCORE_MIN, SCORE_MAX)

    @field_validator("weight", mode="before")
    @classmethod
    def coerce_weight(cls, v: Any) -> Optional[float]:
        return finite_float(v)

    @field_validator("at")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class CompetencyLink(BaseModel):
    """Weighted link from a task or situation to a competency."""

    competencia_id: str = Field(..., description="Target competency")

    sub_competencia_id: Optional[str] = Field(
        default=None,
        description="Optional sub-competency, for precision only"
    )

    weight: float = Field(
        default=0.0,
        description="Manual weight 0-100, interpreted within the task"
    )

    @field_validator("competencia_id", mode="before")
    @classmethod
    def strip_id(cls, v: Any) -> str:
        return clean_id(v)

    @field_validator("weight", mode="before")
    @classmethod
    def clamp_weight(cls, v: Any) -> float:
        return clamp_float(v, 0.0, LINK_WEIGHT_MAX)


class LinkedEvaluation(BaseModel):
    """
    Base for judgments that fan out to competencies through weighted links.

    ``numeric_value`` may be omitted; the competency aggregator then derives
    it from ``rating`` with its own grade scale.
    """

    student_id: str

    target_id: str = Field(default="", description="Task or learning-situation ID")

    rating: GradeKey = GradeKey.YELLOW

    numeric_value: Optional[float] = Field(
        default=None,
        description="Numeric value 0-10; clamped at validation"
    )

    links: List[CompetencyLink] = Field(default_factory=list)

    observation: Optional[str] = None

    teacher_email: Optional[str] = None

    timestamp: datetime

    @field_validator("student_id", "target_id", mode="before")
    @classmethod
    def strip_ids(cls, v: Any) -> str:
        return clean_id(v)

    @field_validator("numeric_value", mode="before")
    @classmethod
    def clamp_numeric(cls, v: Any) -> Optional[float]:
        if finite_float(v) is None:
            return None
        return clamp_float(v, NUMERIC_MIN, NUMERIC_MAX)

    @field_validator("links", mode="before")
    @classmethod
    def drop_malformed_links(cls, v: Any) -> list:
        if not isinstance(v, (list, tuple)):
            return []
        return [link for link in v if isinstance(link, (dict, CompetencyLink))]

    @field_validator("timestamp")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return as_utc(v)


class TaskEvaluation(LinkedEvaluation):
    """Evaluation of a student on a learning task; links copied from the task."""

    learning_situation_id: str = ""


class SituationEvaluation(LinkedEvaluation):
    """
    Evaluation of a whole learning situation.

    Situations often carry only ``related_competency_ids``; those become
    zero-weight links so the evaluation splits equally across them.
    """

    related_competency_ids: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def links_from_related_ids(self):
        if not self.links and self.related_competency_ids:
            self.links = [
                CompetencyLink(competencia_id=cid, weight=0.0)
                for cid in self.related_competency_ids
            ]
        return self


class EvidenceNote(BaseModel):
    """Ad-hoc teacher note linked to one or more competencies."""

    student_id: str

    competencia_ids: List[str] = Field(default_factory=list)

    grade_key: GradeKey = GradeKey.YELLOW

    numeric_value: Optional[float] = None

    text: str = ""

    teacher_email: Optional[str] = None

    created_at: datetime

    @field_validator("student_id", mode="before")
    @classmethod
    def strip_id(cls, v: Any) -> str:
        return clean_id(v)

    @field_validator("competencia_ids", mode="before")
    @classmethod
    def distinct_ids(cls, v: Any) -> List[str]:
        if not isinstance(v, (list, tuple)):
            return []
        seen: List[str] = []
        for raw in v:
            cid = clean_id(raw)
            if cid and cid not in seen:
                seen.append(cid)
        return seen

    @field_validator("numeric_value", mode="before")
    @classmethod
    def clamp_numeric(cls, v: Any) -> Optional[float]:
        if finite_float(v) is None:
            return None
        return clamp_float(v, NUMERIC_MIN, NUMERIC_MAX)

    @field_validator("created_at")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return as_utc(v)

    def as_linked_evaluation(self) -> LinkedEvaluation:
        """Notes enter the competency path as zero-weight links."""
        return LinkedEvaluation(
            student_id=self.student_id,
            target_id="",
            rating=self.grade_key,
            numeric_value=self.numeric_value,
            links=[CompetencyLink(competencia_id=cid, weight=0.0) for cid in self.competencia_ids],
            observation=self.text,
            teacher_email=self.teacher_email,
            timestamp=self.created_at,
        )


class TriangulationObservation(BaseModel):
    """Grade key given to a student for one competency within a project."""

    student_id: str

    competencia_id: str

    grade_key: GradeKey

    project_id: Optional[str] = None

    teacher_email: Optional[str] = None

    created_at: datetime

    @field_validator("student_id", "competencia_id", mode="before")
    @classmethod
    def strip_ids(cls, v: Any) -> str:
        return clean_id(v)

    @field_validator("teacher_email", mode="before")
    @classmethod
    def normalize_email(cls, v: Any) -> Optional[str]:
        email = clean_id(v).lower()
        return email or None

    @field_validator("created_at")
    @classmethod
    def to_utc(cls, v: datetime) -> datetime:
        return as_utc(v)
