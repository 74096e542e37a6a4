from typing import Any, List, Optional

from pydantic import BaseModel, Field, field_validator

from competency_engine.models._coerce import clean_id, finite_float, normalize_code
from competency_engine.models.enumerations import Course


class Criterion(BaseModel):
    """
    Curriculum evaluation criterion for one course (5º or 6º).

    A criterion fans out to zero or more operative descriptor (DO) codes.
    """

    id: str = Field(..., description="Deterministic ID like 'CN.5.1.1'")

    course: Course = Field(..., description="Cohort the criterion belongs to (5 or 6)")

    area: str = Field(
        default="",
        description="Free-text curriculum area, e.g. 'Lingua Galega e Literatura'"
    )

    text: str = Field(default="", description="Criterion wording")

    descriptor_codes: List[str] = Field(
        default_factory=list,
        description="DO codes, normalized (trimmed, upper-cased, empties dropped)"
    )

    weight: Optional[float] = Field(
        default=None,
        description="Fallback weight for evaluations that carry none"
    )

    @field_validator("id", "area", "text", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> str:
        return clean_id(v)

    @field_validator("course", mode="before")
    @classmethod
    def coerce_course(cls, v: Any) -> Any:
        if isinstance(v, str) and v.strip().isdigit():
            return int(v.strip())
        return v

    @field_validator("descriptor_codes", mode="before")
    @classmethod
    def normalize_codes(cls, v: Any) -> List[str]:
        if v is None:
            return []
        if isinstance(v, str):
            v = [v]
        codes = [normalize_code(raw) for raw in v]
        return [c for c in codes if c]

    @field_validator("weight", mode="before")
    @classmethod
    def coerce_weight(cls, v: Any) -> Optional[float]:
        return finite_float(v)


class SubCompetency(BaseModel):
    id: str
    code: Optional[str] = None
    name: str = ""
    weight: Optional[float] = Field(default=None, description="Percentage (0-100) within its parent")


class Competency(BaseModel):
    """Key competency (e.g. CCL, STEM). ``weight`` is a percentage (0-100)."""

    id: str

    code: str = ""

    name: str = ""

    description: str = ""

    sub_competencies: List[SubCompetency] = Field(default_factory=list)

    weight: Optional[float] = Field(
        default=None,
        description="Percentage weight for the final grade; None means unweighted"
    )

    @field_validator("id", mode="before")
    @classmethod
    def strip_id(cls, v: Any) -> str:
        return clean_id(v)

    @field_validator("weight", mode="before")
    @classmethod
    def coerce_weight(cls, v: Any) -> Optional[float]:
        return finite_float(v)
