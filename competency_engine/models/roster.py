from typing import Any, Optional

from pydantic import BaseModel, Field, field_validator

from competency_engine.models._coerce import clean_id


class Classroom(BaseModel):
    id: str
    name: str = ""
    grade: str = Field(default="", description="Grade label, e.g. '5º A' or '6º'")


class Student(BaseModel):
    """Student as needed for dashboards and the XADE export."""

    id: str

    nia: Optional[str] = Field(
        default=None,
        description="Official XADE student identifier (NIA), if known"
    )

    first_name: str = ""

    last_name: str = ""

    classroom_id: str = ""

    list_number: int = Field(default=0, description="Position in the class list")

    level: Optional[int] = Field(default=None, description="5 or 6 in multi-grade groups")

    @field_validator("id", "first_name", "last_name", mode="before")
    @classmethod
    def strip_text(cls, v: Any) -> str:
        return clean_id(v)

    @field_validator("nia", mode="before")
    @classmethod
    def strip_nia(cls, v: Any) -> Optional[str]:
        return clean_id(v) or None

    @field_validator("list_number", mode="before")
    @classmethod
    def coerce_list_number(cls, v: Any) -> int:
        try:
            return int(float(v))
        except (TypeError, ValueError, OverflowError):
            return 0
