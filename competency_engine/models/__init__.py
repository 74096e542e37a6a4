"""
Models Package - Competency Engine
competency_engine/models/__init__.py

pydantic input records (validated and coerced at the boundary) and enums.
"""

from competency_engine.models.curriculum import Competency, Criterion, SubCompetency
from competency_engine.models.enumerations import (
    Course,
    EvidenceConfidence,
    GradeKey,
    Trend,
    XadeCode,
    XadeColumn,
)
from competency_engine.models.evaluation import (
    CompetencyLink,
    CriterionEvaluation,
    EvidenceNote,
    LinkedEvaluation,
    SituationEvaluation,
    TaskEvaluation,
    TriangulationObservation,
)
from competency_engine.models.roster import Classroom, Student

__all__ = [
    # Curriculum
    "Competency",
    "Criterion",
    "SubCompetency",
    # Enumerations
    "Course",
    "EvidenceConfidence",
    "GradeKey",
    "Trend",
    "XadeCode",
    "XadeColumn",
    # Evaluations
    "CompetencyLink",
    "CriterionEvaluation",
    "EvidenceNote",
    "LinkedEvaluation",
    "SituationEvaluation",
    "TaskEvaluation",
    "TriangulationObservation",
    # Roster
    "Classroom",
    "Student",
]
