# tests/conftest.py

"""
Pytest Fixtures - Shared curriculum, roster and evaluation data

CURRICULUM REFERENCE:
- Criteria:     LC.5.1 / LC.6.1 (Lingua Galega, CCL1+CCL2), MAT.5.1 / MAT.6.1 (STEM1),
                CN.6.2 (Ciencias da Natureza, STEM2 + CD1), REL.5.1 (unmapped area)
- Competencies: CCL (40%), STEM (40%), CD (20%)
- Students:     s1 Ana García (list 1), s2 Brais López (list 2), s3 Carme Álvarez (list 2)
"""

from datetime import datetime, timezone

import pytest

from competency_engine.config import Settings
from competency_engine.models import (
    Classroom,
    Competency,
    CompetencyLink,
    Criterion,
    CriterionEvaluation,
    GradeKey,
    Student,
    TaskEvaluation,
)
from competency_engine.scoring.descriptor_aggregator import build_criteria_index
from competency_engine.scoring.grade_scale import (
    LEGACY_ANCHORS,
    TRIANGULATION_ANCHORS,
    GradeScale,
)


# =============================================================================
# SETTINGS / SCALES
# =============================================================================

@pytest.fixture
def settings():
    """Settings with defaults only (no .env lookup)."""
    return Settings(_env_file=None)


@pytest.fixture
def grade_scale():
    """Task/situation anchor table (3.5 / 5.5 / 7.5 / 9.5)."""
    return GradeScale(TRIANGULATION_ANCHORS)


@pytest.fixture
def legacy_scale():
    """Legacy anchor table (2.5 / 5.0 / 7.5 / 10.0)."""
    return GradeScale(LEGACY_ANCHORS)


@pytest.fixture
def now():
    """Reference time in 2025-Q2 (previous quarter: 2025-Q1)."""
    return datetime(2025, 5, 15, 12, 0, tzinfo=timezone.utc)


# =============================================================================
# CURRICULUM
# =============================================================================

@pytest.fixture
def criteria():
    return [
        Criterion(id="LC.5.1", course=5, area="Lingua Galega e Literatura",
                  descriptor_codes=["ccl1", " CCL2 "]),
        Criterion(id="LC.6.1", course=6, area="Lingua Galega e Literatura",
                  descriptor_codes=["CCL1"]),
        Criterion(id="MAT.5.1", course=5, area="Matemáticas", descriptor_codes=["STEM1"]),
        Criterion(id="MAT.6.1", course=6, area="Matemáticas", descriptor_codes=["STEM1"]),
        Criterion(id="CN.6.2", course=6, area="Ciencias da Natureza",
                  descriptor_codes=["STEM2", "CD1"], weight=2),
        Criterion(id="REL.5.1", course=5, area="Relixión", descriptor_codes=["CPSAA1"]),
    ]


@pytest.fixture
def criteria_index(criteria):
    return build_criteria_index(criteria)


@pytest.fixture
def competencies():
    return [
        Competency(id="CCL", code="CCL", name="Comunicación lingüística", weight=40),
        Competency(id="STEM", code="STEM", name="Matemática, ciencia e tecnoloxía", weight=40),
        Competency(id="CD", code="CD", name="Dixital", weight=20),
    ]


# =============================================================================
# ROSTER
# =============================================================================

@pytest.fixture
def classroom():
    return Classroom(id="c-6a", name="6º A", grade="6º Primaria")


@pytest.fixture
def students():
    return [
        Student(id="s2", nia="1002", first_name="Brais", last_name="López", list_number=2),
        Student(id="s1", nia="1001", first_name="Ana", last_name="García", list_number=1),
        Student(id="s3", nia="1003", first_name="Carme", last_name="Álvarez", list_number=2),
    ]


# =============================================================================
# RECORD BUILDERS
# =============================================================================

@pytest.fixture
def make_criterion_eval():
    def _make(student_id="s1", criterion_id="LC.5.1", score=3, weight=None,
              at=datetime(2025, 3, 1, tzinfo=timezone.utc)):
        return CriterionEvaluation(
            student_id=student_id,
            criterion_id=criterion_id,
            score=score,
            weight=weight,
            at=at,
        )
    return _make


@pytest.fixture
def make_task_eval():
    def _make(student_id="s1", value=7.5, links=(("CCL", 0),), rating=GradeKey.GREEN,
              timestamp=datetime(2025, 5, 2, tzinfo=timezone.utc), target_id="t1"):
        return TaskEvaluation(
            student_id=student_id,
            target_id=target_id,
            rating=rating,
            numeric_value=value,
            links=[CompetencyLink(competencia_id=cid, weight=w) for cid, w in links],
            timestamp=timestamp,
        )
    return _make
