# tests/test_progress_service.py
"""
ProgressReportService Tests - Settings wiring for dashboard and export
"""

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from competency_engine.config import Settings
from competency_engine.core.exceptions import InvalidExportConfigException
from competency_engine.models import CriterionEvaluation, GradeKey, TriangulationObservation
from competency_engine.scoring.grade_scale import LEGACY_ANCHORS
from competency_engine.scoring.progress_service import ProgressReportService

AT = datetime(2025, 3, 1, tzinfo=timezone.utc)


@pytest.fixture
def service(settings):
    return ProgressReportService(settings)


class TestWiring:

    def test_anchor_table_from_settings(self):
        svc = ProgressReportService(Settings(_env_file=None, GRADE_ANCHOR_TABLE="legacy"))
        assert svc.grade_scale.anchors == LEGACY_ANCHORS

    def test_course_weights_from_settings(self, criteria):
        svc = ProgressReportService(
            Settings(_env_file=None, COURSE_WEIGHT_5=1, COURSE_WEIGHT_6=1)
        )
        evals = [
            CriterionEvaluation(student_id="s1", criterion_id="MAT.5.1", score=2, at=AT),
            CriterionEvaluation(student_id="s1", criterion_id="MAT.6.1", score=4, at=AT),
        ]
        assert svc.descriptor_scores(evals, criteria)["s1"]["STEM1"].average == Decimal("3")
        # plain mode pools both courses
        assert svc.descriptor_scores(evals, criteria, evolutive=False)["s1"]["STEM1"].average == Decimal("3")

    def test_default_blend(self, service, criteria):
        evals = [
            CriterionEvaluation(student_id="s1", criterion_id="MAT.5.1", score=2, at=AT),
            CriterionEvaluation(student_id="s1", criterion_id="MAT.6.1", score=4, at=AT),
        ]
        assert service.descriptor_scores(evals, criteria)["s1"]["STEM1"].average == Decimal("3.2")

    def test_delimiter_from_settings(self, classroom, students, criteria):
        svc = ProgressReportService(Settings(_env_file=None, XADE_DELIMITER="\t"))
        export = svc.xade_export(classroom, students, criteria, [])
        assert export.text.startswith("NIA\tAlumno\tCurso")

    def test_invalid_delimiter_caught_by_transcoder(self, settings):
        # Settings validation runs on construction; assignment bypasses it
        settings.XADE_DELIMITER = '"'
        with pytest.raises(InvalidExportConfigException):
            ProgressReportService(settings)


class TestStudentDashboard:

    def test_dashboard(self, service, make_task_eval, competencies, now):
        evals = [
            make_task_eval(student_id="s1", value=9.5, links=(("CCL", 0),)),
            make_task_eval(student_id="s1", value=5.5, links=(("STEM", 0),)),
            make_task_eval(student_id="s2", value=0, links=(("CCL", 0),)),
        ]
        observations = [
            TriangulationObservation(
                student_id="s1", competencia_id="CCL", grade_key=GradeKey.RED,
                teacher_email="a@escola.gal", created_at=datetime(2025, 5, 1, tzinfo=timezone.utc),
            ),
            TriangulationObservation(
                student_id="s1", competencia_id="CCL", grade_key=GradeKey.BLUE,
                teacher_email="b@escola.gal", created_at=datetime(2025, 5, 2, tzinfo=timezone.utc),
            ),
        ]

        dash = service.student_dashboard("s1", evals, competencies, observations, now=now)

        assert dash["final_score"] == 7.5
        assert dash["final_grade"] == "GREEN"
        assert dash["final_label"] == "Notable"
        assert dash["weighted"] is True

        rows = {r["competencia_id"]: r for r in dash["competencies"]}
        assert set(rows) == {"CCL", "STEM"}
        assert rows["CCL"]["grade"] == "BLUE"
        assert rows["CCL"]["name"] == "Comunicación lingüística"
        assert rows["CCL"]["confidence"] == "medium"
        assert rows["CCL"]["needs_review"] is True
        assert rows["STEM"]["confidence"] is None
        assert rows["STEM"]["trend"] == "STABLE"

    def test_dashboard_without_evaluations(self, service, competencies, now):
        dash = service.student_dashboard("s1", [], competencies, now=now)
        assert dash["final_score"] == 0.0
        assert dash["final_grade"] == "RED"
        assert dash["competencies"] == []
