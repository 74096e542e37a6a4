"""
scoring/progress_service.py

Wires Settings into the calculators for the two consumers of the engine.

Dashboard path:
  1. CompetencyLinkAggregator → per-competency averages + trend
  2. CompetencyLinkAggregator.final_score → final grade
  3. EvidenceMonitor → confidence / needs-review flags (triangulation data)
  4. Build result dict

Export path:
  CriterionDescriptorAggregator → DO scores (evolutive when requested)
  XadeTranscoder → import table + unmapped areas

Nothing is cached here: every call recomputes from the records passed in.
"""

import logging
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence

from competency_engine.config import Settings, get_settings
from competency_engine.models.curriculum import Competency, Criterion
from competency_engine.models.evaluation import CriterionEvaluation, TriangulationObservation
from competency_engine.models.roster import Classroom, Student

logger = logging.getLogger(__name__)


class ProgressReportService:
    """Dashboard and export entry points built from one Settings object."""

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

        from competency_engine.scoring.competency_aggregator import CompetencyLinkAggregator
        from competency_engine.scoring.descriptor_aggregator import (
            CourseWeights,
            CriterionDescriptorAggregator,
        )
        from competency_engine.scoring.evidence_monitor import EvidenceMonitor
        from competency_engine.scoring.grade_scale import GradeScale
        from competency_engine.scoring.xade_transcoder import XadeTranscoder

        self.grade_scale = GradeScale.named(self.settings.GRADE_ANCHOR_TABLE)
        self.course_weights = CourseWeights.from_mapping(self.settings.course_weights)
        self.descriptor_aggregator = CriterionDescriptorAggregator()
        self.competency_aggregator = CompetencyLinkAggregator(
            self.grade_scale,
            trend_epsilon=self.settings.TREND_EPSILON,
        )
        self.evidence_monitor = EvidenceMonitor(
            window_days=self.settings.EVIDENCE_WINDOW_DAYS,
            disagree_last_n=self.settings.DISAGREE_LAST_N,
        )
        self.xade = XadeTranscoder(delimiter=self.settings.XADE_DELIMITER)

    # ------------------------------------------------------------------
    # Descriptor scores
    # ------------------------------------------------------------------

    def descriptor_scores(
        self,
        evaluations: Sequence[CriterionEvaluation],
        criteria: Iterable[Criterion],
        evolutive: bool = True,
    ):
        """DO scores per student; evolutive blend with the configured cohort weights."""
        from competency_engine.scoring.descriptor_aggregator import build_criteria_index

        index = build_criteria_index(criteria)
        if evolutive:
            return self.descriptor_aggregator.compute_do_scores_evolutive(
                evaluations, index, self.course_weights
            )
        return self.descriptor_aggregator.compute_do_scores(evaluations, index)

    # ------------------------------------------------------------------
    # Dashboard
    # ------------------------------------------------------------------

    def student_dashboard(
        self,
        student_id: str,
        evaluations: Iterable[Any],
        competencies: Sequence[Competency],
        observations: Iterable[TriangulationObservation] = (),
        now: Optional[datetime] = None,
    ) -> Dict[str, Any]:
        """
        Everything the student page shows, for one student.

        Args:
            student_id: Student to report on; other students' records are ignored.
            evaluations: Task / situation evaluations and evidence notes.
            competencies: Configured competencies (weights as percentages).
            observations: Triangulation observations for the evidence flags.
            now: Reference time for trend and recency.

        Returns:
            Dict with final_score, final_grade, weighted flag and one entry
            per evaluated competency.
        """
        own = [ev for ev in evaluations if ev.student_id == student_id]
        scores = self.competency_aggregator.compute(own, now=now).get(student_id, {})
        final = self.competency_aggregator.final_score(
            student_id,
            {cid: cs.exact_average for cid, cs in scores.items()},
            competencies,
        )
        status = self.evidence_monitor.evaluate(
            [o for o in observations if o.student_id == student_id],
            now=now,
        ).get(student_id, {})

        names = {c.id: c.name for c in competencies}
        rows: List[Dict[str, Any]] = []
        for comp_id, cs in scores.items():
            ev_status = status.get(comp_id)
            rows.append({
                "competencia_id": comp_id,
                "name": names.get(comp_id, ""),
                "average": float(cs.average),
                "grade": cs.average_grade.value,
                "label": self.grade_scale.label_of(cs.average_grade),
                "count": cs.count,
                "latest_at": cs.latest_at.isoformat() if cs.latest_at else None,
                "latest_grade": cs.latest_grade.value,
                "trend": cs.trend.value,
                "confidence": ev_status.confidence.value if ev_status else None,
                "needs_review": ev_status.needs_review if ev_status else False,
            })

        logger.info(
            "student_dashboard_built",
            extra={
                "student_id": student_id,
                "competencies": len(rows),
                "final_score": float(final.score),
            },
        )

        return {
            "student_id": student_id,
            "final_score": float(final.score),
            "final_grade": final.grade.value,
            "final_label": self.grade_scale.label_of(final.grade),
            "weighted": final.weighted,
            "competencies": rows,
        }

    # ------------------------------------------------------------------
    # Export
    # ------------------------------------------------------------------

    def xade_export(
        self,
        classroom: Classroom,
        students: Sequence[Student],
        criteria: Sequence[Criterion],
        evaluations: Sequence[CriterionEvaluation],
    ):
        """XADE import table for one classroom (see XadeTranscoder.generate)."""
        return self.xade.generate(classroom, students, criteria, evaluations)
