"""
scoring/triangulation.py

Competency averages from triangulation observations: one grade key per
(student, competency, project). Each key is converted with the injected
grade scale and averaged without weights across all projects.

The final grade reuses CompetencyLinkAggregator.final_score so both paths
share one weighting policy.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from competency_engine.models.curriculum import Competency
from competency_engine.models.enumerations import GradeKey
from competency_engine.models.evaluation import TriangulationObservation
from competency_engine.models.roster import Student
from competency_engine.scoring.competency_aggregator import CompetencyLinkAggregator, FinalScore
from competency_engine.scoring.grade_scale import GradeScale
from competency_engine.scoring.utils import quantize_score

logger = logging.getLogger(__name__)


@dataclass
class TriangulationAverage:
    """Unweighted mean of a student's grade keys for one competency."""
    student_id: str
    competencia_id: str
    average: Decimal        # 0 when there are no observations
    grade: GradeKey
    observation_count: int
    exact_average: Decimal = field(default=Decimal("0"), repr=False, compare=False)


class TriangulationAggregator:
    """Average triangulation grade keys per student and competency."""

    def __init__(self, grade_scale: GradeScale):
        self.grade_scale = grade_scale
        self._final = CompetencyLinkAggregator(grade_scale)

    def competency_averages(
        self,
        students: Sequence[Student],
        competencies: Sequence[Competency],
        observations: Iterable[TriangulationObservation],
    ) -> Dict[str, Dict[str, TriangulationAverage]]:
        """
        Every (student, competency) pair of the roster, with or without evidence.

        Returns:
            student_id → competencia_id → TriangulationAverage.
        """
        values: Dict[str, Dict[str, List[Decimal]]] = {}
        for obs in observations:
            if not obs.student_id or not obs.competencia_id:
                continue
            values.setdefault(obs.student_id, {}).setdefault(obs.competencia_id, []).append(
                self.grade_scale.value_of(obs.grade_key)
            )

        out: Dict[str, Dict[str, TriangulationAverage]] = {}
        for student in students:
            by_comp = values.get(student.id, {})
            row: Dict[str, TriangulationAverage] = {}
            for comp in competencies:
                comp_values = by_comp.get(comp.id, [])
                avg = self.grade_scale.average(comp_values)
                row[comp.id] = TriangulationAverage(
                    student_id=student.id,
                    competencia_id=comp.id,
                    average=quantize_score(avg),
                    grade=self.grade_scale.classify(avg),
                    observation_count=len(comp_values),
                    exact_average=avg,
                )
            out[student.id] = row

        logger.debug(
            "triangulation_averages_computed",
            extra={"students": len(out), "competencies": len(competencies)},
        )
        return out

    def final_scores(
        self,
        students: Sequence[Student],
        competencies: Sequence[Competency],
        observations: Iterable[TriangulationObservation],
        averages: Optional[Dict[str, Dict[str, TriangulationAverage]]] = None,
    ) -> Dict[str, FinalScore]:
        """Final grade per student; only competencies with observations take part."""
        averages = averages or self.competency_averages(students, competencies, observations)
        return {
            student.id: self._final.final_score(
                student.id,
                {
                    cid: ta.exact_average
                    for cid, ta in averages.get(student.id, {}).items()
                    if ta.observation_count > 0
                },
                competencies,
            )
            for student in students
        }
