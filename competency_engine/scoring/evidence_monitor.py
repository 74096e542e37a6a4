"""
scoring/evidence_monitor.py

Evidence status per (student, competency) from triangulation observations.

    confidence    = HIGH if recent ≥ 3, MEDIUM if recent ≥ 2, else LOW
                    (recent = observations within the last 45 days)
    needs_review  = the last 4 observations come from ≥ 2 teachers AND
                    their grade keys span ≥ 2 steps (e.g. RED and GREEN)
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Optional

from competency_engine.models.enumerations import EvidenceConfidence
from competency_engine.models.evaluation import TriangulationObservation
from competency_engine.scoring.grade_scale import GradeScale

logger = logging.getLogger(__name__)


@dataclass
class EvidenceStatus:
    """Output of EvidenceMonitor.evaluate() for one (student, competency)."""
    student_id: str
    competencia_id: str
    latest: TriangulationObservation
    total_count: int
    recent_count: int
    confidence: EvidenceConfidence
    needs_review: bool


class EvidenceMonitor:
    """Flag thin or contradictory evidence behind a competency grade."""

    HIGH_MIN_RECENT = 3
    MEDIUM_MIN_RECENT = 2
    DISAGREEMENT_SPAN = 2     # grade steps between min and max
    MIN_TEACHERS = 2

    def __init__(self, window_days: int = 45, disagree_last_n: int = 4):
        self.window = timedelta(days=window_days)
        self.disagree_last_n = disagree_last_n

    def confidence_for(self, recent_count: int) -> EvidenceConfidence:
        if recent_count >= self.HIGH_MIN_RECENT:
            return EvidenceConfidence.HIGH
        if recent_count >= self.MEDIUM_MIN_RECENT:
            return EvidenceConfidence.MEDIUM
        return EvidenceConfidence.LOW

    def needs_review(self, newest_first: List[TriangulationObservation]) -> bool:
        """Two or more teachers disagree by at least two grade steps lately."""
        last = newest_first[: self.disagree_last_n]
        teachers = {o.teacher_email for o in last if o.teacher_email}
        if len(teachers) < self.MIN_TEACHERS:
            return False
        orders = [GradeScale.order_of(o.grade_key) for o in last]
        return max(orders) - min(orders) >= self.DISAGREEMENT_SPAN

    def evaluate(
        self,
        observations: Iterable[TriangulationObservation],
        now: Optional[datetime] = None,
    ) -> Dict[str, Dict[str, EvidenceStatus]]:
        """
        Args:
            observations: Triangulation observations, any order.
            now: Reference time for the recency window (default: current UTC time).

        Returns:
            student_id → competencia_id → EvidenceStatus.
        """
        now = now or datetime.now(timezone.utc)
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        cutoff = now - self.window

        grouped: Dict[str, Dict[str, List[TriangulationObservation]]] = {}
        for obs in observations:
            if not obs.student_id or not obs.competencia_id:
                continue
            grouped.setdefault(obs.student_id, {}).setdefault(obs.competencia_id, []).append(obs)

        out: Dict[str, Dict[str, EvidenceStatus]] = {}
        flagged = 0
        for student_id, by_comp in grouped.items():
            row: Dict[str, EvidenceStatus] = {}
            for comp_id, items in by_comp.items():
                newest_first = sorted(items, key=lambda o: o.created_at, reverse=True)
                recent = sum(1 for o in newest_first if o.created_at >= cutoff)
                review = self.needs_review(newest_first)
                flagged += int(review)
                row[comp_id] = EvidenceStatus(
                    student_id=student_id,
                    competencia_id=comp_id,
                    latest=newest_first[0],
                    total_count=len(newest_first),
                    recent_count=recent,
                    confidence=self.confidence_for(recent),
                    needs_review=review,
                )
            out[student_id] = row

        logger.debug(
            "evidence_status_computed",
            extra={"students": len(out), "needs_review": flagged},
        )
        return out
