# competency_engine/scoring/competency_aggregator.py
"""
Competency Link Aggregator
--------------------------
Fans task / situation / evidence-note evaluations out to per-competency
averages through their weighted links, then derives a per-student final score
and a quarter-over-quarter trend.

Share of one evaluation per link:
    total = Σ max(0, link.weight)
    total > 0   →  share = link.weight / total
    total ≤ 0   →  group links by distinct competencia_id, share = 1 / n_distinct

Shares for the same competency inside one evaluation are merged into a single
entry {value, weight: share, at}. The competency average is the weighted mean
of all its entries; shares from different evaluations are not renormalized.

Trend:
    delta = avg(current quarter) − avg(previous quarter)
    UP if delta > ε, DOWN if delta < −ε, else STABLE (ε = 0.25)
    Either quarter empty → STABLE.

Final score (per student):
    any configured competency weight → Σ avg × max(0, w)/100 / Σ max(0, w)/100
    otherwise, or when that total is 0 → equal-weight mean of the evaluated
    competencies.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

import structlog

from competency_engine.models.curriculum import Competency
from competency_engine.models.enumerations import GradeKey, Trend
from competency_engine.models.evaluation import EvidenceNote, LinkedEvaluation
from competency_engine.scoring.grade_scale import GradeScale
from competency_engine.scoring.utils import ONE, ZERO, quantize_score, to_decimal, weighted_mean

logger = structlog.get_logger(__name__)

DEFAULT_TREND_EPSILON = Decimal("0.25")

CompetencyResolver = Callable[[str], Optional[str]]
EvaluationLike = Union[LinkedEvaluation, EvidenceNote]


def quarter_key(at: datetime) -> str:
    """Calendar quarter bucket, e.g. '2025-Q3'."""
    quarter = (at.month - 1) // 3 + 1
    return f"{at.year}-Q{quarter}"


def previous_quarter_key(now: datetime) -> str:
    """Quarter before ``now``; Q1 rolls back to Q4 of the previous year."""
    quarter = (now.month - 1) // 3 + 1
    if quarter == 1:
        return f"{now.year - 1}-Q4"
    return f"{now.year}-Q{quarter - 1}"


def trend_from_delta(delta: Decimal, epsilon: Decimal = DEFAULT_TREND_EPSILON) -> Trend:
    if delta > epsilon:
        return Trend.UP
    if delta < -epsilon:
        return Trend.DOWN
    return Trend.STABLE


@dataclass
class CompetencyEntry:
    """One evaluation's contribution to one competency."""
    value: Decimal
    weight: Decimal   # normalized share within the evaluation, > 0
    at: datetime


@dataclass
class CompetencyScore:
    """Output of CompetencyLinkAggregator.compute() for one (student, competency)."""
    competencia_id: str
    average: Decimal
    weight_total: Decimal
    count: int
    latest_at: Optional[datetime]
    latest_value: Optional[Decimal]
    average_grade: GradeKey
    latest_grade: GradeKey
    trend: Trend
    current_quarter_average: Optional[Decimal]
    previous_quarter_average: Optional[Decimal]
    exact_average: Decimal = field(default=ZERO, repr=False, compare=False)   # unrounded, for grading


@dataclass
class FinalScore:
    """Weighted combination of a student's competency averages."""
    student_id: str
    score: Decimal
    grade: GradeKey
    competency_count: int    # evaluated competencies that entered the score
    weighted: bool           # False when the equal-weight mean was used


@dataclass
class _CompetencyBucket:
    entries: List[CompetencyEntry] = field(default_factory=list)
    by_quarter: Dict[str, List[CompetencyEntry]] = field(default_factory=dict)
    latest_at: Optional[datetime] = None
    latest_value: Optional[Decimal] = None


class CompetencyLinkAggregator:
    """Roll linked evaluations up to competency averages, final scores and trends."""

    def __init__(
        self,
        grade_scale: GradeScale,
        trend_epsilon: Union[float, Decimal] = DEFAULT_TREND_EPSILON,
    ):
        """
        Args:
            grade_scale: Scale used to classify averages and to derive a
                         numeric value from a rating when none was stored.
            trend_epsilon: Minimum quarter-over-quarter change reported as UP/DOWN.
        """
        self.grade_scale = grade_scale
        self.trend_epsilon = to_decimal(trend_epsilon, default=DEFAULT_TREND_EPSILON)

    # ------------------------------------------------------------------ #
    # Link distribution                                                    #
    # ------------------------------------------------------------------ #

    @staticmethod
    def distribute_shares(
        links: Sequence[Tuple[str, Decimal]],
    ) -> Dict[str, Decimal]:
        """
        Split one evaluation across its competencies.

        Args:
            links: (competencia_id, weight) pairs, ids already resolved.

        Returns:
            competencia_id → share; shares sum to 1 and are all > 0.
        """
        total = sum((max(ZERO, w) for _, w in links), ZERO)
        shares: Dict[str, Decimal] = {}

        if total > 0:
            for comp_id, w in links:
                if w <= 0:
                    continue
                shares[comp_id] = shares.get(comp_id, ZERO) + w / total
            return shares

        # Pass 1: distinct competencies. Pass 2: equal share per competency,
        # however many sub-competency links point at it.
        distinct: List[str] = []
        for comp_id, _ in links:
            if comp_id not in distinct:
                distinct.append(comp_id)
        if not distinct:
            return shares
        share = ONE / Decimal(len(distinct))
        for comp_id in distinct:
            shares[comp_id] = share
        return shares

    def _valid_links(
        self,
        ev: LinkedEvaluation,
        resolve_competencia_id: Optional[CompetencyResolver],
    ) -> List[Tuple[str, Decimal]]:
        links: List[Tuple[str, Decimal]] = []
        for link in ev.links:
            comp_id = link.competencia_id
            if comp_id and resolve_competencia_id is not None:
                comp_id = resolve_competencia_id(comp_id) or ""
            if not comp_id:
                continue
            links.append((comp_id, to_decimal(link.weight)))
        return links

    def _value_of(self, ev: LinkedEvaluation) -> Decimal:
        if ev.numeric_value is not None:
            return to_decimal(ev.numeric_value)
        return self.grade_scale.value_of(ev.rating)

    # ------------------------------------------------------------------ #
    # Competency scores                                                    #
    # ------------------------------------------------------------------ #

    def compute(
        self,
        evaluations: Iterable[EvaluationLike],
        now: Optional[datetime] = None,
        resolve_competencia_id: Optional[CompetencyResolver] = None,
    ) -> Dict[str, Dict[str, CompetencyScore]]:
        """
        Per (student, competency) scores.

        Args:
            evaluations: Task / situation evaluations and evidence notes.
            now: Reference time for the trend quarters (default: current UTC time).
            resolve_competencia_id: Optional mapping of raw link ids (codes,
                legacy ids) to canonical competency ids; None drops the link.

        Returns:
            student_id → competencia_id → CompetencyScore.
        """
        now = now or datetime.now(timezone.utc)
        current_q = quarter_key(now)
        previous_q = previous_quarter_key(now)

        buckets: Dict[str, Dict[str, _CompetencyBucket]] = {}
        processed = dropped = 0

        for raw in evaluations:
            ev = raw.as_linked_evaluation() if isinstance(raw, EvidenceNote) else raw
            if not ev.student_id:
                dropped += 1
                continue

            shares = self.distribute_shares(self._valid_links(ev, resolve_competencia_id))
            if not shares:
                dropped += 1
                continue
            processed += 1

            value = self._value_of(ev)
            qk = quarter_key(ev.timestamp)
            by_comp = buckets.setdefault(ev.student_id, {})

            for comp_id, share in shares.items():
                bucket = by_comp.setdefault(comp_id, _CompetencyBucket())
                entry = CompetencyEntry(value=value, weight=share, at=ev.timestamp)
                bucket.entries.append(entry)
                bucket.by_quarter.setdefault(qk, []).append(entry)
                if bucket.latest_at is None or ev.timestamp > bucket.latest_at:
                    bucket.latest_at = ev.timestamp
                    bucket.latest_value = value

        out: Dict[str, Dict[str, CompetencyScore]] = {}
        for student_id, by_comp in buckets.items():
            out[student_id] = {
                comp_id: self._score(comp_id, bucket, current_q, previous_q)
                for comp_id, bucket in by_comp.items()
            }

        logger.debug(
            "competency_scores_computed",
            processed=processed,
            dropped=dropped,
            students=len(out),
            current_quarter=current_q,
            previous_quarter=previous_q,
        )
        return out

    def _score(
        self,
        comp_id: str,
        bucket: _CompetencyBucket,
        current_q: str,
        previous_q: str,
    ) -> CompetencyScore:
        average = self._entries_mean(bucket.entries)
        current_entries = bucket.by_quarter.get(current_q, [])
        previous_entries = bucket.by_quarter.get(previous_q, [])
        current_avg = self._entries_mean(current_entries) if current_entries else None
        previous_avg = self._entries_mean(previous_entries) if previous_entries else None

        if current_avg is not None and previous_avg is not None:
            trend = trend_from_delta(current_avg - previous_avg, self.trend_epsilon)
        else:
            trend = Trend.STABLE

        latest_for_grade = bucket.latest_value if bucket.latest_value is not None else average

        # Grades and trend are decided on exact values; only the emitted numbers are rounded.
        return CompetencyScore(
            competencia_id=comp_id,
            average=quantize_score(average),
            weight_total=quantize_score(sum((e.weight for e in bucket.entries), ZERO)),
            count=len(bucket.entries),
            latest_at=bucket.latest_at,
            latest_value=bucket.latest_value,
            average_grade=self.grade_scale.classify(average),
            latest_grade=self.grade_scale.classify(latest_for_grade),
            trend=trend,
            current_quarter_average=quantize_score(current_avg) if current_avg is not None else None,
            previous_quarter_average=quantize_score(previous_avg) if previous_avg is not None else None,
            exact_average=average,
        )

    @staticmethod
    def _entries_mean(entries: Sequence[CompetencyEntry]) -> Decimal:
        return weighted_mean([e.value for e in entries], [e.weight for e in entries])

    # ------------------------------------------------------------------ #
    # Final score                                                          #
    # ------------------------------------------------------------------ #

    def final_score(
        self,
        student_id: str,
        competency_averages: Dict[str, Decimal],
        competencies: Optional[Sequence[Competency]] = None,
    ) -> FinalScore:
        """
        Combine one student's competency averages.

        Args:
            student_id: Student the averages belong to.
            competency_averages: competencia_id → average, evaluated competencies only.
            competencies: Configured competencies; their ``weight`` is a percentage.
        """
        configured = {c.id: c for c in (competencies or []) if c.id}
        has_weights = any(c.weight is not None for c in configured.values())

        if has_weights:
            values: List[Decimal] = []
            weights: List[Decimal] = []
            for comp_id, avg in competency_averages.items():
                comp = configured.get(comp_id)
                pct = to_decimal(comp.weight) if comp is not None and comp.weight is not None else ZERO
                values.append(avg)
                weights.append(max(ZERO, pct) / Decimal("100"))
            if sum(weights, ZERO) > 0:
                score = weighted_mean(values, weights)
                return FinalScore(
                    student_id=student_id,
                    score=quantize_score(score),
                    grade=self.grade_scale.classify(score),
                    competency_count=sum(1 for w in weights if w > 0),
                    weighted=True,
                )

        # No weights configured, or all zero: equal-weight mean.
        averages = list(competency_averages.values())
        score = weighted_mean(averages, [ONE] * len(averages))
        return FinalScore(
            student_id=student_id,
            score=quantize_score(score),
            grade=self.grade_scale.classify(score),
            competency_count=len(averages),
            weighted=False,
        )

    def final_scores(
        self,
        scores_by_student: Dict[str, Dict[str, CompetencyScore]],
        competencies: Optional[Sequence[Competency]] = None,
        student_ids: Optional[Iterable[str]] = None,
    ) -> Dict[str, FinalScore]:
        """
        Final score for every student in ``scores_by_student``, plus any
        ``student_ids`` without evaluations (scored 0).
        """
        ids = list(scores_by_student)
        for sid in student_ids or []:
            if sid not in scores_by_student:
                ids.append(sid)

        result = {
            sid: self.final_score(
                sid,
                {cid: cs.exact_average for cid, cs in scores_by_student.get(sid, {}).items()},
                competencies,
            )
            for sid in ids
        }

        logger.debug(
            "final_scores_computed",
            students=len(result),
            weighted=sum(1 for f in result.values() if f.weighted),
        )
        return result
