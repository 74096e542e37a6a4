# tests/test_property_based.py
"""
Property-Based Tests

Hypothesis tests with max_examples=200, covering:
  - GradeScale round trip and monotone classification
  - Descriptor aggregation invariants (non-positive weights, course-6-only blend)
  - Link share distribution and competency average bounds
  - XADE code monotonicity
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from hypothesis import given, settings
from hypothesis import strategies as st

from competency_engine.models import (
    CompetencyLink,
    Criterion,
    CriterionEvaluation,
    GradeKey,
    TaskEvaluation,
)
from competency_engine.scoring.competency_aggregator import CompetencyLinkAggregator
from competency_engine.scoring.descriptor_aggregator import (
    CourseWeights,
    CriterionDescriptorAggregator,
    build_criteria_index,
)
from competency_engine.scoring.grade_scale import (
    GRADE_ORDER,
    LEGACY_ANCHORS,
    TRIANGULATION_ANCHORS,
    GradeScale,
)
from competency_engine.scoring.xade_transcoder import conversion_xade

# ---------------------------------------------------------------------------
# Shared strategies
# ---------------------------------------------------------------------------

BASE = datetime(2025, 1, 1, tzinfo=timezone.utc)
NOW = datetime(2025, 6, 30, tzinfo=timezone.utc)

CRITERIA = build_criteria_index([
    Criterion(id="A.5.1", course=5, descriptor_codes=["CCL1", "STEM1"]),
    Criterion(id="A.6.1", course=6, descriptor_codes=["CCL1"]),
    Criterion(id="B.6.1", course=6, descriptor_codes=["STEM1", "CD1"], weight=2),
    Criterion(id="C.6.1", course=6, descriptor_codes=["CD1"]),
])
SIXTH_IDS = ["A.6.1", "B.6.1", "C.6.1"]

score_st = st.floats(min_value=0.0, max_value=4.0, allow_nan=False, allow_infinity=False)
value_st = st.floats(min_value=0.0, max_value=10.0, allow_nan=False, allow_infinity=False)
positive_weight_st = st.one_of(
    st.none(),
    st.floats(min_value=0.1, max_value=10.0, allow_nan=False, allow_infinity=False),
)
scale_st = st.sampled_from([GradeScale(TRIANGULATION_ANCHORS), GradeScale(LEGACY_ANCHORS)])


@st.composite
def criterion_eval_st(draw, criterion_ids=tuple(CRITERIA), weight=positive_weight_st):
    return CriterionEvaluation(
        student_id=draw(st.sampled_from(["s1", "s2"])),
        criterion_id=draw(st.sampled_from(list(criterion_ids))),
        score=draw(score_st),
        weight=draw(weight),
        at=BASE + timedelta(days=draw(st.integers(min_value=0, max_value=150))),
    )


@st.composite
def task_eval_st(draw):
    link_ids = draw(st.lists(st.sampled_from(["CCL", "STEM", "CD"]), min_size=1, max_size=4))
    return TaskEvaluation(
        student_id="s1",
        target_id="t",
        numeric_value=draw(value_st),
        links=[
            CompetencyLink(competencia_id=cid, weight=draw(st.integers(min_value=0, max_value=100)))
            for cid in link_ids
        ],
        timestamp=BASE + timedelta(days=draw(st.integers(min_value=0, max_value=170))),
    )


# ---------------------------------------------------------------------------
# Grade scale
# ---------------------------------------------------------------------------


class TestGradeScalePropertyBased:

    @given(scale_st, st.sampled_from(list(GradeKey)))
    @settings(max_examples=200)
    def test_anchor_round_trip(self, scale, key):
        """classify(value_of(k)) == k on both tables."""
        assert scale.classify(scale.value_of(key)) == key

    @given(scale_st, value_st, value_st)
    @settings(max_examples=200)
    def test_classify_monotone(self, scale, a, b):
        """A higher value never maps to a lower grade."""
        low, high = min(a, b), max(a, b)
        assert GRADE_ORDER.index(scale.classify(low)) <= GRADE_ORDER.index(scale.classify(high))


# ---------------------------------------------------------------------------
# Descriptor aggregation
# ---------------------------------------------------------------------------


class TestDescriptorPropertyBased:

    @given(
        st.lists(criterion_eval_st(), max_size=12),
        st.lists(
            criterion_eval_st(
                weight=st.floats(min_value=-5.0, max_value=0.0, allow_nan=False, allow_infinity=False)
            ),
            min_size=1,
            max_size=5,
        ),
    )
    @settings(max_examples=200)
    def test_non_positive_weights_change_nothing(self, evals, ignored):
        """Evaluations with weight ≤ 0 leave every DO score untouched."""
        agg = CriterionDescriptorAggregator()
        assert agg.compute_do_scores(evals + ignored, CRITERIA) == agg.compute_do_scores(evals, CRITERIA)
        assert (
            agg.compute_do_scores_evolutive(evals + ignored, CRITERIA)
            == agg.compute_do_scores_evolutive(evals, CRITERIA)
        )

    @given(
        st.lists(criterion_eval_st(criterion_ids=SIXTH_IDS), max_size=12),
        st.floats(min_value=0.0, max_value=5.0, allow_nan=False, allow_infinity=False),
        st.floats(min_value=0.0, max_value=5.0, allow_nan=False, allow_infinity=False),
    )
    @settings(max_examples=200)
    def test_sixth_course_only_matches_plain(self, evals, w5, w6):
        """Without 5º evidence the evolutive blend equals the plain average, whatever the cohort weights."""
        agg = CriterionDescriptorAggregator()
        weights = CourseWeights(course_5=w5, course_6=w6)
        assert (
            agg.compute_do_scores_evolutive(evals, CRITERIA, weights)
            == agg.compute_do_scores(evals, CRITERIA)
        )

    @given(st.lists(criterion_eval_st(), max_size=12))
    @settings(max_examples=200)
    def test_averages_stay_in_score_range(self, evals):
        agg = CriterionDescriptorAggregator()
        for by_do in agg.compute_do_scores_evolutive(evals, CRITERIA).values():
            for res in by_do.values():
                assert Decimal("0") <= res.average <= Decimal("4")
                assert res.weight_total > 0


# ---------------------------------------------------------------------------
# Competency aggregation
# ---------------------------------------------------------------------------


class TestCompetencyPropertyBased:

    @given(
        st.lists(
            st.tuples(
                st.sampled_from(["CCL", "STEM", "CD", "CPSAA"]),
                st.integers(min_value=0, max_value=100),
            ),
            min_size=1,
            max_size=8,
        )
    )
    @settings(max_examples=200)
    def test_shares_sum_to_one(self, links):
        shares = CompetencyLinkAggregator.distribute_shares(
            [(cid, Decimal(w)) for cid, w in links]
        )
        assert shares
        assert all(s > 0 for s in shares.values())
        assert abs(sum(shares.values()) - Decimal("1")) < Decimal("1e-20")

    @given(st.lists(task_eval_st(), min_size=1, max_size=10))
    @settings(max_examples=200)
    def test_average_between_min_and_max_value(self, evals):
        agg = CompetencyLinkAggregator(GradeScale(TRIANGULATION_ANCHORS))
        values = [Decimal(str(ev.numeric_value)) for ev in evals]
        lo, hi = min(values), max(values)
        for cs in agg.compute(evals, now=NOW)["s1"].values():
            assert lo - Decimal("0.0001") <= cs.average <= hi + Decimal("0.0001")


# ---------------------------------------------------------------------------
# XADE
# ---------------------------------------------------------------------------


class TestXadePropertyBased:

    @given(score_st, score_st)
    @settings(max_examples=200)
    def test_code_monotone(self, a, b):
        order = ["IN", "SU", "BI", "NT", "SB"]
        low, high = min(a, b), max(a, b)
        assert order.index(conversion_xade(low).value) <= order.index(conversion_xade(high).value)
