"""
scoring/ - Competency Scoring Engine

Modules:
    utils.py                  - Decimal utilities
    grade_scale.py            - RED/YELLOW/GREEN/BLUE ↔ numeric anchors
    accumulator.py            - Weighted accumulator + AggregationResult
    descriptor_aggregator.py  - Criterion → DO scores (plain and evolutive 5º/6º)
    competency_aggregator.py  - Linked evaluations → competency scores, trend, final score
    triangulation.py          - Triangulation grade keys → competency averages
    evidence_monitor.py       - Evidence confidence and teacher disagreement
    xade_transcoder.py        - Area averages → XADE codes and import table
    progress_service.py       - Settings-driven entry points for dashboard and export
"""
