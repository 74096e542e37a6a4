"""
Competency Engine

Scoring and aggregation of primary-school competency evaluations:
criterion → descriptor (DO) scores, linked task evaluations → competency
scores with trend and final grade, and the XADE grade export.
"""

__version__ = "1.0.0"
