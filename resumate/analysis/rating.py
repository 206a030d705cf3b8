from __future__ import annotations

from resumate.analysis.validator import round_half_up
from resumate.schemas.feedback import DEFAULT_SCORE, SECTION_KEYS, FeedbackReport

MIN_RATING = 1
MAX_RATING = 10


def base_score(report: FeedbackReport) -> int:
    """Overall score, or the mean of the section scores when it holds the default sentinel.

    A model that genuinely answers 50 is indistinguishable from a missing
    score here, so that case is also recomputed from the sections.
    """
    if report.overall_score != DEFAULT_SCORE:
        return report.overall_score
    scores = [report.section(key).score for key in SECTION_KEYS]
    return round_half_up(sum(scores) / len(scores))


def reconcile(report: FeedbackReport) -> int:
    scaled = round_half_up(base_score(report) / 10)
    return max(MIN_RATING, min(MAX_RATING, scaled))
