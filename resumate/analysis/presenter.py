"""Read-path helpers for feedback values already sitting in the record store.

Stored feedback has taken several shapes over time: a JSON object, a JSON
string of that object (sometimes encoded twice), the report wrapped in a
``summary`` field holding fenced JSON text, and values cut short by the
storage size cap. ``present`` accepts all of them and returns ``None`` when
nothing report-shaped can be recovered, in which case callers show the raw value.
"""
from __future__ import annotations

import json
import logging
from typing import Any

from resumate.analysis.legacy import has_report_keys, unwrap_summary
from resumate.analysis.validator import coerce_report
from resumate.schemas.feedback import FeedbackReport, FeedbackSection

logger = logging.getLogger(__name__)

_SECTION_SENTENCES = (
    ("ATS", "From an ATS (Applicant Tracking System) perspective, it scored {score}/100."),
    ("toneAndStyle", "In terms of tone and style, your resume scored {score}/100."),
    ("content", "Looking at content, the score is {score}/100."),
    ("structure", "On structure, the score is {score}/100."),
    ("skills", "For skills, the score is {score}/100."),
)


def _parse_stored_string(value: str) -> Any:
    parsed: Any = json.loads(value)
    if isinstance(parsed, str):
        parsed = json.loads(parsed)
    return parsed


def present(stored_value: Any) -> FeedbackReport | None:
    if stored_value is None:
        return None
    if isinstance(stored_value, FeedbackReport):
        return stored_value

    candidate = stored_value
    if isinstance(candidate, (str, bytes)):
        try:
            candidate = _parse_stored_string(candidate)
        except (ValueError, RecursionError):
            logger.info("present_unparsable length=%s", len(stored_value))
            return None

    try:
        candidate = unwrap_summary(candidate)
    except ValueError:
        logger.info("present_unparsable_summary")
        return None

    if not has_report_keys(candidate):
        return None
    report, _ = coerce_report(candidate)
    return report


def tips_to_paragraph(section: FeedbackSection) -> str:
    sentences = []
    for tip in section.tips:
        sentence = tip.tip
        if tip.explanation:
            sentence = f"{sentence} {tip.explanation}"
        sentences.append(sentence)
    return " ".join(sentences)


def render_narrative(report: FeedbackReport) -> str:
    paragraphs = [f"Your resume received an overall score of {report.overall_score}/100."]
    for key, template in _SECTION_SENTENCES:
        section = report.section(key)
        tips = tips_to_paragraph(section)
        lead = template.format(score=section.score)
        paragraphs.append(f"{lead} {tips}".strip())
    return "\n\n".join(paragraphs)


def raw_display(stored_value: Any) -> str | None:
    if stored_value is None:
        return None
    if isinstance(stored_value, str):
        return stored_value
    try:
        return json.dumps(stored_value, ensure_ascii=False, indent=2)
    except (TypeError, ValueError):
        return str(stored_value)
