"""Coerce parsed-but-untrusted model output into a complete ``FeedbackReport``.

``validate`` never raises. It returns a ``ValidatedReport`` when the model
produced something report-shaped (possibly with some sections filled from
defaults) and a ``DefaultedReport`` carrying the fixed fallback otherwise, so
callers can tell genuine output from a masked failure.
"""
from __future__ import annotations

import json
import logging
import math
from dataclasses import dataclass, field
from typing import Any, Union

from resumate.analysis.legacy import has_report_keys, unwrap_summary
from resumate.schemas.feedback import DEFAULT_SCORE, SECTION_KEYS, FeedbackReport, FeedbackSection, Tip

logger = logging.getLogger(__name__)

_TIP_MAX_CHARS = 500
_EXPLANATION_MAX_CHARS = 4000
_TIP_KINDS = {"good", "improve"}


@dataclass(frozen=True)
class ValidatedReport:
    report: FeedbackReport
    defaulted_sections: tuple[str, ...] = field(default_factory=tuple)
    defaulted: bool = field(default=False, init=False)


@dataclass(frozen=True)
class DefaultedReport:
    report: FeedbackReport
    reason: str
    defaulted: bool = field(default=True, init=False)


ValidationOutcome = Union[ValidatedReport, DefaultedReport]


def fallback_report() -> FeedbackReport:
    return FeedbackReport(
        overall_score=DEFAULT_SCORE,
        ats=FeedbackSection(
            score=DEFAULT_SCORE,
            tips=[Tip(kind="improve", tip="Analysis incomplete", explanation="Please try again")],
        ),
    )


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _coerce_score(value: Any) -> int | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, int):
        return max(0, min(100, value))
    if not math.isfinite(value):
        return None
    return max(0, min(100, round_half_up(value)))


def _coerce_tip(raw: Any, *, explanation_required: bool) -> Tip | None:
    if not isinstance(raw, dict):
        return None
    text = raw.get("tip")
    if not isinstance(text, str) or not text.strip():
        return None
    kind = raw.get("type", raw.get("kind"))
    if kind not in _TIP_KINDS:
        kind = "improve"
    explanation = raw.get("explanation")
    if not isinstance(explanation, str):
        explanation = "" if explanation_required else None
    return Tip(
        kind=kind,
        tip=text.strip()[:_TIP_MAX_CHARS],
        explanation=explanation.strip()[:_EXPLANATION_MAX_CHARS] if explanation is not None else None,
    )


def _coerce_section(key: str, raw: Any) -> FeedbackSection | None:
    if not isinstance(raw, dict):
        return None
    score = _coerce_score(raw.get("score"))
    if score is None:
        return None
    raw_tips = raw.get("tips")
    tips: list[Tip] = []
    if isinstance(raw_tips, list):
        for item in raw_tips:
            tip = _coerce_tip(item, explanation_required=key != "ATS")
            if tip is not None:
                tips.append(tip)
    return FeedbackSection(score=score, tips=tips)


def coerce_report(candidate: dict[str, Any]) -> tuple[FeedbackReport, tuple[str, ...]]:
    """Fill every section of ``candidate``; returns the report and the keys that were defaulted."""
    defaulted: list[str] = []
    sections: dict[str, FeedbackSection] = {}
    for key in SECTION_KEYS:
        section = _coerce_section(key, candidate.get(key))
        if section is None:
            defaulted.append(key)
            section = FeedbackSection()
        sections[key] = section

    overall = _coerce_score(candidate.get("overallScore"))
    if overall is None:
        defaulted.append("overallScore")
        overall = DEFAULT_SCORE

    report = FeedbackReport(
        overall_score=overall,
        ats=sections["ATS"],
        tone_and_style=sections["toneAndStyle"],
        content=sections["content"],
        structure=sections["structure"],
        skills=sections["skills"],
    )
    return report, tuple(defaulted)


def defaulted_report(reason: str) -> DefaultedReport:
    logger.warning("validation_defaulted reason=%s", reason)
    return DefaultedReport(report=fallback_report(), reason=reason)


def validate(candidate: Any) -> ValidationOutcome:
    if isinstance(candidate, FeedbackReport):
        return ValidatedReport(report=candidate)

    if isinstance(candidate, (str, bytes)):
        try:
            candidate = json.loads(candidate)
        except (ValueError, RecursionError):
            return defaulted_report("unparsable")

    try:
        candidate = unwrap_summary(candidate)
    except ValueError:
        return defaulted_report("unparsable_summary")

    if not has_report_keys(candidate):
        return defaulted_report("missing_report_keys")

    report, defaulted_sections = coerce_report(candidate)
    if defaulted_sections:
        logger.info("validation_sections_defaulted sections=%s", ",".join(defaulted_sections))
    return ValidatedReport(report=report, defaulted_sections=defaulted_sections)
