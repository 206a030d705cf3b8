from __future__ import annotations

import json
from typing import Any

from resumate.analysis.normalizer import normalize, strip_fences

REPORT_KEYS = ("overallScore", "ATS", "toneAndStyle", "content")
WRAPPER_KEYS = ("summary", "feedback")


def has_report_keys(candidate: Any) -> bool:
    return isinstance(candidate, dict) and any(key in candidate for key in REPORT_KEYS)


def loads_lenient(text: str) -> Any:
    """Parse JSON that may carry fences, literal ``\\n`` escapes or escaped quotes."""
    cleaned = strip_fences(text or "").strip()
    attempts = [cleaned]
    unescaped = cleaned.replace("\\n", "").replace("\\r", "").strip()
    if unescaped != cleaned:
        attempts.append(unescaped)
    if '\\"' in unescaped:
        attempts.append(unescaped.replace('\\"', '"'))

    for attempt in attempts:
        try:
            return json.loads(attempt)
        except json.JSONDecodeError:
            continue
        except RecursionError as exc:
            raise ValueError("Embedded feedback is nested too deeply.") from exc
    try:
        return json.loads(normalize(attempts[-1]))
    except (ValueError, RecursionError) as exc:
        raise ValueError("Embedded feedback is not valid JSON.") from exc


def unwrap_summary(candidate: Any) -> Any:
    """Unwrap one level of ``{"summary": ...}`` (or ``{"feedback": ...}``) nesting.

    Raises ``ValueError`` when the wrapped value is a string that cannot be parsed.
    """
    if not isinstance(candidate, dict) or has_report_keys(candidate):
        return candidate
    for key in WRAPPER_KEYS:
        inner = candidate.get(key)
        if isinstance(inner, dict):
            return inner
        if isinstance(inner, str) and inner.strip():
            return loads_lenient(inner)
    return candidate
