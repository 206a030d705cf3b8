from .normalizer import NoJsonFound, normalize
from .presenter import present, render_narrative
from .prompts import prepare_instructions
from .rating import reconcile
from .validator import DefaultedReport, ValidatedReport, ValidationOutcome, fallback_report, validate

__all__ = [
    "NoJsonFound",
    "normalize",
    "validate",
    "ValidatedReport",
    "DefaultedReport",
    "ValidationOutcome",
    "fallback_report",
    "reconcile",
    "present",
    "render_narrative",
    "prepare_instructions",
]
