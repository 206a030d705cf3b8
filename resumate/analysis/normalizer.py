"""Turn a free-form model response into a string that should parse as JSON.

The model is asked for bare JSON but routinely wraps it in code fences or
prose, and long answers get cut off when the output token limit is reached.
``normalize`` strips the wrappers, slices out the outermost object and closes
any brackets left open at the tail. It never rewrites interior content.
"""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_FENCE_RE = re.compile(r"```[A-Za-z0-9_+\-]*[ \t]*\r?\n?")


class NoJsonFound(ValueError):
    """Raised when the text holds no opening brace at all."""


@dataclass(frozen=True)
class BracketBalance:
    open_braces: int = 0
    close_braces: int = 0
    open_brackets: int = 0
    close_brackets: int = 0

    @property
    def missing_braces(self) -> int:
        return max(0, self.open_braces - self.close_braces)

    @property
    def missing_brackets(self) -> int:
        return max(0, self.open_brackets - self.close_brackets)

    @property
    def balanced(self) -> bool:
        return self.open_braces == self.close_braces and self.open_brackets == self.close_brackets


def strip_fences(text: str) -> str:
    return _FENCE_RE.sub("", text or "")


def count_brackets(text: str) -> BracketBalance:
    open_braces = close_braces = open_brackets = close_brackets = 0
    for char in text:
        if char == "{":
            open_braces += 1
        elif char == "}":
            close_braces += 1
        elif char == "[":
            open_brackets += 1
        elif char == "]":
            close_brackets += 1
    return BracketBalance(open_braces, close_braces, open_brackets, close_brackets)


def repair_brackets(text: str) -> str:
    """Append the missing ``]`` then the missing ``}`` to ``text``."""
    balance = count_brackets(text)
    if balance.balanced:
        return text
    logger.warning(
        "normalizer_repair braces=%s/%s brackets=%s/%s",
        balance.open_braces,
        balance.close_braces,
        balance.open_brackets,
        balance.close_brackets,
    )
    return text + "]" * balance.missing_brackets + "}" * balance.missing_braces


def extract_json_span(text: str) -> str:
    first = text.find("{")
    if first == -1:
        raise NoJsonFound("No JSON object found in model response.")
    last = text.rfind("}")
    if last < first:
        # Output cut off before the first object ever closed.
        return text[first:]
    return text[first : last + 1]


def normalize(raw_text: str) -> str:
    cleaned = strip_fences((raw_text or "").strip()).strip()
    return repair_brackets(extract_json_span(cleaned))
