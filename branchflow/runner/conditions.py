"""
Edge condition evaluation

Decides whether a single edge's guard matches a respondent's answer.

Supported condition types:
- always               (unconditional / fallback)
- exact(value)         (equality; multi-select answers match if they contain value)
- contains(value)      (case-insensitive substring of a text answer)
- range(min, max)      (inclusive, number answers only)
- regex(pattern)       (re.search over a text answer)

Evaluation is pure and never raises for author input: a type mismatch or a
malformed regex pattern simply does not match.
"""

from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Optional

from ..graph_types import (
    AlwaysCondition,
    ContainsCondition,
    ExactMatchCondition,
    MultiSelectAnswer,
    NumberAnswer,
    NumericRangeCondition,
    RegexMatchCondition,
    TextAnswer,
)


logger = logging.getLogger(__name__)


@lru_cache(maxsize=256)
def _compile_pattern(pattern: str) -> Optional[re.Pattern]:
    try:
        return re.compile(pattern)
    except (re.error, OverflowError) as e:
        logger.warning("[conditions] Invalid regex pattern %r: %s", pattern, e)
        return None


def evaluate_condition(condition, answer) -> bool:
    """
    Evaluate an edge condition against an answer.

    Args:
        condition: One of the Condition variants (None is treated as always)
        answer: One of the UserAnswer variants

    Returns:
        True if the edge may be taken
    """
    if condition is None or isinstance(condition, AlwaysCondition):
        return True

    if isinstance(condition, ExactMatchCondition):
        expected = condition.value
        if isinstance(answer, TextAnswer):
            return isinstance(expected, str) and answer.value == expected
        if isinstance(answer, NumberAnswer):
            return not isinstance(expected, str) and answer.value == expected
        if isinstance(answer, MultiSelectAnswer):
            return isinstance(expected, str) and expected in answer.values
        return False

    if isinstance(condition, ContainsCondition):
        if isinstance(answer, TextAnswer):
            return condition.value.lower() in answer.value.lower()
        return False

    if isinstance(condition, NumericRangeCondition):
        if isinstance(answer, NumberAnswer):
            return condition.min <= answer.value <= condition.max
        return False

    if isinstance(condition, RegexMatchCondition):
        if isinstance(answer, TextAnswer) and condition.pattern:
            compiled = _compile_pattern(condition.pattern)
            return compiled is not None and compiled.search(answer.value) is not None
        return False

    return False


def describe_condition(condition) -> str:
    """Short human-readable rendering of a condition for issue messages."""
    if condition is None or isinstance(condition, AlwaysCondition):
        return "always"
    if isinstance(condition, ExactMatchCondition):
        return f"= {condition.value!r}"
    if isinstance(condition, ContainsCondition):
        return f"contains {condition.value!r}"
    if isinstance(condition, NumericRangeCondition):
        return f"{condition.min:g}..{condition.max:g}"
    if isinstance(condition, RegexMatchCondition):
        return f"matches /{condition.pattern}/"
    return type(condition).__name__
