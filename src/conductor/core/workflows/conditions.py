"""Step conditions and prompt templating over a run blackboard."""

from __future__ import annotations

import json
import logging
import re
from typing import Any

logger = logging.getLogger(__name__)

_PLACEHOLDER = re.compile(r"\{\{([^}]+)\}\}")
_NUMBER = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


class _Missing:
    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def get_nested_value(data: dict[str, Any], path: str) -> Any:
    """Resolve a dotted *path* in *data*, returning :data:`MISSING` when absent."""
    current: Any = data
    for part in path.split("."):
        if not isinstance(current, dict) or part not in current:
            return MISSING
        current = current[part]
    return current


def _parse_literal(raw: str) -> Any:
    if len(raw) >= 2 and raw[0] == raw[-1] and raw[0] in ("'", '"'):
        return raw[1:-1]
    if raw == "true":
        return True
    if raw == "false":
        return False
    if not raw:
        return 0
    if _NUMBER.fullmatch(raw):
        return float(raw)
    return raw


def _strict_equals(left: Any, right: Any) -> bool:
    if left is MISSING:
        return False
    if isinstance(left, bool) or isinstance(right, bool):
        return isinstance(left, bool) and isinstance(right, bool) and left == right
    if isinstance(left, int | float) and isinstance(right, int | float):
        return left == right
    return type(left) is type(right) and left == right


def evaluate_condition(condition: str, blackboard: dict[str, Any]) -> bool:
    """Evaluate a step condition against *blackboard*.

    Supported forms::

        review.approved            # key exists
        status === 'done'          # strict equality
        attempts !== 3             # strict inequality

    A comparison that cannot be parsed evaluates to ``True``.
    """
    negate = "!==" in condition
    if not negate and "===" not in condition:
        return get_nested_value(blackboard, condition.strip()) is not MISSING

    parts = [p.strip() for p in condition.split("!==" if negate else "===")]
    if len(parts) != 2:
        logger.warning("Unparseable condition %r; running step", condition)
        return True

    left = get_nested_value(blackboard, parts[0])
    equal = _strict_equals(left, _parse_literal(parts[1]))
    return not equal if negate else equal


def interpolate_prompt(template: str, blackboard: dict[str, Any]) -> str:
    """Replace ``{{dotted.key}}`` placeholders with blackboard values.

    Missing keys are left verbatim; non-string values are JSON-encoded.
    """

    def _replace(match: re.Match[str]) -> str:
        value = get_nested_value(blackboard, match.group(1).strip())
        if value is MISSING:
            return match.group(0)
        return value if isinstance(value, str) else json.dumps(value, separators=(",", ":"))

    return _PLACEHOLDER.sub(_replace, template)
