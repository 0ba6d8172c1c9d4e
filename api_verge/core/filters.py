"""
Filter expression building for the platform API.

Structured selection criteria are rendered into the textual grammar accepted by the
`filter` query parameter: `field op 'value'` terms composed with `and` / `or`.
"""

from dataclasses import dataclass
from datetime import datetime
from fnmatch import fnmatchcase
from typing import Iterable, Union

from .utils import to_epoch

OPERATORS = ("eq", "ct", "ge", "le", "lt", "gt")
WILDCARDS = ("*", "?")


@dataclass(frozen=True)
class ExactMatch:
    field: str
    value: str


@dataclass(frozen=True)
class Contains:
    field: str
    substring: str


@dataclass(frozen=True)
class Comparison:
    field: str
    operator: str
    value: str | int | float | bool | datetime

    def __post_init__(self):
        if self.operator not in OPERATORS:
            raise ValueError(
                f"operator '{self.operator}' is not among the allowed operators: {OPERATORS}"
            )


@dataclass(frozen=True)
class BooleanGroup:
    operator: str
    children: tuple = ()

    def __post_init__(self):
        if isinstance(self.operator, str):
            object.__setattr__(self, "operator", self.operator.lower())
        if self.operator not in ("and", "or"):
            raise ValueError(f"boolean operator must be 'and' or 'or', got '{self.operator}'")
        # lists are accepted for convenience but the group stays hashable
        object.__setattr__(self, "children", tuple(self.children))


FilterCriterion = Union[ExactMatch, Contains, Comparison, BooleanGroup]


def format_value(value) -> str:
    """Format a comparison value: strings are quoted, everything else is bare."""
    # bool is a subclass of int, it has to be checked first
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, datetime):
        return str(to_epoch(value))
    return f"'{value}'"


def render(criterion: FilterCriterion) -> str:
    """
    Render one criterion into the filter grammar.

    Args:
        criterion: The criterion to render

    Returns:
        The filter text, empty when the criterion contributes nothing (empty group)
    """
    if isinstance(criterion, ExactMatch):
        return f"{criterion.field} eq '{criterion.value}'"
    elif isinstance(criterion, Contains):
        return f"{criterion.field} ct '{criterion.substring}'"
    elif isinstance(criterion, Comparison):
        return f"{criterion.field} {criterion.operator} {format_value(criterion.value)}"
    elif isinstance(criterion, BooleanGroup):
        parts = [part for part in (render(child) for child in criterion.children) if part]
        if not parts:
            return ""
        joined = f" {criterion.operator} ".join(parts)
        if criterion.operator == "or" and len(parts) > 1:
            return f"({joined})"
        return joined
    raise TypeError(f"cannot render filter criterion of type {type(criterion).__name__}")


def render_filter(criteria: Iterable[FilterCriterion | None]) -> str | None:
    """Compose independent criteria with `and`, returns None when there is nothing to filter on."""
    rendered = render(BooleanGroup("and", [c for c in criteria if c is not None]))
    return rendered or None


def has_wildcard(pattern: str) -> bool:
    return any(char in pattern for char in WILDCARDS)


def name_criterion(pattern: str | None, field: str = "name") -> FilterCriterion | None:
    """
    Build the criterion matching a user supplied name, which may contain wildcards.

    The server has no glob operator: wildcard characters are stripped and the remainder
    is sent as a `ct` (contains) term. This over-matches, callers that need glob
    semantics re-filter the records with `filter_wildcard`.
    A pattern made only of wildcards yields no criterion at all.
    """
    if not pattern:
        return None
    if not has_wildcard(pattern):
        return ExactMatch(field, pattern)
    stripped = pattern
    for char in WILDCARDS:
        stripped = stripped.replace(char, "")
    if not stripped:
        return None
    return Contains(field, stripped)


def filter_wildcard(records: list[dict], pattern: str | None, field: str = "name") -> list[dict]:
    """Client-side glob filtering of records already narrowed down by a `ct` query."""
    if not pattern or not has_wildcard(pattern):
        return records
    return [r for r in records if fnmatchcase(str(r.get(field, "")), pattern)]
