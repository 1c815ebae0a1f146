"""Natural-language date parsing for the planner."""

from datetime import (
    date,
    datetime,
    timedelta,
)
from typing import (
    Optional,
    Tuple,
)

from pydantic import (
    BaseModel,
    Field,
)

from mealbrain.core.schema import (
    ErrorType,
    ToolContext,
    ToolResult,
)
from mealbrain.tools import register_tool
from mealbrain.tools.fields import IsoDate

# Sunday-first, matching how weeks start in the planner
DAY_NAMES = ("sunday", "monday", "tuesday", "wednesday", "thursday", "friday", "saturday")

_YEARLESS_FORMATS = ("%b %d", "%B %d", "%m/%d")
_FULL_FORMATS = ("%Y-%m-%d", "%b %d %Y", "%B %d %Y", "%b %d, %Y", "%B %d, %Y", "%m/%d/%Y")


class ParseDateInput(BaseModel):
    """A date phrase, optionally relative to a reference date other than today."""

    date_expression: str = Field(
        ...,
        min_length=1,
        description='Natural language date like "Monday", "tomorrow", "next week", "Jan 15"',
    )
    reference_date: Optional[IsoDate] = Field(
        None, description="Date the expression is relative to (defaults to today)"
    )


def _day_index(day: date) -> int:
    """Day of week with Sunday as 0."""
    return (day.weekday() + 1) % 7


def _absolute(expression: str, today: date) -> Optional[date]:
    for fmt in _FULL_FORMATS:
        try:
            return datetime.strptime(expression, fmt).date()
        except ValueError:
            continue
    for fmt in _YEARLESS_FORMATS:
        try:
            parsed = datetime.strptime(f"{expression} {today.year}", f"{fmt} %Y")
        except ValueError:
            continue
        return parsed.date()
    return None


def resolve_date(expression: str, today: date) -> Tuple[date, str]:
    """
    Resolve *expression* relative to *today*.

    Returns the date together with a short interpretation.  Raises ``ValueError`` with a message
    fit for the user when the expression cannot be understood.
    """
    expression = " ".join(expression.lower().split())

    if expression == "today":
        return today, "today"
    if expression == "tomorrow":
        return today + timedelta(days=1), "tomorrow"
    if expression == "yesterday":
        return today - timedelta(days=1), "yesterday"

    if expression in DAY_NAMES:
        days_until = DAY_NAMES.index(expression) - _day_index(today)
        if days_until <= 0:
            days_until += 7
        interpretation = "tomorrow" if days_until == 1 else f"next {expression}"
        return today + timedelta(days=days_until), interpretation

    if expression == "this week":
        return today - timedelta(days=_day_index(today)), "start of this week (Sunday)"
    if expression == "next week":
        return today + timedelta(days=7 - _day_index(today)), "start of next week (Sunday)"

    modifier, _, day_name = expression.partition(" ")
    if modifier in ("this", "next"):
        if day_name not in DAY_NAMES:
            raise ValueError(f'Could not parse "{expression}". Unknown day name: {day_name}')
        days_until = DAY_NAMES.index(day_name) - _day_index(today)
        if modifier == "this":
            if days_until < 0:
                days_until += 7
        else:
            # the occurrence after the upcoming one, 7-13 days away
            if days_until <= 0:
                days_until += 7
            days_until += 7
        return today + timedelta(days=days_until), f"{modifier} {day_name}"

    parsed = _absolute(expression, today)
    if parsed is None:
        raise ValueError(
            f'Could not parse "{expression}". '
            'Try formats like: "Monday", "tomorrow", "Jan 15", or "2026-01-15"'
        )
    return parsed, "absolute date"


@register_tool(
    "date_parse",
    description=(
        "Convert a natural-language date ('tomorrow', 'Friday', 'next week', 'this Monday', "
        "'Jan 15') into an ISO date (YYYY-MM-DD). Always use this before planning meals for "
        "relative dates instead of guessing."
    ),
    input_model=ParseDateInput,
)
def parse_date(params: ParseDateInput, _context: ToolContext) -> ToolResult:
    """Parse a date phrase; unparseable phrases give ``PARSE_ERROR``."""
    today = date.fromisoformat(params.reference_date) if params.reference_date else date.today()
    try:
        target, interpretation = resolve_date(params.date_expression, today)
    except ValueError as exc:
        return ToolResult.fail(ErrorType.PARSE_ERROR, str(exc))
    return ToolResult.ok(
        {
            "date": target.isoformat(),
            "day_of_week": target.strftime("%A"),
            "interpretation": interpretation,
        }
    )
