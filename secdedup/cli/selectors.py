"""Batch selector parsing shared by the CLI commands."""

from datetime import date
from typing import Optional, Sequence

import pendulum

from ..models import Selection

ALL = "--all"
DATE = "--date"
RANGE = "--from/--to"
ARTICLE = "--article-id"


class SelectionError(ValueError):
    """Selector options are missing, conflicting or malformed."""


def parse_date(value: str, option: str = DATE) -> date:
    """Parse a YYYY-MM-DD option value."""
    try:
        parsed = pendulum.from_format(value, "YYYY-MM-DD")
    except ValueError as e:
        raise SelectionError(f"Invalid {option} value '{value}': expected YYYY-MM-DD") from e
    return parsed.date()


def build_selection(
    use_all: bool = False,
    on_date: Optional[str] = None,
    from_date: Optional[str] = None,
    to_date: Optional[str] = None,
    article_id: Optional[str] = None,
    allowed: Sequence[str] = (ALL, DATE, RANGE, ARTICLE),
) -> Selection:
    """
    Turn selector options into a validated selection.

    Exactly one selector must be given. ``--from`` and ``--to`` count as one
    selector and must be used together.

    Raises:
        SelectionError: On a missing, conflicting, incomplete or malformed selector
    """
    given = []
    if use_all:
        given.append(ALL)
    if on_date is not None:
        given.append(DATE)
    if from_date is not None or to_date is not None:
        given.append(RANGE)
    if article_id is not None:
        given.append(ARTICLE)

    not_supported = [option for option in given if option not in allowed]
    if not_supported:
        raise SelectionError(f"{not_supported[0]} is not supported by this command")
    if len(given) > 1:
        raise SelectionError(f"Cannot specify both {given[0]} and {given[1]}")
    if not given:
        raise SelectionError(f"Must specify one of: {', '.join(allowed)}")

    selector = given[0]
    if selector == ALL:
        return Selection.all()
    if selector == DATE:
        return Selection.for_date(parse_date(on_date, DATE))
    if selector == ARTICLE:
        if not article_id.strip():
            raise SelectionError("--article-id must not be empty")
        return Selection.for_article(article_id.strip())

    if from_date is None or to_date is None:
        raise SelectionError("--from and --to must be used together")
    start = parse_date(from_date, "--from")
    end = parse_date(to_date, "--to")
    if start > end:
        raise SelectionError(f"--from ({start}) must not be after --to ({end})")
    return Selection.for_range(start, end)
