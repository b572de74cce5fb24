"""Date parsing for annotation records."""

import logging
from datetime import date, datetime
from typing import Optional

from .exceptions import DateParseFailure

logger = logging.getLogger(__name__)

# Month/day/year, numeric fields only, so the result does not depend on the
# process locale.
TIMESTAMP_PATTERN = "%m/%d/%Y"


def parse_date(value: str, pattern: str = TIMESTAMP_PATTERN) -> date:
    """Parse a date string with an explicit pattern.

    Parsing is strict: out-of-range months and days are rejected instead of
    rolled over into the next month or year.

    Args:
        value: Date text as written by the engine (e.g. ``01/02/2020``)
        pattern: ``strptime`` pattern to apply

    Returns:
        The parsed calendar date

    Raises:
        DateParseFailure: If the value does not match the pattern
    """
    try:
        return datetime.strptime(value, pattern).date()
    except ValueError as e:
        raise DateParseFailure(value, pattern, str(e)) from e


def parse_date_or_none(value: str, pattern: str = TIMESTAMP_PATTERN) -> Optional[date]:
    """Parse a date string, logging and returning None on failure."""
    try:
        return parse_date(value, pattern)
    except DateParseFailure as e:
        logger.warning(f"Skipping date: {e}")
        return None
