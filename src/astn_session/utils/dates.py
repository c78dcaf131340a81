"""Date utility functions for the session layer."""

from datetime import date, datetime, timezone
from typing import Optional


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_date(date_str: str) -> date:
    """
    Parse a date string in ISO format (YYYY-MM-DD).

    Args:
        date_str: Date string in ISO format

    Returns:
        Date object
    """
    try:
        return datetime.strptime(date_str, "%Y-%m-%d").date()
    except (TypeError, ValueError) as err:
        raise ValueError(f"Invalid date format: {date_str}. Expected format: YYYY-MM-DD") from err


def age_on(birth_date: date, today: date) -> int:
    """Whole years elapsed between birth_date and today."""
    years = today.year - birth_date.year
    if (today.month, today.day) < (birth_date.month, birth_date.day):
        years -= 1
    return years


def age_from_date_of_birth(date_of_birth: str, now: datetime) -> Optional[int]:
    """
    Compute an age from a YYYY-MM-DD date of birth.

    Args:
        date_of_birth: Date of birth string
        now: Reference time

    Returns:
        Age in whole years, or None if the string can't be parsed or lies in the future
    """
    try:
        birth_date = parse_date(date_of_birth)
    except ValueError:
        return None
    age = age_on(birth_date, now.date())
    if age < 0:
        return None
    return age
