"""Utility functions for the session layer."""

from astn_session.utils.dates import age_from_date_of_birth, age_on, parse_date, utc_now

__all__ = [
    "utc_now",
    "parse_date",
    "age_on",
    "age_from_date_of_birth",
]
