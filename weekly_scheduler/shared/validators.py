"""Shared validation utilities for times and dates"""

import re
from datetime import date, datetime
from typing import Union

TIME_PATTERN = re.compile(r"^([01]?[0-9]|2[0-3]):([0-5][0-9])$")
DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def normalize_time(value: str) -> str:
    """
    Validate and zero-pad a 24-hour time string.

    Args:
        value: Time string such as "9:05" or "09:05"

    Returns:
        Zero-padded "HH:MM" string

    Raises:
        ValueError: If the value is not a valid 24-hour time
    """
    if not isinstance(value, str):
        raise ValueError("Time must be a string in HH:MM format")

    match = TIME_PATTERN.match(value.strip())
    if not match:
        raise ValueError(f"Invalid time format: {value!r}. Use HH:MM format.")

    hours, minutes = match.groups()
    return f"{int(hours):02d}:{minutes}"


def parse_date(value: Union[str, date]) -> date:
    """
    Parse a YYYY-MM-DD string into a date.

    Args:
        value: ISO date string or a date object

    Returns:
        The calendar date

    Raises:
        ValueError: If the string is malformed or names a date that does not exist
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not DATE_PATTERN.match(value.strip()):
        raise ValueError(f"Invalid date format: {value!r}. Use YYYY-MM-DD format.")

    try:
        return date.fromisoformat(value.strip())
    except ValueError:
        raise ValueError(f"Invalid calendar date: {value!r}")


def sunday_based_weekday(day: date) -> int:
    """Day of week with 0 = Sunday ... 6 = Saturday"""
    return (day.weekday() + 1) % 7

