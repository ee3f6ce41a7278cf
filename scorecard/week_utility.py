import datetime

import pandas as pd

from scorecard.constants import (
    DAYS_PER_WEEK,
    FRIDAY,
    MONDAY,
    WEEK_CONVENTIONS,
    WEEK_ENDING,
    WEEK_FREQUENCY,
    WEEK_KEY_FORMAT,
)


def check_week_convention(convention):
    if convention not in WEEK_CONVENTIONS:
        raise ValueError(f"Unsupported week convention: {convention}. Expected one of {list(WEEK_CONVENTIONS)}")
    return convention


def to_date(value):
    """
    Reduce a date-like value to a plain calendar date.

    A datetime (including a pandas Timestamp) keeps its own local calendar
    components; no timezone conversion is applied, so 23:30 on a Thursday stays
    a Thursday whatever the offset attached to it.

    Args:
        value (datetime.date | datetime.datetime | str): The value to convert. Strings must be `YYYY-MM-DD`.

    Returns:
        datetime.date: The calendar date.
    """
    if isinstance(value, datetime.datetime):
        return value.date()
    if isinstance(value, datetime.date):
        return value
    if isinstance(value, str):
        return parse_week_key(value)
    raise TypeError(f"Expected a date, datetime or YYYY-MM-DD string but got {type(value).__name__}")


def format_week_key(d):
    d = to_date(d)
    # strftime('%Y') is not zero padded for years below 1000 on every platform
    return f"{d.year:04d}-{d.month:02d}-{d.day:02d}"


def parse_week_key(week_key):
    try:
        return datetime.datetime.strptime(week_key, WEEK_KEY_FORMAT).date()
    except (TypeError, ValueError):
        raise ValueError(f"Week key '{week_key}' is not a valid YYYY-MM-DD date")


def week_ending(d):
    """
    Returns the week key of the Friday on or after the given date.

    Args:
        d (datetime.date | datetime.datetime): Any calendar date.

    Returns:
        str: The Friday as `YYYY-MM-DD`; the date itself when it is already a Friday.
    """
    d = to_date(d)
    days_to_friday = (FRIDAY - d.isoweekday()) % DAYS_PER_WEEK
    return format_week_key(d + datetime.timedelta(days=days_to_friday))


def week_beginning(d):
    """
    Returns the week key of the Monday on or before the given date.

    Args:
        d (datetime.date | datetime.datetime): Any calendar date.

    Returns:
        str: The Monday as `YYYY-MM-DD`; the date itself when it is already a Monday.
    """
    d = to_date(d)
    days_since_monday = (d.isoweekday() - MONDAY) % DAYS_PER_WEEK
    return format_week_key(d - datetime.timedelta(days=days_since_monday))


def week_key_for(d, convention):
    if check_week_convention(convention) == WEEK_ENDING:
        return week_ending(d)
    return week_beginning(d)


def current_week_key(convention, today=None):
    return week_key_for(today or datetime.date.today(), convention)


def weeks_in_range(start, end, convention=WEEK_ENDING):
    """
    Lists every week key of the given convention that falls inside a date range.

    Fridays are listed for the "ending" convention and Mondays for "beginning".
    The anchored weekly frequency rolls the start forward to the first target
    weekday, so the sequence advances by exactly seven days from the first
    occurrence until it passes the end of the range.

    Args:
        start (datetime.date | datetime.datetime | str): First day of the range (inclusive).
        end (datetime.date | datetime.datetime | str): Last day of the range (inclusive).
        convention (str): 'ending' or 'beginning'.

    Returns:
        list: Ascending `YYYY-MM-DD` strings, empty if no target weekday is inside the range.

    Raises:
        ValueError: If the convention is not recognised.
    """
    frequency = WEEK_FREQUENCY[check_week_convention(convention)]
    start_date, end_date = to_date(start), to_date(end)

    if start_date > end_date:
        return []

    week_dates = pd.date_range(start=start_date, end=end_date, freq=frequency)
    return [format_week_key(week_date) for week_date in week_dates]


def is_past_week(week_key, convention, today=None):
    """
    Checks whether a week key lies strictly before the current week under a convention.

    Keys are compared as parsed dates, not as strings.
    """
    current_key = current_week_key(convention, today)
    return parse_week_key(week_key) < parse_week_key(current_key)


def is_future_week(week_key, convention, today=None):
    current_key = current_week_key(convention, today)
    return parse_week_key(week_key) > parse_week_key(current_key)

