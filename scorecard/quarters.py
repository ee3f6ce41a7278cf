import calendar
import datetime
import logging
from dataclasses import dataclass
from functools import lru_cache

import fiscalyear

from scorecard.constants import (
    CALENDAR_YEAR,
    DEFAULT_FISCAL_START_MONTH,
    FISCAL_YEAR,
    VIEW_MODES,
    VIEW_QUARTER,
    YEAR_TYPES,
)
from scorecard.week_utility import to_date, weeks_in_range

logger = logging.getLogger(__name__)


def parse_month(month):
    """
    Converts a month given as a number or a name into its number.

    Args:
        month (int | str): 1-12, or a month name / three-letter abbreviation in any case ('JUL', 'July').

    Returns:
        int: The month number (1 = January).

    Raises:
        ValueError: If the value is not a recognisable month.
    """
    if isinstance(month, bool):
        raise ValueError(f"Invalid month: {month}")
    if isinstance(month, int):
        if 1 <= month <= 12:
            return month
        raise ValueError(f"Month number must be between 1 and 12 but got {month}")
    try:
        return datetime.datetime.strptime(str(month).strip()[:3].title(), '%b').month
    except ValueError:
        raise ValueError(f"Invalid month: {month}, expected a three letter month abbreviation such as JUL")


class FiscalCalendar:
    """
    The fiscal-year convention a business reports against.

    Attributes:
        year_type (str): 'CY' for a January-December calendar year, 'FY' for a fiscal year.
        start_month (int): Calendar month the fiscal year begins in (always 1 for 'CY').

    A fiscal year is named by the calendar year it ends in, so with a July start
    FY2026 runs from 1 July 2025 to 30 June 2026.
    """

    def __init__(self, year_type=CALENDAR_YEAR, start_month=None):
        if year_type not in YEAR_TYPES:
            raise ValueError(f"Unsupported fiscal year type: {year_type}. Expected one of {list(YEAR_TYPES)}")
        self.year_type = year_type

        if year_type == CALENDAR_YEAR:
            if start_month is not None and parse_month(start_month) != 1:
                raise ValueError(f"A calendar year always starts in January, got start month {start_month}")
            self.start_month = 1
        else:
            self.start_month = parse_month(start_month if start_month is not None else DEFAULT_FISCAL_START_MONTH)

    @property
    def start_year(self):
        # A January start means the fiscal and calendar years coincide.
        return 'same' if self.start_month == 1 else 'previous'

    def scope(self):
        return fiscalyear.fiscal_calendar(start_year=self.start_year, start_month=self.start_month, start_day=1)

    def __eq__(self, other):
        return isinstance(other, FiscalCalendar) and (self.year_type, self.start_month) == (
            other.year_type, other.start_month)

    def __hash__(self):
        return hash((self.year_type, self.start_month))

    def __repr__(self):
        return f"FiscalCalendar(year_type={self.year_type!r}, start_month={self.start_month})"


@dataclass(frozen=True)
class QuarterDescriptor:
    id: str
    number: int
    fiscal_year: int
    label: str
    months: str
    start_date: datetime.date
    end_date: datetime.date
    is_current: bool
    is_past: bool
    is_next: bool = False

    def contains(self, d):
        return self.start_date <= to_date(d) <= self.end_date


def quarter_id(fiscal_year_number, quarter_number):
    return f"{fiscal_year_number}-Q{quarter_number}"


def determine_reference_year(fiscal_calendar, today=None):
    """
    Determines which fiscal year today falls in.

    For a fiscal year beginning in month M (M > 1) the year rolls over to the
    next calendar year once today's month reaches M; a calendar year is simply
    today's year.

    Args:
        fiscal_calendar (FiscalCalendar): The fiscal-year convention.
        today (datetime.date, optional): Defaults to the current local date.

    Returns:
        int: The fiscal year number.
    """
    today = to_date(today or datetime.date.today())
    with fiscal_calendar.scope():
        return fiscalyear.FiscalDate(today.year, today.month, today.day).fiscal_year


def quarters_for(fiscal_calendar, reference_year=None, today=None):
    """
    Builds the five ordered quarter descriptors that drive the dashboard grid.

    The first four descriptors partition the requested fiscal year into
    contiguous quarters; the fifth is the quarter that immediately follows it
    (Q1 of the next fiscal year). Each is flagged as current when its range
    contains today and as past when it ended before today.

    Args:
        fiscal_calendar (FiscalCalendar): The fiscal-year convention.
        reference_year (int, optional): Fiscal year to describe. Defaults to the fiscal year containing today.
        today (datetime.date, optional): Defaults to the current local date.

    Returns:
        list: Five QuarterDescriptor objects in ascending order.
    """
    if not isinstance(fiscal_calendar, FiscalCalendar):
        raise TypeError(f"Expected a FiscalCalendar but got {type(fiscal_calendar).__name__}")
    today = to_date(today or datetime.date.today())
    if reference_year is None:
        reference_year = determine_reference_year(fiscal_calendar, today)
    return list(_build_quarters(fiscal_calendar, int(reference_year), today))


@lru_cache(maxsize=128)
def _build_quarters(fiscal_calendar, reference_year, today):
    with fiscal_calendar.scope():
        fiscal_year = fiscalyear.FiscalYear(reference_year)
        fiscal_quarters = [fiscal_year.q1, fiscal_year.q2, fiscal_year.q3, fiscal_year.q4]
        fiscal_quarters.append(fiscal_year.q4.next_fiscal_quarter)

        # FiscalQuarter boundaries depend on the active calendar, so read them inside the scope
        bounds = [
            (fq.fiscal_year, fq.fiscal_quarter, _as_date(fq.start), _as_date(fq.end))
            for fq in fiscal_quarters
        ]

    quarters = []
    for fy_number, quarter_number, start_date, end_date in bounds:
        quarters.append(dict(
            id=quarter_id(fy_number, quarter_number),
            number=quarter_number,
            fiscal_year=fy_number,
            label=f"Q{quarter_number} {fy_number}",
            months=f"{calendar.month_abbr[start_date.month]}-{calendar.month_abbr[end_date.month]}",
            start_date=start_date,
            end_date=end_date,
            is_current=start_date <= today <= end_date,
            is_past=end_date < today,
        ))

    current_index = next((i for i, q in enumerate(quarters) if q['is_current']), None)
    descriptors = tuple(
        QuarterDescriptor(**q, is_next=current_index is not None and i == current_index + 1)
        for i, q in enumerate(quarters)
    )
    logger.debug(f"Built quarters for {fiscal_calendar} reference year {reference_year}: "
                 f"{[q.id for q in descriptors]}")
    return descriptors


def _as_date(value):
    return datetime.date(value.year, value.month, value.day)


def current_quarter(quarters):
    return next((q for q in quarters if q.is_current), None)


def filter_for_view(quarters, view_mode):
    """
    Selects the quarters shown for a dashboard view mode.

    'quarter' shows only the current quarter; 'year' shows every past quarter
    plus the current one.
    """
    if view_mode not in VIEW_MODES:
        raise ValueError(f"Unsupported view mode: {view_mode}. Expected one of {list(VIEW_MODES)}")
    if view_mode == VIEW_QUARTER:
        return [q for q in quarters if q.is_current]
    return [q for q in quarters if q.is_past or q.is_current]


def quarter_weeks(quarter, convention):
    return weeks_in_range(quarter.start_date, quarter.end_date, convention)


def fiscal_year_label(fiscal_calendar, fiscal_year_number):
    prefix = 'FY' if fiscal_calendar.year_type == FISCAL_YEAR else 'CY'
    return f"{prefix}{fiscal_year_number}"
