import datetime
import decimal
import logging
import math
import numbers
from dataclasses import dataclass

from scorecard.constants import PCT_MULTIPLIER
from scorecard.quarters import quarter_weeks
from scorecard.week_utility import current_week_key, parse_week_key, to_date

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuarterProgress:
    current_week: int
    total_weeks: int
    percent_complete: int


def _numeric(value):
    """Returns the value as a float when it is a real, finite number, otherwise 0."""
    if isinstance(value, decimal.Decimal):
        return float(value) if value.is_finite() else 0.0
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        return 0.0
    value = float(value)
    return value if math.isfinite(value) else 0.0


def sum_field(snapshots, field_name):
    """
    Sums one metric field across snapshots.

    A missing snapshot, a missing or None field, or a value that is not a
    number (booleans and numeric strings included) contributes zero. The sum
    is exact, so the result does not depend on the order of the snapshots.

    Args:
        snapshots (iterable): WeeklyMetricSnapshot objects, possibly containing None.
        field_name (str): Snapshot attribute to sum, e.g. 'revenue_actual'.

    Returns:
        float: The total, 0 for an empty collection.
    """
    return math.fsum(_numeric(getattr(s, field_name, None)) for s in snapshots if s is not None)


def sum_kpi(snapshots, kpi_id):
    return math.fsum(_numeric((s.kpi_actuals or {}).get(kpi_id)) for s in snapshots if s is not None)


def quarter_snapshots(quarter, snapshot_index, week_convention):
    """Snapshots found for the nominal weeks of a quarter, skipping weeks without one."""
    return [s for s in snapshot_index.resolve(quarter_weeks(quarter, week_convention)) if s is not None]


def percent_of(part, whole):
    if whole == 0:
        return 0
    # round half up, builtin round() rounds half to even
    return int(math.floor(part / whole * PCT_MULTIPLIER + 0.5))


def quarter_progress(quarter, week_convention, today=None):
    """
    How far through a quarter today is, counted in weeks.

    Completed weeks are the quarter's week keys on or before today's week key.

    Args:
        quarter (QuarterDescriptor): The quarter, normally the current one.
        week_convention (str): 'ending' or 'beginning'.
        today (datetime.date, optional): Defaults to the current local date.

    Returns:
        QuarterProgress: Elapsed weeks, total weeks and the rounded percentage.
    """
    today = to_date(today or datetime.date.today())
    week_keys = quarter_weeks(quarter, week_convention)
    today_key = parse_week_key(current_week_key(week_convention, today))

    completed = len([k for k in week_keys if parse_week_key(k) <= today_key])
    progress = QuarterProgress(current_week=completed, total_weeks=len(week_keys),
                               percent_complete=percent_of(completed, len(week_keys)))
    logger.debug(f"Progress for {quarter.id}: {progress}")
    return progress
