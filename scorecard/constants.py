# SPDX-License-Identifier: Apache-2.0
"""
Named constants for the weekly scorecard engine.

These constants replace magic numbers and strings throughout the codebase so the
time-windowing rules of the scorecard read as business rules rather than literals.
"""

# ---------------------------------------------------------------------------
# Week conventions
#
# A week key is the Friday a week ends on ("ending") or the Monday it begins
# on ("beginning").  Weekday numbers follow datetime.date.isoweekday().
# ---------------------------------------------------------------------------
WEEK_ENDING = 'ending'
WEEK_BEGINNING = 'beginning'
WEEK_CONVENTIONS = (WEEK_ENDING, WEEK_BEGINNING)

FRIDAY = 5
MONDAY = 1

# pandas anchored weekly offsets for each convention
WEEK_FREQUENCY = {WEEK_ENDING: 'W-FRI', WEEK_BEGINNING: 'W-MON'}

DAYS_PER_WEEK = 7
WEEK_KEY_FORMAT = '%Y-%m-%d'
CONFIG_DATE_FORMAT = '%d-%b-%Y'

# ---------------------------------------------------------------------------
# Fiscal calendar
# ---------------------------------------------------------------------------
CALENDAR_YEAR = 'CY'
FISCAL_YEAR = 'FY'
YEAR_TYPES = (CALENDAR_YEAR, FISCAL_YEAR)

DEFAULT_FISCAL_START_MONTH = 7  # a fiscal year ending 30 June
QUARTERS_PER_YEAR = 4

# ---------------------------------------------------------------------------
# Dashboard view modes
# ---------------------------------------------------------------------------
VIEW_QUARTER = 'quarter'
VIEW_YEAR = 'year'
VIEW_MODES = (VIEW_QUARTER, VIEW_YEAR)

# ---------------------------------------------------------------------------
# Display column types
# ---------------------------------------------------------------------------
COLUMN_QUARTER_COLLAPSED = 'quarter-collapsed'
COLUMN_QUARTER_HEADER = 'quarter-header'
COLUMN_WEEK = 'week'

# ---------------------------------------------------------------------------
# Trend classification
#
# ratio = actual / (target * percent_complete / 100) * 100
#
#   ratio >= 95  -> ahead
#   ratio >= 85  -> on-track
#   otherwise    -> behind
# ---------------------------------------------------------------------------
TREND_AHEAD = 'ahead'
TREND_ON_TRACK = 'on-track'
TREND_BEHIND = 'behind'
AHEAD_THRESHOLD_PCT = 95
ON_TRACK_THRESHOLD_PCT = 85
PCT_MULTIPLIER = 100

# ---------------------------------------------------------------------------
# Snapshot fields
#
# Built-in metric columns of a weekly snapshot, keyed by the metric id used in
# dashboard preferences.
# ---------------------------------------------------------------------------
METRIC_FIELDS = {
    'revenue': 'revenue_actual',
    'gross_profit': 'gross_profit_actual',
    'net_profit': 'net_profit_actual',
    'leads': 'leads_actual',
    'conversion_rate': 'conversion_rate_actual',
    'avg_transaction': 'avg_transaction_value_actual',
    'team_headcount': 'team_headcount_actual',
    'owner_hours': 'owner_hours_actual',
}

# Financial metrics are always shown; only core metrics can be toggled off.
FINANCIAL_METRIC_IDS = ('revenue', 'gross_profit', 'net_profit')
CORE_METRIC_IDS = ('leads', 'conversion_rate', 'avg_transaction', 'team_headcount', 'owner_hours')

KPI_COLUMN_PREFIX = 'kpi__'

# ---------------------------------------------------------------------------
# Repository defaults
# ---------------------------------------------------------------------------
RECENT_SNAPSHOT_LIMIT = 52  # one year of weekly rows
SNAPSHOT_TABLE = 'weekly_metrics_snapshots'
PREFERENCES_TABLE = 'dashboard_preferences'
