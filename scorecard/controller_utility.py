import datetime
import decimal
import logging
import traceback
from json import JSONEncoder

import requests
import yaml
from yaml import SafeLoader

from scorecard.aggregator import sum_field, sum_kpi
from scorecard.constants import (
    CALENDAR_YEAR,
    COLUMN_QUARTER_COLLAPSED,
    COLUMN_WEEK,
    CONFIG_DATE_FORMAT,
    QUARTERS_PER_YEAR,
    VIEW_YEAR,
    WEEK_ENDING,
)
from scorecard.dashboard import MetricTarget, ScorecardDashboard
from scorecard.quarters import FiscalCalendar, fiscal_year_label

logger = logging.getLogger(__name__)


class DashboardDeck:
    def __init__(self):
        self.title = ""
        self.businessId = ""
        self.fiscalYear = ""
        self.weekConvention = ""
        self.viewMode = ""
        self.currentWeekKey = ""
        self.pastWeeksUnlocked = False
        self.progress = {}
        self.quarters = []
        self.columns = []
        self.rows = []


class QuarterObject:
    def __init__(self):
        self.id = ""
        self.label = ""
        self.months = ""
        self.startDate = ""
        self.endDate = ""
        self.isCurrent = False
        self.isPast = False
        self.isNext = False


class ColumnObject:
    def __init__(self):
        self.type = ""
        self.quarterId = ""
        self.label = ""
        self.weekKey = None
        self.weekKeys = []
        self.isCurrentWeek = False
        self.isFirstWeekInQuarter = False
        self.editable = False


class RowObject:
    def __init__(self):
        self.metricId = ""
        self.label = ""
        self.field = ""
        self.isKpi = False
        self.annualTarget = 0
        self.quarterlyTarget = 0
        self.qtd = 0
        self.trend = ""
        self.rowData = []


class Encoder(JSONEncoder):
    def default(self, o):
        if isinstance(o, datetime.date):
            return o.isoformat()
        if isinstance(o, decimal.Decimal):
            return float(o)
        return o.__dict__


class SafeLineLoader(SafeLoader):
    def construct_mapping(self, node, deep=False):
        mapping = super(SafeLineLoader, self).construct_mapping(node, deep=deep)
        # Add 1 so line numbering starts at 1
        mapping['__line__'] = node.start_mark.line + 1
        return mapping


def _load_yaml(content):
    try:
        return yaml.load(content, SafeLineLoader)
    except yaml.YAMLError as e:
        logger.error(e, exc_info=True)
        error_message = traceback.format_exc().splitlines()[-1]
        raise Exception(f"Could not create the dashboard due to incorrect yaml, caused due to error in {error_message}")


def load_yaml_from_stream(config_file):
    content = config_file.read()
    if isinstance(content, bytes):
        content = content.decode("utf-8")
    return _load_yaml(content)


def load_yaml_from_url(url: str):
    # Retrieve the file content from the URL
    response = requests.get(url, allow_redirects=True)
    response.raise_for_status()
    return _load_yaml(response.content.decode("utf-8"))


def parse_config_date(value):
    return datetime.datetime.strptime(str(value), CONFIG_DATE_FORMAT).date()


def build_dashboard(cfg, repository, preferences_repository=None):
    """
    Creates a dashboard from a validated config.

    Args:
        cfg (dict): The dashboard YAML configuration.
        repository (SnapshotRepository): Store the snapshots are loaded from and saved to.
        preferences_repository (PreferencesRepository, optional): Store for the row visibility preferences.

    Returns:
        ScorecardDashboard: The dashboard, not yet loaded.
    """
    setup = cfg['setup']
    fiscal_calendar = FiscalCalendar(setup.get('fiscal_year_type', CALENDAR_YEAR),
                                      setup.get('fiscal_year_start_month'))

    targets = [
        MetricTarget(field_name, config.get('label', field_name), config['annual'])
        for field_name, config in (cfg.get('targets') or {}).items() if field_name != '__line__'
    ]
    kpi_targets = [
        MetricTarget(kpi_id, config.get('label', kpi_id), config.get('quarterly', 0) * QUARTERS_PER_YEAR)
        for kpi_id, config in (cfg.get('kpis') or {}).items() if kpi_id != '__line__'
    ]

    dashboard = ScorecardDashboard(
        business_id=setup['business_id'],
        user_id=setup['user_id'],
        repository=repository,
        fiscal_calendar=fiscal_calendar,
        week_convention=setup.get('week_preference', WEEK_ENDING),
        preferences_repository=preferences_repository,
        targets=targets,
        kpi_targets=kpi_targets,
        view_mode=setup.get('view_mode', VIEW_YEAR),
        today=parse_config_date(setup['today']) if 'today' in setup else None,
    )
    for quarter_id in setup.get('expanded_quarters') or []:
        dashboard.toggle_quarter(quarter_id)
    dashboard.set_past_weeks_unlocked(setup.get('past_weeks_unlocked', False))
    return dashboard


def get_dashboard_deck(dashboard: ScorecardDashboard, title=None):
    """
    Renders a loaded dashboard into the JSON structure the frontend draws.

    Every row carries one entry per column: the week's value for a 'week'
    column, the quarter total for a 'quarter-collapsed' column and an empty
    string for a 'quarter-header' column.
    """
    deck = DashboardDeck()
    current = dashboard.current_quarter
    deck.title = title or f"{dashboard.business_id} scorecard"
    deck.businessId = dashboard.business_id
    deck.fiscalYear = fiscal_year_label(dashboard.fiscal_calendar, dashboard.reference_year)
    deck.weekConvention = dashboard.week_convention
    deck.viewMode = dashboard.view_mode
    deck.currentWeekKey = dashboard.current_week_key
    deck.pastWeeksUnlocked = dashboard.past_weeks_unlocked

    progress = dashboard.progress()
    deck.progress = {
        "quarterId": current.id if current else None,
        "currentWeek": progress.current_week,
        "totalWeeks": progress.total_weeks,
        "percentComplete": progress.percent_complete,
    }

    for quarter in dashboard.quarters:
        deck.quarters.append(_quarter_object(quarter))

    columns = dashboard.columns()
    for column in columns:
        deck.columns.append(_column_object(column, dashboard))

    for row in dashboard.metric_rows():
        row_object = RowObject()
        row_object.metricId = row.metric_id
        row_object.label = row.label
        row_object.field = row.field_name
        row_object.isKpi = row.is_kpi
        row_object.annualTarget = row.annual_target
        row_object.quarterlyTarget = row.quarterly_target
        row_object.qtd = row.qtd
        row_object.trend = row.trend
        row_object.rowData = [_cell_value(column, row) for column in columns]
        deck.rows.append(row_object)

    logger.info(f"Built dashboard deck with {len(deck.columns)} columns and {len(deck.rows)} rows")
    return deck


def _quarter_object(quarter):
    quarter_object = QuarterObject()
    quarter_object.id = quarter.id
    quarter_object.label = quarter.label
    quarter_object.months = quarter.months
    quarter_object.startDate = quarter.start_date.isoformat()
    quarter_object.endDate = quarter.end_date.isoformat()
    quarter_object.isCurrent = quarter.is_current
    quarter_object.isPast = quarter.is_past
    quarter_object.isNext = quarter.is_next
    return quarter_object


def _column_object(column, dashboard):
    column_object = ColumnObject()
    column_object.type = column.type
    column_object.quarterId = column.quarter_id
    if column.type == COLUMN_WEEK:
        column_object.weekKey = column.week_key
        column_object.label = column.week_key
        column_object.isCurrentWeek = column.is_current_week
        column_object.isFirstWeekInQuarter = column.is_first_week_in_quarter
        column_object.editable = dashboard.is_week_editable(column.week_key, column.is_current_week)
    else:
        column_object.label = f"{column.quarter.label} ({column.quarter.months})"
        if column.type == COLUMN_QUARTER_COLLAPSED:
            column_object.weekKeys = column.week_keys
    return column_object


def _cell_value(column, row):
    if column.type == COLUMN_WEEK:
        if column.snapshot is None:
            return ""
        if row.is_kpi:
            value = column.snapshot.kpi_actuals.get(row.field_name)
        else:
            value = getattr(column.snapshot, row.field_name)
        return "" if value is None else value
    if column.type == COLUMN_QUARTER_COLLAPSED:
        if row.is_kpi:
            return sum_kpi(column.snapshots, row.field_name)
        return sum_field(column.snapshots, row.field_name)
    return ""
