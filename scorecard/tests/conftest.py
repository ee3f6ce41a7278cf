# SPDX-License-Identifier: Apache-2.0
"""
Shared fixtures for the scorecard test suite.

Every fixture pins "today" to Friday 17 May 2024 so quarter flags, week keys
and editability are deterministic.
"""
import datetime

import pytest

from scorecard.quarters import FiscalCalendar, quarters_for
from scorecard.snapshot import WeeklyMetricSnapshot

TODAY = datetime.date(2024, 5, 17)
BUSINESS_ID = "biz-1"
USER_ID = "user-1"

CONFIG_YAML = """
setup:
  business_id: biz-1
  user_id: user-1
  title: KPI Dashboard
  fiscal_year_type: CY
  week_preference: ending
  view_mode: year
  today: 17-MAY-2024
targets:
  revenue_actual:
    label: Revenue
    annual: 120000
kpis:
  referrals:
    label: Referrals
    quarterly: 40
"""

SNAPSHOT_CSV = (
    "week_key,revenue_actual,leads_actual,kpi__referrals,notes\n"
    "2024-01-05,700,5,2,first week\n"
    "2024-04-05,\"1,000\",10,3,\n"
    "2024-04-12,2000,,4,\n"
)


def _make_snapshot(week_key, **values):
    return WeeklyMetricSnapshot(business_id=BUSINESS_ID, user_id=USER_ID, week_key=week_key, **values)


@pytest.fixture
def make_snapshot():
    return _make_snapshot


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def cy_calendar():
    return FiscalCalendar('CY')


@pytest.fixture
def fy_calendar():
    return FiscalCalendar('FY', 'JUL')


@pytest.fixture
def cy_quarters(cy_calendar):
    return quarters_for(cy_calendar, today=TODAY)


@pytest.fixture
def april_snapshots():
    return [
        _make_snapshot("2024-04-05", revenue_actual=1000),
        _make_snapshot("2024-04-12", revenue_actual=2000),
    ]


@pytest.fixture
def config_yaml():
    return CONFIG_YAML


@pytest.fixture
def snapshot_csv():
    return SNAPSHOT_CSV
