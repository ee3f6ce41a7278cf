# SPDX-License-Identifier: Apache-2.0
"""
Tests for YAML loading, config-driven dashboard construction and the JSON
deck built from a dashboard.
"""
import io
import json
from decimal import Decimal
from unittest.mock import MagicMock, patch

import pytest
import yaml

from scorecard.controller_utility import (
    Encoder,
    SafeLineLoader,
    build_dashboard,
    get_dashboard_deck,
    load_yaml_from_stream,
    load_yaml_from_url,
)
from scorecard.data_loader import read_snapshots_csv
from scorecard.repositories import InMemorySnapshotRepository


@pytest.fixture
def cfg(config_yaml):
    return yaml.load(config_yaml, SafeLineLoader)


@pytest.fixture
def loaded_dashboard(cfg, snapshot_csv):
    snapshots = read_snapshots_csv(io.StringIO(snapshot_csv), "biz-1", "user-1")
    return build_dashboard(cfg, InMemorySnapshotRepository(snapshots=snapshots)).load()


# ---------------------------------------------------------------------------
# YAML loading
# ---------------------------------------------------------------------------

class TestYamlLoading:
    def test_safe_line_loader_adds_line_numbers(self, cfg):
        assert cfg['setup']['__line__'] == 3
        assert cfg['targets']['revenue_actual']['__line__'] == 12

    def test_load_from_bytes_stream(self, config_yaml):
        cfg = load_yaml_from_stream(io.BytesIO(config_yaml.encode('utf-8')))
        assert cfg['setup']['business_id'] == 'biz-1'

    def test_invalid_yaml_raises(self):
        with pytest.raises(Exception, match="incorrect yaml"):
            load_yaml_from_stream(io.StringIO("setup: [unclosed"))

    @patch('scorecard.controller_utility.requests.get')
    def test_load_from_url(self, mock_get, config_yaml):
        mock_get.return_value = MagicMock(content=config_yaml.encode('utf-8'))
        cfg = load_yaml_from_url("https://example.com/config.yaml")
        mock_get.assert_called_once_with("https://example.com/config.yaml", allow_redirects=True)
        assert cfg['kpis']['referrals']['quarterly'] == 40


# ---------------------------------------------------------------------------
# build_dashboard
# ---------------------------------------------------------------------------

class TestBuildDashboard:
    def test_setup_is_applied(self, cfg):
        dashboard = build_dashboard(cfg, InMemorySnapshotRepository())
        assert dashboard.business_id == 'biz-1'
        assert dashboard.fiscal_calendar.year_type == 'CY'
        assert dashboard.week_convention == 'ending'
        assert dashboard.view_mode == 'year'
        assert str(dashboard.today) == '2024-05-17'

    def test_targets(self, cfg):
        dashboard = build_dashboard(cfg, InMemorySnapshotRepository())
        assert dashboard.targets['revenue_actual'].quarterly == 30000
        assert dashboard.kpi_targets['referrals'].quarterly == 40

    def test_expanded_quarters_and_lock(self, cfg):
        cfg['setup']['expanded_quarters'] = ['2024-Q1']
        cfg['setup']['past_weeks_unlocked'] = True
        dashboard = build_dashboard(cfg, InMemorySnapshotRepository())
        assert '2024-Q1' in dashboard.expansion_state
        assert dashboard.past_weeks_unlocked

    def test_fiscal_year_setup(self, cfg):
        cfg['setup']['fiscal_year_type'] = 'FY'
        cfg['setup']['fiscal_year_start_month'] = 'JUL'
        dashboard = build_dashboard(cfg, InMemorySnapshotRepository())
        assert dashboard.fiscal_calendar.start_month == 7


# ---------------------------------------------------------------------------
# get_dashboard_deck
# ---------------------------------------------------------------------------

class TestDashboardDeck:
    def test_deck_header(self, loaded_dashboard):
        deck = get_dashboard_deck(loaded_dashboard, "KPI Dashboard")
        assert deck.title == "KPI Dashboard"
        assert deck.fiscalYear == "CY2024"
        assert deck.currentWeekKey == "2024-05-17"
        assert deck.progress == {"quarterId": "2024-Q2", "currentWeek": 7, "totalWeeks": 13, "percentComplete": 54}
        assert len(deck.quarters) == 5

    def test_columns(self, loaded_dashboard):
        deck = get_dashboard_deck(loaded_dashboard)
        assert deck.columns[0].type == 'quarter-collapsed'
        assert deck.columns[0].label == "Q1 2024 (Jan-Mar)"
        week_columns = deck.columns[1:]
        assert all(c.type == 'week' for c in week_columns)
        assert [c.weekKey for c in week_columns if c.editable] == ["2024-05-17"]

    def test_rows(self, loaded_dashboard):
        deck = get_dashboard_deck(loaded_dashboard)
        rows = {row.metricId: row for row in deck.rows}
        revenue = rows['revenue']
        assert len(revenue.rowData) == len(deck.columns)
        assert revenue.rowData[0] == 700
        assert revenue.rowData[1] == 1000
        assert revenue.rowData[3] == ""
        assert revenue.qtd == 3000
        assert revenue.trend == 'behind'
        assert rows['referrals'].qtd == 7

    def test_encoder_writes_decimals_as_numbers(self):
        assert json.loads(json.dumps({"qtd": Decimal("1500.25")}, cls=Encoder)) == {"qtd": 1500.25}

    def test_deck_from_decimal_snapshots(self, cfg, make_snapshot):
        snapshots = [make_snapshot("2024-04-05", revenue_actual=Decimal("1000")),
                     make_snapshot("2024-04-12", revenue_actual=Decimal("2000"))]
        dashboard = build_dashboard(cfg, InMemorySnapshotRepository(snapshots=snapshots)).load()
        payload = json.loads(json.dumps(get_dashboard_deck(dashboard), cls=Encoder))
        revenue = next(row for row in payload['rows'] if row['metricId'] == 'revenue')
        assert revenue['qtd'] == 3000

    def test_deck_serialises(self, loaded_dashboard):
        payload = json.loads(json.dumps(get_dashboard_deck(loaded_dashboard), cls=Encoder))
        assert payload['columns'][1]['weekKey'] == "2024-04-05"
        assert payload['quarters'][1]['startDate'] == "2024-04-01"
