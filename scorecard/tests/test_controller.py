import io
import json
from unittest.mock import MagicMock, patch

import pytest

from scorecard.controller import app
from scorecard.repositories import InMemorySnapshotRepository


@pytest.fixture
def client():
    app.config['TESTING'] = True
    with app.test_client() as client:
        yield client


def _post_dashboard(client, config_yaml, csv=None):
    data = {'configfile': (io.BytesIO(config_yaml.encode('utf-8')), 'config.yaml')}
    if csv is not None:
        data['csvfile'] = (io.BytesIO(csv.encode('utf-8')), 'snapshots.csv')
    return client.post('/get-dashboard', data=data, content_type='multipart/form-data')


class TestGetDashboard:
    def test_builds_dashboard_from_csv(self, client, config_yaml, snapshot_csv):
        response = _post_dashboard(client, config_yaml, snapshot_csv)

        assert response.status_code == 200
        payload = json.loads(response.data)
        assert payload['title'] == "KPI Dashboard"
        assert payload['currentWeekKey'] == "2024-05-17"
        assert payload['columns'][0]['type'] == 'quarter-collapsed'
        revenue = next(row for row in payload['rows'] if row['metricId'] == 'revenue')
        assert revenue['qtd'] == 3000

    @patch('scorecard.controller_utility.requests.get')
    def test_config_from_url(self, mock_get, client, config_yaml, snapshot_csv):
        mock_get.return_value = MagicMock(content=config_yaml.encode('utf-8'))
        data = {'csvfile': (io.BytesIO(snapshot_csv.encode('utf-8')), 'snapshots.csv')}
        response = client.post('/get-dashboard?configUrl=https://example.com/config.yaml', data=data,
                               content_type='multipart/form-data')

        assert response.status_code == 200
        mock_get.assert_called_once_with("https://example.com/config.yaml", allow_redirects=True)

    def test_configured_repository_is_read_once(self, client, config_yaml, make_snapshot):
        repository = InMemorySnapshotRepository(snapshots=[make_snapshot("2024-04-05", revenue_actual=1000)])
        repository.list_recent = MagicMock(wraps=repository.list_recent)

        with patch('scorecard.data_loader.get_repository', return_value=repository):
            response = _post_dashboard(client, config_yaml + "repository:\n  type: memory\n")

        assert response.status_code == 200
        repository.list_recent.assert_called_once_with("biz-1", 52)
        revenue = next(row for row in json.loads(response.data)['rows'] if row['metricId'] == 'revenue')
        assert revenue['qtd'] == 1000

    def test_missing_configfile(self, client):
        response = client.post('/get-dashboard', data={}, content_type='multipart/form-data')
        assert response.status_code == 400

    def test_no_snapshot_source(self, client, config_yaml):
        response = _post_dashboard(client, config_yaml)

        assert response.status_code == 500
        assert "No snapshot source provided" in json.loads(response.data)['description']

    def test_invalid_config(self, client, config_yaml, snapshot_csv):
        response = _post_dashboard(client, config_yaml.replace("view_mode: year", "view_mode: decade"), snapshot_csv)

        assert response.status_code == 500
        assert "Invalid configuration provided" in json.loads(response.data)['description']

    def test_malformed_yaml(self, client):
        response = _post_dashboard(client, "setup: [unclosed")
        assert response.status_code == 500


class TestIsEditable:
    def test_locked_past_week(self, client):
        response = client.post('/is-editable', json={
            "weekKey": "2024-04-05", "isCurrentWeek": False, "pastWeeksUnlocked": False, "today": "17-MAY-2024"})
        assert json.loads(response.data) == {"editable": False}

    def test_unlocked_past_week(self, client):
        response = client.post('/is-editable', json={
            "weekKey": "2024-04-05", "pastWeeksUnlocked": True, "today": "17-MAY-2024"})
        assert json.loads(response.data) == {"editable": True}

    def test_current_week(self, client):
        response = client.post('/is-editable', json={"weekKey": "2024-05-17", "isCurrentWeek": True})
        assert json.loads(response.data) == {"editable": True}

    def test_bad_week_key(self, client):
        response = client.post('/is-editable', json={"weekKey": "05/17/2024", "today": "17-MAY-2024"})
        assert response.status_code == 500
