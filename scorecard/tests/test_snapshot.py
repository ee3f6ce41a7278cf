import pytest

from scorecard.snapshot import (
    SnapshotIndex,
    WeeklyMetricSnapshot,
    apply_updates,
    new_snapshot,
    parse_dollar_input,
    parse_number_input,
)


class TestWeeklyMetricSnapshot:
    def test_new_snapshot_is_empty(self):
        snapshot = new_snapshot("biz-1", "user-1", "2024-05-17")
        assert snapshot.revenue_actual is None
        assert snapshot.kpi_actuals == {}
        assert snapshot.id is None

    def test_new_snapshot_rejects_bad_week_key(self):
        with pytest.raises(ValueError):
            new_snapshot("biz-1", "user-1", "17/05/2024")

    def test_from_record_ignores_unknown_columns(self):
        snapshot = WeeklyMetricSnapshot.from_record({
            "business_id": "biz-1", "user_id": "user-1", "week_key": "2024-05-17",
            "revenue_actual": 12.5, "kpi_actuals": None, "something_else": 1,
        })
        assert snapshot.revenue_actual == 12.5
        assert snapshot.kpi_actuals == {}

    def test_record_round_trip(self, make_snapshot):
        snapshot = make_snapshot("2024-05-17", revenue_actual=1.0, kpi_actuals={"k": 2.0})
        assert WeeklyMetricSnapshot.from_record(snapshot.to_record()) == snapshot


class TestApplyUpdates:
    def test_sets_fields_on_a_copy(self, make_snapshot):
        original = make_snapshot("2024-05-17", revenue_actual=100)
        updated = apply_updates(original, {"revenue_actual": 250, "notes": "good week"})
        assert updated.revenue_actual == 250
        assert updated.notes == "good week"
        assert original.revenue_actual == 100

    def test_merges_kpi_actuals(self, make_snapshot):
        original = make_snapshot("2024-05-17", kpi_actuals={"a": 1, "b": 2})
        updated = apply_updates(original, {"kpi_actuals": {"b": 5}})
        assert updated.kpi_actuals == {"a": 1, "b": 5}
        assert original.kpi_actuals == {"a": 1, "b": 2}

    def test_unknown_field_raises(self, make_snapshot):
        with pytest.raises(KeyError):
            apply_updates(make_snapshot("2024-05-17"), {"week_key": "2024-05-24"})


class TestSnapshotIndex:
    def test_lookup(self, april_snapshots):
        index = SnapshotIndex(april_snapshots)
        assert index.get("2024-04-05").revenue_actual == 1000
        assert index.get("2024-04-19") is None
        assert "2024-04-12" in index
        assert len(index) == 2

    def test_resolve_keeps_missing_positions(self, april_snapshots):
        resolved = SnapshotIndex(april_snapshots).resolve(["2024-04-05", "2024-04-19"])
        assert resolved[0].revenue_actual == 1000
        assert resolved[1] is None

    def test_first_duplicate_wins(self, make_snapshot):
        index = SnapshotIndex([
            make_snapshot("2024-04-05", revenue_actual=1),
            make_snapshot("2024-04-05", revenue_actual=2),
        ])
        assert len(index) == 1
        assert index.get("2024-04-05").revenue_actual == 1

    def test_week_keys_sorted(self, april_snapshots):
        assert SnapshotIndex(reversed(april_snapshots)).week_keys() == ["2024-04-05", "2024-04-12"]


class TestNumberInput:
    @pytest.mark.parametrize("raw,expected", [
        ("$1,250.50", 1250.5),
        ("42", 42.0),
        ("-5", -5.0),
        (7, 7.0),
        ("abc", 0.0),
        ("", 0.0),
        (None, 0.0),
        (float("nan"), 0.0),
    ])
    def test_parse_number_input(self, raw, expected):
        assert parse_number_input(raw) == expected

    def test_dollar_input_drops_negatives(self):
        assert parse_dollar_input("-5") == 0.0
        assert parse_dollar_input("$99") == 99.0
