import datetime
import logging

from scorecard.constants import COLUMN_QUARTER_COLLAPSED, COLUMN_QUARTER_HEADER, COLUMN_WEEK
from scorecard.quarters import quarter_weeks
from scorecard.snapshot import SnapshotIndex
from scorecard.week_utility import current_week_key, to_date

logger = logging.getLogger(__name__)


class DisplayColumn:
    def __init__(self, column_type, quarter_id):
        self.type = column_type
        self.quarter_id = quarter_id


class QuarterCollapsedColumn(DisplayColumn):
    def __init__(self, quarter, week_keys, snapshots):
        super().__init__(COLUMN_QUARTER_COLLAPSED, quarter.id)
        self.quarter = quarter
        self.week_keys = list(week_keys)
        self.snapshots = list(snapshots)


class QuarterHeaderColumn(DisplayColumn):
    def __init__(self, quarter):
        super().__init__(COLUMN_QUARTER_HEADER, quarter.id)
        self.quarter = quarter


class WeekColumn(DisplayColumn):
    def __init__(self, quarter_id, week_key, snapshot, is_current_week=False, is_first_week_in_quarter=False):
        super().__init__(COLUMN_WEEK, quarter_id)
        self.week_key = week_key
        self.snapshot = snapshot
        self.is_current_week = is_current_week
        self.is_first_week_in_quarter = is_first_week_in_quarter


class ExpansionState:
    """
    The set of quarter ids a user has expanded.

    The current quarter is always treated as expanded whether or not it is in the set.
    """

    def __init__(self, quarter_ids=None):
        self._expanded = set(quarter_ids or [])

    def toggle(self, quarter_id):
        if quarter_id in self._expanded:
            self._expanded.discard(quarter_id)
        else:
            self._expanded.add(quarter_id)

    def is_expanded(self, quarter):
        return quarter.is_current or quarter.id in self._expanded

    def reset(self):
        self._expanded.clear()

    def frozen(self):
        return frozenset(self._expanded)

    def __contains__(self, quarter_id):
        return quarter_id in self._expanded

    def __iter__(self):
        return iter(sorted(self._expanded))

    def __len__(self):
        return len(self._expanded)


def _as_expansion_state(expansion_state):
    if isinstance(expansion_state, ExpansionState):
        return expansion_state
    return ExpansionState(expansion_state)


def quarter_week_lists(quarters, week_convention, today=None):
    """
    Computes the week keys each quarter contributes to the grid.

    Every quarter gets the keys inside its nominal boundaries. The current
    quarter also claims today's week key when that week ends (or begins)
    outside its boundaries, so a partial current week is never dropped; no
    other quarter lists that key.

    Args:
        quarters (list): QuarterDescriptor objects, in display order.
        week_convention (str): 'ending' or 'beginning'.
        today (datetime.date, optional): Defaults to the current local date.

    Returns:
        dict: quarter id -> ascending list of week keys.
    """
    active_week_key = current_week_key(week_convention, today)
    week_lists = {quarter.id: quarter_weeks(quarter, week_convention) for quarter in quarters}

    current = next((q for q in quarters if q.is_current), None)
    if current is not None and active_week_key not in week_lists[current.id]:
        week_lists[current.id] = sorted(week_lists[current.id] + [active_week_key])
        for quarter in quarters:
            if quarter.id != current.id and active_week_key in week_lists[quarter.id]:
                week_lists[quarter.id].remove(active_week_key)

    return week_lists


def build_columns(quarters, expansion_state, snapshot_index, week_convention, current_snapshot=None, today=None):
    """
    Lays the quarters out as an ordered list of display columns.

    Quarters are visited in the order supplied. The current quarter and any
    expanded quarter contribute one 'week' column per week key, preceded by a
    'quarter-header' column unless it is the current quarter. Every other
    quarter collapses into a single 'quarter-collapsed' column carrying its
    week keys and the snapshots found for them, which feeds the collapsed QTD
    preview.

    Args:
        quarters (list): QuarterDescriptor objects to display.
        expansion_state (ExpansionState | iterable): Quarter ids expanded by the user.
        snapshot_index (SnapshotIndex): Persisted snapshots by week key.
        week_convention (str): 'ending' or 'beginning'.
        current_snapshot (WeeklyMetricSnapshot, optional): Live current-week snapshot; it takes precedence
            over the persisted row for the active week key.
        today (datetime.date, optional): Defaults to the current local date.

    Returns:
        list: DisplayColumn objects.
    """
    today = to_date(today or datetime.date.today())
    expansion_state = _as_expansion_state(expansion_state)
    if not isinstance(snapshot_index, SnapshotIndex):
        snapshot_index = SnapshotIndex(snapshot_index)

    active_week_key = current_week_key(week_convention, today)
    week_lists = quarter_week_lists(quarters, week_convention, today)
    columns = []

    for quarter in quarters:
        week_keys = week_lists[quarter.id]

        if expansion_state.is_expanded(quarter):
            if not quarter.is_current:
                columns.append(QuarterHeaderColumn(quarter))

            for idx, week_key in enumerate(week_keys):
                is_current_week = quarter.is_current and week_key == active_week_key
                snapshot = snapshot_index.get(week_key)
                if is_current_week and current_snapshot is not None:
                    snapshot = current_snapshot
                columns.append(WeekColumn(quarter.id, week_key, snapshot, is_current_week, idx == 0))
        else:
            snapshots = [s for s in snapshot_index.resolve(week_keys) if s is not None]
            columns.append(QuarterCollapsedColumn(quarter, week_keys, snapshots))

    logger.debug(f"Built {len(columns)} columns for {len(quarters)} quarters, "
                 f"{column_week_count(columns)} weeks in total")
    return columns


def flatten_week_keys(columns):
    week_keys = []
    for column in columns:
        if column.type == COLUMN_WEEK:
            week_keys.append(column.week_key)
        elif column.type == COLUMN_QUARTER_COLLAPSED:
            week_keys.extend(column.week_keys)
    return week_keys


def column_week_count(columns):
    return len(flatten_week_keys(columns))


def expected_week_count(quarters, week_convention, today=None):
    """Number of distinct weeks the given quarters span, including today's week for the current quarter."""
    week_keys = set()
    for quarter in quarters:
        week_keys.update(quarter_weeks(quarter, week_convention))
    if any(q.is_current for q in quarters):
        week_keys.add(current_week_key(week_convention, today))
    return len(week_keys)
