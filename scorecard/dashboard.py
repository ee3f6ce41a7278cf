import datetime
import logging
from dataclasses import dataclass

from scorecard.aggregator import QuarterProgress, quarter_progress, sum_field, sum_kpi
from scorecard.columns import ExpansionState, build_columns, quarter_week_lists
from scorecard.constants import (
    COLUMN_QUARTER_COLLAPSED,
    METRIC_FIELDS,
    QUARTERS_PER_YEAR,
    RECENT_SNAPSHOT_LIMIT,
    TREND_ON_TRACK,
    VIEW_MODES,
    VIEW_YEAR,
    WEEK_ENDING,
)
from scorecard.editability import is_editable
from scorecard.preferences import (
    default_preferences,
    is_kpi_visible,
    toggle_core_metric,
    toggle_custom_kpi,
    visible_metric_ids,
)
from scorecard.quarters import FiscalCalendar, current_quarter, determine_reference_year, filter_for_view, quarters_for
from scorecard.snapshot import SnapshotIndex, apply_updates, new_snapshot
from scorecard.trend import classify
from scorecard.week_utility import check_week_convention, current_week_key, to_date

logger = logging.getLogger(__name__)


@dataclass
class MetricTarget:
    """An annual target for one metric field or custom indicator; the quarterly target is a quarter of it."""
    field_name: str
    label: str
    annual: float = 0.0

    @property
    def quarterly(self):
        return self.annual / QUARTERS_PER_YEAR


class ScorecardDashboard:
    """
    The weekly scorecard of one business, as seen by one user.

    Holds the loaded snapshot collection, the live current-week snapshot and the
    user's layout state (expanded quarters, view mode, past-week lock), and
    derives columns, quarter-to-date totals and trends from them. Repositories
    are injected; nothing is read or written until `load` is called.
    """

    def __init__(self, business_id, user_id, repository, fiscal_calendar=None, week_convention=WEEK_ENDING,
                 preferences_repository=None, targets=None, kpi_targets=None, view_mode=VIEW_YEAR, today=None):
        self.business_id = business_id
        self.user_id = user_id
        self.repository = repository
        self.preferences_repository = preferences_repository
        self.fiscal_calendar = fiscal_calendar or FiscalCalendar()
        self.week_convention = check_week_convention(week_convention)
        self.targets = _index_targets(targets)
        self.kpi_targets = _index_targets(kpi_targets)
        self.view_mode = _check_view_mode(view_mode)
        self.past_weeks_unlocked = False
        self.expansion_state = ExpansionState()
        self.preferences = default_preferences(business_id, user_id)
        self.snapshots = []
        self.current_snapshot = None

        self._today = to_date(today) if today is not None else None
        self._version = 0
        self._columns_cache = None

    @property
    def today(self):
        return self._today or datetime.date.today()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load(self, snapshots=None):
        """
        Reads the recent snapshots, the current week and the saved preferences.

        Args:
            snapshots (list, optional): Snapshots already read from the repository, used instead of
                querying it again.
        """
        logger.info(f"Loading dashboard for business {self.business_id}")
        if snapshots is None:
            snapshots = self.repository.list_recent(self.business_id, RECENT_SNAPSHOT_LIMIT)
        self.snapshots = list(snapshots)
        self._load_current_snapshot()

        if self.preferences_repository is not None:
            saved = self.preferences_repository.load(self.business_id, self.user_id)
            if saved is not None:
                self.preferences = saved
        return self

    def _load_current_snapshot(self):
        week_key = current_week_key(self.week_convention, self.today)
        self.current_snapshot = self.repository.get_or_create(self.business_id, self.user_id, week_key)
        self._touch()
        logger.info(f"Current week snapshot {week_key} loaded for business {self.business_id}")

    def _touch(self):
        self._version += 1

    # ------------------------------------------------------------------
    # Quarters and columns
    # ------------------------------------------------------------------

    @property
    def reference_year(self):
        return determine_reference_year(self.fiscal_calendar, self.today)

    @property
    def quarters(self):
        return quarters_for(self.fiscal_calendar, self.reference_year, self.today)

    @property
    def visible_quarters(self):
        return filter_for_view(self.quarters, self.view_mode)

    @property
    def current_quarter(self):
        return current_quarter(self.quarters)

    @property
    def current_week_key(self):
        return current_week_key(self.week_convention, self.today)

    def snapshot_index(self):
        """Index over the loaded snapshots in which the live current-week snapshot replaces any stored copy."""
        snapshots = list(self.snapshots)
        if self.current_snapshot is not None:
            snapshots = [self.current_snapshot] + [
                s for s in snapshots if s.week_key != self.current_snapshot.week_key]
        return SnapshotIndex(snapshots)

    def columns(self):
        key = (self.fiscal_calendar, self.reference_year, self.week_convention, self._version,
               self.expansion_state.frozen(), self.view_mode, self.today)
        if self._columns_cache is None or self._columns_cache[0] != key:
            columns = build_columns(self.visible_quarters, self.expansion_state, self.snapshot_index(),
                                    self.week_convention, self.current_snapshot, self.today)
            self._columns_cache = (key, columns)
        return self._columns_cache[1]

    def toggle_quarter(self, quarter_id):
        self.expansion_state.toggle(quarter_id)

    def set_view_mode(self, view_mode):
        self.view_mode = _check_view_mode(view_mode)

    def set_past_weeks_unlocked(self, unlocked):
        self.past_weeks_unlocked = bool(unlocked)
        logger.info(f"Past weeks {'unlocked' if self.past_weeks_unlocked else 'locked'} "
                    f"for business {self.business_id}")

    def set_week_convention(self, week_convention):
        self.week_convention = check_week_convention(week_convention)
        self._load_current_snapshot()

    def set_fiscal_calendar(self, fiscal_calendar):
        if not isinstance(fiscal_calendar, FiscalCalendar):
            raise TypeError(f"Expected a FiscalCalendar but got {type(fiscal_calendar).__name__}")
        self.fiscal_calendar = fiscal_calendar
        self.expansion_state.reset()
        self._columns_cache = None

    # ------------------------------------------------------------------
    # Edits
    # ------------------------------------------------------------------

    def is_week_editable(self, week_key, is_current_week=None):
        if is_current_week is None:
            is_current_week = week_key == self.current_week_key
        return is_editable(is_current_week, week_key, self.past_weeks_unlocked, self.week_convention, self.today)

    def update_current_snapshot(self, updates):
        """
        Applies a partial update to the current week and persists it.

        The in-memory snapshot changes first. When the write fails the change is
        kept on screen and False is returned.

        Returns:
            bool: Whether the change was persisted.
        """
        if self.current_snapshot is None:
            raise RuntimeError("The current week snapshot is not loaded, call load() first")

        self.current_snapshot = apply_updates(self.current_snapshot, updates)
        self._touch()
        return self._persist(self.current_snapshot)

    def update_past_snapshot(self, week_key, updates):
        """
        Applies a partial update to a past week and persists it.

        Raises:
            PermissionError: If the week is locked or lies in the future.
        """
        if week_key == self.current_week_key:
            return self.update_current_snapshot(updates)
        if not self.is_week_editable(week_key, is_current_week=False):
            raise PermissionError(f"Week {week_key} can not be edited, past weeks are "
                                  f"{'unlocked' if self.past_weeks_unlocked else 'locked'}")

        position = next((i for i, s in enumerate(self.snapshots) if s.week_key == week_key), None)
        if position is None:
            snapshot = apply_updates(new_snapshot(self.business_id, self.user_id, week_key), updates)
            self.snapshots.append(snapshot)
        else:
            snapshot = apply_updates(self.snapshots[position], updates)
            self.snapshots[position] = snapshot
        self._touch()
        return self._persist(snapshot)

    def _persist(self, snapshot):
        try:
            saved = self.repository.upsert(snapshot)
        except (ConnectionError, RuntimeError) as e:
            logger.error(f"Could not save snapshot for week {snapshot.week_key}: {e}", exc_info=True)
            return False
        if not saved:
            logger.error(f"Saving snapshot for week {snapshot.week_key} failed, keeping the unsaved values")
        return saved

    def toggle_core_metric(self, metric_id):
        toggle_core_metric(self.preferences, metric_id)
        return self._save_preferences()

    def toggle_custom_kpi(self, kpi_id):
        if kpi_id not in self.kpi_targets:
            raise KeyError(f"Unknown custom indicator: {kpi_id}. Expected one of {list(self.kpi_targets)}")
        toggle_custom_kpi(self.preferences, kpi_id)
        return self._save_preferences()

    def _save_preferences(self):
        if self.preferences_repository is None:
            return False
        return self.preferences_repository.save(self.preferences)

    # ------------------------------------------------------------------
    # Rollups
    # ------------------------------------------------------------------

    def _current_quarter_snapshots(self):
        quarter = self.current_quarter
        if quarter is None:
            return []
        week_keys = quarter_week_lists([quarter], self.week_convention, self.today)[quarter.id]
        return [s for s in self.snapshot_index().resolve(week_keys) if s is not None]

    def qtd(self, field_name):
        return sum_field(self._current_quarter_snapshots(), field_name)

    def kpi_qtd(self, kpi_id):
        return sum_kpi(self._current_quarter_snapshots(), kpi_id)

    def progress(self):
        quarter = self.current_quarter
        if quarter is None:
            return QuarterProgress(current_week=0, total_weeks=0, percent_complete=0)
        return quarter_progress(quarter, self.week_convention, self.today)

    def _classify(self, actual, quarterly_target):
        percent_complete = self.progress().percent_complete
        if quarterly_target != 0 and percent_complete == 0:
            return TREND_ON_TRACK
        return classify(actual, quarterly_target, percent_complete)

    def trend(self, field_name):
        target = self.targets.get(field_name)
        return self._classify(self.qtd(field_name), target.quarterly if target else 0)

    def kpi_trend(self, kpi_id):
        target = self.kpi_targets.get(kpi_id)
        return self._classify(self.kpi_qtd(kpi_id), target.quarterly if target else 0)

    def metric_rows(self):
        """
        Summarises every visible metric and custom indicator.

        Each row carries the annual and quarterly targets, the QTD actual of the
        current quarter, its trend and the totals previewed in each collapsed
        quarter column.
        """
        collapsed = [c for c in self.columns() if c.type == COLUMN_QUARTER_COLLAPSED]
        rows = []

        for metric_id in visible_metric_ids(self.preferences):
            field_name = METRIC_FIELDS[metric_id]
            target = self.targets.get(field_name) or MetricTarget(field_name, metric_id)
            rows.append(MetricRow(
                metric_id=metric_id, label=target.label, field_name=field_name, is_kpi=False,
                annual_target=target.annual, quarterly_target=target.quarterly,
                qtd=self.qtd(field_name), trend=self.trend(field_name),
                collapsed_totals={c.quarter_id: sum_field(c.snapshots, field_name) for c in collapsed},
            ))

        for kpi_id, target in self.kpi_targets.items():
            if not is_kpi_visible(self.preferences, kpi_id):
                continue
            rows.append(MetricRow(
                metric_id=kpi_id, label=target.label, field_name=kpi_id, is_kpi=True,
                annual_target=target.annual, quarterly_target=target.quarterly,
                qtd=self.kpi_qtd(kpi_id), trend=self.kpi_trend(kpi_id),
                collapsed_totals={c.quarter_id: sum_kpi(c.snapshots, kpi_id) for c in collapsed},
            ))
        return rows


@dataclass
class MetricRow:
    metric_id: str
    label: str
    field_name: str
    is_kpi: bool
    annual_target: float
    quarterly_target: float
    qtd: float
    trend: str
    collapsed_totals: dict


def _index_targets(targets):
    if not targets:
        return {}
    if isinstance(targets, dict):
        targets = targets.values()
    return {target.field_name: target for target in targets}


def _check_view_mode(view_mode):
    if view_mode not in VIEW_MODES:
        raise ValueError(f"Unsupported view mode: {view_mode}. Expected one of {list(VIEW_MODES)}")
    return view_mode
