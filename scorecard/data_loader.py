import logging

import pandas as pd

from scorecard.constants import KPI_COLUMN_PREFIX, METRIC_FIELDS, RECENT_SNAPSHOT_LIMIT
from scorecard.repositories import (
    InMemoryPreferencesRepository,
    InMemorySnapshotRepository,
    get_preferences_repository,
    get_repository,
)
from scorecard.snapshot import WeeklyMetricSnapshot, parse_number_input
from scorecard.week_utility import format_week_key

logger = logging.getLogger(__name__)

WEEK_KEY_COLUMN = 'week_key'


class SnapshotLoader:

    def __init__(self, cfg: dict, csv_data: any = None):
        """
        Initializes the SnapshotLoader that loads snapshots based on the fallback logic:
        1. Use `csv_data` if provided.
        2. If not, use the `repository` section of the `cfg`.
        3. If neither is available, raise an error.

        With CSV data the snapshots are served from an in-memory repository, so
        edits made on the dashboard stay in memory, and so do the row preferences.

        Args:
            cfg (dict): The dashboard YAML configuration.
            csv_data (any, optional): A file stream or path for a CSV file. Defaults to None.
        """
        self.cfg = cfg
        setup = cfg.get('setup') or {}
        self.business_id = setup.get('business_id')
        self.user_id = setup.get('user_id')

        if csv_data:
            logger.info("CSV data provided. Using CSV as the primary snapshot source.")
            self.snapshots = read_snapshots_csv(csv_data, self.business_id, self.user_id)
            self.repository = InMemorySnapshotRepository(snapshots=self.snapshots)
            self.preferences_repository = InMemoryPreferencesRepository()
        else:
            logger.info("No CSV data provided. Attempting to load snapshots from the configured repository.")
            repository_cfg = cfg.get('repository')
            if not repository_cfg:
                raise ValueError(
                    "No snapshot source provided. Please provide either a CSV file or a 'repository' in your YAML config.")

            self.repository = get_repository(repository_cfg.get('type'), repository_cfg.get('config') or {})
            self.preferences_repository = get_preferences_repository(repository_cfg.get('type'),
                                                                     repository_cfg.get('config') or {})
            try:
                self.snapshots = self.repository.list_recent(self.business_id, RECENT_SNAPSHOT_LIMIT)
            except Exception as e:
                logger.error(f"Failed to load snapshots for business {self.business_id}: {e}", exc_info=True)
                raise RuntimeError(f"Failed to load snapshots for business {self.business_id}: {e}")

        logger.info(f"Loaded {len(self.snapshots)} snapshots for business {self.business_id}")


def read_snapshots_csv(csv_data, business_id, user_id):
    """
    Reads weekly snapshots from a CSV file.

    The file needs a `week_key` column. Columns named after snapshot metric
    fields (e.g. `revenue_actual`) and `notes` are copied onto the snapshot;
    columns prefixed with `kpi__` go into `kpi_actuals` under the rest of their
    name. Empty cells stay unset.

    Returns:
        list: WeeklyMetricSnapshot objects sorted by week key.
    """
    df = pd.read_csv(csv_data, thousands=',')
    if WEEK_KEY_COLUMN not in df.columns:
        raise ValueError(f"The CSV data must contain a '{WEEK_KEY_COLUMN}' column. "
                         f"Available columns: {df.columns.tolist()}")

    try:
        df[WEEK_KEY_COLUMN] = pd.to_datetime(df[WEEK_KEY_COLUMN])
    except Exception as e:
        raise ValueError(f"Could not convert column '{WEEK_KEY_COLUMN}' to dates: {e}")
    if df[WEEK_KEY_COLUMN].isna().any():
        blank_rows = [int(i) + 2 for i in df.index[df[WEEK_KEY_COLUMN].isna()]]
        raise ValueError(f"Could not convert column '{WEEK_KEY_COLUMN}' to dates: blank week key on line(s) {blank_rows}")
    df = df.sort_values(by=WEEK_KEY_COLUMN)

    metric_columns = [c for c in df.columns if c in METRIC_FIELDS.values()]
    kpi_columns = [c for c in df.columns if c.startswith(KPI_COLUMN_PREFIX)]
    ignored = set(df.columns) - set(metric_columns) - set(kpi_columns) - {WEEK_KEY_COLUMN, 'notes'}
    if ignored:
        logger.warning(f"Ignoring unknown CSV columns: {sorted(ignored)}")

    snapshots = []
    for record in df.to_dict(orient='records'):
        snapshot = WeeklyMetricSnapshot(business_id=business_id, user_id=user_id,
                                        week_key=format_week_key(record[WEEK_KEY_COLUMN]))
        for column in metric_columns:
            setattr(snapshot, column, _cell(record[column]))
        for column in kpi_columns:
            value = _cell(record[column])
            if value is not None:
                snapshot.kpi_actuals[column[len(KPI_COLUMN_PREFIX):]] = value
        if 'notes' in record and not pd.isna(record['notes']):
            snapshot.notes = str(record['notes'])
        snapshots.append(snapshot)
    return snapshots


def _cell(value):
    if pd.isna(value):
        return None
    return parse_number_input(value)
