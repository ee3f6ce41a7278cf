import logging

import psycopg2
from psycopg2 import sql
from psycopg2.extras import Json, RealDictCursor

from scorecard.constants import PREFERENCES_TABLE, RECENT_SNAPSHOT_LIMIT, SNAPSHOT_TABLE
from scorecard.preferences import DashboardPreferences
from scorecard.snapshot import UPDATABLE_FIELDS, WeeklyMetricSnapshot, new_snapshot

from .base import PreferencesRepository, SnapshotRepository

logger = logging.getLogger(__name__)

SNAPSHOT_COLUMNS = ['id', 'business_id', 'user_id', 'week_key'] + sorted(UPDATABLE_FIELDS) + [
    'created_at', 'updated_at']
WRITE_COLUMNS = ['business_id', 'user_id', 'week_key'] + sorted(UPDATABLE_FIELDS)


class _PostgresMixin:
    """
    Connection handling shared by the PostgreSQL repositories.
    """

    def connect(self):
        """
        Establishes a connection to the PostgreSQL database.
        """
        try:
            self.connection = psycopg2.connect(
                host=self.config.get("host"),
                port=self.config.get("port", 5432),
                user=self.config.get("username"),
                password=self.config.get("password"),
                dbname=self.config.get("database"),
            )
            logger.info(
                f"Successfully connected to PostgreSQL database: {self.config.get('database')} at {self.config.get('host')}")
        except psycopg2.Error as e:
            logger.error(f"Error connecting to PostgreSQL: {e}")
            raise ConnectionError(f"Could not connect to PostgreSQL: {e}")

    def disconnect(self):
        """
        Closes the database connection.
        """
        if self.connection:
            self.connection.close()
            self.connection = None
            logger.info(
                f"Disconnected from PostgreSQL database: {self.config.get('database')} at {self.config.get('host')}")

    def _fetch(self, query, params):
        if not self.connection:
            self.connect()

        try:
            with self.connection.cursor(cursor_factory=RealDictCursor) as cursor:
                cursor.execute(query, params)
                rows = cursor.fetchall()
            self.connection.commit()
            return [dict(row) for row in rows]
        except psycopg2.Error as e:
            logger.error(f"Error executing query on PostgreSQL: {e}")
            self.connection.rollback()
            raise RuntimeError(f"Could not execute query on PostgreSQL: {e}")

    def _write(self, query, params):
        if not self.connection:
            self.connect()

        try:
            with self.connection.cursor() as cursor:
                cursor.execute(query, params)
            self.connection.commit()
            return True
        except psycopg2.Error as e:
            logger.error(f"Error writing to PostgreSQL: {e}", exc_info=True)
            self.connection.rollback()
            return False


class PostgresSnapshotRepository(_PostgresMixin, SnapshotRepository):
    """
    Snapshot store backed by the `weekly_metrics_snapshots` table.

    The table needs a unique constraint on (business_id, week_key); `kpi_actuals`
    is a JSONB column.
    """

    def __init__(self, config: dict):
        super().__init__(config)
        self.connection = None
        self.table = self.config.get("table", SNAPSHOT_TABLE)

    def _select(self):
        return sql.SQL("SELECT {columns} FROM {table}").format(
            columns=sql.SQL(', ').join(map(sql.Identifier, SNAPSHOT_COLUMNS)),
            table=sql.Identifier(self.table),
        )

    def get(self, business_id, week_key):
        query = sql.SQL("{select} WHERE business_id = %s AND week_key = %s").format(select=self._select())
        rows = self._fetch(query, (business_id, week_key))
        return WeeklyMetricSnapshot.from_record(_stringify_week_key(rows[0])) if rows else None

    def create(self, business_id, user_id, week_key):
        snapshot = new_snapshot(business_id, user_id, week_key)
        query = sql.SQL(
            "INSERT INTO {table} (business_id, user_id, week_key, kpi_actuals) VALUES (%s, %s, %s, %s) "
            "RETURNING {columns}"
        ).format(
            table=sql.Identifier(self.table),
            columns=sql.SQL(', ').join(map(sql.Identifier, SNAPSHOT_COLUMNS)),
        )
        rows = self._fetch(query, (business_id, user_id, week_key, Json({})))
        logger.info(f"Created snapshot for business {business_id}, week {week_key}")
        return WeeklyMetricSnapshot.from_record(_stringify_week_key(rows[0])) if rows else snapshot

    def upsert(self, snapshot):
        query = sql.SQL(
            "INSERT INTO {table} ({columns}) VALUES ({values}) "
            "ON CONFLICT (business_id, week_key) DO UPDATE SET {updates}, updated_at = now()"
        ).format(
            table=sql.Identifier(self.table),
            columns=sql.SQL(', ').join(map(sql.Identifier, WRITE_COLUMNS)),
            values=sql.SQL(', ').join(sql.Placeholder() * len(WRITE_COLUMNS)),
            updates=sql.SQL(', ').join(
                sql.SQL("{0} = EXCLUDED.{0}").format(sql.Identifier(column)) for column in sorted(UPDATABLE_FIELDS)
            ),
        )
        record = snapshot.to_record()
        params = [Json(record[c] or {}) if c == 'kpi_actuals' else record[c] for c in WRITE_COLUMNS]
        written = self._write(query, params)
        if written:
            logger.info(f"Saved snapshot for business {snapshot.business_id}, week {snapshot.week_key}")
        return written

    def list_recent(self, business_id, limit=RECENT_SNAPSHOT_LIMIT):
        query = sql.SQL("{select} WHERE business_id = %s ORDER BY week_key DESC LIMIT %s").format(
            select=self._select())
        rows = self._fetch(query, (business_id, limit))
        logger.info(f"Fetched {len(rows)} snapshots for business {business_id}")
        return [WeeklyMetricSnapshot.from_record(_stringify_week_key(row)) for row in rows]


class PostgresPreferencesRepository(_PostgresMixin, PreferencesRepository):
    """Preference store backed by the `dashboard_preferences` table, unique on (business_id, user_id)."""

    def __init__(self, config: dict):
        super().__init__(config)
        self.connection = None
        self.table = self.config.get("preferences_table", PREFERENCES_TABLE)

    def load(self, business_id, user_id):
        query = sql.SQL(
            "SELECT business_id, user_id, visible_core_metrics, hidden_custom_kpis FROM {table} "
            "WHERE business_id = %s AND user_id = %s"
        ).format(table=sql.Identifier(self.table))
        rows = self._fetch(query, (business_id, user_id))
        return DashboardPreferences.from_record(rows[0]) if rows else None

    def save(self, preferences):
        query = sql.SQL(
            "INSERT INTO {table} (business_id, user_id, visible_core_metrics, hidden_custom_kpis) "
            "VALUES (%s, %s, %s, %s) ON CONFLICT (business_id, user_id) DO UPDATE SET "
            "visible_core_metrics = EXCLUDED.visible_core_metrics, hidden_custom_kpis = EXCLUDED.hidden_custom_kpis"
        ).format(table=sql.Identifier(self.table))
        record = preferences.to_record()
        return self._write(query, (record['business_id'], record['user_id'],
                                   record['visible_core_metrics'], record['hidden_custom_kpis']))


def _stringify_week_key(row):
    # a DATE column comes back as datetime.date
    week_key = row.get('week_key')
    if week_key is not None and not isinstance(week_key, str):
        row = {**row, 'week_key': week_key.isoformat()}
    return row
