import copy
import datetime
import logging
import uuid

from scorecard.constants import RECENT_SNAPSHOT_LIMIT
from scorecard.snapshot import new_snapshot
from scorecard.week_utility import parse_week_key

from .base import PreferencesRepository, SnapshotRepository

logger = logging.getLogger(__name__)


def _now():
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


class InMemorySnapshotRepository(SnapshotRepository):
    """
    Snapshot store kept in a dict, keyed by (business id, week key).

    Stored and returned snapshots are copies, so callers can not change stored
    rows without going through `upsert`.
    """

    def __init__(self, config: dict = None, snapshots=None):
        super().__init__(config)
        self._rows = {}
        for snapshot in snapshots or []:
            self.upsert(snapshot)

    def get(self, business_id, week_key):
        snapshot = self._rows.get((business_id, week_key))
        return copy.deepcopy(snapshot) if snapshot is not None else None

    def create(self, business_id, user_id, week_key):
        if (business_id, week_key) in self._rows:
            raise ValueError(f"A snapshot for business {business_id} and week {week_key} already exists")
        snapshot = new_snapshot(business_id, user_id, week_key)
        snapshot.id = str(uuid.uuid4())
        snapshot.created_at = snapshot.updated_at = _now()
        self._rows[(business_id, week_key)] = snapshot
        logger.info(f"Created snapshot for business {business_id}, week {week_key}")
        return copy.deepcopy(snapshot)

    def upsert(self, snapshot):
        stored = copy.deepcopy(snapshot)
        existing = self._rows.get((snapshot.business_id, snapshot.week_key))
        stored.id = stored.id or (existing.id if existing else str(uuid.uuid4()))
        stored.created_at = stored.created_at or (existing.created_at if existing else _now())
        stored.updated_at = _now()
        self._rows[(snapshot.business_id, snapshot.week_key)] = stored
        return True

    def list_recent(self, business_id, limit=RECENT_SNAPSHOT_LIMIT):
        rows = [s for (b, _), s in self._rows.items() if b == business_id]
        rows.sort(key=lambda s: parse_week_key(s.week_key), reverse=True)
        return [copy.deepcopy(s) for s in rows[:limit]]


class InMemoryPreferencesRepository(PreferencesRepository):

    def __init__(self, config: dict = None):
        super().__init__(config)
        self._rows = {}

    def load(self, business_id, user_id):
        preferences = self._rows.get((business_id, user_id))
        return copy.deepcopy(preferences) if preferences is not None else None

    def save(self, preferences):
        self._rows[(preferences.business_id, preferences.user_id)] = copy.deepcopy(preferences)
        return True
