from abc import ABC, abstractmethod

from scorecard.constants import RECENT_SNAPSHOT_LIMIT


class SnapshotRepository(ABC):
    """
    Abstract base class for weekly snapshot stores.

    A store holds at most one snapshot per (business, week key) and never deletes rows.
    """

    def __init__(self, config: dict = None):
        """
        Initialize the repository with its configuration.

        Args:
            config (dict): Store-specific connection parameters.
        """
        self.config = config or {}

    @abstractmethod
    def get(self, business_id: str, week_key: str):
        """
        Fetch the snapshot for one week.

        Returns:
            WeeklyMetricSnapshot | None: The stored snapshot, None when there is none.
        """
        pass

    @abstractmethod
    def create(self, business_id: str, user_id: str, week_key: str):
        """
        Create and store an empty snapshot for one week.

        Returns:
            WeeklyMetricSnapshot: The stored snapshot.
        """
        pass

    @abstractmethod
    def upsert(self, snapshot) -> bool:
        """
        Insert or replace the snapshot for its (business, week key).

        Returns:
            bool: True when the write succeeded.
        """
        pass

    @abstractmethod
    def list_recent(self, business_id: str, limit: int = RECENT_SNAPSHOT_LIMIT) -> list:
        """
        List the most recent snapshots of a business, newest week key first.
        """
        pass

    def get_or_create(self, business_id: str, user_id: str, week_key: str):
        snapshot = self.get(business_id, week_key)
        if snapshot is None:
            snapshot = self.create(business_id, user_id, week_key)
        return snapshot

    def connect(self):
        pass

    def disconnect(self):
        pass

    def __enter__(self):
        self.connect()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.disconnect()


class PreferencesRepository(ABC):
    """Abstract base class for dashboard preference stores."""

    def __init__(self, config: dict = None):
        self.config = config or {}

    @abstractmethod
    def load(self, business_id: str, user_id: str):
        """
        Returns:
            DashboardPreferences | None: The saved preferences, None when the user never saved any.
        """
        pass

    @abstractmethod
    def save(self, preferences) -> bool:
        pass
