from .base import PreferencesRepository, SnapshotRepository
from .memory import InMemoryPreferencesRepository, InMemorySnapshotRepository
from .postgres import PostgresPreferencesRepository, PostgresSnapshotRepository

import logging

logger = logging.getLogger(__name__)

_REPOSITORY_MAP = {
    "memory": (InMemorySnapshotRepository, InMemoryPreferencesRepository),
    "postgres": (PostgresSnapshotRepository, PostgresPreferencesRepository),
}


def _lookup(repository_type: str):
    repository_classes = _REPOSITORY_MAP.get(str(repository_type).lower())
    if not repository_classes:
        logger.error(f"Unsupported repository type: {repository_type}")
        raise ValueError(f"Unsupported repository type: {repository_type}. Supported types are: {list(_REPOSITORY_MAP.keys())}")
    return repository_classes


def get_repository(repository_type: str, config: dict = None) -> SnapshotRepository:
    """
    Factory function to get a snapshot repository instance.

    Args:
        repository_type (str): The type of store (e.g., "memory", "postgres").
        config (dict): The configuration dictionary for the repository.

    Returns:
        SnapshotRepository: An instance of the appropriate repository.

    Raises:
        ValueError: If the repository_type is not supported.
    """
    snapshot_class, _ = _lookup(repository_type)
    logger.info(f"Creating snapshot repository of type: {repository_type}")
    return snapshot_class(config or {})


def get_preferences_repository(repository_type: str, config: dict = None) -> PreferencesRepository:
    _, preferences_class = _lookup(repository_type)
    return preferences_class(config or {})


__all__ = [
    "SnapshotRepository",
    "PreferencesRepository",
    "InMemorySnapshotRepository",
    "InMemoryPreferencesRepository",
    "PostgresSnapshotRepository",
    "PostgresPreferencesRepository",
    "get_repository",
    "get_preferences_repository",
]
