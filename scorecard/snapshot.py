import copy
import logging
import math
import re
from dataclasses import asdict, dataclass, field, fields
from typing import Dict, Optional

from scorecard.constants import METRIC_FIELDS
from scorecard.week_utility import parse_week_key

logger = logging.getLogger(__name__)

_NON_NUMERIC_CHARS = re.compile(r'[^0-9.\-]')


@dataclass
class WeeklyMetricSnapshot:
    """
    One business's metric values for one week.

    Attributes:
        business_id (str): Owning business.
        user_id (str): User that created the row.
        week_key (str): `YYYY-MM-DD` week key; its weekday depends on the active week convention.
        revenue_actual ... owner_hours_actual (float, optional): Built-in metric values, None when unset.
        kpi_actuals (dict): Custom-indicator id to value.
        notes (str, optional): Free text.
        id (str, optional): Store-assigned identifier, None until first persisted.
    """
    business_id: str
    user_id: str
    week_key: str
    revenue_actual: Optional[float] = None
    gross_profit_actual: Optional[float] = None
    net_profit_actual: Optional[float] = None
    leads_actual: Optional[float] = None
    conversion_rate_actual: Optional[float] = None
    avg_transaction_value_actual: Optional[float] = None
    team_headcount_actual: Optional[float] = None
    owner_hours_actual: Optional[float] = None
    kpi_actuals: Dict[str, float] = field(default_factory=dict)
    notes: Optional[str] = None
    id: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def to_record(self):
        return asdict(self)

    @classmethod
    def from_record(cls, record):
        """
        Maps a stored row (dict) onto a snapshot, ignoring unknown columns.

        A missing or null `kpi_actuals` becomes an empty mapping.
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in record.items() if k in known}
        values['kpi_actuals'] = dict(values.get('kpi_actuals') or {})
        return cls(**values)


UPDATABLE_FIELDS = frozenset(list(METRIC_FIELDS.values()) + ['kpi_actuals', 'notes'])


def new_snapshot(business_id, user_id, week_key):
    parse_week_key(week_key)
    return WeeklyMetricSnapshot(business_id=business_id, user_id=user_id, week_key=week_key)


def apply_updates(snapshot, updates):
    """
    Returns a copy of the snapshot with a partial, field-level update applied.

    `kpi_actuals` in the update is merged into the existing mapping rather than
    replacing it, so one custom indicator can be edited without the others.

    Raises:
        KeyError: If the update names a field that can not be edited.
    """
    unknown = set(updates) - UPDATABLE_FIELDS
    if unknown:
        raise KeyError(f"Can not update snapshot fields {sorted(unknown)}; editable fields are "
                       f"{sorted(UPDATABLE_FIELDS)}")

    updated = copy.deepcopy(snapshot)
    for name, value in updates.items():
        if name == 'kpi_actuals':
            updated.kpi_actuals = {**updated.kpi_actuals, **(value or {})}
        else:
            setattr(updated, name, value)
    return updated


class SnapshotIndex:
    """
    Read-only lookup from week key to snapshot.

    Built from a loaded collection; when the collection holds more than one row
    for a week key the first one wins.
    """

    def __init__(self, snapshots=None):
        self._by_week = {}
        for snapshot in snapshots or []:
            if snapshot is None:
                continue
            if snapshot.week_key in self._by_week:
                logger.warning(f"Duplicate snapshot for week {snapshot.week_key}, keeping the first one")
                continue
            self._by_week[snapshot.week_key] = snapshot

    def get(self, week_key):
        return self._by_week.get(week_key)

    def resolve(self, week_keys):
        return [self._by_week.get(week_key) for week_key in week_keys]

    def week_keys(self):
        return sorted(self._by_week)

    def __contains__(self, week_key):
        return week_key in self._by_week

    def __len__(self):
        return len(self._by_week)

    def __iter__(self):
        return iter(self._by_week.values())


def parse_number_input(value, allow_negative=True):
    """
    Coerces user-entered text into a number.

    Everything except digits, '.' and '-' is stripped first, so '$1,250.50'
    becomes 1250.5. Text that still does not parse becomes 0, and so does a
    negative result when negatives are not allowed.

    Args:
        value (str | float | int | None): The raw input.
        allow_negative (bool): Whether a negative result is kept.

    Returns:
        float: The coerced number.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
    else:
        cleaned = _NON_NUMERIC_CHARS.sub('', str(value))
        try:
            number = float(cleaned)
        except ValueError:
            return 0.0
    if not math.isfinite(number):
        return 0.0
    if number < 0 and not allow_negative:
        return 0.0
    return number


def parse_dollar_input(value):
    return parse_number_input(value, allow_negative=False)
