import logging

from scorecard.constants import WEEK_ENDING
from scorecard.week_utility import is_past_week

logger = logging.getLogger(__name__)


def is_editable(is_current_week, week_key, past_weeks_unlocked, week_convention=WEEK_ENDING, today=None):
    """
    Decides whether a week's values may be changed.

    The current week is always editable. A past week is editable only while
    past weeks are unlocked. A missing week key and any future week are not.

    Args:
        is_current_week (bool): Whether the column is today's week.
        week_key (str | None): The week key of the column.
        past_weeks_unlocked (bool): The user's unlock toggle.
        week_convention (str): 'ending' or 'beginning'.
        today (datetime.date, optional): Defaults to the current local date.

    Returns:
        bool: True when the week may be edited.
    """
    if is_current_week:
        return True
    if not week_key:
        return False
    if is_past_week(week_key, week_convention, today):
        return bool(past_weeks_unlocked)
    logger.debug(f"Week {week_key} is not in the past, it can not be edited")
    return False
