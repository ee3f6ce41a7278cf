from scorecard.constants import (
    AHEAD_THRESHOLD_PCT,
    ON_TRACK_THRESHOLD_PCT,
    PCT_MULTIPLIER,
    TREND_AHEAD,
    TREND_BEHIND,
    TREND_ON_TRACK,
)


def expected_to_date(target, percent_complete):
    return target * percent_complete / PCT_MULTIPLIER


def classify(actual, target, percent_complete):
    """
    Classifies an actual against a target scaled by how much of the period has elapsed.

    Args:
        actual (float): Value achieved so far.
        target (float): Target for the whole period.
        percent_complete (float): Elapsed share of the period, 0-100.

    Returns:
        str: 'ahead' when the actual reaches 95% of the expected value, 'on-track' from 85%, else 'behind'.
            A zero target is always 'on-track'.

    Raises:
        ZeroDivisionError: If the target is non-zero but no time has elapsed.
    """
    if target == 0:
        return TREND_ON_TRACK

    expected = expected_to_date(target, percent_complete)
    ratio = actual / expected * PCT_MULTIPLIER

    if ratio >= AHEAD_THRESHOLD_PCT:
        return TREND_AHEAD
    if ratio >= ON_TRACK_THRESHOLD_PCT:
        return TREND_ON_TRACK
    return TREND_BEHIND
