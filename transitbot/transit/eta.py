"""Arrival-time estimation policies.

A policy maps a number of stops to an estimated number of minutes. The
default is a placeholder, not a real ETA model.
"""

from collections.abc import Callable

EtaPolicy = Callable[[int], int]

MINUTES_PER_STOP = 2


def per_stop_minutes(stop_count: int) -> int:
    """Flat two minutes per stop."""
    return MINUTES_PER_STOP * stop_count
