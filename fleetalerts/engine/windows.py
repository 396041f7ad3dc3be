"""Time-window and level classification rules.

All functions here are pure: the same inputs and the same ``now`` always give
the same result. Day counts use ceiling rounding on the signed difference
(a deadline 1 hour away counts as 1 day, one 1 hour past counts as 0 days),
and overdue rental days are the ceiling of the absolute difference with a
floor of 1, so a rental 1 minute late is "overdue by 1 days".
"""

import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from fleetalerts.models.alert import AlertPriority, AlertSeverity
from fleetalerts.models.thresholds import ThresholdConfig

SECONDS_PER_HOUR = 3600
SECONDS_PER_DAY = 86400


class WindowState(str, Enum):
    """Position of a deadline relative to now."""

    OVERDUE = "overdue"
    URGENT = "urgent"
    DUE_SOON = "due_soon"
    NONE = "none"


@dataclass(frozen=True)
class Classification:
    """Outcome of a classification rule."""

    state: WindowState
    severity: AlertSeverity
    priority: AlertPriority


OVERDUE = Classification(WindowState.OVERDUE, AlertSeverity.ERROR, AlertPriority.HIGH)


def hours_until(deadline: datetime, now: datetime) -> float:
    """Signed hours from now until deadline (negative when past)."""
    return (deadline - now).total_seconds() / SECONDS_PER_HOUR


def days_until(deadline: datetime, now: datetime) -> int:
    """Signed whole days until deadline, rounded up."""
    return math.ceil((deadline - now).total_seconds() / SECONDS_PER_DAY)


def overdue_days(hours_left: float) -> int:
    """Whole days overdue for a negative hours_left, at least 1."""
    return max(1, math.ceil(abs(hours_left) / 24))


def due_in_hours(hours_left: float) -> int:
    """Whole hours until due for display, at least 1."""
    return max(1, math.ceil(hours_left))


def classify_rental_return(hours_left: float, window_hours: float) -> Classification | None:
    """Classify a rental return deadline.

    Args:
        hours_left: Hours until the rental is due back
        window_hours: Due-soon window in hours

    Returns:
        Overdue or due-soon classification, None when outside the window
    """
    if hours_left < 0:
        return OVERDUE
    if hours_left <= window_hours:
        return Classification(WindowState.DUE_SOON, AlertSeverity.WARNING, AlertPriority.MEDIUM)
    return None


def classify_fuel_level(percentage: float, threshold: float) -> Classification | None:
    """Classify a tank fill level in percent.

    Levels at or below half the threshold are high priority.
    """
    if percentage > threshold:
        return None
    if percentage <= threshold / 2:
        return Classification(WindowState.URGENT, AlertSeverity.ERROR, AlertPriority.HIGH)
    return Classification(WindowState.DUE_SOON, AlertSeverity.WARNING, AlertPriority.MEDIUM)


def classify_maintenance(days_left: int, thresholds: ThresholdConfig) -> Classification | None:
    """Classify a scheduled maintenance by whole days until due."""
    if days_left < 0:
        return OVERDUE
    if days_left <= thresholds.maintenance_urgent_days:
        return Classification(WindowState.URGENT, AlertSeverity.WARNING, AlertPriority.MEDIUM)
    if days_left <= thresholds.maintenance_due_soon_days:
        return Classification(WindowState.DUE_SOON, AlertSeverity.INFO, AlertPriority.MEDIUM)
    return None


def classify_oil_change(km_left: float, thresholds: ThresholdConfig) -> Classification | None:
    """Classify remaining kilometres before the next oil change."""
    if km_left <= 0:
        return OVERDUE
    if km_left <= thresholds.oil_change_urgent_km:
        return Classification(WindowState.URGENT, AlertSeverity.WARNING, AlertPriority.MEDIUM)
    if km_left <= thresholds.oil_change_warning_km:
        return Classification(WindowState.DUE_SOON, AlertSeverity.INFO, AlertPriority.LOW)
    return None


def classify_document_expiry(days_left: int, thresholds: ThresholdConfig) -> Classification | None:
    """Classify days until an insurance or registration document expires."""
    if days_left <= 0:
        return OVERDUE
    if days_left <= thresholds.document_expiry_urgent_days:
        return Classification(WindowState.URGENT, AlertSeverity.WARNING, AlertPriority.MEDIUM)
    if days_left <= thresholds.document_expiry_window_days:
        return Classification(WindowState.DUE_SOON, AlertSeverity.INFO, AlertPriority.LOW)
    return None
