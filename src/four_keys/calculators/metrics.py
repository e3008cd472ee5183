"""Four keys metrics over a sequence of classified releases."""

import json
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from ..logging import get_logger
from ..models import Release

logger = get_logger(__name__)

# Largest unit first
_TIME_UNITS: Tuple[Tuple[str, timedelta], ...] = (
    ("days", timedelta(days=1)),
    ("hours", timedelta(hours=1)),
    ("minutes", timedelta(minutes=1)),
    ("seconds", timedelta(seconds=1)),
)

_LEVEL_NAMES = ("Deployment Frequency", "Lead Time", "Time to Restore", "Change Failure Rate")


@dataclass
class FourKeysMetrics:
    """Container for the four keys over one query window."""

    deployment_frequency: float  # Releases per day
    lead_time_for_changes: timedelta  # Mean
    time_to_restore_services: timedelta  # Mean, zero when nothing was restored
    change_failure_rate: float  # Ratio (0.0 to 1.0)

    since: datetime
    until: datetime

    # Additional context
    release_count: int = 0
    failed_release_count: int = 0
    restore_count: int = 0

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "since": self.since.isoformat(),
            "until": self.until.isoformat(),
            "deployment_frequency": self.deployment_frequency,
            "lead_time_for_changes": duration_with_time_unit(self.lead_time_for_changes),
            "time_to_restore_services": duration_with_time_unit(self.time_to_restore_services),
            "change_failure_rate": self.change_failure_rate,
            "context": {
                "release_count": self.release_count,
                "failed_release_count": self.failed_release_count,
                "restore_count": self.restore_count,
            },
        }

    def to_json(self) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=2)


def duration_with_time_unit(duration: timedelta) -> dict:
    """Express a duration in the largest unit it fills at least once."""
    seconds = duration.total_seconds()
    for unit, size in _TIME_UNITS:
        if abs(seconds) >= size.total_seconds():
            return {"value": seconds / size.total_seconds(), "unit": unit}
    return {"value": seconds, "unit": "seconds"}


def compute_metrics(releases: Sequence[Release], since: datetime, until: datetime) -> FourKeysMetrics:
    """
    Calculate the four keys for releases made in ``[since, until)``.

    Args:
        releases: Classified releases, newest first or oldest first
        since: Start of the window
        until: End of the window

    Returns:
        FourKeysMetrics; every metric is zero when there are no releases
    """
    restore_times = _restore_times(releases)
    metrics = FourKeysMetrics(
        deployment_frequency=deployment_frequency(releases, since, until),
        lead_time_for_changes=mean_lead_time_for_changes(releases),
        time_to_restore_services=_mean(restore_times),
        change_failure_rate=change_failure_rate(releases),
        since=since,
        until=until,
        release_count=len(releases),
        failed_release_count=sum(1 for release in releases if not release.is_success),
        restore_count=len(restore_times),
    )
    logger.info(
        f"Computed metrics for {metrics.release_count} releases "
        f"({metrics.failed_release_count} failed, {metrics.restore_count} restored)"
    )
    return metrics


def deployment_frequency(releases: Sequence[Release], since: datetime, until: datetime) -> float:
    """Releases per day over the whole days of the window."""
    days = (until - since) // timedelta(days=1)
    if days <= 0:
        return 0.0
    return len(releases) / days


def mean_lead_time_for_changes(releases: Sequence[Release]) -> timedelta:
    return _mean([release.lead_time_for_changes for release in releases])


def mean_time_to_restore_services(releases: Sequence[Release]) -> timedelta:
    """
    Mean time from the first failure of each streak to the success after it.

    Streaks with no newer success are left out. Zero when nothing was
    restored, so check ``change_failure_rate`` to tell the two cases apart.
    """
    return _mean(_restore_times(releases))


def change_failure_rate(releases: Sequence[Release]) -> float:
    if not releases:
        return 0.0
    failed = sum(1 for release in releases if not release.is_success)
    return failed / len(releases)


def _restore_times(releases: Sequence[Release]) -> List[timedelta]:
    restore_times = []
    failed_since: Optional[datetime] = None
    for release in _oldest_first(releases):
        if not release.is_success:
            if failed_since is None:
                failed_since = release.date
            continue
        if failed_since is not None:
            restore_times.append(release.date - failed_since)
            failed_since = None
    return restore_times


def _oldest_first(releases: Sequence[Release]) -> Sequence[Release]:
    if len(releases) > 1 and releases[0].date > releases[-1].date:
        return releases[::-1]
    return releases


def _mean(durations: Sequence[timedelta]) -> timedelta:
    if not durations:
        return timedelta(0)
    seconds = np.array([duration.total_seconds() for duration in durations])
    return timedelta(seconds=float(np.mean(seconds)))


def get_lead_time_level(lead_time: timedelta) -> str:
    """Get performance level for lead time."""
    lead_time_hours = lead_time.total_seconds() / 3600
    if lead_time_hours < 24:  # Less than one day
        return "Elite"
    elif lead_time_hours < 168:  # Less than one week
        return "High"
    elif lead_time_hours < 720:  # Less than one month
        return "Medium"
    else:
        return "Low"


def get_deployment_frequency_level(deploys_per_day: float) -> str:
    """Get performance level for deployment frequency."""
    if deploys_per_day >= 1:
        return "Elite"
    elif deploys_per_day >= 1 / 7:  # At least weekly
        return "High"
    elif deploys_per_day >= 1 / 30:  # At least monthly
        return "Medium"
    else:
        return "Low"


def get_change_failure_rate_level(failure_rate: float) -> str:
    """Get performance level for change failure rate."""
    if failure_rate <= 0.05:
        return "Elite"
    elif failure_rate <= 0.10:
        return "High"
    elif failure_rate <= 0.15:
        return "Medium"
    else:
        return "Low"


def get_time_to_restore_level(time_to_restore: timedelta, restore_count: int) -> str:
    """Get performance level for time to restore; N/A when nothing was restored."""
    if restore_count == 0:
        return "N/A"
    hours = time_to_restore.total_seconds() / 3600
    if hours < 1:
        return "Elite"
    elif hours < 24:
        return "High"
    elif hours < 168:
        return "Medium"
    else:
        return "Low"


def get_performance_levels(metrics: FourKeysMetrics) -> Dict[str, str]:
    if metrics.release_count == 0:
        return {name: "N/A" for name in _LEVEL_NAMES}
    return {
        "Deployment Frequency": get_deployment_frequency_level(metrics.deployment_frequency),
        "Lead Time": get_lead_time_level(metrics.lead_time_for_changes),
        "Time to Restore": get_time_to_restore_level(metrics.time_to_restore_services, metrics.restore_count),
        "Change Failure Rate": get_change_failure_rate_level(metrics.change_failure_rate),
    }
