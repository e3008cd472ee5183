"""Query options and their validation."""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional, Pattern

from dateutil import parser as date_parser

from .logging import get_logger

logger = get_logger(__name__)

DEFAULT_FIX_COMMIT_TOKEN = "hotfix"
DEFAULT_WINDOW_DAYS = 365

_DATE_ONLY = re.compile(r"^\s*\d{4}-\d{2}-\d{2}\s*$")


class OptionError(ValueError):
    """Raised when a user supplied option cannot be used."""

    def __init__(self, field: str, value: Optional[str], reason: str):
        self.field = field
        self.value = value
        self.reason = reason
        super().__init__(f"invalid --{field} {value!r}: {reason}")


@dataclass(frozen=True)
class Option:
    """Immutable options for one release query.

    The time window is ``[since, until)``.
    """

    since: datetime
    until: datetime
    ignore_pattern: Optional[Pattern[str]] = None
    fix_commit_pattern: Optional[Pattern[str]] = None
    is_local_repository: bool = True

    def is_in_time_range(self, date: datetime) -> bool:
        return self.since <= date < self.until

    def should_ignore(self, tag: str) -> bool:
        if self.ignore_pattern is None:
            return False
        return self.ignore_pattern.search(tag) is not None

    def is_fix_commit(self, message: str) -> bool:
        if self.fix_commit_pattern is None:
            return DEFAULT_FIX_COMMIT_TOKEN in message
        return self.fix_commit_pattern.search(message) is not None

    def window_days(self) -> int:
        """Number of whole days in the window, never negative."""
        return max((self.until - self.since) // timedelta(days=1), 0)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "since": self.since.isoformat(),
            "until": self.until.isoformat(),
            "ignore_pattern": self.ignore_pattern.pattern if self.ignore_pattern else None,
            "fix_commit_pattern": self.fix_commit_pattern.pattern if self.fix_commit_pattern else None,
            "is_local_repository": self.is_local_repository,
        }

    @classmethod
    def from_strings(
        cls,
        since: Optional[str] = None,
        until: Optional[str] = None,
        ignore_pattern: Optional[str] = None,
        fix_commit_pattern: Optional[str] = None,
        is_local_repository: bool = True,
        now: Optional[datetime] = None,
    ) -> "Option":
        """
        Build options from command-line strings.

        Args:
            since: Start of the window, inclusive. Defaults to one year before ``until``
            until: End of the window. A bare date covers that whole day. Defaults to now
            ignore_pattern: Regular expression for tag names to skip
            fix_commit_pattern: Regular expression for fix commit messages
            is_local_repository: Use the native git traversal
            now: Reference time for defaults

        Raises:
            OptionError: If any value cannot be parsed or the window is empty
        """
        if until:
            until_date = _parse_date("until", until)
            if _DATE_ONLY.match(until):
                until_date += timedelta(days=1)
        else:
            until_date = now or datetime.now(timezone.utc)

        if since:
            since_date = _parse_date("since", since)
        else:
            since_date = until_date - timedelta(days=DEFAULT_WINDOW_DAYS)

        if since_date >= until_date:
            raise OptionError("since", since, f"must be earlier than until ({until_date.isoformat()})")

        option = cls(
            since=since_date,
            until=until_date,
            ignore_pattern=_compile("ignore-pattern", ignore_pattern),
            fix_commit_pattern=_compile("fix-commit-pattern", fix_commit_pattern),
            is_local_repository=is_local_repository,
        )
        logger.debug(f"Using options {option.to_dict()}")
        return option


def _parse_date(field: str, value: str) -> datetime:
    try:
        parsed = date_parser.parse(value)
    except (ValueError, OverflowError) as e:
        raise OptionError(field, value, str(e)) from e
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _compile(field: str, value: Optional[str]) -> Optional[Pattern[str]]:
    if not value:
        return None
    try:
        return re.compile(value)
    except re.error as e:
        raise OptionError(field, value, str(e)) from e
