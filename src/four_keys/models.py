"""Data models for the four keys tool."""

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Optional


@dataclass(frozen=True)
class Commit:
    """Represents a git commit as seen by the release engine."""

    sha: str
    message: str
    committed_date: datetime  # Committer time, not author time
    authored_date: Optional[datetime] = None

    @property
    def subject(self) -> str:
        """First line of the commit message."""
        return self.message.splitlines()[0] if self.message else ""

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "sha": self.sha,
            "message": self.message,
            "committed_date": self.committed_date.isoformat(),
            "authored_date": self.authored_date.isoformat() if self.authored_date else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Commit":
        """Create from dictionary."""
        return cls(
            sha=data["sha"],
            message=data["message"],
            committed_date=datetime.fromisoformat(data["committed_date"]),
            authored_date=datetime.fromisoformat(data["authored_date"]) if data.get("authored_date") else None,
        )


@dataclass(frozen=True)
class ReleaseSource:
    """A tag paired with the commit it points to."""

    tag: str
    commit: Commit

    @property
    def date(self) -> datetime:
        return self.commit.committed_date


@dataclass(frozen=True)
class ReleaseResult:
    """Outcome of a release."""

    is_success: bool
    # Only set on the success that ends a failure streak
    time_to_restore: Optional[timedelta] = None

    def to_dict(self) -> dict:
        return {
            "is_success": self.is_success,
            "time_to_restore": self.time_to_restore.total_seconds() if self.time_to_restore is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ReleaseResult":
        time_to_restore = data.get("time_to_restore")
        return cls(
            is_success=data["is_success"],
            time_to_restore=timedelta(seconds=time_to_restore) if time_to_restore is not None else None,
        )


@dataclass(frozen=True)
class Release:
    """Represents a classified release (a tag worth counting)."""

    tag: str
    date: datetime
    lead_time_for_changes: timedelta = field(default_factory=timedelta)
    result: ReleaseResult = field(default_factory=lambda: ReleaseResult(is_success=True))

    @property
    def is_success(self) -> bool:
        return self.result.is_success

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "tag": self.tag,
            "date": self.date.isoformat(),
            "lead_time_for_changes": self.lead_time_for_changes.total_seconds(),
            "result": self.result.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Release":
        """Create from dictionary."""
        return cls(
            tag=data["tag"],
            date=datetime.fromisoformat(data["date"]),
            lead_time_for_changes=timedelta(seconds=data.get("lead_time_for_changes", 0)),
            result=ReleaseResult.from_dict(data["result"]),
        )
