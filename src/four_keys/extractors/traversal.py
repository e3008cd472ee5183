"""Commit-range traversal between two releases.

Both strategies answer the same question for a release commit ``C`` and the
next-older release commit ``P``: does any commit added after ``P`` up to ``C``
look like a fix, and when was the oldest of those commits made?
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from git.exc import GitCommandError, GitCommandNotFound

from ..config import Option
from ..logging import get_logger
from ..models import Commit

logger = get_logger(__name__)

FixCommitPredicate = Callable[[str], bool]

_LOG_LINE = re.compile(r"^(\d+) ?(.*)$")


@dataclass(frozen=True)
class TraversalResult:
    """What a commit range says about the releases on either side of it."""

    has_fix_commit: bool = False
    oldest_commit_date: Optional[datetime] = None

    @classmethod
    def empty(cls) -> "TraversalResult":
        return cls()

    def lead_time_for(self, release_date: datetime) -> timedelta:
        """Lead time of a release made at ``release_date``, zero when unknown."""
        if self.oldest_commit_date is None:
            return timedelta(0)
        return release_date - self.oldest_commit_date


class CommitRangeTraversal(ABC):
    """Strategy for scanning the commits between two releases."""

    @abstractmethod
    def detect_fix_and_oldest_commit(
        self,
        current: Commit,
        prior: Optional[Commit],
        is_fix_commit: FixCommitPredicate,
    ) -> TraversalResult:
        """
        Scan the commits reachable from ``current`` but not from ``prior``.

        Args:
            current: Commit of the release being classified
            prior: Commit of the next-older release, or None for the oldest one
            is_fix_commit: Predicate applied to commit messages

        Returns:
            TraversalResult; an empty one if the history could not be read
        """


class NativeGitTraversal(CommitRangeTraversal):
    """Scan ``git log`` output. Needs a local repository and the git binary."""

    def __init__(self, extractor):
        self.extractor = extractor

    def detect_fix_and_oldest_commit(
        self,
        current: Commit,
        prior: Optional[Commit],
        is_fix_commit: FixCommitPredicate,
    ) -> TraversalResult:
        since = prior.committed_date + timedelta(seconds=1) if prior is not None else None
        try:
            lines = self.extractor.log(since, current.sha)
        except (GitCommandError, GitCommandNotFound) as e:
            logger.warning(f"git log failed for {current.sha}: {e}")
            return TraversalResult.empty()

        if not lines:
            return TraversalResult.empty()

        has_fix_commit = False
        for line in lines:
            match = _LOG_LINE.match(line)
            subject = match.group(2) if match else line
            if is_fix_commit(subject):
                has_fix_commit = True

        # --date-order lists newest first, so the last line is the oldest commit
        match = _LOG_LINE.match(lines[-1])
        if match is None:
            logger.warning(f"Cannot read commit time from git log line {lines[-1]!r}")
            return TraversalResult.empty()
        try:
            oldest = datetime.fromtimestamp(int(match.group(1)), tz=timezone.utc)
        except (OverflowError, ValueError, OSError) as e:
            logger.warning(f"Cannot read commit time from git log line {lines[-1]!r}: {e}")
            return TraversalResult.empty()
        return TraversalResult(has_fix_commit=has_fix_commit, oldest_commit_date=oldest)


class AncestryTraversal(CommitRangeTraversal):
    """Walk commit parents in-process. Slower, but works on fresh clones."""

    def __init__(self, extractor):
        self.extractor = extractor

    def detect_fix_and_oldest_commit(
        self,
        current: Commit,
        prior: Optional[Commit],
        is_fix_commit: FixCommitPredicate,
    ) -> TraversalResult:
        has_fix_commit = False
        oldest: Optional[datetime] = None
        try:
            for commit in self.extractor.ancestors_between(current.sha, prior.sha if prior is not None else None):
                if is_fix_commit(commit.message):
                    has_fix_commit = True
                if oldest is None or commit.committed_date < oldest:
                    oldest = commit.committed_date
        except (GitCommandError, ValueError) as e:
            logger.warning(f"Walking history of {current.sha} failed: {e}")
            return TraversalResult.empty()
        return TraversalResult(has_fix_commit=has_fix_commit, oldest_commit_date=oldest)


def create_traversal(extractor, option: Option) -> CommitRangeTraversal:
    """Pick the traversal strategy the options ask for."""
    if option.is_local_repository:
        return NativeGitTraversal(extractor)
    return AncestryTraversal(extractor)
