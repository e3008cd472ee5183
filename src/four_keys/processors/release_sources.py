"""Resolve tags into release sources ordered newest first."""

from typing import Iterable, List, Tuple

from ..logging import get_logger
from ..models import Commit, ReleaseSource

logger = get_logger(__name__)


def get_release_sources(tags: Iterable[Tuple[str, Commit]]) -> List[ReleaseSource]:
    """
    Pair each tag with its commit and sort by committer time, newest first.

    Tags on the same commit time keep their input order.
    """
    sources = [ReleaseSource(tag=name, commit=commit) for name, commit in tags]
    sources.sort(key=lambda source: source.commit.committed_date, reverse=True)
    logger.debug(f"Resolved {len(sources)} release sources")
    return sources
