"""Classify tagged releases as successful or failed.

Releases are processed newest first. A release is failed when the commits
added by the next-newer release contain a fix commit, so each step carries
the fix signal of the previous step forward. That carried state lives in an
immutable ``ClassifierState`` which ``classify_release`` folds over the
release sources.
"""

from dataclasses import dataclass, replace
from typing import List, Optional, Sequence, Tuple

from ..config import Option
from ..extractors.traversal import CommitRangeTraversal, create_traversal
from ..hooks import QueryHooks
from ..logging import get_logger
from ..models import Release, ReleaseResult, ReleaseSource
from .release_sources import get_release_sources

logger = get_logger(__name__)

_NO_HOOKS = QueryHooks()


@dataclass(frozen=True)
class ClassifierState:
    """Accumulator threaded through the classification fold."""

    releases: Tuple[Release, ...] = ()
    # Index of the newest success that may still end a failure streak
    pending_restore_index: int = -1
    # Whether the release emitted last contained a fix commit
    is_restored_by_newer_release: bool = False


def classify_release(
    state: ClassifierState,
    sources: Sequence[ReleaseSource],
    index: int,
    option: Option,
    traversal: CommitRangeTraversal,
    hooks: Optional[QueryHooks] = None,
) -> ClassifierState:
    """
    Classify ``sources[index]`` and return the next state.

    ``sources`` must be ordered newest first. Ignored or out-of-window
    sources leave the state untouched.
    """
    hooks = hooks or _NO_HOOKS
    source = sources[index]
    if option.should_ignore(source.tag):
        hooks.debug(f"source[{index}]({source.tag}) is ignored")
        return state
    if not option.is_in_time_range(source.date):
        hooks.debug(f"source[{index}]({source.tag}) is out of time range")
        return state

    releases = list(state.releases)
    pending_restore_index = state.pending_restore_index
    is_success = not state.is_restored_by_newer_release
    if is_success:
        releases = _restore_streak(releases, pending_restore_index)
        pending_restore_index = len(releases)

    prior = sources[index + 1].commit if index + 1 < len(sources) else None
    result = traversal.detect_fix_and_oldest_commit(source.commit, prior, option.is_fix_commit)

    releases.append(
        Release(
            tag=source.tag,
            date=source.date,
            lead_time_for_changes=result.lead_time_for(source.date),
            result=ReleaseResult(is_success=is_success),
        )
    )
    return ClassifierState(
        releases=tuple(releases),
        pending_restore_index=pending_restore_index,
        is_restored_by_newer_release=result.has_fix_commit,
    )


def close_restore_streak(state: ClassifierState) -> ClassifierState:
    """
    Finish the fold.

    A failure streak that reaches the oldest release in the window is
    restored by the success newer than it, measured from the oldest failure
    that was seen.
    """
    releases = _restore_streak(list(state.releases), state.pending_restore_index)
    return replace(state, releases=tuple(releases))


def _restore_streak(releases: List[Release], pending_restore_index: int) -> List[Release]:
    if not releases or releases[-1].is_success or pending_restore_index < 0:
        return releases
    restored = releases[pending_restore_index]
    time_to_restore = restored.date - releases[-1].date
    releases[pending_restore_index] = replace(
        restored, result=replace(restored.result, time_to_restore=time_to_restore)
    )
    return releases


def query_releases(
    extractor,
    option: Option,
    traversal: Optional[CommitRangeTraversal] = None,
    hooks: Optional[QueryHooks] = None,
) -> List[Release]:
    """
    Query classified releases from a repository.

    Args:
        extractor: Repository access, usually a ``GitExtractor``
        option: Window and patterns for this query
        traversal: Commit-range strategy. Chosen from ``option`` when omitted
        hooks: Timing and debug hooks. No-op when omitted

    Returns:
        Releases ordered newest first
    """
    hooks = hooks or _NO_HOOKS
    traversal = traversal or create_traversal(extractor, option)

    hooks.start_timer("query_releases")
    try:
        hooks.start_timer("query_tags")
        tags = extractor.list_tags()
        hooks.stop_timer("query_tags")
        hooks.debug("Tags count:", len(tags))

        sources = get_release_sources(tags)
        hooks.debug("Sources count:", len(sources))

        state = ClassifierState()
        for index, source in enumerate(sources):
            timer_key = f"source[{index}]({source.tag}) metrics"
            hooks.start_timer(timer_key)
            state = classify_release(state, sources, index, option, traversal, hooks)
            hooks.stop_timer(timer_key)
        state = close_restore_streak(state)
    finally:
        hooks.stop_timer("query_releases")

    logger.info(f"Classified {len(state.releases)} of {len(sources)} tags as releases")
    return list(state.releases)
