"""Git repository access: tags, commits and commit ranges."""

import heapq
import re
import shutil
import tempfile
from datetime import datetime
from typing import Iterator, List, Optional, Tuple

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError

from ..logging import get_logger
from ..models import Commit

logger = get_logger(__name__)

_REMOTE_URL = re.compile(r"^(\w+://|git@)")


def is_remote_url(location: str) -> bool:
    """Whether the repository location has to be cloned first."""
    return bool(_REMOTE_URL.match(location))


class GitExtractor:
    """Read tags and commit history from a git repository."""

    def __init__(self, repo_path: str):
        """
        Open a local repository, or clone a remote one into a temporary directory.

        Args:
            repo_path: Path to a local repository or a clone URL

        Raises:
            ValueError: If the repository cannot be opened or cloned
        """
        self.repo_path = repo_path
        self.is_local = not is_remote_url(repo_path)
        self._clone_dir: Optional[str] = None
        try:
            if self.is_local:
                self.repo = Repo(repo_path, search_parent_directories=True)
            else:
                self._clone_dir = tempfile.mkdtemp(prefix="four-keys-")
                logger.info(f"Cloning {repo_path}")
                self.repo = Repo.clone_from(repo_path, self._clone_dir, bare=True)
        except (InvalidGitRepositoryError, NoSuchPathError, GitCommandError) as e:
            logger.error(f"Failed to open git repository at {repo_path}: {e}")
            self.close()
            raise ValueError(f"Invalid git repository: {repo_path}") from e

    def __enter__(self) -> "GitExtractor":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        """Remove the temporary clone, if any."""
        if self._clone_dir:
            shutil.rmtree(self._clone_dir, ignore_errors=True)
            self._clone_dir = None

    def list_tags(self) -> List[Tuple[str, Commit]]:
        """
        List all tags with the commit each one points to.

        Tags that do not resolve to a commit (e.g. tags on trees) are skipped.
        """
        tags = []
        for tag in self.repo.tags:
            try:
                git_commit = tag.commit
            except ValueError as e:
                logger.warning(f"Skipping tag {tag.name}: {e}")
                continue
            tags.append((tag.name, self._convert_git_commit(git_commit)))
        logger.info(f"Found {len(tags)} tags in {self.repo_path}")
        return tags

    def resolve_commit(self, sha: str) -> Commit:
        return self._convert_git_commit(self.repo.commit(sha))

    def ancestors_between(self, root_sha: str, exclude_sha: Optional[str] = None) -> Iterator[Commit]:
        """
        Walk the ancestry of ``root_sha`` newest first.

        The walk stops at ``exclude_sha`` (exclusive) and never descends below
        its commit time, so only commits added after that commit are yielded.
        Without ``exclude_sha`` the whole history of ``root_sha`` is walked.
        """
        root = self.repo.commit(root_sha)
        boundary = self.repo.commit(exclude_sha) if exclude_sha else None

        # Max-heap on commit time, hexsha breaks ties
        queue = [(-root.committed_date, root.hexsha, root)]
        seen = {root.hexsha}
        while queue:
            _, _, git_commit = heapq.heappop(queue)
            if boundary is not None and (
                git_commit.hexsha == boundary.hexsha or git_commit.committed_date <= boundary.committed_date
            ):
                continue
            yield self._convert_git_commit(git_commit)
            for parent in git_commit.parents:
                if parent.hexsha not in seen:
                    seen.add(parent.hexsha)
                    heapq.heappush(queue, (-parent.committed_date, parent.hexsha, parent))

    def log(self, since: Optional[datetime], root_sha: str) -> List[str]:
        """
        Run ``git log`` from ``root_sha`` in date order, newest first.

        Returns:
            Lines of ``"<unix committer time> <subject>"``

        Raises:
            GitCommandError: If git exits with a non-zero status
            GitCommandNotFound: If the git binary is missing
        """
        args = []
        if since is not None:
            args.append(f"--since={since.isoformat()}")
        args.extend(["--format=%ct %s", "--date-order", root_sha])
        output = self.repo.git.log(*args)
        return [line for line in output.splitlines() if line]

    def _convert_git_commit(self, git_commit) -> Commit:
        """Convert GitPython commit object to our Commit model."""
        message = git_commit.message
        if isinstance(message, bytes):
            message = message.decode("utf-8", errors="replace")
        return Commit(
            sha=git_commit.hexsha,
            message=message.strip(),
            committed_date=git_commit.committed_datetime,
            authored_date=git_commit.authored_datetime,
        )
