"""Integration tests for release classification on real repositories."""

import json
import re
import sys
import tempfile
from datetime import timedelta
from pathlib import Path

import pytest
from click.testing import CliRunner

from four_keys.calculators.metrics import compute_metrics
from four_keys.cli import cli
from four_keys.config import Option
from four_keys.extractors.git_extractor import GitExtractor
from four_keys.extractors.traversal import AncestryTraversal, NativeGitTraversal, TraversalResult
from four_keys.models import Commit
from four_keys.processors.release_classifier import query_releases

# Add fixtures directory to path so we can import create_test_repo
sys.path.insert(0, str(Path(__file__).parent.parent / "fixtures"))
from create_test_repo import BASE_DATE, create_release_repository


@pytest.mark.integration
class TestQueryReleasesIntegration:
    """Classify the tags of a throwaway repository with both traversals."""

    @pytest.fixture
    def release_repo(self):
        """Repository with v1.0.0, v1.1.0, hotfix v1.1.1 and v1.2.0."""
        with tempfile.TemporaryDirectory() as temp_dir:
            repo, path = create_release_repository(temp_dir)
            yield repo, path

    @pytest.fixture
    def option(self):
        return Option(since=BASE_DATE, until=BASE_DATE + timedelta(days=10))

    @pytest.mark.parametrize("traversal_class", [NativeGitTraversal, AncestryTraversal])
    def test_classifies_hotfix_history(self, release_repo, option, traversal_class):
        _, path = release_repo
        with GitExtractor(path) as extractor:
            releases = query_releases(extractor, option, traversal=traversal_class(extractor))

        assert [r.tag for r in releases] == ["v1.2.0", "v1.1.1", "v1.1.0", "v1.0.0"]
        assert [r.is_success for r in releases] == [True, True, False, True]
        assert [r.lead_time_for_changes for r in releases] == [
            timedelta(0),
            timedelta(0),
            timedelta(days=1),
            timedelta(days=1),
        ]
        assert releases[1].result.time_to_restore == timedelta(days=2)
        assert [r.result.time_to_restore for r in releases if r.tag != "v1.1.1"] == [None, None, None]

    def test_traversals_agree(self, release_repo, option):
        _, path = release_repo
        with GitExtractor(path) as extractor:
            native = query_releases(extractor, option, traversal=NativeGitTraversal(extractor))
            ancestry = query_releases(extractor, option, traversal=AncestryTraversal(extractor))

        assert [r.to_dict() for r in native] == [r.to_dict() for r in ancestry]

    def test_metrics(self, release_repo, option):
        _, path = release_repo
        with GitExtractor(path) as extractor:
            releases = query_releases(extractor, option)

        metrics = compute_metrics(releases, option.since, option.until)

        assert metrics.deployment_frequency == pytest.approx(0.4)
        assert metrics.lead_time_for_changes == timedelta(hours=12)
        assert metrics.time_to_restore_services == timedelta(days=2)
        assert metrics.change_failure_rate == pytest.approx(0.25)

    def test_custom_fix_commit_pattern(self, release_repo):
        _, path = release_repo
        option = Option(
            since=BASE_DATE,
            until=BASE_DATE + timedelta(days=10),
            fix_commit_pattern=re.compile(r"^Refactor"),
        )
        with GitExtractor(path) as extractor:
            releases = query_releases(extractor, option)

        # "Refactor settings" ships in v1.1.0, so v1.0.0 is the failure
        assert [r.is_success for r in releases] == [True, True, True, False]
        assert releases[2].result.time_to_restore == timedelta(days=3)

    def test_window_excludes_older_tags(self, release_repo):
        _, path = release_repo
        option = Option(since=BASE_DATE + timedelta(days=5), until=BASE_DATE + timedelta(days=10))
        with GitExtractor(path) as extractor:
            releases = query_releases(extractor, option)

        assert [r.tag for r in releases] == ["v1.2.0", "v1.1.1"]
        # v1.1.0 is outside the window but still bounds the commit range of v1.1.1
        assert releases[1].lead_time_for_changes == timedelta(0)

    def test_native_traversal_absorbs_unknown_commit(self, release_repo):
        _, path = release_repo
        missing = Commit(sha="0" * 40, message="", committed_date=BASE_DATE)
        with GitExtractor(path) as extractor:
            result = NativeGitTraversal(extractor).detect_fix_and_oldest_commit(missing, None, lambda m: True)

        assert result == TraversalResult.empty()

    def test_repository_without_tags(self, option):
        with tempfile.TemporaryDirectory() as temp_dir:
            _, path = create_release_repository(temp_dir, history=[("Initial commit", 0, None)])
            with GitExtractor(path) as extractor:
                releases = query_releases(extractor, option)

        assert releases == []
        metrics = compute_metrics(releases, option.since, option.until)
        assert metrics.deployment_frequency == 0
        assert metrics.change_failure_rate == 0


@pytest.mark.integration
class TestCLIIntegration:
    """Run the CLI against a throwaway repository."""

    @pytest.fixture
    def runner(self):
        return CliRunner()

    @pytest.fixture
    def repo_path(self):
        with tempfile.TemporaryDirectory() as temp_dir:
            _, path = create_release_repository(temp_dir)
            yield path

    def test_metrics(self, runner, repo_path):
        result = runner.invoke(cli, [
            '--repository', repo_path,
            '--since', '2024-01-01',
            '--until', '2024-01-10',
        ])

        assert result.exit_code == 0
        output = json.loads(result.output)
        assert output["deployment_frequency"] == pytest.approx(0.4)
        assert output["change_failure_rate"] == pytest.approx(0.25)
        assert output["time_to_restore_services"] == {"value": 2.0, "unit": "days"}

    def test_releases_with_ignore_pattern(self, runner, repo_path):
        result = runner.invoke(cli, [
            'releases',
            '--repository', repo_path,
            '--since', '2024-01-01',
            '--until', '2024-01-10',
            '--ignore-pattern', r'\.1$',
        ])

        assert result.exit_code == 0
        output = json.loads(result.output)
        assert [r["tag"] for r in output["releases"]] == ["v1.2.0", "v1.1.0", "v1.0.0"]
