"""Unit tests for query options."""

import re
from datetime import datetime, timedelta, timezone

import pytest

from four_keys.config import DEFAULT_WINDOW_DAYS, Option, OptionError


@pytest.mark.unit
class TestOptionFromStrings:
    """Test parsing of user supplied options."""

    def test_dates(self):
        option = Option.from_strings(since="2020-01-01", until="2020-12-31")

        assert option.since == datetime(2020, 1, 1, tzinfo=timezone.utc)
        # A bare until date covers that whole day
        assert option.until == datetime(2021, 1, 1, tzinfo=timezone.utc)
        assert option.window_days() == 366

    def test_until_with_time_is_kept(self):
        option = Option.from_strings(since="2020-01-01", until="2020-01-10T12:00:00")

        assert option.until == datetime(2020, 1, 10, 12, tzinfo=timezone.utc)
        assert option.window_days() == 9

    def test_offset_is_kept(self):
        option = Option.from_strings(since="2020-01-01T00:00:00+09:00", until="2020-01-02")

        assert option.since.utcoffset() == timedelta(hours=9)

    def test_defaults(self):
        now = datetime(2024, 6, 1, tzinfo=timezone.utc)

        option = Option.from_strings(now=now)

        assert option.until == now
        assert option.since == now - timedelta(days=DEFAULT_WINDOW_DAYS)
        assert option.ignore_pattern is None
        assert option.fix_commit_pattern is None
        assert option.is_local_repository

    def test_invalid_since(self):
        with pytest.raises(OptionError, match="since") as exc_info:
            Option.from_strings(since="invalidtext", until="2020-12-31")

        assert exc_info.value.field == "since"
        assert exc_info.value.value == "invalidtext"

    def test_invalid_until(self):
        with pytest.raises(OptionError, match="until") as exc_info:
            Option.from_strings(until="invalidtext")

        assert exc_info.value.field == "until"

    def test_since_after_until(self):
        with pytest.raises(OptionError, match="since"):
            Option.from_strings(since="2021-01-01", until="2020-01-01")

    def test_invalid_ignore_pattern(self):
        with pytest.raises(OptionError, match="ignore-pattern"):
            Option.from_strings(since="2020-01-01", until="2020-12-31", ignore_pattern="v(")

    def test_invalid_fix_commit_pattern(self):
        with pytest.raises(OptionError, match="fix-commit-pattern"):
            Option.from_strings(since="2020-01-01", until="2020-12-31", fix_commit_pattern="[")

    def test_option_error_is_value_error(self):
        assert issubclass(OptionError, ValueError)


@pytest.mark.unit
class TestOption:
    """Test option predicates."""

    @pytest.fixture
    def option(self):
        return Option(
            since=datetime(2024, 1, 1, tzinfo=timezone.utc),
            until=datetime(2024, 2, 1, tzinfo=timezone.utc),
        )

    def test_time_range_is_half_open(self, option):
        assert option.is_in_time_range(option.since)
        assert option.is_in_time_range(option.until - timedelta(seconds=1))
        assert not option.is_in_time_range(option.until)
        assert not option.is_in_time_range(option.since - timedelta(seconds=1))

    def test_default_fix_commit_is_hotfix_substring(self, option):
        assert option.is_fix_commit("hotfix: broken login")
        assert option.is_fix_commit("Merge branch 'hotfix/login'")
        assert not option.is_fix_commit("Hotfix with capital letter")
        assert not option.is_fix_commit("fix: typo")

    def test_custom_fix_commit_pattern(self):
        option = Option(
            since=datetime(2024, 1, 1, tzinfo=timezone.utc),
            until=datetime(2024, 2, 1, tzinfo=timezone.utc),
            fix_commit_pattern=re.compile(r"^(fix|revert)", re.IGNORECASE),
        )

        assert option.is_fix_commit("Revert \"Add feature\"")
        assert option.is_fix_commit("fix: typo")
        assert not option.is_fix_commit("hotfix: broken login")

    def test_no_ignore_pattern_ignores_nothing(self, option):
        assert not option.should_ignore("v1.0.0")

    def test_ignore_pattern(self):
        option = Option(
            since=datetime(2024, 1, 1, tzinfo=timezone.utc),
            until=datetime(2024, 2, 1, tzinfo=timezone.utc),
            ignore_pattern=re.compile(r"-(alpha|beta|rc)"),
        )

        assert option.should_ignore("v1.0.0-rc.1")
        assert not option.should_ignore("v1.0.0")

    def test_window_days_never_negative(self, option):
        reversed_window = Option(since=option.until, until=option.since)

        assert reversed_window.window_days() == 0

    def test_to_dict(self, option):
        data = option.to_dict()

        assert data["since"] == "2024-01-01T00:00:00+00:00"
        assert data["until"] == "2024-02-01T00:00:00+00:00"
        assert data["ignore_pattern"] is None
