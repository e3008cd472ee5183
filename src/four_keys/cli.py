"""Command-line interface for the four keys tool."""

import functools
import json
import sys
from typing import List, Optional, Tuple

import click
import pandas as pd

from .calculators.metrics import FourKeysMetrics, compute_metrics, get_performance_levels
from .config import Option, OptionError
from .extractors.git_extractor import GitExtractor, is_remote_url
from .hooks import LoggingQueryHooks, QueryHooks
from .logging import get_logger, setup_logging
from .models import Release
from .processors.release_classifier import query_releases

logger = get_logger(__name__)


def query_options(command):
    """Options shared by every command that queries releases."""
    options = [
        click.option('--repository', default='.', show_default=True, help='Local path or clone URL of the git repository'),
        click.option('--since', help='Start of the window, inclusive (e.g. 2020-01-01). Defaults to one year before --until'),
        click.option('--until', help='End of the window; a bare date covers the whole day. Defaults to now'),
        click.option('--ignore-pattern', help='Regular expression of tag names to skip'),
        click.option('--fix-commit-pattern', help='Regular expression of fix commit messages (default: contains "hotfix")'),
        click.option('--output-format', type=click.Choice(['json', 'table']), default='json', show_default=True),
        click.option('--debug', is_flag=True, help='Log debug messages and phase timings'),
    ]
    return functools.reduce(lambda decorated, option: option(decorated), reversed(options), command)


def _run_query(
    repository: str,
    since: Optional[str],
    until: Optional[str],
    ignore_pattern: Optional[str],
    fix_commit_pattern: Optional[str],
    debug: bool,
) -> Tuple[Option, List[Release]]:
    setup_logging(level="DEBUG" if debug else "WARNING")

    # Options are validated before the repository is touched
    option = Option.from_strings(
        since=since,
        until=until,
        ignore_pattern=ignore_pattern,
        fix_commit_pattern=fix_commit_pattern,
        is_local_repository=not is_remote_url(repository),
    )
    hooks = LoggingQueryHooks() if debug else QueryHooks()
    with GitExtractor(repository) as extractor:
        releases = query_releases(extractor, option, hooks=hooks)
    return option, releases


@click.group(invoke_without_command=True)
@query_options
@click.pass_context
def cli(ctx, repository: str, since: Optional[str], until: Optional[str], ignore_pattern: Optional[str],
        fix_commit_pattern: Optional[str], output_format: str, debug: bool):
    """Analyze the four keys metrics from the release tags of a git repository."""
    if ctx.invoked_subcommand is not None:
        return
    try:
        option, releases = _run_query(repository, since, until, ignore_pattern, fix_commit_pattern, debug)
        metrics = compute_metrics(releases, option.since, option.until)

        if output_format == 'json':
            click.echo(json.dumps({"option": option.to_dict(), **metrics.to_dict()}, indent=2))
        else:
            _echo_metrics_table(metrics)

    except OptionError as e:
        click.echo(f"✗ Invalid option: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"✗ Error calculating metrics: {e}", err=True)
        sys.exit(1)


@cli.command()
@query_options
def releases(repository: str, since: Optional[str], until: Optional[str], ignore_pattern: Optional[str],
             fix_commit_pattern: Optional[str], output_format: str, debug: bool):
    """List the classified releases, newest first."""
    try:
        option, found = _run_query(repository, since, until, ignore_pattern, fix_commit_pattern, debug)

        if output_format == 'json':
            output = {
                "option": option.to_dict(),
                "releases": [release.to_dict() for release in found],
            }
            click.echo(json.dumps(output, indent=2))
        else:
            _echo_releases_table(found)

    except OptionError as e:
        click.echo(f"✗ Invalid option: {e}", err=True)
        sys.exit(1)
    except Exception as e:
        click.echo(f"✗ Error querying releases: {e}", err=True)
        sys.exit(1)


def _echo_metrics_table(metrics: FourKeysMetrics) -> None:
    restore = "N/A" if metrics.restore_count == 0 else _format_duration(metrics.time_to_restore_services)
    df = pd.DataFrame([{
        'Releases': metrics.release_count,
        'Deploy Freq': f"{metrics.deployment_frequency:.3f}/day",
        'Lead Time': _format_duration(metrics.lead_time_for_changes) if metrics.release_count else "N/A",
        'Time to Restore': restore,
        'Change Failure %': f"{metrics.change_failure_rate:.1%}",
    }])
    click.echo(f"\nFour Keys ({metrics.since.date()} to {metrics.until.date()})")
    click.echo("=" * 80)
    click.echo(df.to_string(index=False))

    click.echo("\nPerformance Level:")
    for name, level in get_performance_levels(metrics).items():
        click.echo(f"  {name}: {level}")


def _echo_releases_table(found: List[Release]) -> None:
    if not found:
        click.echo("No releases in the specified window")
        return
    df = pd.DataFrame([
        {
            'Tag': release.tag,
            'Date': release.date.isoformat(),
            'Result': "success" if release.is_success else "failure",
            'Lead Time': _format_duration(release.lead_time_for_changes),
            'Time to Restore': (
                _format_duration(release.result.time_to_restore)
                if release.result.time_to_restore is not None else ""
            ),
        }
        for release in found
    ])
    click.echo(df.to_string(index=False))


def _format_duration(duration) -> str:
    return f"{duration.total_seconds() / 3600:.1f}h"


def main():
    """Main entry point for the CLI."""
    cli()


if __name__ == '__main__':
    main()
