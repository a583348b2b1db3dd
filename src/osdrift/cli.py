"""CLI entrypoint for osdrift."""

import logging
import os
import sys

import click

from osdrift.formatter import FORMATTERS
from osdrift.loader import ProjectDiscoveryError, ensure_project_dirs, process_all_projects
from osdrift.notify import post_to_github_pr, post_to_slack
from osdrift.report import ALL, RESOURCE_FILTERS, STATUS_FILTERS

EXIT_DRIFT = 1
EXIT_ERROR = 2


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )


@click.group()
def main():
    """Detect drift between Terraform state and OpenStack cache exports."""


@main.command()
@click.option(
    "--path",
    "-p",
    "root",
    required=True,
    type=click.Path(file_okay=False),
    help="Directory containing one folder per project.",
)
@click.option(
    "--resource",
    "-r",
    type=click.Choice([*RESOURCE_FILTERS, ALL]),
    default=ALL,
    help="Only report this resource type.",
)
@click.option(
    "--status",
    "-s",
    type=click.Choice([*STATUS_FILTERS, ALL]),
    default=ALL,
    help="Only report this drift status.",
)
@click.option(
    "--format",
    "-o",
    "output_format",
    type=click.Choice(list(FORMATTERS)),
    default="table",
    help="Output format.",
)
@click.option("--post-slack", is_flag=True, help="Post a drift summary to a Slack webhook.")
@click.option("--post-github-pr", type=int, default=None, help="Post report as GitHub PR comment.")
@click.option("--verbose", "-v", is_flag=True, help="Log per-project and per-file progress.")
def check(root, resource, status, output_format, post_slack, post_github_pr, verbose):
    """Compare each project's state/ and truth/ directories.

    Exits 1 when drift is found, 0 otherwise.
    """
    _configure_logging(verbose)

    try:
        report = process_all_projects(root)
    except ProjectDiscoveryError as exc:
        click.echo(f"Error: {exc}", err=True)
        sys.exit(EXIT_ERROR)

    report = report.filter(resource=resource, status=status)
    click.echo(FORMATTERS[output_format](report))

    if post_slack:
        webhook_url = os.environ.get("OSDRIFT_SLACK_WEBHOOK")
        if not webhook_url:
            click.echo("Error: OSDRIFT_SLACK_WEBHOOK env var not set.", err=True)
            sys.exit(EXIT_ERROR)
        post_to_slack(report=report, webhook_url=webhook_url)

    if post_github_pr is not None:
        token = os.environ.get("GITHUB_TOKEN")
        repo = os.environ.get("GITHUB_REPO")
        if not token or not repo:
            click.echo("Error: GITHUB_TOKEN and GITHUB_REPO env vars required.", err=True)
            sys.exit(EXIT_ERROR)
        post_to_github_pr(report=report, repo=repo, pr_number=post_github_pr, token=token)

    sys.exit(EXIT_DRIFT if report.has_drift() else 0)


@main.command()
@click.option(
    "--path",
    "-p",
    "root",
    required=True,
    type=click.Path(file_okay=False),
    help="Directory containing one folder per project.",
)
@click.argument("projects", nargs=-1, required=True)
def init(root, projects):
    """Create state/ and truth/ directories for each named project."""
    for name in projects:
        project = ensure_project_dirs(os.path.join(root, name))
        click.echo(f"Created {project.state_path} and {project.truth_path}")
