"""Deliver drift reports to Slack and GitHub pull requests.

Slack gets a compact summary (tallies plus the drifted projects); a pull
request gets the full Markdown report, cut at project boundaries when it would
exceed GitHub's comment limit.
"""

import logging
import re
from urllib.parse import urlparse

import requests

from osdrift.formatter import markdown_heading, markdown_section, no_drift_message, status_counts
from osdrift.report import DriftReport

logger = logging.getLogger(__name__)

ALLOWED_SLACK_HOSTS = {"hooks.slack.com", "hooks.slack-gov.com"}
REPO_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+/[a-zA-Z0-9._-]+$")

GITHUB_COMMENT_LIMIT = 65_536
SLACK_MAX_PROJECTS = 20


def slack_summary(report: DriftReport, max_projects: int = SLACK_MAX_PROJECTS) -> str:
    """Summarize a report as Slack ``mrkdwn`` text.

    Lists drifted projects by descending drift count, at most ``max_projects``
    of them.
    """
    summary = report.summary
    if not report.has_drift():
        return f":white_check_mark: {no_drift_message(summary.total_projects)}"

    drifted = sorted(
        (p for p in report.projects if p.drifts),
        key=lambda p: (-len(p.drifts), p.project_name),
    )
    by_kind = ", ".join(f"{kind}={summary.by_kind[kind]}" for kind in sorted(summary.by_kind))
    lines = [
        f":warning: *Drift detected*: {summary.total_drift} items in "
        f"{len(drifted)}/{summary.total_projects} projects",
        f"By status: {status_counts(report)}",
        f"By resource: {by_kind}",
        "",
    ]
    lines.extend(f"- `{p.project_name}`: {len(p.drifts)}" for p in drifted[:max_projects])
    if len(drifted) > max_projects:
        lines.append(f"_...and {len(drifted) - max_projects} more projects_")
    return "\n".join(lines)


def github_comment(report: DriftReport, limit: int = GITHUB_COMMENT_LIMIT) -> str:
    """Render the Markdown report, dropping whole projects past ``limit``."""
    if not report.has_drift():
        return no_drift_message(report.summary.total_projects)

    sections = [markdown_section(p) for p in report.projects if p.drifts]
    parts = [markdown_heading(report)]
    used = len(parts[0])
    for index, section in enumerate(sections):
        remaining = len(sections) - index - 1
        # room for this section plus the note about whatever still follows it
        reserve = 1 + len(_omitted_note(remaining)) if remaining else 0
        if used + 1 + len(section) + reserve > limit:
            parts.append(_omitted_note(remaining + 1))
            break
        parts.append(section)
        used += 1 + len(section)
    return "\n".join(parts)


def post_to_slack(report: DriftReport, webhook_url: str, timeout: int = 30) -> None:
    """Post a drift summary to a Slack incoming webhook."""
    parsed = urlparse(webhook_url)
    if parsed.scheme != "https":
        raise ValueError("Slack webhook URL must use HTTPS")
    if parsed.hostname not in ALLOWED_SLACK_HOSTS:
        raise ValueError(
            f"Invalid Slack webhook host {parsed.hostname!r}: "
            f"must be one of {sorted(ALLOWED_SLACK_HOSTS)}"
        )

    response = requests.post(webhook_url, json={"text": slack_summary(report)}, timeout=timeout)
    response.raise_for_status()
    logger.info("Posted drift summary to Slack (%d items)", report.total_drift)


def post_to_github_pr(
    report: DriftReport,
    repo: str,
    pr_number: int,
    token: str,
    timeout: int = 30,
) -> None:
    """Post a drift report as a comment on a GitHub pull request."""
    if not REPO_PATTERN.match(repo):
        raise ValueError(f"Invalid GitHub repo format: {repo!r} (expected 'owner/repo')")

    response = requests.post(
        f"https://api.github.com/repos/{repo}/issues/{pr_number}/comments",
        json={"body": github_comment(report)},
        headers={
            "Authorization": f"Bearer {token}",
            "Accept": "application/vnd.github+json",
        },
        timeout=timeout,
    )
    response.raise_for_status()
    logger.info("Posted drift report to %s#%d", repo, pr_number)


def _omitted_note(count: int) -> str:
    return f"_{count} more drifted projects omitted; run `osdrift check` for the full report._\n"
