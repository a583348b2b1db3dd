"""Tests for Slack and GitHub report delivery."""

from unittest.mock import MagicMock, patch

import pytest

from osdrift.formatter import format_markdown
from osdrift.models import DiffResult, DriftStatus, ProjectDrift, ResourceCounts, ResourceKind
from osdrift.notify import github_comment, post_to_github_pr, post_to_slack, slack_summary
from osdrift.report import DriftReport

WEBHOOK = "https://hooks.slack.com/services/T00/B00/xxx"


def _project(name, missing=0):
    drifts = tuple(
        DiffResult(
            resource_kind=ResourceKind.SERVER,
            resource_name=f"{name}-vm{i}",
            resource_id=f"{name}-srv-{i}",
            project_name=name,
            status=DriftStatus.MISSING_IN_STATE,
            details="Resource exists in OpenStack but not in Terraform state",
        )
        for i in range(missing)
    )
    return ProjectDrift(
        project_name=name,
        drifts=drifts,
        state_count=ResourceCounts(),
        truth_count=ResourceCounts(servers=missing),
    )


def _report(*projects):
    report = DriftReport()
    for project in projects:
        report.add_project(project)
    return report


def test_slack_summary_lists_drifted_projects_by_count():
    report = _report(_project("alpha", 1), _project("beta", 3), _project("gamma"))

    text = slack_summary(report)
    lines = text.splitlines()

    assert lines[0] == ":warning: *Drift detected*: 4 items in 2/3 projects"
    assert "By status: missing_in_state=4" in lines
    assert "By resource: server=4" in lines
    assert lines[-2:] == ["- `beta`: 3", "- `alpha`: 1"]
    assert "gamma" not in text


def test_slack_summary_caps_project_list():
    report = _report(*(_project(f"p{i:02d}", 1) for i in range(5)))

    text = slack_summary(report, max_projects=2)

    assert "- `p00`: 1" in text
    assert "- `p02`: 1" not in text
    assert text.endswith("_...and 3 more projects_")


def test_slack_summary_no_drift():
    text = slack_summary(_report(_project("alpha"), _project("beta")))
    assert text == ":white_check_mark: No drift detected across 2 projects."


def test_github_comment_matches_markdown_report_when_it_fits():
    report = _report(_project("alpha", 2), _project("beta", 1))
    assert github_comment(report) == format_markdown(report)


def test_github_comment_drops_whole_projects_past_limit():
    report = _report(*(_project(f"p{i}", 5) for i in range(6)))
    full = format_markdown(report)

    comment = github_comment(report, limit=len(full) // 2)

    assert len(comment) <= len(full) // 2
    assert comment.startswith("## Drift Report: 30 items in 6/6 projects")
    assert "### p0" in comment
    assert "### p5" not in comment
    assert "more drifted projects omitted" in comment
    # every table that made it in is complete
    assert comment.count("| p") == 5 * comment.count("### p")


def test_github_comment_no_drift():
    assert github_comment(_report(_project("alpha"))) == "No drift detected across 1 projects."


def test_post_to_slack_sends_summary():
    with patch("osdrift.notify.requests.post") as mock_post:
        mock_post.return_value = MagicMock(status_code=200)

        post_to_slack(_report(_project("alpha", 2)), WEBHOOK)

        mock_post.assert_called_once()
        assert mock_post.call_args[0][0] == WEBHOOK
        assert "2 items in 1/1 projects" in mock_post.call_args[1]["json"]["text"]


def test_post_to_slack_raises_on_failure():
    with patch("osdrift.notify.requests.post") as mock_post:
        mock_post.return_value.raise_for_status.side_effect = Exception("500 Server Error")

        with pytest.raises(Exception, match="500"):
            post_to_slack(_report(_project("alpha", 1)), WEBHOOK)


def test_post_to_slack_rejects_non_slack_host():
    with pytest.raises(ValueError, match="Invalid Slack webhook host"):
        post_to_slack(_report(), "https://evil.example.com/webhook")


def test_post_to_slack_rejects_http():
    with pytest.raises(ValueError, match="must use HTTPS"):
        post_to_slack(_report(), "http://hooks.slack.com/services/T00/B00/xxx")


def test_post_to_github_pr_creates_comment():
    report = _report(_project("alpha", 1))
    with patch("osdrift.notify.requests.post") as mock_post:
        mock_post.return_value = MagicMock(status_code=201)

        post_to_github_pr(
            report=report,
            repo="infra/openstack-live",
            pr_number=42,
            token="test-token-not-real",
        )

        url = mock_post.call_args[0][0]
        assert "infra/openstack-live" in url
        assert "/42/" in url
        assert mock_post.call_args[1]["json"]["body"] == format_markdown(report)
        assert mock_post.call_args[1]["headers"]["Authorization"] == "Bearer test-token-not-real"


def test_post_to_github_pr_raises_on_failure():
    with patch("osdrift.notify.requests.post") as mock_post:
        mock_post.return_value.raise_for_status.side_effect = Exception("403 Forbidden")

        with pytest.raises(Exception, match="403"):
            post_to_github_pr(_report(_project("alpha", 1)), "owner/repo", 1, "bad-token")


@pytest.mark.parametrize("repo", ["../../evil-path", "owner/repo/extra", "no-slash"])
def test_post_to_github_pr_rejects_invalid_repo(repo):
    with pytest.raises(ValueError, match="Invalid GitHub repo format"):
        post_to_github_pr(_report(), repo, 1, "token")
