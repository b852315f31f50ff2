"""Render and publish review results to the PR."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from datetime import datetime, timezone

from prgate_core.gh.pull_request import REVIEW_MARKER, create_check_run, post_comment
from prgate_core.models import Decision, DiffBundle, PullRequestContext, ReviewRecord, ReviewScores, Score

logger = logging.getLogger(__name__)

DISCLAIMER = "*This review was generated automatically. Please use your judgment when addressing feedback.*"


@dataclass(frozen=True)
class CheckRunOutput:
    conclusion: str
    title: str
    summary: str
    text: str = "See PR comments for detailed review."


_CHECK_RUN_OUTPUTS = {
    Decision.APPROVE: CheckRunOutput(
        conclusion="success",
        title="Code Review Passed",
        summary="The AI reviewer approved this PR. All quality criteria met.",
    ),
    Decision.REQUEST_CHANGES: CheckRunOutput(
        conclusion="failure",
        title="Code Review: Changes Requested",
        summary="The AI reviewer identified issues that need to be addressed before merge.",
    ),
    Decision.COMMENT: CheckRunOutput(
        conclusion="neutral",
        title="Code Review: Comments",
        summary="The AI reviewer provided feedback for consideration.",
    ),
}


def change_indicator(current: Score, previous: Score) -> str:
    """Return " (+N)", " (-N)" or " (=)"; empty when either side is unknown."""
    if not current.known or not previous.known:
        return ""
    delta = current.value - previous.value
    if delta > 0:
        return f" (+{delta})"
    if delta < 0:
        return f" (-{-delta})"
    return " (=)"


def _metrics_section(decision: Decision, scores: ReviewScores, previous: ReviewRecord | None) -> str:
    # Metric lines keep the "**<Label> Score**: N/10" form in both layouts so
    # the next run reads them back with the exact pattern.
    if previous is None:
        lines = [
            "<details>",
            "<summary>Review Metrics (Initial Review)</summary>",
            "",
        ]
        lines += [f"- **{label} Score**: {score}/10" for label, score in scores.items()]
        lines += [f"- **Decision**: `{decision.value}`", "", "</details>"]
        return "\n".join(lines)

    lines = [
        "<details>",
        f"<summary>Review Metrics (Review #{previous.next_review_number})</summary>",
        "",
        "### Current Scores",
    ]
    for (label, current), (_, before) in zip(scores.items(), previous.scores.items()):
        lines.append(f"- **{label} Score**: {current}/10{change_indicator(current, before)}")
    lines += ["", f"### Previous Scores (Review #{previous.review_count})"]
    lines += [f"- {label}: {score}/10" for label, score in previous.scores.items()]
    lines += ["", f"**Decision**: `{decision.value}`", "", "</details>"]
    return "\n".join(lines)


def render_comment(
    review_text: str,
    decision: Decision,
    scores: ReviewScores,
    bundle: DiffBundle,
    model: str,
    previous: ReviewRecord | None = None,
    reviewed_at: datetime | None = None,
) -> str:
    """Build the PR comment: header, the reviewer's text verbatim, metrics, footer."""
    reviewed_at = reviewed_at or datetime.now(timezone.utc)
    heading = "## AI Code Review"
    if previous is not None:
        heading += f" (Review #{previous.next_review_number})"

    header = [
        heading,
        "",
        f"**Reviewer**: {model}",
        f"**Review Date**: {reviewed_at.strftime('%Y-%m-%d %H:%M:%S UTC')}",
        f"**Files Analyzed**: {bundle.file_count}",
        f"**Lines Changed**: +{bundle.lines_added} / -{bundle.lines_deleted}",
    ]
    if previous is not None:
        header.append(f"**Previous Review**: {previous.created_at_display}")

    return "\n".join(
        [
            *header,
            "",
            "---",
            "",
            review_text,
            "",
            "---",
            "",
            _metrics_section(decision, scores, previous),
            "",
            "---",
            "",
            DISCLAIMER,
            REVIEW_MARKER,
        ]
    )


def check_run_output(decision: Decision) -> CheckRunOutput:
    return _CHECK_RUN_OUTPUTS[decision]


def publish_comment(repo, pr_number: int, body: str):
    comment = post_comment(repo, pr_number, body)
    logger.debug("Posted review comment on #%d", pr_number)
    return comment


def publish_check_run(repo, head_sha: str, decision: Decision) -> CheckRunOutput:
    output = check_run_output(decision)
    create_check_run(repo, head_sha, output.conclusion, output.title, output.summary, output.text)
    logger.debug("Created check run for %s: %s", head_sha[:7], output.conclusion)
    return output


def render_step_summary(pr: PullRequestContext, bundle: DiffBundle, scores: ReviewScores, decision: Decision) -> str:
    score_lines = "\n".join(f"- **{label}**: {score}/10" for label, score in scores.items())
    return f"""# AI Code Review Summary

## PR Information
- **PR #**: {pr.number}
- **Title**: {pr.title}
- **Author**: @{pr.author}

## Changes
- **Files Changed**: {bundle.file_count}
- **Lines Added**: {bundle.lines_added}
- **Lines Deleted**: {bundle.lines_deleted}

## Review Scores
{score_lines}

## Decision
**{decision.value}**

---

See PR comments for detailed feedback.
"""


def write_step_summary(content: str, path: str | None = None) -> bool:
    """Append to the GitHub Actions job summary file. Returns False outside Actions."""
    path = path or os.environ.get("GITHUB_STEP_SUMMARY")
    if not path:
        return False
    with open(path, "a", encoding="utf-8") as f:
        f.write(content)
    return True
