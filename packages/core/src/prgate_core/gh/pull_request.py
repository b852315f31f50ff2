from __future__ import annotations

import logging

from github import Github

from prgate_core.models import ReviewRecord
from prgate_core.parsing import extract_previous_scores

logger = logging.getLogger(__name__)

# Hidden marker embedded in every comment prgate posts. History is rebuilt by
# scanning the thread for it, so the marker text must never change.
REVIEW_MARKER = "<!-- prgate-review -->"

CHECK_RUN_NAME = "AI Code Review"


def get_repo(repo_name: str, token: str):
    return Github(token).get_repo(repo_name)


def list_issue_comments(repo, pr_number: int) -> list:
    """Return every comment on the PR's conversation thread, oldest first."""
    return list(repo.get_issue(pr_number).get_comments())


def list_previous_reviews(comments) -> list[ReviewRecord]:
    """Return a ReviewRecord for every automated review in ``comments``.

    ``review_count`` on each record is its 1-based position among the
    automated reviews.
    """
    records = []
    for comment in comments:
        body = comment.body or ""
        if REVIEW_MARKER not in body:
            continue
        records.append(
            ReviewRecord(
                created_at=comment.created_at,
                body=body,
                scores=extract_previous_scores(body),
                review_count=len(records) + 1,
            )
        )
    return records


def find_previous_review(comments) -> ReviewRecord | None:
    """Return the most recent automated review, or None on a first review.

    Listing order is taken as chronological.
    """
    records = list_previous_reviews(comments)
    logger.debug("Found %d previous review(s)", len(records))
    if not records:
        return None
    return records[-1]


def post_comment(repo, pr_number: int, body: str):
    """Create a new comment on the PR thread. Existing comments are never edited."""
    return repo.get_issue(pr_number).create_comment(body)


def create_check_run(repo, head_sha: str, conclusion: str, title: str, summary: str, text: str):
    return repo.create_check_run(
        name=CHECK_RUN_NAME,
        head_sha=head_sha,
        status="completed",
        conclusion=conclusion,
        output={"title": title, "summary": summary, "text": text},
    )
