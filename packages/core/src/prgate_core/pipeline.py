"""Core PR review orchestration."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone

from rich.console import Console
from rich.markdown import Markdown

from prgate_core.config import gate_config, validate_limits
from prgate_core.gate import evaluate_gate
from prgate_core.gh.pull_request import find_previous_review, list_issue_comments
from prgate_core.git.diff import GitClient, collect_diff
from prgate_core.models import Decision, DiffBundle, GateResult, PullRequestContext, ReviewRecord, ReviewScores
from prgate_core.parsing import parse_report
from prgate_core.prompt import build_user_prompt
from prgate_core.providers.base import BaseReviewer
from prgate_core.publish import (
    publish_check_run,
    publish_comment,
    render_comment,
    render_step_summary,
    write_step_summary,
)

console = Console()
logger = logging.getLogger(__name__)


@dataclass
class ReviewOutcome:
    """Everything a run produced, returned to the CLI for reporting."""

    pr: PullRequestContext
    bundle: DiffBundle
    previous: ReviewRecord | None
    review_text: str
    decision: Decision
    scores: ReviewScores
    comment_body: str
    gate: GateResult
    reviewed_at: datetime


def run_review(
    pr: PullRequestContext,
    config: dict,
    *,
    repo,
    reviewer: BaseReviewer,
    agent_prompt: str,
    git: GitClient | None = None,
    shadow: bool = False,
) -> ReviewOutcome:
    """Run one review of ``pr`` and return the outcome with its gate result.

    Stages run strictly in order; configuration, git and reviewer failures
    raise before anything is posted. The gate is evaluated only after the
    comment and check run are published, so a failing PR still gets its
    feedback. Enforcing the gate is left to the caller.

    In shadow mode the comment is printed instead of posted and no check
    run is created.
    """
    git = git or GitClient()
    gate = gate_config(config)
    validate_limits(config)

    console.print("\n[bold]Step 1:[/bold] Collecting changed files and diffs")
    bundle = collect_diff(git, pr.base_ref, config, max_files=gate.max_files)
    console.print(f"  Changed files: {bundle.file_count}, +{bundle.lines_added} / -{bundle.lines_deleted}")
    if bundle.truncated:
        console.print(f"  [yellow]Diff too large ({bundle.original_size} bytes), truncated.[/yellow]")

    console.print("\n[bold]Step 2:[/bold] Reading previous reviews")
    previous = find_previous_review(list_issue_comments(repo, pr.number))
    if previous is None:
        console.print("  This is the first review for this PR")
    else:
        s = previous.scores
        console.print(
            f"  Found {previous.review_count} previous review(s). "
            f"Previous metrics: Arch={s.architecture}, Quality={s.code_quality}, Testing={s.testing}"
        )

    console.print(f"\n[bold]Step 3:[/bold] Requesting review from {reviewer.model}")
    user_prompt = build_user_prompt(pr, bundle, previous)
    logger.debug("User prompt:\n%s", user_prompt)
    review_text = reviewer.generate(agent_prompt, user_prompt)
    decision, scores = parse_report(review_text)
    console.print(f"  Decision: {decision.value}")
    console.print(f"  Scores: Arch={scores.architecture}, Quality={scores.code_quality}, Testing={scores.testing}")

    reviewed_at = datetime.now(timezone.utc)
    comment_body = render_comment(review_text, decision, scores, bundle, reviewer.model, previous, reviewed_at)

    if shadow:
        console.print("\n[bold]Shadow mode:[/bold] review not posted\n")
        console.print(Markdown(comment_body))
    else:
        console.print("\n[bold]Step 4:[/bold] Posting review comment")
        publish_comment(repo, pr.number, comment_body)
        console.print("[green]  Review comment posted[/green]")

        console.print("\n[bold]Step 5:[/bold] Creating check run")
        output = publish_check_run(repo, pr.head_sha, decision)
        console.print(f"  Check run created: {output.conclusion}")

    if write_step_summary(render_step_summary(pr, bundle, scores, decision)):
        logger.debug("Wrote job summary")

    return ReviewOutcome(
        pr=pr,
        bundle=bundle,
        previous=previous,
        review_text=review_text,
        decision=decision,
        scores=scores,
        comment_body=comment_body,
        gate=evaluate_gate(scores, decision, gate),
        reviewed_at=reviewed_at,
    )
