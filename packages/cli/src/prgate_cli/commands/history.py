"""history command — list the automated reviews already posted on a PR."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from prgate_core.gh.pull_request import get_repo, list_issue_comments, list_previous_reviews
from prgate_core.parsing import extract_recorded_decision
from prgate_core.publish import change_indicator

console = Console()

_DECISION_STYLE = {
    "APPROVE": "green",
    "COMMENT": "yellow",
    "REQUEST_CHANGES": "red",
}


@click.command("history")
@click.option("--repo", required=True, help="GitHub repository (owner/name).")
@click.option("--pr", "pr_number", type=int, required=True, help="Pull request number.")
@click.pass_context
def history_cmd(ctx, repo: str, pr_number: int):
    """Show every automated review on a pull request with its scores.

    History is read straight from the PR's comment thread; nothing is
    stored locally.
    """
    config = ctx.obj.get("config", {}) if ctx.obj else {}
    token = config.get("github_token")
    if not token:
        raise click.UsageError("No GitHub token found. Set GH_TOKEN or run `gh auth login` first.")

    records = list_previous_reviews(list_issue_comments(get_repo(repo, token=token), pr_number))
    if not records:
        console.print("[yellow]No automated reviews found on this PR.[/yellow]")
        return

    table = Table(title=f"Review History — {repo}#{pr_number}", show_header=True, header_style="bold cyan")
    table.add_column("Review", style="bold", width=8)
    table.add_column("Posted At", width=20)
    table.add_column("Architecture", justify="right")
    table.add_column("Code Quality", justify="right")
    table.add_column("Testing", justify="right")
    table.add_column("Decision", width=16)

    before = None
    for record in records:
        cells = []
        for name in ("architecture", "code_quality", "testing"):
            score = getattr(record.scores, name)
            delta = change_indicator(score, getattr(before.scores, name)) if before else ""
            cells.append(f"{score}/10{delta}")
        decision = extract_recorded_decision(record.body).value
        style = _DECISION_STYLE.get(decision, "white")
        table.add_row(
            f"#{record.review_count}",
            record.created_at_display.replace("T", " ").rstrip("Z"),
            *cells,
            f"[{style}]{decision}[/{style}]",
        )
        before = record

    console.print(table)

