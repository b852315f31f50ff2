"""review command — review the current pull request and enforce the quality gate."""

from __future__ import annotations

import click
from github import GithubException
from rich.console import Console

from prgate_core.errors import GateViolation, PrgateError, ScopeExceeded
from prgate_core.gate import enforce_gate
from prgate_core.gh.pull_request import get_repo
from prgate_core.git.diff import GitClient
from prgate_core.models import GateConfig, PullRequestContext
from prgate_core.pipeline import ReviewOutcome, run_review
from prgate_core.providers import get_reviewer

console = Console()


def _print_configuration(config: dict, gate: GateConfig, pr: PullRequestContext, model: str) -> None:
    console.print("Configuration:")
    console.print(f"  Agent: {config['agent']}")
    console.print(f"  Model: {model}")
    console.print(
        f"  Thresholds: Arch>={gate.architecture}, Quality>={gate.code_quality}, Test>={gate.testing}",
        highlight=False,
    )
    console.print(f"  Max files: {gate.max_files}")
    console.print(f"  Max output tokens: {config['max_output_tokens']}")
    console.print(f"  Repository: {pr.repository}")
    console.print(f"  PR #{pr.number}: {pr.title}", markup=False)


def _print_metrics(outcome: ReviewOutcome, gate: GateConfig) -> None:
    scores = outcome.scores
    click.echo("Current Metrics:")
    click.echo(f"  Architecture: {scores.architecture}/10")
    click.echo(f"  Code Quality: {scores.code_quality}/10")
    click.echo(f"  Testing: {scores.testing}/10")
    click.echo(f"  Decision: {outcome.decision.value}")
    click.echo("")
    click.echo("Required Metrics:")
    click.echo(f"  Architecture: >= {gate.architecture}/10")
    click.echo(f"  Code Quality: >= {gate.code_quality}/10")
    click.echo(f"  Testing: >= {gate.testing}/10")
    click.echo("  Decision: APPROVE")


def _report_gate(outcome: ReviewOutcome, gate: GateConfig) -> None:
    click.echo("")
    if outcome.gate.passed:
        click.echo("Quality Gate: PASSED")
        for (label, score), (_, threshold) in zip(outcome.scores.items(), gate.thresholds()):
            click.echo(f"  {label}: {score}/10 (required: >= {threshold}/10)")
        click.echo(f"  Decision: {outcome.decision.value}")
        return

    click.echo("::error::PR does not meet quality standards for merge")
    click.echo("")
    click.echo("Quality Gate: FAILED")
    click.echo("")
    click.echo("Blocking Issues:")
    for violation in outcome.gate.violations:
        click.echo(f"  - {violation}")
    click.echo("")
    _print_metrics(outcome, gate)


def _report_error(error: PrgateError) -> None:
    click.echo(f"::error::{error.category}: {error}")
    if isinstance(error, ScopeExceeded):
        click.echo("")
        click.echo(f"The code review cannot process more than {error.max_files} files reliably.")


@click.command("review")
@click.option("--agent", "agent", default=None, help="Path to the reviewer agent (system prompt) file.")
@click.option(
    "--provider",
    type=click.Choice(["anthropic", "openai"]),
    default=None,
    help="Text-generation provider. Overrides config file.",
)
@click.option("--model", default=None, help="Model identifier. Defaults to the provider's default model.")
@click.option("--arch-threshold", type=click.IntRange(0, 10), default=None, help="Minimum architecture score.")
@click.option("--quality-threshold", type=click.IntRange(0, 10), default=None, help="Minimum code quality score.")
@click.option("--test-threshold", type=click.IntRange(0, 10), default=None, help="Minimum testing score.")
@click.option("--max-files", type=click.IntRange(min=1), default=None, help="Maximum number of changed files.")
@click.option(
    "--repo-dir",
    default=".",
    show_default=True,
    type=click.Path(exists=True, file_okay=False),
    help="Git working tree checked out at the PR head.",
)
@click.option(
    "--shadow",
    "-s",
    is_flag=True,
    help="Dry-run mode: print the review instead of posting it to GitHub.",
)
@click.pass_context
def review_cmd(
    ctx,
    agent: str | None,
    provider: str | None,
    model: str | None,
    arch_threshold: int | None,
    quality_threshold: int | None,
    test_threshold: int | None,
    max_files: int | None,
    repo_dir: str,
    shadow: bool,
):
    """Review the pull request described by the CI environment.

    Posts the review as a PR comment and a check run, then fails with a
    non-zero exit code if the scores or decision do not meet the thresholds.

    \b
    Required environment variables:
      PR_NUMBER, PR_TITLE, PR_AUTHOR, BASE_REF, HEAD_REF, HEAD_SHA, REPOSITORY
      GH_TOKEN             GitHub token (or GITHUB_TOKEN, or a gh CLI session)
      ANTHROPIC_API_KEY    Required when using --provider anthropic
      OPENAI_API_KEY       Required when using --provider openai
    Optional:
      PR_BODY              Pull request description
    """
    from prgate_core.config import apply_overrides, gate_config, load_agent_prompt, validate_inputs

    # Config and token were resolved once by the group.
    config = ctx.obj["config"]
    overrides = {
        "agent": agent,
        "provider": provider,
        "model": model,
        "architecture": arch_threshold,
        "code_quality": quality_threshold,
        "testing": test_threshold,
        "max_files": max_files,
    }

    try:
        apply_overrides(config, overrides)
        pr = validate_inputs(config)
        agent_prompt = load_agent_prompt(config)
        gate = gate_config(config)
        reviewer = get_reviewer(config)
        _print_configuration(config, gate, pr, reviewer.model)

        repo = get_repo(pr.repository, token=config["github_token"])
        outcome = run_review(
            pr,
            config,
            repo=repo,
            reviewer=reviewer,
            agent_prompt=agent_prompt,
            git=GitClient(repo_dir),
            shadow=shadow,
        )
        _report_gate(outcome, gate)
        enforce_gate(outcome.gate)
    except GateViolation:
        ctx.exit(1)
    except PrgateError as e:
        _report_error(e)
        ctx.exit(1)
    except GithubException as e:
        click.echo(f"::error::GitHub API error: {e}")
        ctx.exit(1)
