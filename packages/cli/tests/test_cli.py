"""Tests for the CLI entry point."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest
from click.testing import CliRunner
from rich.console import Console

from prgate_cli.cli import main
from prgate_core.config import load_config
from prgate_core.errors import ReviewerUnavailable, ScopeExceeded
from prgate_core.gate import DECISION_VIOLATION
from prgate_core.gh.pull_request import REVIEW_MARKER
from prgate_core.models import Decision, DiffBundle, GateResult, PullRequestContext, ReviewScores, Score
from prgate_core.pipeline import ReviewOutcome

RUN_CONTEXT = {
    "PR_NUMBER": "42",
    "PR_TITLE": "Add caching",
    "PR_AUTHOR": "dev",
    "BASE_REF": "main",
    "HEAD_REF": "feature/cache",
    "HEAD_SHA": "a" * 40,
    "REPOSITORY": "owner/repo",
}

_CLEARED_ENV = (
    "GH_TOKEN",
    "GITHUB_TOKEN",
    "ANTHROPIC_API_KEY",
    "OPENAI_API_KEY",
    "PRGATE_CONFIG",
    "GITHUB_STEP_SUMMARY",
    "PR_BODY",
    *RUN_CONTEXT,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    for name in _CLEARED_ENV:
        monkeypatch.delenv(name, raising=False)
    # Keep any real .prgate.yml in the working directory out of the tests.
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def agent_file(tmp_path):
    path = tmp_path / "reviewer.md"
    path.write_text("You are a strict reviewer.")
    return str(path)


@pytest.fixture
def ci_env(monkeypatch):
    for name, value in RUN_CONTEXT.items():
        monkeypatch.setenv(name, value)
    monkeypatch.setenv("GH_TOKEN", "gh-tok")
    monkeypatch.setenv("ANTHROPIC_API_KEY", "ant-key")


def _outcome(scores=(8, 9, 8), decision=Decision.APPROVE, violations=()):
    pr = PullRequestContext(
        repository="owner/repo",
        number=42,
        title="Add caching",
        author="dev",
        base_ref="main",
        head_ref="feature/cache",
        head_sha="a" * 40,
    )
    arch, quality, testing = (Score(v) for v in scores)
    return ReviewOutcome(
        pr=pr,
        bundle=DiffBundle(files=("a.py",), lines_added=1, lines_deleted=0, diff_text=""),
        previous=None,
        review_text="review",
        decision=decision,
        scores=ReviewScores(architecture=arch, code_quality=quality, testing=testing),
        comment_body="body",
        gate=GateResult(passed=not violations, violations=tuple(violations)),
        reviewed_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )


@pytest.fixture
def mocked_review(mocker):
    mocker.patch("prgate_cli.auth.resolve_github_token", return_value="gh-tok")
    mocker.patch("prgate_cli.commands.review.get_repo", return_value=MagicMock())
    reviewer = MagicMock(model="claude-test")
    mocker.patch("prgate_cli.commands.review.get_reviewer", return_value=reviewer)
    return mocker.patch("prgate_cli.commands.review.run_review", return_value=_outcome())


class TestValidation:
    def test_missing_inputs_reported_together(self, mocker):
        mocker.patch("prgate_cli.auth.resolve_github_token", return_value=None)
        run = mocker.patch("prgate_cli.commands.review.run_review")

        result = CliRunner().invoke(main, ["review"])

        assert result.exit_code == 1
        assert "Missing required inputs" in result.output
        for name in ("--agent", "ANTHROPIC_API_KEY", "GH_TOKEN", "PR_NUMBER", "REPOSITORY"):
            assert name in result.output
        run.assert_not_called()

    def test_openai_provider_requires_openai_key(self, mocker, ci_env, agent_file):
        mocker.patch("prgate_cli.auth.resolve_github_token", return_value="gh-tok")
        result = CliRunner().invoke(main, ["review", "--agent", agent_file, "--provider", "openai"])
        assert result.exit_code == 1
        assert "OPENAI_API_KEY" in result.output
        assert "ANTHROPIC_API_KEY" not in result.output

    def test_agent_file_not_found(self, mocker, ci_env, tmp_path):
        mocker.patch("prgate_cli.auth.resolve_github_token", return_value="gh-tok")
        result = CliRunner().invoke(main, ["review", "--agent", str(tmp_path / "missing.md")])
        assert result.exit_code == 1
        assert "Agent file not found" in result.output

    @pytest.mark.parametrize(
        "content",
        ["thresholds: [7, 7\n", "- provider\n- anthropic\n", "thresholds: high\n"],
        ids=["invalid-yaml", "list-document", "scalar-thresholds"],
    )
    def test_malformed_config_file(self, mocker, ci_env, agent_file, tmp_path, content):
        (tmp_path / ".prgate.yml").write_text(content)
        run = mocker.patch("prgate_cli.commands.review.run_review")

        result = CliRunner().invoke(main, ["review", "--agent", agent_file])

        assert result.exit_code == 1
        assert result.exception is None or isinstance(result.exception, SystemExit)
        assert "::error::Configuration error" in result.output
        run.assert_not_called()

    def test_non_numeric_diff_limit(self, mocked_review, ci_env, agent_file, tmp_path):
        (tmp_path / ".prgate.yml").write_text("max_diff_bytes: abc\n")

        result = CliRunner().invoke(main, ["review", "--agent", agent_file])

        assert result.exit_code == 1
        assert "::error::Configuration error" in result.output
        assert "max_diff_bytes" in result.output
        mocked_review.assert_not_called()

    def test_threshold_out_of_range_rejected(self, ci_env, agent_file):
        result = CliRunner().invoke(main, ["review", "--agent", agent_file, "--arch-threshold", "11"])
        assert result.exit_code == 2


class TestReview:
    def test_passing_review_exits_zero(self, mocked_review, ci_env, agent_file):
        result = CliRunner().invoke(main, ["review", "--agent", agent_file])

        assert result.exit_code == 0, result.output
        assert "Quality Gate: PASSED" in result.output
        pr = mocked_review.call_args.args[0]
        assert pr.number == 42
        assert pr.repository == "owner/repo"
        kwargs = mocked_review.call_args.kwargs
        assert kwargs["agent_prompt"] == "You are a strict reviewer."
        assert kwargs["shadow"] is False

    def test_threshold_overrides_reach_config(self, mocked_review, ci_env, agent_file):
        CliRunner().invoke(
            main,
            ["review", "--agent", agent_file, "--arch-threshold", "5", "--test-threshold", "9", "--max-files", "10"],
        )
        config = mocked_review.call_args.args[1]
        assert config["thresholds"] == {"architecture": 5, "code_quality": 7, "testing": 9}
        assert config["max_files"] == 10

    def test_config_and_token_resolved_once(self, mocker, mocked_review, ci_env, agent_file):
        load = mocker.patch("prgate_core.config.load_config", wraps=load_config)
        resolve = mocker.patch("prgate_cli.auth.resolve_github_token", return_value="gh-tok")

        result = CliRunner().invoke(main, ["review", "--agent", agent_file, "--quality-threshold", "4"])

        assert result.exit_code == 0, result.output
        load.assert_called_once()
        resolve.assert_called_once()
        config = mocked_review.call_args.args[1]
        assert config["github_token"] == "gh-tok"
        assert config["thresholds"]["code_quality"] == 4

    def test_shadow_flag(self, mocked_review, ci_env, agent_file):
        CliRunner().invoke(main, ["review", "--agent", agent_file, "--shadow"])
        assert mocked_review.call_args.kwargs["shadow"] is True

    def test_gate_failure_exits_one(self, mocked_review, ci_env, agent_file):
        mocked_review.return_value = _outcome(
            scores=(10, 10, 10),
            decision=Decision.REQUEST_CHANGES,
            violations=(DECISION_VIOLATION,),
        )
        result = CliRunner().invoke(main, ["review", "--agent", agent_file])

        assert result.exit_code == 1
        assert "::error::PR does not meet quality standards for merge" in result.output
        assert "Quality Gate: FAILED" in result.output
        assert f"  - {DECISION_VIOLATION}" in result.output
        assert "Required Metrics:" in result.output

    def test_scope_exceeded(self, mocked_review, ci_env, agent_file):
        mocked_review.side_effect = ScopeExceeded(51, 50)
        result = CliRunner().invoke(main, ["review", "--agent", agent_file])

        assert result.exit_code == 1
        assert "::error::Too many files" in result.output
        assert "split this PR" in result.output
        assert "more than 50 files" in result.output

    def test_reviewer_unavailable(self, mocked_review, ci_env, agent_file):
        mocked_review.side_effect = ReviewerUnavailable("Review generation failed: timeout")
        result = CliRunner().invoke(main, ["review", "--agent", agent_file])
        assert result.exit_code == 1
        assert "::error::Reviewer unavailable" in result.output

    def test_agent_from_config_file(self, mocked_review, ci_env, agent_file, tmp_path):
        config_path = tmp_path / "custom.yml"
        config_path.write_text(f"agent: {agent_file}\nthresholds:\n  testing: 6\n")

        result = CliRunner().invoke(main, ["--config", str(config_path), "review"])

        assert result.exit_code == 0, result.output
        assert mocked_review.call_args.args[1]["thresholds"]["testing"] == 6


def _comment(arch, decision, created_at):
    comment = MagicMock(created_at=created_at)
    comment.body = (
        f"## AI Code Review\n\n- **Architecture Score**: {arch}/10\n"
        f"- **Code Quality Score**: 8/10\n- **Testing Score**: 8/10\n"
        f"- **Decision**: `{decision}`\n\n{REVIEW_MARKER}"
    )
    return comment


class TestHistory:
    def test_requires_token(self, mocker):
        mocker.patch("prgate_cli.auth.resolve_github_token", return_value=None)
        result = CliRunner().invoke(main, ["history", "--repo", "owner/repo", "--pr", "1"])
        assert result.exit_code != 0
        assert "token" in result.output.lower()

    def test_empty_history(self, mocker):
        mocker.patch("prgate_cli.auth.resolve_github_token", return_value="tok")
        mocker.patch("prgate_cli.commands.history.get_repo")
        mocker.patch("prgate_cli.commands.history.list_issue_comments", return_value=[])
        result = CliRunner().invoke(main, ["history", "--repo", "owner/repo", "--pr", "1"])
        assert result.exit_code == 0
        assert "No automated reviews" in result.output

    def test_lists_reviews_with_deltas(self, mocker):
        mocker.patch("prgate_cli.auth.resolve_github_token", return_value="tok")
        mocker.patch("prgate_cli.commands.history.get_repo")
        human = MagicMock(body="ship it", created_at=datetime(2024, 1, 1, tzinfo=timezone.utc))
        comments = [
            _comment(6, "REQUEST_CHANGES", datetime(2024, 1, 1, 9, tzinfo=timezone.utc)),
            human,
            _comment(8, "APPROVE", datetime(2024, 1, 2, 9, tzinfo=timezone.utc)),
        ]
        mocker.patch("prgate_cli.commands.history.list_issue_comments", return_value=comments)
        console = Console(record=True, width=200)
        mocker.patch("prgate_cli.commands.history.console", console)

        result = CliRunner().invoke(main, ["history", "--repo", "owner/repo", "--pr", "7"])

        assert result.exit_code == 0, result.output
        text = console.export_text()
        assert "#1" in text
        assert "#2" in text
        assert "#3" not in text
        assert "8/10 (+2)" in text
        assert "REQUEST_CHANGES" in text
        assert "2024-01-02 09:00:00" in text
