"""Failure categories that abort a review run.

Every error carries a short ``category`` so the CLI can print an unambiguous
label even though all of them map to the same exit code.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from prgate_core.models import GateResult


class PrgateError(Exception):
    category = "Review failed"


class ConfigurationError(PrgateError):
    """Required inputs are missing or invalid."""

    category = "Configuration error"

    def __init__(self, message: str, missing: list[str] | None = None):
        super().__init__(message)
        self.missing = list(missing or [])


class ScopeExceeded(PrgateError):
    """The PR changes more files than a single review can handle."""

    category = "Too many files"

    def __init__(self, file_count: int, max_files: int):
        super().__init__(
            f"PR has {file_count} changed files, exceeding the maximum of {max_files}. "
            "Please split this PR into smaller, focused pull requests."
        )
        self.file_count = file_count
        self.max_files = max_files


class VersionControlError(PrgateError):
    category = "Git error"


class ReviewerUnavailable(PrgateError):
    """The text-generation call failed or returned no usable text."""

    category = "Reviewer unavailable"


class GateViolation(PrgateError):
    """Raised after publishing when the review does not meet the thresholds."""

    category = "Quality gate failed"

    def __init__(self, result: GateResult):
        super().__init__("; ".join(result.violations))
        self.result = result
