"""Value types shared across the review pipeline.

Everything here is immutable once built. A run reconstructs all of its state
from the PR's comment thread and the git checkout, so none of these objects
outlive a single invocation.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone

SCORE_MIN = 0
SCORE_MAX = 10


class MatchTier(str, enum.Enum):
    """How a score was recovered from Markdown."""

    EXACT = "exact"
    FALLBACK = "fallback"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class Score:
    """A single 0-10 score, or an explicit unknown.

    ``value`` is None only when ``tier`` is UNKNOWN. Callers must check
    ``known`` before doing arithmetic: an unknown score is not a zero.
    """

    value: int | None
    tier: MatchTier = MatchTier.EXACT

    def __post_init__(self):
        if self.value is None and self.tier is not MatchTier.UNKNOWN:
            raise ValueError("A score without a value must be tagged UNKNOWN.")
        if self.value is not None and not SCORE_MIN <= self.value <= SCORE_MAX:
            raise ValueError(f"Score {self.value} is outside {SCORE_MIN}-{SCORE_MAX}.")

    @classmethod
    def unknown(cls) -> Score:
        return cls(value=None, tier=MatchTier.UNKNOWN)

    @property
    def known(self) -> bool:
        return self.value is not None

    def __str__(self) -> str:
        return str(self.value) if self.known else "N/A"


@dataclass(frozen=True)
class ReviewScores:
    architecture: Score = field(default_factory=Score.unknown)
    code_quality: Score = field(default_factory=Score.unknown)
    testing: Score = field(default_factory=Score.unknown)

    def items(self) -> list[tuple[str, Score]]:
        """(label, score) pairs in display order."""
        return [
            ("Architecture", self.architecture),
            ("Code Quality", self.code_quality),
            ("Testing", self.testing),
        ]


class Decision(str, enum.Enum):
    APPROVE = "APPROVE"
    REQUEST_CHANGES = "REQUEST_CHANGES"
    COMMENT = "COMMENT"


@dataclass(frozen=True)
class ReviewRecord:
    """The most recent automated review found on a PR thread.

    ``review_count`` is how many automated reviews the thread holds in total,
    so the next review is number ``review_count + 1``.
    """

    created_at: datetime | str
    body: str
    scores: ReviewScores
    review_count: int = 1

    @property
    def next_review_number(self) -> int:
        return self.review_count + 1

    @property
    def created_at_display(self) -> str:
        if isinstance(self.created_at, datetime):
            ts = self.created_at
            if ts.tzinfo is not None:
                ts = ts.astimezone(timezone.utc)
            return ts.strftime("%Y-%m-%dT%H:%M:%SZ")
        return str(self.created_at)


@dataclass(frozen=True)
class DiffBundle:
    files: tuple[str, ...]
    lines_added: int
    lines_deleted: int
    diff_text: str
    # Size of the assembled diff in bytes before any truncation.
    original_size: int = 0
    truncated: bool = False

    @property
    def file_count(self) -> int:
        return len(self.files)


@dataclass(frozen=True)
class GateConfig:
    architecture: int = 7
    code_quality: int = 7
    testing: int = 8
    max_files: int = 50

    def thresholds(self) -> list[tuple[str, int]]:
        return [
            ("Architecture", self.architecture),
            ("Code Quality", self.code_quality),
            ("Testing", self.testing),
        ]


@dataclass(frozen=True)
class GateResult:
    passed: bool
    violations: tuple[str, ...] = ()


@dataclass(frozen=True)
class PullRequestContext:
    """Run-context values supplied by the CI event."""

    repository: str
    number: int
    title: str
    author: str
    base_ref: str
    head_ref: str
    head_sha: str
    body: str = ""
