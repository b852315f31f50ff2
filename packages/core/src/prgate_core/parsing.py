"""Tolerant extraction of scores and decisions from reviewer Markdown.

Model output is not perfectly stable across responses, so every score is
recovered through an ordered list of patterns and ends up tagged with the
tier that matched, or UNKNOWN when none did. Nothing here ever substitutes
a default number for a missing score.

Patterns match within a single line: ``.`` does not cross newlines, so a
label on one line never picks up a ``N/10`` from a later line.
"""

from __future__ import annotations

import re

from prgate_core.models import SCORE_MAX, SCORE_MIN, Decision, MatchTier, ReviewScores, Score

_FIELDS = (
    ("architecture", "Architecture"),
    ("code_quality", "Code Quality"),
    ("testing", "Testing"),
)

# Labels used when reading the reviewer's fresh report. "Quality" also
# matches "Code Quality".
_REPORT_LABELS = {
    "architecture": "Architecture",
    "code_quality": "Quality",
    "testing": "Testing",
}

_OUT_OF_TEN = r"(\d+)/10(?!\d)"

_REQUEST_CHANGES_RE = re.compile(r"REQUEST_CHANGES|REQUEST CHANGES")
_APPROVE_RE = re.compile(r"APPROVE")

_ACTION_ITEMS_LINE_LIMIT = 50
_KEY_POINTS_LINE_LIMIT = 100
_KEY_POINTS_CONTEXT = 3
_KEY_POINTS_RE = re.compile(r"Issues Found|Must Fix")


def _history_patterns(label: str) -> list[tuple[MatchTier, re.Pattern]]:
    escaped = re.escape(label)
    return [
        (MatchTier.EXACT, re.compile(rf"{escaped} Score\*\*:\s*{_OUT_OF_TEN}")),
        (MatchTier.FALLBACK, re.compile(rf"{escaped}.*?score.*?:\s*{_OUT_OF_TEN}", re.IGNORECASE)),
    ]


_HISTORY_PATTERNS = {name: _history_patterns(label) for name, label in _FIELDS}
_REPORT_PATTERNS = {name: re.compile(rf"{label}.*?{_OUT_OF_TEN}") for name, label in _REPORT_LABELS.items()}


def _in_range(value: int) -> bool:
    return SCORE_MIN <= value <= SCORE_MAX


def _match_score(text: str, patterns: list[tuple[MatchTier, re.Pattern]]) -> Score:
    for tier, pattern in patterns:
        match = pattern.search(text)
        if match is None:
            continue
        value = int(match.group(1))
        if _in_range(value):
            return Score(value=value, tier=tier)
    return Score.unknown()


def extract_previous_scores(body: str) -> ReviewScores:
    """Read the three scores out of a previously posted review comment.

    Tries the exact ``<Label> Score**: N/10`` form first, then a looser
    case-insensitive ``<Label> ... score ...: N/10`` form.
    """
    return ReviewScores(**{name: _match_score(body, patterns) for name, patterns in _HISTORY_PATTERNS.items()})


def parse_decision(text: str) -> Decision:
    """Derive the reviewer's verdict.

    REQUEST_CHANGES is checked first: the reviewer's own instructions mention
    both verdicts, so an echoed "APPROVE" must not override a change request.
    """
    if _REQUEST_CHANGES_RE.search(text):
        return Decision.REQUEST_CHANGES
    if _APPROVE_RE.search(text):
        return Decision.APPROVE
    return Decision.COMMENT


def parse_scores(text: str) -> ReviewScores:
    """Take the first ``<label> ... N/10`` on a line for each category.

    A first match outside 0-10 makes that score unknown rather than being
    clamped.
    """
    scores = {}
    for name, pattern in _REPORT_PATTERNS.items():
        match = pattern.search(text)
        if match is not None and _in_range(int(match.group(1))):
            scores[name] = Score(value=int(match.group(1)))
        else:
            scores[name] = Score.unknown()
    return ReviewScores(**scores)


def parse_report(text: str) -> tuple[Decision, ReviewScores]:
    return parse_decision(text), parse_scores(text)


def extract_action_items(body: str) -> str:
    """Slice the "Action Items" section out of a review body.

    Runs from the first line mentioning "Action Items" through the next line
    that is exactly ``---`` (inclusive), or to the end of the body.
    """
    lines = body.splitlines()
    for start, line in enumerate(lines):
        if "Action Items" in line:
            break
    else:
        return ""

    section = [lines[start]]
    for line in lines[start + 1 :]:
        section.append(line)
        if line == "---":
            break
    return "\n".join(section[:_ACTION_ITEMS_LINE_LIMIT])


def extract_key_points(body: str) -> str:
    """Collect lines flagging issues plus a few lines of context after each.

    Non-adjacent groups are separated by ``--``.
    """
    lines = body.splitlines()
    selected: list[int] = []
    for i, line in enumerate(lines):
        if _KEY_POINTS_RE.search(line):
            for j in range(i, min(i + _KEY_POINTS_CONTEXT + 1, len(lines))):
                if not selected or j > selected[-1]:
                    selected.append(j)

    out: list[str] = []
    previous = None
    for i in selected:
        if previous is not None and i != previous + 1:
            out.append("--")
        out.append(lines[i])
        previous = i
    return "\n".join(out[:_KEY_POINTS_LINE_LIMIT])


_RECORDED_DECISION_RE = re.compile(r"\*\*Decision\*\*: `(APPROVE|REQUEST_CHANGES|COMMENT)`")


def extract_recorded_decision(body: str) -> Decision:
    """Read the decision from a posted review's metrics block.

    Falls back to parse_decision on the whole body when the metrics block is
    missing.
    """
    matches = _RECORDED_DECISION_RE.findall(body)
    if matches:
        return Decision(matches[-1])
    return parse_decision(body)
