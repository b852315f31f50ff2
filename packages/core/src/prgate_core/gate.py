"""Merge gate: compare the parsed review against configured thresholds."""

from __future__ import annotations

from prgate_core.errors import GateViolation
from prgate_core.models import Decision, GateConfig, GateResult, ReviewScores

DECISION_VIOLATION = "Decision: REQUEST_CHANGES - Reviewer requested changes before merge"


def evaluate_gate(scores: ReviewScores, decision: Decision, config: GateConfig) -> GateResult:
    """Return the gate verdict with one violation per failed check.

    Unknown scores are not evaluable and never produce a violation. A
    REQUEST_CHANGES decision always fails, whatever the scores.
    """
    violations = []
    for (label, score), (_, threshold) in zip(scores.items(), config.thresholds()):
        if score.known and score.value < threshold:
            violations.append(f"{label}: {score.value}/10 (required: >= {threshold}/10)")

    if decision is Decision.REQUEST_CHANGES:
        violations.append(DECISION_VIOLATION)

    return GateResult(passed=not violations, violations=tuple(violations))


def enforce_gate(result: GateResult) -> None:
    if not result.passed:
        raise GateViolation(result)
