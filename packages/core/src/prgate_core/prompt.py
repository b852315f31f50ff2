"""Assemble the user prompt sent to the reviewer.

build_user_prompt is a pure function of its inputs: no clock, no
environment, no dict ordering surprises. The same PR, diff and history
always produce byte-identical text, which keeps the logged payload useful
for reproducing a review.
"""

from __future__ import annotations

import json

from prgate_core.models import DiffBundle, PullRequestContext, ReviewRecord
from prgate_core.parsing import extract_action_items, extract_key_points

NO_DESCRIPTION = "No description provided"
NO_KEY_POINTS = "No critical issues in previous review"


def _pr_information(pr: PullRequestContext, bundle: DiffBundle) -> str:
    info = {
        "pr_number": pr.number,
        "pr_title": pr.title,
        "pr_author": pr.author,
        "base_branch": pr.base_ref,
        "head_branch": pr.head_ref,
        "files_changed": bundle.file_count,
        "lines_added": bundle.lines_added,
        "lines_deleted": bundle.lines_deleted,
        "repository": pr.repository,
    }
    return json.dumps(info, indent=2, ensure_ascii=False)


def _previous_review_section(previous: ReviewRecord) -> str:
    scores = previous.scores
    lines = [
        "## Previous Review Context",
        "",
        f"**This is an INCREMENTAL REVIEW** - Review #{previous.next_review_number}",
        "",
        "### Previous Review Summary",
        f"- **Review Date**: {previous.created_at_display}",
        "- **Previous Metrics**:",
        f"  - Architecture: {scores.architecture}/10",
        f"  - Code Quality: {scores.code_quality}/10",
        f"  - Testing: {scores.testing}/10",
        "",
        "### Previous Review Feedback",
        "",
    ]

    action_items = extract_action_items(previous.body)
    if action_items:
        lines += ["**Previous Action Items:**", action_items, ""]

    key_points = extract_key_points(previous.body) or NO_KEY_POINTS
    lines += ["**Key Points from Previous Review:**", "```", key_points, "```", "", "---", ""]
    return "\n".join(lines)


def _incremental_instructions(previous: ReviewRecord) -> str:
    scores = previous.scores
    number = previous.next_review_number
    return f"""## CRITICAL INSTRUCTIONS FOR INCREMENTAL REVIEW

**THIS IS REVIEW #{number}** - The PR has been reviewed {previous.review_count} time(s) before.

You MUST follow this process:

1. **Compare with Previous Review**:
   - Review the previous feedback and action items above
   - Identify which issues were addressed in the current changes
   - Note which issues remain unaddressed

2. **Validate Progress**:
   - Mark previous action items as COMPLETED if properly fixed
   - Mark as PARTIALLY COMPLETED if partially addressed
   - Mark as NOT ADDRESSED if still pending
   - Identify any NEW ISSUES not mentioned before

3. **Update Metrics Based on Progress**:
   - **INCREASE** metrics if critical issues were fixed
   - **DECREASE** metrics if new critical issues appeared or quality regressed
   - **MAINTAIN** metrics if no significant change
   - Previous: Arch={scores.architecture}, Quality={scores.code_quality}, Testing={scores.testing}

4. **Structure Your Review**:
   - Start with a "Progress Since Last Review" section
   - Show metric evolution with arrows (increased, decreased, unchanged)
   - Explain WHY each metric changed or stayed the same
   - Only mention NEW issues or PERSISTENT unresolved issues
   - Acknowledge and recognize improvements made

5. **Decision Logic**:
   - APPROVE if all previous critical issues are fixed AND no new critical issues
   - REQUEST_CHANGES if previous critical issues remain OR new critical issues found

**IMPORTANT**: Do NOT re-report issues that were already fixed. Recognize the developer's effort.

---

"""


_CLOSING_INSTRUCTIONS = """Provide a comprehensive code review following your review process. Include:
1. Overall assessment (APPROVE/REQUEST_CHANGES)
2. Architecture analysis
3. Code quality issues
4. Testing coverage
5. Security concerns
6. Specific actionable recommendations

Format your response in Markdown.
"""


def build_user_prompt(
    pr: PullRequestContext,
    bundle: DiffBundle,
    previous: ReviewRecord | None = None,
) -> str:
    """Build the full review request for one PR.

    The previous-review block and the incremental instructions appear only
    when ``previous`` is given.
    """
    description = pr.body if pr.body and pr.body.strip() else NO_DESCRIPTION
    changed_files = "\n".join(bundle.files)

    sections = [
        "Please review this Pull Request:\n",
        "## PR Information",
        _pr_information(pr, bundle),
        "",
    ]
    if previous is not None:
        sections.append(_previous_review_section(previous))
    sections += [
        "## PR Description",
        description,
        "",
        "## Changed Files",
        changed_files,
        "",
        "## File Diffs",
        "```diff",
        bundle.diff_text,
        "```",
        "",
    ]
    if previous is not None:
        sections.append(_incremental_instructions(previous))
    sections.append(_CLOSING_INSTRUCTIONS)
    return "\n".join(sections)
