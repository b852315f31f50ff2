"""Collect the diff under review from the local git checkout.

All three queries (file names, numstat, per-file diffs) use the same
three-dot range, so the file list and the line counts describe the same
comparison: the changes on the head side since it diverged from base.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from prgate_core.errors import ScopeExceeded, VersionControlError
from prgate_core.models import DiffBundle
from prgate_core.utils.files import select_files

logger = logging.getLogger(__name__)

TRUNCATION_MARKER = "\n\n[... Diff truncated due to size ...]"


class GitClient:
    """Thin wrapper over the ``git`` executable in a working tree.

    ``cwd`` may be any directory inside the checkout. Paths passed in and
    returned are relative to the repository root, as ``git diff`` prints them.

    Output is decoded as UTF-8 with undecodable bytes replaced, so sources in
    other encodings still produce a diff.
    """

    def __init__(self, cwd: str | Path = "."):
        self.cwd = Path(cwd)

    def _run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        try:
            return subprocess.run(
                ["git", *args],
                cwd=self.cwd,
                capture_output=True,
                encoding="utf-8",
                errors="replace",
                check=check,
            )
        except FileNotFoundError:
            raise VersionControlError("git executable not found on PATH.")
        except subprocess.CalledProcessError as e:
            raise VersionControlError(f"`git {' '.join(args)}` failed: {(e.stderr or '').strip()}")

    def _output(self, *args: str) -> str:
        return self._run(*args).stdout

    def changed_files(self, diff_range: str) -> list[str]:
        return [line for line in self._output("diff", "--name-only", diff_range).splitlines() if line]

    def numstat(self, diff_range: str) -> list[tuple[int, int, str]]:
        """Return (added, deleted, path) per file. Binary files report 0/0."""
        stats = []
        for line in self._output("diff", "--numstat", diff_range).splitlines():
            parts = line.split("\t", 2)
            if len(parts) != 3:
                continue
            added, deleted, path = parts
            stats.append((_to_int(added), _to_int(deleted), path))
        return stats

    def file_diff(self, diff_range: str, path: str) -> str:
        return self._output("diff", diff_range, "--", f":(top){path}")

    def exists(self, path: str, rev: str = "HEAD") -> bool:
        """Return True if ``path`` is present in the tree of ``rev``."""
        return self._run("cat-file", "-e", f"{rev}:{path}", check=False).returncode == 0


def _to_int(value: str) -> int:
    # numstat prints "-" for binary files
    return int(value) if value.isdigit() else 0


def diff_range(base_ref: str, head: str = "HEAD", remote: str | None = "origin") -> str:
    base = f"{remote}/{base_ref}" if remote else base_ref
    return f"{base}...{head}"


def truncate_bytes(text: str, max_bytes: int) -> tuple[str, bool]:
    """Cap text at max_bytes of UTF-8 and append the truncation marker.

    A multi-byte character split by the cut is dropped whole, so the result
    before the marker is never longer than max_bytes.
    """
    encoded = text.encode("utf-8")
    if len(encoded) <= max_bytes:
        return text, False
    head = encoded[:max_bytes].decode("utf-8", errors="ignore")
    return head + TRUNCATION_MARKER, True


def collect_diff(
    git: GitClient,
    base_ref: str,
    config: dict,
    max_files: int,
    head: str = "HEAD",
) -> DiffBundle:
    """Build the DiffBundle sent to the reviewer.

    Raises ScopeExceeded before reading any diff text when too many files
    match the filter.
    """
    rng = diff_range(base_ref, head, config.get("remote", "origin"))
    files = select_files(git.changed_files(rng), config.get("extensions", []), config.get("exclude", []))

    if len(files) > max_files:
        raise ScopeExceeded(len(files), max_files)

    # Totals cover every file in the range, not only the filtered ones.
    stats = git.numstat(rng)
    lines_added = sum(s[0] for s in stats)
    lines_deleted = sum(s[1] for s in stats)
    logger.debug("Changed files: %d, +%d / -%d", len(files), lines_added, lines_deleted)

    parts = []
    for path in files:
        if not git.exists(path, head):
            logger.debug("Skipping %s: deleted at head", path)
            continue
        parts.append(f"=== DIFF FOR: {path} ===\n")
        parts.append(git.file_diff(rng, path))
        parts.append("\n")
    assembled = "".join(parts)

    max_bytes = int(config.get("max_diff_bytes", 300_000))
    original_size = len(assembled.encode("utf-8"))
    diff_text, truncated = truncate_bytes(assembled, max_bytes)
    if truncated:
        logger.warning("Diff too large (%d bytes), truncated to %d bytes", original_size, max_bytes)

    return DiffBundle(
        files=tuple(files),
        lines_added=lines_added,
        lines_deleted=lines_deleted,
        diff_text=diff_text,
        original_size=original_size,
        truncated=truncated,
    )
