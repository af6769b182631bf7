"""Find the JS/TS files git reports as changed, for incremental runs."""

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from ..errors import AnalysisError

logger = logging.getLogger(__name__)

SOURCE_SUFFIXES = (".ts", ".tsx", ".js", ".jsx")
DEFAULT_SINCE = "HEAD~1"

_GLOB_SPECIAL = re.compile(r"([\[\]*?\\])")
# Print non-ASCII paths as they are instead of octal-escaped and quoted
_UNQUOTED = ("-c", "core.quotePath=false")


@dataclass
class FileChange:
    path: Path
    status: str  # "A", "M", "D", "R" or "C"
    old_path: Optional[Path] = None


def run_git(args: list[str], cwd: Path, timeout: int = 30) -> str:
    """Run a git command in cwd and return its stdout.

    Raises:
        subprocess.CalledProcessError: If git exits non-zero
        subprocess.TimeoutExpired: If git exceeds timeout
        FileNotFoundError: If git is not installed
    """
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        check=True,
        capture_output=True,
        text=True,
        timeout=timeout,
    )
    return result.stdout


def parse_name_status(output: str, base_dir: Path) -> list[FileChange]:
    """Parse ``git diff --name-status`` lines into FileChange records.

    Renames and copies list the old path first, as git prints them.
    """
    changes = []
    for line in output.splitlines():
        parts = line.split("\t")
        if len(parts) < 2 or not parts[0]:
            continue
        status = parts[0][0]
        if status in ("R", "C") and len(parts) >= 3:
            changes.append(FileChange(base_dir / parts[2], status, old_path=base_dir / parts[1]))
        else:
            changes.append(FileChange(base_dir / parts[1], status))
    return changes


def as_target_pattern(base_dir: Path, path: Path) -> str:
    """Anchored gitwildmatch pattern matching exactly one file."""
    relative = path.resolve().relative_to(base_dir.resolve()).as_posix()
    return "/" + _GLOB_SPECIAL.sub(r"\\\1", relative)


class ChangeDetector:
    """Lists changed source files under a directory inside a git work tree."""

    def __init__(self, base_dir: Path):
        self.base_dir = base_dir

    def is_git_repository(self) -> bool:
        try:
            return run_git(["rev-parse", "--is-inside-work-tree"], self.base_dir).strip() == "true"
        except (subprocess.SubprocessError, OSError):
            return False

    def _resolve_since(self, since: Optional[str]) -> str:
        if since:
            return since
        try:
            run_git(["rev-parse", "--verify", "--quiet", DEFAULT_SINCE], self.base_dir)
            return DEFAULT_SINCE
        except subprocess.CalledProcessError:
            # A single-commit history has no parent to compare with
            return "HEAD"

    def changes(self, since: Optional[str] = None) -> list[FileChange]:
        """Changes between ``since`` and the working tree, plus untracked files.

        Paths are limited to ``base_dir`` and to JS/TS sources.

        Raises:
            AnalysisError: If base_dir is not in a git work tree or git fails
        """
        if not self.is_git_repository():
            raise AnalysisError(f"{self.base_dir} is not inside a git repository", {"base_dir": str(self.base_dir)})

        ref = self._resolve_since(since)
        try:
            diff = run_git([*_UNQUOTED, "diff", "--name-status", "--relative", ref], self.base_dir)
            untracked = run_git([*_UNQUOTED, "ls-files", "--others", "--exclude-standard"], self.base_dir)
        except subprocess.CalledProcessError as e:
            detail = (e.stderr or "").strip() or str(e)
            raise AnalysisError(f"git could not list changes since {ref}: {detail}", {"since": ref}) from e
        except (subprocess.TimeoutExpired, OSError) as e:
            raise AnalysisError(f"git could not list changes since {ref}: {e}", {"since": ref}) from e

        changes = parse_name_status(diff, self.base_dir)
        changes.extend(FileChange(self.base_dir / line, "A") for line in untracked.splitlines() if line)
        selected = [c for c in changes if c.path.suffix.lower() in SOURCE_SUFFIXES]
        logger.debug("git reports %d changes since %s, %d are JS/TS sources", len(changes), ref, len(selected))
        return selected

    def changed_files(self, since: Optional[str] = None) -> list[Path]:
        """Added, modified, renamed or copied sources that still exist, sorted."""
        paths = {c.path for c in self.changes(since) if c.status != "D" and c.path.is_file()}
        return sorted(paths)
