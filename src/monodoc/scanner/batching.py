"""Token-aware file batching."""

import logging
import math
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional
from pathspec import PathSpec
from pathspec.patterns.gitwildmatch import GitWildMatchPattern

from ..models import FileBatch, WorkspacePackage

logger = logging.getLogger(__name__)


# Rough characters-per-token ratio for common models
CHARS_PER_TOKEN = 4

_FILE_NAME_KEYWORDS = [
    (("index", "main", "core"), 20),
    (("api", "service", "client", "gateway", "repository"), 15),
    (("type", "interface", "model", "schema"), 15),
    (("util", "helper"), 10),
    (("config",), 10),
    (("constant", "enum"), 5),
    (("hook", "component"), 5),
]

_DIR_NAME_KEYWORDS = [
    (("src", "source", "lib"), 10),
    (("api", "services", "clients"), 15),
    (("types", "models", "interfaces"), 15),
    (("hooks", "components", "elements"), 5),
]


@dataclass
class CandidateFile:
    path: Path
    size: int
    priority: float


def estimate_tokens(size: int) -> int:
    return math.ceil(size / CHARS_PER_TOKEN)


class FileBatcher:
    """Collects source files per package and packs them into batches."""

    def __init__(
        self,
        base_dir: Path,
        include_patterns: list[str],
        ignore_patterns: list[str],
        max_tokens_per_batch: int,
        target_paths: Optional[list[str]] = None,
    ):
        self.base_dir = base_dir
        self.max_tokens_per_batch = max_tokens_per_batch
        patterns = include_patterns
        if target_paths:
            logger.info("Target paths override include patterns: %s", ", ".join(target_paths))
            patterns = target_paths
        self.include_spec = PathSpec.from_lines(GitWildMatchPattern, patterns)
        self.ignore_spec = PathSpec.from_lines(GitWildMatchPattern, ignore_patterns)

    def create_batches(self, packages: list[WorkspacePackage]) -> list[FileBatch]:
        """Collect, prioritise and pack files from every package."""
        files = self.collect_files(packages)
        files.sort(key=lambda f: (-f.priority, str(f.path)))
        logger.info("Found %d source files for processing", len(files))

        batches = self.pack(files)
        if batches:
            average = sum(len(b.files) for b in batches) / len(batches)
            logger.info("Created %d batches (average %.1f files)", len(batches), average)
        return batches

    def collect_files(self, packages: list[WorkspacePackage]) -> list[CandidateFile]:
        """Each file belongs to the innermost package containing it."""
        package_roots = {p.path.resolve() for p in packages}
        collected: list[CandidateFile] = []

        for package in packages:
            root = package.path.resolve()
            nested = {r for r in package_roots if r != root and _is_relative_to(r, root)}

            for file_path in self._walk(root, nested):
                try:
                    size = file_path.stat().st_size
                except OSError as e:
                    logger.warning("Could not stat %s: %s", file_path, e)
                    continue
                collected.append(
                    CandidateFile(
                        path=file_path,
                        size=size,
                        priority=self.calculate_file_priority(file_path, package.priority),
                    )
                )

        return collected

    def _walk(self, root: Path, nested: set[Path]):
        base = self.base_dir.resolve()

        def _on_error(error: OSError) -> None:
            logger.warning("Skipping unreadable directory %s: %s", error.filename, error)

        for current, dirs, filenames in os.walk(root, onerror=_on_error):
            current_path = Path(current)

            # Prune nested packages and ignored directories before descending
            pruned = []
            for directory in sorted(dirs):
                candidate = current_path / directory
                if candidate in nested:
                    continue
                rel_dir = _relative(candidate, base)
                if self.ignore_spec.match_file(rel_dir + "/"):
                    continue
                pruned.append(directory)
            dirs[:] = pruned

            for filename in sorted(filenames):
                file_path = current_path / filename
                rel_base = _relative(file_path, base)
                if self.ignore_spec.match_file(rel_base):
                    continue
                rel_package = _relative(file_path, root)
                if not (
                    self.include_spec.match_file(rel_package)
                    or self.include_spec.match_file(rel_base)
                ):
                    continue
                if file_path.is_file():
                    yield file_path

    def pack(self, files: list[CandidateFile]) -> list[FileBatch]:
        """Greedy bin-packing in priority order.

        A file larger than the ceiling gets a batch of its own.
        """
        batches: list[FileBatch] = []
        current = FileBatch()

        def _flush() -> None:
            nonlocal current
            if current.files:
                current.id = f"batch-{len(batches)}"
                batches.append(current)
            current = FileBatch()

        for candidate in files:
            tokens = estimate_tokens(candidate.size)

            if current.files and current.estimated_tokens + tokens > self.max_tokens_per_batch:
                _flush()

            if tokens > self.max_tokens_per_batch:
                logger.warning(
                    "File %s (~%d tokens) exceeds batch ceiling (%d tokens), processing separately",
                    candidate.path,
                    tokens,
                    self.max_tokens_per_batch,
                )
                batches.append(
                    FileBatch(
                        id=f"batch-{len(batches)}",
                        files=[candidate.path],
                        estimated_tokens=tokens,
                        priority=candidate.priority,
                    )
                )
                continue

            if not current.files:
                current.priority = candidate.priority
            current.files.append(candidate.path)
            current.estimated_tokens += tokens
            current.priority = max(current.priority, candidate.priority)

        _flush()
        batches.sort(key=lambda b: -b.priority)
        return batches

    def calculate_file_priority(self, file_path: Path, package_priority: float) -> float:
        """Heuristic score: entry points, APIs and types first, tests last."""
        priority = package_priority
        file_name = file_path.stem.lower()
        dir_name = file_path.parent.name.lower()

        for words, points in _FILE_NAME_KEYWORDS:
            if any(w in file_name for w in words):
                priority += points

        for words, points in _DIR_NAME_KEYWORDS:
            if any(w in dir_name for w in words):
                priority += points

        if "test" in file_name or "spec" in file_name:
            priority -= 50

        return priority


def _is_relative_to(path: Path, parent: Path) -> bool:
    try:
        path.relative_to(parent)
        return True
    except ValueError:
        return False


def _relative(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.as_posix()
