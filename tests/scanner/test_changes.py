"""Tests for git change detection used by incremental runs."""

import shutil
import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from monodoc.config import DEFAULT_IGNORE_PATTERNS, DEFAULT_INCLUDE_PATTERNS
from monodoc.errors import AnalysisError
from monodoc.scanner import FileBatcher, PackageDetector
from monodoc.scanner.changes import ChangeDetector, FileChange, as_target_pattern, parse_name_status, run_git


def completed(stdout: str = "") -> MagicMock:
    return MagicMock(stdout=stdout)


class TestParseNameStatus:
    def test_statuses_and_renames(self, tmp_path):
        output = "M\tsrc/a.ts\nA\tsrc/b.tsx\nD\tsrc/c.js\nR087\tsrc/old.ts\tsrc/new.ts\n"

        changes = parse_name_status(output, tmp_path)

        assert changes == [
            FileChange(tmp_path / "src/a.ts", "M"),
            FileChange(tmp_path / "src/b.tsx", "A"),
            FileChange(tmp_path / "src/c.js", "D"),
            FileChange(tmp_path / "src/new.ts", "R", old_path=tmp_path / "src/old.ts"),
        ]

    def test_blank_output(self, tmp_path):
        assert parse_name_status("", tmp_path) == []


class TestTargetPattern:
    def test_anchored_and_escaped(self, tmp_path):
        path = tmp_path / "pages" / "[id]" / "view.tsx"
        assert as_target_pattern(tmp_path, path) == "/pages/\\[id\\]/view.tsx"

    def test_pattern_selects_only_that_file(self, sample_monorepo):
        packages = PackageDetector().discover(sample_monorepo, ["apps", "packages"])
        batcher = FileBatcher(
            base_dir=sample_monorepo,
            include_patterns=DEFAULT_INCLUDE_PATTERNS,
            ignore_patterns=DEFAULT_IGNORE_PATTERNS,
            max_tokens_per_batch=8000,
            target_paths=[as_target_pattern(sample_monorepo, sample_monorepo / "packages/core/src/math.ts")],
        )

        files = batcher.collect_files(packages)

        assert [f.path.name for f in files] == ["math.ts"]


class TestChangeDetector:
    @patch("monodoc.scanner.changes.subprocess.run")
    def test_run_git_arguments(self, mock_run, tmp_path):
        mock_run.return_value = completed("true\n")

        assert run_git(["rev-parse", "--is-inside-work-tree"], tmp_path) == "true\n"
        mock_run.assert_called_once_with(
            ["git", "rev-parse", "--is-inside-work-tree"],
            cwd=tmp_path,
            check=True,
            capture_output=True,
            text=True,
            timeout=30,
        )

    @patch("monodoc.scanner.changes.subprocess.run")
    def test_not_a_repository(self, mock_run, tmp_path):
        mock_run.side_effect = subprocess.CalledProcessError(128, ["git"], stderr="fatal: not a git repository")

        with pytest.raises(AnalysisError, match="not inside a git repository"):
            ChangeDetector(tmp_path).changes()

    @patch("monodoc.scanner.changes.subprocess.run")
    def test_git_missing(self, mock_run, tmp_path):
        mock_run.side_effect = FileNotFoundError("git")
        assert ChangeDetector(tmp_path).is_git_repository() is False

    @patch("monodoc.scanner.changes.subprocess.run")
    def test_filters_sources_and_adds_untracked(self, mock_run, tmp_path):
        (tmp_path / "src").mkdir()
        for name in ("a.ts", "b.jsx", "new.ts", "notes.md", "fresh.tsx"):
            (tmp_path / "src" / name).write_text("")
        mock_run.side_effect = [
            completed("true\n"),
            completed(""),
            completed("M\tsrc/a.ts\nM\tsrc/notes.md\nD\tsrc/gone.ts\nR100\tsrc/old.ts\tsrc/new.ts\nM\tsrc/b.jsx\n"),
            completed("src/fresh.tsx\n"),
        ]

        files = ChangeDetector(tmp_path).changed_files()

        assert files == sorted(tmp_path / "src" / n for n in ("a.ts", "b.jsx", "fresh.tsx", "new.ts"))
        diff_args = mock_run.call_args_list[2].args[0]
        assert diff_args[-4:] == ["diff", "--name-status", "--relative", "HEAD~1"]

    @patch("monodoc.scanner.changes.subprocess.run")
    def test_single_commit_history_compares_with_head(self, mock_run, tmp_path):
        mock_run.side_effect = [
            completed("true\n"),
            subprocess.CalledProcessError(1, ["git"]),
            completed(""),
            completed(""),
        ]

        assert ChangeDetector(tmp_path).changed_files() == []
        assert mock_run.call_args_list[2].args[0][-1] == "HEAD"

    @patch("monodoc.scanner.changes.subprocess.run")
    def test_explicit_since_is_used(self, mock_run, tmp_path):
        mock_run.side_effect = [completed("true\n"), completed(""), completed("")]

        ChangeDetector(tmp_path).changed_files("main")

        assert mock_run.call_args_list[1].args[0][-1] == "main"

    @patch("monodoc.scanner.changes.subprocess.run")
    def test_unknown_ref(self, mock_run, tmp_path):
        mock_run.side_effect = [
            completed("true\n"),
            subprocess.CalledProcessError(128, ["git"], stderr="fatal: bad revision 'nope'\n"),
        ]

        with pytest.raises(AnalysisError, match="bad revision"):
            ChangeDetector(tmp_path).changed_files("nope")


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
class TestChangeDetectorWithGit:
    def git(self, repo: Path, *args: str) -> None:
        subprocess.run(
            ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", *args],
            cwd=repo,
            check=True,
            capture_output=True,
        )

    def test_edits_since_last_commit(self, tmp_path):
        repo = tmp_path / "repo"
        (repo / "src").mkdir(parents=True)
        (repo / "src" / "a.ts").write_text("export const a = () => 1;\n")
        (repo / "src" / "b.ts").write_text("export const b = () => 2;\n")
        self.git(repo, "init", "-q")
        self.git(repo, "add", ".")
        self.git(repo, "commit", "-q", "-m", "initial")

        (repo / "src" / "a.ts").write_text("export const a = () => 10;\n")
        (repo / "src" / "c.js").write_text("module.exports = () => 3;\n")
        (repo / "README.md").write_text("docs\n")

        files = ChangeDetector(repo).changed_files()

        assert [f.relative_to(repo).as_posix() for f in files] == ["src/a.ts", "src/c.js"]
