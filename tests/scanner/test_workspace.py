"""Tests for workspace analysis and the symbol reference map."""

from pathlib import Path

from monodoc.backends import TSParser
from monodoc.config import Config
from monodoc.scanner import SymbolReferenceAnalyzer, WorkspaceAnalyzer


class TestWorkspaceAnalyzer:
    def test_analyze_sample_monorepo(self, config):
        analysis = WorkspaceAnalyzer(config).analyze()

        assert len(analysis.packages) == 3
        assert analysis.total_files == 3
        assert analysis.batches

    def test_package_for_returns_innermost(self, config, sample_monorepo):
        analysis = WorkspaceAnalyzer(config).analyze()

        math = sample_monorepo / "packages" / "core" / "src" / "math.ts"
        assert analysis.package_for(math).name == "@sample/core"
        assert analysis.package_for(sample_monorepo / "tools.ts").name == "sample-monorepo"

    def test_repository_without_manifest(self, tmp_path: Path):
        (tmp_path / "index.ts").write_text("export function main() {}\n")
        config = Config(base_dir=tmp_path)

        analysis = WorkspaceAnalyzer(config).analyze()

        assert len(analysis.packages) == 1
        assert analysis.packages[0].path == tmp_path.resolve()
        assert analysis.total_files == 1

    def test_symbol_references_can_be_disabled(self, config):
        config.docs.include_symbol_references = False
        analysis = WorkspaceAnalyzer(config).analyze()
        assert analysis.symbol_map == {}


class TestSymbolReferenceAnalyzer:
    def test_usages_found_across_files(self, sample_monorepo):
        core = sample_monorepo / "packages" / "core" / "src"
        analyzer = SymbolReferenceAnalyzer(TSParser(), sample_monorepo)

        symbols = analyzer.analyze([core / "math.ts", core / "round.ts"])

        add = symbols["packages/core/src/math.ts:add"]
        assert add.kind == "function"
        assert add.is_exported
        assert [(u.file_path, u.line) for u in add.usages] == [("packages/core/src/math.ts", 16)]

        round_symbol = symbols["packages/core/src/round.ts:round"]
        assert any(u.file_path == "packages/core/src/math.ts" and u.line == 1 for u in round_symbol.usages)

    def test_methods_are_not_top_level_symbols(self, sample_monorepo):
        core = sample_monorepo / "packages" / "core" / "src"
        symbols = SymbolReferenceAnalyzer(TSParser(), sample_monorepo).analyze([core / "math.ts"])
        assert "packages/core/src/math.ts:total" not in symbols
        assert "packages/core/src/math.ts:Calculator" in symbols

    def test_usages_are_capped(self, tmp_path: Path):
        lines = ["export function ping() {}"] + [f"ping(); // call {i}" for i in range(20)]
        source = tmp_path / "ping.ts"
        source.write_text("\n".join(lines) + "\n")

        symbols = SymbolReferenceAnalyzer(TSParser(), tmp_path, max_usages=3).analyze([source])

        assert len(symbols["ping.ts:ping"].usages) == 3

    def test_unreadable_file_skipped(self, tmp_path: Path):
        missing = tmp_path / "gone.ts"
        symbols = SymbolReferenceAnalyzer(TSParser(), tmp_path).analyze([missing])
        assert symbols == {}
