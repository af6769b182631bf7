"""Tests for package discovery and prioritisation."""

import json
from pathlib import Path

from monodoc.models import PackageKind
from monodoc.scanner import PackageDetector


def write_manifest(directory: Path, name: str) -> None:
    directory.mkdir(parents=True, exist_ok=True)
    (directory / "package.json").write_text(json.dumps({"name": name}))


class TestPackageDetector:
    def test_discovers_root_and_workspace_packages(self, sample_monorepo):
        packages = PackageDetector().discover(sample_monorepo, ["apps", "packages"])

        names = [p.name for p in packages]
        assert names == ["sample-monorepo", "@sample/core", "@sample/web"]
        assert packages[0].kind == PackageKind.ROOT
        assert packages[1].kind == PackageKind.PACKAGE
        assert packages[2].kind == PackageKind.APP

    def test_priority_scoring(self, sample_monorepo):
        packages = {p.name: p for p in PackageDetector().discover(sample_monorepo, ["apps", "packages"])}

        # base 100, central name +50, one dependency +0.5, TypeScript +5
        assert packages["@sample/core"].priority == 155.5
        assert packages["@sample/core"].has_typescript
        assert packages["@sample/web"].priority == 60.5
        assert packages["sample-monorepo"].priority == 200

    def test_dependency_bonus_is_capped(self):
        manifest = {"name": "app", "dependencies": {f"dep{i}": "1" for i in range(200)}}
        priority = PackageDetector().calculate_priority(manifest, PackageKind.APP, False)
        assert priority == 90

    def test_broken_manifest_skipped(self, tmp_path: Path):
        write_manifest(tmp_path / "packages" / "good", "good")
        broken = tmp_path / "packages" / "broken"
        broken.mkdir(parents=True)
        (broken / "package.json").write_text("{not json")

        packages = PackageDetector().discover(tmp_path, ["packages"])

        assert [p.name for p in packages] == ["good"]

    def test_missing_name_falls_back_to_directory(self, tmp_path: Path):
        lib = tmp_path / "libs" / "strings"
        lib.mkdir(parents=True)
        (lib / "package.json").write_text("{}")

        packages = PackageDetector().discover(tmp_path, ["libs"])

        assert packages[0].name == "strings"
        assert packages[0].kind == PackageKind.LIB

    def test_unknown_workspace_dir_is_other(self, tmp_path: Path):
        write_manifest(tmp_path / "modules" / "x", "x")
        packages = PackageDetector().discover(tmp_path, ["modules"])
        assert packages[0].kind == PackageKind.OTHER

    def test_fallback_package(self, tmp_path: Path):
        package = PackageDetector().fallback_package(tmp_path)
        assert package.kind == PackageKind.ROOT
        assert package.path == tmp_path
