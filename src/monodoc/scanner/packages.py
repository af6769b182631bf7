"""Package discovery for JS/TS monorepos."""

import json
import logging
from pathlib import Path
from typing import Optional

from ..models import PackageKind, WorkspacePackage

logger = logging.getLogger(__name__)


MANIFEST_NAME = "package.json"

_KIND_BY_DIR = {
    "packages": PackageKind.PACKAGE,
    "libs": PackageKind.LIB,
    "services": PackageKind.SERVICE,
    "apps": PackageKind.APP,
    "tools": PackageKind.TOOL,
}

_BASE_PRIORITY = {
    PackageKind.ROOT: 200,
    PackageKind.PACKAGE: 100,
    PackageKind.LIB: 90,
    PackageKind.SERVICE: 80,
    PackageKind.APP: 60,
    PackageKind.TOOL: 40,
    PackageKind.OTHER: 10,
}

_CENTRAL_NAME_PARTS = ("core", "shared", "common", "util")


class PackageDetector:
    """Finds the root manifest and every package under the workspace dirs."""

    def discover(self, base_dir: Path, workspace_dirs: list[str]) -> list[WorkspacePackage]:
        """Discover packages, ordered by priority descending.

        Unreadable directories and broken manifests are logged and skipped.

        Args:
            base_dir: Monorepo root
            workspace_dirs: Directory names whose children are packages

        Returns:
            List of WorkspacePackage, highest priority first
        """
        packages: list[WorkspacePackage] = []

        root_manifest = base_dir / MANIFEST_NAME
        if root_manifest.is_file():
            package = self._build_package(base_dir, root_manifest, PackageKind.ROOT)
            if package:
                packages.append(package)

        for dir_name in workspace_dirs:
            workspace_dir = base_dir / dir_name
            if not workspace_dir.is_dir():
                continue

            try:
                children = sorted(workspace_dir.iterdir())
            except OSError as e:
                logger.warning("Could not read workspace directory %s: %s", workspace_dir, e)
                continue

            kind = _KIND_BY_DIR.get(dir_name.lower(), PackageKind.OTHER)
            for child in children:
                manifest = child / MANIFEST_NAME
                if not child.is_dir() or not manifest.is_file():
                    continue
                package = self._build_package(child, manifest, kind)
                if package:
                    packages.append(package)

        packages.sort(key=lambda p: (-p.priority, str(p.path)))
        logger.info("Discovered %d packages", len(packages))
        return packages

    def fallback_package(self, base_dir: Path) -> WorkspacePackage:
        """A synthetic root package for repositories without a manifest."""
        return WorkspacePackage(
            name=base_dir.name,
            path=base_dir,
            kind=PackageKind.ROOT,
            manifest_path=base_dir / MANIFEST_NAME,
            priority=float(_BASE_PRIORITY[PackageKind.ROOT]),
            has_typescript=(base_dir / "tsconfig.json").exists(),
        )

    def _build_package(
        self, path: Path, manifest: Path, kind: PackageKind
    ) -> Optional[WorkspacePackage]:
        try:
            data = json.loads(manifest.read_text())
        except (json.JSONDecodeError, OSError, UnicodeDecodeError) as e:
            logger.warning("Could not parse %s, skipping: %s", manifest, e)
            return None

        if not isinstance(data, dict):
            logger.warning("Manifest %s is not a JSON object, skipping", manifest)
            return None

        name = data.get("name") or path.name
        has_typescript = (path / "tsconfig.json").exists() or "typescript" in _all_dependencies(data)

        return WorkspacePackage(
            name=name,
            path=path,
            kind=kind,
            manifest_path=manifest,
            priority=self.calculate_priority(data, kind, has_typescript),
            has_typescript=has_typescript,
        )

    def calculate_priority(self, manifest: dict, kind: PackageKind, has_typescript: bool) -> float:
        """Score how central a package is to the monorepo."""
        priority = float(_BASE_PRIORITY[kind])

        name = str(manifest.get("name") or "")
        if any(part in name for part in _CENTRAL_NAME_PARTS):
            priority += 50

        # Capped so dependency-heavy apps don't outrank shared libraries
        priority += min(len(_all_dependencies(manifest)) * 0.5, 30)

        if has_typescript:
            priority += 5

        return priority


def _all_dependencies(manifest: dict) -> dict:
    deps: dict = {}
    for key in ("dependencies", "devDependencies"):
        value = manifest.get(key)
        if isinstance(value, dict):
            deps.update(value)
    return deps
