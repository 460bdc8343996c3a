"""Package registry - resolve package names to loaded Package objects.

Resolution order (first match wins):
1. App packages (``<app_dir>/packages/<name>``, if an app dir is given)
2. Package directories (``$PACKAGE_DIRS`` then settings ``package_dirs``)
3. The checkout's own ``packages/`` directory (when running from a checkout)
4. The warehouse (if a release manifest is given)

Loaded packages are cached until ``flush()``. Each registry has its own
cache, so independent registries can coexist.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

from .descriptor import init_from_package_dir
from .errors import PackageNotFoundError
from .extensions import ExtensionHandlerResolver
from .package import DESCRIPTOR_FILENAME
from .package import FOUNDATION_PACKAGE
from .package import Package
from .scanner import IgnorePattern
from .warehouse import ReleaseManifest
from .warehouse import Warehouse

logger = logging.getLogger(__name__)

LIST_WIDTH = 80


@dataclass
class PackageSearchOptions:
    """Per-lookup search options."""

    app_dir: Path | None = None
    release_manifest: ReleaseManifest | None = None


def is_package_dir(path: Path) -> bool:
    return (Path(path) / DESCRIPTOR_FILENAME).is_file()


def format_list(packages: Iterable[Package]) -> str:
    """Render named packages as ``name  summary`` lines, 80 columns wide.

    Packages marked internal are left out.
    """
    packages = list(packages)
    longest = max((len(p.name or "") for p in packages), default=0)
    summary_width = max(LIST_WIDTH - 2 - longest, 0)

    out = []
    for package in packages:
        if package.is_internal:
            continue
        summary = package.metadata.get("summary") or "No description"
        out.append(f"{(package.name or '').ljust(longest)}  {summary[:summary_width]}\n")
    return "".join(out)


class PackageRegistry:
    """Finds, loads and caches packages."""

    def __init__(
        self,
        package_dirs: Iterable[Path] | None = None,
        checkout_packages_dir: Path | None = None,
        warehouse: Warehouse | None = None,
        foundation: str = FOUNDATION_PACKAGE,
        app_baseline: Iterable[str] | None = None,
    ):
        """Initialize registry.

        Args:
            package_dirs: Directories searched for packages, in order
            checkout_packages_dir: ``packages/`` of a source checkout, searched
                after ``package_dirs``; None when running from a release
            warehouse: Pinned-version store used with release manifests
            foundation: Package every other package implicitly uses
            app_baseline: Packages every app uses (default: ``foundation``
                followed by STANDARD_APP_PACKAGES)
        """
        self.package_dirs = [Path(d) for d in package_dirs or []]
        self.checkout_packages_dir = Path(checkout_packages_dir) if checkout_packages_dir else None
        self.warehouse = warehouse if warehouse is not None else Warehouse()
        self.foundation = foundation
        self.app_baseline = list(app_baseline) if app_baseline is not None else None
        self._loaded: dict[str, Package] = {}

    def __contains__(self, name: object) -> bool:
        return name in self._loaded

    def local_package_dirs(self) -> list[Path]:
        dirs = list(self.package_dirs)
        if self.checkout_packages_dir is not None:
            dirs.append(self.checkout_packages_dir)
        return dirs

    def directory_for_local_package(self, name: str) -> Path | None:
        """First local package directory containing package ``name``."""
        for packages_dir in self.local_package_dirs():
            candidate = packages_dir / name
            if is_package_dir(candidate):
                return candidate
        return None

    def locate(self, name: str, options: PackageSearchOptions | None = None) -> tuple[Path, str] | None:
        """Find the directory of package ``name``.

        Returns:
            Tuple of (directory, layer) where layer is one of: app, local,
            warehouse. None if no layer has the package.
        """
        options = options or PackageSearchOptions()

        if options.app_dir is not None:
            candidate = Path(options.app_dir) / "packages" / name
            if is_package_dir(candidate):
                return (candidate, "app")

        if local_dir := self.directory_for_local_package(name):
            return (local_dir, "local")

        if options.release_manifest is not None:
            version = options.release_manifest.packages.get(name)
            if version is not None:
                return (self.warehouse.package_dir(name, version), "warehouse")

        return None

    def get(self, name: str | Package, options: PackageSearchOptions | None = None) -> Package:
        """Get a package by name, loading it on first use.

        Package objects map to themselves. After a package is loaded, every
        package it uses is loaded too (descriptors of dependencies may set
        up state their dependents rely on while loading).

        Raises:
            PackageNotFoundError: No search location has the package
            PackageConfigError: A descriptor is invalid
        """
        if isinstance(name, Package):
            return name
        if name in self._loaded:
            return self._loaded[name]

        located = self.locate(name, options)
        if located is None:
            raise PackageNotFoundError(name)
        directory, layer = located
        logger.debug(
            f"[package:resolve] {name} -> {layer} ({directory})",
            extra={"package": name, "layer": layer, "directory": str(directory)},
        )

        package = init_from_package_dir(Package(), name, directory, self.foundation)
        # Cached before its dependencies load, so cycles terminate.
        self._loaded[name] = package
        try:
            self._force_load_dependencies(package, options)
        except Exception:
            self._loaded.pop(name, None)
            raise
        return package

    def _force_load_dependencies(self, package: Package, options: PackageSearchOptions | None) -> None:
        for dependency in package.used_names():
            if dependency not in self._loaded:
                self.get(dependency, options)

    def load_from_dir(self, name: str, directory: Path) -> Package:
        """Load a package directly from a directory, bypassing the cache."""
        return init_from_package_dir(Package(), name, Path(directory), self.foundation)

    def get_for_app(
        self,
        app_dir: Path,
        ignore_files: Iterable[IgnorePattern] | None = None,
        options: PackageSearchOptions | None = None,
    ) -> Package:
        """Build the (uncached) pseudo-package of an application directory."""
        from .app_package import init_from_app_dir

        return init_from_app_dir(
            Package(), Path(app_dir), list(ignore_files or []), self, options, baseline=self.app_baseline
        )

    def extension_resolver(self, options: PackageSearchOptions | None = None) -> ExtensionHandlerResolver:
        return ExtensionHandlerResolver(self, options)

    def flush(self) -> None:
        """Forget every loaded package; the next get() reloads from disk."""
        logger.debug(f"Flushing {len(self._loaded)} loaded packages")
        self._loaded = {}

    def list_packages(self, release_manifest: ReleaseManifest | None = None) -> dict[str, Package]:
        """All available packages, by name.

        Local package directories come first (earlier directories win),
        then packages pinned by ``release_manifest``.
        """
        found: dict[str, Package] = {}

        for packages_dir in self.local_package_dirs():
            if not packages_dir.is_dir():
                continue
            for entry in sorted(packages_dir.iterdir()):
                if entry.name not in found and is_package_dir(entry):
                    found[entry.name] = self.get(entry.name)

        if release_manifest is not None:
            options = PackageSearchOptions(release_manifest=release_manifest)
            for name in release_manifest.packages:
                if name not in found:
                    found[name] = self.get(name, options)

        return found

    def format_list(self, packages: Iterable[Package]) -> str:
        return format_list(packages)
