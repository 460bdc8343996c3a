"""Shared fixtures: package trees on disk and registries over them."""

from pathlib import Path
from textwrap import dedent

import pytest

from pkgloader.registry import PackageRegistry
from pkgloader.warehouse import Warehouse

CORE_DESCRIPTOR = """
Package.describe(summary="Core runtime", internal=True)

Package.register_extension("js", lambda source: f"js:{source}")

@Package.on_use
def on_use(api):
    api.add_files("core.js", ["client", "server"])
"""


def write_package(parent: Path, name: str, descriptor: str, files: dict[str, str] | None = None) -> Path:
    """Create ``parent/name/package.py`` (plus extra files) and return the directory."""
    package_dir = parent / name
    package_dir.mkdir(parents=True, exist_ok=True)
    (package_dir / "package.py").write_text(dedent(descriptor))
    for relative, content in (files or {}).items():
        path = package_dir / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return package_dir


@pytest.fixture
def make_package():
    return write_package


@pytest.fixture
def packages_dir(tmp_path: Path) -> Path:
    """A package directory holding only the foundation package."""
    directory = tmp_path / "packages"
    write_package(directory, "core", CORE_DESCRIPTOR, {"core.js": "// core"})
    return directory


@pytest.fixture
def warehouse(tmp_path: Path) -> Warehouse:
    return Warehouse(tmp_path / "warehouse")


@pytest.fixture
def registry(packages_dir: Path, warehouse: Warehouse) -> PackageRegistry:
    return PackageRegistry(package_dirs=[packages_dir], warehouse=warehouse, app_baseline=["core"])
