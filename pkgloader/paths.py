"""Path policy and factory helpers.

All decisions about where packages are looked up live here; the registry
and loaders receive their paths by injection.
"""

from __future__ import annotations

import os
from pathlib import Path

from .registry import PackageRegistry
from .settings import LoaderSettings
from .warehouse import ReleaseManifest
from .warehouse import Warehouse
from .warehouse import get_warehouse_dir


def get_engine_dir() -> Path:
    """Directory pkgloader runs from (``$PKGLOADER_ENGINE_DIR`` overrides)."""
    if env_dir := os.environ.get("PKGLOADER_ENGINE_DIR"):
        return Path(env_dir).expanduser()
    return Path(__file__).resolve().parent.parent


def uses_warehouse() -> bool:
    """False when running from a source checkout (a git working tree)."""
    return not (get_engine_dir() / ".git").exists()


def get_package_dirs_from_env() -> list[Path]:
    """Directories from the colon-separated ``$PACKAGE_DIRS``."""
    value = os.environ.get("PACKAGE_DIRS", "")
    return [Path(d).expanduser() for d in value.split(":") if d]


def get_local_package_dirs(settings: LoaderSettings | None = None) -> list[Path]:
    """Package directories in search order: environment, then settings."""
    settings = settings or LoaderSettings()
    dirs: list[Path] = []
    for directory in [*get_package_dirs_from_env(), *settings.get_package_dirs()]:
        if directory not in dirs:
            dirs.append(directory)
    return dirs


def create_warehouse(settings: LoaderSettings | None = None) -> Warehouse:
    settings = settings or LoaderSettings()
    if os.environ.get("PKGLOADER_WAREHOUSE_DIR"):
        return Warehouse(get_warehouse_dir())
    return Warehouse(settings.get_warehouse_dir() or get_warehouse_dir())


def create_package_registry(settings: LoaderSettings | None = None) -> PackageRegistry:
    """Create a registry configured from the environment and settings."""
    settings = settings or LoaderSettings()
    checkout_dir = None if uses_warehouse() else get_engine_dir() / "packages"
    return PackageRegistry(
        package_dirs=get_local_package_dirs(settings),
        checkout_packages_dir=checkout_dir,
        warehouse=create_warehouse(settings),
    )


def load_configured_release(
    release: str | None = None, settings: LoaderSettings | None = None
) -> ReleaseManifest | None:
    """Manifest of ``release`` (or the configured release), if any."""
    settings = settings or LoaderSettings()
    release = release or settings.get_release()
    if not release:
        return None
    return create_warehouse(settings).load_release_manifest(release)
