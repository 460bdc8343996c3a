"""Pinned-version package store ("warehouse").

Released packages are unpacked to ``<warehouse>/packages/<name>/<version>``
and a release manifest pins which version of each package belongs to a
release.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

from pydantic import BaseModel
from pydantic import Field
from pydantic import ValidationError

from .errors import PackageConfigError

logger = logging.getLogger(__name__)


def get_warehouse_dir() -> Path:
    """Warehouse root: ``$PKGLOADER_WAREHOUSE_DIR`` or ``~/.pkgloader``."""
    if env_dir := os.environ.get("PKGLOADER_WAREHOUSE_DIR"):
        return Path(env_dir).expanduser()
    return Path.home() / ".pkgloader"


class ReleaseManifest(BaseModel):
    """Package and tool versions making up one release."""

    release: str | None = Field(None, description="Release name")
    packages: dict[str, str] = Field(default_factory=dict, description="Package name -> exact version")
    tools: dict[str, str] = Field(default_factory=dict, description="Tool name -> exact version")


class Warehouse:
    """Filesystem layout of the pinned-version store."""

    def __init__(self, root: Path | None = None):
        self.root = root if root is not None else get_warehouse_dir()

    def package_dir(self, name: str, version: str) -> Path:
        return self.root / "packages" / name / version

    def release_path(self, release: str) -> Path:
        return self.root / "releases" / f"{release}.release.json"

    def load_release_manifest(self, release: str) -> ReleaseManifest:
        """Read a release manifest.

        Raises:
            PackageConfigError: Manifest missing or malformed
        """
        path = self.release_path(release)
        if not path.exists():
            raise PackageConfigError(f"Release '{release}' not found at {path}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
            manifest = ReleaseManifest.model_validate(data)
        except (json.JSONDecodeError, ValidationError) as e:
            raise PackageConfigError(f"Invalid release manifest {path}: {e}") from e

        if manifest.release is None:
            manifest.release = release
        logger.debug(f"Loaded release {release} with {len(manifest.packages)} packages")
        return manifest
