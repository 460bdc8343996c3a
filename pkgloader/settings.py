"""Settings management for pkgloader.

Scope priority (most specific wins):
1. project (.pkgloader/settings.yaml in the current directory)
2. global (~/.pkgloader/settings.yaml)

Recognized keys:
    package_dirs: [paths]     extra package directories, searched in order
    warehouse_dir: path       root of the pinned-version store
    release: name             release whose manifest pins warehouse packages
    ignore_files: [regexes]   extra source paths to skip when scanning apps
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)


@dataclass
class SettingsPaths:
    """Standard paths for settings files."""

    global_settings: Path
    project_settings: Path

    @classmethod
    def default(cls) -> SettingsPaths:
        return cls(
            global_settings=Path.home() / ".pkgloader" / "settings.yaml",
            project_settings=Path.cwd() / ".pkgloader" / "settings.yaml",
        )


class LoaderSettings:
    """Scope-aware YAML settings.

    Usage:
        settings = LoaderSettings()
        dirs = settings.get_package_dirs()
    """

    def __init__(self, paths: SettingsPaths | None = None) -> None:
        self.paths = paths or SettingsPaths.default()

    def get_merged_settings(self) -> dict[str, Any]:
        """Load and merge settings from all scopes."""
        result: dict[str, Any] = {}
        for path in [self.paths.global_settings, self.paths.project_settings]:
            if not path.exists():
                continue
            try:
                with open(path) as f:
                    content = yaml.safe_load(f) or {}
            except (OSError, yaml.YAMLError) as e:
                logger.warning(f"Skipping unreadable settings file {path}: {e}")
                continue
            if not isinstance(content, dict):
                logger.warning(f"Skipping settings file {path}: expected a mapping")
                continue
            result = self._deep_merge(result, content)
        return result

    def get_package_dirs(self) -> list[Path]:
        dirs = self.get_merged_settings().get("package_dirs") or []
        return [Path(d).expanduser() for d in dirs]

    def get_warehouse_dir(self) -> Path | None:
        value = self.get_merged_settings().get("warehouse_dir")
        return Path(value).expanduser() if value else None

    def get_release(self) -> str | None:
        return self.get_merged_settings().get("release")

    def get_ignore_files(self) -> list[str]:
        return list(self.get_merged_settings().get("ignore_files") or [])

    def set_value(self, key: str, value: Any, scope: str = "project") -> None:
        """Write one top-level key to the given scope's file."""
        path = self.paths.project_settings if scope == "project" else self.paths.global_settings
        settings: dict[str, Any] = {}
        if path.exists():
            with open(path) as f:
                settings = yaml.safe_load(f) or {}
        settings[key] = value
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            yaml.safe_dump(settings, f, default_flow_style=False, sort_keys=False)

    def _deep_merge(self, base: dict[str, Any], overlay: dict[str, Any]) -> dict[str, Any]:
        """Deep merge overlay into base. Lists are replaced, not merged."""
        result = base.copy()
        for key, value in overlay.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._deep_merge(result[key], value)
            else:
                result[key] = value
        return result
