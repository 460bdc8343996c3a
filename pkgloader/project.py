"""Per-application project files.

An app records the packages it uses beyond the standard set in
``<app>/.pkgloader/packages``, one name per line. ``#`` starts a comment.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

PROJECT_DIR = ".pkgloader"
PACKAGES_FILE = "packages"


def packages_file(app_dir: Path) -> Path:
    return Path(app_dir) / PROJECT_DIR / PACKAGES_FILE


def _parse_line(line: str) -> str:
    return line.split("#", 1)[0].strip()


def get_packages(app_dir: Path) -> list[str]:
    """Packages explicitly added to the app, in file order."""
    path = packages_file(app_dir)
    if not path.exists():
        return []

    packages: list[str] = []
    for line in path.read_text(encoding="utf-8").splitlines():
        name = _parse_line(line)
        if name and name not in packages:
            packages.append(name)
    return packages


def add_package(app_dir: Path, name: str) -> bool:
    """Append ``name`` to the app's package list.

    Returns:
        False if the package was already listed
    """
    if name in get_packages(app_dir):
        return False

    path = packages_file(app_dir)
    path.parent.mkdir(parents=True, exist_ok=True)
    content = path.read_text(encoding="utf-8") if path.exists() else ""
    if content and not content.endswith("\n"):
        content += "\n"
    path.write_text(content + name + "\n", encoding="utf-8")
    logger.debug(f"Added {name} to {path}")
    return True


def remove_package(app_dir: Path, name: str) -> bool:
    """Remove ``name`` from the app's package list, keeping comments.

    Returns:
        False if the package was not listed
    """
    path = packages_file(app_dir)
    if not path.exists():
        return False

    lines = path.read_text(encoding="utf-8").splitlines(keepends=True)
    kept = [line for line in lines if _parse_line(line) != name]
    if len(kept) == len(lines):
        return False

    path.write_text("".join(kept), encoding="utf-8")
    logger.debug(f"Removed {name} from {path}")
    return True
