"""Source file discovery for package and app directories."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Iterable
from pathlib import Path

from .errors import SourceScanError

logger = logging.getLogger(__name__)

# Templates are loaded before any script that might reference them.
MARKUP_EXTENSIONS = (".html",)

DEFAULT_IGNORE_FILES = [
    r"~$",
    r"(^|/)\.#[^/]*$",
    r"(^|/)#[^/]*#$",
    r"(^|/)\.DS_Store$",
    r"(^|/)Thumbs\.db$",
    r"(^|/)ehthumbs\.db$",
]

IgnorePattern = str | re.Pattern[str]


def _compile(patterns: Iterable[IgnorePattern]) -> list[re.Pattern[str]]:
    return [p if isinstance(p, re.Pattern) else re.compile(p) for p in patterns]


def path_sort_key(path: Path) -> tuple[str, ...]:
    """Depth-first, alphabetical by path segment."""
    return path.parts


def file_list(root: Path, extensions: Iterable[str]) -> list[Path]:
    """All files under ``root`` with one of ``extensions`` (leading dot).

    Dot-files and dot-directories are skipped. Symlinked directories are
    followed, but a directory is never walked twice.
    """
    wanted = set(extensions)
    found: list[Path] = []
    visited: set[str] = set()

    def walk(directory: Path) -> None:
        real = os.path.realpath(directory)
        if real in visited:
            logger.debug(f"Skipping already visited directory {directory}")
            return
        visited.add(real)

        for entry in sorted(os.scandir(directory), key=lambda e: e.name):
            if entry.name.startswith("."):
                continue
            path = Path(entry.path)
            if entry.is_dir():
                walk(path)
            elif entry.is_file() and path.suffix in wanted:
                found.append(path)

    if root.is_dir():
        walk(root)
    return found


def markup_first(paths: list[str]) -> list[str]:
    """Move markup files to the front, keeping relative order in both groups."""
    markup = [p for p in paths if os.path.splitext(p)[1] in MARKUP_EXTENSIONS]
    rest = [p for p in paths if os.path.splitext(p)[1] not in MARKUP_EXTENSIONS]
    return markup + rest


def scan_for_sources(
    root: Path,
    extensions: Iterable[str],
    ignore_files: Iterable[IgnorePattern] = (),
) -> list[str]:
    """Find the source files of a package or app tree.

    Args:
        root: Directory to scan
        extensions: Recognized extensions, including the leading dot
        ignore_files: Regular expressions matched against absolute paths

    Returns:
        Deduplicated paths relative to ``root`` (POSIX separators), in
        depth-first alphabetical order with markup files moved first.

    Raises:
        SourceScanError: A file resolves to a location outside ``root``
    """
    root = Path(root).absolute()
    patterns = _compile(ignore_files)

    files = [f for f in file_list(root, extensions) if not any(p.search(f.as_posix()) for p in patterns)]
    files.sort(key=lambda f: path_sort_key(f.relative_to(root)))

    real_root = Path(os.path.realpath(root))
    relative: list[str] = []
    seen: set[str] = set()
    for path in files:
        if not Path(os.path.realpath(path)).is_relative_to(real_root):
            raise SourceScanError(f"internal error: source file outside of parent? {path} (root {root})")
        rel = path.relative_to(root).as_posix()
        if rel not in seen:
            seen.add(rel)
            relative.append(rel)

    return markup_first(relative)
