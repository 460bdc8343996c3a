"""External (npm) dependencies of packages.

A package pins its npm dependencies with ``Npm.depends({...})``. They are
installed into ``<package>/.npm``:

    .npm/package.json          the declared name -> version map
    .npm/npm-shrinkwrap.json   exact versions of the whole tree, from npm
    .npm/node_modules/         the installed modules

Updates never upgrade modules whose declared version is unchanged: only
changed or new modules are (re)installed and npm's shrinkwrap keeps their
sub-dependencies fixed. Two apps sharing a package may update it at the
same time, so every update holds a lock next to the ``.npm`` directory and
builds the new tree in a staging directory that replaces the live one in a
single rename.
"""

from __future__ import annotations

import json
import logging
import re
import shutil
import subprocess
import uuid
from pathlib import Path

from .errors import DependencyInstallError
from .errors import PackageConfigError
from .utils.locking import DEFAULT_TIMEOUT
from .utils.locking import acquire_file_lock

logger = logging.getLogger(__name__)

NPM_COMMAND = ("npm",)
SHRINKWRAP_FILE = "npm-shrinkwrap.json"

_EXACT_SEMVER = re.compile(r"^\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?$")
_GITHUB_TARBALL = re.compile(r"^https://github\.com/.+/tarball/[0-9a-f]{40}$")

_README = """This directory and the files immediately inside it are automatically generated
when you change this package's npm dependencies. Commit the files in this directory
(npm-shrinkwrap.json, package.json, .gitignore and this README) to source control so
that others run the same versions of sub-dependencies.

You should NOT check in the node_modules directory.
"""


def is_exact_version(version: object) -> bool:
    """Exact semver (``1.2.3``) or a GitHub tarball pinned to a commit."""
    return isinstance(version, str) and bool(_EXACT_SEMVER.match(version) or _GITHUB_TARBALL.match(version))


def ensure_only_exact_versions(dependencies: dict[str, str]) -> None:
    """Reject ranges and other fuzzy versions.

    Raises:
        PackageConfigError: A dependency is not pinned to an exact version
    """
    if not isinstance(dependencies, dict):
        raise PackageConfigError("Npm.depends() takes a mapping of module name to exact version")
    for name, version in dependencies.items():
        if not is_exact_version(version):
            raise PackageConfigError(f"Must declare exact version of npm package dependency: {name}@{version}")


def _read_json(path: Path) -> dict | None:
    if not path.exists():
        return None
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning(f"Ignoring malformed {path}")
        return None


def declared_dependencies(npm_dir: Path) -> dict[str, str]:
    """Dependencies recorded by the last successful update."""
    data = _read_json(npm_dir / "package.json") or {}
    return dict(data.get("dependencies") or {})


def _module_installed(npm_dir: Path, name: str) -> bool:
    return (npm_dir / "node_modules" / name).is_dir()


def is_up_to_date(npm_dir: Path, dependencies: dict[str, str]) -> bool:
    """True when ``npm_dir`` already holds exactly ``dependencies``."""
    if not (npm_dir / SHRINKWRAP_FILE).exists():
        return False
    if declared_dependencies(npm_dir) != dependencies:
        return False
    return all(_module_installed(npm_dir, name) for name in dependencies)


class _NpmRunner:
    def __init__(self, package_name: str, cwd: Path, command: tuple[str, ...]):
        self.package_name = package_name
        self.cwd = cwd
        self.command = command

    def __call__(self, *args: str) -> None:
        cmd = [*self.command, *args]
        logger.debug(f"Running: {' '.join(cmd)} (in {self.cwd})", extra={"package": self.package_name})
        try:
            subprocess.run(cmd, cwd=self.cwd, check=True, capture_output=True, text=True)
        except FileNotFoundError as e:
            raise DependencyInstallError(f"Can't run {self.command[0]}: {e}") from e
        except subprocess.CalledProcessError as e:
            raise DependencyInstallError(
                f"`{' '.join(cmd)}` failed for package {self.package_name}:\n{e.stderr or e.stdout}"
            ) from e


def _write_metadata(staging: Path, package_name: str, dependencies: dict[str, str]) -> None:
    package_json = {
        "name": f"packages-for-{package_name}",
        "version": "0.0.0",
        "dependencies": dependencies,
    }
    (staging / "package.json").write_text(json.dumps(package_json, indent=2) + "\n", encoding="utf-8")
    (staging / ".gitignore").write_text("node_modules\n", encoding="utf-8")
    (staging / "README").write_text(_README, encoding="utf-8")


def _swap_into_place(staging: Path, npm_dir: Path) -> None:
    if npm_dir.exists():
        old = npm_dir.with_name(f".{npm_dir.name}-old-{uuid.uuid4().hex[:8]}")
        npm_dir.rename(old)
        try:
            staging.rename(npm_dir)
        except OSError:
            old.rename(npm_dir)
            raise
        shutil.rmtree(old, ignore_errors=True)
    else:
        staging.rename(npm_dir)


def update_dependencies(
    package_name: str,
    npm_dir: Path,
    dependencies: dict[str, str] | None,
    quiet: bool = False,
    *,
    npm_command: tuple[str, ...] = NPM_COMMAND,
    lock_timeout: float = DEFAULT_TIMEOUT,
) -> None:
    """Install exactly ``dependencies`` into ``npm_dir``.

    Args:
        package_name: Package the dependencies belong to (for messages)
        npm_dir: The package's ``.npm`` directory
        dependencies: Exact name -> version map; None does nothing and an
            empty map removes ``npm_dir``
        quiet: Log progress at debug instead of info level
        npm_command: Package manager executable and leading arguments
        lock_timeout: Seconds to wait for a concurrent update to finish

    Raises:
        PackageConfigError: A version is not exact
        DependencyInstallError: The package manager failed
        LockTimeoutError: Another update held the lock for too long
    """
    if dependencies is None:
        return
    ensure_only_exact_versions(dependencies)

    npm_dir = Path(npm_dir)
    lock_path = npm_dir.with_name(f"{npm_dir.name}.lock")
    level = logging.DEBUG if quiet else logging.INFO
    context = {"package": package_name}

    def log(message: str) -> None:
        logger.log(level, message, extra=context)

    with acquire_file_lock(lock_path, timeout=lock_timeout):
        if not dependencies:
            if npm_dir.exists():
                log(f"npm: removing dependencies of {package_name}")
                shutil.rmtree(npm_dir)
            return

        if is_up_to_date(npm_dir, dependencies):
            logger.debug(f"npm: dependencies of {package_name} are up to date", extra=context)
            return

        staging = npm_dir.with_name(f".{npm_dir.name}-new-{uuid.uuid4().hex[:8]}")
        try:
            if npm_dir.exists():
                shutil.copytree(npm_dir, staging, symlinks=True)
            else:
                staging.mkdir(parents=True)
            npm = _NpmRunner(package_name, staging, tuple(npm_command))

            previous = declared_dependencies(staging)
            has_shrinkwrap = (staging / SHRINKWRAP_FILE).exists()

            if previous == dependencies and has_shrinkwrap:
                # node_modules missing (fresh checkout): rebuild from the shrinkwrap
                log(f"npm: installing dependencies of {package_name} from shrinkwrap")
                _write_metadata(staging, package_name, dependencies)
                npm("install")
            else:
                stale = [name for name, version in previous.items() if dependencies.get(name) != version]
                kept = {name: version for name, version in previous.items() if name not in stale}
                _write_metadata(staging, package_name, kept)
                for name in stale:
                    if _module_installed(staging, name):
                        npm("uninstall", "--no-save", name)

                changed = [
                    name
                    for name, version in dependencies.items()
                    if previous.get(name) != version or not _module_installed(staging, name)
                ]
                if changed:
                    log(f"npm: updating dependencies of {package_name} -- {', '.join(changed)}...")
                for name in changed:
                    npm("install", "--no-save", f"{name}@{dependencies[name]}")

                _write_metadata(staging, package_name, dependencies)
                npm("shrinkwrap")

            _swap_into_place(staging, npm_dir)
        finally:
            if staging.exists():
                shutil.rmtree(staging, ignore_errors=True)
