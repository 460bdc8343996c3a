"""The pseudo-package of an application directory.

An app has no descriptor. It uses a standard set of packages plus the
ones listed in its project file, and its sources are every recognized
file in the app tree:

- files under the top-level ``packages/`` directory belong to app packages
  and are skipped
- files in a ``server`` directory are server-only, files in a ``client``
  directory client-only, everything else goes to both
- files in a ``tests`` directory are test sources, the rest are used
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING

from . import project
from .package import FOUNDATION_PACKAGE
from .package import Package
from .roles import ENVIRONMENTS
from .roles import ROLES
from .roles import RoleApi
from .scanner import IgnorePattern
from .scanner import scan_for_sources

if TYPE_CHECKING:
    from .registry import PackageRegistry
    from .registry import PackageSearchOptions

logger = logging.getLogger(__name__)

# Standard packages every app uses besides the foundation package.
STANDARD_APP_PACKAGES = [
    "deps",
    "session",
    "livedata",
    "mongo-livedata",
    "spark",
    "templating",
    "startup",
]


def baseline_packages(foundation: str = FOUNDATION_PACKAGE) -> list[str]:
    """The packages an app uses without listing them, foundation first."""
    return [foundation, *STANDARD_APP_PACKAGES]


BASELINE_PACKAGES = baseline_packages()

_OTHER_ENVIRONMENT = {"client": "server", "server": "client"}


def _in_directory_named(source_path: str, directory: str) -> bool:
    return f"/{directory}/" in f"/{source_path}/"


def partition_sources(all_sources: list[str], where: str, tests: bool) -> list[str]:
    """Select the app sources that belong to one environment and role.

    Args:
        all_sources: Scanned paths relative to the app root
        where: "client" or "server"
        tests: Select test sources instead of regular ones
    """
    excluded = _OTHER_ENVIRONMENT[where]
    selected = []
    for source_path in all_sources:
        # Only the top-level packages/ directory holds app packages.
        if source_path.startswith("packages/"):
            continue
        if _in_directory_named(source_path, excluded):
            continue
        if _in_directory_named(source_path, "tests") != tests:
            continue
        selected.append(source_path)
    return selected


def init_from_app_dir(
    package: Package,
    app_dir: Path,
    ignore_files: list[IgnorePattern],
    registry: PackageRegistry,
    options: PackageSearchOptions | None = None,
    baseline: list[str] | None = None,
) -> Package:
    """Populate ``package`` from the application in ``app_dir``.

    Args:
        package: Empty package to fill in
        app_dir: Application root
        ignore_files: Regular expressions for paths to skip
        registry: Used to load the app's packages and their extensions
        options: Search options for those packages (default: search the
            app's own packages/ directory)
        baseline: Standard packages (default: the registry's foundation
            package followed by STANDARD_APP_PACKAGES)
    """
    from .registry import PackageSearchOptions

    app_dir = Path(app_dir)
    if options is None:
        options = PackageSearchOptions(app_dir=app_dir)

    package.name = None
    package.source_root = app_dir
    package.serve_root = "/"

    if baseline is None:
        baseline = baseline_packages(registry.foundation)
    packages = list(dict.fromkeys([*baseline, *project.get_packages(app_dir)]))
    for role in ROLES:
        for where in ENVIRONMENTS:
            package.uses[role][where] = list(packages)
    package.uniquify_uses()

    resolver = registry.extension_resolver(options)

    def sources(role: str, where: str, tests: bool) -> list[str]:
        extensions = resolver.registered_extensions(package, role, where)
        return partition_sources(scan_for_sources(app_dir, extensions, ignore_files), where, tests)

    package.sources["use"]["client"] = sources("use", "client", tests=False)
    package.sources["use"]["server"] = sources("use", "server", tests=False)
    package.sources["test"]["client"] = sources("test", "client", tests=True)
    package.sources["test"]["server"] = sources("test", "server", tests=True)

    def on_use(api: RoleApi) -> None:
        api.use(packages)
        api.add_files(package.sources["use"]["client"], "client")
        api.add_files(package.sources["use"]["server"], "server")

    def on_test(api: RoleApi) -> None:
        api.use(packages)
        api.use(package)
        api.add_files(package.sources["test"]["client"], "client")
        api.add_files(package.sources["test"]["server"], "server")

    package.set_role_handler("use", on_use)
    package.set_role_handler("test", on_test)

    logger.debug(
        f"App {app_dir}: {len(package.sources['use']['client'])} client, "
        f"{len(package.sources['use']['server'])} server, "
        f"{len(package.sources['test']['client']) + len(package.sources['test']['server'])} test sources"
    )
    return package
