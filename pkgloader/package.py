"""The Package record.

Library packages (``<dir>/package.py``) and user applications are both
represented as ``Package`` objects; they only differ in how they are
populated. A Package is created empty, filled in once (by descriptor
evaluation or an app directory scan) and not modified afterwards.
"""

from __future__ import annotations

import itertools
import logging
from collections.abc import Callable
from collections.abc import Iterator
from pathlib import Path
from typing import Any

from . import npm
from .errors import PackageConfigError
from .roles import ENVIRONMENTS
from .roles import ROLES
from .roles import RoleApi
from .roles import RoleDeclarations

logger = logging.getLogger(__name__)

# Every package except this one implicitly uses it.
FOUNDATION_PACKAGE = "core"

DESCRIPTOR_FILENAME = "package.py"

RoleHandler = Callable[[RoleApi], Any]
ExtensionHandler = Callable[..., Any]

# Never reused within a process: a reloaded package gets a new id.
_package_ids = itertools.count(1)


def _role_table() -> dict[str, dict[str, list[Any]]]:
    return {role: {where: [] for where in ENVIRONMENTS} for role in ROLES}


def use_key(ref: str | Package) -> Any:
    """Identity of an entry in a ``uses`` list (package objects by id)."""
    if isinstance(ref, Package):
        return ("package", ref.id)
    return ref


class Package:
    """A loaded package (or an anonymous app pseudo-package).

    Attributes:
        id: Process-unique identifier
        name: Package name, None for app packages
        source_root: Directory source paths are relative to
        serve_root: URL prefix the package is served under
        metadata: Attributes passed to describe() (summary, internal, ...)
        role_handlers: At most one handler per role
        npm_dependencies: Exact-version external dependencies, or None
        extensions: Source handlers this package registers, keyed by
            extension without the leading dot
        uses: role -> environment -> package names. Order only affects
            symbol import priority, not load order. Each name occurs once.
        unordered: Dependencies that may load after this package
        sources: role -> environment -> paths relative to source_root
        exports: role -> environment -> explicitly exported symbols
        extra_dependencies: Files to watch for changes (package.py)
    """

    def __init__(self) -> None:
        self.id = next(_package_ids)
        self.name: str | None = None
        self.source_root: Path | None = None
        self.serve_root: str | None = None
        self.metadata: dict[str, Any] = {}
        self.role_handlers: dict[str, RoleHandler | None] = {role: None for role in ROLES}
        self.npm_dependencies: dict[str, str] | None = None
        self.extensions: dict[str, ExtensionHandler] = {}
        self.uses: dict[str, dict[str, list[str | Package]]] = _role_table()
        self.unordered: set[str] = set()
        self.sources: dict[str, dict[str, list[str]]] = _role_table()
        self.exports: dict[str, dict[str, list[str]]] = _role_table()
        self.extra_dependencies: list[str] = []

    def __repr__(self) -> str:
        return f"Package({self.name or '<app>'}#{self.id})"

    @property
    def display_name(self) -> str:
        return self.name or "<app>"

    @property
    def is_internal(self) -> bool:
        return bool(self.metadata.get("internal"))

    # ----- Population (descriptor facades delegate here) -----

    def describe(self, metadata: dict[str, Any]) -> None:
        self.metadata.update(metadata)

    def set_role_handler(self, role: str, handler: RoleHandler) -> None:
        if self.role_handlers[role] is not None:
            raise PackageConfigError(f"A package may have only one on_{role} handler")
        self.role_handlers[role] = handler

    def register_extension(self, extension: str, handler: ExtensionHandler) -> None:
        extension = extension.lstrip(".")
        if extension in self.extensions:
            raise PackageConfigError(f"This package has already registered a handler for {extension}")
        self.extensions[extension] = handler

    def set_npm_dependencies(self, dependencies: dict[str, str]) -> None:
        if self.npm_dependencies is not None:
            raise PackageConfigError(f"Can only call `Npm.depends` once in package {self.name}.")
        # Fuzzy versions would make deployments differ from development.
        npm.ensure_only_exact_versions(dependencies)
        self.npm_dependencies = dict(dependencies)

    def replay_role(self, role: str) -> RoleDeclarations | None:
        """Run the role handler against a fresh RoleApi.

        Returns:
            What the handler declared, or None if the role has no handler
        """
        handler = self.role_handlers[role]
        if handler is None:
            return None
        api = RoleApi()
        handler(api)
        return api.declarations

    def apply_declarations(self, role: str, declarations: RoleDeclarations) -> None:
        for where in ENVIRONMENTS:
            self.uses[role][where].extend(declarations.uses[where])
            self.sources[role][where].extend(declarations.sources[where])
            self.exports[role][where].extend(declarations.exports[where])
        # Never cleared by another role or environment.
        self.unordered.update(declarations.unordered_names())

    def add_foundation_dependency(self, foundation: str = FOUNDATION_PACKAGE) -> None:
        """Prepend the foundation package to every uses list.

        The foundation package itself only gets it for its tests.
        """
        for role in ROLES:
            for where in ENVIRONMENTS:
                if not (self.name == foundation and role == "use"):
                    self.uses[role][where].insert(0, foundation)

    def uniquify_uses(self) -> None:
        """If a package appears twice in a uses list, keep only the rightmost one."""
        for role in ROLES:
            for where in ENVIRONMENTS:
                seen = set()
                output: list[str | Package] = []
                for ref in reversed(self.uses[role][where]):
                    key = use_key(ref)
                    if key not in seen:
                        output.append(ref)
                    seen.add(key)
                output.reverse()
                self.uses[role][where] = output

    # ----- Queries -----

    def iter_uses(self) -> Iterator[str | Package]:
        """Every entry of the uses table, in role/environment order."""
        for role in ROLES:
            for where in ENVIRONMENTS:
                yield from self.uses[role][where]

    def used_names(self) -> list[str]:
        """Distinct package names used in any role or environment."""
        names: list[str] = []
        for ref in self.iter_uses():
            if isinstance(ref, str) and ref not in names:
                names.append(ref)
        return names

    # ----- External dependencies -----

    def npm_dir(self) -> Path:
        if self.source_root is None:
            raise PackageConfigError(f"{self!r} has no source directory")
        return self.source_root / ".npm"

    def install_npm_dependencies(self, quiet: bool = False) -> None:
        """Make sure the pinned external dependencies are installed.

        Safe to run several times in parallel, e.g. from two apps that
        share this package. No-op for packages without dependencies.
        """
        if self.npm_dependencies is None:
            logger.debug(f"{self!r} declares no npm dependencies")
            return
        npm.update_dependencies(self.display_name, self.npm_dir(), self.npm_dependencies, quiet=quiet)
