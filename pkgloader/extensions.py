"""Mapping source file extensions to the handlers that compile them.

A package's files are handled by extensions registered by the package
itself (for its ``use`` role) or by the packages it uses directly. Only
one of those may claim any given extension.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .errors import ExtensionConflictError
from .package import ExtensionHandler
from .package import Package

if TYPE_CHECKING:
    from .registry import PackageRegistry
    from .registry import PackageSearchOptions

logger = logging.getLogger(__name__)


class ExtensionHandlerResolver:
    """Resolve extension handlers through a registry."""

    def __init__(self, registry: PackageRegistry, options: PackageSearchOptions | None = None):
        self.registry = registry
        self.options = options

    def _candidates(self, package: Package, role: str, where: str) -> list[Package]:
        """The package itself (use role only) followed by its direct dependencies."""
        candidates = [package] if role == "use" else []
        for ref in package.uses[role][where]:
            dependency = self.registry.get(ref, self.options)
            if dependency is not package:
                candidates.append(dependency)
        return candidates

    def registered_extensions(self, package: Package, role: str, where: str) -> list[str]:
        """Extensions (with leading dot) that mark source files of ``package``."""
        extensions: list[str] = []
        for candidate in self._candidates(package, role, where):
            for extension in candidate.extensions:
                if f".{extension}" not in extensions:
                    extensions.append(f".{extension}")
        return extensions

    def get_source_handler(self, package: Package, role: str, where: str, extension: str) -> ExtensionHandler | None:
        """Find the handler for files ending in ``extension`` (no leading dot).

        Returns:
            The handler, or None if nothing handles the extension

        Raises:
            ExtensionConflictError: Several direct dependencies handle it
        """
        extension = extension.lstrip(".")
        owners = [c for c in self._candidates(package, role, where) if extension in c.extensions]

        if not owners:
            return None
        if len(owners) > 1:
            raise ExtensionConflictError(extension, [o.display_name for o in owners], package.name)

        logger.debug(
            f"[extension] .{extension} in {package!r} ({role}/{where}) -> {owners[0]!r}",
            extra={"package": package.display_name, "role": role, "where": where, "extension": extension},
        )
        return owners[0].extensions[extension]
