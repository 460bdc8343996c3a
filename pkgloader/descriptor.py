"""Package descriptor evaluation.

A package directory contains a ``package.py`` descriptor. It is executed in
a fresh namespace that exposes exactly two objects, ``Package`` and ``Npm``:

    Package.describe(summary="Reactive templates")

    @Package.on_use
    def on_use(api):
        api.use(["deps", "templating"])
        api.add_files(["render.js", "render.html"], "client")
        api.export_symbol("Render", "client")

    Npm.depends({"tar": "0.1.14"})

Role handlers are then called once with no environment filter and what
they declared becomes the package's client and server variants.
"""

from __future__ import annotations

import builtins
import importlib.util
import logging
from pathlib import Path
from types import ModuleType
from typing import Any

from .errors import DescriptorError
from .errors import PackageConfigError
from .errors import PackageError
from .errors import PackageNotFoundError
from .errors import UnsupportedApiError
from .package import DESCRIPTOR_FILENAME
from .package import FOUNDATION_PACKAGE
from .package import ExtensionHandler
from .package import Package
from .package import RoleHandler
from .roles import ROLES

logger = logging.getLogger(__name__)


class PackageFacade:
    """Visible as ``Package`` when package.py is executed."""

    def __init__(self, package: Package):
        self._package = package
        self._required: dict[Path, ModuleType] = {}

    def describe(self, metadata: dict[str, Any] | None = None, **kwargs: Any) -> None:
        """Set package metadata.

        Keys:
            summary: shown by ``pkgloader list``
            internal: if true, hide from ``pkgloader list``
            environments: environments the package may be used in
        """
        self._package.describe({**(metadata or {}), **kwargs})

    def on_use(self, handler: RoleHandler) -> RoleHandler:
        self._package.set_role_handler("use", handler)
        return handler

    def on_test(self, handler: RoleHandler) -> RoleHandler:
        self._package.set_role_handler("test", handler)
        return handler

    def register_extension(self, extension: str, handler: ExtensionHandler | None = None) -> Any:
        """Register a source handler for files ending in ``.<extension>``.

        Can be used directly or as a decorator.
        """
        if handler is None:

            def decorator(func: ExtensionHandler) -> ExtensionHandler:
                self._package.register_extension(extension, func)
                return func

            return decorator

        self._package.register_extension(extension, handler)
        return handler

    def require(self, filename: str) -> ModuleType:
        """Load a Python file relative to the package directory."""
        root = self._package.source_root
        if root is None:
            raise PackageConfigError("Package.require() is only available in package directories")

        path = (root / filename).resolve()
        if not path.is_relative_to(root.resolve()):
            raise PackageConfigError(f"Package.require() can't load files outside the package: {filename}")
        if path in self._required:
            return self._required[path]
        if not path.is_file():
            raise PackageConfigError(f"Package.require(): no such file {filename} in package {self._package.name}")

        module_name = f"pkgloader.descriptors.{self._package.name}.{path.stem}"
        spec = importlib.util.spec_from_file_location(module_name, path)
        if spec is None or spec.loader is None:
            raise PackageConfigError(f"Package.require(): can't load {filename}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        self._required[path] = module
        return module


class NpmFacade:
    """Visible as ``Npm`` when package.py is executed."""

    def __init__(self, package: Package):
        self._package = package

    def depends(self, dependencies: dict[str, str]) -> None:
        """Declare exact-version npm dependencies, eg ``{"tar": "0.1.14"}``."""
        self._package.set_npm_dependencies(dependencies)

    def require(self, name: str) -> None:
        raise UnsupportedApiError(
            f"Npm.require('{name}') is not available in package.py: npm modules are loaded by the "
            f"JavaScript runtime from {self._package.name}/.npm/node_modules. Declare them with Npm.depends()."
        )


def _run(package: Package, what: str, func: Any, *args: Any) -> Any:
    try:
        return func(*args)
    except PackageError:
        raise
    except Exception as e:
        raise DescriptorError(package.name, f"Error in {what} of package {package.name}: {e}") from e


def init_from_package_dir(
    package: Package, name: str, directory: Path, foundation: str = FOUNDATION_PACKAGE
) -> Package:
    """Populate ``package`` by evaluating ``<directory>/package.py``.

    Raises:
        PackageNotFoundError: No descriptor in ``directory``
        PackageConfigError: The descriptor declared something invalid
        DescriptorError: The descriptor or one of its handlers raised
    """
    directory = Path(directory)
    package.name = name
    package.source_root = directory
    package.serve_root = f"/packages/{name}"

    descriptor_path = directory / DESCRIPTOR_FILENAME
    if not descriptor_path.is_file():
        raise PackageNotFoundError(name, f"The package named {name} does not exist.")

    code = descriptor_path.read_text(encoding="utf-8")
    namespace: dict[str, Any] = {
        "__builtins__": builtins,
        "__name__": f"pkgloader.descriptors.{name}",
        "__file__": str(descriptor_path),
        "Package": PackageFacade(package),
        "Npm": NpmFacade(package),
    }
    try:
        compiled = compile(code, str(descriptor_path), "exec")
    except SyntaxError as e:
        raise DescriptorError(name, f"Syntax error in {descriptor_path}: {e}") from e
    _run(package, DESCRIPTOR_FILENAME, exec, compiled, namespace)

    package.extra_dependencies.append(DESCRIPTOR_FILENAME)

    for role in ROLES:
        declarations = _run(package, f"on_{role} handler", package.replay_role, role)
        if declarations is not None:
            package.apply_declarations(role, declarations)

    package.add_foundation_dependency(foundation)
    package.uniquify_uses()

    logger.debug(f"Loaded {package!r} from {directory}", extra={"package": name, "directory": str(directory)})
    return package
