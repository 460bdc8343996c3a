"""
pkgloader - package descriptor loader and dependency graph builder.

Turns package directories (``<dir>/package.py``) and application
directories into ``Package`` records: source file lists, dependency
edges, exported symbols and pinned npm dependencies, ready for a bundler.

Public API:
- Package: The loaded package record
- PackageRegistry: Resolve names to packages (search path, cache, flush)
- PackageSearchOptions: Per-lookup app dir and release manifest
- ExtensionHandlerResolver: Find the handler for a source extension
- scan_for_sources: Discover source files in a directory tree
- update_dependencies: Install pinned npm dependencies
- create_package_registry: Registry configured from environment/settings
"""

from .errors import DependencyInstallError
from .errors import DescriptorError
from .errors import ExtensionConflictError
from .errors import PackageConfigError
from .errors import PackageError
from .errors import PackageNotFoundError
from .errors import SourceScanError
from .errors import UnsupportedApiError
from .extensions import ExtensionHandlerResolver
from .npm import ensure_only_exact_versions
from .npm import update_dependencies
from .package import FOUNDATION_PACKAGE
from .package import Package
from .paths import create_package_registry
from .registry import PackageRegistry
from .registry import PackageSearchOptions
from .registry import format_list
from .roles import RoleApi
from .roles import RoleDeclarations
from .scanner import scan_for_sources
from .warehouse import ReleaseManifest
from .warehouse import Warehouse

__all__ = [
    "FOUNDATION_PACKAGE",
    "Package",
    "PackageRegistry",
    "PackageSearchOptions",
    "ExtensionHandlerResolver",
    "RoleApi",
    "RoleDeclarations",
    "ReleaseManifest",
    "Warehouse",
    "create_package_registry",
    "ensure_only_exact_versions",
    "format_list",
    "scan_for_sources",
    "update_dependencies",
    "PackageError",
    "PackageConfigError",
    "UnsupportedApiError",
    "DescriptorError",
    "PackageNotFoundError",
    "ExtensionConflictError",
    "SourceScanError",
    "DependencyInstallError",
]
