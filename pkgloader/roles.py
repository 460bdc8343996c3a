"""Role handler API - what a package's on_use/on_test handler can declare.

A role handler receives a ``RoleApi`` and describes its package through it.
Nothing is written to the package while the handler runs: every call is
recorded in a ``RoleDeclarations`` value which the caller then applies.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from dataclasses import field
from typing import TYPE_CHECKING
from typing import Any

from .errors import PackageConfigError
from .errors import UnsupportedApiError

if TYPE_CHECKING:
    from .package import Package

ROLES = ("use", "test")
ENVIRONMENTS = ("client", "server")


def per_environment() -> dict[str, list[Any]]:
    """Return an empty ``{environment: []}`` table."""
    return {where: [] for where in ENVIRONMENTS}


def as_list(value: Any) -> list[Any]:
    """Normalize a scalar-or-sequence argument to a list.

    ``None`` and empty strings become ``[]``; strings and package objects
    are never iterated.
    """
    if value is None or value == "":
        return []
    if isinstance(value, str) or not isinstance(value, Iterable):
        return [value]
    return list(value)


def resolve_environments(where: Any, default: Iterable[str] = ()) -> list[str]:
    """Normalize a ``where`` argument and reject unknown environments."""
    environments = as_list(where) if where is not None else list(default)
    for environment in environments:
        if environment not in ENVIRONMENTS:
            raise PackageConfigError(
                f"Unknown environment '{environment}' (expected one of: {', '.join(ENVIRONMENTS)})"
            )
    return environments


@dataclass
class RoleDeclarations:
    """Everything one role handler invocation declared."""

    uses: dict[str, list[str | Package]] = field(default_factory=per_environment)
    sources: dict[str, list[str]] = field(default_factory=per_environment)
    exports: dict[str, list[str]] = field(default_factory=per_environment)
    # environment -> name -> unordered flag of the last use() of that name there
    unordered: dict[str, dict[str, bool]] = field(default_factory=lambda: {where: {} for where in ENVIRONMENTS})

    def unordered_names(self) -> set[str]:
        """Names whose last use() in some environment was unordered."""
        return {name for flags in self.unordered.values() for name, flag in flags.items() if flag}


class RoleApi:
    """The ``api`` object handed to on_use / on_test handlers.

    Handlers are invoked once with no environment filter. Whatever they
    add for ``client`` becomes the client variant of the package and
    whatever they add for ``server`` becomes the server variant.
    """

    def __init__(self) -> None:
        self.declarations = RoleDeclarations()

    def use(
        self,
        names: str | Package | Iterable[str | Package] | None,
        where: str | Iterable[str] | None = None,
        *,
        unordered: bool = False,
        role: str | None = None,
    ) -> None:
        """Depend on other packages.

        Args:
            names: Package name, package object, or a list of them
            where: Environment(s) the dependency applies to (default: both)
            unordered: Don't require the dependency to load before this
                package and don't import its symbols. Used to break
                dependency cycles. A later use() of the same name in the
                same environment without the flag clears it there.
            role: Only "use" is accepted; role overrides were removed.
        """
        if role is not None and role != "use":
            raise UnsupportedApiError("Role override is no longer supported")

        environments = resolve_environments(where, default=ENVIRONMENTS)
        for name in as_list(names):
            for environment in environments:
                self.declarations.uses[environment].append(name)
                if isinstance(name, str):
                    self.declarations.unordered[environment][name] = bool(unordered)

    def add_files(self, paths: str | Iterable[str] | None, where: str | Iterable[str] | None = None) -> None:
        """Add source files (relative to the package directory).

        Files are only added to the environments named in ``where``.
        """
        environments = resolve_environments(where)
        for path in as_list(paths):
            for environment in environments:
                self.declarations.sources[environment].append(path)

    def export_symbol(self, symbols: str | Iterable[str] | None, where: str | Iterable[str] | None = None) -> None:
        """Force the export of a symbol (eg "Foo" or "Foo.bar") from this package."""
        environments = resolve_environments(where)
        for symbol in as_list(symbols):
            for environment in environments:
                self.declarations.exports[environment].append(symbol)

    def error(self, *args: Any, **kwargs: Any) -> None:
        raise UnsupportedApiError("api.error(), ironically, is no longer supported")

    def registered_extensions(self, *args: Any, **kwargs: Any) -> None:
        raise UnsupportedApiError("api.registered_extensions() is no longer supported")
