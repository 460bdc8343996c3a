"""Exception types raised while loading and resolving packages."""


class PackageError(Exception):
    """Base class for all package loading errors."""


class PackageConfigError(PackageError):
    """A package descriptor declared something invalid."""


class UnsupportedApiError(PackageConfigError):
    """A descriptor called an operation that has been removed."""


class DescriptorError(PackageConfigError):
    """Evaluating a package descriptor failed."""

    def __init__(self, package_name: str | None, message: str):
        self.package_name = package_name
        super().__init__(message)


class PackageNotFoundError(PackageError):
    """No search location provided the requested package."""

    def __init__(self, name: str, message: str | None = None):
        self.name = name
        super().__init__(message or f"Package '{name}' not found")


class ExtensionConflictError(PackageError):
    """More than one direct dependency handles the same file extension."""

    def __init__(self, extension: str, packages: list[str], dependent: str | None = None):
        self.extension = extension
        self.packages = packages
        self.dependent = dependent
        owner = f"package '{dependent}'" if dependent else "the app"
        super().__init__(
            f"Conflict: packages {', '.join(packages)} are all trying to handle .{extension} "
            f"(among the dependencies of {owner})"
        )


class SourceScanError(PackageError):
    """Internal error: a scanned source file lies outside its root."""


class DependencyInstallError(PackageError):
    """Installing external dependencies failed."""
