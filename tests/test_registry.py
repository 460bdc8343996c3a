"""Tests for package resolution, caching and listing."""

import json

import pytest

from pkgloader.errors import PackageNotFoundError
from pkgloader.package import Package
from pkgloader.registry import PackageRegistry
from pkgloader.registry import PackageSearchOptions
from pkgloader.registry import format_list
from pkgloader.warehouse import ReleaseManifest


def uses(*names: str) -> str:
    return f"""
        @Package.on_use
        def on_use(api):
            api.use({list(names)!r})
    """


def summary(text: str) -> str:
    return f"Package.describe(summary={text!r})\n"


class TestCaching:
    """A package is loaded once per cache epoch."""

    def test_same_instance_until_flush(self, registry):
        first = registry.get("core")
        second = registry.get("core")

        assert first is second
        assert first.id == second.id

    def test_flush_issues_new_instance(self, registry):
        before = registry.get("core")
        registry.flush()
        after = registry.get("core")

        assert after is not before
        assert after.id != before.id
        assert "core" in registry

    def test_registries_are_independent(self, packages_dir):
        one = PackageRegistry(package_dirs=[packages_dir])
        two = PackageRegistry(package_dirs=[packages_dir])

        assert one.get("core") is not two.get("core")
        one.flush()
        assert "core" in two

    def test_package_objects_map_to_themselves(self, registry):
        package = Package()
        assert registry.get(package) is package

    def test_load_from_dir_bypasses_cache(self, registry, packages_dir):
        loaded = registry.load_from_dir("core", packages_dir / "core")

        assert loaded.name == "core"
        assert "core" not in registry
        assert registry.get("core") is not loaded


class TestResolutionOrder:
    """First matching search location wins."""

    def test_not_found(self, registry):
        with pytest.raises(PackageNotFoundError, match="nope"):
            registry.get("nope")

    def test_app_packages_override_package_dirs(self, registry, packages_dir, make_package, tmp_path):
        make_package(packages_dir, "widget", summary("shared"))
        app_dir = tmp_path / "app"
        make_package(app_dir / "packages", "widget", summary("app copy"))

        package = registry.get("widget", PackageSearchOptions(app_dir=app_dir))

        assert package.metadata["summary"] == "app copy"
        assert package.source_root == app_dir / "packages" / "widget"

    def test_earlier_package_dir_wins(self, packages_dir, make_package, tmp_path):
        later = tmp_path / "later"
        make_package(packages_dir, "widget", summary("first"))
        make_package(later, "widget", summary("second"))
        make_package(later, "gadget", summary("only later"))
        registry = PackageRegistry(package_dirs=[packages_dir, later])

        assert registry.get("widget").metadata["summary"] == "first"
        assert registry.get("gadget").metadata["summary"] == "only later"

    def test_checkout_dir_after_package_dirs(self, packages_dir, make_package, tmp_path):
        checkout = tmp_path / "checkout" / "packages"
        make_package(checkout, "core", summary("checkout core"))
        make_package(checkout, "extra", summary("checkout extra"))
        registry = PackageRegistry(package_dirs=[packages_dir], checkout_packages_dir=checkout)

        assert registry.get("core").metadata["summary"] == "Core runtime"
        assert registry.get("extra").metadata["summary"] == "checkout extra"
        assert registry.locate("extra") == (checkout / "extra", "local")

    def test_warehouse_needs_release_manifest(self, registry, warehouse, make_package):
        make_package(warehouse.root / "packages" / "pinned", "1.0.0", summary("pinned v1"))
        manifest = ReleaseManifest(packages={"pinned": "1.0.0"})

        with pytest.raises(PackageNotFoundError):
            registry.get("pinned")

        package = registry.get("pinned", PackageSearchOptions(release_manifest=manifest))
        assert package.metadata["summary"] == "pinned v1"
        assert package.name == "pinned"
        assert registry.locate("pinned", PackageSearchOptions(release_manifest=manifest))[1] == "warehouse"

    def test_missing_warehouse_version(self, registry):
        manifest = ReleaseManifest(packages={"pinned": "9.9.9"})

        with pytest.raises(PackageNotFoundError, match="does not exist"):
            registry.get("pinned", PackageSearchOptions(release_manifest=manifest))


class TestForceLoad:
    """Everything a package uses is loaded before get() returns."""

    def test_transitive_dependencies_are_loaded(self, registry, packages_dir, make_package):
        make_package(packages_dir, "a", uses("b"))
        make_package(packages_dir, "b", uses("c"))
        make_package(packages_dir, "c", summary("leaf"))

        registry.get("a")

        assert "b" in registry
        assert "c" in registry

    def test_test_role_dependencies_are_loaded(self, registry, packages_dir, make_package):
        make_package(
            packages_dir,
            "a",
            """
            @Package.on_test
            def on_test(api):
                api.use("test-helpers")
            """,
        )
        make_package(packages_dir, "test-helpers", summary("helpers"))

        registry.get("a")

        assert "test-helpers" in registry

    def test_cycles_terminate(self, registry, packages_dir, make_package):
        make_package(packages_dir, "a", uses("b"))
        make_package(
            packages_dir,
            "b",
            """
            @Package.on_use
            def on_use(api):
                api.use("a", unordered=True)
            """,
        )

        a = registry.get("a")

        assert registry.get("b").unordered == {"a"}
        assert registry.get("a") is a

    def test_failed_dependency_is_not_cached(self, registry, packages_dir, make_package):
        make_package(packages_dir, "a", uses("missing"))

        with pytest.raises(PackageNotFoundError, match="missing"):
            registry.get("a")

        assert "a" not in registry

    def test_descriptor_side_effects_visible_to_dependents(self, registry, packages_dir, make_package):
        """A dependency's descriptor runs before the dependent returns."""
        make_package(
            packages_dir,
            "setup",
            """
            import os
            os.environ["PKGLOADER_TEST_SETUP_RAN"] = "yes"
            """,
        )
        make_package(packages_dir, "app-lib", uses("setup"))

        registry.get("app-lib")

        import os

        assert os.environ.pop("PKGLOADER_TEST_SETUP_RAN") == "yes"


class TestListing:
    def test_list_first_seen_wins(self, packages_dir, make_package, tmp_path):
        later = tmp_path / "later"
        make_package(packages_dir, "widget", summary("first"))
        make_package(later, "widget", summary("second"))
        (later / "not-a-package").mkdir()
        registry = PackageRegistry(package_dirs=[packages_dir, later, tmp_path / "absent"])

        found = registry.list_packages()

        assert sorted(found) == ["core", "widget"]
        assert found["widget"].metadata["summary"] == "first"

    def test_list_includes_release_packages(self, registry, warehouse, make_package):
        make_package(warehouse.root / "packages" / "pinned", "2.0.0", summary("pinned"))
        (warehouse.root / "releases").mkdir(parents=True)
        (warehouse.root / "releases" / "r1.release.json").write_text(
            json.dumps({"packages": {"pinned": "2.0.0", "core": "1.0.0"}})
        )
        manifest = warehouse.load_release_manifest("r1")

        found = registry.list_packages(manifest)

        assert sorted(found) == ["core", "pinned"]
        # local core wins over the pinned one
        assert found["core"].source_root.parent.name == "packages"

    def test_format_list(self):
        def package(name, **metadata):
            p = Package()
            p.name = name
            p.metadata = metadata
            return p

        out = format_list(
            [
                package("a", summary="Alpha"),
                package("long-name"),
                package("hidden-internal", internal=True, summary="secret"),
                package("wide", summary="x" * 200),
            ]
        )
        lines = out.splitlines()

        assert lines[0] == "a" + " " * 14 + "  Alpha"
        assert lines[1] == "long-name" + " " * 6 + "  No description"
        assert len(lines) == 3
        assert len(lines[2]) == 80
        assert "secret" not in out
