"""Tests for tenant path resolution — traversal, prefixes, symlinks, isolation."""

import os

import pytest

from filehub.services.exceptions import InvalidInput, TraversalError
from filehub.services.path_resolver import PathResolver, normalize_relative


@pytest.fixture
def path_resolver(tmp_path):
    return PathResolver(tmp_path / "tenants")


class TestTraversal:
    @pytest.mark.parametrize("raw", [
        "..",
        "../x",
        "a/../../b",
        "a/b/../../../c",
        "..\\..\\etc\\passwd",
        "/../etc",
        "docs/./../../globex/secret.txt",
    ])
    def test_escaping_paths_rejected(self, path_resolver, raw):
        with pytest.raises(TraversalError):
            path_resolver.resolve("acme", raw)

    @pytest.mark.parametrize("raw", ["~/notes", "C:/Windows", "c:\\temp", "//server/share"])
    def test_non_tenant_absolute_forms_rejected(self, path_resolver, raw):
        with pytest.raises(TraversalError):
            path_resolver.resolve("acme", raw)

    def test_sibling_prefix_not_matched(self, path_resolver):
        """``acme`` must never reach into ``acme-old``."""
        path_resolver.tenant_root("acme-old")
        with pytest.raises(TraversalError):
            path_resolver.resolve("acme", "../acme-old/x")

    def test_symlink_pointing_outside_rejected(self, path_resolver, tmp_path):
        outside = tmp_path / "outside"
        outside.mkdir()
        root = path_resolver.tenant_root("acme")
        os.symlink(outside, root / "escape")
        with pytest.raises(TraversalError):
            path_resolver.resolve("acme", "escape/file.txt")

    def test_error_carries_operation_and_status(self, path_resolver):
        with pytest.raises(TraversalError) as exc:
            path_resolver.resolve("acme", "../x", "download")
        assert exc.value.operation == "download"
        assert exc.value.status_code == 403


class TestResolution:
    @pytest.mark.parametrize("raw", ["", ".", "/", "\\", None, "./"])
    def test_root_forms(self, path_resolver, raw):
        assert path_resolver.resolve("acme", raw) == path_resolver.tenant_root("acme")

    def test_leading_slash_is_tenant_root(self, path_resolver):
        assert path_resolver.resolve("acme", "/docs") == path_resolver.resolve("acme", "docs")

    def test_inner_dots_normalized(self, path_resolver):
        root = path_resolver.tenant_root("acme")
        assert path_resolver.resolve("acme", "a/./b/../c") == root / "a" / "c"

    def test_backslashes_are_separators(self, path_resolver):
        root = path_resolver.tenant_root("acme")
        assert path_resolver.resolve("acme", "a\\b\\c.txt") == root / "a" / "b" / "c.txt"

    def test_relative_round_trip(self, path_resolver):
        absolute = path_resolver.resolve("acme", "docs/report.pdf")
        assert path_resolver.relative("acme", absolute) == "docs/report.pdf"
        assert path_resolver.relative("acme", path_resolver.tenant_root("acme")) == ""

    def test_is_root(self, path_resolver):
        assert path_resolver.is_root("acme", path_resolver.resolve("acme", "/"))
        assert not path_resolver.is_root("acme", path_resolver.resolve("acme", "docs"))


class TestTenantIsolation:
    @pytest.mark.parametrize("raw", ["", "docs", "docs/report.pdf", "a/b/c"])
    def test_distinct_tenants_never_share_a_path(self, path_resolver, raw):
        assert path_resolver.resolve("acme", raw) != path_resolver.resolve("globex", raw)

    @pytest.mark.parametrize("tenant_id", ["", "all", "../acme", "a/b", ".hidden", "x" * 65])
    def test_invalid_tenant_ids_rejected(self, path_resolver, tenant_id):
        with pytest.raises(InvalidInput):
            path_resolver.resolve(tenant_id, "docs")

    def test_tenant_root_created_on_demand(self, path_resolver):
        root = path_resolver.tenant_root("fresh")
        assert root.is_dir()


class TestNormalizeRelative:
    def test_strips_slashes(self):
        assert normalize_relative("/a/b/") == "a/b"

    def test_keeps_escaping_dots_for_caller(self):
        assert normalize_relative("a/../../b") == "../b"

    def test_root(self):
        assert normalize_relative("") == ""
        assert normalize_relative(".") == ""
