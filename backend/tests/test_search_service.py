"""Tests for single-tenant and multi-tenant search."""

import pytest

from filehub.config import settings
from filehub.services.access_levels import AccessLevel
from filehub.services.exceptions import InvalidQuery, NotFound
from filehub.services.search_service import build_matcher
from filehub.tenancy import strip_display_name, strip_tenant_prefix

TENANTS = [("acme", "Acme Corp"), ("globex", "Globex")]


def _write(path, content="x"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


def _paths(page):
    return [e.path for e in page.items]


class TestMatcher:
    def test_substring_is_case_insensitive(self):
        match = build_matcher("RePoRt")
        assert match("annual_report.pdf")
        assert not match("summary.txt")

    def test_regex_is_case_insensitive(self):
        match = build_matcher(r"^rep.*\.pdf$", regex=True)
        assert match("Report.PDF")
        assert not match("my-report.pdf")

    @pytest.mark.parametrize("pattern", ["[", "(unclosed", "*bad"])
    def test_invalid_regex_raises(self, pattern):
        with pytest.raises(InvalidQuery):
            build_matcher(pattern, regex=True)

    def test_invalid_regex_text_is_fine_as_substring(self):
        assert build_matcher("[")("odd[name].txt")

    @pytest.mark.parametrize("query", ["", "   "])
    def test_empty_query_rejected(self, query):
        with pytest.raises(InvalidQuery):
            build_matcher(query)


@pytest.mark.asyncio
async def test_search_case_insensitive(search_service, db_session, acme_root):
    _write(acme_root / "Report.pdf")
    _write(acme_root / "docs" / "annual_report.txt")
    _write(acme_root / "docs" / "other.md")

    upper = await search_service.search(db_session, "acme", "REPORT")
    lower = await search_service.search(db_session, "acme", "report")

    assert sorted(_paths(upper)) == sorted(_paths(lower)) == ["Report.pdf", "docs/annual_report.txt"]


@pytest.mark.asyncio
async def test_invalid_regex_is_an_error_not_empty(search_service, db_session, acme_root):
    _write(acme_root / "file[1].txt")
    with pytest.raises(InvalidQuery):
        await search_service.search(db_session, "acme", "[", regex=True)


@pytest.mark.asyncio
async def test_search_dirs_first_and_hidden_filtered(search_service, db_session, acme_root):
    _write(acme_root / "b-report.txt")
    _write(acme_root / "a-report.txt")
    (acme_root / "z-report").mkdir()
    _write(acme_root / ".report-hidden")

    page = await search_service.search(db_session, "acme", "report")
    assert [e.name for e in page.items] == ["z-report", "a-report.txt", "b-report.txt"]

    page = await search_service.search(db_session, "acme", "report", show_hidden=True)
    assert ".report-hidden" in [e.name for e in page.items]


@pytest.mark.asyncio
async def test_search_scoped_to_search_path(search_service, db_session, acme_root):
    _write(acme_root / "docs" / "report.txt")
    _write(acme_root / "other" / "report.txt")

    page = await search_service.search(db_session, "acme", "report", search_path="docs")

    assert _paths(page) == ["docs/report.txt"]


@pytest.mark.asyncio
async def test_search_missing_scope(search_service, db_session, acme_root):
    with pytest.raises(NotFound):
        await search_service.search(db_session, "acme", "x", search_path="nope")


@pytest.mark.asyncio
async def test_search_reports_effective_access(search_service, db_session, storage, acme_root):
    _write(acme_root / "vault" / "report.txt")
    await storage.set_access_level(db_session, "acme", "vault", AccessLevel.PRIVATE)

    page = await search_service.search(db_session, "acme", "report")

    assert page.items[0].access_level == AccessLevel.PRIVATE


@pytest.mark.asyncio
async def test_node_cap_truncates(search_service, db_session, acme_root, monkeypatch):
    for i in range(10):
        _write(acme_root / f"report-{i}.txt")
    monkeypatch.setattr(settings, "search_max_nodes", 3)

    page = await search_service.search(db_session, "acme", "report")

    assert page.truncated is True
    assert page.pagination.total == 3


@pytest.mark.asyncio
async def test_depth_cap_truncates(search_service, db_session, acme_root, monkeypatch):
    _write(acme_root / "a" / "b" / "c" / "report.txt")
    _write(acme_root / "report.txt")
    monkeypatch.setattr(settings, "search_max_depth", 1)

    page = await search_service.search(db_session, "acme", "report")

    assert _paths(page) == ["report.txt"]
    assert page.truncated is True


@pytest.mark.asyncio
async def test_search_pagination(search_service, db_session, acme_root):
    for i in range(5):
        _write(acme_root / f"report-{i}.txt")

    page = await search_service.search(db_session, "acme", "report", page=2, limit=2)

    assert [e.name for e in page.items] == ["report-2.txt", "report-3.txt"]
    assert page.pagination.to_dict()["totalPages"] == 3


class TestMultiTenant:
    @pytest.mark.asyncio
    async def test_same_name_in_two_tenants_yields_two_results(
        self, search_service, resolver, db_session, acme_root, globex_root
    ):
        _write(acme_root / "report.pdf", "acme bytes")
        _write(globex_root / "report.pdf", "globex bytes")

        page = await search_service.search_all(db_session, TENANTS, "report")

        assert [(e.tenant_id, e.name, e.path) for e in page.items] == [
            ("acme", "Acme Corp/report.pdf", "acme:report.pdf"),
            ("globex", "Globex/report.pdf", "globex:report.pdf"),
        ]
        for entry, expected in zip(page.items, ("acme bytes", "globex bytes")):
            tenant_id, relative = strip_tenant_prefix(entry.path)
            assert tenant_id == entry.tenant_id
            assert strip_display_name(entry.name) == "report.pdf"
            physical = resolver.resolve(tenant_id, relative)
            assert physical.read_text(encoding="utf-8") == expected

    @pytest.mark.asyncio
    async def test_sorted_by_tenant_name_then_file_name(self, search_service, db_session, acme_root, globex_root):
        _write(globex_root / "a-report.txt")
        _write(acme_root / "z-report.txt")
        _write(acme_root / "B-report.txt")

        page = await search_service.search_all(db_session, TENANTS, "report")

        assert [e.name for e in page.items] == [
            "Acme Corp/B-report.txt",
            "Acme Corp/z-report.txt",
            "Globex/a-report.txt",
        ]
        assert page.items[0].tenant_name == "Acme Corp"

    @pytest.mark.asyncio
    async def test_global_dedupe_by_tenant_and_path(self, search_service, db_session, acme_root):
        _write(acme_root / "report.pdf")

        page = await search_service.search_all(db_session, TENANTS + [("acme", "Acme Corp")], "report")

        assert [e.path for e in page.items] == ["acme:report.pdf"]

    @pytest.mark.asyncio
    async def test_access_level_per_tenant(self, search_service, storage, db_session, acme_root, globex_root):
        _write(acme_root / "report.pdf")
        _write(globex_root / "report.pdf")
        await storage.set_access_level(db_session, "globex", "report.pdf", AccessLevel.PRIVATE)

        page = await search_service.search_all(db_session, TENANTS, "report")

        assert [e.access_level for e in page.items] == [AccessLevel.PUBLIC, AccessLevel.PRIVATE]

    @pytest.mark.asyncio
    async def test_invalid_regex_across_tenants(self, search_service, db_session, acme_root):
        with pytest.raises(InvalidQuery):
            await search_service.search_all(db_session, TENANTS, "[", regex=True)
