"""Client store tests against the real app over an ASGI transport."""

from unittest.mock import patch

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport

from filehub.client import ApiError, AppStore, FileHubClient, ViewState
from conftest import make_token


def _write(path, content="x"):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")


def _paths(store):
    return [f["path"] for f in store.files.files]


async def _make_store(app, **token_kwargs) -> AppStore:
    api = FileHubClient("http://test", token=make_token(**token_kwargs), transport=ASGITransport(app=app))
    store = AppStore(api)
    store.auth.token = api.token
    store.files.tenant_id = token_kwargs.get("tenant_id", "acme")
    return store


@pytest_asyncio.fixture
async def store(app, acme_root):
    s = await _make_store(app)
    yield s
    await s.client.aclose()


@pytest_asyncio.fixture
async def admin_store(app, acme_root, globex_root):
    s = await _make_store(app, username="root", role="super_admin", tenant_id=None)
    yield s
    await s.client.aclose()


@pytest.mark.asyncio
async def test_load_files(store, acme_root):
    _write(acme_root / "p.txt")
    (acme_root / "docs").mkdir()

    assert await store.load_files("")
    assert _paths(store) == ["docs", "p.txt"]
    assert store.files.pagination["total"] == 2
    assert store.files.view.state == ViewState.IDLE


@pytest.mark.asyncio
async def test_optimistic_delete_success(store, acme_root):
    _write(acme_root / "p.txt")
    await store.load_files("")

    assert await store.delete_item("p.txt")

    assert _paths(store) == []
    assert not (acme_root / "p.txt").exists()
    assert store.files.view.pending == []


@pytest.mark.asyncio
async def test_failed_delete_rolls_back(store, acme_root):
    _write(acme_root / "p.txt")
    await store.load_files("")
    seen_in_flight = []

    async def _rejected(path, tenant_id=None):
        seen_in_flight.append(_paths(store))
        raise ApiError(500, "Disk on fire")

    with patch.object(store.client, "delete_item", side_effect=_rejected):
        assert not await store.delete_item("p.txt")

    # hidden while the request was in flight
    assert seen_in_flight == [[]]
    # restored immediately, no reload needed
    assert _paths(store) == ["p.txt"]
    assert [n.message for n in store.notifications.errors] == ["Disk on fire"]

    await store.refresh()
    assert _paths(store) == ["p.txt"]


@pytest.mark.asyncio
async def test_server_rejection_rolls_back(store, acme_root):
    await store.load_files("")
    store.files.view.replace([{"name": "ghost.txt", "path": "ghost.txt", "isDirectory": False}])

    assert not await store.delete_item("ghost.txt")

    assert _paths(store) == ["ghost.txt"]
    assert store.notifications.errors[-1].message


@pytest.mark.asyncio
async def test_optimistic_rename(store, acme_root):
    _write(acme_root / "old.txt")
    await store.load_files("")

    assert await store.rename_item("old.txt", "new.txt")

    assert _paths(store) == ["new.txt"]
    assert (acme_root / "new.txt").exists()


@pytest.mark.asyncio
async def test_create_folder_conflict_rolls_back(store, acme_root):
    _write(acme_root / "taken")
    await store.load_files("")

    assert not await store.create_folder("taken")

    assert _paths(store) == ["taken"]
    assert store.files.view.state == ViewState.IDLE


@pytest.mark.asyncio
async def test_create_file(store, acme_root):
    await store.load_files("")

    assert await store.create_file("notes.md", "# hi")

    assert _paths(store) == ["notes.md"]
    assert (acme_root / "notes.md").read_text(encoding="utf-8") == "# hi"


@pytest.mark.asyncio
async def test_upload_partial_failure_notifies_and_reloads(store, acme_root):
    await store.load_files("")

    result = await store.upload([("ok.txt", b"ok"), ("bad.txt", b"no")], relative_paths=["ok.txt", "../bad.txt"])

    assert result["partial"] is True
    assert _paths(store) == ["ok.txt"]
    assert len(store.notifications.errors) == 1


@pytest.mark.asyncio
async def test_move_into_self_notifies(store, acme_root):
    (acme_root / "a" / "b").mkdir(parents=True)
    await store.load_files("")

    assert await store.move_item("a", "a/b") is None
    assert store.notifications.errors


@pytest.mark.asyncio
async def test_search_all_then_download_strips_prefix(admin_store, acme_root, globex_root):
    _write(acme_root / "report.pdf", "acme bytes")
    _write(globex_root / "report.pdf", "globex bytes")
    admin_store.files.tenant_id = "all"

    assert await admin_store.search("report")
    assert _paths(admin_store) == ["acme:report.pdf", "globex:report.pdf"]

    assert await admin_store.download("globex:report.pdf") == b"globex bytes"
    assert await admin_store.download("acme:report.pdf") == b"acme bytes"
    assert admin_store.target_of("globex:report.pdf") == ("globex", "report.pdf")


@pytest.mark.asyncio
async def test_rename_in_all_tenant_results_keeps_decoration(admin_store, acme_root):
    _write(acme_root / "docs" / "old.txt")
    admin_store.files.tenant_id = "all"
    await admin_store.search("old")
    assert _paths(admin_store) == ["acme:docs/old.txt"]

    in_flight = []
    real_rename = admin_store.client.rename

    async def rename(path, new_name, tenant_id=None):
        in_flight.extend((f["name"], f["path"]) for f in admin_store.files.files)
        return await real_rename(path, new_name, tenant_id=tenant_id)

    with patch.object(admin_store.client, "rename", side_effect=rename):
        assert await admin_store.rename_item("acme:docs/old.txt", "new.txt")

    assert in_flight == [("Acme Corp/new.txt", "acme:docs/new.txt")]
    assert (acme_root / "docs" / "new.txt").exists()


@pytest.mark.asyncio
async def test_failed_rename_in_all_tenant_results_rolls_back(admin_store, acme_root):
    _write(acme_root / "docs" / "old.txt")
    admin_store.files.tenant_id = "all"
    await admin_store.search("old")

    with patch.object(admin_store.client, "rename", side_effect=ApiError(409, "Exists")):
        assert not await admin_store.rename_item("acme:docs/old.txt", "new.txt")

    assert [(f["name"], f["path"]) for f in admin_store.files.files] == [("Acme Corp/old.txt", "acme:docs/old.txt")]


@pytest.mark.asyncio
async def test_open_folder_from_all_tenant_results(admin_store, globex_root):
    _write(globex_root / "reports" / "q1.txt")
    admin_store.files.tenant_id = "all"
    await admin_store.search("reports")

    folder = admin_store.files.files[0]
    assert await admin_store.open_folder(folder)

    assert admin_store.files.tenant_id == "globex"
    assert admin_store.files.current_path == "reports"
    assert _paths(admin_store) == ["reports/q1.txt"]


@pytest.mark.asyncio
async def test_storage_info(store, acme_root):
    _write(acme_root / "a.txt", "1234")

    info = await store.load_storage_info()

    assert info["totalSize"] == 4
    assert info["fileCount"] == 1


def test_download_url():
    store = AppStore(FileHubClient("http://test"))
    store.files.tenant_id = "all"

    url = httpx.URL(store.download_url("globex:docs/report.pdf"))

    assert url.path == "/api/download"
    assert url.params["tenantId"] == "globex"
    assert url.params["path"] == "docs/report.pdf"
