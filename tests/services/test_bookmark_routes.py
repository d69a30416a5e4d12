"""Bookmark Routes — owner-scoped CRUD over HTTP, with feed publication."""

from uuid import UUID, uuid4

from smart_bookmark.api.dependencies import get_record_store
from smart_bookmark.core.domain_types import ChangeKind, IdentityId
from smart_bookmark.core.errors import StoreError
from smart_bookmark.main import app


async def test_unauthenticated_api_request_redirects_to_login(client):
    res = await client.get("/api/v1/bookmarks")
    assert res.status_code == 307
    assert res.headers["location"] == "/login"


async def test_create_normalizes_and_returns_201(client, sign_in):
    await sign_in()
    res = await client.post(
        "/api/v1/bookmarks",
        json={"title": "  Python Docs ", "url": "www.python.org/doc"},
    )
    assert res.status_code == 201
    body = res.json()
    assert body["title"] == "Python Docs"
    assert body["url"] == "https://www.python.org/doc"
    assert body["domain"] == "python.org"


async def test_create_blank_title_is_rejected(client, sign_in):
    await sign_in()
    res = await client.post(
        "/api/v1/bookmarks", json={"title": "   ", "url": "https://x.com"},
    )
    assert res.status_code == 400
    error = res.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["field"] == "title"
    assert error["context"]["identity_id"] is not None


async def test_list_is_newest_first(client, sign_in):
    await sign_in()
    for title in ("first", "second", "third"):
        await client.post(
            "/api/v1/bookmarks", json={"title": title, "url": "example.com"},
        )
    res = await client.get("/api/v1/bookmarks")
    assert res.status_code == 200
    assert [b["title"] for b in res.json()] == ["third", "second", "first"]


async def test_delete_publishes_to_owner_feed(client, sign_in, feed):
    await sign_in()
    res = await client.post(
        "/api/v1/bookmarks", json={"title": "t", "url": "example.com"},
    )
    owner = IdentityId(UUID(res.json()["owner_id"]))
    subscription = feed.subscribe(owner)
    await client.delete(f"/api/v1/bookmarks/{res.json()['id']}")

    event = await subscription.__anext__()
    assert event.kind == ChangeKind.DELETE


async def test_delete_returns_204(client, sign_in):
    await sign_in()
    created = await client.post(
        "/api/v1/bookmarks", json={"title": "t", "url": "example.com"},
    )
    res = await client.delete(f"/api/v1/bookmarks/{created.json()['id']}")
    assert res.status_code == 204
    assert (await client.get("/api/v1/bookmarks")).json() == []


async def test_delete_missing_bookmark_is_404(client, sign_in):
    await sign_in()
    missing = uuid4()
    res = await client.delete(f"/api/v1/bookmarks/{missing}")
    assert res.status_code == 404
    error = res.json()["error"]
    assert error["code"] == "BOOKMARK_NOT_FOUND"
    assert error["context"]["bookmark_id"] == str(missing)


async def test_other_identity_cannot_see_or_delete(client, sign_in):
    await sign_in("ada@example.com")
    created = await client.post(
        "/api/v1/bookmarks", json={"title": "mine", "url": "example.com"},
    )

    await sign_in("grace@example.com")
    assert (await client.get("/api/v1/bookmarks")).json() == []
    res = await client.delete(f"/api/v1/bookmarks/{created.json()['id']}")
    assert res.status_code == 404


async def test_home_includes_snapshot(client, sign_in):
    await sign_in()
    await client.post(
        "/api/v1/bookmarks", json={"title": "t", "url": "example.com"},
    )
    body = (await client.get("/")).json()
    assert body["count"] == 1
    assert body["bookmarks"][0]["domain"] == "example.com"


async def test_health_is_gate_exempt(client):
    res = await client.get("/api/v1/health/")
    assert res.status_code == 200
    assert res.json()["status"] == "healthy"


async def test_create_whitespace_url_names_url_field(client, sign_in):
    await sign_in()
    res = await client.post(
        "/api/v1/bookmarks", json={"title": "Docs", "url": "   "},
    )
    assert res.status_code == 400
    assert res.json()["error"]["field"] == "url"


async def test_delete_store_failure_is_503(client, sign_in):
    class UnavailableStore:
        async def delete(self, bookmark_id, owner_id):
            raise StoreError("database unavailable", "delete")

    await sign_in()
    app.dependency_overrides[get_record_store] = lambda: UnavailableStore()
    res = await client.delete(f"/api/v1/bookmarks/{uuid4()}")
    assert res.status_code == 503
    assert res.json()["error"]["code"] == "STORE_ERROR"
