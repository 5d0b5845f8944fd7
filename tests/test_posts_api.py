"""Source posts endpoints."""
import pytest


@pytest.mark.asyncio
async def test_create_list_and_get_post(client) -> None:
    resp = await client.post("/api/posts", json={"content": "Draft copy", "platform": "x"})
    assert resp.status_code == 201, resp.text
    post = resp.json()["data"]
    assert post["status"] == "draft"
    assert post["id"].startswith("post_")

    resp = await client.get("/api/posts", params={"status": "draft"})
    assert [p["id"] for p in resp.json()["data"]] == [post["id"]]

    resp = await client.get(f"/api/posts/{post['id']}")
    assert resp.json()["data"]["content"] == "Draft copy"


@pytest.mark.asyncio
async def test_approve_post(client) -> None:
    post = (await client.post("/api/posts", json={"content": "Copy", "platform": "linkedin"})).json()["data"]
    resp = await client.patch(f"/api/posts/{post['id']}/status", json={"status": "approved"})
    assert resp.status_code == 200
    assert resp.json()["data"]["status"] == "approved"


@pytest.mark.asyncio
async def test_draft_post_cannot_be_scheduled(client) -> None:
    post = (await client.post("/api/posts", json={"content": "Copy", "platform": "linkedin"})).json()["data"]
    resp = await client.post(
        "/api/scheduled-posts",
        json={"platform": "linkedin", "post_id": post["id"], "scheduled_time": "2999-01-01T00:00:00Z"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_unknown_post_is_404(client) -> None:
    assert (await client.get("/api/posts/post_missing")).status_code == 404
    resp = await client.patch("/api/posts/post_missing/status", json={"status": "approved"})
    assert resp.status_code == 404
    assert resp.json()["error"]["code"] == "not_found"


@pytest.mark.asyncio
async def test_invalid_status_is_400(client) -> None:
    post = (await client.post("/api/posts", json={"content": "Copy", "platform": "linkedin"})).json()["data"]
    resp = await client.patch(f"/api/posts/{post['id']}/status", json={"status": "viral"})
    assert resp.status_code == 400
