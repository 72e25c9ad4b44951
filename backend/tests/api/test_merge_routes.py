"""Admin merge routes — /admin/posts/{id}/merge, /admin/posts/merge, /admin/posts/{id}/unmerge."""

import pytest


@pytest.fixture
async def posts(seed, board, alice, bob, carol):
    target = await seed.post(board, "Dark mode", alice)
    source = await seed.post(board, "Night theme", bob)
    await seed.vote(target, carol)
    await seed.vote(source, carol)
    await seed.vote(source, bob)
    return source, target


# ─── Auth ────────────────────────────────────────────────────────

async def test_merge_requires_user_header(client, posts):
    source, target = posts
    res = await client.post(f"/admin/posts/{source.id}/merge", json={"target_post_id": target.id})
    assert res.status_code == 401
    assert res.json()["error"]["code"] == "AUTHENTICATION_REQUIRED"


async def test_merge_rejects_unknown_user(client, posts):
    source, target = posts
    res = await client.post(
        f"/admin/posts/{source.id}/merge",
        json={"target_post_id": target.id},
        headers={"X-User-Id": "9999"},
    )
    assert res.status_code == 401


async def test_merge_requires_admin(client, posts, as_member):
    source, target = posts
    res = await client.post(
        f"/admin/posts/{source.id}/merge", json={"target_post_id": target.id}, headers=as_member,
    )
    assert res.status_code == 403
    assert res.json()["error"]["code"] == "PERMISSION_DENIED"


# ─── Single merge ────────────────────────────────────────────────

async def test_merge_post(client, posts, as_admin, admin):
    source, target = posts
    res = await client.post(
        f"/admin/posts/{source.id}/merge", json={"target_post_id": target.id}, headers=as_admin,
    )
    assert res.status_code == 200
    data = res.json()
    assert data["message"] == "Post merged successfully."
    assert data["target"]["id"] == target.id
    assert data["target"]["vote"] == 2
    assert data["target"]["comments"] == 1
    merged = data["merged"][0]
    assert merged["merged_into_post_id"] == target.id
    assert merged["merged_by_user_id"] == admin.id
    assert merged["vote"] == 0


async def test_merge_into_self_conflicts(client, posts, as_admin):
    source, _ = posts
    res = await client.post(
        f"/admin/posts/{source.id}/merge", json={"target_post_id": source.id}, headers=as_admin,
    )
    assert res.status_code == 409
    assert res.json()["error"]["code"] == "MERGE_CONFLICT"


async def test_merge_unknown_target_404(client, posts, as_admin):
    source, _ = posts
    res = await client.post(
        f"/admin/posts/{source.id}/merge", json={"target_post_id": 9999}, headers=as_admin,
    )
    assert res.status_code == 404


async def test_merge_invalid_body_400(client, posts, as_admin):
    source, _ = posts
    res = await client.post(f"/admin/posts/{source.id}/merge", json={}, headers=as_admin)
    assert res.status_code == 400
    assert res.json()["error"]["code"] == "VALIDATION_ERROR"


async def test_merge_twice_conflicts(client, posts, as_admin):
    source, target = posts
    url = f"/admin/posts/{source.id}/merge"
    await client.post(url, json={"target_post_id": target.id}, headers=as_admin)
    res = await client.post(url, json={"target_post_id": target.id}, headers=as_admin)
    assert res.status_code == 409


# ─── Bulk merge ──────────────────────────────────────────────────

async def test_merge_many(client, seed, board, posts, as_admin):
    source, target = posts
    extra = await seed.post(board, "Darker mode")
    done = await seed.status("Completed")

    res = await client.post(
        "/admin/posts/merge",
        json={"post_id": target.id, "merge_ids": [source.id, extra.id, source.id], "status_id": done.id},
        headers=as_admin,
    )
    assert res.status_code == 200
    data = res.json()
    assert data["message"] == "Posts merged successfully."
    assert [p["id"] for p in data["merged"]] == [source.id, extra.id]
    assert all(p["merged_into_post_id"] == target.id for p in data["merged"])
    assert all(p["status_id"] == done.id for p in data["merged"])


async def test_merge_many_rejects_target_in_sources(client, posts, as_admin):
    source, target = posts
    res = await client.post(
        "/admin/posts/merge",
        json={"post_id": target.id, "merge_ids": [source.id, target.id]},
        headers=as_admin,
    )
    assert res.status_code == 400


async def test_merge_many_requires_sources(client, posts, as_admin):
    _, target = posts
    res = await client.post(
        "/admin/posts/merge", json={"post_id": target.id, "merge_ids": []}, headers=as_admin,
    )
    assert res.status_code == 400


async def test_merge_many_unknown_status_404(client, posts, as_admin, test_db, seed):
    source, target = posts
    res = await client.post(
        "/admin/posts/merge",
        json={"post_id": target.id, "merge_ids": [source.id], "status_id": 9999},
        headers=as_admin,
    )
    assert res.status_code == 404
    await seed.reload(source)
    assert source.merged_into_post_id is None


# ─── Unmerge ─────────────────────────────────────────────────────

async def test_unmerge_post(client, posts, as_admin):
    source, target = posts
    await client.post(
        f"/admin/posts/{source.id}/merge", json={"target_post_id": target.id}, headers=as_admin,
    )
    res = await client.post(f"/admin/posts/{source.id}/unmerge", headers=as_admin)

    assert res.status_code == 200
    data = res.json()
    assert data["message"] == "Post unmerged successfully."
    assert data["post"]["merged_into_post_id"] is None
    assert data["post"]["vote"] == 2
    assert data["target"]["id"] == target.id
    assert data["target"]["vote"] == 1
    assert data["target"]["comments"] == 0


async def test_unmerge_unmerged_post_conflicts(client, posts, as_admin):
    source, _ = posts
    res = await client.post(f"/admin/posts/{source.id}/unmerge", headers=as_admin)
    assert res.status_code == 409


async def test_unmerge_unknown_post_404(client, as_admin):
    res = await client.post("/admin/posts/9999/unmerge", headers=as_admin)
    assert res.status_code == 404
