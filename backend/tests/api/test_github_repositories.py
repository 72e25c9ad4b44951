"""GitHub repository routes — search, attach with webhook, list, detach."""

import json

import pytest
from sqlalchemy import select

from ideabox.models import IntegrationRepository

BASE = "/admin/integrations/github"


@pytest.fixture
async def provider(seed):
    return await seed.provider()


async def test_search_repositories(client, provider, github_api, as_admin):
    github_api.on("GET", "/user/repos", 200, [
        {
            "id": 1, "name": "widgets", "full_name": "acme/widgets", "description": None,
            "html_url": "https://github.com/acme/widgets",
            "owner": {"login": "acme", "avatar_url": "https://avatars/acme"},
        },
        {"id": 2, "name": "gadgets", "full_name": "acme/gadgets"},
    ])
    res = await client.post(
        f"{BASE}/repositories/search",
        json={"provider_id": provider.id, "query": "widg"},
        headers=as_admin,
    )
    assert res.status_code == 200
    assert res.json() == {"repositories": [{
        "id": 1, "name": "widgets", "full_name": "acme/widgets", "description": "",
        "html_url": "https://github.com/acme/widgets",
        "owner": {"login": "acme", "avatar_url": "https://avatars/acme"},
    }]}


async def test_search_query_too_short(client, provider, as_admin):
    res = await client.post(
        f"{BASE}/repositories/search", json={"provider_id": provider.id, "query": "w"}, headers=as_admin,
    )
    assert res.status_code == 400


async def test_add_repository_creates_webhook(client, provider, github_api, as_admin, test_db):
    github_api.on("POST", "/repos/acme/widgets/hooks", 201, {"id": 555})

    res = await client.post(
        f"{BASE}/repositories",
        json={"provider_id": provider.id, "full_name": "acme/widgets"},
        headers=as_admin,
    )
    assert res.status_code == 201
    data = res.json()
    assert data["webhook_created"] is True
    assert data["message"].startswith("Repository added successfully")
    assert data["repository"]["name"] == "widgets"
    assert data["repository"]["has_webhook"] is True

    repository = await test_db.get(IntegrationRepository, data["repository"]["id"])
    sent = json.loads(github_api.sent("POST", "/repos/acme/widgets/hooks")[0].content)
    assert repository.get_webhook_id() == 555
    assert repository.get_webhook_secret() == sent["config"]["secret"]


async def test_add_repository_survives_webhook_failure(client, provider, github_api, as_admin):
    github_api.on("POST", "/repos/acme/widgets/hooks", 403, {"message": "Forbidden"})

    res = await client.post(
        f"{BASE}/repositories",
        json={"provider_id": provider.id, "full_name": "acme/widgets"},
        headers=as_admin,
    )
    assert res.status_code == 201
    assert res.json()["webhook_created"] is False
    assert res.json()["repository"]["has_webhook"] is False


async def test_add_duplicate_repository_conflicts(client, seed, provider, as_admin):
    await seed.repository(provider, "acme/widgets")
    res = await client.post(
        f"{BASE}/repositories",
        json={"provider_id": provider.id, "full_name": "acme/widgets"},
        headers=as_admin,
    )
    assert res.status_code == 409
    assert res.json()["error"]["message"] == "Repository already exists."


async def test_add_repository_rejects_bad_full_name(client, provider, as_admin):
    res = await client.post(
        f"{BASE}/repositories",
        json={"provider_id": provider.id, "full_name": "not a repo"},
        headers=as_admin,
    )
    assert res.status_code == 400


async def test_list_provider_repositories(client, seed, provider, as_admin):
    await seed.repository(provider, "acme/zeta")
    await seed.repository(provider, "acme/alpha")

    res = await client.get(f"{BASE}/providers/{provider.id}/repositories", headers=as_admin)
    assert res.status_code == 200
    assert [r["full_name"] for r in res.json()["repositories"]] == ["acme/alpha", "acme/zeta"]


async def test_remove_repository_deletes_webhook(client, seed, provider, github_api, as_admin, test_db):
    repository = await seed.repository(provider, "acme/widgets", webhook_id=555, webhook_secret="s")
    github_api.on("DELETE", "/repos/acme/widgets/hooks/555", 204)

    res = await client.delete(f"{BASE}/repositories/{repository.id}", headers=as_admin)
    assert res.status_code == 200
    assert res.json() == {"message": "Repository removed successfully"}
    assert len(github_api.sent("DELETE", "/repos/acme/widgets/hooks/555")) == 1

    remaining = await test_db.execute(select(IntegrationRepository.id))
    assert remaining.scalars().all() == []


async def test_remove_repository_when_webhook_delete_fails(client, seed, provider, as_admin):
    repository = await seed.repository(provider, "acme/widgets", webhook_id=555, webhook_secret="s")
    res = await client.delete(f"{BASE}/repositories/{repository.id}", headers=as_admin)
    assert res.status_code == 200


async def test_remove_repository_with_links_conflicts(client, seed, board, provider, as_admin):
    repository = await seed.repository(provider)
    await seed.link(await seed.post(board, "Linked"), repository, 3)

    res = await client.delete(f"{BASE}/repositories/{repository.id}", headers=as_admin)
    assert res.status_code == 409
