"""Public post page route — /b/{board_slug}/p/{post_slug}."""

from ideabox.services.merge_post_service import MergePostService


async def test_show_post(client, seed, board, alice, bob):
    post = await seed.post(board, "Dark mode", alice, body="Please")
    await seed.vote(post, bob)
    repository = await seed.repository(await seed.provider())
    await seed.link(post, repository, 5)

    res = await client.get(f"/b/{board.slug}/p/{post.slug}")
    assert res.status_code == 200
    data = res.json()
    assert data["title"] == "Dark mode"
    assert data["vote"] == 1
    assert data["board_slug"] == "feature-requests"
    assert data["merged_into"] is None
    assert data["linked_issues"][0]["repository_name"] == "acme/widgets"
    assert data["linked_issues"][0]["external_id"] == "5"


async def test_merged_post_names_target(client, seed, board, admin):
    target = await seed.post(board, "Dark mode")
    source = await seed.post(board, "Night theme")
    await MergePostService(seed.db).merge(source, target, admin)

    res = await client.get(f"/b/{board.slug}/p/{source.slug}")
    assert res.status_code == 200
    assert res.json()["merged_into"] == {
        "id": target.id, "title": "Dark mode", "slug": "dark-mode", "board_slug": board.slug,
    }


async def test_private_board_hidden(client, seed):
    private = await seed.board("Internal", privacy="private")
    post = await seed.post(private, "Secret")
    res = await client.get(f"/b/{private.slug}/p/{post.slug}")
    assert res.status_code == 404


async def test_unknown_post_404(client, board):
    res = await client.get(f"/b/{board.slug}/p/nope")
    assert res.status_code == 404
