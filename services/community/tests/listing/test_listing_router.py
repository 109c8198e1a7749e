import pytest

from app.listing.cache import TRICK_SCOPE, comment_scope
from app.listing.constants import (
    AJAX_HEADER,
    AJAX_HEADER_VALUE,
    COMMENT_LIST_RESET_OUTDATED,
    TRICK_LIST_ENDED,
    TRICK_LIST_RESET_OUTDATED,
    TRICK_LIST_RESET_PARAMETERS,
)
from app.pagination import encode_uuid

AJAX = {AJAX_HEADER: AJAX_HEADER_VALUE}


def _ranks(payload: dict) -> list[int | None]:
    return [item["rank"] for item in payload["items"]]


@pytest.mark.asyncio
async def test_health(async_client) -> None:
    response = await async_client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "community"}


# ---------------------------------------------------------------------------
# Trick list
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_home_serves_newest_tricks_and_records_count(
    async_client, seed, snapshot_store, session_id
) -> None:
    await seed.tricks(7)
    response = await async_client.get("/en")
    assert response.status_code == 200
    data = response.json()
    assert _ranks(data) == [6, 5, 4]
    assert (data["count"], data["offset"], data["limit"]) == (7, 4, 3)
    assert data["direction"] == "DESC"
    assert data["loading_mode"] == "DESC"
    assert data["number_per_loading"] == 3
    assert data["load_path"] == "/en/home-load-tricks"
    assert data["notices"]["list_ended"] == TRICK_LIST_ENDED
    assert data["reinitialized"] is False
    assert data["error"] is None
    assert snapshot_store.counts[(session_id, TRICK_SCOPE)] == 7


@pytest.mark.asyncio
async def test_home_issues_a_session_cookie_to_new_visitors(async_client, settings) -> None:
    response = await async_client.get("/en", headers={"Cookie": ""})
    assert response.status_code == 200
    assert settings.session_cookie_name in response.headers["set-cookie"]
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_load_more_requires_ajax(async_client, seed) -> None:
    await seed.tricks(2)
    response = await async_client.get("/en/home-load-tricks/0/3")
    assert response.status_code == 403
    assert response.json()["error"]["code"] == "forbidden"


@pytest.mark.asyncio
async def test_load_more_tricks_walks_down_the_ranks(async_client, seed) -> None:
    await seed.tricks(7)
    await async_client.get("/en")

    second = await async_client.get("/en/home-load-tricks/1/3", headers=AJAX)
    assert second.status_code == 200
    assert _ranks(second.json()) == [3, 2, 1]
    assert second.json()["error"] is None

    # What is left below rank 1
    last = await async_client.get("/en/home-load-tricks/-2/3", headers=AJAX)
    data = last.json()
    assert _ranks(data) == [0]
    assert (data["offset"], data["limit"]) == (0, 1)
    assert data["reinitialized"] is False


@pytest.mark.asyncio
async def test_load_more_tricks_uses_default_limit(async_client, seed) -> None:
    await seed.tricks(7)
    response = await async_client.get("/en/home-load-tricks/2", headers=AJAX)
    assert response.status_code == 200
    assert _ranks(response.json()) == [4, 3, 2]


@pytest.mark.asyncio
async def test_wrong_parameters_reinitialize_the_list(async_client, seed) -> None:
    await seed.tricks(7)
    await async_client.get("/en")
    response = await async_client.get("/en/home-load-tricks/50/3", headers=AJAX)
    data = response.json()
    assert response.status_code == 200
    assert data["reinitialized"] is True
    assert data["error"] == TRICK_LIST_RESET_PARAMETERS
    assert (data["offset"], data["limit"]) == (4, 3)
    assert _ranks(data) == [6, 5, 4]


@pytest.mark.asyncio
async def test_new_tricks_reinitialize_the_list(async_client, seed, snapshot_store, session_id) -> None:
    await seed.tricks(7)
    await async_client.get("/en")
    await seed.tricks(2)

    response = await async_client.get("/en/home-load-tricks/1/3", headers=AJAX)
    data = response.json()
    assert data["reinitialized"] is True
    assert data["error"] == TRICK_LIST_RESET_OUTDATED
    assert (data["count"], data["offset"], data["limit"]) == (9, 6, 3)
    assert _ranks(data) == [8, 7, 6]
    assert snapshot_store.counts[(session_id, TRICK_SCOPE)] == 9

    # Back in sync: the next batch loads normally
    following = await async_client.get("/en/home-load-tricks/3/3", headers=AJAX)
    assert following.json()["reinitialized"] is False
    assert _ranks(following.json()) == [5, 4, 3]


@pytest.mark.asyncio
async def test_deleted_trick_reinitializes_the_list(async_client, seed) -> None:
    tricks = await seed.tricks(5)
    await async_client.get("/en")
    await seed.delete(tricks[0])

    response = await async_client.get("/en/home-load-tricks/0/2", headers=AJAX)
    data = response.json()
    assert data["reinitialized"] is True
    assert (data["count"], data["offset"], data["limit"]) == (4, 1, 3)


@pytest.mark.asyncio
async def test_trick_list_pages(async_client, seed) -> None:
    await seed.tricks(7)
    first = await async_client.get("/en/trick-list/page/1")
    assert first.status_code == 200
    data = first.json()
    assert (data["total"], data["page"], data["page_count"], data["page_size"]) == (7, 1, 2, 4)
    assert _ranks(data) == [6, 5, 4, 3]

    last = await async_client.get("/en/trick-list/page/2")
    assert _ranks(last.json()) == [2, 1, 0]
    assert (last.json()["offset"], last.json()["limit"]) == (0, 3)


@pytest.mark.asyncio
@pytest.mark.parametrize("page", [0, 3])
async def test_trick_list_page_out_of_range(async_client, seed, page: int) -> None:
    await seed.tricks(7)
    response = await async_client.get(f"/en/trick-list/page/{page}")
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "not_found"


# ---------------------------------------------------------------------------
# Comment list
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
async def test_trick_comments_and_load_more(async_client, seed, snapshot_store, session_id) -> None:
    [trick] = await seed.tricks(1)
    roots = await seed.comments(trick, 3)
    await seed.comments(trick, 1, parent=roots[0])
    token = encode_uuid(trick.trick_id)

    initial = await async_client.get(f"/tricks/{token}/comments")
    assert initial.status_code == 200
    data = initial.json()
    assert _ranks(data) == [0, 1]
    assert (data["count"], data["comment_count"]) == (3, 4)
    assert data["items"][0]["replies"][0]["rank"] == 0
    assert data["items"][0]["replies"][0]["parent_comment_id"] == str(roots[0].comment_id)
    assert data["load_path"] == f"/load-trick-comments/{token}"
    assert data["loading_mode"] == "ASC"
    assert snapshot_store.counts[(session_id, comment_scope(trick.trick_id))] == 3

    more = await async_client.get(f"/load-trick-comments/{token}/2/2", headers=AJAX)
    assert more.status_code == 200
    assert _ranks(more.json()) == [2]
    assert (more.json()["offset"], more.json()["limit"]) == (2, 1)
    assert more.json()["trick_token"] == token


@pytest.mark.asyncio
async def test_new_comment_reinitializes_the_comment_list(async_client, seed) -> None:
    [trick] = await seed.tricks(1)
    await seed.comments(trick, 3)
    token = encode_uuid(trick.trick_id)
    await async_client.get(f"/tricks/{token}/comments")
    await seed.comments(trick, 1)

    response = await async_client.get(f"/load-trick-comments/{token}/2", headers=AJAX)
    data = response.json()
    assert data["reinitialized"] is True
    assert data["error"] == COMMENT_LIST_RESET_OUTDATED
    assert (data["count"], data["offset"], data["limit"]) == (4, 0, 2)


@pytest.mark.asyncio
async def test_comment_load_more_requires_ajax(async_client, seed) -> None:
    [trick] = await seed.tricks(1)
    response = await async_client.get(f"/load-trick-comments/{encode_uuid(trick.trick_id)}/0/2")
    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.parametrize("token", ["0abc", "not-a-token", "1"])
async def test_unknown_trick_token(async_client, token: str) -> None:
    initial = await async_client.get(f"/tricks/{token}/comments")
    assert initial.status_code == 404
    more = await async_client.get(f"/load-trick-comments/{token}/0/2", headers=AJAX)
    assert more.status_code == 404
    assert more.json()["error"]["message"] == "Trick not found."
