"""
CookShare Backend — HTTP Route Tests
======================================

What:  End-to-end tests through the FastAPI app with httpx's ASGITransport.
How:   `test_client` shares the in-memory database with `db_session`, so
       users seeded by the `users` fixture are visible once committed.

What we test:
    ✅ Status codes for every error class (400 / 403 / 404 / 503)
    ✅ A failed commit answers 503 and leaves nothing behind
    ✅ camelCase bodies in and out
    ✅ Error body shape with request_id
    ✅ DELETE endpoints that carry a JSON body
    ✅ Health check
"""

import uuid
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession


@pytest_asyncio.fixture
async def seeded(db_session, users):
    await db_session.commit()
    return users


async def create_group(client, **overrides):
    body = {"name": "Grill Club", "creatorId": "alice", "requireApproval": False}
    body.update(overrides)
    response = await client.post("/api/groups", json=body)
    assert response.status_code == 201, response.text
    return response.json()


async def join(client, group_id, user_id):
    return await client.post(f"/api/groups/{group_id}/join", json={"userId": user_id})


class TestGroupRoutes:

    @pytest.mark.asyncio
    async def test_create_returns_camel_case(self, test_client, seeded):
        group = await create_group(test_client)

        assert group["creatorId"] == "alice"
        assert group["creatorName"] == "Alice Levi"
        assert group["isPrivate"] is False
        assert group["membersCount"] == 1
        assert group["settings"] == {
            "allowMemberPosts": True,
            "requireApproval": False,
            "allowInvites": True,
        }
        assert group["requireApproval"] is False
        assert group["members"][0]["userId"] == "alice"
        assert group["members"][0]["role"] == "admin"

    @pytest.mark.asyncio
    async def test_create_without_name(self, test_client):
        response = await test_client.post("/api/groups", json={"creatorId": "alice"})

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "validation_error"
        assert body["message"] == "Group name is required"
        assert body["request_id"]
        assert response.headers["X-Request-ID"] == body["request_id"]

    @pytest.mark.asyncio
    async def test_failed_commit_returns_503(self, test_client, seeded, monkeypatch):
        monkeypatch.setattr(
            AsyncSession,
            "commit",
            AsyncMock(side_effect=OperationalError("COMMIT", {}, ConnectionResetError("connection lost"))),
        )

        response = await test_client.post(
            "/api/groups", json={"name": "Grill Club", "creatorId": "alice"}
        )

        assert response.status_code == 503
        assert response.json()["error"] == "store_unavailable"

        monkeypatch.undo()
        assert (await test_client.get("/api/groups")).json() == []

    @pytest.mark.asyncio
    async def test_list_and_search(self, test_client, seeded):
        await create_group(test_client, name="Smoky Grill")
        await create_group(test_client, name="Quiet Pasta", isPrivate=True)

        listed = await test_client.get("/api/groups", params={"userId": "bob"})
        assert [g["name"] for g in listed.json()] == ["Smoky Grill"]

        found = await test_client.get("/api/groups/search", params={"q": "pasta", "userId": "alice"})
        assert [g["name"] for g in found.json()] == ["Quiet Pasta"]

    @pytest.mark.asyncio
    async def test_search_without_query(self, test_client):
        response = await test_client.get("/api/groups/search")
        assert response.status_code == 400
        assert response.json()["details"]["field"] == "q"

    @pytest.mark.asyncio
    async def test_get_group_details(self, test_client, seeded):
        group = await create_group(test_client)

        response = await test_client.get(f"/api/groups/{group['id']}")

        assert response.status_code == 200
        assert response.json()["membersDetails"][0]["userName"] == "Alice Levi"

    @pytest.mark.asyncio
    async def test_unknown_group(self, test_client):
        response = await test_client.get(f"/api/groups/{uuid.uuid4()}")
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

    @pytest.mark.asyncio
    async def test_malformed_group_id(self, test_client):
        response = await test_client.get("/api/groups/not-a-uuid")
        assert response.status_code == 400
        assert response.json()["error"] == "validation_error"


class TestMembershipRoutes:

    @pytest.mark.asyncio
    async def test_open_join_then_duplicate(self, test_client, seeded):
        group = await create_group(test_client)

        first = await join(test_client, group["id"], "bob")
        assert first.status_code == 200
        assert first.json()["status"] == "approved"

        second = await join(test_client, group["id"], "bob")
        assert second.status_code == 400
        assert second.json()["details"]["reason"] == "already_member"

    @pytest.mark.asyncio
    async def test_request_approve_flow(self, test_client, seeded):
        group = await create_group(test_client, requireApproval=True)

        pending = await join(test_client, group["id"], "carol")
        assert pending.json()["status"] == "pending"

        denied = await test_client.put(
            f"/api/groups/{group['id']}/requests/carol",
            json={"action": "approve", "adminId": "bob"},
        )
        assert denied.status_code == 403
        assert denied.json()["details"]["reason"] == "not_admin"

        approved = await test_client.put(
            f"/api/groups/{group['id']}/requests/carol",
            json={"action": "approve", "adminId": "alice"},
        )
        assert approved.status_code == 200
        assert approved.json()["action"] == "approve"

        detail = (await test_client.get(f"/api/groups/{group['id']}")).json()
        assert [m["userId"] for m in detail["members"]] == ["alice", "carol"]

    @pytest.mark.asyncio
    async def test_decide_unknown_request(self, test_client, seeded):
        group = await create_group(test_client)
        response = await test_client.put(
            f"/api/groups/{group['id']}/requests/dave",
            json={"action": "reject", "adminId": "alice"},
        )
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_cancel_request(self, test_client, seeded):
        group = await create_group(test_client, isPrivate=True)
        await join(test_client, group["id"], "bob")

        response = await test_client.request(
            "DELETE", f"/api/groups/{group['id']}/join", json={"userId": "bob"}
        )
        assert response.status_code == 200
        assert response.json()["status"] == "canceled"

        again = await test_client.request(
            "DELETE", f"/api/groups/{group['id']}/join", json={"userId": "bob"}
        )
        assert again.status_code == 400
        assert again.json()["details"]["reason"] == "no_pending_request"

    @pytest.mark.asyncio
    async def test_creator_cannot_leave(self, test_client, seeded):
        group = await create_group(test_client)
        response = await test_client.delete(f"/api/groups/{group['id']}/members/alice")
        assert response.status_code == 400
        assert response.json()["details"]["reason"] == "creator_cannot_leave"

    @pytest.mark.asyncio
    async def test_settings_update(self, test_client, seeded):
        group = await create_group(test_client)

        denied = await test_client.put(
            f"/api/groups/{group['id']}/settings", json={"userId": "bob", "isPrivate": True}
        )
        assert denied.status_code == 403

        response = await test_client.put(
            f"/api/groups/{group['id']}/settings",
            json={"userId": "alice", "allowMemberPosts": False},
        )
        assert response.status_code == 200
        assert response.json()["group"]["settings"]["allowMemberPosts"] is False

    @pytest.mark.asyncio
    async def test_delete_group(self, test_client, seeded):
        group = await create_group(test_client)
        url = f"/api/groups/{group['id']}"

        denied = await test_client.request("DELETE", url, json={"userId": "bob"})
        assert denied.status_code == 403
        assert denied.json()["details"]["reason"] == "not_creator"

        without_body = await test_client.delete(url)
        assert without_body.status_code == 403

        deleted = await test_client.request("DELETE", url, json={"userId": "alice"})
        assert deleted.status_code == 200
        assert (await test_client.get(url)).status_code == 404


class TestPostRoutes:

    @pytest.mark.asyncio
    async def test_create_and_list(self, test_client, seeded):
        group = await create_group(test_client)
        await join(test_client, group["id"], "bob")

        created = await test_client.post(
            f"/api/groups/{group['id']}/posts",
            json={"userId": "bob", "title": "Shakshuka", "prepTime": 20, "meatType": "Vegetarian"},
        )
        assert created.status_code == 201
        body = created.json()
        assert body["message"] == "Group post created successfully"
        assert body["isApproved"] is True
        assert body["userName"] == "Bob Katz"
        assert body["meatType"] == "Vegetarian"

        feed = await test_client.get(f"/api/groups/{group['id']}/posts")
        assert [p["title"] for p in feed.json()] == ["Shakshuka"]

    @pytest.mark.asyncio
    async def test_non_member_post_denied(self, test_client, seeded):
        group = await create_group(test_client)
        response = await test_client.post(
            f"/api/groups/{group['id']}/posts", json={"userId": "dave", "title": "Kugel"}
        )
        assert response.status_code == 403
        assert response.json()["details"]["reason"] == "not_member"

    @pytest.mark.asyncio
    async def test_private_feed_is_empty_for_outsiders(self, test_client, seeded):
        group = await create_group(test_client, isPrivate=True)
        await test_client.post(
            f"/api/groups/{group['id']}/posts", json={"userId": "alice", "title": "Secret stew"}
        )

        outsider = await test_client.get(f"/api/groups/{group['id']}/posts", params={"userId": "dave"})
        assert outsider.status_code == 200
        assert outsider.json() == []

        member = await test_client.get(f"/api/groups/{group['id']}/posts", params={"userId": "alice"})
        assert len(member.json()) == 1

    @pytest.mark.asyncio
    async def test_edit_and_delete(self, test_client, seeded):
        group = await create_group(test_client)
        await join(test_client, group["id"], "bob")
        post = (
            await test_client.post(
                f"/api/groups/{group['id']}/posts", json={"userId": "bob", "title": "Latkes"}
            )
        ).json()
        url = f"/api/groups/{group['id']}/posts/{post['id']}"

        edited = await test_client.put(url, json={"userId": "bob", "title": "Crispy latkes"})
        assert edited.status_code == 200
        assert edited.json()["data"]["title"] == "Crispy latkes"
        assert edited.json()["message"] == "Group post updated successfully"

        forbidden = await test_client.request("DELETE", url, json={"userId": "carol"})
        assert forbidden.status_code == 403

        deleted = await test_client.request("DELETE", url, json={"userId": "alice"})
        assert deleted.status_code == 200
        assert (await test_client.get(url)).status_code == 404

    @pytest.mark.asyncio
    async def test_post_in_wrong_group(self, test_client, seeded):
        first = await create_group(test_client, name="First")
        second = await create_group(test_client, name="Second")
        post = (
            await test_client.post(
                f"/api/groups/{first['id']}/posts", json={"userId": "alice", "title": "Hummus"}
            )
        ).json()

        response = await test_client.get(f"/api/groups/{second['id']}/posts/{post['id']}")
        assert response.status_code == 400
        assert response.json()["details"]["reason"] == "post_not_in_group"

    @pytest.mark.asyncio
    async def test_likes_and_comments(self, test_client, seeded):
        group = await create_group(test_client)
        await join(test_client, group["id"], "bob")
        post = (
            await test_client.post(
                f"/api/groups/{group['id']}/posts", json={"userId": "alice", "title": "Babka"}
            )
        ).json()
        base = f"/api/groups/{group['id']}/posts/{post['id']}"

        liked = await test_client.post(f"{base}/like", json={"userId": "bob"})
        assert liked.status_code == 200
        assert liked.json() == {"message": "Post liked successfully", "likes": ["bob"], "likesCount": 1}

        twice = await test_client.post(f"{base}/like", json={"userId": "bob"})
        assert twice.status_code == 400

        unliked = await test_client.request("DELETE", f"{base}/like", json={"userId": "bob"})
        assert unliked.json()["likesCount"] == 0

        commented = await test_client.post(
            f"{base}/comments", json={"userId": "bob", "userName": "Bob", "text": "Great swirl"}
        )
        assert commented.status_code == 201
        comment_id = commented.json()["comment"]["id"]
        assert commented.json()["commentsCount"] == 1

        outsider = await test_client.post(f"{base}/comments", json={"userId": "dave", "text": "Hi"})
        assert outsider.status_code == 403

        removed = await test_client.request(
            "DELETE", f"{base}/comments/{comment_id}", json={"userId": "alice"}
        )
        assert removed.status_code == 200
        assert removed.json()["commentsCount"] == 0


class TestHealth:

    @pytest.mark.asyncio
    async def test_health(self, test_client):
        response = await test_client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["database"] == "connected"
