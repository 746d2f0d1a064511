"""Family API tests — invites, previews, joining, overview."""

from datetime import timedelta

import pytest

from dianji.auth.invite import utcnow

from conftest import bearer, join, register


async def _child(client):
    data = (await register(client)).json()
    return data, bearer(data["accessToken"])


# ═══════════════════════════════════════════════════════════
# Invite link
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_child_gets_invite_link(client):
    data, headers = await _child(client)
    r = await client.get("/api/family/invite", headers=headers)
    assert r.status_code == 200
    invite = r.json()
    assert invite["invite_code"] == data["family"]["invite_code"]
    assert invite["invite_url"] == f"https://dianji.example/join/{invite['invite_code']}"
    assert invite["expires_at"]


@pytest.mark.asyncio
async def test_invite_regenerated_after_expiry(client, store):
    data, headers = await _child(client)
    family = store.families[data["family"]["id"]]
    family.invite_expires_at = utcnow() - timedelta(minutes=1)

    r = await client.get("/api/family/invite", headers=headers)
    assert r.status_code == 200
    assert r.json()["invite_code"] != data["family"]["invite_code"]
    assert family.invite_code == r.json()["invite_code"]


@pytest.mark.asyncio
async def test_parent_cannot_fetch_invite(client):
    data, _ = await _child(client)
    parent = (await join(client, data["family"]["invite_code"])).json()
    r = await client.get("/api/family/invite", headers=bearer(parent["accessToken"]))
    assert r.status_code == 403
    assert r.json()["code"] == "forbidden"


@pytest.mark.asyncio
async def test_invite_requires_login(client):
    r = await client.get("/api/family/invite")
    assert r.status_code == 401


# ═══════════════════════════════════════════════════════════
# Invite preview
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_preview_valid_code(client):
    data, _ = await _child(client)
    code = data["family"]["invite_code"]
    r = await client.get(f"/api/family/invite/{code.lower()}")
    assert r.status_code == 200
    assert r.json() == {"valid": True, "family_name": "F"}


@pytest.mark.asyncio
async def test_preview_unknown_code(client):
    r = await client.get("/api/family/invite/ZZZZZZZZ")
    assert r.status_code == 400
    body = r.json()
    assert body["valid"] is False
    assert body["code"] == "invalid_invite_code"


@pytest.mark.asyncio
async def test_preview_expired_code(client, store):
    data, _ = await _child(client)
    store.families[data["family"]["id"]].invite_expires_at = utcnow() - timedelta(seconds=1)
    r = await client.get(f"/api/family/invite/{data['family']['invite_code']}")
    assert r.status_code == 400
    assert r.json()["valid"] is False
    assert r.json()["code"] == "invite_expired"


@pytest.mark.asyncio
async def test_preview_rate_limited(client):
    for _ in range(10):
        r = await client.get("/api/family/invite/ZZZZZZZZ")
        assert r.status_code == 400
    r = await client.get("/api/family/invite/ZZZZZZZZ")
    assert r.status_code == 429
    assert int(r.headers["Retry-After"]) >= 1


# ═══════════════════════════════════════════════════════════
# Join
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_join_with_invite_code(client):
    data, _ = await _child(client)
    r = await join(client, data["family"]["invite_code"].lower())
    assert r.status_code == 200
    parent = r.json()
    assert parent["user"]["role"] == "parent"
    assert parent["user"]["phone"] == "13800000000"
    assert parent["user"]["email"] is None
    assert parent["user"]["timezone"] == "Asia/Shanghai"
    assert parent["user"]["family_id"] == data["family"]["id"]
    assert parent["family"]["id"] == data["family"]["id"]
    assert parent["accessToken"]

    r = await client.post(
        "/api/auth/login", json={"account": "13800000000", "password": "parent123"}
    )
    assert r.status_code == 200


@pytest.mark.asyncio
async def test_join_unknown_code(client):
    r = await join(client, "ZZZZZZZZ")
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_invite_code"


@pytest.mark.asyncio
async def test_join_expired_code(client, store):
    data, _ = await _child(client)
    store.families[data["family"]["id"]].invite_expires_at = utcnow() - timedelta(seconds=1)
    r = await join(client, data["family"]["invite_code"])
    assert r.status_code == 400
    assert r.json()["code"] == "invite_expired"
    assert len(store.accounts) == 1


@pytest.mark.asyncio
async def test_join_duplicate_phone(client):
    data, _ = await _child(client)
    code = data["family"]["invite_code"]
    assert (await join(client, code)).status_code == 200
    r = await join(client, code, name="Dad")
    assert r.status_code == 400
    assert r.json()["code"] == "duplicate_handle"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"invite_code": "ABC"}, "Invite code"),
        ({"phone": "12345"}, "phone"),
        ({"phone": "1" * 33}, "phone"),
        ({"name": "m" * 101}, "at most 100"),
        ({"password": "short1"}, "at least 8"),
        ({"name": ""}, "name"),
    ],
)
async def test_join_validation(client, overrides, message):
    body = {"invite_code": "ABCDEFGH", "phone": "13800000000", "password": "parent123", "name": "Mom"}
    body.update(overrides)
    r = await client.post("/api/family/join", json=body)
    assert r.status_code == 400
    assert message in r.json()["error"]


# ═══════════════════════════════════════════════════════════
# Overview
# ═══════════════════════════════════════════════════════════


@pytest.mark.asyncio
async def test_family_overview_lists_members(client):
    data, headers = await _child(client)
    await join(client, data["family"]["invite_code"])

    r = await client.get("/api/family", headers=headers)
    assert r.status_code == 200
    overview = r.json()
    assert overview["family"]["id"] == data["family"]["id"]
    assert [m["role"] for m in overview["members"]] == ["child", "parent"]
    assert all("phone" not in m and "email" not in m for m in overview["members"])


@pytest.mark.asyncio
async def test_family_overview_requires_login(client):
    r = await client.get("/api/family")
    assert r.status_code == 401
