import httpx
import pytest

from refbot.web_app import create_app


@pytest.fixture
async def client(storage):
    app = create_app(storage)
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "message": "Bot is running"}


async def test_bot_info(client):
    response = await client.get("/api/bot/info")
    assert response.json()["status"] == "active"


async def test_users_empty(client):
    assert (await client.get("/api/users")).json() == []
    assert (await client.get("/api/users/count")).json() == {"count": 0}


async def test_users_use_camel_case(client, make_user):
    await make_user(telegram_id="1001", username="alice", referral_code="ABC123", balance=300)
    response = await client.get("/api/users")
    assert response.status_code == 200
    [user] = response.json()
    assert user["telegramId"] == "1001"
    assert user["referralCode"] == "ABC123"
    assert user["totalEarnings"] == 300
    assert user["isVerified"] is True
    assert "joinedAt" in user
    assert (await client.get("/api/users/count")).json() == {"count": 1}


@pytest.mark.parametrize("method, url, store_method, detail", [
    ("GET", "/api/users", "get_all_users", "Failed to get users"),
    ("GET", "/api/users/count", "get_all_users", "Failed to count users"),
    ("GET", "/api/users/1/withdrawals", "get_user", "Failed to get withdrawals"),
    ("PATCH", "/api/withdrawals/1", "update_withdrawal_status", "Failed to update withdrawal"),
])
async def test_store_failure_returns_500(client, storage, monkeypatch, method, url, store_method, detail):
    async def broken(*args, **kwargs):
        raise RuntimeError("store is down")

    monkeypatch.setattr(storage, store_method, broken)
    response = await client.request(method, url, json={"status": "completed"} if method == "PATCH" else None)
    assert response.status_code == 500
    assert response.json() == {"detail": detail}


async def test_user_withdrawals(client, storage, make_user):
    user = await make_user(balance=2000)
    await storage.create_withdrawal(user.id, 1000)

    response = await client.get(f"/api/users/{user.id}/withdrawals")
    assert response.status_code == 200
    [withdrawal] = response.json()
    assert withdrawal["amount"] == 1000
    assert withdrawal["status"] == "pending"
    assert withdrawal["processedAt"] is None

    assert (await client.get("/api/users/99/withdrawals")).status_code == 404


async def test_update_withdrawal_status(client, storage, make_user):
    user = await make_user(balance=2000)
    withdrawal = await storage.create_withdrawal(user.id, 1000)

    response = await client.patch(f"/api/withdrawals/{withdrawal.id}", json={"status": "completed"})
    assert response.status_code == 200
    assert response.json()["status"] == "completed"
    assert response.json()["processedAt"] is not None

    assert (await client.patch("/api/withdrawals/99", json={"status": "completed"})).status_code == 404
    assert (await client.patch(f"/api/withdrawals/{withdrawal.id}", json={"status": "lost"})).status_code == 422


async def test_demo_user(client):
    body = (await client.get("/api/demo/user")).json()
    assert body["username"] == "Ezihe001"
    assert body["referralCode"] == "Ani68xfC"
    assert body["rank"] == 1


async def test_demo_messages(client):
    messages = (await client.get("/api/demo/messages")).json()
    assert len(messages) == 15
    assert [m["id"] for m in messages] == list(range(1, 16))
    assert messages[2]["content"]["type"] == "buttons"
    assert "message" not in messages[2]["content"]
    assert messages[5] == {"id": 6, "type": "user", "content": "💰 Balance", "timestamp": "11:27 PM"}
    assert messages[-1]["content"]["type"] == "referral"
    assert "start=Ani68xfC" in messages[-1]["content"]["message"]
