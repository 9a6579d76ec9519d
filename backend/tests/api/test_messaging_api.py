import pytest

from fantribe.domain import models

from fakes import headers_for, make_subscription, make_user

ST = models.SubscriptionType


@pytest.mark.asyncio
async def test_conversation_round_trip(api_client, repo):
	creator = make_user(repo, name="Creator", account_type=models.AccountType.CREATOR)
	fan = make_user(repo, name="Fan")
	make_subscription(repo, creator=creator, subscriber=fan)
	make_subscription(repo, creator=creator, subscriber=fan, type=ST.MESSAGING_ACCESS)

	started = await api_client.post("/conversations", json={"creator_id": str(creator.id)}, headers=headers_for(fan))
	assert started.status_code == 201
	conversation_id = started.json()["conversation_id"]

	sent = await api_client.post(
		f"/conversations/{conversation_id}/messages",
		json={"content": "hello there"},
		headers=headers_for(fan),
	)
	assert sent.status_code == 201
	assert sent.json()["content"] == "hello there"

	unread = await api_client.get("/conversations/unread-count", headers=headers_for(creator))
	assert unread.json() == {"count": 1}

	listing = await api_client.get(f"/conversations/{conversation_id}/messages", headers=headers_for(creator))
	contents = [item["content"] for item in listing.json()["items"] if item["message_type"] == "text"]
	assert contents == ["hello there"]

	await api_client.post(f"/conversations/{conversation_id}/read", headers=headers_for(creator))
	unread = await api_client.get("/conversations/unread-count", headers=headers_for(creator))
	assert unread.json() == {"count": 0}


@pytest.mark.asyncio
async def test_fans_without_subscription_cannot_start(api_client, repo):
	creator = make_user(repo, account_type=models.AccountType.CREATOR)
	fan = make_user(repo)
	response = await api_client.post("/conversations", json={"creator_id": str(creator.id)}, headers=headers_for(fan))
	assert response.status_code == 403
	assert response.json()["detail"]["code"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_admin_routes_reject_regular_users(api_client, repo):
	user = make_user(repo)
	for path in ("/admin/counts", "/admin/stats", "/admin/reports", "/admin/applications"):
		response = await api_client.get(path, headers=headers_for(user))
		assert response.status_code == 403, path


@pytest.mark.asyncio
async def test_admin_counts(api_client, repo):
	admin = make_user(repo, account_type=models.AccountType.SUPERUSER)
	response = await api_client.get("/admin/counts", headers=headers_for(admin))
	assert response.json() == {"pending_applications": 0, "pending_reports": 0}


@pytest.mark.asyncio
async def test_notification_queue_stats(api_client, repo):
	admin = make_user(repo, account_type=models.AccountType.SUPERUSER)
	response = await api_client.get("/admin/notification-queue", headers=headers_for(admin))
	assert response.status_code == 200
	body = response.json()
	assert body["pending"] == 0
	assert body["pending_recipients"] == 0
