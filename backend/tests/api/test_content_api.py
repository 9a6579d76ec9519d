import pytest

from fantribe.domain import models

from fakes import headers_for, make_subscription, make_user

MEDIA = {"type": "image", "url": "https://cdn.example.com/a.jpg", "media_id": "a.jpg", "mime_type": "image/jpeg"}


@pytest.fixture
def creator(repo) -> models.User:
	return make_user(repo, name="Creator", account_type=models.AccountType.CREATOR)


@pytest.fixture
def fan(repo) -> models.User:
	return make_user(repo, name="Fan")


@pytest.mark.asyncio
async def test_post_like_and_comment_flow(api_client, repo, creator, fan):
	created = await api_client.post("/posts", json={"content": "first drop"}, headers=headers_for(creator))
	assert created.status_code == 201
	post_id = created.json()["post_id"]

	feed = await api_client.get("/feed", headers=headers_for(fan))
	assert [item["id"] for item in feed.json()["items"]] == [post_id]

	liked = await api_client.post(f"/posts/{post_id}/like", headers=headers_for(fan))
	assert liked.json()["liked"] is True
	comment = await api_client.post(
		f"/posts/{post_id}/comments",
		json={"content": "love it"},
		headers=headers_for(fan),
	)
	assert comment.status_code == 201
	assert (await api_client.get(f"/posts/{post_id}/comments/count")).json() == {"count": 1}

	notifications = await api_client.get("/notifications", headers=headers_for(creator))
	types = {item["type"] for item in notifications.json()["items"]}
	assert {"like", "comment"} <= types


@pytest.mark.asyncio
async def test_fans_cannot_publish(api_client, fan):
	response = await api_client.post("/posts", json={"content": "hi"}, headers=headers_for(fan))
	assert response.status_code == 403


@pytest.mark.asyncio
async def test_subscriber_only_media_is_locked(api_client, repo, creator, fan):
	created = await api_client.post(
		"/posts",
		json={"content": "", "medias": [MEDIA], "visibility": "subscribers_only"},
		headers=headers_for(creator),
	)
	post_id = created.json()["post_id"]

	locked = (await api_client.get(f"/posts/{post_id}", headers=headers_for(fan))).json()
	assert locked["is_media_locked"] is True
	assert locked["medias"] == []

	make_subscription(repo, creator=creator, subscriber=fan)
	unlocked = (await api_client.get(f"/posts/{post_id}", headers=headers_for(fan))).json()
	assert unlocked["medias"][0]["url"] == MEDIA["url"]


@pytest.mark.asyncio
async def test_follow_and_block(api_client, creator, fan):
	followed = await api_client.post(f"/users/{creator.id}/follow", headers=headers_for(fan))
	assert followed.status_code == 200
	counts = (await api_client.get(f"/users/{creator.id}/follow-counts")).json()
	assert counts["followers"] == 1

	await api_client.post(f"/users/{fan.id}/block", headers=headers_for(creator))
	counts = (await api_client.get(f"/users/{creator.id}/follow-counts")).json()
	assert counts["followers"] == 0


@pytest.mark.asyncio
async def test_pinned_posts_are_listed(api_client, creator):
	created = await api_client.post("/posts", json={"content": "pin me"}, headers=headers_for(creator))
	post_id = created.json()["post_id"]
	pinned = await api_client.post("/users/me/pinned-posts", json={"post_id": post_id}, headers=headers_for(creator))
	assert pinned.json()["pinned"] is True

	listed = await api_client.get(f"/users/{creator.id}/pinned-posts")
	assert [item["id"] for item in listed.json()] == [post_id]
