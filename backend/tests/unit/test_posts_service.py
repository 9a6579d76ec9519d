from datetime import timedelta

import pytest

from fantribe.domain import models, policies
from fantribe.domain.exceptions import ForbiddenError, InvalidInputError, PostNotFoundError, UnauthorizedError
from fantribe.domain.posts_service import PostsService
from fantribe.schemas import dto

from fakes import auth, image, make_post, make_subscription, make_user

PV = models.PostVisibility


@pytest.fixture
def service(repo) -> PostsService:
	return PostsService(repo)


@pytest.fixture
def creator(repo) -> models.User:
	return make_user(repo, name="Creator", account_type=models.AccountType.CREATOR)


@pytest.mark.asyncio
async def test_create_post_notifies_subscribers_and_clears_drafts(service, repo, creator):
	active = make_user(repo)
	lapsed = make_user(repo)
	blocked = make_user(repo)
	make_subscription(repo, creator=creator, subscriber=active)
	make_subscription(repo, creator=creator, subscriber=lapsed, status=models.SubscriptionStatus.EXPIRED, days_left=-2)
	make_subscription(repo, creator=creator, subscriber=blocked)
	await repo.insert_block(creator.id, blocked.id)

	media = image("https://cdn.example.com/draft.jpg")
	await service.create_draft_asset(auth(creator), dto.DraftAssetRequest(media_url=media.url, asset_type="image"))
	assert len(repo.drafts) == 1

	result = await service.create_post(auth(creator), dto.PostCreateRequest(content="  hello fans  ", medias=[media]))
	assert result["notifications_sent"] == 2
	assert result["deferred"] is False
	assert repo.drafts == {}
	assert repo.stats[creator.id].posts_count == 1

	post = next(iter(repo.posts.values()))
	assert post.content == "hello fans"
	recipients = {item.recipient_id for item in repo.notifications.values()}
	assert recipients == {active.id, lapsed.id}


@pytest.mark.asyncio
async def test_create_post_guards(service, repo, creator):
	fan = make_user(repo)
	with pytest.raises(ForbiddenError):
		await service.create_post(auth(fan), dto.PostCreateRequest(content="hi"))
	with pytest.raises(InvalidInputError):
		await service.create_post(auth(creator), dto.PostCreateRequest(content="   "))
	no_username = make_user(repo, username="", account_type=models.AccountType.CREATOR)
	with pytest.raises(InvalidInputError):
		await service.create_post(auth(no_username), dto.PostCreateRequest(content="hi"))


@pytest.mark.asyncio
async def test_superuser_may_only_flag_adult(service, repo, creator):
	admin = make_user(repo, account_type=models.AccountType.SUPERUSER)
	post = make_post(repo, creator)
	updated = await service.update_post(auth(admin), post.id, dto.PostUpdateRequest(is_adult=True))
	assert updated.is_adult is True
	with pytest.raises(UnauthorizedError):
		await service.update_post(auth(admin), post.id, dto.PostUpdateRequest(content="edited"))
	with pytest.raises(UnauthorizedError):
		await service.update_post(auth(make_user(repo)), post.id, dto.PostUpdateRequest(is_adult=False))

	edited = await service.update_post(auth(creator), post.id, dto.PostUpdateRequest(content=" new "))
	assert edited.content == "new"


@pytest.mark.asyncio
async def test_delete_post_cascades(service, repo, creator):
	fan = make_user(repo)
	post = make_post(repo, creator)
	await repo.insert_like(fan.id, post.id)
	await repo.insert_bookmark(fan.id, post.id)
	await repo.apply_user_stats_delta(creator.id, posts=1)
	with pytest.raises(UnauthorizedError):
		await service.delete_post(auth(fan), post.id)

	counts = await service.delete_post(auth(creator), post.id)
	assert counts["likes"] == 1
	assert counts["bookmarks"] == 1
	assert repo.posts == {}
	assert repo.stats[creator.id].posts_count == 0
	with pytest.raises(PostNotFoundError):
		await service.get_post(auth(creator), post.id)


@pytest.mark.asyncio
async def test_locked_media_hidden_from_non_subscribers(service, repo, creator):
	fan = make_user(repo)
	post = make_post(repo, creator, visibility=PV.SUBSCRIBERS_ONLY, medias=[image()])

	locked = await service.get_post(auth(fan), post.id)
	assert locked.is_media_locked is True
	assert locked.medias == []
	assert locked.media_count == 1
	assert locked.author.name == "Creator"

	make_subscription(repo, creator=creator, subscriber=fan)
	unlocked = await service.get_post(auth(fan), post.id)
	assert unlocked.is_media_locked is False
	assert len(unlocked.medias) == 1


@pytest.mark.asyncio
async def test_blocked_author_post_is_hidden(service, repo, creator):
	fan = make_user(repo)
	post = make_post(repo, creator)
	await repo.insert_block(fan.id, creator.id)
	with pytest.raises(PostNotFoundError):
		await service.get_post(auth(fan), post.id)


@pytest.mark.asyncio
async def test_home_feed_filters_and_pages(service, repo, creator):
	fan = make_user(repo)
	start = policies.utcnow() - timedelta(hours=1)
	public = [make_post(repo, creator, content=f"p{idx}", created_at=start + timedelta(minutes=idx)) for idx in range(3)]
	make_post(repo, creator, visibility=PV.SUBSCRIBERS_ONLY, created_at=start + timedelta(minutes=10))
	make_post(repo, creator, is_adult=True, created_at=start + timedelta(minutes=11))

	first = await service.get_home_feed(auth(fan), limit=2)
	assert [item.content for item in first.items] == ["p2", "p1"]
	assert first.next_cursor is not None
	second = await service.get_home_feed(auth(fan), limit=2, cursor=first.next_cursor)
	assert [item.id for item in second.items] == [public[0].id]
	assert second.next_cursor is None

	anonymous = await service.get_home_feed(None, limit=10)
	assert len(anonymous.items) == 3


@pytest.mark.asyncio
async def test_profile_posts_put_pinned_first(service, repo, creator):
	start = policies.utcnow() - timedelta(hours=1)
	older = make_post(repo, creator, content="older", created_at=start)
	make_post(repo, creator, content="newer", created_at=start + timedelta(minutes=5))
	repo.users[creator.id] = creator.model_copy(update={"pinned_post_ids": [older.id]})

	page = await service.get_user_posts_with_pinned(None, creator.id)
	assert [item.content for item in page.items] == ["older", "newer"]
	assert page.items[0].is_pinned is True
	assert page.items[1].is_pinned is False


@pytest.mark.asyncio
async def test_gallery_only_lists_media_posts(service, repo, creator):
	make_post(repo, creator, content="text only")
	with_media = make_post(repo, creator, medias=[image()])
	gallery = await service.get_user_gallery(None, creator.id)
	assert [item.id for item in gallery.items] == [with_media.id]


@pytest.mark.asyncio
async def test_draft_delete_reports_missing(service, repo, creator):
	assert await service.delete_draft_asset(auth(creator), "https://cdn.example.com/none.jpg") == {
		"success": False,
		"error": "draft_not_found",
	}
