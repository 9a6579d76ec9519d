from uuid import uuid4

import pytest

from fantribe.domain import models
from fantribe.domain.exceptions import ForbiddenError, InvalidInputError, UserNotFoundError
from fantribe.domain.social_service import SocialService

from fakes import auth, make_user


@pytest.fixture
def service(repo) -> SocialService:
	return SocialService(repo)


@pytest.fixture
def creator(repo) -> models.User:
	return make_user(repo, account_type=models.AccountType.CREATOR)


@pytest.mark.asyncio
async def test_follow_is_idempotent_and_notifies(service, repo, creator):
	fan = make_user(repo)
	assert await service.follow_user(auth(fan), creator.id) == {"success": True, "already_following": False}
	assert await service.follow_user(auth(fan), creator.id) == {"success": True, "already_following": True}
	assert repo.stats[creator.id].followers_count == 1
	assert await service.is_following(auth(fan), creator.id) is True

	notifications = [item for item in repo.notifications.values() if item.recipient_id == creator.id]
	assert len(notifications) == 1
	assert notifications[0].type == models.NotificationType.FOLLOW

	assert await service.get_follow_counts(creator.id) == {"followers": 1, "following": 0}
	assert [item.id for item in await service.get_followers(creator.id)] == [fan.id]

	assert await service.unfollow_user(auth(fan), creator.id) == {"success": True, "was_following": True}
	assert repo.stats[creator.id].followers_count == 0
	assert await service.unfollow_user(auth(fan), creator.id) == {"success": True, "was_following": False}


@pytest.mark.asyncio
async def test_follow_guards(service, repo, creator):
	fan = make_user(repo)
	other_fan = make_user(repo)
	with pytest.raises(InvalidInputError):
		await service.follow_user(auth(creator), creator.id)
	with pytest.raises(UserNotFoundError):
		await service.follow_user(auth(fan), uuid4())
	with pytest.raises(ForbiddenError):
		await service.follow_user(auth(fan), other_fan.id)

	await repo.insert_block(creator.id, fan.id)
	with pytest.raises(ForbiddenError):
		await service.follow_user(auth(fan), creator.id)


@pytest.mark.asyncio
async def test_block_removes_follows_both_ways(service, repo, creator):
	other_creator = make_user(repo, account_type=models.AccountType.CREATOR)
	await service.follow_user(auth(creator), other_creator.id)
	await service.follow_user(auth(other_creator), creator.id)

	assert await service.block_user(auth(creator), other_creator.id) == {"success": True, "already_blocked": False}
	assert await repo.is_following(creator.id, other_creator.id) is False
	assert await repo.is_following(other_creator.id, creator.id) is False
	assert repo.stats[creator.id].followers_count == 0
	assert repo.stats[other_creator.id].followers_count == 0

	assert await service.block_user(auth(creator), other_creator.id) == {"success": True, "already_blocked": True}
	assert [item.id for item in await service.get_blocked_users(auth(creator))] == [other_creator.id]
	assert await service.blocking_status(auth(other_creator), creator.id) == {
		"i_blocked": False,
		"blocked_me": True,
		"any": True,
	}

	assert await service.unblock_user(auth(creator), other_creator.id) == {"success": True, "was_blocked": True}
	assert await service.blocking_status(None, creator.id) == {"i_blocked": False, "blocked_me": False, "any": False}
