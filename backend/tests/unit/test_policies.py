from datetime import timedelta
from uuid import uuid4

import pytest

from fantribe.domain import access, models, policies
from fantribe.domain.exceptions import (
	BannedError,
	ForbiddenError,
	InvalidInputError,
	NotAuthenticatedError,
	RateLimitedError,
	UserNotFoundError,
)
from fantribe.infra.auth import AuthenticatedUser

from fakes import auth, make_post, make_subscription, make_user


def _ban(user: models.User, *, type: models.BanType, expires_in: timedelta | None) -> models.User:
	now = policies.utcnow()
	return user.model_copy(
		update={
			"is_banned": True,
			"ban_details": models.BanDetails(
				type=type,
				reason="spam",
				banned_at=now,
				banned_by=uuid4(),
				expires_at=now + expires_in if expires_in is not None else None,
			),
		}
	)


def test_parse_user_id_rejects_garbage():
	assert policies.parse_user_id(None) is None
	assert policies.parse_user_id(AuthenticatedUser(id="not-a-uuid")) is None
	user_id = uuid4()
	assert policies.parse_user_id(AuthenticatedUser(id=str(user_id))) == user_id


def test_temporary_ban_stops_blocking_after_expiry(repo):
	user = make_user(repo)
	assert policies.is_ban_active(_ban(user, type=models.BanType.TEMPORARY, expires_in=timedelta(hours=1)))
	assert not policies.is_ban_active(_ban(user, type=models.BanType.TEMPORARY, expires_in=timedelta(hours=-1)))
	assert policies.is_ban_active(_ban(user, type=models.BanType.PERMANENT, expires_in=None))


def test_ban_message_mentions_reason(repo):
	user = _ban(make_user(repo), type=models.BanType.PERMANENT, expires_in=None)
	assert "permanently" in policies.ban_message(user)
	assert "spam" in policies.ban_message(user)


@pytest.mark.asyncio
async def test_resolve_actor_checks(repo):
	with pytest.raises(NotAuthenticatedError):
		await policies.resolve_actor(repo, None)
	assert await policies.resolve_actor(repo, None, optional=True) is None

	with pytest.raises(UserNotFoundError):
		await policies.resolve_actor(repo, AuthenticatedUser(id=str(uuid4())))

	banned = _ban(make_user(repo), type=models.BanType.PERMANENT, expires_in=None)
	repo.users[banned.id] = banned
	with pytest.raises(BannedError):
		await policies.resolve_actor(repo, auth(banned))

	incomplete = make_user(repo, username="")
	with pytest.raises(InvalidInputError):
		await policies.resolve_actor(repo, auth(incomplete), require_complete_profile=True)

	fan = make_user(repo)
	with pytest.raises(ForbiddenError):
		await policies.resolve_actor(repo, auth(fan), allowed_account_types=policies.CREATOR_TYPES)
	assert (await policies.resolve_actor(repo, auth(fan))).id == fan.id


@pytest.mark.asyncio
async def test_enforce_rate_limit_burst_window():
	user_id = uuid4()
	for _ in range(5):
		await policies.enforce_rate_limit("send_message", user_id)
	with pytest.raises(RateLimitedError):
		await policies.enforce_rate_limit("send_message", user_id)


@pytest.mark.asyncio
async def test_unknown_rate_limit_kind_is_unlimited():
	for _ in range(50):
		await policies.enforce_rate_limit("no_such_kind", uuid4())


def test_can_view_post_matrix(repo):
	creator = make_user(repo, account_type=models.AccountType.CREATOR)
	fan = make_user(repo)
	adult_fan = make_user(repo, allow_adult_content=True)
	admin = make_user(repo, account_type=models.AccountType.SUPERUSER)

	public = make_post(repo, creator)
	private = make_post(repo, creator, visibility=models.PostVisibility.SUBSCRIBERS_ONLY)
	adult = make_post(repo, creator, is_adult=True)
	adult_private = make_post(repo, creator, is_adult=True, visibility=models.PostVisibility.SUBSCRIBERS_ONLY)

	none: set = set()
	subscribed = {creator.id}
	assert access.can_view_post(public, None, subscribed_creator_ids=none)
	assert not access.can_view_post(private, fan, subscribed_creator_ids=none)
	assert access.can_view_post(private, fan, subscribed_creator_ids=subscribed)
	assert not access.can_view_post(adult, fan, subscribed_creator_ids=none)
	assert access.can_view_post(adult, adult_fan, subscribed_creator_ids=none)
	assert not access.can_view_post(adult_private, adult_fan, subscribed_creator_ids=none)
	assert access.can_view_post(adult_private, fan, subscribed_creator_ids=subscribed)
	assert access.can_view_post(adult_private, creator, subscribed_creator_ids=none)
	assert access.can_view_post(adult_private, admin, subscribed_creator_ids=none)


def test_filter_post_medias_hides_locked_media(repo):
	creator = make_user(repo, account_type=models.AccountType.CREATOR)
	fan = make_user(repo)
	post = make_post(
		repo,
		creator,
		visibility=models.PostVisibility.SUBSCRIBERS_ONLY,
		medias=[models.PostMedia(type="image", url="https://x/1.jpg", media_id="1", mime_type="image/jpeg")],
	)
	medias, locked, count = access.filter_post_medias_for_viewer(post, fan, subscribed_creator_ids=set())
	assert (medias, locked, count) == ([], True, 1)
	medias, locked, count = access.filter_post_medias_for_viewer(post, creator, subscribed_creator_ids=set())
	assert locked is False
	assert len(medias) == 1


@pytest.mark.asyncio
async def test_expired_subscription_is_not_active(repo):
	creator = make_user(repo, account_type=models.AccountType.CREATOR)
	fan = make_user(repo)
	make_subscription(repo, creator=creator, subscriber=fan, days_left=-1)
	assert not await access.has_active_subscription(repo, fan.id, creator.id)
	assert await access.get_active_subscribed_creator_ids(repo, fan.id) == set()


@pytest.mark.asyncio
async def test_blocked_ids_cover_both_directions(repo):
	alice = make_user(repo)
	bob = make_user(repo)
	carol = make_user(repo)
	await repo.insert_block(alice.id, bob.id)
	await repo.insert_block(carol.id, alice.id)
	assert await access.get_blocked_user_ids(repo, alice.id) == {bob.id, carol.id}
	assert await access.is_blocked(repo, bob.id, alice.id)
	assert await access.filter_blocked_users(repo, alice.id, [bob.id, carol.id]) == []
