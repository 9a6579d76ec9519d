from uuid import uuid4

import pytest

from fantribe.domain import messaging_policy, models, policies

from fakes import make_subscription, make_user

AT = models.AccountType
ST = models.SubscriptionType


def _conversation(creator: models.User, user: models.User, **fields) -> models.Conversation:
	return models.Conversation(
		id=uuid4(),
		creator_id=creator.id,
		user_id=user.id,
		created_at=policies.utcnow(),
		**fields,
	)


@pytest.mark.asyncio
async def test_creator_to_creator_is_refused(repo):
	first = make_user(repo, account_type=AT.CREATOR)
	second = make_user(repo, account_type=AT.CREATOR)
	result = await messaging_policy.can_message(repo, first, second)
	assert result.can_send is False
	assert result.reason == "creator_to_creator_blocked"


@pytest.mark.asyncio
async def test_superuser_and_creator_can_message_with_media(repo):
	admin = make_user(repo, account_type=AT.SUPERUSER)
	creator = make_user(repo, account_type=AT.CREATOR)
	fan = make_user(repo)
	for sender, recipient in ((admin, creator), (creator, fan)):
		result = await messaging_policy.can_message(repo, sender, recipient)
		assert result.can_send and result.can_send_media


@pytest.mark.asyncio
async def test_fan_needs_both_subscriptions(repo):
	creator = make_user(repo, account_type=AT.CREATOR)
	fan = make_user(repo)

	result = await messaging_policy.can_message(repo, fan, creator)
	assert result.reason == "no_content_subscription"
	assert result.requires_content_subscription is True

	make_subscription(repo, creator=creator, subscriber=fan)
	result = await messaging_policy.can_message(repo, fan, creator)
	assert result.reason == "no_messaging_subscription"

	make_subscription(repo, creator=creator, subscriber=fan, type=ST.MESSAGING_ACCESS)
	result = await messaging_policy.can_message(repo, fan, creator)
	assert result.can_send is True
	assert result.can_send_media is False


@pytest.mark.asyncio
async def test_fan_to_fan_is_not_allowed(repo):
	result = await messaging_policy.can_message(repo, make_user(repo), make_user(repo))
	assert result.reason == "not_allowed"


@pytest.mark.asyncio
async def test_permissions_for_outsider_and_admin(repo):
	creator = make_user(repo, account_type=AT.CREATOR)
	fan = make_user(repo)
	conversation = _conversation(creator, fan)
	outsider = make_user(repo)
	admin = make_user(repo, account_type=AT.SUPERUSER)
	assert (await messaging_policy.conversation_permissions(repo, conversation, outsider)).reason == "not_participant"
	assert (await messaging_policy.conversation_permissions(repo, conversation, admin)).can_send is True


@pytest.mark.asyncio
async def test_admin_block_wins_over_roles(repo):
	creator = make_user(repo, account_type=AT.CREATOR)
	fan = make_user(repo)
	conversation = _conversation(creator, fan, blocked_by_admin=True)
	for viewer in (creator, fan):
		result = await messaging_policy.conversation_permissions(repo, conversation, viewer)
		assert result.can_view is True
		assert result.can_send is False
		assert result.reason == "admin_blocked"


@pytest.mark.asyncio
async def test_locked_conversation_still_open_to_creator(repo):
	creator = make_user(repo, account_type=AT.CREATOR)
	fan = make_user(repo)
	conversation = _conversation(
		creator,
		fan,
		is_locked=True,
		locked_reason=models.LockReason.SUBSCRIPTION_EXPIRED,
	)
	creator_view = await messaging_policy.conversation_permissions(repo, conversation, creator)
	assert creator_view.can_send is True
	assert creator_view.is_locked is True
	fan_view = await messaging_policy.conversation_permissions(repo, conversation, fan)
	assert fan_view.can_send is False
	assert fan_view.requires_subscription is True


@pytest.mark.asyncio
async def test_admin_started_conversation_needs_no_subscription(repo):
	creator = make_user(repo, account_type=AT.CREATOR)
	fan = make_user(repo)
	conversation = _conversation(creator, fan, requires_subscription=False)
	result = await messaging_policy.conversation_permissions(repo, conversation, fan)
	assert result.can_send is True


def test_only_creators_and_admins_send_media(repo):
	assert messaging_policy.can_send_media(make_user(repo, account_type=AT.CREATOR))
	assert messaging_policy.can_send_media(make_user(repo, account_type=AT.SUPERUSER))
	assert not messaging_policy.can_send_media(make_user(repo))
