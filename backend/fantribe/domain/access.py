"""Subscription and block lookups shared by feed, messaging and payments."""

from __future__ import annotations

from typing import Iterable, Optional, Sequence
from uuid import UUID

from fantribe.domain import models, policies

ST = models.SubscriptionType
SS = models.SubscriptionStatus


async def has_active_subscription(
	repo,
	subscriber_id: UUID,
	creator_id: UUID,
	type: ST = ST.CONTENT_ACCESS,
) -> bool:
	subscription = await repo.find_subscription(creator_id, subscriber_id, type)
	return subscription is not None and subscription.is_active(policies.utcnow())


async def get_active_subscribed_creator_ids(
	repo,
	subscriber_id: UUID,
	type: ST = ST.CONTENT_ACCESS,
) -> set[UUID]:
	now = policies.utcnow()
	rows = await repo.list_subscriptions(subscriber_id=subscriber_id, type=type, statuses=[SS.ACTIVE])
	return {row.creator_id for row in rows if row.is_active(now)}


async def get_creator_subscribers(
	repo,
	creator_id: UUID,
	*,
	statuses: Sequence[SS] = (SS.ACTIVE,),
	type: ST = ST.CONTENT_ACCESS,
) -> list[models.Subscription]:
	rows = await repo.list_subscriptions(creator_id=creator_id, type=type, statuses=list(statuses))
	return [row for row in rows if row.subscriber_id != creator_id]


async def get_blocked_user_ids(repo, user_id: UUID) -> set[UUID]:
	"""Users hidden from ``user_id``: blocked by them or blocking them."""
	blocked = await repo.list_blocked_ids(user_id)
	blockers = await repo.list_blocker_ids(user_id)
	return set(blocked) | set(blockers)


async def is_blocked(repo, first_id: UUID, second_id: UUID) -> bool:
	if await repo.is_blocking(first_id, second_id):
		return True
	return await repo.is_blocking(second_id, first_id)


async def filter_blocked_users(repo, viewer_id: Optional[UUID], user_ids: Iterable[UUID]) -> list[UUID]:
	ids = list(user_ids)
	if viewer_id is None:
		return ids
	hidden = await get_blocked_user_ids(repo, viewer_id)
	return [item for item in ids if item not in hidden]


async def can_view_subscribers_only_content(
	repo,
	viewer: Optional[models.User],
	author_id: UUID,
) -> bool:
	if viewer is None:
		return False
	if viewer.id == author_id or viewer.is_superuser:
		return True
	return await has_active_subscription(repo, viewer.id, author_id, ST.CONTENT_ACCESS)


def can_view_post(
	post: models.Post,
	viewer: Optional[models.User],
	*,
	subscribed_creator_ids: set[UUID],
) -> bool:
	"""Feed visibility for one post given the viewer's active subscriptions."""
	if viewer is not None and viewer.is_superuser:
		return True
	is_owner = viewer is not None and viewer.id == post.author_id
	is_subscriber = post.author_id in subscribed_creator_ids
	if post.is_adult:
		if is_owner:
			return True
		if post.visibility == models.PostVisibility.SUBSCRIBERS_ONLY:
			return is_subscriber
		return viewer is not None and viewer.allow_adult_content
	if post.visibility == models.PostVisibility.PUBLIC:
		return True
	return is_owner or is_subscriber


def is_media_locked(
	post: models.Post,
	viewer: Optional[models.User],
	*,
	subscribed_creator_ids: set[UUID],
) -> bool:
	if post.visibility != models.PostVisibility.SUBSCRIBERS_ONLY:
		return False
	if viewer is not None and (viewer.is_superuser or viewer.id == post.author_id):
		return False
	return post.author_id not in subscribed_creator_ids


def filter_post_medias_for_viewer(
	post: models.Post,
	viewer: Optional[models.User],
	*,
	subscribed_creator_ids: set[UUID],
) -> tuple[list[models.PostMedia], bool, int]:
	"""Returns (visible medias, is_media_locked, media_count)."""
	locked = is_media_locked(post, viewer, subscribed_creator_ids=subscribed_creator_ids)
	return ([] if locked else list(post.medias)), locked, len(post.medias)
