"""Grouped in-app notifications.

``create_notification`` is the single entry point for every notification the
platform writes. It skips self-notifications, honours recipient preferences,
throttles high-volume types for recipients drowning in unread items, and folds
repeated events into one row per ``(recipient, group_key)``.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Optional
from uuid import UUID, uuid4

from fantribe import sockets
from fantribe.domain import models, policies, repo as repo_module
from fantribe.domain.constants import MAX_GROUPED_ACTORS, THROTTLED_NOTIFICATION_TYPES
from fantribe.domain.exceptions import NotificationNotFoundError, UnauthorizedError
from fantribe.infra.auth import AuthenticatedUser
from fantribe.obs import metrics as obs_metrics
from fantribe.schemas import dto
from fantribe.settings import settings

logger = logging.getLogger(__name__)

NT = models.NotificationType

_PREFERENCE_FIELDS: dict[NT, str] = {
	NT.LIKE: "likes",
	NT.COMMENT: "comments",
	NT.NEW_POST: "new_posts",
	NT.NEW_SUBSCRIPTION: "subscriptions",
	NT.RENEW_SUBSCRIPTION: "subscriptions",
	NT.SUBSCRIPTION_EXPIRED: "subscriptions",
	NT.SUBSCRIPTION_CONFIRMED: "subscriptions",
	NT.TIP: "tips",
	NT.FOLLOW: "follows",
}


def should_notify(recipient: models.User, type: NT) -> bool:
	field = _PREFERENCE_FIELDS.get(NT(type))
	if field is None:
		return True
	prefs = recipient.notification_preferences
	if prefs is None:
		return True
	return getattr(prefs, field) is not False


def compute_group_key(
	type: NT,
	*,
	post_id: UUID | None = None,
	tip_id: UUID | None = None,
	now: datetime,
) -> str:
	ts = int(now.timestamp() * 1000)
	day = now.strftime("%Y-%m-%d")
	type = NT(type)
	if type == NT.LIKE:
		return f"like:{post_id}"
	if type == NT.COMMENT:
		return f"comment:{post_id}"
	if type == NT.NEW_POST:
		return f"newPost:{post_id}"
	if type == NT.NEW_SUBSCRIPTION:
		return f"newSub:{day}"
	if type == NT.RENEW_SUBSCRIPTION:
		return f"renewSub:{day}"
	if type == NT.FOLLOW:
		return f"follow:{day}"
	if type == NT.TIP:
		return f"tip:{tip_id or ts}"
	if type == NT.SUBSCRIPTION_EXPIRED:
		return f"subExpired:{ts}"
	if type == NT.SUBSCRIPTION_CONFIRMED:
		return f"subConfirmed:{ts}"
	if type == NT.APPLICATION_APPROVED:
		return f"appApproved:{ts}"
	return f"appRejected:{ts}"


class NotificationsService:
	"""Creates, groups and serves notifications."""

	def __init__(self, repository: repo_module.FanTribeRepository | None = None) -> None:
		self.repo = repository or repo_module.FanTribeRepository()

	async def create_notification(
		self,
		*,
		type: NT,
		recipient_id: UUID,
		actor_id: UUID,
		post_id: UUID | None = None,
		comment_id: UUID | None = None,
		tip_id: UUID | None = None,
		tip_amount: float | None = None,
		tip_currency: str | None = None,
	) -> dict[str, Any]:
		type = NT(type)
		if recipient_id == actor_id:
			return self._skipped(type, "self")
		recipient = await self.repo.get_user(recipient_id)
		if recipient is None:
			return self._skipped(type, "recipient_not_found")
		if not should_notify(recipient, type):
			return self._skipped(type, "preference_disabled")
		if type.value in THROTTLED_NOTIFICATION_TYPES:
			unread = await self.repo.count_unread_notifications(recipient_id)
			if unread > settings.notification_throttle_unread:
				return self._skipped(type, "throttled")

		now = policies.utcnow()
		group_key = compute_group_key(type, post_id=post_id, tip_id=tip_id, now=now)
		notification, created = await self.repo.upsert_notification(
			models.Notification(
				id=uuid4(),
				type=type,
				recipient_id=recipient_id,
				group_key=group_key,
				actor_ids=[actor_id],
				actor_count=1,
				post_id=post_id,
				comment_id=comment_id,
				tip_id=tip_id,
				tip_amount=tip_amount,
				tip_currency=tip_currency,
				is_read=False,
				last_activity_at=now,
				created_at=now,
			),
			max_actors=MAX_GROUPED_ACTORS,
		)
		if not created:
			obs_metrics.inc_notification(type.value, "grouped")
			return {"created": True, "reason": "grouped", "notification_id": str(notification.id)}

		obs_metrics.inc_notification(type.value, "created")
		await sockets.emit_notification(
			recipient_id,
			{"id": str(notification.id), "type": type.value, "actor_id": str(actor_id)},
		)
		return {"created": True, "reason": "created", "notification_id": str(notification.id)}

	@staticmethod
	def _skipped(type: NT, reason: str) -> dict[str, Any]:
		obs_metrics.inc_notification(type.value, reason)
		return {"created": False, "reason": reason}

	async def remove_actor_from_notification(
		self,
		*,
		type: NT,
		recipient_id: UUID,
		actor_id: UUID,
		post_id: UUID,
	) -> None:
		group_key = compute_group_key(type, post_id=post_id, now=policies.utcnow())
		existing = await self.repo.find_notification(recipient_id, group_key)
		if existing is None:
			return
		if existing.actor_count <= 1:
			await self.repo.delete_notification(existing.id)
			return
		remaining = [item for item in existing.actor_ids if item != actor_id]
		was_removed = len(remaining) < len(existing.actor_ids)
		await self.repo.update_notification(
			existing.id,
			actor_ids=remaining,
			actor_count=existing.actor_count - 1 if was_removed else existing.actor_count,
		)

	# ------------------------------------------------------------------
	# Reader operations

	async def _to_response(self, item: models.Notification) -> dto.NotificationResponse:
		actors = await self.repo.get_users(item.actor_ids)
		post_preview: Optional[str] = None
		if item.post_id is not None:
			post = await self.repo.get_post(item.post_id)
			if post is not None:
				post_preview = post.content[:80]
		return dto.NotificationResponse(
			**item.model_dump(exclude={"recipient_id", "group_key"}),
			actors=[dto.UserSummary.from_user(actors[actor]) for actor in item.actor_ids if actor in actors],
			post_preview=post_preview,
		)

	async def list_notifications(
		self,
		auth_user: AuthenticatedUser,
		*,
		limit: int = 20,
		cursor: str | None = None,
		type: NT | None = None,
	) -> dto.NotificationListResponse:
		user = await policies.resolve_actor(self.repo, auth_user)
		limit = max(1, min(limit, 50))
		after = repo_module.decode_cursor(cursor) if cursor else None
		items, next_cursor = await self.repo.list_notifications(user.id, limit=limit, after=after, type=type)
		return dto.NotificationListResponse(
			items=[await self._to_response(item) for item in items],
			next_cursor=next_cursor,
		)

	async def get_unread_count(self, auth_user: AuthenticatedUser) -> int:
		user = await policies.resolve_actor(self.repo, auth_user, optional=True)
		if user is None:
			return 0
		return await self.repo.count_unread_notifications(user.id)

	async def _owned(self, auth_user: AuthenticatedUser, notification_id: UUID) -> models.Notification:
		user = await policies.resolve_actor(self.repo, auth_user)
		notification = await self.repo.get_notification(notification_id)
		if notification is None:
			raise NotificationNotFoundError()
		if notification.recipient_id != user.id:
			raise UnauthorizedError()
		return notification

	async def mark_as_read(self, auth_user: AuthenticatedUser, notification_id: UUID) -> None:
		notification = await self._owned(auth_user, notification_id)
		if not notification.is_read:
			await self.repo.update_notification(notification.id, is_read=True)

	async def mark_all_as_read(self, auth_user: AuthenticatedUser) -> int:
		user = await policies.resolve_actor(self.repo, auth_user)
		return await self.repo.mark_all_notifications_read(user.id)

	async def delete_notification(self, auth_user: AuthenticatedUser, notification_id: UUID) -> None:
		notification = await self._owned(auth_user, notification_id)
		await self.repo.delete_notification(notification.id)
