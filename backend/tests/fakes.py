"""In-memory stand-in for FanTribeRepository used by unit and API tests."""

from __future__ import annotations

import itertools
from datetime import datetime, timedelta, timezone
from typing import Any, Optional, Sequence, Type, TypeVar
from uuid import UUID, uuid4

from pydantic import BaseModel

from fantribe.domain import models
from fantribe.domain.repo import CursorPair, PaymentPlan, PaymentRecord, encode_cursor
from fantribe.infra.auth import AuthenticatedUser

ModelT = TypeVar("ModelT", bound=BaseModel)

_clock = itertools.count()


def _now() -> datetime:
	return datetime.now(timezone.utc)


def _value(item: Any) -> Any:
	return getattr(item, "value", item)


def _page(items: list[ModelT], limit: int, key) -> tuple[list[ModelT], Optional[str]]:
	next_cursor = None
	if len(items) > limit:
		items = items[:limit]
		if items:
			next_cursor = encode_cursor(key(items[-1]))
	return items, next_cursor


def _before(key: CursorPair, after: CursorPair | None) -> bool:
	if after is None:
		return True
	return (key[0], str(key[1])) < (after[0], str(after[1]))


class InMemoryRepository:
	"""Mirrors the public surface of ``FanTribeRepository`` with plain dicts."""

	def __init__(self) -> None:
		self.users: dict[UUID, models.User] = {}
		self.stats: dict[UUID, models.UserStats] = {}
		self.posts: dict[UUID, models.Post] = {}
		self.comments: dict[UUID, models.Comment] = {}
		self.likes: dict[tuple[UUID, UUID], int] = {}
		self.bookmarks: dict[tuple[UUID, UUID], int] = {}
		self.follows: dict[tuple[UUID, UUID], int] = {}
		self.blocks: dict[tuple[UUID, UUID], int] = {}
		self.subscriptions: dict[UUID, models.Subscription] = {}
		self.transactions: dict[UUID, models.Transaction] = {}
		self.tips: dict[UUID, models.Tip] = {}
		self.notifications: dict[UUID, models.Notification] = {}
		self.batches: dict[UUID, models.PendingNotificationBatch] = {}
		self.conversations: dict[UUID, models.Conversation] = {}
		self.messages: dict[UUID, models.Message] = {}
		self.reports: dict[UUID, models.Report] = {}
		self.applications: dict[UUID, models.CreatorApplication] = {}
		self.platform_stats: Optional[models.PlatformStats] = None
		self.drafts: dict[UUID, models.DraftAsset] = {}

	# --- Helpers ----------------------------------------------------------

	@staticmethod
	def _apply(store: dict[UUID, ModelT], model: Type[ModelT], entity_id: UUID, fields: dict[str, Any]) -> Optional[ModelT]:
		unknown = set(fields) - set(model.model_fields)
		if unknown:
			raise ValueError(f"unknown_columns:{sorted(unknown)}")
		current = store.get(entity_id)
		if current is None:
			return None
		updated = model.model_validate({**current.model_dump(), **fields})
		store[entity_id] = updated
		return updated

	@staticmethod
	def _pick(store: dict[UUID, ModelT], ids: Sequence[UUID]) -> dict[UUID, ModelT]:
		return {item: store[item] for item in set(ids) if item in store}

	# --- Users ------------------------------------------------------------

	async def get_user(self, user_id: UUID) -> models.User | None:
		return self.users.get(user_id)

	async def get_users(self, user_ids: Sequence[UUID]) -> dict[UUID, models.User]:
		return self._pick(self.users, user_ids)

	async def get_user_by_username(self, username: str) -> models.User | None:
		lowered = username.lower()
		return next((user for user in self.users.values() if (user.username or "").lower() == lowered), None)

	async def get_user_by_external_id(self, external_id: str) -> models.User | None:
		return next((user for user in self.users.values() if user.external_id == external_id), None)

	async def insert_user(self, user: models.User) -> models.User:
		self.users[user.id] = user
		return user

	async def update_user(self, user_id: UUID, **fields: Any) -> models.User | None:
		return self._apply(self.users, models.User, user_id, fields)

	async def delete_user(self, user_id: UUID) -> bool:
		return self.users.pop(user_id, None) is not None

	async def list_users(
		self,
		*,
		account_type: str | None = None,
		is_banned: bool | None = None,
		limit: int | None = None,
	) -> list[models.User]:
		rows = sorted(self.users.values(), key=lambda user: (user.created_at, str(user.id)))
		if account_type is not None:
			rows = [user for user in rows if user.account_type.value == _value(account_type)]
		if is_banned is not None:
			rows = [user for user in rows if user.is_banned == is_banned]
		return rows[:limit] if limit is not None else rows

	async def search_users(self, term: str, *, limit: int) -> list[models.User]:
		lowered = term.lower()
		rows = [
			user for user in await self.list_users()
			if user.username and (lowered in user.name.lower() or lowered in user.username.lower())
		]
		rows.sort(key=lambda user: lowered not in user.name.lower())
		return rows[:limit]

	async def count_users(self, *, account_type: str | None = None) -> int:
		return len(await self.list_users(account_type=account_type))

	async def mark_stale_users_offline(self, cutoff: datetime) -> int:
		count = 0
		for user in list(self.users.values()):
			if user.is_online and (user.last_seen_at is None or user.last_seen_at < cutoff):
				await self.update_user(user.id, is_online=False, active_sessions=0)
				count += 1
		return count

	# --- User stats -------------------------------------------------------

	async def get_user_stats(self, user_id: UUID) -> models.UserStats | None:
		return self.stats.get(user_id)

	async def apply_user_stats_delta(
		self,
		user_id: UUID,
		*,
		posts: int = 0,
		subscribers: int = 0,
		followers: int = 0,
		likes: int = 0,
		tips_received: int = 0,
		tips_amount: float = 0.0,
	) -> models.UserStats:
		current = self.stats.get(user_id) or models.UserStats(user_id=user_id, last_updated=_now())
		updated = current.model_copy(
			update={
				"posts_count": max(current.posts_count + posts, 0),
				"subscribers_count": max(current.subscribers_count + subscribers, 0),
				"followers_count": max(current.followers_count + followers, 0),
				"total_likes": max(current.total_likes + likes, 0),
				"tips_received": max(current.tips_received + tips_received, 0),
				"total_tips_amount": max(current.total_tips_amount + float(tips_amount), 0.0),
				"last_updated": _now(),
			}
		)
		self.stats[user_id] = updated
		return updated

	async def set_user_stats(self, stats: models.UserStats) -> models.UserStats:
		self.stats[stats.user_id] = stats
		return stats

	# --- Posts ------------------------------------------------------------

	async def insert_post(self, post: models.Post) -> models.Post:
		self.posts[post.id] = post
		return post

	async def get_post(self, post_id: UUID) -> models.Post | None:
		return self.posts.get(post_id)

	async def get_posts(self, post_ids: Sequence[UUID]) -> dict[UUID, models.Post]:
		return self._pick(self.posts, post_ids)

	async def update_post(self, post_id: UUID, **fields: Any) -> models.Post | None:
		return self._apply(self.posts, models.Post, post_id, fields)

	async def delete_post_cascade(self, post: models.Post) -> dict[str, int]:
		comments = [item for item in self.comments.values() if item.post_id == post.id]
		for item in comments:
			del self.comments[item.id]
		likes = [key for key in self.likes if key[1] == post.id]
		for key in likes:
			del self.likes[key]
		bookmarks = [key for key in self.bookmarks if key[1] == post.id]
		for key in bookmarks:
			del self.bookmarks[key]
		notifications = [item for item in self.notifications.values() if item.post_id == post.id]
		for item in notifications:
			del self.notifications[item.id]
		author = self.users.get(post.author_id)
		if author is not None and post.id in author.pinned_post_ids:
			await self.update_user(author.id, pinned_post_ids=[item for item in author.pinned_post_ids if item != post.id])
		self.posts.pop(post.id, None)
		return {
			"comments": len(comments),
			"likes": len(likes),
			"bookmarks": len(bookmarks),
			"notifications": len(notifications),
		}

	async def list_posts(
		self,
		*,
		limit: int,
		author_id: UUID | None = None,
		after: CursorPair | None = None,
		exclude_ids: Sequence[UUID] = (),
		with_media: bool = False,
	) -> tuple[list[models.Post], str | None]:
		rows = [
			post for post in self.posts.values()
			if (author_id is None or post.author_id == author_id)
			and post.id not in exclude_ids
			and (not with_media or post.medias)
			and _before((post.created_at, post.id), after)
		]
		rows.sort(key=lambda post: (post.created_at, str(post.id)), reverse=True)
		return _page(rows[: limit + 1], limit, lambda post: (post.created_at, post.id))

	async def count_posts(self, *, author_id: UUID | None = None) -> int:
		return len([post for post in self.posts.values() if author_id is None or post.author_id == author_id])

	# --- Comments ---------------------------------------------------------

	async def insert_comment(self, comment: models.Comment) -> models.Comment:
		self.comments[comment.id] = comment
		return comment

	async def get_comment(self, comment_id: UUID) -> models.Comment | None:
		return self.comments.get(comment_id)

	async def update_comment(self, comment_id: UUID, **fields: Any) -> models.Comment | None:
		return self._apply(self.comments, models.Comment, comment_id, fields)

	async def delete_comment(self, comment_id: UUID) -> bool:
		return self.comments.pop(comment_id, None) is not None

	async def list_comments(self, post_id: UUID, *, limit: int | None = None) -> list[models.Comment]:
		rows = [item for item in self.comments.values() if item.post_id == post_id]
		rows.sort(key=lambda item: (item.created_at, str(item.id)), reverse=True)
		return rows[:limit] if limit is not None else rows

	async def count_comments(self, post_id: UUID, *, author_id: UUID | None = None) -> int:
		return len([item for item in await self.list_comments(post_id) if author_id is None or item.author_id == author_id])

	async def list_user_comments(self, user_id: UUID, *, limit: int) -> list[models.Comment]:
		rows = [item for item in self.comments.values() if item.author_id == user_id]
		rows.sort(key=lambda item: (item.created_at, str(item.id)), reverse=True)
		return rows[:limit]

	# --- Likes & bookmarks ------------------------------------------------

	@staticmethod
	def _add_pair(store: dict[tuple[UUID, UUID], int], key: tuple[UUID, UUID]) -> bool:
		if key in store:
			return False
		store[key] = next(_clock)
		return True

	@staticmethod
	def _newest(store: dict[tuple[UUID, UUID], int], keys: list[tuple[UUID, UUID]]) -> list[tuple[UUID, UUID]]:
		return sorted(keys, key=lambda key: store[key], reverse=True)

	async def insert_like(self, user_id: UUID, post_id: UUID) -> bool:
		return self._add_pair(self.likes, (user_id, post_id))

	async def delete_like(self, user_id: UUID, post_id: UUID) -> bool:
		return self.likes.pop((user_id, post_id), None) is not None

	async def is_liked(self, user_id: UUID, post_id: UUID) -> bool:
		return (user_id, post_id) in self.likes

	async def count_likes(self, post_id: UUID) -> int:
		return len([key for key in self.likes if key[1] == post_id])

	async def list_post_liker_ids(self, post_id: UUID, *, limit: int) -> list[UUID]:
		keys = self._newest(self.likes, [key for key in self.likes if key[1] == post_id])
		return [key[0] for key in keys[:limit]]

	async def list_liked_post_ids(self, user_id: UUID, *, limit: int) -> list[UUID]:
		keys = self._newest(self.likes, [key for key in self.likes if key[0] == user_id])
		return [key[1] for key in keys[:limit]]

	async def count_likes_for_author(self, author_id: UUID) -> int:
		return len([key for key in self.likes if key[1] in self.posts and self.posts[key[1]].author_id == author_id])

	async def insert_bookmark(self, user_id: UUID, post_id: UUID) -> bool:
		return self._add_pair(self.bookmarks, (user_id, post_id))

	async def delete_bookmark(self, user_id: UUID, post_id: UUID) -> bool:
		return self.bookmarks.pop((user_id, post_id), None) is not None

	async def is_bookmarked(self, user_id: UUID, post_id: UUID) -> bool:
		return (user_id, post_id) in self.bookmarks

	async def count_bookmarks(self, post_id: UUID) -> int:
		return len([key for key in self.bookmarks if key[1] == post_id])

	async def list_bookmarked_post_ids(self, user_id: UUID, *, limit: int) -> list[UUID]:
		keys = self._newest(self.bookmarks, [key for key in self.bookmarks if key[0] == user_id])
		return [key[1] for key in keys[:limit]]

	# --- Follows & blocks -------------------------------------------------

	async def insert_follow(self, follower_id: UUID, following_id: UUID) -> bool:
		return self._add_pair(self.follows, (follower_id, following_id))

	async def delete_follow(self, follower_id: UUID, following_id: UUID) -> bool:
		return self.follows.pop((follower_id, following_id), None) is not None

	async def is_following(self, follower_id: UUID, following_id: UUID) -> bool:
		return (follower_id, following_id) in self.follows

	async def list_follower_ids(self, user_id: UUID) -> list[UUID]:
		return [key[0] for key in self._newest(self.follows, [key for key in self.follows if key[1] == user_id])]

	async def list_following_ids(self, user_id: UUID) -> list[UUID]:
		return [key[1] for key in self._newest(self.follows, [key for key in self.follows if key[0] == user_id])]

	async def delete_follows_between(self, first_id: UUID, second_id: UUID) -> list[tuple[UUID, UUID]]:
		removed = []
		for key in ((first_id, second_id), (second_id, first_id)):
			if self.follows.pop(key, None) is not None:
				removed.append(key)
		return removed

	async def insert_block(self, blocker_id: UUID, blocked_id: UUID) -> bool:
		return self._add_pair(self.blocks, (blocker_id, blocked_id))

	async def delete_block(self, blocker_id: UUID, blocked_id: UUID) -> bool:
		return self.blocks.pop((blocker_id, blocked_id), None) is not None

	async def is_blocking(self, blocker_id: UUID, blocked_id: UUID) -> bool:
		return (blocker_id, blocked_id) in self.blocks

	async def list_blocked_ids(self, blocker_id: UUID) -> list[UUID]:
		return [key[1] for key in self._newest(self.blocks, [key for key in self.blocks if key[0] == blocker_id])]

	async def list_blocker_ids(self, blocked_id: UUID) -> list[UUID]:
		return [key[0] for key in self.blocks if key[1] == blocked_id]

	# --- Subscriptions & payments ----------------------------------------

	async def get_subscription(self, subscription_id: UUID) -> models.Subscription | None:
		return self.subscriptions.get(subscription_id)

	async def find_subscription(self, creator_id: UUID, subscriber_id: UUID, type: str) -> models.Subscription | None:
		return next(
			(
				row for row in self.subscriptions.values()
				if row.creator_id == creator_id and row.subscriber_id == subscriber_id and row.type.value == _value(type)
			),
			None,
		)

	async def insert_subscription(self, subscription: models.Subscription) -> models.Subscription:
		self.subscriptions[subscription.id] = subscription
		return subscription

	async def update_subscription(self, subscription_id: UUID, **fields: Any) -> models.Subscription | None:
		return self._apply(self.subscriptions, models.Subscription, subscription_id, fields)

	async def list_subscriptions(
		self,
		*,
		creator_id: UUID | None = None,
		subscriber_id: UUID | None = None,
		type: str | None = None,
		statuses: Sequence[str] | None = None,
	) -> list[models.Subscription]:
		wanted = {_value(item) for item in statuses} if statuses else None
		rows = [
			row for row in self.subscriptions.values()
			if (creator_id is None or row.creator_id == creator_id)
			and (subscriber_id is None or row.subscriber_id == subscriber_id)
			and (type is None or row.type.value == _value(type))
			and (wanted is None or row.status.value in wanted)
		]
		rows.sort(key=lambda row: (row.created_at, str(row.id)), reverse=True)
		return rows

	async def list_expired_active_subscriptions(self, now: datetime) -> list[models.Subscription]:
		rows = [
			row for row in self.subscriptions.values()
			if row.status == models.SubscriptionStatus.ACTIVE and row.end_date <= now
		]
		rows.sort(key=lambda row: row.end_date)
		return rows

	async def get_transaction_by_provider_id(self, provider_transaction_id: str) -> models.Transaction | None:
		return next(
			(row for row in self.transactions.values() if row.provider_transaction_id == provider_transaction_id),
			None,
		)

	async def record_payment(
		self,
		transaction: models.Transaction,
		*,
		subscription_type: str,
		plan: PaymentPlan,
	) -> PaymentRecord | None:
		# no awaits: stands in for the single database transaction
		if any(row.provider_transaction_id == transaction.provider_transaction_id for row in self.transactions.values()):
			return None
		current = next(
			(
				row for row in self.subscriptions.values()
				if row.creator_id == transaction.creator_id
				and row.subscriber_id == transaction.subscriber_id
				and row.type.value == _value(subscription_type)
			),
			None,
		)
		action, target = plan(current)
		if current is not None:
			target = target.model_copy(update={"id": current.id, "created_at": current.created_at})
		self.subscriptions[target.id] = target
		recorded = transaction.model_copy(update={"subscription_id": target.id})
		self.transactions[recorded.id] = recorded
		return PaymentRecord(action=action, subscription=target, previous=current, transaction=recorded)

	async def list_transactions(
		self,
		*,
		start: datetime | None = None,
		end: datetime | None = None,
		creator_id: UUID | None = None,
		provider: str | None = None,
	) -> list[models.Transaction]:
		rows = [
			row for row in self.transactions.values()
			if (start is None or row.created_at >= start)
			and (end is None or row.created_at <= end)
			and (creator_id is None or row.creator_id == creator_id)
			and (provider is None or row.provider == provider)
		]
		rows.sort(key=lambda row: row.created_at, reverse=True)
		return rows

	# --- Tips -------------------------------------------------------------

	async def get_tip_by_provider_id(self, provider_transaction_id: str) -> models.Tip | None:
		return next((tip for tip in self.tips.values() if tip.provider_transaction_id == provider_transaction_id), None)

	async def insert_tip(self, tip: models.Tip) -> models.Tip | None:
		if any(row.provider_transaction_id == tip.provider_transaction_id for row in self.tips.values()):
			return None
		self.tips[tip.id] = tip
		return tip

	async def list_tips(self, *, creator_id: UUID, limit: int | None = None) -> list[models.Tip]:
		rows = [tip for tip in self.tips.values() if tip.creator_id == creator_id and tip.status == "succeeded"]
		rows.sort(key=lambda tip: tip.created_at, reverse=True)
		return rows[:limit] if limit is not None else rows

	# --- Notifications ----------------------------------------------------

	async def get_notification(self, notification_id: UUID) -> models.Notification | None:
		return self.notifications.get(notification_id)

	async def find_notification(self, recipient_id: UUID, group_key: str) -> models.Notification | None:
		return next(
			(
				item for item in self.notifications.values()
				if item.recipient_id == recipient_id and item.group_key == group_key
			),
			None,
		)

	async def upsert_notification(
		self,
		notification: models.Notification,
		*,
		max_actors: int,
	) -> tuple[models.Notification, bool]:
		existing = await self.find_notification(notification.recipient_id, notification.group_key)
		if existing is None:
			self.notifications[notification.id] = notification
			return notification, True
		actor_id = notification.actor_ids[0]
		fields: dict[str, Any] = {
			"actor_ids": [actor_id, *(item for item in existing.actor_ids if item != actor_id)][:max_actors],
			"actor_count": existing.actor_count + (0 if actor_id in existing.actor_ids else 1),
			"is_read": False,
			"last_activity_at": notification.last_activity_at,
		}
		if notification.comment_id is not None:
			fields["comment_id"] = notification.comment_id
		return self._apply(self.notifications, models.Notification, existing.id, fields), False

	async def update_notification(self, notification_id: UUID, **fields: Any) -> models.Notification | None:
		return self._apply(self.notifications, models.Notification, notification_id, fields)

	async def delete_notification(self, notification_id: UUID) -> bool:
		return self.notifications.pop(notification_id, None) is not None

	async def count_unread_notifications(self, recipient_id: UUID) -> int:
		return len([item for item in self.notifications.values() if item.recipient_id == recipient_id and not item.is_read])

	async def list_notifications(
		self,
		recipient_id: UUID,
		*,
		limit: int,
		after: CursorPair | None = None,
		type: str | None = None,
	) -> tuple[list[models.Notification], str | None]:
		rows = [
			item for item in self.notifications.values()
			if item.recipient_id == recipient_id
			and (type is None or item.type.value == _value(type))
			and _before((item.last_activity_at, item.id), after)
		]
		rows.sort(key=lambda item: (item.last_activity_at, str(item.id)), reverse=True)
		return _page(rows[: limit + 1], limit, lambda item: (item.last_activity_at, item.id))

	async def mark_all_notifications_read(self, recipient_id: UUID) -> int:
		count = 0
		for item in list(self.notifications.values()):
			if item.recipient_id == recipient_id and not item.is_read:
				await self.update_notification(item.id, is_read=True)
				count += 1
		return count

	# --- Deferred notification batches ------------------------------------

	async def insert_pending_batch(self, batch: models.PendingNotificationBatch) -> models.PendingNotificationBatch:
		self.batches[batch.id] = batch
		return batch

	async def list_pending_batches(self, *, limit: int) -> list[models.PendingNotificationBatch]:
		rows = [batch for batch in self.batches.values() if batch.status == models.BatchStatus.PENDING]
		rows.sort(key=lambda batch: batch.created_at)
		return rows[:limit]

	async def update_pending_batch(self, batch_id: UUID, **fields: Any) -> models.PendingNotificationBatch | None:
		return self._apply(self.batches, models.PendingNotificationBatch, batch_id, fields)

	async def delete_completed_batches(self, *, older_than: datetime, limit: int) -> int:
		rows = [
			batch for batch in self.batches.values()
			if batch.status == models.BatchStatus.COMPLETED and batch.created_at < older_than
		]
		rows.sort(key=lambda batch: batch.created_at)
		for batch in rows[:limit]:
			del self.batches[batch.id]
		return len(rows[:limit])

	async def count_batches_by_status(self) -> dict[str, int]:
		counts: dict[str, int] = {}
		for batch in self.batches.values():
			counts[batch.status.value] = counts.get(batch.status.value, 0) + 1
		return counts

	async def pending_recipients_total(self) -> int:
		return sum(
			len(batch.recipient_ids) - batch.processed_count
			for batch in self.batches.values()
			if batch.status in (models.BatchStatus.PENDING, models.BatchStatus.PROCESSING)
		)

	# --- Conversations & messages -----------------------------------------

	async def get_conversation(self, conversation_id: UUID) -> models.Conversation | None:
		return self.conversations.get(conversation_id)

	async def find_conversation(self, creator_id: UUID, user_id: UUID) -> models.Conversation | None:
		return next(
			(
				item for item in self.conversations.values()
				if item.creator_id == creator_id and item.user_id == user_id
			),
			None,
		)

	async def insert_conversation(self, conversation: models.Conversation) -> models.Conversation:
		self.conversations[conversation.id] = conversation
		return conversation

	async def update_conversation(self, conversation_id: UUID, **fields: Any) -> models.Conversation | None:
		return self._apply(self.conversations, models.Conversation, conversation_id, fields)

	async def list_conversations_for(self, user_id: UUID) -> list[models.Conversation]:
		rows = [item for item in self.conversations.values() if user_id in (item.creator_id, item.user_id)]
		floor = datetime.min.replace(tzinfo=timezone.utc)
		rows.sort(key=lambda item: (item.last_message_at or floor, item.created_at), reverse=True)
		return rows

	async def increment_unread(self, conversation_id: UUID, *, role: str) -> None:
		conversation = self.conversations[conversation_id]
		column = "unread_count_creator" if role == "creator" else "unread_count_user"
		await self.update_conversation(conversation_id, **{column: getattr(conversation, column) + 1})

	async def list_unlocked_subscription_conversations(self) -> list[models.Conversation]:
		return [item for item in self.conversations.values() if not item.is_locked and item.requires_subscription]

	async def insert_message(self, message: models.Message) -> models.Message:
		self.messages[message.id] = message
		return message

	async def get_message(self, message_id: UUID) -> models.Message | None:
		return self.messages.get(message_id)

	async def get_messages(self, message_ids: Sequence[UUID]) -> dict[UUID, models.Message]:
		return self._pick(self.messages, message_ids)

	async def update_message(self, message_id: UUID, **fields: Any) -> models.Message | None:
		return self._apply(self.messages, models.Message, message_id, fields)

	async def list_messages(
		self,
		conversation_id: UUID,
		*,
		limit: int,
		after: CursorPair | None = None,
	) -> tuple[list[models.Message], str | None]:
		rows = [
			item for item in self.messages.values()
			if item.conversation_id == conversation_id and _before((item.created_at, item.id), after)
		]
		rows.sort(key=lambda item: (item.created_at, str(item.id)), reverse=True)
		return _page(rows[: limit + 1], limit, lambda item: (item.created_at, item.id))

	# --- Reports ----------------------------------------------------------

	async def insert_report(self, report: models.Report) -> models.Report:
		self.reports[report.id] = report
		return report

	async def get_report(self, report_id: UUID) -> models.Report | None:
		return self.reports.get(report_id)

	async def update_report(self, report_id: UUID, **fields: Any) -> models.Report | None:
		return self._apply(self.reports, models.Report, report_id, fields)

	async def list_reports(
		self,
		*,
		status: str | None = None,
		type: str | None = None,
		reported_user_id: UUID | None = None,
		limit: int | None = None,
	) -> list[models.Report]:
		rows = [
			item for item in self.reports.values()
			if (status is None or item.status.value == _value(status))
			and (type is None or item.type.value == _value(type))
			and (reported_user_id is None or item.reported_user_id == reported_user_id)
		]
		rows.sort(key=lambda item: (item.created_at, str(item.id)), reverse=True)
		return rows[:limit] if limit is not None else rows

	async def find_open_report(
		self,
		*,
		reporter_id: UUID,
		type: str,
		reported_user_id: UUID | None,
		reported_post_id: UUID | None,
		reported_comment_id: UUID | None,
	) -> models.Report | None:
		open_statuses = (models.ReportStatus.PENDING, models.ReportStatus.REVIEWING)
		return next(
			(
				item for item in self.reports.values()
				if item.reporter_id == reporter_id
				and item.type.value == _value(type)
				and item.status in open_statuses
				and item.reported_user_id == reported_user_id
				and item.reported_post_id == reported_post_id
				and item.reported_comment_id == reported_comment_id
			),
			None,
		)

	async def count_reports(self, *, status: str | None = None) -> int:
		return len(await self.list_reports(status=status))

	# --- Creator applications ---------------------------------------------

	async def insert_application(self, application: models.CreatorApplication) -> models.CreatorApplication:
		self.applications[application.id] = application
		return application

	async def get_application(self, application_id: UUID) -> models.CreatorApplication | None:
		return self.applications.get(application_id)

	async def update_application(self, application_id: UUID, **fields: Any) -> models.CreatorApplication | None:
		return self._apply(self.applications, models.CreatorApplication, application_id, fields)

	async def list_applications(
		self,
		*,
		user_id: UUID | None = None,
		status: str | None = None,
	) -> list[models.CreatorApplication]:
		rows = [
			item for item in self.applications.values()
			if (user_id is None or item.user_id == user_id)
			and (status is None or item.status.value == _value(status))
		]
		rows.sort(key=lambda item: (item.submitted_at, str(item.id)), reverse=True)
		return rows

	async def count_applications(self, *, status: str | None = None) -> int:
		return len(await self.list_applications(status=status))

	# --- Platform stats ---------------------------------------------------

	async def get_platform_stats(self) -> models.PlatformStats | None:
		return self.platform_stats

	async def upsert_platform_stats(self, stats: models.PlatformStats) -> models.PlatformStats:
		self.platform_stats = stats
		return stats

	# --- Draft assets -----------------------------------------------------

	async def insert_draft_asset(self, asset: models.DraftAsset) -> models.DraftAsset:
		self.drafts[asset.id] = asset
		return asset

	async def delete_draft_assets_by_urls(self, author_id: UUID, media_urls: Sequence[str]) -> int:
		doomed = [item.id for item in self.drafts.values() if item.author_id == author_id and item.media_url in media_urls]
		for item in doomed:
			del self.drafts[item]
		return len(doomed)

	async def list_draft_assets_before(self, cutoff: datetime) -> list[models.DraftAsset]:
		rows = [item for item in self.drafts.values() if item.created_at < cutoff]
		rows.sort(key=lambda item: item.created_at)
		return rows

	async def delete_draft_assets(self, asset_ids: Sequence[UUID]) -> int:
		count = 0
		for item in asset_ids:
			if self.drafts.pop(item, None) is not None:
				count += 1
		return count


# --- Builders -------------------------------------------------------------


def make_user(
	repo: InMemoryRepository,
	*,
	name: str = "Test User",
	username: str | None = None,
	account_type: models.AccountType = models.AccountType.USER,
	created_at: datetime | None = None,
	**fields: Any,
) -> models.User:
	user_id = fields.pop("id", None) or uuid4()
	user = models.User(
		id=user_id,
		name=name,
		username=username if username is not None else f"user_{str(user_id)[:8]}",
		email=fields.pop("email", f"{str(user_id)[:8]}@example.com"),
		account_type=account_type,
		created_at=created_at or _now(),
		**fields,
	)
	repo.users[user.id] = user
	return user


def make_post(
	repo: InMemoryRepository,
	author: models.User,
	*,
	content: str = "hello",
	medias: list[models.PostMedia] | None = None,
	visibility: models.PostVisibility = models.PostVisibility.PUBLIC,
	is_adult: bool = False,
	created_at: datetime | None = None,
) -> models.Post:
	post = models.Post(
		id=uuid4(),
		author_id=author.id,
		content=content,
		medias=medias or [],
		visibility=visibility,
		is_adult=is_adult,
		created_at=created_at or _now(),
	)
	repo.posts[post.id] = post
	return post


def make_subscription(
	repo: InMemoryRepository,
	*,
	creator: models.User,
	subscriber: models.User,
	type: models.SubscriptionType = models.SubscriptionType.CONTENT_ACCESS,
	status: models.SubscriptionStatus = models.SubscriptionStatus.ACTIVE,
	days_left: float = 30,
	**fields: Any,
) -> models.Subscription:
	now = _now()
	subscription = models.Subscription(
		id=uuid4(),
		subscriber_id=subscriber.id,
		creator_id=creator.id,
		type=type,
		status=status,
		start_date=now - timedelta(days=1),
		end_date=now + timedelta(days=days_left),
		last_update_time=now,
		created_at=fields.pop("created_at", now),
		**fields,
	)
	repo.subscriptions[subscription.id] = subscription
	return subscription


def image(url: str = "https://cdn.example.com/a.jpg") -> models.PostMedia:
	return models.PostMedia(type="image", url=url, media_id=url.rsplit("/", 1)[-1], mime_type="image/jpeg")


def auth(user: models.User) -> AuthenticatedUser:
	return AuthenticatedUser(id=str(user.id))


def headers_for(user: models.User) -> dict[str, str]:
	return {"X-User-Id": str(user.id)}
