"""Subscriptions, payment processing and transaction reporting."""

from __future__ import annotations

import logging
from datetime import datetime
from functools import partial
from typing import Any, Optional
from uuid import UUID, uuid4

from fantribe.domain import models, policies, repo as repo_module
from fantribe.domain.constants import SUBSCRIPTION_DURATION
from fantribe.domain.exceptions import SubscriptionNotFoundError, UnauthorizedError
from fantribe.domain.messaging_service import MessagingService
from fantribe.domain.notifications_service import NotificationsService
from fantribe.infra.auth import AuthenticatedUser
from fantribe.obs import metrics as obs_metrics
from fantribe.schemas import dto

logger = logging.getLogger(__name__)

NT = models.NotificationType
SS = models.SubscriptionStatus
ST = models.SubscriptionType

EARNERS_SHOWN = 5


def plan_payment(
	current: Optional[models.Subscription],
	*,
	payload: dto.PaymentWebhookRequest,
	now: datetime,
) -> tuple[str, models.Subscription]:
	"""Decide whether a payment creates, renews or reactivates ``current``."""
	start = payload.started_at or now
	if current is None:
		return "created", models.Subscription(
			id=uuid4(),
			subscriber_id=payload.subscriber_id,
			creator_id=payload.creator_id,
			type=payload.subscription_type,
			status=SS.ACTIVE,
			start_date=start,
			end_date=start + SUBSCRIPTION_DURATION,
			amount_paid=payload.amount,
			currency=payload.currency,
			last_update_time=now,
			created_at=now,
		)
	paid = {
		"renewal_count": current.renewal_count + 1,
		"amount_paid": payload.amount,
		"currency": payload.currency,
		"last_update_time": now,
	}
	if current.is_active(now):
		return "renewed", current.model_copy(update={**paid, "end_date": current.end_date + SUBSCRIPTION_DURATION})
	return "reactivated", current.model_copy(
		update={
			**paid,
			"status": SS.ACTIVE,
			"start_date": start,
			"end_date": start + SUBSCRIPTION_DURATION,
			"granted_by_creator": False,
		}
	)


class SubscriptionsService:
	def __init__(
		self,
		repository: repo_module.FanTribeRepository | None = None,
		notifications: NotificationsService | None = None,
		messaging: MessagingService | None = None,
	) -> None:
		self.repo = repository or repo_module.FanTribeRepository()
		self.notifications = notifications or NotificationsService(self.repo)
		self.messaging = messaging or MessagingService(self.repo)

	async def _responses(self, rows: list[models.Subscription]) -> list[dto.SubscriptionResponse]:
		users = await self.repo.get_users(
			list({row.subscriber_id for row in rows} | {row.creator_id for row in rows})
		)
		items = []
		for row in rows:
			subscriber = users.get(row.subscriber_id)
			creator = users.get(row.creator_id)
			items.append(
				dto.SubscriptionResponse(
					**row.model_dump(),
					subscriber=dto.UserSummary.from_user(subscriber) if subscriber else None,
					creator=dto.UserSummary.from_user(creator) if creator else None,
				)
			)
		return items

	# ------------------------------------------------------------------
	# Payments

	async def process_payment(self, payload: dto.PaymentWebhookRequest) -> dict[str, Any]:
		"""Apply a confirmed provider payment to the matching subscription.

		Safe to call repeatedly, and concurrently, for the same
		``provider_transaction_id``: only one call applies the payment and the
		others report ``already_processed`` without changing anything.
		"""
		now = policies.utcnow()
		record = await self.repo.record_payment(
			models.Transaction(
				id=uuid4(),
				subscription_id=None,
				subscriber_id=payload.subscriber_id,
				creator_id=payload.creator_id,
				amount=payload.amount,
				currency=payload.currency.value,
				status="succeeded",
				provider=payload.provider,
				provider_transaction_id=payload.provider_transaction_id,
				payment_method=payload.payment_method,
				created_at=now,
			),
			subscription_type=payload.subscription_type,
			plan=partial(plan_payment, payload=payload, now=now),
		)
		if record is None:
			return await self._already_processed(payload)

		action, subscription = record.action, record.subscription
		previous_end = record.previous.end_date if record.previous is not None else None
		if action == "created" and subscription.type == ST.CONTENT_ACCESS:
			await self.repo.apply_user_stats_delta(payload.creator_id, subscribers=1)
		await self.notifications.create_notification(
			type=NT.NEW_SUBSCRIPTION if action == "created" else NT.RENEW_SUBSCRIPTION,
			recipient_id=payload.creator_id,
			actor_id=payload.subscriber_id,
		)
		await self.notifications.create_notification(
			type=NT.SUBSCRIPTION_CONFIRMED,
			recipient_id=payload.subscriber_id,
			actor_id=payload.creator_id,
		)
		if subscription.type == ST.MESSAGING_ACCESS:
			await self.messaging.unlock_conversation_on_renewal(payload.creator_id, payload.subscriber_id)

		obs_metrics.inc_payment(payload.provider, action)
		logger.info(
			"payments.processed",
			extra={
				"provider": payload.provider,
				"subscription_id": str(subscription.id),
				"action": action,
				"type": subscription.type.value,
			},
		)
		return {
			"success": True,
			"already_processed": False,
			"action": action,
			"subscription_id": str(subscription.id),
			"status": subscription.status.value,
			"renewal_count": subscription.renewal_count,
			"previous_end_date": previous_end.isoformat() if previous_end else None,
			"new_end_date": subscription.end_date.isoformat(),
			"transaction_id": str(record.transaction.id),
		}

	async def _already_processed(self, payload: dto.PaymentWebhookRequest) -> dict[str, Any]:
		existing_tx = await self.repo.get_transaction_by_provider_id(payload.provider_transaction_id)
		subscription = None
		if existing_tx is not None and existing_tx.subscription_id is not None:
			subscription = await self.repo.get_subscription(existing_tx.subscription_id)
		obs_metrics.inc_payment(payload.provider, "already_processed")
		return {
			"success": True,
			"already_processed": True,
			"action": "noop",
			"subscription_id": str(subscription.id) if subscription else None,
			"status": subscription.status.value if subscription else None,
			"transaction_id": str(existing_tx.id) if existing_tx else None,
		}

	# ------------------------------------------------------------------
	# Subscriber-facing

	async def cancel_subscription(self, auth_user: AuthenticatedUser, subscription_id: UUID) -> dict[str, Any]:
		user = await policies.resolve_actor(self.repo, auth_user)
		subscription = await self.repo.get_subscription(subscription_id)
		if subscription is None:
			raise SubscriptionNotFoundError()
		if user.id not in (subscription.subscriber_id, subscription.creator_id):
			raise UnauthorizedError()
		if subscription.status == SS.CANCELED:
			return {"canceled": False, "reason": "already_canceled"}
		await self.repo.update_subscription(subscription.id, status=SS.CANCELED, last_update_time=policies.utcnow())
		return {"canceled": True}

	async def get_follow_subscription(
		self,
		auth_user: AuthenticatedUser | None,
		creator_id: UUID,
	) -> Optional[models.Subscription]:
		user = await policies.resolve_actor(self.repo, auth_user, optional=True)
		if user is None:
			return None
		return await self.repo.find_subscription(creator_id, user.id, ST.CONTENT_ACCESS)

	async def list_subscriber_subscriptions(self, auth_user: AuthenticatedUser) -> list[dto.SubscriptionResponse]:
		user = await policies.resolve_actor(self.repo, auth_user)
		return await self._responses(await self.repo.list_subscriptions(subscriber_id=user.id))

	async def list_creator_subscribers(self, auth_user: AuthenticatedUser) -> list[dto.SubscriptionResponse]:
		user = await policies.resolve_actor(self.repo, auth_user)
		return await self._responses(await self.repo.list_subscriptions(creator_id=user.id))

	async def can_user_subscribe(self, auth_user: AuthenticatedUser | None, creator_id: UUID) -> dict[str, Any]:
		user = await policies.resolve_actor(self.repo, auth_user, optional=True)
		if user is None:
			return {"can_subscribe": False, "reason": "not_authenticated"}
		if user.id == creator_id:
			return {"can_subscribe": False, "reason": "self"}
		creator = await self.repo.get_user(creator_id)
		if creator is None or creator.account_type != models.AccountType.CREATOR:
			return {"can_subscribe": False, "reason": "not_creator"}
		existing = await self.repo.find_subscription(creator_id, user.id, ST.CONTENT_ACCESS)
		if existing is not None:
			if existing.status == SS.ACTIVE:
				return {"can_subscribe": False, "reason": "already_active"}
			if existing.status == SS.PENDING:
				return {"can_subscribe": False, "reason": "pending"}
			if existing.status == SS.CANCELED and existing.end_date > policies.utcnow():
				return {"can_subscribe": False, "reason": "still_valid_until_expiry"}
		return {"can_subscribe": True, "reason": None}

	async def get_my_content_access_subscriptions_stats(self, auth_user: AuthenticatedUser) -> dict[str, Any]:
		user = await policies.resolve_actor(self.repo, auth_user)
		rows = await self.repo.list_subscriptions(subscriber_id=user.id, type=ST.CONTENT_ACCESS)
		creator_ids = list(dict.fromkeys(row.creator_id for row in rows))
		posts_count = 0
		for creator_id in creator_ids:
			posts_count += await self.repo.count_posts(author_id=creator_id)
		return {
			"subscriptions": await self._responses(rows),
			"creators_count": len(creator_ids),
			"posts_count": posts_count,
		}

	async def get_my_subscribers_stats(self, auth_user: AuthenticatedUser) -> dict[str, Any]:
		user = await policies.resolve_actor(self.repo, auth_user)
		rows = await self.repo.list_subscriptions(creator_id=user.id, type=ST.CONTENT_ACCESS)
		subscriber_ids = list(dict.fromkeys(row.subscriber_id for row in rows))
		posts_count = 0
		for subscriber_id in subscriber_ids:
			posts_count += await self.repo.count_posts(author_id=subscriber_id)
		return {
			"subscribers": await self._responses(rows),
			"subscribers_count": len(subscriber_ids),
			"posts_count": posts_count,
		}

	# ------------------------------------------------------------------
	# Jobs

	async def check_and_update_expired_subscriptions(self) -> dict[str, int]:
		now = policies.utcnow()
		rows = await self.repo.list_expired_active_subscriptions(now)
		notified = 0
		for row in rows:
			await self.repo.update_subscription(row.id, status=SS.EXPIRED, last_update_time=now)
			result = await self.notifications.create_notification(
				type=NT.SUBSCRIPTION_EXPIRED,
				recipient_id=row.subscriber_id,
				actor_id=row.creator_id,
			)
			if result.get("created"):
				notified += 1
		obs_metrics.inc_subscriptions_expired(len(rows))
		if rows:
			logger.info("subscriptions.expired", extra={"count": len(rows), "notified": notified})
		return {"scanned": len(rows), "expired_updated": len(rows), "notified": notified}

	async def check_and_lock_expired_messaging_subscriptions(self) -> dict[str, int]:
		return await self.messaging.check_and_lock_expired_messaging_subscriptions()

	# ------------------------------------------------------------------
	# Admin reporting

	async def _filtered_transactions(
		self,
		*,
		start: datetime | None,
		end: datetime | None,
		creator_id: UUID | None,
		provider: str | None,
	) -> list[models.Transaction]:
		rows = await self.repo.list_transactions(start=start, end=end, creator_id=creator_id, provider=provider)
		return [row for row in rows if row.status == "succeeded"]

	async def get_transactions_for_dashboard(
		self,
		auth_user: AuthenticatedUser,
		*,
		start: datetime | None = None,
		end: datetime | None = None,
		creator_id: UUID | None = None,
		provider: str | None = None,
	) -> list[dict[str, Any]]:
		policies.require_superuser(await policies.resolve_actor(self.repo, auth_user))
		rows = await self._filtered_transactions(start=start, end=end, creator_id=creator_id, provider=provider)
		users = await self.repo.get_users(list({row.creator_id for row in rows} | {row.subscriber_id for row in rows}))
		items = []
		for row in sorted(rows, key=lambda item: item.created_at, reverse=True):
			creator = users.get(row.creator_id)
			subscriber = users.get(row.subscriber_id)
			items.append(
				{
					"id": str(row.id),
					"created_at": row.created_at.isoformat(),
					"amount": row.amount,
					"currency": row.currency,
					"provider": row.provider,
					"provider_transaction_id": row.provider_transaction_id,
					"creator": dto.UserSummary.from_user(creator).model_dump(mode="json") if creator else None,
					"subscriber": dto.UserSummary.from_user(subscriber).model_dump(mode="json") if subscriber else None,
				}
			)
		return items

	async def get_transactions_summary(
		self,
		auth_user: AuthenticatedUser,
		*,
		start: datetime | None = None,
		end: datetime | None = None,
		creator_id: UUID | None = None,
		provider: str | None = None,
	) -> dict[str, Any]:
		policies.require_superuser(await policies.resolve_actor(self.repo, auth_user))
		rows = await self._filtered_transactions(start=start, end=end, creator_id=creator_id, provider=provider)
		creators = await self.repo.get_users(list({row.creator_id for row in rows}))
		totals: dict[UUID, dict[str, Any]] = {}
		for row in rows:
			creator = creators.get(row.creator_id)
			if creator is None:
				continue
			entry = totals.setdefault(
				row.creator_id,
				{
					"creator_id": str(row.creator_id),
					"creator_name": creator.name,
					"creator_username": creator.username,
					"total_amount": 0.0,
					"transaction_count": 0,
					"currency": row.currency,
				},
			)
			entry["total_amount"] += row.amount
			entry["transaction_count"] += 1
		summaries = sorted(totals.values(), key=lambda item: item["total_amount"], reverse=True)
		return {
			"total_amount": sum(row.amount for row in rows),
			"total_transactions": len(rows),
			"currency": rows[0].currency if rows else models.Currency.XAF.value,
			"creator_summaries": summaries,
			"top_earners": summaries[:EARNERS_SHOWN],
			"low_earners": list(reversed(summaries[-EARNERS_SHOWN:])),
		}
