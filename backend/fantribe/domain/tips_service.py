"""One-off tips from fans to creators."""

from __future__ import annotations

import logging
from typing import Any
from uuid import uuid4

from fantribe.domain import models, policies, repo as repo_module
from fantribe.domain.constants import (
	TIP_CREATOR_RATE,
	TIP_MAX_AMOUNT_XAF,
	TIP_MESSAGE_MAX_LENGTH,
	TIP_MIN_AMOUNT_XAF,
	TIP_PRESETS_XAF,
	USD_TO_XAF_RATE,
)
from fantribe.domain.notifications_service import NotificationsService
from fantribe.infra.auth import AuthenticatedUser
from fantribe.obs import metrics as obs_metrics
from fantribe.schemas import dto

logger = logging.getLogger(__name__)

RECENT_TIPS_SHOWN = 20


def to_xaf(amount: float, currency: str) -> float:
	if str(getattr(currency, "value", currency)).upper() == models.Currency.USD.value:
		return amount * USD_TO_XAF_RATE
	return amount


class TipsService:
	def __init__(
		self,
		repository: repo_module.FanTribeRepository | None = None,
		notifications: NotificationsService | None = None,
	) -> None:
		self.repo = repository or repo_module.FanTribeRepository()
		self.notifications = notifications or NotificationsService(self.repo)

	async def process_tip(self, payload: dto.TipWebhookRequest) -> dict[str, Any]:
		existing = await self.repo.get_tip_by_provider_id(payload.provider_transaction_id)
		if existing is not None:
			obs_metrics.inc_tip(payload.provider, "already_processed")
			return {"success": True, "already_processed": True, "tip_id": str(existing.id)}

		creator = await self.repo.get_user(payload.creator_id)
		if creator is None or creator.account_type != models.AccountType.CREATOR:
			obs_metrics.inc_tip(payload.provider, "rejected")
			return {"success": False, "already_processed": False, "tip_id": None, "message": "not_a_creator"}
		if payload.sender_id == payload.creator_id:
			obs_metrics.inc_tip(payload.provider, "rejected")
			return {"success": False, "already_processed": False, "tip_id": None, "message": "self_tip"}

		message = payload.message[:TIP_MESSAGE_MAX_LENGTH] if payload.message else None
		tip = await self.repo.insert_tip(
			models.Tip(
				id=uuid4(),
				sender_id=payload.sender_id,
				creator_id=creator.id,
				amount=payload.amount,
				currency=payload.currency,
				message=message,
				status="succeeded",
				provider=payload.provider,
				provider_transaction_id=payload.provider_transaction_id,
				context=payload.context,
				post_id=payload.post_id,
				conversation_id=payload.conversation_id,
				created_at=policies.utcnow(),
			)
		)
		if tip is None:
			# a concurrent delivery of the same payment won the insert
			obs_metrics.inc_tip(payload.provider, "already_processed")
			winner = await self.repo.get_tip_by_provider_id(payload.provider_transaction_id)
			return {"success": True, "already_processed": True, "tip_id": str(winner.id) if winner else None}
		await self.notifications.create_notification(
			type=models.NotificationType.TIP,
			recipient_id=creator.id,
			actor_id=payload.sender_id,
			post_id=payload.post_id,
			tip_id=tip.id,
			tip_amount=tip.amount,
			tip_currency=tip.currency.value,
		)
		await self.repo.apply_user_stats_delta(
			creator.id,
			tips_received=1,
			tips_amount=to_xaf(tip.amount, tip.currency),
		)
		obs_metrics.inc_tip(payload.provider, "succeeded")
		logger.info(
			"tips.processed",
			extra={"tip_id": str(tip.id), "creator_id": str(creator.id), "context": payload.context},
		)
		return {"success": True, "already_processed": False, "tip_id": str(tip.id)}

	async def validate_tip_amount(self, auth_user: AuthenticatedUser, amount: float) -> dict[str, Any]:
		"""Checked before redirecting the sender to checkout."""
		user = await policies.resolve_actor(self.repo, auth_user)
		await policies.enforce_rate_limit("send_tip", user.id)
		if amount < TIP_MIN_AMOUNT_XAF:
			return {"valid": False, "error": "below_minimum", "min": TIP_MIN_AMOUNT_XAF}
		if amount > TIP_MAX_AMOUNT_XAF:
			return {"valid": False, "error": "above_maximum", "max": TIP_MAX_AMOUNT_XAF}
		return {"valid": True, "presets": list(TIP_PRESETS_XAF)}

	async def get_creator_tip_earnings(self, auth_user: AuthenticatedUser) -> dict[str, Any]:
		creator = await policies.resolve_actor(self.repo, auth_user, allowed_account_types=policies.CREATOR_TYPES)
		tips = await self.repo.list_tips(creator_id=creator.id)
		gross = sum(to_xaf(tip.amount, tip.currency) for tip in tips)
		recent = tips[:RECENT_TIPS_SHOWN]
		senders = await self.repo.get_users(list({tip.sender_id for tip in recent}))
		return {
			"total_tips_gross": gross,
			"total_tips_net": gross * TIP_CREATOR_RATE,
			"tip_count": len(tips),
			"currency": models.Currency.XAF.value,
			"recent_tips": [
				{
					"id": str(tip.id),
					"created_at": tip.created_at.isoformat(),
					"amount": tip.amount,
					"currency": tip.currency.value,
					"message": tip.message,
					"context": tip.context,
					"sender": (
						dto.UserSummary.from_user(senders[tip.sender_id]).model_dump(mode="json")
						if tip.sender_id in senders
						else None
					),
				}
				for tip in recent
			],
		}
