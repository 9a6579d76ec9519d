"""Subscription routes and the payment provider webhook."""

from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from fantribe.api._errors import to_http_error
from fantribe.api._webhooks import require_webhook_secret
from fantribe.domain import models
from fantribe.domain.subscriptions_service import SubscriptionsService
from fantribe.infra.auth import AuthenticatedUser, get_current_user, get_optional_user
from fantribe.schemas import dto

router = APIRouter(tags=["subscriptions"])
_service = SubscriptionsService()


@router.post("/webhooks/payments", dependencies=[Depends(require_webhook_secret)])
async def payment_webhook_endpoint(payload: dto.PaymentWebhookRequest) -> dict:
	try:
		return await _service.process_payment(payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/subscriptions", response_model=list[dto.SubscriptionResponse])
async def my_subscriptions_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[dto.SubscriptionResponse]:
	try:
		return await _service.list_subscriber_subscriptions(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/subscriptions/stats")
async def my_subscriptions_stats_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		return await _service.get_my_content_access_subscriptions_stats(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/subscribers", response_model=list[dto.SubscriptionResponse])
async def my_subscribers_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[dto.SubscriptionResponse]:
	try:
		return await _service.list_creator_subscribers(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/subscribers/stats")
async def my_subscribers_stats_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		return await _service.get_my_subscribers_stats(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/subscriptions/{subscription_id}/cancel")
async def cancel_subscription_endpoint(
	subscription_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		return await _service.cancel_subscription(auth_user, subscription_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/creators/{creator_id}/subscription", response_model=Optional[models.Subscription])
async def follow_subscription_endpoint(
	creator_id: UUID,
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> Optional[models.Subscription]:
	try:
		return await _service.get_follow_subscription(auth_user, creator_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/creators/{creator_id}/can-subscribe")
async def can_subscribe_endpoint(
	creator_id: UUID,
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> dict:
	try:
		return await _service.can_user_subscribe(auth_user, creator_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/admin/transactions")
async def transactions_endpoint(
	start: Optional[datetime] = Query(default=None),
	end: Optional[datetime] = Query(default=None),
	creator_id: Optional[UUID] = Query(default=None),
	provider: Optional[str] = Query(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[dict]:
	try:
		return await _service.get_transactions_for_dashboard(
			auth_user, start=start, end=end, creator_id=creator_id, provider=provider
		)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/admin/transactions/summary")
async def transactions_summary_endpoint(
	start: Optional[datetime] = Query(default=None),
	end: Optional[datetime] = Query(default=None),
	creator_id: Optional[UUID] = Query(default=None),
	provider: Optional[str] = Query(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		return await _service.get_transactions_summary(
			auth_user, start=start, end=end, creator_id=creator_id, provider=provider
		)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
