"""Tip routes and the tip provider webhook."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from fantribe.api._errors import to_http_error
from fantribe.api._webhooks import require_webhook_secret
from fantribe.domain.tips_service import TipsService
from fantribe.infra.auth import AuthenticatedUser, get_current_user
from fantribe.schemas import dto

router = APIRouter(tags=["tips"])
_service = TipsService()


@router.post("/webhooks/tips", dependencies=[Depends(require_webhook_secret)])
async def tip_webhook_endpoint(payload: dto.TipWebhookRequest) -> dict:
	try:
		return await _service.process_tip(payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/tips/validate")
async def validate_tip_endpoint(
	payload: dto.TipValidateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		return await _service.validate_tip_amount(auth_user, payload.amount)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/tips/earnings")
async def tip_earnings_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		return await _service.get_creator_tip_earnings(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
