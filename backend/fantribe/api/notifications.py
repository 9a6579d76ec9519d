"""Notification inbox routes."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response

from fantribe.api._errors import to_http_error
from fantribe.domain import models
from fantribe.domain.notifications_service import NotificationsService
from fantribe.infra.auth import AuthenticatedUser, get_current_user
from fantribe.schemas import dto

router = APIRouter(tags=["notifications"])
_service = NotificationsService()


@router.get("/notifications", response_model=dto.NotificationListResponse)
async def list_notifications_endpoint(
	limit: int = Query(default=20, ge=1, le=50),
	cursor: Optional[str] = Query(default=None),
	type: Optional[models.NotificationType] = Query(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.NotificationListResponse:
	try:
		return await _service.list_notifications(auth_user, limit=limit, cursor=cursor, type=type)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/notifications/unread-count")
async def unread_count_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, int]:
	try:
		return {"count": await _service.get_unread_count(auth_user)}
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/notifications/read-all")
async def mark_all_read_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, int]:
	try:
		return {"updated": await _service.mark_all_as_read(auth_user)}
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/notifications/{notification_id}/read", status_code=204, response_class=Response, response_model=None)
async def mark_read_endpoint(
	notification_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
	try:
		await _service.mark_as_read(auth_user, notification_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
	return Response(status_code=204)


@router.delete("/notifications/{notification_id}", status_code=204, response_class=Response, response_model=None)
async def delete_notification_endpoint(
	notification_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
	try:
		await _service.delete_notification(auth_user, notification_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
	return Response(status_code=204)
