"""Superuser dashboard routes and the creator dashboard overview."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from fantribe.api._errors import to_http_error
from fantribe.domain.admin_service import AdminService, SearchCategory
from fantribe.domain.notification_queue import NotificationQueue
from fantribe.infra.auth import AuthenticatedUser, get_current_user

router = APIRouter(tags=["admin"])
_service = AdminService()
_queue = NotificationQueue()


@router.get("/admin/counts")
async def superuser_counts_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, int]:
	try:
		return await _service.get_superuser_counts(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/admin/search")
async def global_search_endpoint(
	q: str = Query(..., min_length=1, max_length=100),
	category: SearchCategory = Query(default="all"),
	limit: int = Query(default=5, ge=1, le=50),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		return await _service.global_search(auth_user, q, category=category, limit=limit)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/admin/stats")
async def dashboard_stats_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		return await _service.get_dashboard_stats(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/dashboard/overview")
async def dashboard_overview_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		return await _service.get_dashboard_overview(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/admin/notification-queue")
async def notification_queue_stats_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, int]:
	try:
		return await _queue.get_queue_stats(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
