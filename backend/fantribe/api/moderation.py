"""Report and ban routes."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from fantribe.api._errors import to_http_error
from fantribe.domain import models
from fantribe.domain.moderation_service import ModerationService
from fantribe.infra.auth import AuthenticatedUser, get_current_user
from fantribe.schemas import dto

router = APIRouter(tags=["moderation"])
_service = ModerationService()


@router.post("/reports", status_code=201)
async def create_report_endpoint(
	payload: dto.ReportCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		return await _service.create_report(auth_user, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/admin/reports", response_model=list[dto.ReportResponse])
async def list_reports_endpoint(
	status: Optional[models.ReportStatus] = Query(default=None),
	type: Optional[models.ReportType] = Query(default=None),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[dto.ReportResponse]:
	try:
		return await _service.get_all_reports(auth_user, status=status, type=type)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/admin/reports/stats")
async def reports_stats_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		return await _service.get_reports_stats(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/admin/reports/{report_id}", response_model=dto.ReportResponse)
async def get_report_endpoint(
	report_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ReportResponse:
	try:
		return await _service.get_report_by_id(auth_user, report_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.patch("/admin/reports/{report_id}")
async def update_report_endpoint(
	report_id: UUID,
	payload: dto.ReportStatusRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, bool]:
	try:
		return await _service.update_report_status(auth_user, report_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/admin/reports/{report_id}/delete-content")
async def delete_reported_content_endpoint(
	report_id: UUID,
	payload: dto.ResolveContentRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		return await _service.delete_reported_content_and_resolve(
			auth_user, report_id, admin_notes=payload.admin_notes
		)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/admin/users/{user_id}/reports")
async def report_history_endpoint(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		return await _service.get_report_history_for_user(auth_user, user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/admin/bans")
async def ban_user_endpoint(
	payload: dto.BanRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, bool]:
	try:
		return await _service.ban_user(auth_user, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/admin/bans")
async def banned_users_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> list[dict]:
	try:
		return await _service.get_all_banned_users(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/admin/bans/history")
async def ban_history_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> list[dict]:
	try:
		return await _service.get_ban_history(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/admin/bans/{user_id}")
async def ban_info_endpoint(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		return await _service.get_user_ban_info(auth_user, user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete("/admin/bans/{user_id}")
async def unban_user_endpoint(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, bool]:
	try:
		return await _service.unban_user(auth_user, user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
