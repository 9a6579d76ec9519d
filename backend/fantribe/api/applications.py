"""Creator application routes."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from fantribe.api._errors import to_http_error
from fantribe.domain import models
from fantribe.domain.applications_service import ApplicationsService
from fantribe.infra.auth import AuthenticatedUser, get_current_user
from fantribe.schemas import dto

router = APIRouter(tags=["applications"])
_service = ApplicationsService()


@router.post("/applications", status_code=201)
async def submit_application_endpoint(
	payload: dto.ApplicationSubmitRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		return await _service.submit_application(auth_user, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/applications/me", response_model=Optional[models.CreatorApplication])
async def my_application_endpoint(
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> Optional[models.CreatorApplication]:
	try:
		return await _service.get_user_application(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/applications/me/reapply")
async def reapplication_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		return await _service.request_reapplication(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/admin/applications", response_model=list[models.CreatorApplication])
async def all_applications_endpoint(
	pending: bool = False,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[models.CreatorApplication]:
	try:
		if pending:
			return await _service.get_pending_applications(auth_user)
		return await _service.get_all_applications(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/admin/applications/{application_id}", response_model=models.CreatorApplication)
async def get_application_endpoint(
	application_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> models.CreatorApplication:
	try:
		return await _service.get_application_by_id(auth_user, application_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/admin/users/{user_id}/application", response_model=Optional[models.CreatorApplication])
async def user_application_endpoint(
	user_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> Optional[models.CreatorApplication]:
	try:
		return await _service.get_user_application(auth_user, user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/admin/applications/{application_id}/review")
async def review_application_endpoint(
	application_id: UUID,
	payload: dto.ApplicationReviewRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		return await _service.review_application(auth_user, application_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
