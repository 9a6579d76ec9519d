"""Follow and block routes."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from fantribe.api._errors import to_http_error
from fantribe.domain.social_service import SocialService
from fantribe.infra.auth import AuthenticatedUser, get_current_user, get_optional_user
from fantribe.schemas import dto

router = APIRouter(tags=["social"])
_service = SocialService()


@router.post("/users/{user_id}/follow")
async def follow_endpoint(user_id: UUID, auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		return await _service.follow_user(auth_user, user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete("/users/{user_id}/follow")
async def unfollow_endpoint(user_id: UUID, auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		return await _service.unfollow_user(auth_user, user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/users/{user_id}/follow")
async def is_following_endpoint(
	user_id: UUID,
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> dict[str, bool]:
	try:
		return {"following": await _service.is_following(auth_user, user_id)}
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/users/{user_id}/followers", response_model=list[dto.UserSummary])
async def followers_endpoint(user_id: UUID) -> list[dto.UserSummary]:
	try:
		return await _service.get_followers(user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/users/{user_id}/following", response_model=list[dto.UserSummary])
async def following_endpoint(user_id: UUID) -> list[dto.UserSummary]:
	try:
		return await _service.get_following(user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/users/{user_id}/follow-counts")
async def follow_counts_endpoint(user_id: UUID) -> dict[str, int]:
	try:
		return await _service.get_follow_counts(user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/users/{user_id}/block")
async def block_endpoint(user_id: UUID, auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		return await _service.block_user(auth_user, user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete("/users/{user_id}/block")
async def unblock_endpoint(user_id: UUID, auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		return await _service.unblock_user(auth_user, user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/users/{user_id}/block")
async def blocking_status_endpoint(
	user_id: UUID,
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> dict[str, bool]:
	try:
		return await _service.blocking_status(auth_user, user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/blocks", response_model=list[dto.UserSummary])
async def blocked_users_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> list[dto.UserSummary]:
	try:
		return await _service.get_blocked_users(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
