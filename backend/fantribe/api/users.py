"""Profile, search, presence and badge routes."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response

from fantribe.api._errors import to_http_error
from fantribe.api._webhooks import require_webhook_secret
from fantribe.domain import models
from fantribe.domain.users_service import UsersService
from fantribe.infra.auth import AuthenticatedUser, get_current_user, get_optional_user
from fantribe.schemas import dto

router = APIRouter(tags=["users"])
_service = UsersService()


@router.post("/webhooks/identity", response_model=models.User, dependencies=[Depends(require_webhook_secret)])
async def identity_upsert_endpoint(payload: dto.IdentityUpsertRequest) -> models.User:
	try:
		return await _service.upsert_from_identity(payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete(
	"/webhooks/identity/{external_id}",
	dependencies=[Depends(require_webhook_secret)],
)
async def identity_delete_endpoint(external_id: str) -> dict[str, bool]:
	try:
		return {"deleted": await _service.delete_from_identity(external_id)}
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/users/me", response_model=Optional[models.User])
async def me_endpoint(
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> Optional[models.User]:
	try:
		return await _service.get_current_user(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.put("/users/me/profile", response_model=models.User)
async def update_profile_endpoint(
	payload: dto.ProfileUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> models.User:
	try:
		return await _service.update_profile(auth_user, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.put("/users/me/image", response_model=models.User)
async def update_image_endpoint(
	payload: dto.ImageUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> models.User:
	try:
		return await _service.update_profile_image(auth_user, payload.url)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.put("/users/me/banner", response_model=models.User)
async def update_banner_endpoint(
	payload: dto.ImageUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> models.User:
	try:
		return await _service.update_banner_image(auth_user, payload.url)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.put("/users/me/social-links", response_model=models.User)
async def update_social_links_endpoint(
	payload: dto.SocialLinksRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> models.User:
	try:
		return await _service.update_social_links(auth_user, payload.social_links)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.put("/users/me/adult-content", response_model=models.User)
async def update_adult_content_endpoint(
	payload: dto.AdultContentRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> models.User:
	try:
		return await _service.update_adult_content_preference(auth_user, payload.allow_adult_content)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.patch("/users/me/notification-preferences", response_model=models.User)
async def update_notification_preferences_endpoint(
	payload: dto.NotificationPreferencesRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> models.User:
	try:
		return await _service.update_notification_preferences(auth_user, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/users/me/pinned-posts")
async def toggle_pinned_post_endpoint(
	payload: dto.PinPostRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		return await _service.toggle_pinned_post(auth_user, payload.post_id, replace_oldest=payload.replace_oldest)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/users/me/heartbeat", status_code=204, response_class=Response, response_model=None)
async def heartbeat_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> Response:
	try:
		user = await _service.get_current_user(auth_user)
		if user is not None:
			await _service.presence_heartbeat(user.id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
	return Response(status_code=204)


@router.post("/users/me/offline", status_code=204, response_class=Response, response_model=None)
async def offline_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> Response:
	try:
		user = await _service.get_current_user(auth_user)
		if user is not None:
			await _service.set_offline(user.id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
	return Response(status_code=204)


@router.get("/users/{user_id}/pinned-posts", response_model=list[models.Post])
async def pinned_posts_endpoint(user_id: UUID) -> list[models.Post]:
	try:
		return await _service.get_pinned_posts(user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/users/search", response_model=list[dto.UserSummary])
async def search_users_endpoint(
	q: str = Query(default="", max_length=100),
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> list[dto.UserSummary]:
	try:
		return await _service.search_users(auth_user, q)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/users/suggested-creators", response_model=list[dto.UserSummary])
async def suggested_creators_endpoint(
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> list[dto.UserSummary]:
	try:
		return await _service.get_suggested_creators(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/users/username-available")
async def username_available_endpoint(username: str = Query(..., min_length=1, max_length=30)) -> dict[str, bool]:
	try:
		return {"available": await _service.get_available_username(username)}
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/users/by-username/{username}", response_model=dto.PublicUserResponse)
async def profile_endpoint(username: str) -> dto.PublicUserResponse:
	try:
		return await _service.get_user_profile(username)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/users/{user_id}/stats", response_model=models.UserStats)
async def user_stats_endpoint(user_id: UUID) -> models.UserStats:
	try:
		return await _service.get_user_stats(user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/admin/users/{user_id}/stats", response_model=models.UserStats)
async def admin_increment_stats_endpoint(
	user_id: UUID,
	payload: dto.StatIncrementRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> models.UserStats:
	try:
		return await _service.admin_increment_user_stat(auth_user, user_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/admin/users/{user_id}/badges", response_model=models.User)
async def add_badge_endpoint(
	user_id: UUID,
	payload: dto.BadgeRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> models.User:
	try:
		return await _service.add_badge(auth_user, user_id, payload.badge_type)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete("/admin/users/{user_id}/badges/{badge_type}", response_model=models.User)
async def remove_badge_endpoint(
	user_id: UUID,
	badge_type: str,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> models.User:
	try:
		return await _service.remove_badge(auth_user, user_id, badge_type)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
