"""Like and bookmark routes."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends

from fantribe.api._errors import to_http_error
from fantribe.domain.likes_service import LikesService
from fantribe.infra.auth import AuthenticatedUser, get_current_user, get_optional_user
from fantribe.schemas import dto

router = APIRouter(tags=["likes"])
_service = LikesService()


@router.post("/posts/{post_id}/like")
async def like_endpoint(post_id: UUID, auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		return await _service.like_post(auth_user, post_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete("/posts/{post_id}/like")
async def unlike_endpoint(post_id: UUID, auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		return await _service.unlike_post(auth_user, post_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/posts/{post_id}/likes")
async def like_state_endpoint(
	post_id: UUID,
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> dict:
	try:
		return {
			"count": await _service.count_likes(post_id),
			"liked": await _service.is_liked(auth_user, post_id),
		}
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/posts/{post_id}/likers", response_model=list[dto.UserSummary])
async def likers_endpoint(post_id: UUID) -> list[dto.UserSummary]:
	try:
		return await _service.get_post_likers(post_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/likes")
async def liked_posts_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, list[str]]:
	try:
		posts = await _service.get_liked_posts(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
	return {"post_ids": [str(post.id) for post in posts]}


@router.post("/posts/{post_id}/bookmark")
async def bookmark_endpoint(post_id: UUID, auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		return await _service.add_bookmark(auth_user, post_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete("/posts/{post_id}/bookmark")
async def unbookmark_endpoint(post_id: UUID, auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict:
	try:
		return await _service.remove_bookmark(auth_user, post_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/posts/{post_id}/bookmark")
async def bookmark_state_endpoint(
	post_id: UUID,
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> dict:
	try:
		return {
			"count": await _service.count_bookmarks(post_id),
			"bookmarked": await _service.is_bookmarked(auth_user, post_id),
		}
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/bookmarks")
async def bookmarks_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, list[str]]:
	try:
		posts = await _service.list_bookmarks(auth_user)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
	return {"post_ids": [str(post.id) for post in posts]}
