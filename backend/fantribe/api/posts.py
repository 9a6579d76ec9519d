"""Post, feed and draft asset routes."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from fantribe.api._errors import to_http_error
from fantribe.domain import models
from fantribe.domain.posts_service import PostsService
from fantribe.infra.auth import AuthenticatedUser, get_current_user, get_optional_user
from fantribe.schemas import dto

router = APIRouter(tags=["posts"])
_service = PostsService()


@router.post("/posts", status_code=201)
async def create_post_endpoint(
	payload: dto.PostCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		return await _service.create_post(auth_user, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/feed", response_model=dto.FeedResponse)
async def home_feed_endpoint(
	cursor: Optional[str] = Query(default=None),
	limit: int = Query(default=20, ge=1, le=50),
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> dto.FeedResponse:
	try:
		return await _service.get_home_feed(auth_user, cursor=cursor, limit=limit)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/posts/{post_id}", response_model=dto.PostResponse)
async def get_post_endpoint(
	post_id: UUID,
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> dto.PostResponse:
	try:
		return await _service.get_post(auth_user, post_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.patch("/posts/{post_id}", response_model=models.Post)
async def update_post_endpoint(
	post_id: UUID,
	payload: dto.PostUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> models.Post:
	try:
		return await _service.update_post(auth_user, post_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete("/posts/{post_id}")
async def delete_post_endpoint(
	post_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, int]:
	try:
		return await _service.delete_post(auth_user, post_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/users/{user_id}/posts", response_model=dto.FeedResponse)
async def user_posts_endpoint(
	user_id: UUID,
	cursor: Optional[str] = Query(default=None),
	limit: int = Query(default=20, ge=1, le=50),
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> dto.FeedResponse:
	try:
		return await _service.get_user_posts_with_pinned(auth_user, user_id, cursor=cursor, limit=limit)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/users/{user_id}/gallery", response_model=dto.FeedResponse)
async def user_gallery_endpoint(
	user_id: UUID,
	cursor: Optional[str] = Query(default=None),
	limit: int = Query(default=30, ge=1, le=60),
	auth_user: Optional[AuthenticatedUser] = Depends(get_optional_user),
) -> dto.FeedResponse:
	try:
		return await _service.get_user_gallery(auth_user, user_id, cursor=cursor, limit=limit)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/drafts", response_model=models.DraftAsset, status_code=201)
async def create_draft_endpoint(
	payload: dto.DraftAssetRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> models.DraftAsset:
	try:
		return await _service.create_draft_asset(auth_user, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/drafts/delete")
async def delete_draft_endpoint(
	payload: dto.DraftAssetDeleteRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		return await _service.delete_draft_asset(auth_user, payload.media_url)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
