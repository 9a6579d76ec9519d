"""Comment routes."""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response

from fantribe.api._errors import to_http_error
from fantribe.domain.comments_service import CommentsService
from fantribe.infra.auth import AuthenticatedUser, get_current_user
from fantribe.schemas import dto

router = APIRouter(tags=["comments"])
_service = CommentsService()


@router.get("/posts/{post_id}/comments", response_model=list[dto.CommentResponse])
async def list_comments_endpoint(post_id: UUID) -> list[dto.CommentResponse]:
	try:
		return await _service.list_comments(post_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/posts/{post_id}/comments/recent", response_model=list[dto.CommentResponse])
async def recent_comments_endpoint(
	post_id: UUID,
	limit: int = Query(default=3, ge=1, le=20),
) -> list[dto.CommentResponse]:
	try:
		return await _service.get_recent_comments(post_id, limit=limit)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/posts/{post_id}/comments/count")
async def count_comments_endpoint(post_id: UUID) -> dict[str, int]:
	try:
		return {"count": await _service.count_comments(post_id)}
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/posts/{post_id}/comments", response_model=dto.CommentResponse, status_code=201)
async def add_comment_endpoint(
	post_id: UUID,
	payload: dto.CommentCreateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CommentResponse:
	try:
		return await _service.add_comment(auth_user, post_id, payload.content)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.patch("/comments/{comment_id}", response_model=dto.CommentResponse)
async def update_comment_endpoint(
	comment_id: UUID,
	payload: dto.CommentUpdateRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.CommentResponse:
	try:
		return await _service.update_comment(auth_user, comment_id, payload.content)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete("/comments/{comment_id}", status_code=204, response_class=Response, response_model=None)
async def delete_comment_endpoint(
	comment_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
	try:
		await _service.delete_comment(auth_user, comment_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
	return Response(status_code=204)


@router.get("/users/{user_id}/comments", response_model=list[dto.CommentResponse])
async def user_comments_endpoint(user_id: UUID) -> list[dto.CommentResponse]:
	try:
		return await _service.list_user_comments(user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
