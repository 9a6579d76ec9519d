"""Direct messaging routes."""

from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response

from fantribe.api._errors import to_http_error
from fantribe.domain.constants import DEFAULT_MESSAGES_PAGE
from fantribe.domain.messaging_service import MessagingService, SortBy
from fantribe.infra.auth import AuthenticatedUser, get_current_user
from fantribe.schemas import dto

router = APIRouter(tags=["messaging"])
_service = MessagingService()


@router.post("/conversations", status_code=201)
async def start_conversation_endpoint(
	payload: dto.StartConversationRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		return await _service.start_conversation(auth_user, payload.creator_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/conversations/as-creator", status_code=201)
async def start_conversation_as_creator_endpoint(
	payload: dto.StartConversationAsCreatorRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		return await _service.start_conversation_as_creator(auth_user, payload.user_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/conversations", response_model=list[dto.ConversationResponse])
async def my_conversations_endpoint(
	sort_by: SortBy = Query(default="lastActivity", alias="sortBy"),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[dto.ConversationResponse]:
	try:
		return await _service.get_my_conversations(auth_user, sort_by=sort_by)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/conversations/unread-count")
async def total_unread_endpoint(auth_user: AuthenticatedUser = Depends(get_current_user)) -> dict[str, int]:
	try:
		return {"count": await _service.get_total_unread_count(auth_user)}
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/conversations/contacts", response_model=list[dto.UserSummary])
async def contacts_endpoint(
	search: Optional[str] = Query(default=None, max_length=100),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[dto.UserSummary]:
	try:
		return await _service.get_messaging_contacts(auth_user, search=search)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/conversations/{conversation_id}", response_model=dto.ConversationResponse)
async def get_conversation_endpoint(
	conversation_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.ConversationResponse:
	try:
		return await _service.get_conversation(auth_user, conversation_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.get("/conversations/{conversation_id}/messages", response_model=dto.MessageListResponse)
async def list_messages_endpoint(
	conversation_id: UUID,
	cursor: Optional[str] = Query(default=None),
	limit: int = Query(default=DEFAULT_MESSAGES_PAGE, ge=1, le=100),
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MessageListResponse:
	try:
		return await _service.get_messages(auth_user, conversation_id, cursor=cursor, limit=limit)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/conversations/{conversation_id}/messages", response_model=dto.MessageResponse, status_code=201)
async def send_message_endpoint(
	conversation_id: UUID,
	payload: dto.SendMessageRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MessageResponse:
	try:
		return await _service.send_message(auth_user, conversation_id, payload)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/conversations/{conversation_id}/read")
async def mark_read_endpoint(
	conversation_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, bool]:
	try:
		return await _service.mark_as_read(auth_user, conversation_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/conversations/{conversation_id}/mute")
async def toggle_mute_endpoint(
	conversation_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, bool]:
	try:
		return await _service.toggle_mute(auth_user, conversation_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/conversations/{conversation_id}/pin")
async def toggle_pin_endpoint(
	conversation_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, bool]:
	try:
		return await _service.toggle_pin(auth_user, conversation_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete("/conversations/{conversation_id}")
async def delete_conversation_endpoint(
	conversation_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, bool]:
	try:
		return await _service.delete_conversation(auth_user, conversation_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/conversations/{conversation_id}/typing", status_code=204, response_class=Response, response_model=None)
async def typing_endpoint(
	conversation_id: UUID,
	payload: dto.TypingRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> Response:
	try:
		await _service.set_typing(auth_user, conversation_id, payload.is_typing)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
	return Response(status_code=204)


@router.get("/conversations/{conversation_id}/typing", response_model=list[dto.UserSummary])
async def typing_users_endpoint(
	conversation_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> list[dto.UserSummary]:
	try:
		return await _service.get_typing_indicators(auth_user, conversation_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.patch("/messages/{message_id}", response_model=dto.MessageResponse)
async def edit_message_endpoint(
	message_id: UUID,
	payload: dto.EditMessageRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dto.MessageResponse:
	try:
		return await _service.edit_message(auth_user, message_id, payload.content)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete("/messages/{message_id}")
async def delete_message_endpoint(
	message_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, bool]:
	try:
		return await _service.delete_message(auth_user, message_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/messages/{message_id}/reactions")
async def toggle_reaction_endpoint(
	message_id: UUID,
	payload: dto.ReactionRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict:
	try:
		return await _service.toggle_reaction(auth_user, message_id, payload.emoji)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.post("/admin/conversations/{conversation_id}/block")
async def admin_block_endpoint(
	conversation_id: UUID,
	payload: dto.AdminBlockRequest,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, bool]:
	try:
		return await _service.admin_block_conversation(auth_user, conversation_id, payload.reason)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc


@router.delete("/admin/conversations/{conversation_id}/block")
async def admin_unblock_endpoint(
	conversation_id: UUID,
	auth_user: AuthenticatedUser = Depends(get_current_user),
) -> dict[str, bool]:
	try:
		return await _service.admin_unblock_conversation(auth_user, conversation_id)
	except Exception as exc:  # pragma: no cover
		raise to_http_error(exc) from exc
