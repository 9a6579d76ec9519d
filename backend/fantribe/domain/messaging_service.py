"""Direct messages between creators, their subscribers and superusers."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Literal, Optional
from uuid import UUID, uuid4

from fantribe import sockets
from fantribe.domain import access, messaging_policy, models, policies, repo as repo_module
from fantribe.domain.constants import (
	CREATOR_GRANTED_MESSAGING_DURATION,
	DEFAULT_MESSAGES_PAGE,
	DELETED_MESSAGE_PREVIEW,
	MEDIA_PREVIEWS,
	MESSAGE_EDIT_WINDOW,
	MESSAGE_PREVIEW_LENGTH,
	MESSAGING_CONTACTS_LIMIT,
	REPLY_PREVIEW_LENGTH,
)
from fantribe.domain.exceptions import (
	ConversationNotFoundError,
	ForbiddenError,
	InvalidInputError,
	MessageNotFoundError,
	UnauthorizedError,
	UserNotFoundError,
)
from fantribe.infra import typing_indicators
from fantribe.infra.auth import AuthenticatedUser
from fantribe.obs import metrics as obs_metrics
from fantribe.schemas import dto

logger = logging.getLogger(__name__)

AT = models.AccountType
SS = models.SubscriptionStatus
ST = models.SubscriptionType

SortBy = Literal["lastActivity", "unread", "pinned"]

_CANNOT_START = {
	"no_content_subscription": "You must subscribe to this creator's content first.",
	"no_messaging_subscription": "You need a messaging subscription to contact this creator.",
	"creator_to_creator_blocked": "Creators cannot message each other.",
}
_CANNOT_SEND = {
	"no_messaging_subscription": "Your messaging subscription has expired. Renew it to keep chatting.",
	"admin_blocked": "This conversation has been blocked by a moderator.",
}


def truncate(text: str, length: int) -> str:
	if len(text) <= length:
		return text
	return text[: length - 3] + "..."


def message_preview(content: Optional[str], medias: Iterable[models.MessageMedia] = ()) -> str:
	medias = list(medias)
	if medias:
		return MEDIA_PREVIEWS.get(medias[0].type, "[Attachment]")
	return truncate(content or "", MESSAGE_PREVIEW_LENGTH)


def _other_side(role: str) -> str:
	return "user" if role == "creator" else "creator"


def _role_flag(prefix: str, role: str) -> str:
	return f"{prefix}_by_{role}"


class MessagingService:
	"""Conversations, messages, reactions and typing state."""

	def __init__(self, repository: repo_module.FanTribeRepository | None = None) -> None:
		self.repo = repository or repo_module.FanTribeRepository()

	# ------------------------------------------------------------------
	# Helpers

	async def _conversation(self, conversation_id: UUID) -> models.Conversation:
		conversation = await self.repo.get_conversation(conversation_id)
		if conversation is None:
			raise ConversationNotFoundError()
		return conversation

	async def _message(self, message_id: UUID) -> models.Message:
		message = await self.repo.get_message(message_id)
		if message is None:
			raise MessageNotFoundError()
		return message

	def _role_or_raise(self, conversation: models.Conversation, user: models.User) -> str:
		role = conversation.role_of(user.id)
		if role is None:
			raise UnauthorizedError("You are not part of this conversation.")
		return role

	async def _system_message(
		self,
		conversation: models.Conversation,
		sender_id: UUID,
		kind: models.SystemMessageType,
	) -> models.Message:
		return await self.repo.insert_message(
			models.Message(
				id=uuid4(),
				conversation_id=conversation.id,
				sender_id=sender_id,
				message_type=models.MessageType.SYSTEM,
				system_message_type=kind,
				created_at=policies.utcnow(),
			)
		)

	async def _is_last_message(self, conversation_id: UUID, message_id: UUID) -> bool:
		latest, _cursor = await self.repo.list_messages(conversation_id, limit=1)
		return bool(latest) and latest[0].id == message_id

	async def _broadcast_update(self, conversation: models.Conversation, message_id: UUID) -> None:
		payload = {"conversation_id": str(conversation.id), "message_id": str(message_id)}
		for participant in (conversation.creator_id, conversation.user_id):
			await sockets.emit_message_update(participant, payload)

	def _response(self, conversation: models.Conversation, viewer: models.User) -> dto.ConversationResponse:
		role = conversation.role_of(viewer.id)
		if role is None:
			unread, muted, pinned = 0, False, False
		else:
			unread = conversation.unread_count_creator if role == "creator" else conversation.unread_count_user
			muted = getattr(conversation, _role_flag("muted", role))
			pinned = getattr(conversation, _role_flag("pinned", role))
		return dto.ConversationResponse(
			**conversation.model_dump(),
			my_role=role,
			unread_count=unread,
			is_muted=muted,
			is_pinned=pinned,
		)

	# ------------------------------------------------------------------
	# Starting conversations

	async def start_conversation(self, auth_user: AuthenticatedUser, creator_id: UUID) -> dict[str, Any]:
		user = await policies.resolve_actor(self.repo, auth_user)
		creator = await self.repo.get_user(creator_id)
		if creator is None:
			raise UserNotFoundError("Creator not found.")
		if creator.account_type != AT.CREATOR:
			raise InvalidInputError("This user is not a creator.")
		permission = await messaging_policy.can_message(self.repo, user, creator)
		if not permission.can_send:
			raise ForbiddenError(
				_CANNOT_START.get(permission.reason or "", "You are not allowed to message this user."),
				context={"reason": permission.reason},
			)

		existing = await self.repo.find_conversation(creator.id, user.id)
		if existing is not None:
			if existing.deleted_by_user:
				await self.repo.update_conversation(existing.id, deleted_by_user=False)
			return {"conversation_id": str(existing.id), "created": False}

		conversation = await self.repo.insert_conversation(
			models.Conversation(
				id=uuid4(),
				creator_id=creator.id,
				user_id=user.id,
				initiated_by=user.id,
				initiator_role=models.InitiatorRole.USER,
				requires_subscription=True,
				created_at=policies.utcnow(),
			)
		)
		await self._system_message(conversation, user.id, models.SystemMessageType.CONVERSATION_STARTED)
		logger.info(
			"messaging.conversation_started",
			extra={"conversation_id": str(conversation.id), "initiator_role": "user"},
		)
		return {"conversation_id": str(conversation.id), "created": True}

	async def start_conversation_as_creator(self, auth_user: AuthenticatedUser, user_id: UUID) -> dict[str, Any]:
		"""Open a thread from the creator side.

		Superusers open unrestricted threads. Creators grant the user a short
		free ``messaging_access`` subscription when none is active so that
		the user can answer.
		"""
		initiator = await policies.resolve_actor(self.repo, auth_user, allowed_account_types=policies.CREATOR_TYPES)
		target = await self.repo.get_user(user_id)
		if target is None:
			raise UserNotFoundError()
		if target.id == initiator.id:
			raise InvalidInputError("You cannot message yourself.")
		is_admin = initiator.is_superuser

		existing = await self.repo.find_conversation(initiator.id, target.id)
		if existing is not None:
			if existing.deleted_by_creator:
				await self.repo.update_conversation(existing.id, deleted_by_creator=False)
			return {"conversation_id": str(existing.id), "created": False, "granted_subscription": False}

		now = policies.utcnow()
		granted = False
		if not is_admin and not await access.has_active_subscription(
			self.repo,
			target.id,
			initiator.id,
			ST.MESSAGING_ACCESS,
		):
			await self._grant_free_messaging(initiator.id, target.id)
			granted = True

		conversation = await self.repo.insert_conversation(
			models.Conversation(
				id=uuid4(),
				creator_id=initiator.id,
				user_id=target.id,
				initiated_by=initiator.id,
				initiator_role=models.InitiatorRole.ADMIN if is_admin else models.InitiatorRole.CREATOR,
				requires_subscription=not is_admin,
				created_at=now,
			)
		)
		await self._system_message(conversation, initiator.id, models.SystemMessageType.CONVERSATION_STARTED)
		logger.info(
			"messaging.conversation_started",
			extra={
				"conversation_id": str(conversation.id),
				"initiator_role": conversation.initiator_role.value,
				"granted_subscription": granted,
			},
		)
		return {"conversation_id": str(conversation.id), "created": True, "granted_subscription": granted}

	async def _grant_free_messaging(self, creator_id: UUID, subscriber_id: UUID) -> models.Subscription:
		now = policies.utcnow()
		end = now + CREATOR_GRANTED_MESSAGING_DURATION
		existing = await self.repo.find_subscription(creator_id, subscriber_id, ST.MESSAGING_ACCESS)
		if existing is not None:
			return await self.repo.update_subscription(
				existing.id,
				status=SS.ACTIVE,
				start_date=now,
				end_date=end,
				amount_paid=0.0,
				currency=models.Currency.XAF,
				granted_by_creator=True,
				last_update_time=now,
			)
		return await self.repo.insert_subscription(
			models.Subscription(
				id=uuid4(),
				subscriber_id=subscriber_id,
				creator_id=creator_id,
				type=ST.MESSAGING_ACCESS,
				status=SS.ACTIVE,
				start_date=now,
				end_date=end,
				amount_paid=0.0,
				currency=models.Currency.XAF,
				granted_by_creator=True,
				last_update_time=now,
				created_at=now,
			)
		)

	# ------------------------------------------------------------------
	# Messages

	async def send_message(
		self,
		auth_user: AuthenticatedUser,
		conversation_id: UUID,
		payload: dto.SendMessageRequest,
	) -> dto.MessageResponse:
		user = await policies.resolve_actor(self.repo, auth_user)
		await policies.enforce_rate_limit("send_message", user.id)
		conversation = await self._conversation(conversation_id)
		permission = await messaging_policy.conversation_permissions(self.repo, conversation, user)
		if not permission.can_send:
			raise ForbiddenError(
				_CANNOT_SEND.get(permission.reason or "", "You cannot send messages in this conversation."),
				context={"reason": permission.reason},
			)
		content = (payload.content or "").strip() or None
		if payload.medias and not permission.can_send_media:
			raise ForbiddenError("You cannot send media in this conversation.")
		if content is None and not payload.medias:
			raise InvalidInputError("A message needs text or media.")
		if payload.reply_to_message_id is not None:
			reply_to = await self.repo.get_message(payload.reply_to_message_id)
			if reply_to is None or reply_to.conversation_id != conversation.id:
				raise MessageNotFoundError("The message you are replying to does not exist.")

		role = conversation.role_of(user.id)
		now = policies.utcnow()
		message = await self.repo.insert_message(
			models.Message(
				id=uuid4(),
				conversation_id=conversation.id,
				sender_id=user.id,
				content=content,
				medias=payload.medias,
				message_type=models.MessageType.MEDIA if payload.medias else models.MessageType.TEXT,
				reply_to_message_id=payload.reply_to_message_id,
				sent_while_locked=role == "creator" and conversation.is_locked,
				created_at=now,
			)
		)
		await self.repo.update_conversation(
			conversation.id,
			last_message_at=now,
			last_message_preview=message_preview(content, payload.medias),
			last_message_sender_id=user.id,
		)
		if role is not None:
			await self.repo.increment_unread(conversation.id, role=_other_side(role))
		await typing_indicators.set_typing(conversation.id, user.id, False)
		obs_metrics.inc_message_sent(message.message_type.value)

		event = {"conversation_id": str(conversation.id), "message_id": str(message.id), "sender_id": str(user.id)}
		for participant in (conversation.creator_id, conversation.user_id):
			if participant != user.id:
				await sockets.emit_message_new(participant, event)
		return (await self._message_responses([message]))[0]

	async def edit_message(self, auth_user: AuthenticatedUser, message_id: UUID, content: str) -> dto.MessageResponse:
		user = await policies.resolve_actor(self.repo, auth_user)
		message = await self._message(message_id)
		if message.sender_id != user.id:
			raise UnauthorizedError("You can only edit your own messages.")
		if message.is_deleted:
			raise InvalidInputError("Deleted messages cannot be edited.")
		if message.message_type == models.MessageType.SYSTEM:
			raise InvalidInputError("System messages cannot be edited.")
		now = policies.utcnow()
		if now - message.created_at > MESSAGE_EDIT_WINDOW:
			raise InvalidInputError("Messages can only be edited within 15 minutes.")
		content = content.strip()
		if not content:
			raise InvalidInputError("A message needs text.")

		updated = await self.repo.update_message(
			message.id,
			content=content,
			original_content=message.original_content or message.content,
			is_edited=True,
			edited_at=now,
		)
		conversation = await self._conversation(message.conversation_id)
		if (
			message.message_type == models.MessageType.TEXT
			and conversation.last_message_sender_id == user.id
			and await self._is_last_message(conversation.id, message.id)
		):
			await self.repo.update_conversation(conversation.id, last_message_preview=message_preview(content))
		await self._broadcast_update(conversation, message.id)
		return (await self._message_responses([updated]))[0]

	async def delete_message(self, auth_user: AuthenticatedUser, message_id: UUID) -> dict[str, bool]:
		user = await policies.resolve_actor(self.repo, auth_user)
		message = await self._message(message_id)
		if message.sender_id != user.id and not user.is_superuser:
			raise UnauthorizedError("You can only delete your own messages.")
		if message.is_deleted:
			raise InvalidInputError("This message has already been deleted.")
		await self.repo.update_message(
			message.id,
			is_deleted=True,
			deleted_at=policies.utcnow(),
			deleted_by=user.id,
		)
		conversation = await self._conversation(message.conversation_id)
		if conversation.last_message_sender_id == message.sender_id and await self._is_last_message(
			conversation.id,
			message.id,
		):
			await self.repo.update_conversation(conversation.id, last_message_preview=DELETED_MESSAGE_PREVIEW)
		await self._broadcast_update(conversation, message.id)
		return {"success": True}

	async def toggle_reaction(self, auth_user: AuthenticatedUser, message_id: UUID, emoji: str) -> dict[str, Any]:
		user = await policies.resolve_actor(self.repo, auth_user)
		await policies.enforce_rate_limit("toggle_reaction", user.id)
		message = await self._message(message_id)
		conversation = await self._conversation(message.conversation_id)
		permission = await messaging_policy.conversation_permissions(self.repo, conversation, user)
		if not permission.can_view:
			raise UnauthorizedError("You are not part of this conversation.")
		if message.is_deleted:
			raise InvalidInputError("You cannot react to a deleted message.")

		existing = next((item for item in message.reactions if item.user_id == user.id), None)
		others = [item for item in message.reactions if item.user_id != user.id]
		if existing is not None and existing.emoji == emoji:
			reactions, action = others, "removed"
		else:
			reactions = others + [models.Reaction(emoji=emoji, user_id=user.id, created_at=policies.utcnow())]
			action = "replaced" if existing is not None else "added"
		await self.repo.update_message(message.id, reactions=reactions)
		await self._broadcast_update(conversation, message.id)
		return {"action": action, "emoji": emoji}

	# ------------------------------------------------------------------
	# Per-participant conversation state

	async def mark_as_read(self, auth_user: AuthenticatedUser, conversation_id: UUID) -> dict[str, bool]:
		user = await policies.resolve_actor(self.repo, auth_user)
		conversation = await self._conversation(conversation_id)
		role = conversation.role_of(user.id)
		if role is None:
			if user.is_superuser:
				return {"success": True}
			raise UnauthorizedError("You are not part of this conversation.")
		field = "unread_count_creator" if role == "creator" else "unread_count_user"
		await self.repo.update_conversation(conversation.id, **{field: 0})
		await sockets.emit_conversation_update(user.id, {"conversation_id": str(conversation.id), "unread_count": 0})
		return {"success": True}

	async def toggle_mute(self, auth_user: AuthenticatedUser, conversation_id: UUID) -> dict[str, bool]:
		user = await policies.resolve_actor(self.repo, auth_user)
		conversation = await self._conversation(conversation_id)
		field = _role_flag("muted", self._role_or_raise(conversation, user))
		muted = not getattr(conversation, field)
		await self.repo.update_conversation(conversation.id, **{field: muted})
		return {"is_muted": muted}

	async def toggle_pin(self, auth_user: AuthenticatedUser, conversation_id: UUID) -> dict[str, bool]:
		user = await policies.resolve_actor(self.repo, auth_user)
		conversation = await self._conversation(conversation_id)
		field = _role_flag("pinned", self._role_or_raise(conversation, user))
		pinned = not getattr(conversation, field)
		await self.repo.update_conversation(conversation.id, **{field: pinned})
		return {"is_pinned": pinned}

	async def delete_conversation(self, auth_user: AuthenticatedUser, conversation_id: UUID) -> dict[str, bool]:
		user = await policies.resolve_actor(self.repo, auth_user)
		conversation = await self._conversation(conversation_id)
		field = _role_flag("deleted", self._role_or_raise(conversation, user))
		await self.repo.update_conversation(conversation.id, **{field: True})
		return {"success": True}

	# ------------------------------------------------------------------
	# Typing

	async def set_typing(self, auth_user: AuthenticatedUser, conversation_id: UUID, is_typing: bool) -> None:
		user = await policies.resolve_actor(self.repo, auth_user)
		conversation = await self.repo.get_conversation(conversation_id)
		if conversation is None:
			return
		role = conversation.role_of(user.id)
		if role is None and not user.is_superuser:
			return
		await typing_indicators.set_typing(conversation.id, user.id, is_typing)
		other = conversation.user_id if role == "creator" else conversation.creator_id
		await sockets.emit_typing(
			other,
			{"conversation_id": str(conversation.id), "user_id": str(user.id), "is_typing": is_typing},
		)

	async def get_typing_indicators(self, auth_user: AuthenticatedUser, conversation_id: UUID) -> list[dto.UserSummary]:
		user = await policies.resolve_actor(self.repo, auth_user)
		conversation = await self.repo.get_conversation(conversation_id)
		if conversation is None:
			return []
		if conversation.role_of(user.id) is None and not user.is_superuser:
			return []
		typing_ids = [
			UUID(item) for item in await typing_indicators.get_typing_users(conversation.id)
			if item != str(user.id)
		]
		users = await self.repo.get_users(typing_ids)
		return [dto.UserSummary.from_user(users[item]) for item in typing_ids if item in users]

	async def cleanup_typing_indicators(self) -> dict[str, int]:
		removed = await typing_indicators.cleanup_expired()
		if removed:
			logger.info("messaging.typing_cleanup", extra={"removed": removed})
		return {"removed": removed}

	# ------------------------------------------------------------------
	# Reads

	async def get_my_conversations(
		self,
		auth_user: AuthenticatedUser,
		*,
		sort_by: SortBy = "lastActivity",
	) -> list[dto.ConversationResponse]:
		user = await policies.resolve_actor(self.repo, auth_user)
		conversations = [
			conversation
			for conversation in await self.repo.list_conversations_for(user.id)
			if not getattr(conversation, _role_flag("deleted", conversation.role_of(user.id) or "user"))
		]
		others = await self.repo.get_users(
			[item.user_id if item.creator_id == user.id else item.creator_id for item in conversations]
		)
		items: list[dto.ConversationResponse] = []
		for conversation in conversations:
			response = self._response(conversation, user)
			other_id = conversation.user_id if response.my_role == "creator" else conversation.creator_id
			other = others.get(other_id)
			response.other_participant = dto.UserSummary.from_user(other) if other else None
			items.append(response)

		def _activity(item: dto.ConversationResponse) -> float:
			moment = item.last_message_at or item.created_at
			return moment.timestamp()

		if sort_by == "unread":
			items.sort(key=lambda item: (item.unread_count, _activity(item)), reverse=True)
		elif sort_by == "pinned":
			items.sort(key=lambda item: (item.is_pinned, _activity(item)), reverse=True)
		else:
			items.sort(key=_activity, reverse=True)
		return items

	async def get_conversation(
		self,
		auth_user: AuthenticatedUser,
		conversation_id: UUID,
	) -> dto.ConversationResponse:
		user = await policies.resolve_actor(self.repo, auth_user)
		conversation = await self._conversation(conversation_id)
		role = conversation.role_of(user.id)
		if role is None and not user.is_superuser:
			raise ConversationNotFoundError()
		response = self._response(conversation, user)
		other_id = conversation.creator_id if role == "user" else conversation.user_id
		other = await self.repo.get_user(other_id)
		response.other_participant = dto.UserSummary.from_user(other) if other else None
		response.permissions = await messaging_policy.conversation_permissions(self.repo, conversation, user)
		return response

	async def _message_responses(self, messages: list[models.Message]) -> list[dto.MessageResponse]:
		reply_ids = [message.reply_to_message_id for message in messages if message.reply_to_message_id]
		replies = await self.repo.get_messages(reply_ids) if reply_ids else {}
		items: list[dto.MessageResponse] = []
		for message in messages:
			preview = None
			reply = replies.get(message.reply_to_message_id) if message.reply_to_message_id else None
			if reply is not None:
				if reply.is_deleted:
					preview = DELETED_MESSAGE_PREVIEW
				elif reply.content:
					preview = truncate(reply.content, REPLY_PREVIEW_LENGTH)
				else:
					preview = message_preview(None, reply.medias)
			response = dto.MessageResponse.model_validate(message)
			if message.is_deleted:
				response.content = None
				response.medias = []
			response.reply_preview = preview
			items.append(response)
		return items

	async def get_messages(
		self,
		auth_user: AuthenticatedUser,
		conversation_id: UUID,
		*,
		cursor: str | None = None,
		limit: int = DEFAULT_MESSAGES_PAGE,
	) -> dto.MessageListResponse:
		user = await policies.resolve_actor(self.repo, auth_user)
		conversation = await self._conversation(conversation_id)
		permission = await messaging_policy.conversation_permissions(self.repo, conversation, user)
		if not permission.can_view:
			return dto.MessageListResponse(items=[], is_locked=permission.is_locked, reason=permission.reason)
		after = repo_module.decode_cursor(cursor) if cursor else None
		page, next_cursor = await self.repo.list_messages(conversation.id, limit=max(1, min(limit, 100)), after=after)
		page.reverse()
		return dto.MessageListResponse(
			items=await self._message_responses(page),
			has_more=next_cursor is not None,
			next_cursor=next_cursor,
			is_locked=permission.is_locked,
			reason=permission.reason,
			can_send_media=permission.can_send_media,
		)

	async def get_total_unread_count(self, auth_user: AuthenticatedUser) -> int:
		user = await policies.resolve_actor(self.repo, auth_user)
		total = 0
		for conversation in await self.repo.list_conversations_for(user.id):
			role = conversation.role_of(user.id)
			if role is None:
				continue
			if getattr(conversation, _role_flag("deleted", role)) or getattr(conversation, _role_flag("muted", role)):
				continue
			total += conversation.unread_count_creator if role == "creator" else conversation.unread_count_user
		return total

	async def get_messaging_contacts(
		self,
		auth_user: AuthenticatedUser,
		*,
		search: str | None = None,
	) -> list[dto.UserSummary]:
		"""People the caller may open a conversation with."""
		user = await policies.resolve_actor(self.repo, auth_user)
		if user.is_superuser:
			candidates = [item for item in await self.repo.list_users() if item.id != user.id]
		elif user.is_creator:
			rows = await self.repo.list_subscriptions(creator_id=user.id, statuses=[SS.ACTIVE, SS.EXPIRED])
			ids = list(dict.fromkeys(row.subscriber_id for row in rows if row.subscriber_id != user.id))
			found = await self.repo.get_users(ids)
			candidates = [found[item] for item in ids if item in found]
		else:
			rows = await self.repo.list_subscriptions(subscriber_id=user.id, statuses=[SS.ACTIVE])
			ids = list(dict.fromkeys(row.creator_id for row in rows))
			found = await self.repo.get_users(ids)
			candidates = [found[item] for item in ids if item in found and found[item].account_type == AT.CREATOR]
		if search and search.strip():
			term = search.strip().lower()
			candidates = [
				item for item in candidates
				if term in item.name.lower() or term in (item.username or "").lower()
			]
		return [dto.UserSummary.from_user(item) for item in candidates[:MESSAGING_CONTACTS_LIMIT]]

	# ------------------------------------------------------------------
	# Locking

	async def lock_conversation(
		self,
		conversation: models.Conversation,
		reason: models.LockReason = models.LockReason.SUBSCRIPTION_EXPIRED,
	) -> bool:
		if conversation.is_locked:
			return False
		await self.repo.update_conversation(
			conversation.id,
			is_locked=True,
			locked_at=policies.utcnow(),
			locked_reason=reason,
		)
		await self._system_message(conversation, conversation.user_id, models.SystemMessageType.CONVERSATION_LOCKED)
		logger.info("messaging.conversation_locked", extra={"conversation_id": str(conversation.id), "reason": reason.value})
		return True

	async def unlock_conversation_on_renewal(self, creator_id: UUID, subscriber_id: UUID) -> bool:
		conversation = await self.repo.find_conversation(creator_id, subscriber_id)
		if conversation is None or not conversation.is_locked:
			return False
		if conversation.locked_reason != models.LockReason.SUBSCRIPTION_EXPIRED:
			return False
		await self.repo.update_conversation(conversation.id, is_locked=False, locked_at=None, locked_reason=None)
		await self._system_message(conversation, subscriber_id, models.SystemMessageType.CONVERSATION_UNLOCKED)
		logger.info("messaging.conversation_unlocked", extra={"conversation_id": str(conversation.id)})
		return True

	async def check_and_lock_expired_messaging_subscriptions(self) -> dict[str, int]:
		scanned = 0
		locked = 0
		for conversation in await self.repo.list_unlocked_subscription_conversations():
			scanned += 1
			if await access.has_active_subscription(
				self.repo,
				conversation.user_id,
				conversation.creator_id,
				ST.MESSAGING_ACCESS,
			):
				continue
			if await self.lock_conversation(conversation, models.LockReason.SUBSCRIPTION_EXPIRED):
				locked += 1
		return {"scanned": scanned, "locked": locked}

	async def admin_block_conversation(
		self,
		auth_user: AuthenticatedUser,
		conversation_id: UUID,
		reason: str,
	) -> dict[str, bool]:
		admin = policies.require_superuser(await policies.resolve_actor(self.repo, auth_user))
		conversation = await self._conversation(conversation_id)
		await self.repo.update_conversation(
			conversation.id,
			blocked_by_admin=True,
			blocked_by_admin_reason=reason.strip(),
		)
		logger.info(
			"messaging.admin_blocked",
			extra={"conversation_id": str(conversation.id), "admin_id": str(admin.id)},
		)
		return {"success": True}

	async def admin_unblock_conversation(self, auth_user: AuthenticatedUser, conversation_id: UUID) -> dict[str, bool]:
		admin = policies.require_superuser(await policies.resolve_actor(self.repo, auth_user))
		conversation = await self._conversation(conversation_id)
		await self.repo.update_conversation(conversation.id, blocked_by_admin=False, blocked_by_admin_reason=None)
		logger.info(
			"messaging.admin_unblocked",
			extra={"conversation_id": str(conversation.id), "admin_id": str(admin.id)},
		)
		return {"success": True}
