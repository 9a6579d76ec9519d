"""Who may message whom.

Permission matrix for new conversations:

* SUPERUSER -> anyone: allowed, media included.
* CREATOR -> CREATOR: refused.
* CREATOR -> USER: allowed, media included.
* USER -> CREATOR: needs active ``content_access`` then ``messaging_access``
  subscriptions; text only.
"""

from __future__ import annotations

from typing import Optional

from fantribe.domain import access, models
from fantribe.schemas.dto import ConversationPermissions

AT = models.AccountType
ST = models.SubscriptionType


def _denied(reason: str, **extra) -> ConversationPermissions:
	return ConversationPermissions(can_view=False, can_send=False, can_send_media=False, reason=reason, **extra)


async def can_message(
	repo,
	sender: Optional[models.User],
	recipient: Optional[models.User],
) -> ConversationPermissions:
	if sender is None or recipient is None:
		return _denied("user_not_found")
	if sender.account_type == AT.SUPERUSER:
		return ConversationPermissions(can_view=True, can_send=True, can_send_media=True)
	if sender.account_type == AT.CREATOR and recipient.account_type == AT.CREATOR:
		return _denied("creator_to_creator_blocked")
	if sender.account_type == AT.CREATOR and recipient.account_type == AT.USER:
		return ConversationPermissions(can_view=True, can_send=True, can_send_media=True)
	if sender.account_type == AT.USER and recipient.account_type == AT.CREATOR:
		if not await access.has_active_subscription(repo, sender.id, recipient.id, ST.CONTENT_ACCESS):
			return _denied(
				"no_content_subscription",
				is_locked=True,
				requires_subscription=True,
				requires_content_subscription=True,
			)
		if not await access.has_active_subscription(repo, sender.id, recipient.id, ST.MESSAGING_ACCESS):
			return _denied("no_messaging_subscription", is_locked=True, requires_subscription=True)
		return ConversationPermissions(can_view=True, can_send=True, can_send_media=False)
	return _denied("not_allowed")


async def conversation_permissions(
	repo,
	conversation: Optional[models.Conversation],
	viewer: Optional[models.User],
) -> ConversationPermissions:
	if conversation is None:
		return _denied("not_participant")
	if viewer is None:
		return _denied("user_not_found")
	role = conversation.role_of(viewer.id)
	if role is None:
		if viewer.account_type == AT.SUPERUSER:
			return ConversationPermissions(
				can_view=True,
				can_send=True,
				can_send_media=True,
				is_locked=conversation.is_locked,
			)
		return _denied("not_participant")
	if conversation.blocked_by_admin:
		return ConversationPermissions(
			can_view=True,
			can_send=False,
			can_send_media=False,
			is_locked=True,
			reason="admin_blocked",
		)
	if role == "creator":
		return ConversationPermissions(
			can_view=True,
			can_send=True,
			can_send_media=True,
			is_locked=conversation.is_locked,
		)
	if conversation.is_locked:
		expired = conversation.locked_reason == models.LockReason.SUBSCRIPTION_EXPIRED
		return _denied(
			"no_messaging_subscription" if expired else "admin_blocked",
			is_locked=True,
			requires_subscription=expired,
		)
	if conversation.requires_subscription and not await access.has_active_subscription(
		repo,
		viewer.id,
		conversation.creator_id,
		ST.MESSAGING_ACCESS,
	):
		return _denied("no_messaging_subscription", is_locked=True, requires_subscription=True)
	return ConversationPermissions(can_view=True, can_send=True, can_send_media=False)


def can_send_media(user: models.User) -> bool:
	return user.account_type in (AT.CREATOR, AT.SUPERUSER)
