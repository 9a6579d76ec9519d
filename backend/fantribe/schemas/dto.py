"""Pydantic request and response models for the FanTribe API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from fantribe.domain import models


class _Schema(BaseModel):
	model_config = ConfigDict(from_attributes=True)


# --- Users -----------------------------------------------------------------


class UserSummary(_Schema):
	id: UUID
	name: str
	username: Optional[str] = None
	image: str = ""
	account_type: models.AccountType = models.AccountType.USER
	is_online: bool = False

	@classmethod
	def from_user(cls, user: models.User) -> "UserSummary":
		return cls(
			id=user.id,
			name=user.name,
			username=user.username,
			image=user.image,
			account_type=user.account_type,
			is_online=user.is_online,
		)


class PublicUserResponse(_Schema):
	"""Profile as seen by other users; private settings are omitted."""

	id: UUID
	name: str
	username: Optional[str] = None
	image: str = ""
	image_banner: Optional[str] = None
	bio: Optional[str] = None
	location: Optional[str] = None
	social_links: list[models.SocialLink] = Field(default_factory=list)
	pinned_post_ids: list[UUID] = Field(default_factory=list)
	badges: list[models.Badge] = Field(default_factory=list)
	is_online: bool = False
	last_seen_at: Optional[datetime] = None
	account_type: models.AccountType
	is_banned: bool = False
	created_at: datetime


class IdentityUpsertRequest(BaseModel):
	external_id: str = Field(..., min_length=1)
	name: str = Field(..., min_length=1, max_length=120)
	email: str = ""
	image: str = ""


class ProfileUpdateRequest(BaseModel):
	name: str = Field(..., min_length=1, max_length=120)
	username: str = Field(..., min_length=3, max_length=30, pattern=r"^[A-Za-z0-9_.]+$")
	bio: Optional[str] = Field(default=None, max_length=500)
	location: Optional[str] = Field(default=None, max_length=120)
	social_links: Optional[list[models.SocialLink]] = None


class ImageUpdateRequest(BaseModel):
	url: str = Field(..., min_length=1)


class PinPostRequest(BaseModel):
	post_id: UUID
	replace_oldest: bool = False


class SocialLinksRequest(BaseModel):
	social_links: list[models.SocialLink] = Field(default_factory=list, max_length=10)


class AdultContentRequest(BaseModel):
	allow_adult_content: bool


class NotificationPreferencesRequest(BaseModel):
	likes: Optional[bool] = None
	comments: Optional[bool] = None
	new_posts: Optional[bool] = None
	subscriptions: Optional[bool] = None
	follows: Optional[bool] = None
	messages: Optional[bool] = None
	tips: Optional[bool] = None
	email_notifications: Optional[bool] = None


class BadgeRequest(BaseModel):
	badge_type: str = Field(..., min_length=1, max_length=40)


class StatIncrementRequest(BaseModel):
	posts: int = 0
	subscribers: int = 0
	likes: int = 0
	followers: int = 0


# --- Posts -----------------------------------------------------------------


class PostCreateRequest(BaseModel):
	content: str = Field(..., max_length=5000)
	medias: list[models.PostMedia] = Field(default_factory=list, max_length=20)
	visibility: models.PostVisibility = models.PostVisibility.PUBLIC
	is_adult: bool = False


class PostUpdateRequest(BaseModel):
	content: Optional[str] = Field(default=None, max_length=5000)
	medias: Optional[list[models.PostMedia]] = None
	visibility: Optional[models.PostVisibility] = None
	is_adult: Optional[bool] = None


class PostResponse(_Schema):
	id: UUID
	author_id: UUID
	content: str
	medias: list[models.PostMedia] = Field(default_factory=list)
	visibility: models.PostVisibility
	is_adult: bool
	created_at: datetime
	is_media_locked: bool = False
	media_count: int = 0
	is_pinned: bool = False
	author: Optional[UserSummary] = None


class FeedResponse(BaseModel):
	items: list[PostResponse]
	next_cursor: Optional[str] = None


class DraftAssetRequest(BaseModel):
	media_url: str = Field(..., min_length=1)
	asset_type: Literal["image", "video"]


class DraftAssetDeleteRequest(BaseModel):
	media_url: str = Field(..., min_length=1)


# --- Comments --------------------------------------------------------------


class CommentCreateRequest(BaseModel):
	content: str = Field(..., max_length=2000)


class CommentUpdateRequest(BaseModel):
	content: str = Field(..., max_length=2000)


class CommentResponse(_Schema):
	id: UUID
	post_id: UUID
	author_id: UUID
	content: str
	created_at: datetime
	updated_at: Optional[datetime] = None
	author: Optional[UserSummary] = None


# --- Subscriptions, payments & tips ---------------------------------------


class PaymentWebhookRequest(BaseModel):
	provider: str = Field(..., min_length=1)
	provider_transaction_id: str = Field(..., min_length=1)
	creator_id: UUID
	subscriber_id: UUID
	amount: float = Field(..., ge=0)
	currency: models.Currency = models.Currency.XAF
	started_at: Optional[datetime] = None
	subscription_type: models.SubscriptionType = models.SubscriptionType.CONTENT_ACCESS
	payment_method: Optional[str] = None


class TipWebhookRequest(BaseModel):
	provider: str = Field(..., min_length=1)
	provider_transaction_id: str = Field(..., min_length=1)
	sender_id: UUID
	creator_id: UUID
	amount: float = Field(..., gt=0)
	currency: models.Currency = models.Currency.XAF
	message: Optional[str] = None
	context: Optional[Literal["post", "profile", "message"]] = None
	post_id: Optional[UUID] = None
	conversation_id: Optional[UUID] = None


class TipValidateRequest(BaseModel):
	amount: float


class SubscriptionResponse(_Schema):
	id: UUID
	subscriber_id: UUID
	creator_id: UUID
	type: models.SubscriptionType
	status: models.SubscriptionStatus
	start_date: datetime
	end_date: datetime
	amount_paid: float
	currency: models.Currency
	renewal_count: int
	granted_by_creator: bool
	subscriber: Optional[UserSummary] = None
	creator: Optional[UserSummary] = None


# --- Notifications ---------------------------------------------------------


class NotificationResponse(_Schema):
	id: UUID
	type: models.NotificationType
	actor_ids: list[UUID]
	actor_count: int
	actors: list[UserSummary] = Field(default_factory=list)
	post_id: Optional[UUID] = None
	post_preview: Optional[str] = None
	comment_id: Optional[UUID] = None
	tip_id: Optional[UUID] = None
	tip_amount: Optional[float] = None
	tip_currency: Optional[str] = None
	is_read: bool
	last_activity_at: datetime
	created_at: datetime


class NotificationListResponse(BaseModel):
	items: list[NotificationResponse]
	next_cursor: Optional[str] = None


# --- Messaging -------------------------------------------------------------


class ConversationPermissions(BaseModel):
	can_view: bool = False
	can_send: bool = False
	can_send_media: bool = False
	reason: Optional[str] = None
	requires_subscription: bool = False
	requires_content_subscription: bool = False
	is_locked: bool = False


class StartConversationRequest(BaseModel):
	creator_id: UUID


class StartConversationAsCreatorRequest(BaseModel):
	user_id: UUID


class SendMessageRequest(BaseModel):
	content: Optional[str] = Field(default=None, max_length=5000)
	medias: list[models.MessageMedia] = Field(default_factory=list, max_length=10)
	reply_to_message_id: Optional[UUID] = None


class EditMessageRequest(BaseModel):
	content: str = Field(..., min_length=1, max_length=5000)


class ReactionRequest(BaseModel):
	emoji: str = Field(..., min_length=1, max_length=16)


class TypingRequest(BaseModel):
	is_typing: bool


class AdminBlockRequest(BaseModel):
	reason: str = Field(..., min_length=1, max_length=500)


class MessageResponse(_Schema):
	id: UUID
	conversation_id: UUID
	sender_id: UUID
	content: Optional[str] = None
	medias: list[models.MessageMedia] = Field(default_factory=list)
	message_type: models.MessageType
	system_message_type: Optional[models.SystemMessageType] = None
	reply_to_message_id: Optional[UUID] = None
	reply_preview: Optional[str] = None
	reactions: list[models.Reaction] = Field(default_factory=list)
	is_edited: bool = False
	edited_at: Optional[datetime] = None
	is_deleted: bool = False
	sent_while_locked: bool = False
	created_at: datetime


class MessageListResponse(BaseModel):
	items: list[MessageResponse]
	has_more: bool = False
	next_cursor: Optional[str] = None
	is_locked: bool = False
	reason: Optional[str] = None
	can_send_media: bool = False


class ConversationResponse(_Schema):
	id: UUID
	creator_id: UUID
	user_id: UUID
	my_role: Optional[str] = None
	other_participant: Optional[UserSummary] = None
	last_message_at: Optional[datetime] = None
	last_message_preview: Optional[str] = None
	last_message_sender_id: Optional[UUID] = None
	unread_count: int = 0
	is_muted: bool = False
	is_pinned: bool = False
	is_locked: bool = False
	locked_reason: Optional[models.LockReason] = None
	blocked_by_admin: bool = False
	requires_subscription: bool = True
	created_at: datetime
	permissions: Optional[ConversationPermissions] = None


# --- Moderation ------------------------------------------------------------


class ReportCreateRequest(BaseModel):
	type: models.ReportType
	reason: models.ReportReason
	reported_user_id: Optional[UUID] = None
	reported_post_id: Optional[UUID] = None
	reported_comment_id: Optional[UUID] = None
	description: Optional[str] = Field(default=None, max_length=1000)


class ReportStatusRequest(BaseModel):
	status: models.ReportStatus
	admin_notes: Optional[str] = Field(default=None, max_length=2000)
	resolution_action: Optional[models.ResolutionAction] = None


class ResolveContentRequest(BaseModel):
	admin_notes: Optional[str] = Field(default=None, max_length=2000)


class ReportResponse(_Schema):
	id: UUID
	type: models.ReportType
	reason: models.ReportReason
	description: Optional[str] = None
	status: models.ReportStatus
	resolution_action: Optional[models.ResolutionAction] = None
	admin_notes: Optional[str] = None
	reviewed_by: Optional[UUID] = None
	reviewed_at: Optional[datetime] = None
	created_at: datetime
	reporter: Optional[UserSummary] = None
	reported_user: Optional[UserSummary] = None
	reported_post: Optional[dict[str, Any]] = None
	reported_comment: Optional[dict[str, Any]] = None
	reported_user_id: Optional[UUID] = None
	reported_post_id: Optional[UUID] = None
	reported_comment_id: Optional[UUID] = None


class BanRequest(BaseModel):
	user_id: UUID
	type: models.BanType
	reason: str = Field(..., min_length=1, max_length=500)
	duration_days: Optional[int] = None
	report_id: Optional[UUID] = None


# --- Creator applications --------------------------------------------------


class ApplicationSubmitRequest(BaseModel):
	personal_info: models.PersonalInfo
	application_reason: str = Field(..., min_length=1, max_length=2000)
	identity_documents: list[models.IdentityDocument] = Field(default_factory=list)

	@field_validator("application_reason")
	@classmethod
	def _strip_reason(cls, value: str) -> str:
		value = value.strip()
		if not value:
			raise ValueError("application_reason_required")
		return value


class ApplicationReviewRequest(BaseModel):
	decision: Literal["approved", "rejected"]
	admin_notes: Optional[str] = Field(default=None, max_length=2000)
