"""Domain models for FanTribe entities."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class AccountType(str, Enum):
	USER = "USER"
	CREATOR = "CREATOR"
	SUPERUSER = "SUPERUSER"


class Currency(str, Enum):
	XAF = "XAF"
	USD = "USD"


class SubscriptionType(str, Enum):
	CONTENT_ACCESS = "content_access"
	MESSAGING_ACCESS = "messaging_access"


class SubscriptionStatus(str, Enum):
	ACTIVE = "active"
	EXPIRED = "expired"
	CANCELED = "canceled"
	PENDING = "pending"


class PostVisibility(str, Enum):
	PUBLIC = "public"
	SUBSCRIBERS_ONLY = "subscribers_only"


class NotificationType(str, Enum):
	LIKE = "like"
	COMMENT = "comment"
	NEW_POST = "newPost"
	NEW_SUBSCRIPTION = "newSubscription"
	RENEW_SUBSCRIPTION = "renewSubscription"
	SUBSCRIPTION_EXPIRED = "subscriptionExpired"
	SUBSCRIPTION_CONFIRMED = "subscriptionConfirmed"
	APPLICATION_APPROVED = "creatorApplicationApproved"
	APPLICATION_REJECTED = "creatorApplicationRejected"
	TIP = "tip"
	FOLLOW = "follow"


class BatchStatus(str, Enum):
	PENDING = "pending"
	PROCESSING = "processing"
	COMPLETED = "completed"
	FAILED = "failed"


class LockReason(str, Enum):
	SUBSCRIPTION_EXPIRED = "subscription_expired"
	ADMIN_BLOCKED = "admin_blocked"


class InitiatorRole(str, Enum):
	ADMIN = "admin"
	CREATOR = "creator"
	USER = "user"


class MessageType(str, Enum):
	TEXT = "text"
	MEDIA = "media"
	SYSTEM = "system"


class SystemMessageType(str, Enum):
	CONVERSATION_STARTED = "conversation_started"
	SUBSCRIPTION_EXPIRED = "subscription_expired"
	SUBSCRIPTION_RENEWED = "subscription_renewed"
	CONVERSATION_LOCKED = "conversation_locked"
	CONVERSATION_UNLOCKED = "conversation_unlocked"


class ReportType(str, Enum):
	USER = "user"
	POST = "post"
	COMMENT = "comment"


class ReportReason(str, Enum):
	SPAM = "spam"
	HARASSMENT = "harassment"
	INAPPROPRIATE_CONTENT = "inappropriate_content"
	FAKE_ACCOUNT = "fake_account"
	COPYRIGHT = "copyright"
	VIOLENCE = "violence"
	HATE_SPEECH = "hate_speech"
	OTHER = "other"


class ReportStatus(str, Enum):
	PENDING = "pending"
	REVIEWING = "reviewing"
	RESOLVED = "resolved"
	REJECTED = "rejected"


class ResolutionAction(str, Enum):
	BANNED = "banned"
	CONTENT_DELETED = "content_deleted"
	DISMISSED = "dismissed"


class BanType(str, Enum):
	TEMPORARY = "temporary"
	PERMANENT = "permanent"


class ApplicationStatus(str, Enum):
	PENDING = "pending"
	APPROVED = "approved"
	REJECTED = "rejected"


class _Entity(BaseModel):
	model_config = ConfigDict(from_attributes=True)


class SocialLink(_Entity):
	platform: str
	url: str
	username: Optional[str] = None


class Badge(_Entity):
	type: str
	awarded_at: datetime


class NotificationPreferences(_Entity):
	"""Opt-out flags: a missing value means the channel is enabled."""

	likes: Optional[bool] = None
	comments: Optional[bool] = None
	new_posts: Optional[bool] = None
	subscriptions: Optional[bool] = None
	follows: Optional[bool] = None
	messages: Optional[bool] = None
	tips: Optional[bool] = None
	email_notifications: Optional[bool] = None


class PrivacySettings(_Entity):
	profile_visibility: Optional[str] = None
	allow_messages_from_non_subscribers: Optional[bool] = None
	language: Optional[str] = None


class BanDetails(_Entity):
	type: BanType
	reason: str
	banned_at: datetime
	banned_by: UUID
	expires_at: Optional[datetime] = None


class BanRecord(BanDetails):
	lifted_at: Optional[datetime] = None
	lifted_by: Optional[UUID] = None


class User(_Entity):
	id: UUID
	external_id: Optional[str] = None
	name: str
	username: Optional[str] = None
	email: str = ""
	image: str = ""
	image_banner: Optional[str] = None
	bio: Optional[str] = None
	location: Optional[str] = None
	social_links: list[SocialLink] = Field(default_factory=list)
	pinned_post_ids: list[UUID] = Field(default_factory=list)
	badges: list[Badge] = Field(default_factory=list)
	is_online: bool = False
	active_sessions: int = 0
	last_seen_at: Optional[datetime] = None
	account_type: AccountType = AccountType.USER
	allow_adult_content: bool = False
	notification_preferences: Optional[NotificationPreferences] = None
	privacy_settings: Optional[PrivacySettings] = None
	is_banned: bool = False
	ban_details: Optional[BanDetails] = None
	ban_history: list[BanRecord] = Field(default_factory=list)
	onboarding_completed: bool = False
	created_at: datetime

	@property
	def is_superuser(self) -> bool:
		return self.account_type == AccountType.SUPERUSER

	@property
	def is_creator(self) -> bool:
		return self.account_type == AccountType.CREATOR


class UserStats(_Entity):
	user_id: UUID
	posts_count: int = 0
	subscribers_count: int = 0
	followers_count: int = 0
	total_likes: int = 0
	tips_received: int = 0
	total_tips_amount: float = 0.0
	last_updated: datetime


class PostMedia(_Entity):
	type: str = Field(..., pattern="^(image|video)$")
	url: str
	media_id: str
	mime_type: str
	thumbnail_url: Optional[str] = None


class Post(_Entity):
	id: UUID
	author_id: UUID
	content: str
	medias: list[PostMedia] = Field(default_factory=list)
	visibility: PostVisibility = PostVisibility.PUBLIC
	is_adult: bool = False
	created_at: datetime


class Comment(_Entity):
	id: UUID
	post_id: UUID
	author_id: UUID
	content: str
	created_at: datetime
	updated_at: Optional[datetime] = None


class Subscription(_Entity):
	id: UUID
	subscriber_id: UUID
	creator_id: UUID
	type: SubscriptionType
	status: SubscriptionStatus
	start_date: datetime
	end_date: datetime
	amount_paid: float = 0.0
	currency: Currency = Currency.XAF
	renewal_count: int = 0
	granted_by_creator: bool = False
	last_update_time: datetime
	created_at: datetime

	def is_active(self, now: datetime) -> bool:
		return self.status == SubscriptionStatus.ACTIVE and self.end_date > now


class Transaction(_Entity):
	id: UUID
	subscription_id: Optional[UUID] = None
	subscriber_id: UUID
	creator_id: UUID
	amount: float
	currency: str
	status: str
	provider: str
	provider_transaction_id: str
	payment_method: Optional[str] = None
	created_at: datetime


class Tip(_Entity):
	id: UUID
	sender_id: UUID
	creator_id: UUID
	amount: float
	currency: Currency
	message: Optional[str] = None
	status: str
	provider: str
	provider_transaction_id: str
	context: Optional[str] = None
	post_id: Optional[UUID] = None
	conversation_id: Optional[UUID] = None
	created_at: datetime


class Notification(_Entity):
	id: UUID
	type: NotificationType
	recipient_id: UUID
	group_key: str
	actor_ids: list[UUID] = Field(default_factory=list)
	actor_count: int = 1
	post_id: Optional[UUID] = None
	comment_id: Optional[UUID] = None
	tip_id: Optional[UUID] = None
	tip_amount: Optional[float] = None
	tip_currency: Optional[str] = None
	is_read: bool = False
	last_activity_at: datetime
	created_at: datetime


class PendingNotificationBatch(_Entity):
	id: UUID
	type: NotificationType
	actor_id: UUID
	recipient_ids: list[UUID]
	post_id: Optional[UUID] = None
	comment_id: Optional[UUID] = None
	tip_id: Optional[UUID] = None
	tip_amount: Optional[float] = None
	tip_currency: Optional[str] = None
	status: BatchStatus = BatchStatus.PENDING
	attempts: int = 0
	processed_count: int = 0
	last_attempt_at: Optional[datetime] = None
	error_message: Optional[str] = None
	created_at: datetime


class Conversation(_Entity):
	id: UUID
	creator_id: UUID
	user_id: UUID
	last_message_at: Optional[datetime] = None
	last_message_preview: Optional[str] = None
	last_message_sender_id: Optional[UUID] = None
	unread_count_creator: int = 0
	unread_count_user: int = 0
	is_locked: bool = False
	locked_at: Optional[datetime] = None
	locked_reason: Optional[LockReason] = None
	muted_by_creator: bool = False
	muted_by_user: bool = False
	pinned_by_creator: bool = False
	pinned_by_user: bool = False
	deleted_by_creator: bool = False
	deleted_by_user: bool = False
	blocked_by_admin: bool = False
	blocked_by_admin_reason: Optional[str] = None
	initiated_by: Optional[UUID] = None
	initiator_role: Optional[InitiatorRole] = None
	requires_subscription: bool = True
	created_at: datetime

	def role_of(self, user_id: UUID) -> Optional[str]:
		if user_id == self.creator_id:
			return "creator"
		if user_id == self.user_id:
			return "user"
		return None


class MessageMedia(_Entity):
	type: str = Field(..., pattern="^(image|video|audio|document)$")
	url: str
	media_id: str
	mime_type: str
	file_name: Optional[str] = None
	file_size: Optional[int] = None
	thumbnail_url: Optional[str] = None
	duration: Optional[float] = None
	width: Optional[int] = None
	height: Optional[int] = None


class Reaction(_Entity):
	emoji: str
	user_id: UUID
	created_at: datetime


class Message(_Entity):
	id: UUID
	conversation_id: UUID
	sender_id: UUID
	content: Optional[str] = None
	medias: list[MessageMedia] = Field(default_factory=list)
	message_type: MessageType = MessageType.TEXT
	system_message_type: Optional[SystemMessageType] = None
	reply_to_message_id: Optional[UUID] = None
	reactions: list[Reaction] = Field(default_factory=list)
	is_edited: bool = False
	edited_at: Optional[datetime] = None
	original_content: Optional[str] = None
	is_deleted: bool = False
	deleted_at: Optional[datetime] = None
	deleted_by: Optional[UUID] = None
	sent_while_locked: bool = False
	created_at: datetime


class Report(_Entity):
	id: UUID
	reporter_id: UUID
	reported_user_id: Optional[UUID] = None
	reported_post_id: Optional[UUID] = None
	reported_comment_id: Optional[UUID] = None
	type: ReportType
	reason: ReportReason
	description: Optional[str] = None
	status: ReportStatus = ReportStatus.PENDING
	resolution_action: Optional[ResolutionAction] = None
	admin_notes: Optional[str] = None
	reviewed_by: Optional[UUID] = None
	reviewed_at: Optional[datetime] = None
	created_at: datetime


class PersonalInfo(_Entity):
	full_name: str
	date_of_birth: str
	address: str
	phone_number: str


class IdentityDocument(_Entity):
	type: str = Field(..., pattern="^(identity_card|passport|driving_license|selfie)$")
	url: str
	public_id: str
	uploaded_at: datetime


class CreatorApplication(_Entity):
	id: UUID
	user_id: UUID
	status: ApplicationStatus = ApplicationStatus.PENDING
	personal_info: PersonalInfo
	application_reason: str
	identity_documents: list[IdentityDocument] = Field(default_factory=list)
	submitted_at: datetime
	reviewed_at: Optional[datetime] = None
	admin_notes: Optional[str] = None
	attempt_number: int = 1
	rejection_count: int = 0
	previous_rejection_reason: Optional[str] = None
	previous_application_id: Optional[UUID] = None
	reapplication_allowed_at: Optional[datetime] = None


class PlatformStats(_Entity):
	total_users: int = 0
	total_creators: int = 0
	total_posts: int = 0
	pending_applications: int = 0
	approved_applications: int = 0
	total_applications: int = 0
	pending_reports: int = 0
	total_reports: int = 0
	last_updated: datetime


class DraftAsset(_Entity):
	id: UUID
	author_id: UUID
	media_url: str
	asset_type: str
	created_at: datetime
