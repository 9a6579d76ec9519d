"""Business constants for subscriptions, tips, messaging and notifications."""

from __future__ import annotations

from datetime import timedelta

# Revenue split
SUBSCRIPTION_CREATOR_RATE = 0.7
SUBSCRIPTION_PLATFORM_RATE = 0.3
TIP_CREATOR_RATE = 0.7
TIP_PLATFORM_RATE = 0.3

# Tips (XAF)
TIP_PRESETS_XAF = (500, 1000, 2500, 5000, 10000)
TIP_MIN_AMOUNT_XAF = 500
TIP_MAX_AMOUNT_XAF = 100_000
TIP_MESSAGE_MAX_LENGTH = 200

# Subscriptions
SUBSCRIPTION_PRICE_XAF = 1000
SUBSCRIPTION_DURATION = timedelta(days=30)
CREATOR_GRANTED_MESSAGING_DURATION = timedelta(days=3)

USD_TO_XAF_RATE = 562.2

# Profiles
MAX_PINNED_POSTS = 3
SUGGESTED_CREATORS_POOL = 200
SUGGESTED_CREATORS_LIMIT = 48
USER_SEARCH_LIMIT = 10
STALE_PRESENCE_AFTER = timedelta(minutes=2)
USER_STATS_CACHE_TTL = timedelta(minutes=5)
PLATFORM_STATS_CACHE_TTL = timedelta(hours=1)
DRAFT_ASSET_TTL = timedelta(hours=24)

# Notifications
MAX_GROUPED_ACTORS = 3
THROTTLED_NOTIFICATION_TYPES = frozenset({"like", "comment", "newPost"})

# Messaging
MESSAGE_PREVIEW_LENGTH = 100
REPLY_PREVIEW_LENGTH = 50
MESSAGE_EDIT_WINDOW = timedelta(minutes=15)
TYPING_INDICATOR_TTL_SECONDS = 5
DEFAULT_MESSAGES_PAGE = 30
MESSAGING_CONTACTS_LIMIT = 50
MEDIA_PREVIEWS = {
	"image": "[Photo]",
	"video": "[Video]",
	"audio": "[Audio]",
	"document": "[Document]",
}
DELETED_MESSAGE_PREVIEW = "[Message deleted]"

# Moderation
RECIDIVIST_REPORT_THRESHOLD = 3
REPORT_HISTORY_RECENT = 10
REAPPLY_WAIT_AFTER_SECOND_REJECTION = timedelta(hours=24)
MAX_APPLICATION_REJECTIONS = 3

# Rate limits: kind -> ((limit, window_seconds), ...)
RATE_LIMITS: dict[str, tuple[tuple[int, int], ...]] = {
	"send_message": ((10, 60), (5, 10)),
	"create_post": ((5, 3600),),
	"add_comment": ((20, 60), (5, 10)),
	"create_report": ((10, 3600),),
	"like_post": ((30, 60), (10, 10)),
	"follow_user": ((30, 60), (10, 10)),
	"toggle_reaction": ((20, 60), (5, 10)),
	"send_tip": ((5, 3600),),
}
