"""Domain errors shared by every FanTribe service.

Each error carries a stable ``code`` (surfaced to clients), the HTTP status the
API layer should answer with, and a human readable ``user_message``.
"""

from __future__ import annotations

from typing import Any, Optional

from fastapi import status

from fantribe.infra.rate_limit import RateLimitExceeded

if hasattr(status, "HTTP_422_UNPROCESSABLE_CONTENT"):
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_CONTENT
else:  # pragma: no cover - older Starlette builds
	_HTTP_422 = status.HTTP_422_UNPROCESSABLE_ENTITY


class FanTribeError(Exception):
	"""Base class for domain errors."""

	code: str = "INTERNAL_ERROR"
	status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
	user_message: str = "Something went wrong. Please try again."

	def __init__(
		self,
		user_message: str | None = None,
		*,
		context: Optional[dict[str, Any]] = None,
	) -> None:
		super().__init__(user_message or self.user_message)
		if user_message:
			self.user_message = user_message
		self.context = context or {}

	@property
	def detail(self) -> dict[str, str]:
		return {"code": self.code, "message": self.user_message}


class NotAuthenticatedError(FanTribeError):
	code = "NOT_AUTHENTICATED"
	status_code = status.HTTP_401_UNAUTHORIZED
	user_message = "You must be signed in."


class UserNotFoundError(FanTribeError):
	code = "USER_NOT_FOUND"
	status_code = status.HTTP_404_NOT_FOUND
	user_message = "User not found."


class BannedError(FanTribeError):
	code = "BANNED"
	status_code = status.HTTP_403_FORBIDDEN
	user_message = "Your account has been suspended."


class PostNotFoundError(FanTribeError):
	code = "POST_NOT_FOUND"
	status_code = status.HTTP_404_NOT_FOUND
	user_message = "Post not found."


class CommentNotFoundError(FanTribeError):
	code = "COMMENT_NOT_FOUND"
	status_code = status.HTTP_404_NOT_FOUND
	user_message = "Comment not found."


class ConversationNotFoundError(FanTribeError):
	code = "CONVERSATION_NOT_FOUND"
	status_code = status.HTTP_404_NOT_FOUND
	user_message = "Conversation not found."


class MessageNotFoundError(FanTribeError):
	code = "MESSAGE_NOT_FOUND"
	status_code = status.HTTP_404_NOT_FOUND
	user_message = "Message not found."


class SubscriptionNotFoundError(FanTribeError):
	code = "SUBSCRIPTION_NOT_FOUND"
	status_code = status.HTTP_404_NOT_FOUND
	user_message = "Subscription not found."


class NotificationNotFoundError(FanTribeError):
	code = "NOTIFICATION_NOT_FOUND"
	status_code = status.HTTP_404_NOT_FOUND
	user_message = "Notification not found."


class ReportNotFoundError(FanTribeError):
	code = "REPORT_NOT_FOUND"
	status_code = status.HTTP_404_NOT_FOUND
	user_message = "Report not found."


class ApplicationNotFoundError(FanTribeError):
	code = "APPLICATION_NOT_FOUND"
	status_code = status.HTTP_404_NOT_FOUND
	user_message = "Application not found."


class UnauthorizedError(FanTribeError):
	"""The caller does not own the resource."""

	code = "UNAUTHORIZED"
	status_code = status.HTTP_403_FORBIDDEN
	user_message = "You are not allowed to perform this action."


class ForbiddenError(FanTribeError):
	"""The caller's account type or relationship forbids the action."""

	code = "FORBIDDEN"
	status_code = status.HTTP_403_FORBIDDEN
	user_message = "You do not have the required permissions."


class AlreadyExistsError(FanTribeError):
	code = "ALREADY_EXISTS"
	status_code = status.HTTP_409_CONFLICT
	user_message = "This item already exists."


class InvalidInputError(FanTribeError):
	code = "INVALID_INPUT"
	status_code = _HTTP_422
	user_message = "The submitted data is invalid."


class ExternalServiceError(FanTribeError):
	code = "EXTERNAL_SERVICE_ERROR"
	status_code = status.HTTP_502_BAD_GATEWAY
	user_message = "An external service is unavailable. Please try again later."


class RateLimitedError(RateLimitExceeded, FanTribeError):
	code = "RATE_LIMITED"
	status_code = status.HTTP_429_TOO_MANY_REQUESTS
	user_message = "Too many requests. Please slow down."

	def __init__(self, kind: str, window_seconds: int | None = None) -> None:
		FanTribeError.__init__(self, context={"kind": kind, "window_seconds": window_seconds})
		self.kind = kind
		self.window_seconds = window_seconds
