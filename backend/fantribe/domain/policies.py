"""Authorization and throttling policies shared by FanTribe services."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Iterable, Optional
from uuid import UUID

from fantribe.domain import models
from fantribe.domain.constants import RATE_LIMITS
from fantribe.domain.exceptions import (
	BannedError,
	ForbiddenError,
	InvalidInputError,
	NotAuthenticatedError,
	RateLimitedError,
	UnauthorizedError,
	UserNotFoundError,
)
from fantribe.infra import rate_limit
from fantribe.infra.auth import AuthenticatedUser
from fantribe.obs import metrics as obs_metrics

CREATOR_TYPES = (models.AccountType.CREATOR, models.AccountType.SUPERUSER)
SUPERUSER_TYPES = (models.AccountType.SUPERUSER,)


def utcnow() -> datetime:
	return datetime.now(timezone.utc)


def parse_user_id(auth_user: AuthenticatedUser | None) -> UUID | None:
	if auth_user is None or not auth_user.id:
		return None
	try:
		return UUID(str(auth_user.id))
	except ValueError:
		return None


def is_ban_active(user: models.User, *, now: datetime | None = None) -> bool:
	"""Temporary bans stop blocking once they expire, even before the lift job runs."""
	if not user.is_banned:
		return False
	details = user.ban_details
	if details is None or details.type == models.BanType.PERMANENT:
		return True
	if details.expires_at is None:
		return True
	return details.expires_at > (now or utcnow())


def ban_message(user: models.User) -> str:
	details = user.ban_details
	if details is None:
		return BannedError.user_message
	if details.type == models.BanType.PERMANENT:
		return f"Your account has been permanently suspended. Reason: {details.reason}"
	until = details.expires_at.strftime("%Y-%m-%d %H:%M UTC") if details.expires_at else "further notice"
	return f"Your account is suspended until {until}. Reason: {details.reason}"


async def resolve_actor(
	repo,
	auth_user: AuthenticatedUser | None,
	*,
	optional: bool = False,
	require_complete_profile: bool = False,
	allowed_account_types: Optional[Iterable[models.AccountType]] = None,
) -> Optional[models.User]:
	"""Load the calling user's row and apply the common access checks."""
	user_id = parse_user_id(auth_user)
	if user_id is None:
		if optional:
			return None
		raise NotAuthenticatedError()
	user = await repo.get_user(user_id)
	if user is None:
		if optional:
			return None
		raise UserNotFoundError()
	if is_ban_active(user):
		if optional:
			return None
		raise BannedError(ban_message(user), context={"user_id": str(user.id)})
	if require_complete_profile and not user.username:
		raise InvalidInputError("Please complete your profile first.")
	if allowed_account_types is not None and user.account_type not in tuple(allowed_account_types):
		raise ForbiddenError()
	return user


def require_superuser(user: models.User) -> models.User:
	if user.account_type not in SUPERUSER_TYPES:
		raise ForbiddenError("Superuser access required.")
	return user


def require_creator(user: models.User) -> models.User:
	if user.account_type not in CREATOR_TYPES:
		raise ForbiddenError("Only creators can perform this action.")
	return user


def require_owner(owner_id: UUID, user: models.User) -> None:
	if owner_id != user.id:
		raise UnauthorizedError()


async def enforce_rate_limit(kind: str, user_id: UUID | str) -> None:
	"""Check every configured window for ``kind``; the first exhausted one rejects."""
	windows = RATE_LIMITS.get(kind)
	if not windows:
		return
	exhausted = await rate_limit.first_exhausted(kind, str(user_id), windows)
	if exhausted is not None:
		obs_metrics.inc_rate_limited(kind)
		raise RateLimitedError(kind, window_seconds=exhausted[1])
