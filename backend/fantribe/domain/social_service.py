"""Follows and blocks between users."""

from __future__ import annotations

import logging
from typing import Any
from uuid import UUID

from fantribe.domain import access, models, policies, repo as repo_module
from fantribe.domain.exceptions import ForbiddenError, InvalidInputError, UserNotFoundError
from fantribe.domain.notifications_service import NotificationsService
from fantribe.infra.auth import AuthenticatedUser
from fantribe.obs import metrics as obs_metrics
from fantribe.schemas import dto

logger = logging.getLogger(__name__)


class SocialService:
	"""Follow graph and block list management."""

	def __init__(
		self,
		repository: repo_module.FanTribeRepository | None = None,
		notifications: NotificationsService | None = None,
	) -> None:
		self.repo = repository or repo_module.FanTribeRepository()
		self.notifications = notifications or NotificationsService(self.repo)

	async def _target(self, actor: models.User, target_id: UUID) -> models.User:
		if actor.id == target_id:
			raise InvalidInputError("You cannot do this to yourself.")
		target = await self.repo.get_user(target_id)
		if target is None:
			raise UserNotFoundError()
		return target

	async def _summaries(self, user_ids: list[UUID]) -> list[dto.UserSummary]:
		users = await self.repo.get_users(user_ids)
		return [dto.UserSummary.from_user(users[item]) for item in user_ids if item in users]

	# ------------------------------------------------------------------
	# Follows

	async def follow_user(self, auth_user: AuthenticatedUser, target_id: UUID) -> dict[str, Any]:
		actor = await policies.resolve_actor(self.repo, auth_user)
		await policies.enforce_rate_limit("follow_user", actor.id)
		target = await self._target(actor, target_id)
		if target.account_type not in policies.CREATOR_TYPES:
			raise ForbiddenError("You can only follow creators.")
		if await access.is_blocked(self.repo, actor.id, target.id):
			raise ForbiddenError("You cannot follow this user.")
		inserted = await self.repo.insert_follow(actor.id, target.id)
		if not inserted:
			return {"success": True, "already_following": True}
		await self.repo.apply_user_stats_delta(target.id, followers=1)
		await self.notifications.create_notification(
			type=models.NotificationType.FOLLOW,
			recipient_id=target.id,
			actor_id=actor.id,
		)
		obs_metrics.inc_engagement("follow", "add")
		return {"success": True, "already_following": False}

	async def unfollow_user(self, auth_user: AuthenticatedUser, target_id: UUID) -> dict[str, Any]:
		actor = await policies.resolve_actor(self.repo, auth_user)
		removed = await self.repo.delete_follow(actor.id, target_id)
		if removed:
			await self.repo.apply_user_stats_delta(target_id, followers=-1)
			obs_metrics.inc_engagement("follow", "remove")
		return {"success": True, "was_following": removed}

	async def is_following(self, auth_user: AuthenticatedUser | None, target_id: UUID) -> bool:
		actor = await policies.resolve_actor(self.repo, auth_user, optional=True)
		if actor is None:
			return False
		return await self.repo.is_following(actor.id, target_id)

	async def get_followers(self, user_id: UUID) -> list[dto.UserSummary]:
		return await self._summaries(await self.repo.list_follower_ids(user_id))

	async def get_following(self, user_id: UUID) -> list[dto.UserSummary]:
		return await self._summaries(await self.repo.list_following_ids(user_id))

	async def get_follow_counts(self, user_id: UUID) -> dict[str, int]:
		followers = await self.repo.list_follower_ids(user_id)
		following = await self.repo.list_following_ids(user_id)
		return {"followers": len(followers), "following": len(following)}

	# ------------------------------------------------------------------
	# Blocks

	async def block_user(self, auth_user: AuthenticatedUser, target_id: UUID) -> dict[str, Any]:
		actor = await policies.resolve_actor(self.repo, auth_user)
		target = await self._target(actor, target_id)
		inserted = await self.repo.insert_block(actor.id, target.id)
		if not inserted:
			return {"success": True, "already_blocked": True}
		removed = await self.repo.delete_follows_between(actor.id, target.id)
		for _follower, following in removed:
			await self.repo.apply_user_stats_delta(following, followers=-1)
		logger.info("social.user_blocked", extra={"user_id": str(actor.id), "target_id": str(target.id)})
		return {"success": True, "already_blocked": False}

	async def unblock_user(self, auth_user: AuthenticatedUser, target_id: UUID) -> dict[str, Any]:
		actor = await policies.resolve_actor(self.repo, auth_user)
		removed = await self.repo.delete_block(actor.id, target_id)
		return {"success": True, "was_blocked": removed}

	async def get_blocked_users(self, auth_user: AuthenticatedUser) -> list[dto.UserSummary]:
		actor = await policies.resolve_actor(self.repo, auth_user)
		return await self._summaries(await self.repo.list_blocked_ids(actor.id))

	async def blocking_status(self, auth_user: AuthenticatedUser | None, target_id: UUID) -> dict[str, bool]:
		actor = await policies.resolve_actor(self.repo, auth_user, optional=True)
		if actor is None:
			return {"i_blocked": False, "blocked_me": False, "any": False}
		i_blocked = await self.repo.is_blocking(actor.id, target_id)
		blocked_me = await self.repo.is_blocking(target_id, actor.id)
		return {"i_blocked": i_blocked, "blocked_me": blocked_me, "any": i_blocked or blocked_me}
