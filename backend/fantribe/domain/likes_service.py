"""Likes and bookmarks."""

from __future__ import annotations

from typing import Any
from uuid import UUID

from fantribe.domain import models, policies, repo as repo_module
from fantribe.domain.exceptions import PostNotFoundError
from fantribe.domain.notifications_service import NotificationsService
from fantribe.infra.auth import AuthenticatedUser
from fantribe.obs import metrics as obs_metrics
from fantribe.schemas import dto

LIST_LIMIT = 100


class LikesService:
	def __init__(
		self,
		repository: repo_module.FanTribeRepository | None = None,
		notifications: NotificationsService | None = None,
	) -> None:
		self.repo = repository or repo_module.FanTribeRepository()
		self.notifications = notifications or NotificationsService(self.repo)

	async def _post(self, post_id: UUID) -> models.Post:
		post = await self.repo.get_post(post_id)
		if post is None:
			raise PostNotFoundError()
		return post

	# ------------------------------------------------------------------
	# Likes

	async def like_post(self, auth_user: AuthenticatedUser, post_id: UUID) -> dict[str, Any]:
		user = await policies.resolve_actor(self.repo, auth_user)
		await policies.enforce_rate_limit("like_post", user.id)
		post = await self._post(post_id)
		if not await self.repo.insert_like(user.id, post.id):
			return {"liked": True, "already": True}
		await self.repo.apply_user_stats_delta(post.author_id, likes=1)
		await self.notifications.create_notification(
			type=models.NotificationType.LIKE,
			recipient_id=post.author_id,
			actor_id=user.id,
			post_id=post.id,
		)
		obs_metrics.inc_engagement("like", "add")
		return {"liked": True, "already": False}

	async def unlike_post(self, auth_user: AuthenticatedUser, post_id: UUID) -> dict[str, Any]:
		user = await policies.resolve_actor(self.repo, auth_user)
		post = await self._post(post_id)
		if not await self.repo.delete_like(user.id, post.id):
			return {"liked": False, "removed": False}
		await self.repo.apply_user_stats_delta(post.author_id, likes=-1)
		await self.notifications.remove_actor_from_notification(
			type=models.NotificationType.LIKE,
			recipient_id=post.author_id,
			actor_id=user.id,
			post_id=post.id,
		)
		obs_metrics.inc_engagement("like", "remove")
		return {"liked": False, "removed": True}

	async def count_likes(self, post_id: UUID) -> int:
		return await self.repo.count_likes(post_id)

	async def is_liked(self, auth_user: AuthenticatedUser | None, post_id: UUID) -> bool:
		user = await policies.resolve_actor(self.repo, auth_user, optional=True)
		if user is None:
			return False
		return await self.repo.is_liked(user.id, post_id)

	async def get_post_likers(self, post_id: UUID) -> list[dto.UserSummary]:
		ids = await self.repo.list_post_liker_ids(post_id, limit=LIST_LIMIT)
		users = await self.repo.get_users(ids)
		return [dto.UserSummary.from_user(users[item]) for item in ids if item in users]

	async def get_liked_posts(self, auth_user: AuthenticatedUser) -> list[models.Post]:
		user = await policies.resolve_actor(self.repo, auth_user)
		ids = await self.repo.list_liked_post_ids(user.id, limit=LIST_LIMIT)
		posts = await self.repo.get_posts(ids)
		return [posts[item] for item in ids if item in posts]

	# ------------------------------------------------------------------
	# Bookmarks

	async def add_bookmark(self, auth_user: AuthenticatedUser, post_id: UUID) -> dict[str, Any]:
		user = await policies.resolve_actor(self.repo, auth_user)
		post = await self._post(post_id)
		inserted = await self.repo.insert_bookmark(user.id, post.id)
		if inserted:
			obs_metrics.inc_engagement("bookmark", "add")
		return {"bookmarked": True, "already": not inserted}

	async def remove_bookmark(self, auth_user: AuthenticatedUser, post_id: UUID) -> dict[str, Any]:
		user = await policies.resolve_actor(self.repo, auth_user)
		removed = await self.repo.delete_bookmark(user.id, post_id)
		if removed:
			obs_metrics.inc_engagement("bookmark", "remove")
		return {"bookmarked": False, "removed": removed}

	async def list_bookmarks(self, auth_user: AuthenticatedUser) -> list[models.Post]:
		user = await policies.resolve_actor(self.repo, auth_user)
		ids = await self.repo.list_bookmarked_post_ids(user.id, limit=LIST_LIMIT)
		posts = await self.repo.get_posts(ids)
		return [posts[item] for item in ids if item in posts]

	async def is_bookmarked(self, auth_user: AuthenticatedUser | None, post_id: UUID) -> bool:
		user = await policies.resolve_actor(self.repo, auth_user, optional=True)
		if user is None:
			return False
		return await self.repo.is_bookmarked(user.id, post_id)

	async def count_bookmarks(self, post_id: UUID) -> int:
		return await self.repo.count_bookmarks(post_id)
