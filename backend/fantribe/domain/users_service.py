"""Profiles, presence and per-user counters."""

from __future__ import annotations

import logging
import random
from typing import Any, Optional
from uuid import UUID, uuid4

from fantribe.domain import access, models, policies, repo as repo_module
from fantribe.domain.constants import (
	MAX_PINNED_POSTS,
	STALE_PRESENCE_AFTER,
	SUGGESTED_CREATORS_LIMIT,
	SUGGESTED_CREATORS_POOL,
	USER_SEARCH_LIMIT,
	USER_STATS_CACHE_TTL,
)
from fantribe.domain.exceptions import (
	AlreadyExistsError,
	InvalidInputError,
	PostNotFoundError,
	UnauthorizedError,
	UserNotFoundError,
)
from fantribe.infra.auth import AuthenticatedUser
from fantribe.schemas import dto

logger = logging.getLogger(__name__)


class UsersService:
	"""User profile operations and presence tracking."""

	def __init__(self, repository: repo_module.FanTribeRepository | None = None) -> None:
		self.repo = repository or repo_module.FanTribeRepository()

	# ------------------------------------------------------------------
	# Identity provider sync

	async def upsert_from_identity(self, payload: dto.IdentityUpsertRequest) -> models.User:
		existing = await self.repo.get_user_by_external_id(payload.external_id)
		if existing is not None:
			updated = await self.repo.update_user(
				existing.id,
				name=payload.name,
				email=payload.email,
				image=payload.image or existing.image,
			)
			return updated or existing
		user = models.User(
			id=uuid4(),
			external_id=payload.external_id,
			name=payload.name,
			email=payload.email,
			image=payload.image,
			account_type=models.AccountType.USER,
			created_at=policies.utcnow(),
		)
		logger.info("users.created_from_identity", extra={"user_id": str(user.id)})
		return await self.repo.insert_user(user)

	async def delete_from_identity(self, external_id: str) -> bool:
		user = await self.repo.get_user_by_external_id(external_id)
		if user is None:
			logger.warning("users.identity_delete_unknown", extra={"external_id": external_id})
			return False
		return await self.repo.delete_user(user.id)

	# ------------------------------------------------------------------
	# Profiles

	async def get_current_user(self, auth_user: AuthenticatedUser | None) -> Optional[models.User]:
		user_id = policies.parse_user_id(auth_user)
		if user_id is None:
			return None
		return await self.repo.get_user(user_id)

	async def get_user_profile(self, username: str) -> dto.PublicUserResponse:
		user = await self.repo.get_user_by_username(username)
		if user is None:
			raise UserNotFoundError()
		return dto.PublicUserResponse.model_validate(user)

	async def get_available_username(self, username: str) -> bool:
		return await self.repo.get_user_by_username(username.strip()) is None

	async def update_profile(self, auth_user: AuthenticatedUser, payload: dto.ProfileUpdateRequest) -> models.User:
		user = await policies.resolve_actor(self.repo, auth_user)
		username = payload.username.strip()
		other = await self.repo.get_user_by_username(username)
		if other is not None and other.id != user.id:
			raise AlreadyExistsError("This username is already taken.")
		fields: dict[str, Any] = {
			"name": payload.name.strip(),
			"username": username,
			"bio": payload.bio,
			"location": payload.location,
			"onboarding_completed": True,
		}
		if payload.social_links is not None:
			fields["social_links"] = payload.social_links
		return await self.repo.update_user(user.id, **fields)

	async def update_profile_image(self, auth_user: AuthenticatedUser, url: str) -> models.User:
		user = await policies.resolve_actor(self.repo, auth_user)
		return await self.repo.update_user(user.id, image=url)

	async def update_banner_image(self, auth_user: AuthenticatedUser, url: str) -> models.User:
		user = await policies.resolve_actor(self.repo, auth_user)
		return await self.repo.update_user(user.id, image_banner=url)

	async def update_social_links(self, auth_user: AuthenticatedUser, links: list[models.SocialLink]) -> models.User:
		user = await policies.resolve_actor(self.repo, auth_user)
		return await self.repo.update_user(user.id, social_links=links)

	async def update_adult_content_preference(self, auth_user: AuthenticatedUser, allow: bool) -> models.User:
		user = await policies.resolve_actor(self.repo, auth_user)
		return await self.repo.update_user(user.id, allow_adult_content=allow)

	async def update_notification_preferences(
		self,
		auth_user: AuthenticatedUser,
		payload: dto.NotificationPreferencesRequest,
	) -> models.User:
		user = await policies.resolve_actor(self.repo, auth_user)
		current = user.notification_preferences or models.NotificationPreferences()
		merged = current.model_copy(update=payload.model_dump(exclude_unset=True))
		return await self.repo.update_user(user.id, notification_preferences=merged)

	async def search_users(self, auth_user: AuthenticatedUser | None, term: str) -> list[dto.UserSummary]:
		term = term.strip()
		if not term:
			return []
		viewer_id = policies.parse_user_id(auth_user)
		candidates = await self.repo.search_users(term, limit=USER_SEARCH_LIMIT + 1)
		lowered = term.lower()
		by_name = [user for user in candidates if lowered in user.name.lower()]
		by_username = [user for user in candidates if user not in by_name]
		results = [user for user in by_name + by_username if user.id != viewer_id and user.username]
		return [dto.UserSummary.from_user(user) for user in results[:USER_SEARCH_LIMIT]]

	async def get_suggested_creators(self, auth_user: AuthenticatedUser | None) -> list[dto.UserSummary]:
		viewer_id = policies.parse_user_id(auth_user)
		creators = await self.repo.list_users(
			account_type=models.AccountType.CREATOR,
			is_banned=False,
			limit=SUGGESTED_CREATORS_POOL,
		)
		if viewer_id is not None:
			hidden = await access.get_blocked_user_ids(self.repo, viewer_id)
			creators = [user for user in creators if user.id != viewer_id and user.id not in hidden]
		sample = random.sample(creators, min(len(creators), SUGGESTED_CREATORS_LIMIT))
		return [dto.UserSummary.from_user(user) for user in sample]

	# ------------------------------------------------------------------
	# Pinned posts

	async def toggle_pinned_post(
		self,
		auth_user: AuthenticatedUser,
		post_id: UUID,
		*,
		replace_oldest: bool = False,
	) -> dict[str, Any]:
		user = await policies.resolve_actor(self.repo, auth_user)
		post = await self.repo.get_post(post_id)
		if post is None:
			raise PostNotFoundError()
		if post.author_id != user.id:
			raise UnauthorizedError("You can only pin your own posts.")
		pinned = list(user.pinned_post_ids)
		if post_id in pinned:
			pinned.remove(post_id)
			await self.repo.update_user(user.id, pinned_post_ids=pinned)
			return {"pinned": False}
		if len(pinned) < MAX_PINNED_POSTS:
			await self.repo.update_user(user.id, pinned_post_ids=[*pinned, post_id])
			return {"pinned": True}
		if not replace_oldest:
			return {"pinned": False, "max_reached": True}
		replaced = pinned[0]
		await self.repo.update_user(user.id, pinned_post_ids=[*pinned[1:], post_id])
		return {"pinned": True, "replaced": str(replaced)}

	async def get_pinned_posts(self, user_id: UUID) -> list[models.Post]:
		user = await self.repo.get_user(user_id)
		if user is None or not user.pinned_post_ids:
			return []
		posts = await self.repo.get_posts(user.pinned_post_ids)
		return [posts[item] for item in user.pinned_post_ids if item in posts]

	# ------------------------------------------------------------------
	# Badges

	async def add_badge(self, auth_user: AuthenticatedUser, user_id: UUID, badge_type: str) -> models.User:
		admin = await policies.resolve_actor(self.repo, auth_user)
		policies.require_superuser(admin)
		target = await self.repo.get_user(user_id)
		if target is None:
			raise UserNotFoundError()
		if any(badge.type == badge_type for badge in target.badges):
			return target
		badges = [*target.badges, models.Badge(type=badge_type, awarded_at=policies.utcnow())]
		return await self.repo.update_user(target.id, badges=badges)

	async def remove_badge(self, auth_user: AuthenticatedUser, user_id: UUID, badge_type: str) -> models.User:
		admin = await policies.resolve_actor(self.repo, auth_user)
		policies.require_superuser(admin)
		target = await self.repo.get_user(user_id)
		if target is None:
			raise UserNotFoundError()
		badges = [badge for badge in target.badges if badge.type != badge_type]
		return await self.repo.update_user(target.id, badges=badges)

	# ------------------------------------------------------------------
	# Presence

	async def presence_heartbeat(self, user_id: UUID) -> None:
		await self.repo.update_user(user_id, is_online=True, last_seen_at=policies.utcnow())

	async def set_offline(self, user_id: UUID) -> None:
		user = await self.repo.get_user(user_id)
		if user is None:
			return
		fields: dict[str, Any] = {"last_seen_at": policies.utcnow()}
		if user.active_sessions <= 0:
			fields["is_online"] = False
		await self.repo.update_user(user_id, **fields)

	async def increment_session(self, user_id: UUID) -> int:
		user = await self.repo.get_user(user_id)
		if user is None:
			raise UserNotFoundError()
		sessions = user.active_sessions + 1
		await self.repo.update_user(user_id, active_sessions=sessions, is_online=True, last_seen_at=policies.utcnow())
		return sessions

	async def decrement_session(self, user_id: UUID) -> int:
		user = await self.repo.get_user(user_id)
		if user is None:
			raise UserNotFoundError()
		sessions = max(0, user.active_sessions - 1)
		await self.repo.update_user(
			user_id,
			active_sessions=sessions,
			is_online=sessions > 0,
			last_seen_at=policies.utcnow(),
		)
		return sessions

	async def mark_stale_users_offline(self) -> dict[str, int]:
		cutoff = policies.utcnow() - STALE_PRESENCE_AFTER
		count = await self.repo.mark_stale_users_offline(cutoff)
		if count:
			logger.info("users.marked_offline", extra={"count": count})
		return {"marked_offline_count": count}

	# ------------------------------------------------------------------
	# Stats

	async def increment_user_stat(
		self,
		user_id: UUID,
		*,
		posts: int = 0,
		subscribers: int = 0,
		likes: int = 0,
		followers: int = 0,
	) -> models.UserStats:
		return await self.repo.apply_user_stats_delta(
			user_id,
			posts=posts,
			subscribers=subscribers,
			likes=likes,
			followers=followers,
		)

	async def get_user_stats(self, user_id: UUID) -> models.UserStats:
		now = policies.utcnow()
		cached = await self.repo.get_user_stats(user_id)
		if cached is not None and now - cached.last_updated < USER_STATS_CACHE_TTL:
			return cached
		if await self.repo.get_user(user_id) is None:
			raise UserNotFoundError()
		subscribers = await access.get_creator_subscribers(self.repo, user_id)
		stats = models.UserStats(
			user_id=user_id,
			posts_count=await self.repo.count_posts(author_id=user_id),
			subscribers_count=len([row for row in subscribers if row.is_active(now)]),
			followers_count=len(await self.repo.list_follower_ids(user_id)),
			total_likes=await self.repo.count_likes_for_author(user_id),
			tips_received=cached.tips_received if cached else 0,
			total_tips_amount=cached.total_tips_amount if cached else 0.0,
			last_updated=now,
		)
		return await self.repo.set_user_stats(stats)

	async def admin_increment_user_stat(
		self,
		auth_user: AuthenticatedUser,
		user_id: UUID,
		payload: dto.StatIncrementRequest,
	) -> models.UserStats:
		admin = await policies.resolve_actor(self.repo, auth_user)
		policies.require_superuser(admin)
		if await self.repo.get_user(user_id) is None:
			raise UserNotFoundError()
		if not any((payload.posts, payload.subscribers, payload.likes, payload.followers)):
			raise InvalidInputError("Provide at least one counter to change.")
		return await self.increment_user_stat(user_id, **payload.model_dump())
