"""Posts, feeds and draft media assets."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional
from uuid import UUID, uuid4

from fantribe.domain import access, models, policies, repo as repo_module
from fantribe.domain.exceptions import InvalidInputError, PostNotFoundError, UnauthorizedError
from fantribe.domain.notification_queue import NotificationQueue
from fantribe.infra.auth import AuthenticatedUser
from fantribe.obs import metrics as obs_metrics
from fantribe.schemas import dto

logger = logging.getLogger(__name__)

_FEED_MAX_ROUNDS = 5


class PostsService:
	"""Publishing and reading posts with subscriber gating."""

	def __init__(
		self,
		repository: repo_module.FanTribeRepository | None = None,
		queue: NotificationQueue | None = None,
	) -> None:
		self.repo = repository or repo_module.FanTribeRepository()
		self.queue = queue or NotificationQueue(self.repo)

	# ------------------------------------------------------------------
	# Helpers

	async def _viewer_context(self, viewer: Optional[models.User]) -> tuple[set[UUID], set[UUID]]:
		if viewer is None:
			return set(), set()
		subscribed = await access.get_active_subscribed_creator_ids(self.repo, viewer.id)
		hidden = await access.get_blocked_user_ids(self.repo, viewer.id)
		return subscribed, hidden

	async def _responses(
		self,
		posts: Iterable[models.Post],
		viewer: Optional[models.User],
		subscribed: set[UUID],
		*,
		pinned: Iterable[UUID] = (),
	) -> list[dto.PostResponse]:
		posts = list(posts)
		authors = await self.repo.get_users([post.author_id for post in posts])
		pinned_ids = set(pinned)
		items: list[dto.PostResponse] = []
		for post in posts:
			medias, locked, count = access.filter_post_medias_for_viewer(post, viewer, subscribed_creator_ids=subscribed)
			author = authors.get(post.author_id)
			items.append(
				dto.PostResponse(
					**post.model_dump(exclude={"medias"}),
					medias=medias,
					is_media_locked=locked,
					media_count=count,
					is_pinned=post.id in pinned_ids,
					author=dto.UserSummary.from_user(author) if author else None,
				)
			)
		return items

	# ------------------------------------------------------------------
	# Mutations

	async def create_post(self, auth_user: AuthenticatedUser, payload: dto.PostCreateRequest) -> dict[str, Any]:
		author = await policies.resolve_actor(
			self.repo,
			auth_user,
			require_complete_profile=True,
			allowed_account_types=policies.CREATOR_TYPES,
		)
		await policies.enforce_rate_limit("create_post", author.id)
		content = payload.content.strip()
		if not content and not payload.medias:
			raise InvalidInputError("A post needs text or media.")
		post = await self.repo.insert_post(
			models.Post(
				id=uuid4(),
				author_id=author.id,
				content=content,
				medias=payload.medias,
				visibility=payload.visibility,
				is_adult=payload.is_adult,
				created_at=policies.utcnow(),
			)
		)
		await self.repo.apply_user_stats_delta(author.id, posts=1)
		await self.repo.delete_draft_assets_by_urls(author.id, [media.url for media in post.medias])
		obs_metrics.inc_post_created(post.visibility.value)

		subscriptions = await access.get_creator_subscribers(
			self.repo,
			author.id,
			statuses=(models.SubscriptionStatus.ACTIVE, models.SubscriptionStatus.EXPIRED),
		)
		recipients = await access.filter_blocked_users(
			self.repo,
			author.id,
			[row.subscriber_id for row in subscriptions],
		)
		result = await self.queue.send_post_notifications(author_id=author.id, post_id=post.id, recipient_ids=recipients)
		logger.info(
			"posts.created",
			extra={"post_id": str(post.id), "recipients": len(recipients), "deferred": result["deferred"]},
		)
		return {"post_id": str(post.id), "notifications_sent": result["sent"], "deferred": result["deferred"]}

	async def update_post(
		self,
		auth_user: AuthenticatedUser,
		post_id: UUID,
		payload: dto.PostUpdateRequest,
	) -> models.Post:
		user = await policies.resolve_actor(self.repo, auth_user)
		post = await self.repo.get_post(post_id)
		if post is None:
			raise PostNotFoundError()
		changes = payload.model_dump(exclude_unset=True, exclude_none=True)
		if post.author_id != user.id:
			if not user.is_superuser:
				raise UnauthorizedError()
			if set(changes) - {"is_adult"}:
				raise UnauthorizedError("Superusers may only change the adult flag of other users' posts.")
		if "content" in changes:
			changes["content"] = changes["content"].strip()
		if "medias" in changes:
			changes["medias"] = payload.medias
		if not changes:
			return post
		return await self.repo.update_post(post.id, **changes)

	async def delete_post(self, auth_user: AuthenticatedUser, post_id: UUID) -> dict[str, int]:
		user = await policies.resolve_actor(self.repo, auth_user)
		post = await self.repo.get_post(post_id)
		if post is None:
			raise PostNotFoundError()
		if post.author_id != user.id and not user.is_superuser:
			raise UnauthorizedError()
		return await self.delete_post_as_system(post)

	async def delete_post_as_system(self, post: models.Post) -> dict[str, int]:
		counts = await self.repo.delete_post_cascade(post)
		await self.repo.apply_user_stats_delta(post.author_id, posts=-1)
		logger.info("posts.deleted", extra={"post_id": str(post.id), **counts})
		return counts

	# ------------------------------------------------------------------
	# Reads

	async def get_post(self, auth_user: AuthenticatedUser | None, post_id: UUID) -> dto.PostResponse:
		viewer = await policies.resolve_actor(self.repo, auth_user, optional=True)
		post = await self.repo.get_post(post_id)
		if post is None:
			raise PostNotFoundError()
		subscribed, hidden = await self._viewer_context(viewer)
		if post.author_id in hidden and not (viewer and viewer.is_superuser):
			raise PostNotFoundError()
		author = await self.repo.get_user(post.author_id)
		pinned = author.pinned_post_ids if author else []
		return (await self._responses([post], viewer, subscribed, pinned=pinned))[0]

	async def get_home_feed(
		self,
		auth_user: AuthenticatedUser | None,
		*,
		cursor: str | None = None,
		limit: int = 20,
	) -> dto.FeedResponse:
		viewer = await policies.resolve_actor(self.repo, auth_user, optional=True)
		limit = max(1, min(limit, 50))
		subscribed, hidden = await self._viewer_context(viewer)
		is_admin = viewer is not None and viewer.is_superuser
		after = repo_module.decode_cursor(cursor) if cursor else None
		visible: list[models.Post] = []
		next_cursor: str | None = None
		for _ in range(_FEED_MAX_ROUNDS):
			page, next_cursor = await self.repo.list_posts(limit=limit, after=after)
			for post in page:
				if not is_admin and post.author_id in hidden:
					continue
				if access.can_view_post(post, viewer, subscribed_creator_ids=subscribed):
					visible.append(post)
			if len(visible) >= limit or next_cursor is None:
				break
			after = repo_module.decode_cursor(next_cursor)
		if len(visible) > limit:
			visible = visible[:limit]
			tail = visible[-1]
			next_cursor = repo_module.encode_cursor((tail.created_at, tail.id))
		return dto.FeedResponse(items=await self._responses(visible, viewer, subscribed), next_cursor=next_cursor)

	async def get_user_posts_with_pinned(
		self,
		auth_user: AuthenticatedUser | None,
		user_id: UUID,
		*,
		cursor: str | None = None,
		limit: int = 20,
	) -> dto.FeedResponse:
		viewer = await policies.resolve_actor(self.repo, auth_user, optional=True)
		limit = max(1, min(limit, 50))
		author = await self.repo.get_user(user_id)
		pinned_ids = list(author.pinned_post_ids) if author else []
		subscribed, hidden = await self._viewer_context(viewer)
		if user_id in hidden and not (viewer and viewer.is_superuser):
			return dto.FeedResponse(items=[], next_cursor=None)

		def _allowed(post: models.Post) -> bool:
			if not post.is_adult:
				return True
			return access.can_view_post(post, viewer, subscribed_creator_ids=subscribed)

		pinned: list[models.Post] = []
		if cursor is None and pinned_ids:
			found = await self.repo.get_posts(pinned_ids)
			pinned = [found[item] for item in pinned_ids if item in found and _allowed(found[item])]
		after = repo_module.decode_cursor(cursor) if cursor else None
		page, next_cursor = await self.repo.list_posts(
			limit=limit,
			author_id=user_id,
			after=after,
			exclude_ids=pinned_ids,
		)
		posts = pinned + [post for post in page if _allowed(post)]
		return dto.FeedResponse(
			items=await self._responses(posts, viewer, subscribed, pinned=pinned_ids),
			next_cursor=next_cursor,
		)

	async def get_user_gallery(
		self,
		auth_user: AuthenticatedUser | None,
		user_id: UUID,
		*,
		cursor: str | None = None,
		limit: int = 30,
	) -> dto.FeedResponse:
		viewer = await policies.resolve_actor(self.repo, auth_user, optional=True)
		subscribed, _hidden = await self._viewer_context(viewer)
		after = repo_module.decode_cursor(cursor) if cursor else None
		page, next_cursor = await self.repo.list_posts(
			limit=max(1, min(limit, 60)),
			author_id=user_id,
			after=after,
			with_media=True,
		)
		posts = [
			post for post in page
			if not post.is_adult or access.can_view_post(post, viewer, subscribed_creator_ids=subscribed)
		]
		return dto.FeedResponse(items=await self._responses(posts, viewer, subscribed), next_cursor=next_cursor)

	# ------------------------------------------------------------------
	# Draft assets

	async def create_draft_asset(self, auth_user: AuthenticatedUser, payload: dto.DraftAssetRequest) -> models.DraftAsset:
		user = await policies.resolve_actor(self.repo, auth_user, allowed_account_types=policies.CREATOR_TYPES)
		return await self.repo.insert_draft_asset(
			models.DraftAsset(
				id=uuid4(),
				author_id=user.id,
				media_url=payload.media_url,
				asset_type=payload.asset_type,
				created_at=policies.utcnow(),
			)
		)

	async def delete_draft_asset(self, auth_user: AuthenticatedUser, media_url: str) -> dict[str, Any]:
		user = await policies.resolve_actor(self.repo, auth_user)
		deleted = await self.repo.delete_draft_assets_by_urls(user.id, [media_url])
		if not deleted:
			return {"success": False, "error": "draft_not_found"}
		return {"success": True}
