"""Comments on posts."""

from __future__ import annotations

from uuid import UUID, uuid4

from fantribe.domain import models, policies, repo as repo_module
from fantribe.domain.exceptions import CommentNotFoundError, InvalidInputError, PostNotFoundError, UnauthorizedError
from fantribe.domain.notifications_service import NotificationsService
from fantribe.infra.auth import AuthenticatedUser
from fantribe.obs import metrics as obs_metrics
from fantribe.schemas import dto

RECENT_COMMENTS_DEFAULT = 3
USER_COMMENTS_LIMIT = 50


def _clean(content: str) -> str:
	content = content.strip()
	if not content:
		raise InvalidInputError("Comment cannot be empty.")
	return content


class CommentsService:
	def __init__(
		self,
		repository: repo_module.FanTribeRepository | None = None,
		notifications: NotificationsService | None = None,
	) -> None:
		self.repo = repository or repo_module.FanTribeRepository()
		self.notifications = notifications or NotificationsService(self.repo)

	async def _with_authors(self, comments: list[models.Comment]) -> list[dto.CommentResponse]:
		authors = await self.repo.get_users([comment.author_id for comment in comments])
		return [
			dto.CommentResponse(
				**comment.model_dump(),
				author=dto.UserSummary.from_user(authors[comment.author_id]) if comment.author_id in authors else None,
			)
			for comment in comments
		]

	async def add_comment(self, auth_user: AuthenticatedUser, post_id: UUID, content: str) -> dto.CommentResponse:
		user = await policies.resolve_actor(self.repo, auth_user)
		await policies.enforce_rate_limit("add_comment", user.id)
		content = _clean(content)
		post = await self.repo.get_post(post_id)
		if post is None:
			raise PostNotFoundError()
		comment = await self.repo.insert_comment(
			models.Comment(
				id=uuid4(),
				post_id=post.id,
				author_id=user.id,
				content=content,
				created_at=policies.utcnow(),
			)
		)
		await self.notifications.create_notification(
			type=models.NotificationType.COMMENT,
			recipient_id=post.author_id,
			actor_id=user.id,
			post_id=post.id,
			comment_id=comment.id,
		)
		obs_metrics.inc_engagement("comment", "add")
		return (await self._with_authors([comment]))[0]

	async def update_comment(self, auth_user: AuthenticatedUser, comment_id: UUID, content: str) -> dto.CommentResponse:
		user = await policies.resolve_actor(self.repo, auth_user)
		comment = await self.repo.get_comment(comment_id)
		if comment is None:
			raise CommentNotFoundError()
		if comment.author_id != user.id:
			raise UnauthorizedError()
		updated = await self.repo.update_comment(comment.id, content=_clean(content), updated_at=policies.utcnow())
		return (await self._with_authors([updated]))[0]

	async def delete_comment(self, auth_user: AuthenticatedUser, comment_id: UUID) -> None:
		user = await policies.resolve_actor(self.repo, auth_user)
		comment = await self.repo.get_comment(comment_id)
		if comment is None:
			raise CommentNotFoundError()
		post = await self.repo.get_post(comment.post_id)
		post_author = post.author_id if post else None
		if user.id not in (comment.author_id, post_author):
			raise UnauthorizedError()
		await self.repo.delete_comment(comment.id)
		remaining = await self.repo.count_comments(comment.post_id, author_id=comment.author_id)
		if post is not None and remaining == 0:
			await self.notifications.remove_actor_from_notification(
				type=models.NotificationType.COMMENT,
				recipient_id=post.author_id,
				actor_id=comment.author_id,
				post_id=post.id,
			)
		obs_metrics.inc_engagement("comment", "remove")

	async def list_comments(self, post_id: UUID) -> list[dto.CommentResponse]:
		return await self._with_authors(await self.repo.list_comments(post_id))

	async def get_recent_comments(self, post_id: UUID, *, limit: int = RECENT_COMMENTS_DEFAULT) -> list[dto.CommentResponse]:
		return await self._with_authors(await self.repo.list_comments(post_id, limit=max(1, min(limit, 20))))

	async def count_comments(self, post_id: UUID) -> int:
		return await self.repo.count_comments(post_id)

	async def list_user_comments(self, user_id: UUID) -> list[dto.CommentResponse]:
		return await self._with_authors(await self.repo.list_user_comments(user_id, limit=USER_COMMENTS_LIMIT))
