"""Content reports, user bans and the moderation audit trail."""

from __future__ import annotations

import logging
from collections import Counter
from datetime import timedelta
from typing import Any, Optional
from uuid import UUID, uuid4

from fantribe.domain import audit, models, policies, repo as repo_module
from fantribe.domain.constants import RECIDIVIST_REPORT_THRESHOLD, REPORT_HISTORY_RECENT
from fantribe.domain.exceptions import (
	AlreadyExistsError,
	CommentNotFoundError,
	ForbiddenError,
	InvalidInputError,
	PostNotFoundError,
	ReportNotFoundError,
	UserNotFoundError,
)
from fantribe.domain.notifications_service import NotificationsService
from fantribe.domain.posts_service import PostsService
from fantribe.infra.auth import AuthenticatedUser
from fantribe.obs import metrics as obs_metrics
from fantribe.schemas import dto

logger = logging.getLogger(__name__)

RS = models.ReportStatus
RT = models.ReportType

_OPEN_STATUSES = (RS.PENDING, RS.REVIEWING)
_DUPLICATE_MESSAGES = {
	RT.USER: "You have already reported this user.",
	RT.POST: "You have already reported this post.",
	RT.COMMENT: "You have already reported this comment.",
}


def _summary(user: Optional[models.User]) -> Optional[dto.UserSummary]:
	return dto.UserSummary.from_user(user) if user else None


class ModerationService:
	def __init__(
		self,
		repository: repo_module.FanTribeRepository | None = None,
		posts: PostsService | None = None,
		notifications: NotificationsService | None = None,
	) -> None:
		self.repo = repository or repo_module.FanTribeRepository()
		self.notifications = notifications or NotificationsService(self.repo)
		self.posts = posts or PostsService(self.repo)

	async def _admin(self, auth_user: AuthenticatedUser) -> models.User:
		return policies.require_superuser(await policies.resolve_actor(self.repo, auth_user))

	async def _report(self, report_id: UUID) -> models.Report:
		report = await self.repo.get_report(report_id)
		if report is None:
			raise ReportNotFoundError()
		return report

	async def _enrich(self, reports: list[models.Report]) -> list[dto.ReportResponse]:
		user_ids = {report.reporter_id for report in reports}
		user_ids |= {report.reported_user_id for report in reports if report.reported_user_id}
		users = await self.repo.get_users(list(user_ids))
		posts = await self.repo.get_posts([report.reported_post_id for report in reports if report.reported_post_id])
		items: list[dto.ReportResponse] = []
		for report in reports:
			post = posts.get(report.reported_post_id) if report.reported_post_id else None
			comment = await self.repo.get_comment(report.reported_comment_id) if report.reported_comment_id else None
			items.append(
				dto.ReportResponse(
					**report.model_dump(),
					reporter=_summary(users.get(report.reporter_id)),
					reported_user=_summary(users.get(report.reported_user_id)) if report.reported_user_id else None,
					reported_post=post.model_dump(mode="json") if post else None,
					reported_comment=comment.model_dump(mode="json") if comment else None,
				)
			)
		return items

	# ------------------------------------------------------------------
	# Reports

	async def create_report(self, auth_user: AuthenticatedUser, payload: dto.ReportCreateRequest) -> dict[str, Any]:
		reporter = await policies.resolve_actor(self.repo, auth_user)
		await policies.enforce_rate_limit("create_report", reporter.id)
		reported_user_id: Optional[UUID] = None
		if payload.type == RT.USER:
			if payload.reported_user_id is None:
				raise InvalidInputError("A user report needs the reported user.")
			if payload.reported_user_id == reporter.id:
				raise InvalidInputError("You cannot report yourself.")
			if await self.repo.get_user(payload.reported_user_id) is None:
				raise UserNotFoundError()
			reported_user_id = payload.reported_user_id
		elif payload.type == RT.POST:
			if payload.reported_post_id is None:
				raise InvalidInputError("A post report needs the reported post.")
			post = await self.repo.get_post(payload.reported_post_id)
			if post is None:
				raise PostNotFoundError()
			if post.author_id == reporter.id:
				raise InvalidInputError("You cannot report your own post.")
			reported_user_id = post.author_id
		else:
			if payload.reported_comment_id is None:
				raise InvalidInputError("A comment report needs the reported comment.")
			comment = await self.repo.get_comment(payload.reported_comment_id)
			if comment is None:
				raise CommentNotFoundError()
			if comment.author_id == reporter.id:
				raise InvalidInputError("You cannot report your own comment.")
			reported_user_id = comment.author_id

		post_id = payload.reported_post_id if payload.type == RT.POST else None
		comment_id = payload.reported_comment_id if payload.type == RT.COMMENT else None
		duplicate = await self.repo.find_open_report(
			reporter_id=reporter.id,
			type=payload.type,
			reported_user_id=reported_user_id,
			reported_post_id=post_id,
			reported_comment_id=comment_id,
		)
		if duplicate is not None:
			return {"success": False, "duplicate": True, "message": _DUPLICATE_MESSAGES[RT(payload.type)]}

		report = await self.repo.insert_report(
			models.Report(
				id=uuid4(),
				reporter_id=reporter.id,
				reported_user_id=reported_user_id,
				reported_post_id=post_id,
				reported_comment_id=comment_id,
				type=payload.type,
				reason=payload.reason,
				description=payload.description.strip() if payload.description else None,
				created_at=policies.utcnow(),
			)
		)
		obs_metrics.inc_report_created(report.type.value, report.reason.value)
		logger.info("moderation.report_created", extra={"report_id": str(report.id), "type": report.type.value})
		return {"success": True, "report_id": str(report.id)}

	async def get_all_reports(
		self,
		auth_user: AuthenticatedUser,
		*,
		status: RS | None = None,
		type: RT | None = None,
	) -> list[dto.ReportResponse]:
		await self._admin(auth_user)
		return await self._enrich(await self.repo.list_reports(status=status, type=type))

	async def get_report_by_id(self, auth_user: AuthenticatedUser, report_id: UUID) -> dto.ReportResponse:
		await self._admin(auth_user)
		return (await self._enrich([await self._report(report_id)]))[0]

	async def update_report_status(
		self,
		auth_user: AuthenticatedUser,
		report_id: UUID,
		payload: dto.ReportStatusRequest,
	) -> dict[str, bool]:
		admin = await self._admin(auth_user)
		report = await self._report(report_id)
		await self.repo.update_report(
			report.id,
			status=payload.status,
			resolution_action=payload.resolution_action,
			admin_notes=payload.admin_notes,
			reviewed_by=admin.id,
			reviewed_at=policies.utcnow(),
		)
		await audit.publish_moderation_event(
			"report.status_changed",
			actor_id=str(admin.id),
			target_user_id=str(report.reported_user_id) if report.reported_user_id else None,
			report_id=str(report.id),
			status=models.ReportStatus(payload.status).value,
			resolution_action=payload.resolution_action.value if payload.resolution_action else None,
		)
		obs_metrics.inc_moderation_action("report_status")
		return {"success": True}

	async def get_reports_stats(self, auth_user: AuthenticatedUser) -> dict[str, Any]:
		await self._admin(auth_user)
		reports = await self.repo.list_reports()
		by_status = Counter(report.status.value for report in reports)
		by_type = Counter(report.type.value for report in reports)
		by_reason = Counter(report.reason.value for report in reports)
		return {
			"total": len(reports),
			"by_status": {status.value: by_status.get(status.value, 0) for status in RS},
			"by_type": {kind.value: by_type.get(kind.value, 0) for kind in RT},
			"by_reason": {reason.value: by_reason.get(reason.value, 0) for reason in models.ReportReason},
		}

	async def delete_reported_content_and_resolve(
		self,
		auth_user: AuthenticatedUser,
		report_id: UUID,
		*,
		admin_notes: str | None = None,
	) -> dict[str, Any]:
		admin = await self._admin(auth_user)
		report = await self._report(report_id)
		deleted: dict[str, Any] = {}
		if report.type == RT.POST and report.reported_post_id:
			post = await self.repo.get_post(report.reported_post_id)
			if post is None:
				raise PostNotFoundError()
			deleted = await self.posts.delete_post_as_system(post)
		elif report.type == RT.COMMENT and report.reported_comment_id:
			comment = await self.repo.get_comment(report.reported_comment_id)
			if comment is not None:
				await self.repo.delete_comment(comment.id)
				post = await self.repo.get_post(comment.post_id)
				if post is not None:
					await self.notifications.remove_actor_from_notification(
						type=models.NotificationType.COMMENT,
						recipient_id=post.author_id,
						actor_id=comment.author_id,
						post_id=post.id,
					)
				deleted = {"comments": 1}
		await self.repo.update_report(
			report.id,
			status=RS.RESOLVED,
			resolution_action=models.ResolutionAction.CONTENT_DELETED,
			admin_notes=admin_notes,
			reviewed_by=admin.id,
			reviewed_at=policies.utcnow(),
		)
		await audit.publish_moderation_event(
			"report.content_deleted",
			actor_id=str(admin.id),
			target_user_id=str(report.reported_user_id) if report.reported_user_id else None,
			report_id=str(report.id),
		)
		obs_metrics.inc_moderation_action("content_deleted")
		return {"success": True, "deleted": deleted}

	async def get_report_history_for_user(self, auth_user: AuthenticatedUser, user_id: UUID) -> dict[str, Any]:
		await self._admin(auth_user)
		reports = await self.repo.list_reports(reported_user_id=user_id)
		by_status = Counter(report.status.value for report in reports)
		recent = reports[:REPORT_HISTORY_RECENT]
		reporters = await self.repo.get_users(list({report.reporter_id for report in recent}))
		return {
			"total_reports": len(reports),
			"by_status": {status.value: by_status.get(status.value, 0) for status in RS},
			"is_recidivist": len(reports) >= RECIDIVIST_REPORT_THRESHOLD,
			"recent_reports": [
				{
					"id": str(report.id),
					"type": report.type.value,
					"reason": report.reason.value,
					"status": report.status.value,
					"resolution_action": report.resolution_action.value if report.resolution_action else None,
					"created_at": report.created_at.isoformat(),
					"reporter": (
						_summary(reporters.get(report.reporter_id)).model_dump(mode="json")
						if report.reporter_id in reporters
						else None
					),
				}
				for report in recent
			],
		}

	# ------------------------------------------------------------------
	# Bans

	async def ban_user(self, auth_user: AuthenticatedUser, payload: dto.BanRequest) -> dict[str, bool]:
		admin = await self._admin(auth_user)
		target = await self.repo.get_user(payload.user_id)
		if target is None:
			raise UserNotFoundError()
		if target.id == admin.id:
			raise InvalidInputError("You cannot ban yourself.")
		if target.is_superuser:
			raise ForbiddenError("Superusers cannot be banned.")
		if policies.is_ban_active(target):
			raise AlreadyExistsError("This user is already banned.")
		if payload.type == models.BanType.TEMPORARY and not (payload.duration_days and payload.duration_days > 0):
			raise InvalidInputError("A temporary ban needs a positive duration.")

		now = policies.utcnow()
		expires_at = now + timedelta(days=payload.duration_days) if payload.type == models.BanType.TEMPORARY else None
		details = models.BanDetails(
			type=payload.type,
			reason=payload.reason.strip(),
			banned_at=now,
			banned_by=admin.id,
			expires_at=expires_at,
		)
		await self.repo.update_user(
			target.id,
			is_banned=True,
			ban_details=details,
			ban_history=[*self._lifted_history(target, lifted_by=None), models.BanRecord(**details.model_dump())],
		)
		if payload.report_id is not None:
			report = await self.repo.get_report(payload.report_id)
			if report is not None and report.status in _OPEN_STATUSES:
				await self.repo.update_report(
					report.id,
					status=RS.RESOLVED,
					resolution_action=models.ResolutionAction.BANNED,
					admin_notes=f"User banned: {details.reason}",
					reviewed_by=admin.id,
					reviewed_at=now,
				)
		await audit.publish_moderation_event(
			"user.banned",
			actor_id=str(admin.id),
			target_user_id=str(target.id),
			report_id=str(payload.report_id) if payload.report_id else None,
			ban_type=details.type.value,
			expires_at=expires_at.isoformat() if expires_at else None,
		)
		obs_metrics.inc_moderation_action("ban")
		logger.info("moderation.user_banned", extra={"user_id": str(target.id), "ban_type": details.type.value})
		return {"success": True}

	def _lifted_history(
		self,
		user: models.User,
		*,
		lifted_by: Optional[UUID],
	) -> list[models.BanRecord]:
		history = list(user.ban_history)
		if history and history[-1].lifted_at is None:
			history[-1] = history[-1].model_copy(update={"lifted_at": policies.utcnow(), "lifted_by": lifted_by})
		return history

	async def unban_user(self, auth_user: AuthenticatedUser, user_id: UUID) -> dict[str, bool]:
		admin = await self._admin(auth_user)
		target = await self.repo.get_user(user_id)
		if target is None:
			raise UserNotFoundError()
		if not target.is_banned:
			raise InvalidInputError("This user is not banned.")
		await self.repo.update_user(
			target.id,
			is_banned=False,
			ban_details=None,
			ban_history=self._lifted_history(target, lifted_by=admin.id),
		)
		await audit.publish_moderation_event("user.unbanned", actor_id=str(admin.id), target_user_id=str(target.id))
		obs_metrics.inc_moderation_action("unban")
		return {"success": True}

	async def get_all_banned_users(self, auth_user: AuthenticatedUser) -> list[dict[str, Any]]:
		await self._admin(auth_user)
		users = await self.repo.list_users(is_banned=True)
		admins = await self.repo.get_users(list({user.ban_details.banned_by for user in users if user.ban_details}))
		items = []
		for user in users:
			details = user.ban_details
			banned_by = admins.get(details.banned_by) if details else None
			items.append(
				{
					"user": dto.UserSummary.from_user(user).model_dump(mode="json"),
					"ban_type": details.type.value if details else None,
					"reason": details.reason if details else None,
					"banned_at": details.banned_at.isoformat() if details else None,
					"expires_at": details.expires_at.isoformat() if details and details.expires_at else None,
					"banned_by_name": banned_by.name if banned_by else None,
				}
			)
		return items

	async def get_ban_history(self, auth_user: AuthenticatedUser) -> list[dict[str, Any]]:
		"""Every lifted ban across all users, most recently lifted first."""
		await self._admin(auth_user)
		entries: list[tuple[models.User, models.BanRecord]] = []
		for user in await self.repo.list_users():
			entries.extend((user, record) for record in user.ban_history if record.lifted_at is not None)
		admin_ids = {record.banned_by for _user, record in entries}
		admin_ids |= {record.lifted_by for _user, record in entries if record.lifted_by}
		admins = await self.repo.get_users(list(admin_ids))
		entries.sort(key=lambda item: item[1].lifted_at, reverse=True)
		return [
			{
				"user": dto.UserSummary.from_user(user).model_dump(mode="json"),
				"ban_type": record.type.value,
				"reason": record.reason,
				"banned_at": record.banned_at.isoformat(),
				"lifted_at": record.lifted_at.isoformat(),
				"banned_by_name": admins[record.banned_by].name if record.banned_by in admins else None,
				"lifted_by_name": admins[record.lifted_by].name if record.lifted_by in admins else None,
			}
			for user, record in entries
		]

	async def get_user_ban_info(self, auth_user: AuthenticatedUser, user_id: UUID) -> dict[str, Any]:
		await self._admin(auth_user)
		user = await self.repo.get_user(user_id)
		if user is None:
			raise UserNotFoundError()
		admins = await self.repo.get_users(
			list({record.banned_by for record in user.ban_history} | {r.lifted_by for r in user.ban_history if r.lifted_by})
		)
		details = user.ban_details
		return {
			"is_banned": user.is_banned,
			"ban_type": details.type.value if details else None,
			"ban_reason": details.reason if details else None,
			"banned_at": details.banned_at.isoformat() if details else None,
			"ban_expires_at": details.expires_at.isoformat() if details and details.expires_at else None,
			"ban_history": [
				{
					**record.model_dump(mode="json"),
					"banned_by_name": admins[record.banned_by].name if record.banned_by in admins else None,
					"lifted_by_name": admins[record.lifted_by].name if record.lifted_by in admins else None,
				}
				for record in user.ban_history
			],
		}

	async def lift_expired_bans(self) -> dict[str, int]:
		now = policies.utcnow()
		banned = await self.repo.list_users(is_banned=True)
		lifted = 0
		for user in banned:
			details = user.ban_details
			if details is None or details.type != models.BanType.TEMPORARY:
				continue
			if details.expires_at is None or details.expires_at > now:
				continue
			await self.repo.update_user(
				user.id,
				is_banned=False,
				ban_details=None,
				ban_history=self._lifted_history(user, lifted_by=None),
			)
			await audit.publish_moderation_event("user.ban_expired", actor_id="system", target_user_id=str(user.id))
			lifted += 1
		if lifted:
			logger.info("moderation.bans_lifted", extra={"lifted": lifted})
		return {"scanned": len(banned), "lifted": lifted}
