"""Creator applications: submission, review and the reapplication soft lock."""

from __future__ import annotations

import logging
from typing import Any, Optional
from uuid import UUID, uuid4

from fantribe.domain import models, policies, repo as repo_module
from fantribe.domain.constants import MAX_APPLICATION_REJECTIONS, REAPPLY_WAIT_AFTER_SECOND_REJECTION
from fantribe.domain.exceptions import (
	AlreadyExistsError,
	ApplicationNotFoundError,
	ForbiddenError,
	InvalidInputError,
)
from fantribe.domain.notifications_service import NotificationsService
from fantribe.infra.auth import AuthenticatedUser
from fantribe.schemas import dto

logger = logging.getLogger(__name__)

AS = models.ApplicationStatus


def _latest_rejection(applications: list[models.CreatorApplication]) -> Optional[models.CreatorApplication]:
	rejected = [item for item in applications if item.status == AS.REJECTED]
	if not rejected:
		return None
	return max(rejected, key=lambda item: item.reviewed_at or item.submitted_at)


class ApplicationsService:
	def __init__(
		self,
		repository: repo_module.FanTribeRepository | None = None,
		notifications: NotificationsService | None = None,
	) -> None:
		self.repo = repository or repo_module.FanTribeRepository()
		self.notifications = notifications or NotificationsService(self.repo)

	async def _admin(self, auth_user: AuthenticatedUser) -> models.User:
		return policies.require_superuser(await policies.resolve_actor(self.repo, auth_user))

	async def submit_application(
		self,
		auth_user: AuthenticatedUser,
		payload: dto.ApplicationSubmitRequest,
	) -> dict[str, Any]:
		user = await policies.resolve_actor(self.repo, auth_user)
		history = await self.repo.list_applications(user_id=user.id)
		if any(item.status in (AS.PENDING, AS.APPROVED) for item in history):
			raise AlreadyExistsError("An application is already in progress.")
		rejections = [item for item in history if item.status == AS.REJECTED]
		previous = _latest_rejection(history)
		if len(rejections) >= MAX_APPLICATION_REJECTIONS:
			raise ForbiddenError("Please contact support to apply again.")
		now = policies.utcnow()
		if previous is not None and previous.reapplication_allowed_at and now < previous.reapplication_allowed_at:
			raise InvalidInputError(
				"You cannot apply again yet.",
				context={"wait_until": previous.reapplication_allowed_at.isoformat()},
			)

		application = await self.repo.insert_application(
			models.CreatorApplication(
				id=uuid4(),
				user_id=user.id,
				personal_info=payload.personal_info,
				application_reason=payload.application_reason,
				identity_documents=payload.identity_documents,
				submitted_at=now,
				attempt_number=len(history) + 1,
				rejection_count=len(rejections),
				previous_rejection_reason=previous.admin_notes if previous else None,
				previous_application_id=previous.id if previous else None,
			)
		)
		logger.info(
			"applications.submitted",
			extra={"application_id": str(application.id), "attempt": application.attempt_number},
		)
		return {"success": True, "application_id": str(application.id)}

	async def get_user_application(
		self,
		auth_user: AuthenticatedUser,
		user_id: UUID | None = None,
	) -> Optional[models.CreatorApplication]:
		viewer = await policies.resolve_actor(self.repo, auth_user)
		target_id = user_id or viewer.id
		if target_id != viewer.id:
			policies.require_superuser(viewer)
		history = await self.repo.list_applications(user_id=target_id)
		for status in (AS.PENDING, AS.APPROVED):
			match = next((item for item in history if item.status == status), None)
			if match is not None:
				return match
		return next((item for item in history if item.status == AS.REJECTED), None)

	async def get_all_applications(self, auth_user: AuthenticatedUser) -> list[models.CreatorApplication]:
		await self._admin(auth_user)
		return await self.repo.list_applications()

	async def get_pending_applications(self, auth_user: AuthenticatedUser) -> list[models.CreatorApplication]:
		await self._admin(auth_user)
		return await self.repo.list_applications(status=AS.PENDING)

	async def get_application_by_id(self, auth_user: AuthenticatedUser, application_id: UUID) -> models.CreatorApplication:
		await self._admin(auth_user)
		application = await self.repo.get_application(application_id)
		if application is None:
			raise ApplicationNotFoundError()
		return application

	async def review_application(
		self,
		auth_user: AuthenticatedUser,
		application_id: UUID,
		payload: dto.ApplicationReviewRequest,
	) -> dict[str, Any]:
		admin = await self._admin(auth_user)
		application = await self.repo.get_application(application_id)
		if application is None:
			raise ApplicationNotFoundError()
		now = policies.utcnow()
		if payload.decision == "rejected":
			previous = await self.repo.list_applications(user_id=application.user_id, status=AS.REJECTED)
			rejection_count = len([item for item in previous if item.id != application.id]) + 1
			if rejection_count == 1:
				allowed_at = now
			elif rejection_count == 2:
				allowed_at = now + REAPPLY_WAIT_AFTER_SECOND_REJECTION
			else:
				allowed_at = None
			await self.repo.update_application(
				application.id,
				status=AS.REJECTED,
				admin_notes=payload.admin_notes,
				reviewed_at=now,
				rejection_count=rejection_count,
				reapplication_allowed_at=allowed_at,
			)
			notification_type = models.NotificationType.APPLICATION_REJECTED
		else:
			await self.repo.update_application(
				application.id,
				status=AS.APPROVED,
				admin_notes=payload.admin_notes,
				reviewed_at=now,
			)
			await self.repo.update_user(application.user_id, account_type=models.AccountType.CREATOR)
			notification_type = models.NotificationType.APPLICATION_APPROVED

		await self.notifications.create_notification(
			type=notification_type,
			recipient_id=application.user_id,
			actor_id=admin.id,
		)
		logger.info(
			"applications.reviewed",
			extra={"application_id": str(application.id), "decision": payload.decision},
		)
		return {"success": True}

	async def request_reapplication(self, auth_user: AuthenticatedUser) -> dict[str, Any]:
		user = await policies.resolve_actor(self.repo, auth_user)
		rejections = await self.repo.list_applications(user_id=user.id, status=AS.REJECTED)
		if not rejections:
			raise InvalidInputError("No rejected application found.")
		if len(rejections) >= MAX_APPLICATION_REJECTIONS:
			return {"can_reapply": False, "must_contact_support": True, "wait_until": None}
		latest = _latest_rejection(rejections)
		allowed_at = latest.reapplication_allowed_at if latest else None
		if allowed_at is not None and policies.utcnow() < allowed_at:
			return {"can_reapply": False, "must_contact_support": False, "wait_until": allowed_at.isoformat()}
		return {"can_reapply": True, "must_contact_support": False, "wait_until": None}
