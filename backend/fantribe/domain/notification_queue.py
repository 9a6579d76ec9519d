"""Deferred fan-out for notifications with large recipient lists."""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import Any, Sequence
from uuid import UUID, uuid4

from fantribe.domain import models, policies, repo as repo_module
from fantribe.domain.notifications_service import NotificationsService
from fantribe.infra.auth import AuthenticatedUser
from fantribe.obs import metrics as obs_metrics
from fantribe.settings import settings

logger = logging.getLogger(__name__)

CLEANUP_LIMIT = 100


def _chunks(items: Sequence[UUID], size: int) -> list[list[UUID]]:
	return [list(items[idx:idx + size]) for idx in range(0, len(items), size)]


class NotificationQueue:
	"""Direct delivery for small audiences, chunked pending batches otherwise."""

	def __init__(
		self,
		repository: repo_module.FanTribeRepository | None = None,
		notifications: NotificationsService | None = None,
	) -> None:
		self.repo = repository or repo_module.FanTribeRepository()
		self.notifications = notifications or NotificationsService(self.repo)

	async def send_post_notifications(
		self,
		*,
		author_id: UUID,
		post_id: UUID,
		recipient_ids: Sequence[UUID],
	) -> dict[str, Any]:
		recipients = [item for item in dict.fromkeys(recipient_ids) if item != author_id]
		if len(recipients) <= settings.notification_direct_threshold:
			sent = 0
			for recipient_id in recipients:
				result = await self.notifications.create_notification(
					type=models.NotificationType.NEW_POST,
					recipient_id=recipient_id,
					actor_id=author_id,
					post_id=post_id,
				)
				if result["created"]:
					sent += 1
			return {"sent": sent, "deferred": False}
		queued = await self.enqueue_notifications(
			type=models.NotificationType.NEW_POST,
			actor_id=author_id,
			post_id=post_id,
			recipient_ids=recipients,
		)
		return {"sent": 0, "deferred": True, "batch_count": queued["batch_count"]}

	async def enqueue_notifications(
		self,
		*,
		type: models.NotificationType,
		actor_id: UUID,
		recipient_ids: Sequence[UUID],
		post_id: UUID | None = None,
		comment_id: UUID | None = None,
	) -> dict[str, Any]:
		queue_ids: list[str] = []
		now = policies.utcnow()
		for chunk in _chunks(list(recipient_ids), settings.notification_batch_size):
			batch = await self.repo.insert_pending_batch(
				models.PendingNotificationBatch(
					id=uuid4(),
					type=type,
					actor_id=actor_id,
					recipient_ids=chunk,
					post_id=post_id,
					comment_id=comment_id,
					status=models.BatchStatus.PENDING,
					attempts=0,
					processed_count=0,
					created_at=now,
				)
			)
			queue_ids.append(str(batch.id))
		logger.info(
			"notification_queue.enqueued",
			extra={"type": models.NotificationType(type).value, "recipients": len(recipient_ids), "batches": len(queue_ids)},
		)
		return {"total_recipients": len(recipient_ids), "batch_count": len(queue_ids), "queue_ids": queue_ids}

	async def _process_batch(self, batch: models.PendingNotificationBatch) -> tuple[int, int]:
		attempts = batch.attempts + 1
		await self.repo.update_pending_batch(
			batch.id,
			status=models.BatchStatus.PROCESSING,
			attempts=attempts,
			last_attempt_at=policies.utcnow(),
		)
		sent = 0
		failures = 0
		# processed_count is where the next attempt resumes: the first failed recipient.
		resume_at: int | None = None
		for offset, recipient_id in enumerate(batch.recipient_ids[batch.processed_count:]):
			try:
				result = await self.notifications.create_notification(
					type=batch.type,
					recipient_id=recipient_id,
					actor_id=batch.actor_id,
					post_id=batch.post_id,
					comment_id=batch.comment_id,
					tip_id=batch.tip_id,
					tip_amount=batch.tip_amount,
					tip_currency=batch.tip_currency,
				)
			except Exception:
				failures += 1
				if resume_at is None:
					resume_at = batch.processed_count + offset
				logger.warning(
					"notification_queue.recipient_failed",
					extra={"batch_id": str(batch.id), "recipient_id": str(recipient_id)},
					exc_info=True,
				)
				continue
			if result["created"]:
				sent += 1

		processed = len(batch.recipient_ids) if resume_at is None else resume_at
		if resume_at is None:
			status = models.BatchStatus.COMPLETED
		elif attempts >= settings.notification_max_attempts:
			status = models.BatchStatus.FAILED
		else:
			status = models.BatchStatus.PENDING
		await self.repo.update_pending_batch(
			batch.id,
			status=status,
			processed_count=processed,
			error_message=f"{failures} notifications failed" if failures else None,
		)
		obs_metrics.inc_notification_batch(status.value)
		return sent, failures

	async def process_next_batches(self) -> dict[str, int]:
		batches = await self.repo.list_pending_batches(limit=settings.notification_batches_per_run)
		sent_total = 0
		failure_total = 0
		for batch in batches:
			sent, failures = await self._process_batch(batch)
			sent_total += sent
			failure_total += failures
		obs_metrics.set_notification_queue_depth(await self.repo.pending_recipients_total())
		if batches:
			logger.info(
				"notification_queue.batch_processed",
				extra={"batches": len(batches), "sent": sent_total, "failures": failure_total},
			)
		return {"processed_batches": len(batches), "notifications_sent": sent_total, "failures": failure_total}

	async def cleanup_completed_batches(self) -> dict[str, int]:
		cutoff = policies.utcnow() - timedelta(days=settings.notification_batch_retention_days)
		deleted = await self.repo.delete_completed_batches(older_than=cutoff, limit=CLEANUP_LIMIT)
		return {"deleted": deleted}

	async def get_queue_stats(self, auth_user: AuthenticatedUser) -> dict[str, int]:
		user = await policies.resolve_actor(self.repo, auth_user)
		policies.require_superuser(user)
		counts = await self.repo.count_batches_by_status()
		stats = {status.value: int(counts.get(status.value, 0)) for status in models.BatchStatus}
		stats["pending_recipients"] = await self.repo.pending_recipients_total()
		return stats
