"""Deferred notification fan-out jobs."""

from __future__ import annotations

from fantribe.domain.notification_queue import NotificationQueue
from fantribe.jobs.base import PeriodicJob


class ProcessNotificationQueueJob(PeriodicJob):
	name = "notification-queue-process"

	async def execute(self) -> dict[str, int]:
		return await NotificationQueue(self.repo).process_next_batches()


class CleanupNotificationBatchesJob(PeriodicJob):
	name = "notification-queue-cleanup"

	async def execute(self) -> dict[str, int]:
		return await NotificationQueue(self.repo).cleanup_completed_batches()
