"""Scheduled jobs and their schedules."""

from __future__ import annotations

from fantribe.domain import repo as repo_module
from fantribe.infra.scheduler import JobScheduler
from fantribe.jobs.base import PeriodicJob
from fantribe.jobs.maintenance import CleanupDraftAssetsJob, LiftExpiredBansJob, RefreshPlatformStatsJob
from fantribe.jobs.notifications import CleanupNotificationBatchesJob, ProcessNotificationQueueJob
from fantribe.jobs.presence import CleanupTypingIndicatorsJob, MarkStaleUsersOfflineJob
from fantribe.jobs.subscriptions import ExpireSubscriptionsJob, LockExpiredMessagingJob


def register_jobs(
	scheduler: JobScheduler,
	*,
	repository: repo_module.FanTribeRepository | None = None,
) -> list[PeriodicJob]:
	"""Build every job and attach it to ``scheduler``; returns the instances."""
	repo = repository or repo_module.FanTribeRepository()
	expire = ExpireSubscriptionsJob(repository=repo)
	lock = LockExpiredMessagingJob(repository=repo)
	queue = ProcessNotificationQueueJob(repository=repo)
	queue_cleanup = CleanupNotificationBatchesJob(repository=repo)
	stale = MarkStaleUsersOfflineJob(repository=repo)
	stats = RefreshPlatformStatsJob(repository=repo)
	typing = CleanupTypingIndicatorsJob(repository=repo)
	bans = LiftExpiredBansJob(repository=repo)
	drafts = CleanupDraftAssetsJob(repository=repo)

	scheduler.schedule_cron(expire.name, expire.run_once, hour=0, minute=0)
	scheduler.schedule_interval(lock.name, lock.run_once, seconds=5 * 60)
	scheduler.schedule_interval(queue.name, queue.run_once, seconds=60)
	scheduler.schedule_cron(queue_cleanup.name, queue_cleanup.run_once, hour=4, minute=0)
	scheduler.schedule_interval(stale.name, stale.run_once, seconds=2 * 60)
	scheduler.schedule_interval(stats.name, stats.run_once, seconds=60 * 60)
	scheduler.schedule_interval(typing.name, typing.run_once, seconds=30)
	scheduler.schedule_interval(bans.name, bans.run_once, seconds=60 * 60)
	scheduler.schedule_cron(drafts.name, drafts.run_once, hour=3, minute=0)
	return [expire, lock, queue, queue_cleanup, stale, stats, typing, bans, drafts]


__all__ = ["PeriodicJob", "register_jobs"]
