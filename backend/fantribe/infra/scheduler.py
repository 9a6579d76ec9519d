"""APScheduler wrapper for periodic platform jobs."""

from __future__ import annotations

from typing import Callable

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger


class JobScheduler:
	"""Minimal wrapper around AsyncIOScheduler running in UTC."""

	def __init__(self) -> None:
		self._scheduler = AsyncIOScheduler(timezone="UTC")
		self._started = False

	def start(self) -> None:
		if not self._started:
			self._scheduler.start()
			self._started = True

	def shutdown(self) -> None:
		if self._started:
			self._scheduler.shutdown(wait=False)
			self._started = False

	def schedule_interval(self, job_id: str, func: Callable[[], object], *, seconds: int) -> None:
		trigger = IntervalTrigger(seconds=seconds)
		self._scheduler.add_job(func, trigger=trigger, id=job_id, replace_existing=True, max_instances=1)

	def schedule_cron(self, job_id: str, func: Callable[[], object], **fields: object) -> None:
		trigger = CronTrigger(timezone="UTC", **fields)
		self._scheduler.add_job(func, trigger=trigger, id=job_id, replace_existing=True, max_instances=1)

	def job_ids(self) -> list[str]:
		return [job.id for job in self._scheduler.get_jobs()]


__all__ = ["JobScheduler"]
