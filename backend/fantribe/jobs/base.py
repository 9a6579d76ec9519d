"""Shared run wrapper for scheduled jobs."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fantribe.domain import repo as repo_module
from fantribe.obs import logging as obs_logging
from fantribe.obs import metrics as obs_metrics

logger = logging.getLogger(__name__)


class PeriodicJob:
	"""Base class for jobs driven by :class:`fantribe.infra.scheduler.JobScheduler`.

	Subclasses set ``name`` and implement :meth:`execute`; :meth:`run_once` is
	what the scheduler calls. Every run is timed and counted by result.
	"""

	name: str = "job"

	def __init__(self, *, repository: repo_module.FanTribeRepository | None = None) -> None:
		self.repo = repository or repo_module.FanTribeRepository()

	async def execute(self) -> Any:
		raise NotImplementedError

	async def run_once(self) -> Any:
		started = datetime.now(timezone.utc)
		outcome = "error"
		context = obs_logging.bind_context(job=self.name)
		try:
			result = await self.execute()
			outcome = "success"
			logger.debug("jobs.run_complete", extra={"job": self.name, "result": result})
			return result
		except Exception:
			logger.exception("jobs.run_failed", extra={"job": self.name})
			raise
		finally:
			obs_logging.reset_context(context)
			duration = (datetime.now(timezone.utc) - started).total_seconds()
			obs_metrics.record_job_run(self.name, result=outcome, duration_seconds=duration)
