"""Subscription expiry and messaging lock jobs."""

from __future__ import annotations

from fantribe.domain.subscriptions_service import SubscriptionsService
from fantribe.jobs.base import PeriodicJob


class ExpireSubscriptionsJob(PeriodicJob):
	"""Flags active subscriptions past their end date as expired."""

	name = "subscriptions-expire"

	async def execute(self) -> dict[str, int]:
		return await SubscriptionsService(self.repo).check_and_update_expired_subscriptions()


class LockExpiredMessagingJob(PeriodicJob):
	name = "messaging-lock-expired"

	async def execute(self) -> dict[str, int]:
		return await SubscriptionsService(self.repo).check_and_lock_expired_messaging_subscriptions()
