"""Presence and typing indicator housekeeping."""

from __future__ import annotations

from fantribe.domain.messaging_service import MessagingService
from fantribe.domain.users_service import UsersService
from fantribe.jobs.base import PeriodicJob


class MarkStaleUsersOfflineJob(PeriodicJob):
	"""Users whose heartbeat stopped without a clean disconnect go offline."""

	name = "presence-stale-offline"

	async def execute(self) -> dict[str, int]:
		return await UsersService(self.repo).mark_stale_users_offline()


class CleanupTypingIndicatorsJob(PeriodicJob):
	name = "typing-cleanup"

	async def execute(self) -> dict[str, int]:
		return await MessagingService(self.repo).cleanup_typing_indicators()
