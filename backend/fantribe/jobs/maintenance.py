"""Platform statistics, ban expiry and draft asset cleanup."""

from __future__ import annotations

from typing import Any

from fantribe.domain.admin_service import AdminService
from fantribe.domain.moderation_service import ModerationService
from fantribe.jobs.base import PeriodicJob


class RefreshPlatformStatsJob(PeriodicJob):
	name = "platform-stats-refresh"

	async def execute(self) -> dict[str, Any]:
		stats = await AdminService(self.repo).refresh_platform_stats()
		return {"total_users": stats.total_users, "total_posts": stats.total_posts}


class LiftExpiredBansJob(PeriodicJob):
	name = "bans-lift-expired"

	async def execute(self) -> dict[str, int]:
		return await ModerationService(self.repo).lift_expired_bans()


class CleanupDraftAssetsJob(PeriodicJob):
	name = "draft-assets-cleanup"

	async def execute(self) -> dict[str, int]:
		return await AdminService(self.repo).cleanup_draft_assets()
