"""Superuser tooling, platform statistics and the creator dashboard."""

from __future__ import annotations

import logging
from typing import Any, Literal
from uuid import UUID

from fantribe.domain import models, policies, repo as repo_module
from fantribe.domain.constants import (
	DRAFT_ASSET_TTL,
	PLATFORM_STATS_CACHE_TTL,
	SUBSCRIPTION_CREATOR_RATE,
	TIP_CREATOR_RATE,
)
from fantribe.domain.tips_service import to_xaf
from fantribe.infra.auth import AuthenticatedUser

logger = logging.getLogger(__name__)

SearchCategory = Literal["all", "users", "applications", "reports"]

RECENT_ACTIVITY_PER_KIND = 5
RECENT_ACTIVITY_SHOWN = 10


class AdminService:
	def __init__(self, repository: repo_module.FanTribeRepository | None = None) -> None:
		self.repo = repository or repo_module.FanTribeRepository()

	async def _admin(self, auth_user: AuthenticatedUser) -> models.User:
		return policies.require_superuser(await policies.resolve_actor(self.repo, auth_user))

	async def get_superuser_counts(self, auth_user: AuthenticatedUser) -> dict[str, int]:
		await self._admin(auth_user)
		return {
			"pending_applications": await self.repo.count_applications(status=models.ApplicationStatus.PENDING),
			"pending_reports": await self.repo.count_reports(status=models.ReportStatus.PENDING),
		}

	async def global_search(
		self,
		auth_user: AuthenticatedUser,
		query: str,
		*,
		category: SearchCategory = "all",
		limit: int = 5,
	) -> dict[str, list[dict[str, Any]]]:
		await self._admin(auth_user)
		results: dict[str, list[dict[str, Any]]] = {"users": [], "applications": [], "reports": []}
		term = query.strip().lower()
		if not term:
			return results
		limit = max(1, min(limit, 50))

		users: dict[UUID, models.User] = {}
		if category in ("all", "users", "applications"):
			users = {user.id: user for user in await self.repo.list_users()}

		if category in ("all", "users"):
			matches = [
				user for user in users.values()
				if term in user.name.lower()
				or term in (user.username or "").lower()
				or term in user.email.lower()
			]
			results["users"] = [
				{
					"id": str(user.id),
					"name": user.name,
					"username": user.username or "",
					"email": user.email,
					"image": user.image,
				}
				for user in matches[:limit]
			]

		if category in ("all", "applications"):
			found = []
			for application in await self.repo.list_applications():
				owner = users.get(application.user_id)
				haystack = [application.personal_info.full_name.lower()]
				if owner is not None:
					haystack += [owner.email.lower(), (owner.username or "").lower()]
				if any(term in value for value in haystack):
					found.append(
						{
							"id": str(application.id),
							"full_name": application.personal_info.full_name,
							"email": owner.email if owner else None,
							"status": application.status.value,
							"submitted_at": application.submitted_at.isoformat(),
						}
					)
				if len(found) >= limit:
					break
			results["applications"] = found

		if category in ("all", "reports"):
			found = []
			for report in await self.repo.list_reports():
				if term in report.reason.value or term in (report.description or "").lower():
					found.append(
						{
							"id": str(report.id),
							"type": report.type.value,
							"reason": report.reason.value,
							"status": report.status.value,
							"created_at": report.created_at.isoformat(),
						}
					)
				if len(found) >= limit:
					break
			results["reports"] = found
		return results

	# ------------------------------------------------------------------
	# Platform stats

	async def _compute_platform_stats(self) -> models.PlatformStats:
		AS = models.ApplicationStatus
		return models.PlatformStats(
			total_users=await self.repo.count_users(),
			total_creators=await self.repo.count_users(account_type=models.AccountType.CREATOR),
			total_posts=await self.repo.count_posts(),
			pending_applications=await self.repo.count_applications(status=AS.PENDING),
			approved_applications=await self.repo.count_applications(status=AS.APPROVED),
			total_applications=await self.repo.count_applications(),
			pending_reports=await self.repo.count_reports(status=models.ReportStatus.PENDING),
			total_reports=await self.repo.count_reports(),
			last_updated=policies.utcnow(),
		)

	async def refresh_platform_stats(self) -> models.PlatformStats:
		stats = await self._compute_platform_stats()
		await self.repo.upsert_platform_stats(stats)
		logger.info("admin.platform_stats_refreshed", extra={"total_users": stats.total_users})
		return stats

	async def get_dashboard_stats(self, auth_user: AuthenticatedUser) -> dict[str, Any]:
		await self._admin(auth_user)
		cached = await self.repo.get_platform_stats()
		if cached is not None and policies.utcnow() - cached.last_updated < PLATFORM_STATS_CACHE_TTL:
			return {**cached.model_dump(mode="json"), "from_cache": True}
		stats = await self._compute_platform_stats()
		return {**stats.model_dump(mode="json"), "from_cache": False}

	# ------------------------------------------------------------------
	# Creator dashboard

	async def get_dashboard_overview(self, auth_user: AuthenticatedUser) -> dict[str, Any]:
		creator = await policies.resolve_actor(self.repo, auth_user, allowed_account_types=policies.CREATOR_TYPES)
		transactions = [
			row for row in await self.repo.list_transactions(creator_id=creator.id)
			if row.status == "succeeded"
		]
		tips = await self.repo.list_tips(creator_id=creator.id)
		now = policies.utcnow()
		active = [
			row
			for row in await self.repo.list_subscriptions(
				creator_id=creator.id,
				type=models.SubscriptionType.CONTENT_ACCESS,
				statuses=[models.SubscriptionStatus.ACTIVE],
			)
			if row.is_active(now)
		]
		stats = await self.repo.get_user_stats(creator.id)

		subscriptions_gross = sum(to_xaf(row.amount, row.currency) for row in transactions)
		tips_gross = sum(to_xaf(tip.amount, tip.currency) for tip in tips)
		revenue_net = round(subscriptions_gross * SUBSCRIPTION_CREATOR_RATE + tips_gross * TIP_CREATOR_RATE)

		recent_subs = active[:RECENT_ACTIVITY_PER_KIND]
		recent_tips = tips[:RECENT_ACTIVITY_PER_KIND]
		actors = await self.repo.get_users(
			list({row.subscriber_id for row in recent_subs} | {tip.sender_id for tip in recent_tips})
		)
		activity: list[dict[str, Any]] = []
		for row in recent_subs:
			actor = actors.get(row.subscriber_id)
			activity.append(
				{
					"type": "new_subscriber",
					"timestamp": row.created_at,
					"actor_name": actor.name if actor else "User",
					"actor_image": actor.image if actor else "",
				}
			)
		for tip in recent_tips:
			actor = actors.get(tip.sender_id)
			activity.append(
				{
					"type": "tip_received",
					"timestamp": tip.created_at,
					"actor_name": actor.name if actor else "User",
					"actor_image": actor.image if actor else "",
					"amount": round(to_xaf(tip.amount, tip.currency)),
				}
			)
		activity.sort(key=lambda item: item["timestamp"], reverse=True)
		for item in activity:
			item["timestamp"] = item["timestamp"].isoformat()

		return {
			"total_revenue_net": revenue_net,
			"active_subscribers": len(active),
			"total_posts": stats.posts_count if stats else 0,
			"total_likes": stats.total_likes if stats else 0,
			"tip_count": len(tips),
			"currency": models.Currency.XAF.value,
			"recent_activity": activity[:RECENT_ACTIVITY_SHOWN],
		}

	# ------------------------------------------------------------------
	# Jobs

	async def cleanup_draft_assets(self) -> dict[str, int]:
		cutoff = policies.utcnow() - DRAFT_ASSET_TTL
		stale = await self.repo.list_draft_assets_before(cutoff)
		deleted = await self.repo.delete_draft_assets([asset.id for asset in stale]) if stale else 0
		if stale:
			logger.info("admin.draft_assets_cleaned", extra={"total": len(stale), "db_deleted": deleted})
		return {"total": len(stale), "db_deleted": deleted}
