from datetime import timedelta
from uuid import uuid4

import pytest

from fantribe.domain import models, policies
from fantribe.domain.admin_service import AdminService
from fantribe.domain.exceptions import ForbiddenError
from fantribe.domain.subscriptions_service import SubscriptionsService
from fantribe.domain.tips_service import TipsService
from fantribe.schemas import dto

from fakes import auth, make_post, make_user


@pytest.fixture
def service(repo) -> AdminService:
	return AdminService(repo)


@pytest.fixture
def admin(repo) -> models.User:
	return make_user(repo, account_type=models.AccountType.SUPERUSER)


def _application(user: models.User, full_name: str) -> models.CreatorApplication:
	return models.CreatorApplication(
		id=uuid4(),
		user_id=user.id,
		personal_info=models.PersonalInfo(full_name=full_name, date_of_birth="1990-01-01", address="x", phone_number="1"),
		application_reason="reason",
		submitted_at=policies.utcnow(),
	)


@pytest.mark.asyncio
async def test_counts_and_search(service, repo, admin):
	applicant = make_user(repo, name="Grace Hopper", username="grace")
	await repo.insert_application(_application(applicant, "Grace B. Hopper"))
	await repo.insert_report(
		models.Report(
			id=uuid4(),
			reporter_id=admin.id,
			reported_user_id=applicant.id,
			type=models.ReportType.USER,
			reason=models.ReportReason.SPAM,
			description="Grace posts spam",
			created_at=policies.utcnow(),
		)
	)

	with pytest.raises(ForbiddenError):
		await service.get_superuser_counts(auth(applicant))
	assert await service.get_superuser_counts(auth(admin)) == {"pending_applications": 1, "pending_reports": 1}

	results = await service.global_search(auth(admin), "grace")
	assert [item["username"] for item in results["users"]] == ["grace"]
	assert [item["full_name"] for item in results["applications"]] == ["Grace B. Hopper"]
	assert len(results["reports"]) == 1

	only_users = await service.global_search(auth(admin), "grace", category="users")
	assert only_users["applications"] == []
	assert await service.global_search(auth(admin), "   ") == {"users": [], "applications": [], "reports": []}


@pytest.mark.asyncio
async def test_platform_stats_cache(service, repo, admin):
	creator = make_user(repo, account_type=models.AccountType.CREATOR)
	make_post(repo, creator)

	fresh = await service.get_dashboard_stats(auth(admin))
	assert fresh["from_cache"] is False
	assert fresh["total_users"] == 2
	assert fresh["total_creators"] == 1

	await service.refresh_platform_stats()
	make_post(repo, creator)
	cached = await service.get_dashboard_stats(auth(admin))
	assert cached["from_cache"] is True
	assert cached["total_posts"] == 1

	repo.platform_stats = repo.platform_stats.model_copy(
		update={"last_updated": policies.utcnow() - timedelta(hours=2)}
	)
	stale = await service.get_dashboard_stats(auth(admin))
	assert stale["from_cache"] is False
	assert stale["total_posts"] == 2


@pytest.mark.asyncio
async def test_creator_dashboard_overview(service, repo):
	creator = make_user(repo, account_type=models.AccountType.CREATOR)
	fan = make_user(repo, name="Fan")
	await SubscriptionsService(repo).process_payment(
		dto.PaymentWebhookRequest(
			provider="mobile_money",
			provider_transaction_id="tx-1",
			creator_id=creator.id,
			subscriber_id=fan.id,
			amount=1000,
		)
	)
	await TipsService(repo).process_tip(
		dto.TipWebhookRequest(
			provider="mobile_money",
			provider_transaction_id="tip-1",
			sender_id=fan.id,
			creator_id=creator.id,
			amount=500,
		)
	)

	overview = await service.get_dashboard_overview(auth(creator))
	assert overview["total_revenue_net"] == round(1000 * 0.7 + 500 * 0.7)
	assert overview["active_subscribers"] == 1
	assert overview["tip_count"] == 1
	assert {item["type"] for item in overview["recent_activity"]} == {"new_subscriber", "tip_received"}

	with pytest.raises(ForbiddenError):
		await service.get_dashboard_overview(auth(fan))


@pytest.mark.asyncio
async def test_stale_drafts_are_cleaned(service, repo):
	creator = make_user(repo, account_type=models.AccountType.CREATOR)
	for age in (timedelta(hours=30), timedelta(hours=1)):
		await repo.insert_draft_asset(
			models.DraftAsset(
				id=uuid4(),
				author_id=creator.id,
				media_url=f"https://cdn.example.com/{age.total_seconds()}.jpg",
				asset_type="image",
				created_at=policies.utcnow() - age,
			)
		)
	assert await service.cleanup_draft_assets() == {"total": 1, "db_deleted": 1}
	assert len(repo.drafts) == 1
