from datetime import timedelta

import pytest

from fantribe.domain import models, policies
from fantribe.domain.applications_service import ApplicationsService
from fantribe.domain.exceptions import AlreadyExistsError, ForbiddenError, InvalidInputError
from fantribe.schemas import dto

from fakes import auth, make_user

AS = models.ApplicationStatus


def _submission() -> dto.ApplicationSubmitRequest:
	return dto.ApplicationSubmitRequest(
		personal_info=models.PersonalInfo(
			full_name="Ada Lovelace",
			date_of_birth="1990-01-01",
			address="1 Main St",
			phone_number="+237600000000",
		),
		application_reason="  I make music.  ",
	)


@pytest.fixture
def service(repo) -> ApplicationsService:
	return ApplicationsService(repo)


@pytest.fixture
def admin(repo) -> models.User:
	return make_user(repo, account_type=models.AccountType.SUPERUSER)


async def _submit_and_reject(service, applicant, admin) -> models.CreatorApplication:
	await service.submit_application(auth(applicant), _submission())
	pending = await service.get_user_application(auth(applicant))
	await service.review_application(auth(admin), pending.id, dto.ApplicationReviewRequest(decision="rejected", admin_notes="blurry id"))
	return pending


@pytest.mark.asyncio
async def test_approval_promotes_user(service, repo, admin):
	applicant = make_user(repo)
	result = await service.submit_application(auth(applicant), _submission())
	assert result["success"] is True
	with pytest.raises(AlreadyExistsError):
		await service.submit_application(auth(applicant), _submission())

	application = await service.get_user_application(auth(applicant))
	assert application.application_reason == "I make music."
	assert [item.id for item in await service.get_pending_applications(auth(admin))] == [application.id]

	await service.review_application(auth(admin), application.id, dto.ApplicationReviewRequest(decision="approved"))
	assert repo.users[applicant.id].account_type == models.AccountType.CREATOR
	(notification,) = repo.notifications.values()
	assert notification.type == models.NotificationType.APPLICATION_APPROVED


@pytest.mark.asyncio
async def test_first_rejection_allows_immediate_reapply(service, repo, admin):
	applicant = make_user(repo)
	first = await _submit_and_reject(service, applicant, admin)
	assert await service.request_reapplication(auth(applicant)) == {
		"can_reapply": True,
		"must_contact_support": False,
		"wait_until": None,
	}
	await service.submit_application(auth(applicant), _submission())
	second = await service.get_user_application(auth(applicant))
	assert second.attempt_number == 2
	assert second.previous_application_id == first.id
	assert second.previous_rejection_reason == "blurry id"


@pytest.mark.asyncio
async def test_second_rejection_imposes_wait(service, repo, admin):
	applicant = make_user(repo)
	await _submit_and_reject(service, applicant, admin)
	await _submit_and_reject(service, applicant, admin)
	status = await service.request_reapplication(auth(applicant))
	assert status["can_reapply"] is False
	assert status["wait_until"] is not None
	with pytest.raises(InvalidInputError):
		await service.submit_application(auth(applicant), _submission())

	for application in list(repo.applications.values()):
		if application.reapplication_allowed_at is not None:
			await repo.update_application(
				application.id,
				reapplication_allowed_at=policies.utcnow() - timedelta(minutes=1),
			)
	await service.submit_application(auth(applicant), _submission())


@pytest.mark.asyncio
async def test_third_rejection_requires_support(service, repo, admin):
	applicant = make_user(repo)
	for _ in range(2):
		await _submit_and_reject(service, applicant, admin)
		for application in list(repo.applications.values()):
			await repo.update_application(application.id, reapplication_allowed_at=None)
	await _submit_and_reject(service, applicant, admin)

	assert (await service.request_reapplication(auth(applicant)))["must_contact_support"] is True
	with pytest.raises(ForbiddenError):
		await service.submit_application(auth(applicant), _submission())


@pytest.mark.asyncio
async def test_only_admins_read_other_applications(service, repo, admin):
	applicant = make_user(repo)
	nosy = make_user(repo)
	await service.submit_application(auth(applicant), _submission())
	with pytest.raises(ForbiddenError):
		await service.get_user_application(auth(nosy), applicant.id)
	assert (await service.get_user_application(auth(admin), applicant.id)).user_id == applicant.id
	assert len(await service.get_all_applications(auth(admin))) == 1
	with pytest.raises(InvalidInputError):
		await service.request_reapplication(auth(nosy))
