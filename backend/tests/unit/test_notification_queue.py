from datetime import timedelta
from uuid import uuid4

import pytest

from fantribe.domain import models, policies
from fantribe.domain.notification_queue import NotificationQueue
from fantribe.domain.notifications_service import NotificationsService
from fantribe.settings import settings

from fakes import make_post, make_user

BS = models.BatchStatus


class FlakyNotifications(NotificationsService):
	"""Fails once for every recipient listed in ``broken``."""

	def __init__(self, repository, broken):
		super().__init__(repository)
		self.broken = set(broken)

	async def create_notification(self, **kwargs):
		if kwargs["recipient_id"] in self.broken:
			self.broken.discard(kwargs["recipient_id"])
			raise RuntimeError("push provider down")
		return await super().create_notification(**kwargs)


@pytest.fixture
def small_batches(monkeypatch):
	monkeypatch.setattr(settings, "notification_direct_threshold", 2)
	monkeypatch.setattr(settings, "notification_batch_size", 2)
	monkeypatch.setattr(settings, "notification_max_attempts", 2)


@pytest.mark.asyncio
async def test_small_audience_is_notified_directly(repo):
	creator = make_user(repo, account_type=models.AccountType.CREATOR)
	post = make_post(repo, creator)
	fans = [make_user(repo) for _ in range(3)]
	queue = NotificationQueue(repo)
	result = await queue.send_post_notifications(
		author_id=creator.id,
		post_id=post.id,
		recipient_ids=[fan.id for fan in fans] + [creator.id, fans[0].id],
	)
	assert result == {"sent": 3, "deferred": False}
	assert repo.batches == {}


@pytest.mark.asyncio
async def test_large_audience_is_batched_then_drained(repo, small_batches):
	creator = make_user(repo, account_type=models.AccountType.CREATOR)
	post = make_post(repo, creator)
	fans = [make_user(repo) for _ in range(5)]
	queue = NotificationQueue(repo)

	result = await queue.send_post_notifications(author_id=creator.id, post_id=post.id, recipient_ids=[fan.id for fan in fans])
	assert result == {"sent": 0, "deferred": True, "batch_count": 3}
	assert await repo.pending_recipients_total() == 5

	summary = await queue.process_next_batches()
	assert summary == {"processed_batches": 3, "notifications_sent": 5, "failures": 0}
	assert {batch.status for batch in repo.batches.values()} == {BS.COMPLETED}
	assert {item.recipient_id for item in repo.notifications.values()} == {fan.id for fan in fans}


@pytest.mark.asyncio
async def test_failed_recipients_are_retried_until_max_attempts(repo, small_batches):
	creator = make_user(repo, account_type=models.AccountType.CREATOR)
	post = make_post(repo, creator)
	fans = [make_user(repo) for _ in range(2)]
	queue = NotificationQueue(repo, FlakyNotifications(repo, broken=[fans[0].id]))
	await queue.enqueue_notifications(
		type=models.NotificationType.NEW_POST,
		actor_id=creator.id,
		post_id=post.id,
		recipient_ids=[fan.id for fan in fans],
	)

	first = await queue.process_next_batches()
	assert first["failures"] == 1
	(batch,) = repo.batches.values()
	assert batch.status == BS.PENDING
	assert batch.attempts == 1
	assert batch.error_message == "1 notifications failed"

	await queue.process_next_batches()
	(batch,) = repo.batches.values()
	assert batch.status == BS.COMPLETED
	assert {item.recipient_id for item in repo.notifications.values()} == {fan.id for fan in fans}


@pytest.mark.asyncio
async def test_batch_fails_after_max_attempts(repo, small_batches):
	creator = make_user(repo, account_type=models.AccountType.CREATOR)
	fan = make_user(repo)

	class AlwaysBroken(NotificationsService):
		async def create_notification(self, **kwargs):
			raise RuntimeError("push provider down")

	queue = NotificationQueue(repo, AlwaysBroken(repo))
	await queue.enqueue_notifications(type=models.NotificationType.NEW_POST, actor_id=creator.id, recipient_ids=[fan.id])
	await queue.process_next_batches()
	await queue.process_next_batches()
	(batch,) = repo.batches.values()
	assert batch.status == BS.FAILED
	assert batch.attempts == 2
	assert (await queue.process_next_batches())["processed_batches"] == 0


@pytest.mark.asyncio
async def test_cleanup_drops_old_completed_batches(repo):
	creator = make_user(repo, account_type=models.AccountType.CREATOR)
	old = policies.utcnow() - timedelta(days=settings.notification_batch_retention_days + 1)
	for status in (BS.COMPLETED, BS.FAILED):
		await repo.insert_pending_batch(
			models.PendingNotificationBatch(
				id=uuid4(),
				type=models.NotificationType.NEW_POST,
				actor_id=creator.id,
				recipient_ids=[],
				status=status,
				created_at=old,
			)
		)
	queue = NotificationQueue(repo)
	assert await queue.cleanup_completed_batches() == {"deleted": 1}
	assert [batch.status for batch in repo.batches.values()] == [BS.FAILED]
