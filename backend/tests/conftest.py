from __future__ import annotations

import pytest
import pytest_asyncio
from fakeredis.aioredis import FakeRedis
from httpx import ASGITransport, AsyncClient

from fantribe import sockets
from fantribe.api import (
	admin,
	applications,
	comments,
	likes,
	messaging,
	moderation,
	notifications,
	posts,
	social,
	subscriptions,
	tips,
	users,
)
from fantribe.domain.admin_service import AdminService
from fantribe.domain.applications_service import ApplicationsService
from fantribe.domain.comments_service import CommentsService
from fantribe.domain.likes_service import LikesService
from fantribe.domain.messaging_service import MessagingService
from fantribe.domain.moderation_service import ModerationService
from fantribe.domain.notification_queue import NotificationQueue
from fantribe.domain.notifications_service import NotificationsService
from fantribe.domain.posts_service import PostsService
from fantribe.domain.social_service import SocialService
from fantribe.domain.subscriptions_service import SubscriptionsService
from fantribe.domain.tips_service import TipsService
from fantribe.domain.users_service import UsersService
from fantribe.infra import postgres
from fantribe.main import app
from fantribe.settings import settings

from fakes import InMemoryRepository


@pytest_asyncio.fixture(autouse=True)
async def fake_redis():
	from fantribe.infra.redis import redis_client, set_redis_client
	original = redis_client._client
	client = FakeRedis(decode_responses=True)
	set_redis_client(client)
	try:
		yield client
	finally:
		set_redis_client(original)
		await client.flushall()


@pytest.fixture(autouse=True)
def patch_postgres(monkeypatch):
	async def _noop():
		return None

	monkeypatch.setattr(postgres, "init_pool", _noop)
	monkeypatch.setattr(postgres, "close_pool", _noop)


@pytest.fixture(autouse=True)
def force_test_settings():
	"""API tests authenticate with X-User-Id, which is only honoured in dev."""
	original_env = settings.environment
	original_secret = settings.payments_webhook_secret
	settings.environment = "dev"
	settings.payments_webhook_secret = "test-secret"
	try:
		yield
	finally:
		settings.environment = original_env
		settings.payments_webhook_secret = original_secret


@pytest.fixture(autouse=True)
def silence_sockets():
	sockets.set_namespace(None)
	yield


@pytest.fixture
def repo() -> InMemoryRepository:
	return InMemoryRepository()


@pytest.fixture
def wired_services(monkeypatch, repo):
	"""Point every router at services built on the in-memory repository."""
	wiring = {
		users: UsersService(repo),
		social: SocialService(repo),
		posts: PostsService(repo),
		comments: CommentsService(repo),
		likes: LikesService(repo),
		subscriptions: SubscriptionsService(repo),
		tips: TipsService(repo),
		notifications: NotificationsService(repo),
		messaging: MessagingService(repo),
		moderation: ModerationService(repo),
		applications: ApplicationsService(repo),
		admin: AdminService(repo),
	}
	for module, service in wiring.items():
		monkeypatch.setattr(module, "_service", service)
	monkeypatch.setattr(admin, "_queue", NotificationQueue(repo))
	return wiring


@pytest_asyncio.fixture
async def api_client(wired_services):
	transport = ASGITransport(app=app)
	async with AsyncClient(transport=transport, base_url="http://testserver") as client:
		yield client
