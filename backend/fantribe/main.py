"""FastAPI application entrypoint."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import socketio
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fantribe import sockets
from fantribe.api import ROUTERS
from fantribe.api.errors import install_error_handlers
from fantribe.api.middleware_request_id import RequestIdMiddleware
from fantribe.domain.users_service import UsersService
from fantribe.infra import postgres
from fantribe.infra.redis import close_redis
from fantribe.infra.scheduler import JobScheduler
from fantribe.jobs import register_jobs
from fantribe.obs import init as obs_init
from fantribe.settings import settings

logger = logging.getLogger(__name__)

DEV_ORIGINS = [
	"http://localhost:3000",
	"http://127.0.0.1:3000",
	"http://localhost:5173",
	"http://127.0.0.1:5173",
]


@asynccontextmanager
async def lifespan(app: FastAPI):
	await postgres.init_pool()
	scheduler: JobScheduler | None = None
	if settings.jobs_enabled:
		scheduler = JobScheduler()
		jobs = register_jobs(scheduler)
		scheduler.start()
		logger.info("jobs.started", extra={"count": len(jobs)})
	try:
		yield
	finally:
		if scheduler is not None:
			scheduler.shutdown()
		await postgres.close_pool()
		await close_redis()


app = FastAPI(title="FanTribe API", lifespan=lifespan)
install_error_handlers(app)

allow_origins = list(settings.cors_allow_origins)
# Starlette disallows wildcard '*' with allow_credentials=True.
if "*" in allow_origins or not allow_origins:
	allow_origins = DEV_ORIGINS if settings.is_dev() else [origin for origin in allow_origins if origin != "*"]

app.add_middleware(
	CORSMiddleware,
	allow_origins=allow_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)

sio = socketio.AsyncServer(async_mode="asgi", cors_allowed_origins=allow_origins)
realtime_namespace = sockets.RealtimeNamespace(presence=UsersService())
sio.register_namespace(realtime_namespace)
sockets.set_namespace(realtime_namespace)
socket_app = socketio.ASGIApp(sio, other_asgi_app=app)
obs_init(app)

app.add_middleware(RequestIdMiddleware)

for router in ROUTERS:
	app.include_router(router)
