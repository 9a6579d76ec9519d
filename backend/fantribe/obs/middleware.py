"""ASGI middleware for request metrics and structured access logs."""

from __future__ import annotations

import time
from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from fantribe.obs import logging as obs_logging
from fantribe.obs import metrics
from fantribe.settings import settings

REQUEST_ID_HEADER = "X-Request-Id"

# Probes and scrapes would drown the access log.
_QUIET_PATHS = frozenset({"/health/live", "/health/ready", "/metrics"})


def _route_template(request: Request) -> str:
	"""``/posts/{post_id}`` rather than the concrete path, to keep label cardinality bounded."""
	route = request.scope.get("route")
	path = getattr(route, "path", None)
	return path or request.url.path


class ObservabilityMiddleware(BaseHTTPMiddleware):
	def __init__(self, app, *, enabled: bool = True) -> None:
		super().__init__(app)
		self._enabled = enabled
		self._logger = obs_logging.get_logger("fantribe.http")

	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		if not (self._enabled and settings.obs_enabled):
			return await call_next(request)

		request_id = getattr(request.state, "request_id", None) or request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
		request.state.request_id = request_id
		context = obs_logging.bind_context(
			request_id=request_id,
			route=request.url.path,
			user_id=request.headers.get("X-User-Id"),
			client_ip=request.client.host if request.client else None,
		)
		started = time.perf_counter()
		status_code = 500
		try:
			response = await call_next(request)
			status_code = response.status_code
		except Exception:
			self._logger.exception("http_request_error", extra={"method": request.method})
			raise
		finally:
			self._record(request, status_code, time.perf_counter() - started)
			obs_logging.reset_context(context)

		response.headers.setdefault(REQUEST_ID_HEADER, request_id)
		return response

	def _record(self, request: Request, status_code: int, elapsed: float) -> None:
		route = _route_template(request)
		metrics.observe_request(route, request.method, status_code, elapsed)
		if request.url.path in _QUIET_PATHS and status_code < 400:
			return
		self._logger.info(
			"http_request",
			extra={
				"status": status_code,
				"method": request.method,
				"latency_ms": round(elapsed * 1000, 3),
				"route": route,
			},
		)


def install(app, *, enabled: bool = True) -> None:
	app.add_middleware(ObservabilityMiddleware, enabled=enabled)
