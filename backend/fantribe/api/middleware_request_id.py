"""Middleware that guarantees an X-Request-Id on every response."""

from __future__ import annotations

from uuid import uuid4

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from fantribe.api.request_id import REQUEST_ID_ATTR, REQUEST_ID_HEADER


class RequestIdMiddleware(BaseHTTPMiddleware):
	async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
		rid = request.headers.get(REQUEST_ID_HEADER) or str(uuid4())
		setattr(request.state, REQUEST_ID_ATTR, rid)
		response = await call_next(request)
		if REQUEST_ID_HEADER not in response.headers:
			response.headers[REQUEST_ID_HEADER] = rid
		return response
