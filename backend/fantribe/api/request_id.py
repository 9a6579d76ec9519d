"""Request ID helper for endpoints and error handlers.

The observability middleware binds the id into the logging context; the
request id middleware stores it on ``request.state``.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request

from fantribe.obs import logging as obs_logging

REQUEST_ID_ATTR = "request_id"
REQUEST_ID_HEADER = "X-Request-Id"


def get_request_id(request: Optional[Request] = None, default: str = "unknown") -> str:
	rid = obs_logging.current_request_id()
	if rid:
		return rid
	if request is not None:
		rid = getattr(request.state, REQUEST_ID_ATTR, None)
		if rid:
			return rid
	return default
