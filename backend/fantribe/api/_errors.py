from __future__ import annotations

import logging

from fastapi import HTTPException, status

from fantribe.domain.exceptions import FanTribeError

logger = logging.getLogger(__name__)


def to_http_error(exc: Exception) -> HTTPException:
	if isinstance(exc, HTTPException):
		return exc
	if isinstance(exc, FanTribeError):
		return HTTPException(status_code=exc.status_code, detail=exc.detail)
	logger.exception("api.unhandled_error")
	return HTTPException(
		status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
		detail={"code": "INTERNAL_ERROR", "message": "Something went wrong. Please try again."},
	)
