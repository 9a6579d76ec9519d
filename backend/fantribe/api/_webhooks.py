from __future__ import annotations

import hmac
from typing import Optional

from fastapi import Header, HTTPException, status

from fantribe.settings import settings


async def require_webhook_secret(
	x_webhook_secret: Optional[str] = Header(default=None, alias="X-Webhook-Secret"),
) -> None:
	"""Reject provider callbacks that do not carry the shared secret."""
	secret = settings.payments_webhook_secret
	if not secret:
		if settings.is_dev():
			return
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="webhook_secret_not_configured")
	if not x_webhook_secret or not hmac.compare_digest(x_webhook_secret, secret):
		raise HTTPException(status.HTTP_403_FORBIDDEN, detail="invalid_webhook_secret")
