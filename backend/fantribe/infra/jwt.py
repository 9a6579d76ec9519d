"""Access tokens minted by the identity provider.

Tokens are HS256, signed with ``settings.secret_key``. The subject is the
FanTribe user id; the ``account_type`` claim becomes the caller's role.
"""

from __future__ import annotations

import time
from typing import Any, Optional

import jwt
from jwt import InvalidTokenError

from fantribe.settings import settings

ALGORITHM = "HS256"
REQUIRED_CLAIMS = ["exp", "iat", "iss", "aud", "sub"]


def issue_access_token(
	user_id: str,
	*,
	account_type: Optional[str] = None,
	username: Optional[str] = None,
	session_id: Optional[str] = None,
	ttl_seconds: Optional[int] = None,
) -> str:
	now = int(time.time())
	body: dict[str, Any] = {
		"sub": str(user_id),
		"iss": settings.jwt_issuer,
		"aud": settings.jwt_audience,
		"iat": now,
		"exp": now + (ttl_seconds or settings.access_token_ttl_seconds),
	}
	if account_type:
		body["account_type"] = account_type
	if username:
		body["username"] = username
	if session_id:
		body["sid"] = session_id
	return jwt.encode(body, settings.secret_key, algorithm=ALGORITHM)


def decode_access_token(token: str) -> dict[str, Any]:
	"""Raises ``jwt.InvalidTokenError`` subclasses for anything unusable."""
	payload = jwt.decode(
		token,
		settings.secret_key,
		algorithms=[ALGORITHM],
		audience=settings.jwt_audience,
		issuer=settings.jwt_issuer,
		leeway=5,
		options={"require": REQUIRED_CLAIMS},
	)
	if not str(payload.get("sub") or "").strip():
		raise InvalidTokenError("missing_claim:sub")
	return payload
