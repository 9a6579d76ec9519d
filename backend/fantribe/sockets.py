"""Socket.IO namespace for realtime notifications and messaging."""

from __future__ import annotations

import logging
from typing import Dict, Optional
from uuid import UUID

import socketio
from fastapi import HTTPException

from fantribe.infra.auth import AuthenticatedUser, verify_access_jwt
from fantribe.obs import metrics as obs_metrics
from fantribe.settings import settings

logger = logging.getLogger(__name__)

_namespace: "RealtimeNamespace" | None = None


def _header(scope: dict, name: str) -> Optional[str]:
	target = name.encode().lower()
	for key, value in scope.get("headers", []):
		if key.lower() == target:
			return value.decode()
	return None


class RealtimeNamespace(socketio.AsyncNamespace):
	"""Places each client in a per-user room and tracks presence sessions."""

	def __init__(self, *, presence=None) -> None:
		super().__init__("/realtime")
		self._sessions: Dict[str, AuthenticatedUser] = {}
		self._presence = presence

	def _resolve_user(self, environ: dict, auth: Optional[dict]) -> AuthenticatedUser:
		scope = environ.get("asgi.scope", environ)
		auth_payload = auth or environ.get("auth") or scope.get("auth") or {}
		token = auth_payload.get("token")
		if token:
			try:
				return verify_access_jwt(token)
			except HTTPException as exc:
				raise ConnectionRefusedError("invalid_token") from exc
		user_id = auth_payload.get("userId") or _header(scope, "x-user-id")
		if settings.is_dev() and user_id:
			return AuthenticatedUser(id=user_id)
		raise ConnectionRefusedError("missing credentials")

	async def on_connect(self, sid: str, environ: dict, auth: Optional[dict] = None) -> None:
		obs_metrics.socket_connected(self.namespace)
		try:
			user = self._resolve_user(environ, auth)
		except ConnectionRefusedError:
			obs_metrics.socket_disconnected(self.namespace)
			raise
		self._sessions[sid] = user
		await self.enter_room(sid, self.user_room(user.id))
		if self._presence is not None:
			try:
				await self._presence.increment_session(UUID(user.id))
			except Exception:  # pragma: no cover - presence is best effort
				logger.warning("realtime.presence_connect_failed", extra={"user_id": user.id}, exc_info=True)
		await self.emit("realtime:ready", {"user_id": user.id}, room=sid)

	async def on_disconnect(self, sid: str) -> None:
		obs_metrics.socket_disconnected(self.namespace)
		user = self._sessions.pop(sid, None)
		if not user:
			return
		await self.leave_room(sid, self.user_room(user.id))
		if self._presence is not None:
			try:
				await self._presence.decrement_session(UUID(user.id))
			except Exception:  # pragma: no cover - presence is best effort
				logger.warning("realtime.presence_disconnect_failed", extra={"user_id": user.id}, exc_info=True)

	async def on_heartbeat(self, sid: str, payload: Optional[dict] = None) -> None:
		obs_metrics.socket_event(self.namespace, "heartbeat")
		user = self._sessions.get(sid)
		if not user:
			raise ConnectionRefusedError("unauthenticated")
		if self._presence is not None:
			await self._presence.presence_heartbeat(UUID(user.id))

	@staticmethod
	def user_room(user_id: str) -> str:
		return f"user:{user_id}"


def set_namespace(namespace: Optional[RealtimeNamespace]) -> None:
	global _namespace
	_namespace = namespace


async def _emit(user_id: UUID | str, event: str, payload: dict) -> None:
	if _namespace is None:
		return
	obs_metrics.socket_event(_namespace.namespace, event)
	await _namespace.emit(event, payload, room=RealtimeNamespace.user_room(str(user_id)))


async def emit_notification(user_id: UUID | str, payload: dict) -> None:
	await _emit(user_id, "notification:new", payload)


async def emit_message_new(user_id: UUID | str, payload: dict) -> None:
	await _emit(user_id, "message:new", payload)


async def emit_message_update(user_id: UUID | str, payload: dict) -> None:
	await _emit(user_id, "message:update", payload)


async def emit_conversation_update(user_id: UUID | str, payload: dict) -> None:
	await _emit(user_id, "conversation:update", payload)


async def emit_typing(user_id: UUID | str, payload: dict) -> None:
	await _emit(user_id, "typing:update", payload)
