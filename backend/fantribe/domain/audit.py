"""Redis stream audit trail for moderation actions."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fantribe.infra.redis import redis_client

STREAM_MODERATION = "x:moderation.events"


def _now_ts() -> str:
	return datetime.now(timezone.utc).isoformat()


async def publish_moderation_event(
	event: str,
	*,
	actor_id: str,
	target_user_id: str | None = None,
	report_id: str | None = None,
	**fields: Any,
) -> None:
	payload: dict[str, Any] = {
		"event": event,
		"actor_id": actor_id,
		"ts": _now_ts(),
	}
	if target_user_id:
		payload["target_user_id"] = target_user_id
	if report_id:
		payload["report_id"] = report_id
	for key, value in fields.items():
		if value is not None:
			payload[key] = str(value)
	await redis_client.xadd(STREAM_MODERATION, payload)
