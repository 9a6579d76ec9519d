"""Ephemeral typing indicators stored in Redis sorted sets.

Each conversation keeps a sorted set of user ids scored by the unix time at
which the indicator expires. Readers ignore expired members; the cleanup job
trims them.
"""

from __future__ import annotations

import time
from typing import Optional
from uuid import UUID

from fantribe.domain.constants import TYPING_INDICATOR_TTL_SECONDS
from fantribe.infra.redis import redis_client

TYPING_KEY = "typing:conv:{conversation_id}"
ACTIVE_SET = "typing:active"


def typing_key(conversation_id: UUID | str) -> str:
	return TYPING_KEY.format(conversation_id=conversation_id)


async def set_typing(
	conversation_id: UUID | str,
	user_id: UUID | str,
	is_typing: bool,
	*,
	now: Optional[float] = None,
) -> None:
	key = typing_key(conversation_id)
	if not is_typing:
		await redis_client.zrem(key, str(user_id))
		return
	expires_at = (now or time.time()) + TYPING_INDICATOR_TTL_SECONDS
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.zadd(key, {str(user_id): expires_at})
		pipe.expire(key, TYPING_INDICATOR_TTL_SECONDS * 2)
		pipe.sadd(ACTIVE_SET, str(conversation_id))
		await pipe.execute()


async def get_typing_users(conversation_id: UUID | str, *, now: Optional[float] = None) -> list[str]:
	current = now or time.time()
	members = await redis_client.zrangebyscore(typing_key(conversation_id), current, "+inf")
	return [str(member) for member in members]


async def cleanup_expired(*, now: Optional[float] = None) -> int:
	"""Drop expired indicators; returns the number of entries removed."""
	current = now or time.time()
	removed = 0
	conversation_ids = await redis_client.smembers(ACTIVE_SET)
	for conversation_id in conversation_ids:
		key = typing_key(conversation_id)
		removed += int(await redis_client.zremrangebyscore(key, "-inf", current) or 0)
		if int(await redis_client.zcard(key) or 0) == 0:
			await redis_client.srem(ACTIVE_SET, conversation_id)
	return removed
