"""Fixed-window rate limiting counters kept in Redis."""

from __future__ import annotations

import math
import time
from typing import Iterable, Optional

from fantribe.infra.redis import redis_client

Window = tuple[int, int]


def window_key(kind: str, actor_id: str, window_seconds: int, now: float) -> str:
	window = max(1, int(window_seconds))
	slot = int(math.floor(now / window))
	return f"rl:{kind}:{actor_id}:{slot}:{window}"


async def allow(
	kind: str,
	actor_id: str,
	*,
	limit: int,
	window_seconds: int = 60,
	now: Optional[float] = None,
) -> bool:
	"""Count one hit and return True while the window budget holds."""

	if limit <= 0:
		return False
	now = now or time.time()
	window = max(1, int(window_seconds))
	key = window_key(kind, actor_id, window, now)
	async with redis_client.pipeline(transaction=True) as pipe:
		pipe.incr(key)
		pipe.expire(key, window)
		count, _ = await pipe.execute()
	return int(count) <= limit


async def first_exhausted(
	kind: str,
	actor_id: str,
	windows: Iterable[Window],
	*,
	now: Optional[float] = None,
) -> Optional[Window]:
	"""Hit every window and return the first one over budget, if any.

	Every window is counted even after one rejects, so a burst also drains the
	longer windows.
	"""
	now = now or time.time()
	exhausted: Optional[Window] = None
	for limit, window_seconds in windows:
		ok = await allow(kind, actor_id, limit=limit, window_seconds=window_seconds, now=now)
		if not ok and exhausted is None:
			exhausted = (limit, window_seconds)
	return exhausted


class RateLimitExceeded(Exception):
	"""Raised when a caller has used up one of its windows."""

	def __init__(self, kind: str, window_seconds: int | None = None) -> None:
		super().__init__(kind)
		self.kind = kind
		self.window_seconds = window_seconds
