"""Health check helpers for liveness and readiness probes."""

from __future__ import annotations

import asyncio
import logging
from time import perf_counter
from typing import Any, Dict

from fantribe.infra import postgres
from fantribe.infra.redis import redis_client
from fantribe.obs import metrics
from fantribe.settings import settings

LOGGER = logging.getLogger(__name__)


async def _redis_status(timeout: float = 0.2) -> Dict[str, Any]:
	start = perf_counter()
	try:
		await asyncio.wait_for(redis_client.ping(), timeout=timeout)
		latency = perf_counter() - start
		metrics.mark_redis(True, latency_seconds=latency)
		return {"ok": True, "latency_ms": round(latency * 1000, 2)}
	except Exception as exc:  # pragma: no cover - depends on runtime
		metrics.mark_redis(False)
		LOGGER.warning("health.redis_unavailable", exc_info=True)
		return {"ok": False, "error": str(exc)}


async def _postgres_status(timeout: float = 0.3) -> Dict[str, Any]:
	start = perf_counter()
	try:
		pool = await postgres.get_pool()
		async with pool.acquire() as conn:
			await asyncio.wait_for(conn.execute("SELECT 1"), timeout=timeout)
		latency = perf_counter() - start
		metrics.mark_postgres(True, latency_seconds=latency)
		return {"ok": True, "latency_ms": round(latency * 1000, 2)}
	except Exception as exc:  # pragma: no cover - depends on runtime
		metrics.mark_postgres(False)
		LOGGER.warning("health.postgres_unavailable", exc_info=True)
		return {"ok": False, "error": str(exc)}


def liveness() -> Dict[str, Any]:
	return {"status": "ok", "service": settings.service_name, "commit": settings.git_commit}


async def readiness() -> tuple[bool, Dict[str, Any]]:
	redis_status, postgres_status = await asyncio.gather(_redis_status(), _postgres_status())
	ready = bool(redis_status.get("ok")) and bool(postgres_status.get("ok"))
	return ready, {"status": "ok" if ready else "degraded", "redis": redis_status, "postgres": postgres_status}
