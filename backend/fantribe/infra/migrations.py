"""Applies the SQL files under ``migrations/`` in name order.

Applied files are recorded in ``schema_migrations`` so reruns only execute
what is new.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fantribe.infra import postgres

logger = logging.getLogger(__name__)

DEFAULT_MIGRATIONS_DIR = Path(__file__).resolve().parents[2] / "migrations"

_CREATE_LEDGER = """
CREATE TABLE IF NOT EXISTS schema_migrations (
	filename TEXT PRIMARY KEY,
	applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
)
"""


def migration_files(directory: Optional[Path] = None) -> list[Path]:
	root = directory or DEFAULT_MIGRATIONS_DIR
	if not root.is_dir():
		return []
	return sorted(path for path in root.iterdir() if path.suffix == ".sql")


async def apply_migrations(directory: Optional[Path] = None) -> list[str]:
	"""Run every migration not yet recorded; returns the filenames applied."""
	pool = await postgres.get_pool()
	applied: list[str] = []
	async with pool.acquire() as conn:
		await conn.execute(_CREATE_LEDGER)
		done = {row["filename"] for row in await conn.fetch("SELECT filename FROM schema_migrations")}
		for path in migration_files(directory):
			if path.name in done:
				continue
			async with conn.transaction():
				await conn.execute(path.read_text(encoding="utf-8"))
				await conn.execute("INSERT INTO schema_migrations (filename) VALUES ($1)", path.name)
			logger.info("migrations.applied", extra={"filename": path.name})
			applied.append(path.name)
	return applied
