"""Apply pending SQL migrations to the database named by POSTGRES_URL."""

import asyncio
import sys

from fantribe.infra import postgres
from fantribe.infra.migrations import apply_migrations


async def main() -> None:
	try:
		applied = await apply_migrations()
	finally:
		await postgres.close_pool()
	if applied:
		for filename in applied:
			print(f"Applied {filename}")
	else:
		print("Database is up to date.")


if __name__ == "__main__":
	if sys.platform == "win32":
		asyncio.set_event_loop_policy(asyncio.WindowsSelectorEventLoopPolicy())
	asyncio.run(main())
