from contextlib import asynccontextmanager

import pytest

from fantribe.infra import migrations, postgres


class _Conn:
	def __init__(self, done: set[str]):
		self.done = done
		self.executed: list[str] = []

	async def execute(self, sql: str, *args):
		self.executed.append(sql)
		if args:
			self.done.add(args[0])

	async def fetch(self, sql: str):
		return [{"filename": name} for name in sorted(self.done)]

	@asynccontextmanager
	async def transaction(self):
		yield


class _Pool:
	def __init__(self, conn: _Conn):
		self.conn = conn

	@asynccontextmanager
	async def acquire(self):
		yield self.conn


def test_schema_file_is_found():
	names = [path.name for path in migrations.migration_files()]
	assert names[0] == "0001_init.sql"


@pytest.mark.asyncio
async def test_only_new_files_are_applied(tmp_path, monkeypatch):
	(tmp_path / "0001_a.sql").write_text("CREATE TABLE a ();")
	(tmp_path / "0002_b.sql").write_text("CREATE TABLE b ();")
	(tmp_path / "notes.txt").write_text("ignored")
	conn = _Conn({"0001_a.sql"})

	async def _get_pool():
		return _Pool(conn)

	monkeypatch.setattr(postgres, "get_pool", _get_pool)
	assert await migrations.apply_migrations(tmp_path) == ["0002_b.sql"]
	assert "CREATE TABLE b ();" in conn.executed
	assert "CREATE TABLE a ();" not in conn.executed
	assert await migrations.apply_migrations(tmp_path) == []
