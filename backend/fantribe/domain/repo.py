"""Async repository for the FanTribe domain."""

from __future__ import annotations

from base64 import b64decode, b64encode
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Iterable, NamedTuple, Optional, Sequence, Type, TypeVar
from uuid import UUID

import asyncpg
from pydantic import BaseModel

from fantribe.domain import models
from fantribe.infra.postgres import get_pool

CursorPair = tuple[datetime, UUID]
ModelT = TypeVar("ModelT", bound=BaseModel)

# Given the locked subscription row (or None), returns the action and the row to write.
PaymentPlan = Callable[[Optional[models.Subscription]], tuple[str, models.Subscription]]


class PaymentRecord(NamedTuple):
	action: str
	subscription: models.Subscription
	previous: Optional[models.Subscription]
	transaction: models.Transaction


def encode_cursor(value: CursorPair) -> str:
	created_at, entity_id = value
	payload = f"{created_at.isoformat()}|{entity_id}"
	return b64encode(payload.encode()).decode()


def decode_cursor(cursor: str) -> CursorPair:
	decoded = b64decode(cursor.encode()).decode()
	created_str, id_str = decoded.split("|", maxsplit=1)
	return datetime.fromisoformat(created_str), UUID(id_str)


def _db_value(value: Any) -> Any:
	if isinstance(value, BaseModel):
		return value.model_dump(mode="json")
	if isinstance(value, Enum):
		return value.value
	if isinstance(value, list) and value and isinstance(value[0], BaseModel):
		return [item.model_dump(mode="json") for item in value]
	return value


def _affected(status: str) -> int:
	# asyncpg returns command tags such as "DELETE 3"
	try:
		return int(status.split()[-1])
	except (IndexError, ValueError):
		return 0


def _to_model(model: Type[ModelT], record: Optional[asyncpg.Record]) -> Optional[ModelT]:
	if not record:
		return None
	return model.model_validate(dict(record))


def _to_models(model: Type[ModelT], records: Iterable[asyncpg.Record]) -> list[ModelT]:
	return [model.model_validate(dict(record)) for record in records]


def _insert_sql(
	table: str,
	entity: BaseModel,
	*,
	on_conflict: str = "",
	returning: str = "*",
) -> tuple[str, list[Any]]:
	columns = list(entity.model_dump().keys())
	placeholders = ", ".join("$%d" % (idx + 1) for idx in range(len(columns)))
	query = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders}) {on_conflict} RETURNING {returning}"
	return query, [_db_value(getattr(entity, column)) for column in columns]


def _update_sql(table: str, entity_id: UUID, fields: dict[str, Any]) -> tuple[str, list[Any]]:
	if not fields:
		return f"SELECT * FROM {table} WHERE id=$1", [entity_id]
	assignments: list[str] = []
	params: list[Any] = [entity_id]
	for column, value in fields.items():
		params.append(_db_value(value))
		assignments.append("%s=$%d" % (column, len(params)))
	return f"UPDATE {table} SET {', '.join(assignments)} WHERE id=$1 RETURNING *", params


def _page(items: list[ModelT], limit: int, key) -> tuple[list[ModelT], Optional[str]]:
	next_cursor = None
	if len(items) > limit:
		items.pop()  # drop sentinel row
		if items:
			next_cursor = encode_cursor(key(items[-1]))
	return items, next_cursor


class FanTribeRepository:
	"""Thin data-access layer around asyncpg."""

	# --- Generic helpers --------------------------------------------------

	async def _insert(self, table: str, entity: ModelT) -> ModelT:
		query, values = _insert_sql(table, entity)
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(query, *values)
		return type(entity).model_validate(dict(record))

	async def _update(self, table: str, model: Type[ModelT], entity_id: UUID, fields: dict[str, Any]) -> Optional[ModelT]:
		unknown = set(fields) - set(model.model_fields)
		if unknown:
			raise ValueError(f"unknown_columns:{sorted(unknown)}")
		query, params = _update_sql(table, entity_id, fields)
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(query, *params)
		return _to_model(model, record)

	async def _get(self, table: str, model: Type[ModelT], entity_id: UUID) -> Optional[ModelT]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(f"SELECT * FROM {table} WHERE id=$1", entity_id)
		return _to_model(model, record)

	async def _get_many(self, table: str, model: Type[ModelT], ids: Sequence[UUID]) -> dict[UUID, ModelT]:
		if not ids:
			return {}
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(f"SELECT * FROM {table} WHERE id = ANY($1::uuid[])", list(set(ids)))
		return {row["id"]: model.model_validate(dict(row)) for row in rows}

	async def _delete(self, table: str, entity_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(f"DELETE FROM {table} WHERE id=$1", entity_id)
		return _affected(status) > 0

	# --- Users ------------------------------------------------------------

	async def get_user(self, user_id: UUID) -> models.User | None:
		return await self._get("users", models.User, user_id)

	async def get_users(self, user_ids: Sequence[UUID]) -> dict[UUID, models.User]:
		return await self._get_many("users", models.User, user_ids)

	async def get_user_by_username(self, username: str) -> models.User | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM users WHERE LOWER(username)=LOWER($1)", username)
		return _to_model(models.User, record)

	async def get_user_by_external_id(self, external_id: str) -> models.User | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM users WHERE external_id=$1", external_id)
		return _to_model(models.User, record)

	async def insert_user(self, user: models.User) -> models.User:
		return await self._insert("users", user)

	async def update_user(self, user_id: UUID, **fields: Any) -> models.User | None:
		return await self._update("users", models.User, user_id, fields)

	async def delete_user(self, user_id: UUID) -> bool:
		return await self._delete("users", user_id)

	async def list_users(
		self,
		*,
		account_type: str | None = None,
		is_banned: bool | None = None,
		limit: int | None = None,
	) -> list[models.User]:
		conditions = ["TRUE"]
		params: list[object] = []
		if account_type is not None:
			params.append(_db_value(account_type))
			conditions.append("account_type=$%d" % len(params))
		if is_banned is not None:
			params.append(is_banned)
			conditions.append("is_banned=$%d" % len(params))
		query = f"SELECT * FROM users WHERE {' AND '.join(conditions)} ORDER BY created_at ASC, id ASC"
		if limit is not None:
			params.append(limit)
			query += " LIMIT $%d" % len(params)
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return _to_models(models.User, rows)

	async def search_users(self, term: str, *, limit: int) -> list[models.User]:
		"""Users with a username whose name or username contains ``term``."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM users
				WHERE username IS NOT NULL
					AND (name ILIKE '%' || $1 || '%' OR username ILIKE '%' || $1 || '%')
				ORDER BY (name ILIKE '%' || $1 || '%') DESC, created_at ASC
				LIMIT $2
				""",
				term,
				limit,
			)
		return _to_models(models.User, rows)

	async def count_users(self, *, account_type: str | None = None) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			if account_type is None:
				value = await conn.fetchval("SELECT COUNT(*) FROM users")
			else:
				value = await conn.fetchval("SELECT COUNT(*) FROM users WHERE account_type=$1", _db_value(account_type))
		return int(value or 0)

	async def mark_stale_users_offline(self, cutoff: datetime) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(
				"""
				UPDATE users
				SET is_online=FALSE, active_sessions=0
				WHERE is_online=TRUE AND (last_seen_at IS NULL OR last_seen_at < $1)
				""",
				cutoff,
			)
		return _affected(status)

	# --- User stats -------------------------------------------------------

	async def get_user_stats(self, user_id: UUID) -> models.UserStats | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM user_stats WHERE user_id=$1", user_id)
		return _to_model(models.UserStats, record)

	async def apply_user_stats_delta(
		self,
		user_id: UUID,
		*,
		posts: int = 0,
		subscribers: int = 0,
		followers: int = 0,
		likes: int = 0,
		tips_received: int = 0,
		tips_amount: float = 0.0,
	) -> models.UserStats:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO user_stats (user_id, posts_count, subscribers_count, followers_count,
					total_likes, tips_received, total_tips_amount, last_updated)
				VALUES ($1, GREATEST($2, 0), GREATEST($3, 0), GREATEST($4, 0), GREATEST($5, 0),
					GREATEST($6, 0), GREATEST($7, 0), NOW())
				ON CONFLICT (user_id) DO UPDATE SET
					posts_count = GREATEST(user_stats.posts_count + $2, 0),
					subscribers_count = GREATEST(user_stats.subscribers_count + $3, 0),
					followers_count = GREATEST(user_stats.followers_count + $4, 0),
					total_likes = GREATEST(user_stats.total_likes + $5, 0),
					tips_received = GREATEST(user_stats.tips_received + $6, 0),
					total_tips_amount = GREATEST(user_stats.total_tips_amount + $7, 0),
					last_updated = NOW()
				RETURNING *
				""",
				user_id,
				posts,
				subscribers,
				followers,
				likes,
				tips_received,
				float(tips_amount),
			)
		return models.UserStats.model_validate(dict(record))

	async def set_user_stats(self, stats: models.UserStats) -> models.UserStats:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO user_stats (user_id, posts_count, subscribers_count, followers_count,
					total_likes, tips_received, total_tips_amount, last_updated)
				VALUES ($1, $2, $3, $4, $5, $6, $7, $8)
				ON CONFLICT (user_id) DO UPDATE SET
					posts_count = EXCLUDED.posts_count,
					subscribers_count = EXCLUDED.subscribers_count,
					followers_count = EXCLUDED.followers_count,
					total_likes = EXCLUDED.total_likes,
					tips_received = EXCLUDED.tips_received,
					total_tips_amount = EXCLUDED.total_tips_amount,
					last_updated = EXCLUDED.last_updated
				RETURNING *
				""",
				stats.user_id,
				stats.posts_count,
				stats.subscribers_count,
				stats.followers_count,
				stats.total_likes,
				stats.tips_received,
				stats.total_tips_amount,
				stats.last_updated,
			)
		return models.UserStats.model_validate(dict(record))

	# --- Posts ------------------------------------------------------------

	async def insert_post(self, post: models.Post) -> models.Post:
		return await self._insert("posts", post)

	async def get_post(self, post_id: UUID) -> models.Post | None:
		return await self._get("posts", models.Post, post_id)

	async def get_posts(self, post_ids: Sequence[UUID]) -> dict[UUID, models.Post]:
		return await self._get_many("posts", models.Post, post_ids)

	async def update_post(self, post_id: UUID, **fields: Any) -> models.Post | None:
		return await self._update("posts", models.Post, post_id, fields)

	async def delete_post_cascade(self, post: models.Post) -> dict[str, int]:
		"""Delete a post with its comments, likes, bookmarks and notifications."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				comments = await conn.execute("DELETE FROM comments WHERE post_id=$1", post.id)
				likes = await conn.execute("DELETE FROM likes WHERE post_id=$1", post.id)
				bookmarks = await conn.execute("DELETE FROM bookmarks WHERE post_id=$1", post.id)
				notifications = await conn.execute("DELETE FROM notifications WHERE post_id=$1", post.id)
				await conn.execute(
					"UPDATE users SET pinned_post_ids = array_remove(pinned_post_ids, $1) WHERE id=$2",
					post.id,
					post.author_id,
				)
				await conn.execute("DELETE FROM posts WHERE id=$1", post.id)
		return {
			"comments": _affected(comments),
			"likes": _affected(likes),
			"bookmarks": _affected(bookmarks),
			"notifications": _affected(notifications),
		}

	async def list_posts(
		self,
		*,
		limit: int,
		author_id: UUID | None = None,
		after: CursorPair | None = None,
		exclude_ids: Sequence[UUID] = (),
		with_media: bool = False,
	) -> tuple[list[models.Post], str | None]:
		conditions = ["TRUE"]
		params: list[object] = []
		if author_id is not None:
			params.append(author_id)
			conditions.append("author_id=$%d" % len(params))
		if after:
			params.extend([after[0], after[1]])
			conditions.append("(created_at, id) < ($%d, $%d)" % (len(params) - 1, len(params)))
		if exclude_ids:
			params.append(list(exclude_ids))
			conditions.append("NOT (id = ANY($%d::uuid[]))" % len(params))
		if with_media:
			conditions.append("jsonb_array_length(medias) > 0")
		params.append(limit + 1)
		query = f"""
			SELECT * FROM posts
			WHERE {' AND '.join(conditions)}
			ORDER BY created_at DESC, id DESC
			LIMIT ${len(params)}
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return _page(_to_models(models.Post, rows), limit, lambda post: (post.created_at, post.id))

	async def count_posts(self, *, author_id: UUID | None = None) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			if author_id is None:
				value = await conn.fetchval("SELECT COUNT(*) FROM posts")
			else:
				value = await conn.fetchval("SELECT COUNT(*) FROM posts WHERE author_id=$1", author_id)
		return int(value or 0)

	# --- Comments ---------------------------------------------------------

	async def insert_comment(self, comment: models.Comment) -> models.Comment:
		return await self._insert("comments", comment)

	async def get_comment(self, comment_id: UUID) -> models.Comment | None:
		return await self._get("comments", models.Comment, comment_id)

	async def update_comment(self, comment_id: UUID, **fields: Any) -> models.Comment | None:
		return await self._update("comments", models.Comment, comment_id, fields)

	async def delete_comment(self, comment_id: UUID) -> bool:
		return await self._delete("comments", comment_id)

	async def list_comments(self, post_id: UUID, *, limit: int | None = None) -> list[models.Comment]:
		query = "SELECT * FROM comments WHERE post_id=$1 ORDER BY created_at DESC, id DESC"
		params: list[object] = [post_id]
		if limit is not None:
			params.append(limit)
			query += " LIMIT $2"
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return _to_models(models.Comment, rows)

	async def count_comments(self, post_id: UUID, *, author_id: UUID | None = None) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			if author_id is None:
				value = await conn.fetchval("SELECT COUNT(*) FROM comments WHERE post_id=$1", post_id)
			else:
				value = await conn.fetchval(
					"SELECT COUNT(*) FROM comments WHERE post_id=$1 AND author_id=$2",
					post_id,
					author_id,
				)
		return int(value or 0)

	async def list_user_comments(self, user_id: UUID, *, limit: int) -> list[models.Comment]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT * FROM comments WHERE author_id=$1 ORDER BY created_at DESC, id DESC LIMIT $2",
				user_id,
				limit,
			)
		return _to_models(models.Comment, rows)

	# --- Likes & bookmarks ------------------------------------------------

	async def _insert_pair(self, table: str, user_id: UUID, post_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(
				f"INSERT INTO {table} (user_id, post_id) VALUES ($1, $2) ON CONFLICT DO NOTHING",
				user_id,
				post_id,
			)
		return _affected(status) > 0

	async def _delete_pair(self, table: str, user_id: UUID, post_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(f"DELETE FROM {table} WHERE user_id=$1 AND post_id=$2", user_id, post_id)
		return _affected(status) > 0

	async def _exists_pair(self, table: str, user_id: UUID, post_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(f"SELECT 1 FROM {table} WHERE user_id=$1 AND post_id=$2", user_id, post_id)
		return value is not None

	async def insert_like(self, user_id: UUID, post_id: UUID) -> bool:
		return await self._insert_pair("likes", user_id, post_id)

	async def delete_like(self, user_id: UUID, post_id: UUID) -> bool:
		return await self._delete_pair("likes", user_id, post_id)

	async def is_liked(self, user_id: UUID, post_id: UUID) -> bool:
		return await self._exists_pair("likes", user_id, post_id)

	async def count_likes(self, post_id: UUID) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval("SELECT COUNT(*) FROM likes WHERE post_id=$1", post_id)
		return int(value or 0)

	async def list_post_liker_ids(self, post_id: UUID, *, limit: int) -> list[UUID]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT user_id FROM likes WHERE post_id=$1 ORDER BY created_at DESC LIMIT $2",
				post_id,
				limit,
			)
		return [row["user_id"] for row in rows]

	async def list_liked_post_ids(self, user_id: UUID, *, limit: int) -> list[UUID]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT post_id FROM likes WHERE user_id=$1 ORDER BY created_at DESC LIMIT $2",
				user_id,
				limit,
			)
		return [row["post_id"] for row in rows]

	async def count_likes_for_author(self, author_id: UUID) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				"""
				SELECT COUNT(*) FROM likes l
				JOIN posts p ON p.id = l.post_id
				WHERE p.author_id=$1
				""",
				author_id,
			)
		return int(value or 0)

	async def insert_bookmark(self, user_id: UUID, post_id: UUID) -> bool:
		return await self._insert_pair("bookmarks", user_id, post_id)

	async def delete_bookmark(self, user_id: UUID, post_id: UUID) -> bool:
		return await self._delete_pair("bookmarks", user_id, post_id)

	async def is_bookmarked(self, user_id: UUID, post_id: UUID) -> bool:
		return await self._exists_pair("bookmarks", user_id, post_id)

	async def count_bookmarks(self, post_id: UUID) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval("SELECT COUNT(*) FROM bookmarks WHERE post_id=$1", post_id)
		return int(value or 0)

	async def list_bookmarked_post_ids(self, user_id: UUID, *, limit: int) -> list[UUID]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT post_id FROM bookmarks WHERE user_id=$1 ORDER BY created_at DESC LIMIT $2",
				user_id,
				limit,
			)
		return [row["post_id"] for row in rows]

	# --- Follows & blocks -------------------------------------------------

	async def insert_follow(self, follower_id: UUID, following_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(
				"INSERT INTO follows (follower_id, following_id) VALUES ($1, $2) ON CONFLICT DO NOTHING",
				follower_id,
				following_id,
			)
		return _affected(status) > 0

	async def delete_follow(self, follower_id: UUID, following_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(
				"DELETE FROM follows WHERE follower_id=$1 AND following_id=$2",
				follower_id,
				following_id,
			)
		return _affected(status) > 0

	async def is_following(self, follower_id: UUID, following_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				"SELECT 1 FROM follows WHERE follower_id=$1 AND following_id=$2",
				follower_id,
				following_id,
			)
		return value is not None

	async def list_follower_ids(self, user_id: UUID) -> list[UUID]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT follower_id FROM follows WHERE following_id=$1 ORDER BY created_at DESC",
				user_id,
			)
		return [row["follower_id"] for row in rows]

	async def list_following_ids(self, user_id: UUID) -> list[UUID]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT following_id FROM follows WHERE follower_id=$1 ORDER BY created_at DESC",
				user_id,
			)
		return [row["following_id"] for row in rows]

	async def delete_follows_between(self, first_id: UUID, second_id: UUID) -> list[tuple[UUID, UUID]]:
		"""Remove follows in both directions; returns the removed (follower, following) pairs."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				DELETE FROM follows
				WHERE (follower_id=$1 AND following_id=$2) OR (follower_id=$2 AND following_id=$1)
				RETURNING follower_id, following_id
				""",
				first_id,
				second_id,
			)
		return [(row["follower_id"], row["following_id"]) for row in rows]

	async def insert_block(self, blocker_id: UUID, blocked_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(
				"INSERT INTO blocks (blocker_id, blocked_id) VALUES ($1, $2) ON CONFLICT DO NOTHING",
				blocker_id,
				blocked_id,
			)
		return _affected(status) > 0

	async def delete_block(self, blocker_id: UUID, blocked_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(
				"DELETE FROM blocks WHERE blocker_id=$1 AND blocked_id=$2",
				blocker_id,
				blocked_id,
			)
		return _affected(status) > 0

	async def is_blocking(self, blocker_id: UUID, blocked_id: UUID) -> bool:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				"SELECT 1 FROM blocks WHERE blocker_id=$1 AND blocked_id=$2",
				blocker_id,
				blocked_id,
			)
		return value is not None

	async def list_blocked_ids(self, blocker_id: UUID) -> list[UUID]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT blocked_id FROM blocks WHERE blocker_id=$1 ORDER BY created_at DESC",
				blocker_id,
			)
		return [row["blocked_id"] for row in rows]

	async def list_blocker_ids(self, blocked_id: UUID) -> list[UUID]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch("SELECT blocker_id FROM blocks WHERE blocked_id=$1", blocked_id)
		return [row["blocker_id"] for row in rows]

	# --- Subscriptions & payments ----------------------------------------

	async def get_subscription(self, subscription_id: UUID) -> models.Subscription | None:
		return await self._get("subscriptions", models.Subscription, subscription_id)

	async def find_subscription(
		self,
		creator_id: UUID,
		subscriber_id: UUID,
		type: str,
	) -> models.Subscription | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM subscriptions WHERE creator_id=$1 AND subscriber_id=$2 AND type=$3",
				creator_id,
				subscriber_id,
				_db_value(type),
			)
		return _to_model(models.Subscription, record)

	async def insert_subscription(self, subscription: models.Subscription) -> models.Subscription:
		return await self._insert("subscriptions", subscription)

	async def update_subscription(self, subscription_id: UUID, **fields: Any) -> models.Subscription | None:
		return await self._update("subscriptions", models.Subscription, subscription_id, fields)

	async def list_subscriptions(
		self,
		*,
		creator_id: UUID | None = None,
		subscriber_id: UUID | None = None,
		type: str | None = None,
		statuses: Sequence[str] | None = None,
	) -> list[models.Subscription]:
		conditions = ["TRUE"]
		params: list[object] = []
		if creator_id is not None:
			params.append(creator_id)
			conditions.append("creator_id=$%d" % len(params))
		if subscriber_id is not None:
			params.append(subscriber_id)
			conditions.append("subscriber_id=$%d" % len(params))
		if type is not None:
			params.append(_db_value(type))
			conditions.append("type=$%d" % len(params))
		if statuses:
			params.append([_db_value(item) for item in statuses])
			conditions.append("status = ANY($%d::text[])" % len(params))
		query = f"SELECT * FROM subscriptions WHERE {' AND '.join(conditions)} ORDER BY created_at DESC, id DESC"
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return _to_models(models.Subscription, rows)

	async def list_expired_active_subscriptions(self, now: datetime) -> list[models.Subscription]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT * FROM subscriptions WHERE status='active' AND end_date <= $1 ORDER BY end_date ASC",
				now,
			)
		return _to_models(models.Subscription, rows)

	async def get_transaction_by_provider_id(self, provider_transaction_id: str) -> models.Transaction | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM transactions WHERE provider_transaction_id=$1",
				provider_transaction_id,
			)
		return _to_model(models.Transaction, record)

	@staticmethod
	async def _lock_subscription(
		conn: asyncpg.Connection,
		creator_id: UUID,
		subscriber_id: UUID,
		type: str,
	) -> models.Subscription | None:
		record = await conn.fetchrow(
			"""
			SELECT * FROM subscriptions
			WHERE creator_id=$1 AND subscriber_id=$2 AND type=$3
			FOR UPDATE
			""",
			creator_id,
			subscriber_id,
			_db_value(type),
		)
		return _to_model(models.Subscription, record)

	async def record_payment(
		self,
		transaction: models.Transaction,
		*,
		subscription_type: str,
		plan: PaymentPlan,
	) -> PaymentRecord | None:
		"""Record a provider payment and apply it to its subscription in one transaction.

		The transaction row is claimed first; when its ``provider_transaction_id``
		is already taken nothing is written and ``None`` is returned. The
		subscription row is locked while ``plan`` decides how to change it.
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			async with conn.transaction():
				query, values = _insert_sql(
					"transactions",
					transaction.model_copy(update={"subscription_id": None}),
					on_conflict="ON CONFLICT (provider_transaction_id) DO NOTHING",
				)
				if await conn.fetchrow(query, *values) is None:
					return None

				args = (transaction.creator_id, transaction.subscriber_id, subscription_type)
				current = await self._lock_subscription(conn, *args)
				action, target = plan(current)
				record = None
				if current is None:
					query, values = _insert_sql(
						"subscriptions",
						target,
						on_conflict="ON CONFLICT (creator_id, subscriber_id, type) DO NOTHING",
					)
					record = await conn.fetchrow(query, *values)
					if record is None:
						# a concurrent payment with another id created the row first
						current = await self._lock_subscription(conn, *args)
						action, target = plan(current)
				if current is not None:
					changes = {
						column: value
						for column, value in target.model_dump(exclude={"id", "created_at"}).items()
						if getattr(current, column) != value
					}
					query, values = _update_sql("subscriptions", current.id, changes)
					record = await conn.fetchrow(query, *values)
				subscription = models.Subscription.model_validate(dict(record))
				await conn.execute(
					"UPDATE transactions SET subscription_id=$2 WHERE id=$1",
					transaction.id,
					subscription.id,
				)
		return PaymentRecord(
			action=action,
			subscription=subscription,
			previous=current,
			transaction=transaction.model_copy(update={"subscription_id": subscription.id}),
		)

	async def list_transactions(
		self,
		*,
		start: datetime | None = None,
		end: datetime | None = None,
		creator_id: UUID | None = None,
		provider: str | None = None,
	) -> list[models.Transaction]:
		conditions = ["TRUE"]
		params: list[object] = []
		if start is not None:
			params.append(start)
			conditions.append("created_at >= $%d" % len(params))
		if end is not None:
			params.append(end)
			conditions.append("created_at <= $%d" % len(params))
		if creator_id is not None:
			params.append(creator_id)
			conditions.append("creator_id=$%d" % len(params))
		if provider is not None:
			params.append(provider)
			conditions.append("provider=$%d" % len(params))
		query = f"SELECT * FROM transactions WHERE {' AND '.join(conditions)} ORDER BY created_at DESC"
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return _to_models(models.Transaction, rows)

	# --- Tips -------------------------------------------------------------

	async def get_tip_by_provider_id(self, provider_transaction_id: str) -> models.Tip | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM tips WHERE provider_transaction_id=$1", provider_transaction_id)
		return _to_model(models.Tip, record)

	async def insert_tip(self, tip: models.Tip) -> models.Tip | None:
		"""Insert unless the provider transaction id was already recorded."""
		query, values = _insert_sql("tips", tip, on_conflict="ON CONFLICT (provider_transaction_id) DO NOTHING")
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(query, *values)
		return _to_model(models.Tip, record)

	async def list_tips(self, *, creator_id: UUID, limit: int | None = None) -> list[models.Tip]:
		query = "SELECT * FROM tips WHERE creator_id=$1 AND status='succeeded' ORDER BY created_at DESC"
		params: list[object] = [creator_id]
		if limit is not None:
			params.append(limit)
			query += " LIMIT $2"
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return _to_models(models.Tip, rows)

	# --- Notifications ----------------------------------------------------

	async def get_notification(self, notification_id: UUID) -> models.Notification | None:
		return await self._get("notifications", models.Notification, notification_id)

	async def find_notification(self, recipient_id: UUID, group_key: str) -> models.Notification | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM notifications WHERE recipient_id=$1 AND group_key=$2",
				recipient_id,
				group_key,
			)
		return _to_model(models.Notification, record)

	async def upsert_notification(
		self,
		notification: models.Notification,
		*,
		max_actors: int,
	) -> tuple[models.Notification, bool]:
		"""Insert ``notification`` or fold its single actor into the row sharing its group key.

		Returns the stored row and whether it was newly created.
		"""
		query, values = _insert_sql(
			"notifications",
			notification,
			on_conflict=f"""
			ON CONFLICT (recipient_id, group_key) DO UPDATE SET
				actor_ids = (
					ARRAY[EXCLUDED.actor_ids[1]] || array_remove(notifications.actor_ids, EXCLUDED.actor_ids[1])
				)[1:{int(max_actors)}],
				actor_count = notifications.actor_count
					+ CASE WHEN EXCLUDED.actor_ids[1] = ANY(notifications.actor_ids) THEN 0 ELSE 1 END,
				is_read = FALSE,
				last_activity_at = EXCLUDED.last_activity_at,
				comment_id = COALESCE(EXCLUDED.comment_id, notifications.comment_id)
			""",
			returning="*, (xmax = 0) AS inserted",
		)
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(query, *values)
		row = dict(record)
		created = bool(row.pop("inserted"))
		return models.Notification.model_validate(row), created

	async def update_notification(self, notification_id: UUID, **fields: Any) -> models.Notification | None:
		return await self._update("notifications", models.Notification, notification_id, fields)

	async def delete_notification(self, notification_id: UUID) -> bool:
		return await self._delete("notifications", notification_id)

	async def count_unread_notifications(self, recipient_id: UUID) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				"SELECT COUNT(*) FROM notifications WHERE recipient_id=$1 AND is_read=FALSE",
				recipient_id,
			)
		return int(value or 0)

	async def list_notifications(
		self,
		recipient_id: UUID,
		*,
		limit: int,
		after: CursorPair | None = None,
		type: str | None = None,
	) -> tuple[list[models.Notification], str | None]:
		conditions = ["recipient_id=$1"]
		params: list[object] = [recipient_id]
		if type is not None:
			params.append(_db_value(type))
			conditions.append("type=$%d" % len(params))
		if after:
			params.extend([after[0], after[1]])
			conditions.append("(last_activity_at, id) < ($%d, $%d)" % (len(params) - 1, len(params)))
		params.append(limit + 1)
		query = f"""
			SELECT * FROM notifications
			WHERE {' AND '.join(conditions)}
			ORDER BY last_activity_at DESC, id DESC
			LIMIT ${len(params)}
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		items = _to_models(models.Notification, rows)
		return _page(items, limit, lambda item: (item.last_activity_at, item.id))

	async def mark_all_notifications_read(self, recipient_id: UUID) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(
				"UPDATE notifications SET is_read=TRUE WHERE recipient_id=$1 AND is_read=FALSE",
				recipient_id,
			)
		return _affected(status)

	# --- Deferred notification batches ------------------------------------

	async def insert_pending_batch(self, batch: models.PendingNotificationBatch) -> models.PendingNotificationBatch:
		return await self._insert("pending_notifications", batch)

	async def list_pending_batches(self, *, limit: int) -> list[models.PendingNotificationBatch]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT * FROM pending_notifications WHERE status='pending' ORDER BY created_at ASC LIMIT $1",
				limit,
			)
		return _to_models(models.PendingNotificationBatch, rows)

	async def update_pending_batch(self, batch_id: UUID, **fields: Any) -> models.PendingNotificationBatch | None:
		return await self._update("pending_notifications", models.PendingNotificationBatch, batch_id, fields)

	async def delete_completed_batches(self, *, older_than: datetime, limit: int) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(
				"""
				DELETE FROM pending_notifications
				WHERE id IN (
					SELECT id FROM pending_notifications
					WHERE status='completed' AND created_at < $1
					ORDER BY created_at ASC
					LIMIT $2
				)
				""",
				older_than,
				limit,
			)
		return _affected(status)

	async def count_batches_by_status(self) -> dict[str, int]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch("SELECT status, COUNT(*) AS total FROM pending_notifications GROUP BY status")
		return {row["status"]: int(row["total"]) for row in rows}

	async def pending_recipients_total(self) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			value = await conn.fetchval(
				"""
				SELECT COALESCE(SUM(cardinality(recipient_ids) - processed_count), 0)
				FROM pending_notifications
				WHERE status IN ('pending', 'processing')
				"""
			)
		return int(value or 0)

	# --- Conversations & messages -----------------------------------------

	async def get_conversation(self, conversation_id: UUID) -> models.Conversation | None:
		return await self._get("conversations", models.Conversation, conversation_id)

	async def find_conversation(self, creator_id: UUID, user_id: UUID) -> models.Conversation | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"SELECT * FROM conversations WHERE creator_id=$1 AND user_id=$2",
				creator_id,
				user_id,
			)
		return _to_model(models.Conversation, record)

	async def insert_conversation(self, conversation: models.Conversation) -> models.Conversation:
		return await self._insert("conversations", conversation)

	async def update_conversation(self, conversation_id: UUID, **fields: Any) -> models.Conversation | None:
		return await self._update("conversations", models.Conversation, conversation_id, fields)

	async def list_conversations_for(self, user_id: UUID) -> list[models.Conversation]:
		"""Every conversation where the user is either participant."""
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"""
				SELECT * FROM conversations
				WHERE creator_id=$1 OR user_id=$1
				ORDER BY last_message_at DESC NULLS LAST, created_at DESC
				""",
				user_id,
			)
		return _to_models(models.Conversation, rows)

	async def increment_unread(self, conversation_id: UUID, *, role: str) -> None:
		column = "unread_count_creator" if role == "creator" else "unread_count_user"
		pool = await get_pool()
		async with pool.acquire() as conn:
			await conn.execute(f"UPDATE conversations SET {column} = {column} + 1 WHERE id=$1", conversation_id)

	async def list_unlocked_subscription_conversations(self) -> list[models.Conversation]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT * FROM conversations WHERE is_locked=FALSE AND requires_subscription=TRUE",
			)
		return _to_models(models.Conversation, rows)

	async def insert_message(self, message: models.Message) -> models.Message:
		return await self._insert("messages", message)

	async def get_message(self, message_id: UUID) -> models.Message | None:
		return await self._get("messages", models.Message, message_id)

	async def get_messages(self, message_ids: Sequence[UUID]) -> dict[UUID, models.Message]:
		return await self._get_many("messages", models.Message, message_ids)

	async def update_message(self, message_id: UUID, **fields: Any) -> models.Message | None:
		return await self._update("messages", models.Message, message_id, fields)

	async def list_messages(
		self,
		conversation_id: UUID,
		*,
		limit: int,
		after: CursorPair | None = None,
	) -> tuple[list[models.Message], str | None]:
		"""Newest first; the cursor walks towards older messages."""
		conditions = ["conversation_id=$1"]
		params: list[object] = [conversation_id]
		if after:
			params.extend([after[0], after[1]])
			conditions.append("(created_at, id) < ($%d, $%d)" % (len(params) - 1, len(params)))
		params.append(limit + 1)
		query = f"""
			SELECT * FROM messages
			WHERE {' AND '.join(conditions)}
			ORDER BY created_at DESC, id DESC
			LIMIT ${len(params)}
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return _page(_to_models(models.Message, rows), limit, lambda item: (item.created_at, item.id))

	# --- Reports ----------------------------------------------------------

	async def insert_report(self, report: models.Report) -> models.Report:
		return await self._insert("reports", report)

	async def get_report(self, report_id: UUID) -> models.Report | None:
		return await self._get("reports", models.Report, report_id)

	async def update_report(self, report_id: UUID, **fields: Any) -> models.Report | None:
		return await self._update("reports", models.Report, report_id, fields)

	async def list_reports(
		self,
		*,
		status: str | None = None,
		type: str | None = None,
		reported_user_id: UUID | None = None,
		limit: int | None = None,
	) -> list[models.Report]:
		conditions = ["TRUE"]
		params: list[object] = []
		if status is not None:
			params.append(_db_value(status))
			conditions.append("status=$%d" % len(params))
		if type is not None:
			params.append(_db_value(type))
			conditions.append("type=$%d" % len(params))
		if reported_user_id is not None:
			params.append(reported_user_id)
			conditions.append("reported_user_id=$%d" % len(params))
		query = f"SELECT * FROM reports WHERE {' AND '.join(conditions)} ORDER BY created_at DESC, id DESC"
		if limit is not None:
			params.append(limit)
			query += " LIMIT $%d" % len(params)
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return _to_models(models.Report, rows)

	async def find_open_report(
		self,
		*,
		reporter_id: UUID,
		type: str,
		reported_user_id: UUID | None,
		reported_post_id: UUID | None,
		reported_comment_id: UUID | None,
	) -> models.Report | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				SELECT * FROM reports
				WHERE reporter_id=$1 AND type=$2
					AND status IN ('pending', 'reviewing')
					AND reported_user_id IS NOT DISTINCT FROM $3
					AND reported_post_id IS NOT DISTINCT FROM $4
					AND reported_comment_id IS NOT DISTINCT FROM $5
				LIMIT 1
				""",
				reporter_id,
				_db_value(type),
				reported_user_id,
				reported_post_id,
				reported_comment_id,
			)
		return _to_model(models.Report, record)

	async def count_reports(self, *, status: str | None = None) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			if status is None:
				value = await conn.fetchval("SELECT COUNT(*) FROM reports")
			else:
				value = await conn.fetchval("SELECT COUNT(*) FROM reports WHERE status=$1", _db_value(status))
		return int(value or 0)

	# --- Creator applications ---------------------------------------------

	async def insert_application(self, application: models.CreatorApplication) -> models.CreatorApplication:
		return await self._insert("creator_applications", application)

	async def get_application(self, application_id: UUID) -> models.CreatorApplication | None:
		return await self._get("creator_applications", models.CreatorApplication, application_id)

	async def update_application(self, application_id: UUID, **fields: Any) -> models.CreatorApplication | None:
		return await self._update("creator_applications", models.CreatorApplication, application_id, fields)

	async def list_applications(
		self,
		*,
		user_id: UUID | None = None,
		status: str | None = None,
	) -> list[models.CreatorApplication]:
		conditions = ["TRUE"]
		params: list[object] = []
		if user_id is not None:
			params.append(user_id)
			conditions.append("user_id=$%d" % len(params))
		if status is not None:
			params.append(_db_value(status))
			conditions.append("status=$%d" % len(params))
		query = f"""
			SELECT * FROM creator_applications
			WHERE {' AND '.join(conditions)}
			ORDER BY submitted_at DESC, id DESC
		"""
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(query, *params)
		return _to_models(models.CreatorApplication, rows)

	async def count_applications(self, *, status: str | None = None) -> int:
		pool = await get_pool()
		async with pool.acquire() as conn:
			if status is None:
				value = await conn.fetchval("SELECT COUNT(*) FROM creator_applications")
			else:
				value = await conn.fetchval(
					"SELECT COUNT(*) FROM creator_applications WHERE status=$1",
					_db_value(status),
				)
		return int(value or 0)

	# --- Platform stats ---------------------------------------------------

	async def get_platform_stats(self) -> models.PlatformStats | None:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow("SELECT * FROM platform_stats WHERE id=1")
		return _to_model(models.PlatformStats, record)

	async def upsert_platform_stats(self, stats: models.PlatformStats) -> models.PlatformStats:
		pool = await get_pool()
		async with pool.acquire() as conn:
			record = await conn.fetchrow(
				"""
				INSERT INTO platform_stats (id, total_users, total_creators, total_posts, pending_applications,
					approved_applications, total_applications, pending_reports, total_reports, last_updated)
				VALUES (1, $1, $2, $3, $4, $5, $6, $7, $8, $9)
				ON CONFLICT (id) DO UPDATE SET
					total_users = EXCLUDED.total_users,
					total_creators = EXCLUDED.total_creators,
					total_posts = EXCLUDED.total_posts,
					pending_applications = EXCLUDED.pending_applications,
					approved_applications = EXCLUDED.approved_applications,
					total_applications = EXCLUDED.total_applications,
					pending_reports = EXCLUDED.pending_reports,
					total_reports = EXCLUDED.total_reports,
					last_updated = EXCLUDED.last_updated
				RETURNING *
				""",
				stats.total_users,
				stats.total_creators,
				stats.total_posts,
				stats.pending_applications,
				stats.approved_applications,
				stats.total_applications,
				stats.pending_reports,
				stats.total_reports,
				stats.last_updated,
			)
		return models.PlatformStats.model_validate(dict(record))

	# --- Draft assets -----------------------------------------------------

	async def insert_draft_asset(self, asset: models.DraftAsset) -> models.DraftAsset:
		return await self._insert("draft_assets", asset)

	async def delete_draft_assets_by_urls(self, author_id: UUID, media_urls: Sequence[str]) -> int:
		if not media_urls:
			return 0
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute(
				"DELETE FROM draft_assets WHERE author_id=$1 AND media_url = ANY($2::text[])",
				author_id,
				list(media_urls),
			)
		return _affected(status)

	async def list_draft_assets_before(self, cutoff: datetime) -> list[models.DraftAsset]:
		pool = await get_pool()
		async with pool.acquire() as conn:
			rows = await conn.fetch(
				"SELECT * FROM draft_assets WHERE created_at < $1 ORDER BY created_at ASC",
				cutoff,
			)
		return _to_models(models.DraftAsset, rows)

	async def delete_draft_assets(self, asset_ids: Sequence[UUID]) -> int:
		if not asset_ids:
			return 0
		pool = await get_pool()
		async with pool.acquire() as conn:
			status = await conn.execute("DELETE FROM draft_assets WHERE id = ANY($1::uuid[])", list(asset_ids))
		return _affected(status)
