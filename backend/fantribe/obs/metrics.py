"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram, Summary


REQUEST_COUNTER = Counter(
	"fantribe_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"fantribe_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

SOCKET_CLIENTS = Gauge(
	"fantribe_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"fantribe_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

RATE_LIMITED_EVENTS = Counter(
	"fantribe_rate_limited_total",
	"Requests rejected by rate limiting",
	["kind"],
)

NOTIFICATIONS = Counter(
	"fantribe_notifications_total",
	"Notification create attempts by outcome",
	["type", "result"],
)

NOTIFICATION_BATCHES = Counter(
	"fantribe_notification_batches_total",
	"Deferred notification batches by final status",
	["status"],
)

NOTIFICATION_QUEUE_DEPTH = Gauge(
	"fantribe_notification_queue_pending",
	"Pending deferred notification recipients",
)

POSTS_CREATED = Counter(
	"fantribe_posts_created_total",
	"Posts published",
	["visibility"],
)

ENGAGEMENT_EVENTS = Counter(
	"fantribe_engagement_total",
	"Likes, comments, bookmarks and follows",
	["kind", "action"],
)

MESSAGES_SENT = Counter(
	"fantribe_messages_sent_total",
	"Direct messages sent",
	["message_type"],
)

PAYMENTS_PROCESSED = Counter(
	"fantribe_payments_total",
	"Subscription payments processed",
	["provider", "action"],
)

TIPS_PROCESSED = Counter(
	"fantribe_tips_total",
	"Tips processed",
	["provider", "result"],
)

SUBSCRIPTIONS_EXPIRED = Counter(
	"fantribe_subscriptions_expired_total",
	"Subscriptions moved to expired by the daily job",
)

REPORTS_CREATED = Counter(
	"fantribe_reports_created_total",
	"User reports filed",
	["type", "reason"],
)

MODERATION_ACTIONS = Counter(
	"fantribe_moderation_actions_total",
	"Moderation actions taken by superusers",
	["action"],
)

REDIS_UP = Gauge("fantribe_redis_up", "Redis availability (1=up,0=down)")
REDIS_LATENCY = Summary("fantribe_redis_latency_seconds", "Redis ping latency (seconds)")

POSTGRES_UP = Gauge("fantribe_postgres_up", "Postgres availability (1=up,0=down)")
POSTGRES_LATENCY = Summary("fantribe_postgres_latency_seconds", "Postgres ping latency (seconds)")

BACKGROUND_RUNS = Counter(
	"fantribe_jobs_runs_total",
	"Background job executions",
	["name", "result"],
)

BACKGROUND_DURATION = Histogram(
	"fantribe_jobs_duration_seconds",
	"Background job duration",
	["name"],
	buckets=(0.1, 0.5, 1.0, 2.0, 5.0, 15.0, 30.0, 60.0),
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(elapsed_seconds)


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()


def inc_rate_limited(kind: str) -> None:
	RATE_LIMITED_EVENTS.labels(kind=kind).inc()


def inc_notification(type: str, result: str) -> None:
	NOTIFICATIONS.labels(type=type, result=result).inc()


def inc_notification_batch(status: str) -> None:
	NOTIFICATION_BATCHES.labels(status=status).inc()


def set_notification_queue_depth(count: int) -> None:
	NOTIFICATION_QUEUE_DEPTH.set(count)


def inc_post_created(visibility: str) -> None:
	POSTS_CREATED.labels(visibility=visibility).inc()


def inc_engagement(kind: str, action: str) -> None:
	ENGAGEMENT_EVENTS.labels(kind=kind, action=action).inc()


def inc_message_sent(message_type: str) -> None:
	MESSAGES_SENT.labels(message_type=message_type).inc()


def inc_payment(provider: str, action: str) -> None:
	PAYMENTS_PROCESSED.labels(provider=provider, action=action).inc()


def inc_tip(provider: str, result: str) -> None:
	TIPS_PROCESSED.labels(provider=provider, result=result).inc()


def inc_subscriptions_expired(count: int) -> None:
	if count > 0:
		SUBSCRIPTIONS_EXPIRED.inc(count)


def inc_report_created(type: str, reason: str) -> None:
	REPORTS_CREATED.labels(type=type, reason=reason).inc()


def inc_moderation_action(action: str) -> None:
	MODERATION_ACTIONS.labels(action=action).inc()


def mark_redis(ok: bool, *, latency_seconds: float | None = None) -> None:
	REDIS_UP.set(1 if ok else 0)
	if ok and latency_seconds is not None:
		REDIS_LATENCY.observe(latency_seconds)


def mark_postgres(ok: bool, *, latency_seconds: float | None = None) -> None:
	POSTGRES_UP.set(1 if ok else 0)
	if ok and latency_seconds is not None:
		POSTGRES_LATENCY.observe(latency_seconds)


def record_job_run(name: str, *, result: str, duration_seconds: float | None = None) -> None:
	BACKGROUND_RUNS.labels(name=name, result=result).inc()
	if duration_seconds is not None:
		BACKGROUND_DURATION.labels(name=name).observe(duration_seconds)
