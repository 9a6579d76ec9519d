"""JSON logging with request and job context.

Every record carries the service identity plus whatever context is bound for
the current task (request id, route, caller, job). Values passed through
``extra=`` are truncated, and keys that look like credentials or personal data
are redacted.
"""

from __future__ import annotations

import json
import logging
import random
from contextvars import ContextVar, Token
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional
from uuid import UUID

from fantribe.settings import settings

_LOGGER_NAME = "fantribe"

CONTEXT_FIELDS = ("request_id", "route", "user_id", "client_ip", "job")

_CONTEXT: ContextVar[Mapping[str, str]] = ContextVar("obs_log_context", default={})

REDACTED = "[redacted]"
_SENSITIVE_KEYWORDS = (
	"token",
	"secret",
	"authorization",
	"password",
	"email",
	"phone",
	"address",
	"date_of_birth",
	"full_name",
	"identity_documents",
)

MAX_STRING_LENGTH = 256
MAX_ITEMS = 10

# Attributes every LogRecord has; anything else came in through ``extra=``.
_RECORD_ATTRS = frozenset(logging.LogRecord("", 0, "", 0, "", None, None).__dict__) | {"message", "asctime"}


def bind_context(**fields: Optional[str]) -> Token:
	"""Layer ``fields`` over the current context; undo with :func:`reset_context`."""
	unknown = set(fields) - set(CONTEXT_FIELDS)
	if unknown:
		raise TypeError(f"unknown log context fields: {sorted(unknown)}")
	merged = dict(_CONTEXT.get())
	merged.update({key: str(value) for key, value in fields.items() if value is not None})
	return _CONTEXT.set(merged)


def reset_context(token: Token) -> None:
	_CONTEXT.reset(token)


def current_context() -> Mapping[str, str]:
	return _CONTEXT.get()


def current_request_id() -> Optional[str]:
	return _CONTEXT.get().get("request_id")


def _is_sensitive(key: str) -> bool:
	lowered = key.lower()
	return any(keyword in lowered for keyword in _SENSITIVE_KEYWORDS)


def scrub(key: str, value: Any) -> Any:
	if _is_sensitive(key):
		return REDACTED
	return _jsonable(value)


def _jsonable(value: Any) -> Any:
	if value is None or isinstance(value, (bool, int, float)):
		return value
	if isinstance(value, Enum):
		return _jsonable(value.value)
	if isinstance(value, str):
		if len(value) > MAX_STRING_LENGTH:
			return value[:MAX_STRING_LENGTH] + "…"
		return value
	if isinstance(value, datetime):
		return value.isoformat()
	if isinstance(value, UUID):
		return str(value)
	if isinstance(value, Mapping):
		items = list(value.items())
		out = {str(key): scrub(str(key), nested) for key, nested in items[:MAX_ITEMS]}
		if len(items) > MAX_ITEMS:
			out["…"] = f"+{len(items) - MAX_ITEMS} keys"
		return out
	if isinstance(value, (list, tuple, set, frozenset)):
		items = [_jsonable(item) for item in value]
		if len(items) > MAX_ITEMS:
			return items[:MAX_ITEMS] + ["…"]
		return items
	return str(value)


class JSONLogFormatter(logging.Formatter):
	def format(self, record: logging.LogRecord) -> str:  # noqa: A003
		payload: dict[str, Any] = {
			"ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
			"level": record.levelname.lower(),
			"msg": record.getMessage(),
			"logger": record.name,
			"service": settings.service_name,
			"env": settings.environment,
			"commit": settings.git_commit,
		}
		for key, value in _CONTEXT.get().items():
			payload["ip" if key == "client_ip" else key] = value
		if record.exc_info:
			payload["exc_info"] = self.formatException(record.exc_info)
		for key, value in record.__dict__.items():
			if key in _RECORD_ATTRS or key in payload:
				continue
			payload[key] = scrub(key, value)
		return json.dumps(payload, separators=(",", ":"))


class InfoSamplingFilter(logging.Filter):
	"""Keeps a share of INFO records set by ``LOG_SAMPLING_RATE_INFO``; other levels always pass."""

	def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
		if record.levelno != logging.INFO:
			return True
		rate = max(0.0, min(1.0, settings.obs_log_sampling_rate_info))
		return rate >= 1.0 or random.random() < rate


def configure_logging() -> logging.Logger:
	root = logging.getLogger()
	root.handlers.clear()
	handler = logging.StreamHandler()
	handler.setFormatter(JSONLogFormatter())
	handler.addFilter(InfoSamplingFilter())
	root.addHandler(handler)
	root.setLevel(settings.obs_log_level)
	return logging.getLogger(_LOGGER_NAME)


def get_logger(name: Optional[str] = None) -> logging.Logger:
	return logging.getLogger(name or _LOGGER_NAME)
