"""HTTP routers for the FanTribe API."""

from __future__ import annotations

from fastapi import APIRouter

from fantribe.api import (
	admin,
	applications,
	comments,
	likes,
	messaging,
	moderation,
	notifications,
	ops,
	posts,
	social,
	subscriptions,
	tips,
	users,
)

ROUTERS: tuple[APIRouter, ...] = (
	ops.router,
	users.router,
	social.router,
	posts.router,
	comments.router,
	likes.router,
	subscriptions.router,
	tips.router,
	notifications.router,
	messaging.router,
	moderation.router,
	applications.router,
	admin.router,
)

__all__ = ["ROUTERS"]
