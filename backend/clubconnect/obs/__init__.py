"""Observability package bootstrap."""

from __future__ import annotations

from fastapi import FastAPI

from clubconnect.obs import logging as obs_logging
from clubconnect.obs import middleware
from clubconnect.settings import settings

_initialised = False


def init(app: FastAPI) -> None:
	global _initialised
	middleware.install(app, enabled=settings.obs_enabled)
	if _initialised:
		return
	if settings.obs_enabled:
		obs_logging.configure_logging()
	_initialised = True


__all__ = ["init"]
