"""Lightweight service container shared by the API routers."""

from __future__ import annotations

from typing import Optional

from clubconnect.domain.admin.safety import SafetyService
from clubconnect.domain.admin.service import AdminService
from clubconnect.domain.common import Clock, utcnow
from clubconnect.domain.guidance.service import GuidanceService
from clubconnect.domain.identity.service import IdentityService
from clubconnect.domain.matching.service import MatchingService
from clubconnect.domain.memory_store import InMemoryStore
from clubconnect.domain.referrals.service import ReferralService
from clubconnect.domain.store import Store
from clubconnect.infra.rate_limit import CooldownLimiter
from clubconnect.settings import settings

_store: Store = InMemoryStore(timeout_seconds=settings.operation_timeout_seconds)
_limiter: CooldownLimiter = CooldownLimiter()
_clock: Clock = utcnow

_identity: IdentityService
_matching: MatchingService
_guidance: GuidanceService
_referrals: ReferralService
_admin: AdminService
_safety: SafetyService


def _build() -> None:
	global _identity, _matching, _guidance, _referrals, _admin, _safety
	_identity = IdentityService(_store, clock=_clock)
	_matching = MatchingService(_store, clock=_clock)
	_guidance = GuidanceService(_store, _limiter, clock=_clock)
	_referrals = ReferralService(_store, clock=_clock)
	_admin = AdminService(_store, clock=_clock)
	_safety = SafetyService(_store, clock=_clock)


def configure(
	*,
	store: Optional[Store] = None,
	limiter: Optional[CooldownLimiter] = None,
	clock: Optional[Clock] = None,
) -> None:
	global _store, _limiter, _clock
	if store is not None:
		_store = store
	if limiter is not None:
		_limiter = limiter
	if clock is not None:
		_clock = clock
	_build()


def get_store() -> Store:
	return _store


def get_identity_service() -> IdentityService:
	return _identity


def get_matching_service() -> MatchingService:
	return _matching


def get_guidance_service() -> GuidanceService:
	return _guidance


def get_referral_service() -> ReferralService:
	return _referrals


def get_admin_service() -> AdminService:
	return _admin


def get_safety_service() -> SafetyService:
	return _safety


_build()
