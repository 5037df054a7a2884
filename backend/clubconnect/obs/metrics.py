"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

import logging
from typing import Optional

from prometheus_client import Counter, Gauge, Histogram

log = logging.getLogger(__name__)


REQUEST_COUNTER = Counter(
	"clubconnect_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"clubconnect_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

GUIDANCE_TRANSITIONS = Counter(
	"clubconnect_guidance_transitions_total",
	"Guidance request state transitions",
	["to_status"],
)

REFERRAL_TRANSITIONS = Counter(
	"clubconnect_referral_transitions_total",
	"Referral and applicant state transitions",
	["event"],
)

ADMIN_ACTIONS = Counter(
	"clubconnect_admin_actions_total",
	"Privileged admin actions committed",
	["action"],
)

AUDIT_WRITE_FAILURES = Counter(
	"clubconnect_audit_write_failures_total",
	"Audit entries that could not be written",
	["action"],
)

ACTIVITY_WRITE_FAILURES = Counter(
	"clubconnect_activity_write_failures_total",
	"Activity entries that could not be written",
	["type"],
)

SESSION_INVALIDATION_FAILURES = Counter(
	"clubconnect_session_invalidation_failures_total",
	"Post-commit session invalidations that failed",
)

RATE_LIMITED = Counter(
	"clubconnect_rate_limited_total",
	"Actions rejected by a running cooldown",
	["action"],
)

DOMAIN_REJECTIONS = Counter(
	"clubconnect_domain_rejections_total",
	"Operations rejected with an expected domain error",
	["kind", "reason"],
)

REDIS_UP = Gauge("clubconnect_redis_up", "Redis reachability (1 = up)")
POSTGRES_UP = Gauge("clubconnect_postgres_up", "Postgres reachability (1 = up)")
DEPENDENCY_LATENCY = Histogram(
	"clubconnect_dependency_ping_seconds",
	"Readiness ping latency per dependency",
	["dependency"],
	buckets=(0.001, 0.005, 0.01, 0.05, 0.1, 0.25, 0.5),
)


def observe_request(route: str, method: str, status: int, elapsed_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(max(elapsed_seconds, 0.0))


def inc_guidance_transition(to_status: str) -> None:
	GUIDANCE_TRANSITIONS.labels(to_status=to_status).inc()


def inc_referral_event(event: str) -> None:
	REFERRAL_TRANSITIONS.labels(event=event).inc()


def inc_admin_action(action: str) -> None:
	ADMIN_ACTIONS.labels(action=action).inc()


def inc_audit_failure(action: str) -> None:
	AUDIT_WRITE_FAILURES.labels(action=action).inc()


def inc_activity_failure(activity_type: str) -> None:
	ACTIVITY_WRITE_FAILURES.labels(type=activity_type).inc()


def inc_session_invalidation_failure() -> None:
	SESSION_INVALIDATION_FAILURES.inc()


def inc_rate_limited(action: str) -> None:
	RATE_LIMITED.labels(action=action).inc()


def inc_domain_rejection(kind: str, reason: str) -> None:
	DOMAIN_REJECTIONS.labels(kind=kind, reason=reason).inc()


def mark_redis(up: bool, *, latency_seconds: Optional[float] = None) -> None:
	REDIS_UP.set(1 if up else 0)
	if latency_seconds is not None:
		DEPENDENCY_LATENCY.labels(dependency="redis").observe(latency_seconds)


def mark_postgres(up: bool, *, latency_seconds: Optional[float] = None) -> None:
	POSTGRES_UP.set(1 if up else 0)
	if latency_seconds is not None:
		DEPENDENCY_LATENCY.labels(dependency="postgres").observe(latency_seconds)
