"""Audit trail for privileged actions."""
