"""Accounts, roles, statuses and alumni metadata."""
