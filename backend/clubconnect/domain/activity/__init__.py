"""Append-only per-account activity history."""
