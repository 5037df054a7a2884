"""Guidance request lifecycle."""
