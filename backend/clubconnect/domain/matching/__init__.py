"""Mentor scoring and recommendations."""
