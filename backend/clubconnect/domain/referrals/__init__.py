"""Referral postings and applications."""
