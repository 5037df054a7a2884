"""Admin console and safety reports."""
