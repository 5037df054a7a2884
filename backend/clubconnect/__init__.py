"""ClubConnect guidance and mentorship backend."""

__version__ = "0.1.0"
