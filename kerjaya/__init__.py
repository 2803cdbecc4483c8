"""Kerjaya job board backend: Telegram login and app sessions."""

__version__ = "1.0.0"
