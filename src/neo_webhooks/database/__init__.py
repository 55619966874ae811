"""Database access for neo-webhooks."""

from .connection import DatabaseManager

__all__ = ["DatabaseManager"]
