"""Version information for neo-webhooks."""

__version__ = "1.0.0"
