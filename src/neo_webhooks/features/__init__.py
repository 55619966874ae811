"""Feature modules for neo-webhooks."""
