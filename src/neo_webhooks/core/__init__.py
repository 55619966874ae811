"""Core building blocks shared by every neo-webhooks feature."""
