"""Base exceptions for neo-webhooks.

All exceptions inherit from NeoWebhooksError and carry an error code,
structured details and the HTTP status code used when they surface
through the API layer.
"""

from typing import Any, Dict, Optional


class NeoWebhooksError(Exception):
    """Base exception for all neo-webhooks errors."""

    status_code: int = 500

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
        *args,
        **kwargs
    ):
        super().__init__(message, *args, **kwargs)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the error for API responses."""
        return {
            "code": self.error_code,
            "message": self.message,
            "details": self.details,
            "type": self.__class__.__name__,
        }


def create_error_response(exception: NeoWebhooksError) -> Dict[str, Any]:
    """Create standardized error response from exception.

    Args:
        exception: The neo-webhooks exception

    Returns:
        Error response dictionary
    """
    return {"error": exception.to_dict()}
