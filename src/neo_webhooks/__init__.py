"""neo-webhooks: webhook event delivery core for NeoMultiTenant services.

Signed, at-least-once delivery of domain events to subscriber callbacks
with a per-subscription circuit breaker and a durable retry queue.
"""

from .__version__ import __version__

__all__ = ["__version__"]
