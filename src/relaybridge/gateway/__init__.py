"""
Relay gateway access: authenticated session, batch client and notifications.
"""

from .bases import BatchGateway
from .client import HttpBatchGateway
from .notifications import SseNotificationTransport
from .session import GatewaySession

__all__ = [
    "BatchGateway",
    "HttpBatchGateway",
    "SseNotificationTransport",
    "GatewaySession",
]
