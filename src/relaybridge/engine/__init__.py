"""
Relay engine: notification dispatch, batch submission and the exception tree.
"""

from .events import NotificationStream, Subscription
from .executors import BatchSubmitter
from .exceptions import (
    RelayBridgeError,
    ConfigurationError,
    GatewayError,
    GatewayResponseError,
    GatewayAuthenticationError,
    RelayError,
    BatchSubmissionError,
    TransactionFailedError,
    RelayTimeoutError,
    RelaySessionClosedError,
    RpcError,
    WalletError,
    WalletRejectedError,
    BridgeApiError,
    InvalidTransition,
)

__all__ = [
    "NotificationStream",
    "Subscription",
    "BatchSubmitter",
    "RelayBridgeError",
    "ConfigurationError",
    "GatewayError",
    "GatewayResponseError",
    "GatewayAuthenticationError",
    "RelayError",
    "BatchSubmissionError",
    "TransactionFailedError",
    "RelayTimeoutError",
    "RelaySessionClosedError",
    "RpcError",
    "WalletError",
    "WalletRejectedError",
    "BridgeApiError",
    "InvalidTransition",
]
