from .bases import (
    CanonicalModel,
    WalletSession,
    ContractAccount,
    TransactionIntent,
    GatewayTransactionState,
    BatchEstimation,
    SubmittedBatch,
    NotificationType,
    NotificationEvent,
)
from .https import (
    BridgeApiEnvelope,
    BridgeToken,
    BridgeEligibility,
    DepositIntentRequest,
    DepositInfo,
    BridgeProgress,
)

__all__ = [
    "CanonicalModel",
    "WalletSession",
    "ContractAccount",
    "TransactionIntent",
    "GatewayTransactionState",
    "BatchEstimation",
    "SubmittedBatch",
    "NotificationType",
    "NotificationEvent",
    "BridgeApiEnvelope",
    "BridgeToken",
    "BridgeEligibility",
    "DepositIntentRequest",
    "DepositInfo",
    "BridgeProgress",
]
