"""
Base Schema Models for the relay pipeline

This module defines the data models shared by the gateway client, the
notification stream, the relay provider and the session store.

Core Classes:
    - CanonicalModel: Pydantic base model with deterministic JSON serialization
    - WalletSession: Opaque authentication material for one relay signer
    - ContractAccount: Smart-contract account derived for a relay signer
    - TransactionIntent: The single transaction a caller wants executed
    - GatewayTransactionState: Closed set of gateway transaction states
    - BatchEstimation: Fee/gas projection for the pending batch
    - SubmittedBatch: A submitted batch and its current on-chain outcome
    - NotificationType / NotificationEvent: Gateway push notifications

Dependencies:
    - pydantic: For data validation and serialization
"""

import json
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Dict, Any

from pydantic import BaseModel, ConfigDict, Field


class CanonicalModel(BaseModel):
    """
    Pydantic base model with canonical JSON serialization.

    Keys are sorted and whitespace is stripped so that two equal models always
    serialize to the same string. Every schema in the package inherits from
    this class, which also enables population by field name or alias.

    Example:
        class MyModel(CanonicalModel):
            name: str
            value: int

        model = MyModel(name="test", value=123)
        model.to_canonical_json()  # '{"name":"test","value":123}'
    """

    model_config = ConfigDict(populate_by_name=True)

    def to_canonical_json(self) -> str:
        """
        Convert model to a canonical JSON string (sorted keys, compact separators).

        Returns:
            str: JSON string with sorted keys and no extra whitespace.
        """
        data = self.model_dump(mode="json", by_alias=True)
        return json.dumps(
            data,
            separators=(",", ":"),
            sort_keys=True,
            ensure_ascii=False
        )


class WalletSession(CanonicalModel):
    """
    Authentication material issued by the relay gateway for one signer.

    Callers treat the session as an opaque blob: it is produced by the gateway
    session on first connection, persisted by a ``SessionStore`` keyed by the
    signer address, overwritten on renewal and cleared on deactivation.

    Attributes:
        token: Bearer token presented to the gateway
        account: Signer address the session was issued to
        expires_at: Optional expiry reported by the gateway
        data: Any additional gateway-specific fields, kept verbatim
    """

    token: str = Field(..., min_length=1, description="Gateway bearer token")
    account: str = Field(..., description="Signer address the session belongs to")
    expires_at: Optional[datetime] = Field(None, description="Session expiry (UTC)")
    data: Dict[str, Any] = Field(default_factory=dict, description="Extra gateway session fields")

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        Check whether the session has passed its expiry.

        Sessions without an expiry never expire on the client side; the
        gateway rejects them with 401 when they are no longer valid.
        """
        if self.expires_at is None:
            return False
        now = now or datetime.now(timezone.utc)
        expires_at = self.expires_at
        if expires_at.tzinfo is None:
            expires_at = expires_at.replace(tzinfo=timezone.utc)
        return expires_at <= now


class ContractAccount(CanonicalModel):
    """Smart-contract account computed by the gateway for a relay signer."""

    address: str = Field(..., description="Contract account address")
    state: Optional[str] = Field(None, description="Deployment state reported by the gateway")


class TransactionIntent(CanonicalModel):
    """
    The single transaction a caller wants executed.

    Mirrors the first element of ``eth_sendTransaction`` params. Quantities
    stay hex-encoded exactly as the caller provided them.

    Attributes:
        from_address: Optional sender (ignored by the relay path, the contract
            account is the sender there)
        to: Destination address
        value: Hex-encoded wei amount
        data: Hex-encoded call data
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    from_address: Optional[str] = Field(None, alias="from", description="Sender address")
    to: str = Field(..., description="Destination address")
    value: Optional[str] = Field(None, description="Hex-encoded wei value")
    data: Optional[str] = Field(None, description="Hex-encoded call data")


class GatewayTransactionState(str, Enum):
    """
    Enumeration of transaction states reported by the relay gateway.

    Attributes:
        UNKNOWN: State not reported yet
        QUEUED: Batch accepted, waiting for a relayer
        SENDING: Relayer is broadcasting the transaction
        SENT: Transaction broadcast, hash may not be final yet
        CANCELING: Gateway is cancelling the transaction
        CANCELED: Transaction was cancelled
        REVERTED: Transaction was mined and reverted
        CONFIRMED: Transaction was mined successfully
    """
    UNKNOWN = "Unknown"
    QUEUED = "Queued"
    SENDING = "Sending"
    SENT = "Sent"
    CANCELING = "Canceling"
    CANCELED = "Canceled"
    REVERTED = "Reverted"
    CONFIRMED = "Confirmed"

    def is_failure(self) -> bool:
        """Return True for states that fix the outcome of a batch as failed."""
        return self in (
            GatewayTransactionState.CANCELING,
            GatewayTransactionState.CANCELED,
            GatewayTransactionState.REVERTED,
        )


class BatchEstimation(CanonicalModel):
    """Fee and gas projection returned by the gateway for the pending batch."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    estimated_gas: Optional[int] = Field(None, alias="estimatedGas", ge=0)
    estimated_gas_price: Optional[int] = Field(None, alias="estimatedGasPrice", ge=0)
    fee_amount: Optional[int] = Field(None, alias="feeAmount", ge=0)
    signature: Optional[str] = Field(None, description="Gateway signature over the estimate")


class SubmittedBatch(CanonicalModel):
    """
    A batch submitted to the gateway together with its current outcome.

    Produced by submission and refined by status queries. The batch is
    terminal once its state is Confirmed, Canceled or Reverted, or once a
    final transaction hash has been observed.

    Attributes:
        batch_hash: Gateway batch hash
        transaction_state: Current transaction state, if reported
        transaction_hash: Final on-chain transaction hash, if known
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    batch_hash: str = Field("", alias="hash", description="Gateway batch hash")
    transaction_state: Optional[GatewayTransactionState] = Field(None, alias="transactionState")
    transaction_hash: Optional[str] = Field(None, alias="transactionHash")

    def is_terminal(self) -> bool:
        """Check whether no further progress is expected for this batch."""
        if self.transaction_hash is not None:
            return True
        return self.transaction_state in (
            GatewayTransactionState.CONFIRMED,
            GatewayTransactionState.CANCELED,
            GatewayTransactionState.REVERTED,
        )


class NotificationType(str, Enum):
    """Notification types pushed by the gateway stream."""
    GATEWAY_BATCH_UPDATED = "GatewayBatchUpdated"
    ACCOUNT_UPDATED = "AccountUpdated"
    UNKNOWN = "Unknown"

    @classmethod
    def _missing_(cls, value):
        return cls.UNKNOWN


class NotificationEvent(CanonicalModel):
    """A single state-change event delivered by the notification stream."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: NotificationType = Field(..., description="Notification type")
    batch_hash: Optional[str] = Field(None, alias="batchHash", description="Batch the event refers to")

    def __repr__(self) -> str:
        return f"NotificationEvent(type={self.type.value}, batch_hash={self.batch_hash})"
