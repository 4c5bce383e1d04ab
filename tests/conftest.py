"""
Shared fakes and fixtures for the relaybridge test suite.

Key Components:
    - FakeBatchGateway: In-memory gateway recording every call in order
    - FakeWalletRpc: Scriptable wallet JSON-RPC provider
    - FakeGatewaySession: Stand-in for GatewaySession in selector tests
    - wait_subscribed: Helper that yields to the loop until a subscription opens
"""

import asyncio
from typing import Any, List, Optional
from unittest.mock import AsyncMock

import pytest
from eth_account import Account

from relaybridge.config import RelayConfig
from relaybridge.engine.events import NotificationStream
from relaybridge.engine.exceptions import RpcError
from relaybridge.gateway.bases import BatchGateway
from relaybridge.schemas.bases import (
    BatchEstimation,
    ContractAccount,
    GatewayTransactionState,
    NotificationEvent,
    NotificationType,
    SubmittedBatch,
    TransactionIntent,
)
from relaybridge.wallet.storage import MemorySessionStore


# ========================================================================
# Mock Constants
# ========================================================================

MOCK_PRIVATE_KEY = "0x1234567890123456789012345678901234567890123456789012345678901234"
MOCK_SIGNER_ADDRESS = Account.from_key(MOCK_PRIVATE_KEY).address
MOCK_WALLET_ADDRESS = "0x00000000000000000000000000000000000000a1"
MOCK_CONTRACT_ACCOUNT = "0x00000000000000000000000000000000000000c1"
MOCK_DEPOSIT_ADDRESS = "0x00000000000000000000000000000000000000d1"
MOCK_BATCH_HASH = "0xbatch01"
MOCK_TX_HASH = "0x" + "ab" * 32


# ========================================================================
# Fakes
# ========================================================================

class FakeBatchGateway(BatchGateway):
    """Gateway double: returns scripted statuses and records call order.

    Each submitted batch reports Queued for its first ``pending_polls`` status
    reads before the scripted statuses apply.
    """

    def __init__(
        self,
        batch_hash: Optional[str] = MOCK_BATCH_HASH,
        statuses: Optional[List[SubmittedBatch]] = None,
        estimate_error: Optional[BaseException] = None,
        status_error: Optional[BaseException] = None,
        pending_polls: int = 1,
    ):
        self.batch_hash = batch_hash
        self.statuses = list(statuses or [])
        self.estimate_error = estimate_error
        self.status_error = status_error
        self.pending_polls = pending_polls
        self._pending = 0
        self.calls: List[str] = []
        self.intents: List[TransactionIntent] = []

    def clear_batch(self) -> None:
        self.calls.append("clear")

    async def add_transaction(self, intent: TransactionIntent) -> None:
        self.calls.append("add")
        self.intents.append(intent)

    async def estimate_batch(self) -> BatchEstimation:
        self.calls.append("estimate")
        if self.estimate_error is not None:
            raise self.estimate_error
        return BatchEstimation(estimated_gas=21000, estimated_gas_price=5)

    async def submit_batch(self) -> SubmittedBatch:
        self.calls.append("submit")
        self._pending = self.pending_polls
        return SubmittedBatch(batch_hash=self.batch_hash or "")

    async def get_submitted_batch(self, batch_hash: str) -> SubmittedBatch:
        self.calls.append("status")
        if self._pending > 0:
            self._pending -= 1
            return SubmittedBatch(batch_hash=batch_hash, transaction_state=GatewayTransactionState.QUEUED)
        if self.status_error is not None:
            raise self.status_error
        if len(self.statuses) > 1:
            return self.statuses.pop(0)
        if self.statuses:
            return self.statuses[0]
        return SubmittedBatch(batch_hash=batch_hash, transaction_state=GatewayTransactionState.QUEUED)


class FakeWalletRpc:
    """Wallet JSON-RPC double.

    Args:
        accounts: Accounts returned by ``eth_requestAccounts``.
        chain_id: Chain reported by ``eth_chainId``.
        reject_from_call: 1-based ``eth_requestAccounts`` call from which the
            user rejects (EIP-1193 code 4001). None never rejects.
    """

    def __init__(self, accounts=None, chain_id: int = 1, reject_from_call: Optional[int] = None):
        self.accounts = list(accounts if accounts is not None else [MOCK_WALLET_ADDRESS])
        self.chain_id = chain_id
        self.reject_from_call = reject_from_call
        self.request_accounts_calls = 0
        self.sent: List[tuple] = []

    async def send(self, method: str, params: Optional[List[Any]] = None) -> Any:
        self.sent.append((method, params))
        if method == "eth_requestAccounts":
            self.request_accounts_calls += 1
            if self.reject_from_call and self.request_accounts_calls >= self.reject_from_call:
                raise RpcError("User rejected the request.", 4001, method)
            return self.accounts
        if method == "eth_chainId":
            return hex(self.chain_id)
        if method == "personal_sign":
            return "0x" + "11" * 65
        raise RpcError(f"Unsupported method {method}", -32601, method)


class FakeGatewaySession:
    """GatewaySession stand-in exposing what the selector and provider use."""

    def __init__(self, wallet_provider, account: Optional[str] = MOCK_CONTRACT_ACCOUNT,
                 compute_error: Optional[BaseException] = None):
        self.wallet_provider = wallet_provider
        self.batch = FakeBatchGateway()
        self.notifications = NotificationStream()
        self.compute_contract_account = AsyncMock(
            side_effect=compute_error,
            return_value=ContractAccount(address=account) if account else None,
        )
        self.destroy = AsyncMock(side_effect=self.notifications.close)

    @property
    def signer_address(self) -> str:
        return self.wallet_provider.address


def batch_updated(batch_hash: Optional[str] = MOCK_BATCH_HASH) -> NotificationEvent:
    return NotificationEvent(type=NotificationType.GATEWAY_BATCH_UPDATED, batch_hash=batch_hash)


# ========================================================================
# Fixtures
# ========================================================================

@pytest.fixture
def config(tmp_path) -> RelayConfig:
    """Mainnet configuration with a short submission timeout."""
    return RelayConfig(
        network_url="http://localhost:8545",
        chain_id=56,
        gateway_url="https://gateway.test",
        bridge_api_url="https://bridge.test/api",
        submission_timeout=2.0,
        session_store_path=tmp_path / "sessions.json",
    )


@pytest.fixture
def store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def gateway() -> FakeBatchGateway:
    return FakeBatchGateway()


@pytest.fixture
def stream() -> NotificationStream:
    return NotificationStream()


@pytest.fixture
def intent() -> TransactionIntent:
    return TransactionIntent.model_validate({
        "from": MOCK_WALLET_ADDRESS,
        "to": MOCK_DEPOSIT_ADDRESS,
        "value": "0xde0b6b3a7640000",
    })


@pytest.fixture
def wait_subscribed():
    """Return a coroutine function waiting until ``stream`` has ``count`` subscribers."""

    async def _wait(stream: NotificationStream, count: int = 1) -> None:
        for _ in range(200):
            if stream.subscriber_count >= count:
                return
            await asyncio.sleep(0)
        raise AssertionError(f"expected {count} subscription(s), got {stream.subscriber_count}")

    return _wait

