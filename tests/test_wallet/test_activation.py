"""
Wallet Activation Selector Test Suite

Tests for WalletActivationSelector:
- relay eligibility by chain id and connector class
- best-effort relay derivation and account computation
- provider selection and the ``active`` flag
- deactivation clears stored sessions and tears the relay session down
"""

import asyncio

import httpx
import pytest
from web3 import Web3

from relaybridge.engine.exceptions import RelaySessionClosedError, WalletRejectedError
from relaybridge.providers.relay import RelayRpcProvider
from relaybridge.schemas.bases import WalletSession
from relaybridge.wallet.activation import ActivationState, WalletActivationSelector
from relaybridge.wallet.connectors import InjectedConnector, NetworkConnector, WalletConnectConnector

from conftest import (
    FakeGatewaySession,
    FakeWalletRpc,
    MOCK_CONTRACT_ACCOUNT,
    MOCK_DEPOSIT_ADDRESS,
    MOCK_WALLET_ADDRESS,
)


# ========================================================================
# Test Fixtures
# ========================================================================

@pytest.fixture
def sessions():
    """Gateway sessions created by the selector, in order."""
    return []


@pytest.fixture
def selector(config, store, sessions):
    def factory(wallet):
        session = FakeGatewaySession(wallet)
        sessions.append(session)
        return session

    return WalletActivationSelector(config, store, session_factory=factory)


# ========================================================================
# Test Classes
# ========================================================================

class TestRelayActivation:
    """Test activation that ends on the relay path."""

    @pytest.mark.asyncio
    async def test_injected_wallet_off_relay_chain_uses_relay(self, selector, sessions):
        """Test that an injected wallet on Ethereum gets a relay provider and account."""
        wallet = FakeWalletRpc(chain_id=1)
        state = await selector.activate(InjectedConnector(wallet))

        assert state is ActivationState.RELAY_ACTIVE
        assert isinstance(selector.provider, RelayRpcProvider)
        assert selector.account == MOCK_CONTRACT_ACCOUNT
        assert selector.direct_account == MOCK_WALLET_ADDRESS
        assert selector.active is False
        assert selector.chain_id == 1
        assert len(sessions) == 1
        sessions[0].compute_contract_account.assert_awaited_once_with(sync=True)

    @pytest.mark.asyncio
    async def test_wallet_connect_uses_relay(self, selector):
        """Test that a wallet-connect wallet derives its relay provider directly."""
        state = await selector.activate(WalletConnectConnector(FakeWalletRpc(chain_id=1)))

        assert state is ActivationState.RELAY_ACTIVE
        assert selector.relay_wallet.address == Web3.to_checksum_address(MOCK_WALLET_ADDRESS)

    @pytest.mark.asyncio
    async def test_account_failure_leaves_relay_pending(self, config, store):
        """Test that contract account computation failures are swallowed."""
        created = []

        def factory(wallet):
            session = FakeGatewaySession(wallet, compute_error=httpx.ConnectError("down"))
            created.append(session)
            return session

        selector = WalletActivationSelector(config, store, session_factory=factory)
        state = await selector.activate(InjectedConnector(FakeWalletRpc(chain_id=1)))

        assert state is ActivationState.RELAY_PENDING
        assert selector.account is None
        assert selector.active is False
        assert isinstance(selector.provider, RelayRpcProvider)

        # Retry once the gateway is back
        created[0].compute_contract_account.side_effect = None
        assert await selector.refresh_account() == MOCK_CONTRACT_ACCOUNT
        assert selector.state is ActivationState.RELAY_ACTIVE


class TestDirectActivation:
    """Test activation that stays on the direct path."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("chain_id", [56, 97])
    async def test_relay_chain_never_relays(self, selector, sessions, chain_id):
        """Test that a wallet already on a relay chain is used directly."""
        wallet = FakeWalletRpc(chain_id=chain_id)
        state = await selector.activate(InjectedConnector(wallet))

        assert state is ActivationState.DIRECT_ACTIVE
        assert selector.provider is wallet
        assert selector.active is True
        assert selector.account == MOCK_WALLET_ADDRESS
        assert sessions == []
        assert wallet.request_accounts_calls == 1

    @pytest.mark.asyncio
    async def test_unsupported_connector_never_relays(self, selector, sessions):
        """Test that connectors without relay capability stay direct."""
        node = FakeWalletRpc(chain_id=1)
        state = await selector.activate(NetworkConnector(node, account=MOCK_WALLET_ADDRESS))

        assert state is ActivationState.DIRECT_ACTIVE
        assert selector.provider is node
        assert sessions == []

    @pytest.mark.asyncio
    async def test_injected_rejection_falls_back_to_direct(self, selector, sessions):
        """Test that rejecting the relay prompt keeps the direct wallet authoritative."""
        wallet = FakeWalletRpc(chain_id=1, reject_from_call=2)
        state = await selector.activate(InjectedConnector(wallet))

        assert state is ActivationState.DIRECT_ACTIVE
        assert selector.provider is wallet
        assert selector.active is True
        assert sessions == []

    @pytest.mark.asyncio
    async def test_wallet_connect_rejection_propagates_but_direct_stays(self, selector):
        """Test that wallet-connect derivation errors surface while the direct path remains."""
        wallet = FakeWalletRpc(chain_id=1, reject_from_call=2)
        with pytest.raises(WalletRejectedError):
            await selector.activate(WalletConnectConnector(wallet))

        assert selector.state is ActivationState.DIRECT_ACTIVE
        assert selector.provider is wallet
        assert selector.active is True

    @pytest.mark.asyncio
    async def test_direct_rejection_disconnects(self, selector):
        """Test that refusing the direct connection leaves the selector disconnected."""
        with pytest.raises(WalletRejectedError):
            await selector.activate(InjectedConnector(FakeWalletRpc(reject_from_call=1)))

        assert selector.state is ActivationState.DISCONNECTED
        assert selector.provider is None
        assert selector.active is False


class TestDeactivation:
    """Test deactivation and re-activation."""

    @pytest.mark.asyncio
    async def test_deactivate_clears_sessions_and_destroys(self, selector, store, sessions):
        """Test that stored sessions are cleared and the gateway session destroyed."""
        await selector.activate(InjectedConnector(FakeWalletRpc(chain_id=1)))
        signer = selector.relay_wallet.address
        for address in (MOCK_CONTRACT_ACCOUNT, signer):
            store.save(address, WalletSession(token="t", account=address))

        await selector.deactivate()

        assert store.load(MOCK_CONTRACT_ACCOUNT) is None
        assert store.load(signer) is None
        assert store.has_entry(signer)
        sessions[0].destroy.assert_awaited_once()
        assert selector.state is ActivationState.DISCONNECTED
        assert selector.provider is None
        assert selector.account is None

    @pytest.mark.asyncio
    async def test_deactivate_releases_pending_submission(self, selector, wait_subscribed):
        """Test that a transaction waiting on the relay fails when the session is torn down."""
        await selector.activate(InjectedConnector(FakeWalletRpc(chain_id=1)))
        provider = selector.provider
        notifications = selector.gateway_session.notifications

        task = asyncio.create_task(provider.send("eth_sendTransaction", [{"to": MOCK_DEPOSIT_ADDRESS}]))
        await wait_subscribed(notifications)
        await selector.deactivate()

        with pytest.raises(RelaySessionClosedError):
            await task
        assert notifications.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_connector_error_still_tears_down_relay(self, selector, store, sessions, monkeypatch):
        """Test that a failing connector disconnect still clears sessions and destroys the relay."""
        connector = InjectedConnector(FakeWalletRpc(chain_id=1))
        await selector.activate(connector)
        signer = selector.relay_wallet.address
        store.save(signer, WalletSession(token="t", account=signer))

        async def failing_deactivate():
            raise WalletRejectedError("wallet went away")

        monkeypatch.setattr(connector, "deactivate", failing_deactivate)

        with pytest.raises(WalletRejectedError):
            await selector.deactivate()

        assert store.load(signer) is None
        sessions[0].destroy.assert_awaited_once()
        assert selector.gateway_session is None
        assert selector.state is ActivationState.DISCONNECTED
        assert selector.provider is None

    @pytest.mark.asyncio
    async def test_reactivation_replaces_relay_session(self, selector, sessions):
        """Test that activating again destroys the previous relay session first."""
        await selector.activate(InjectedConnector(FakeWalletRpc(chain_id=1)))
        await selector.activate(InjectedConnector(FakeWalletRpc(chain_id=1)))

        assert len(sessions) == 2
        sessions[0].destroy.assert_awaited_once()
        sessions[1].destroy.assert_not_awaited()
        assert selector.gateway_session is sessions[1]

    @pytest.mark.asyncio
    async def test_deactivate_direct_only(self, selector, store):
        """Test that deactivating a direct connection touches no stored session."""
        await selector.activate(InjectedConnector(FakeWalletRpc(chain_id=56)))
        await selector.deactivate()

        assert store.raw() == {}
        assert selector.state is ActivationState.DISCONNECTED
