"""
Wallet Activation Selector

Decides, per activation, whether transactions go straight through the user's
wallet or through the relay gateway, and exposes one provider reference the
rest of the application uses without caring which path is in effect.

State machine:

    DISCONNECTED -> CONNECTING -> DIRECT_ACTIVE
                                  DIRECT_ACTIVE -> RELAY_PENDING -> RELAY_ACTIVE
    any state    -> DISCONNECTED (deactivate)

The relay path is an optional upgrade: when it cannot be derived (wrong
chain, unsupported connector, user rejection) the direct connection stays
authoritative.
"""

import logging
from enum import Enum
from typing import Callable, Optional

import httpx

from ..config import RelayConfig
from ..engine.exceptions import RelayBridgeError
from ..gateway.session import GatewaySession
from ..providers.relay import RelayRpcProvider
from .connectors import (
    Connector,
    DirectConnection,
    InjectedConnector,
    WalletConnectConnector,
)
from .signers import (
    InjectedWalletProvider,
    RelayWalletProvider,
    WalletConnectWalletProvider,
)
from .storage import SessionStore

logger = logging.getLogger(__name__)


class ActivationState(str, Enum):
    """Activation states of the selector."""
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    DIRECT_ACTIVE = "direct_active"
    RELAY_PENDING = "relay_pending"
    RELAY_ACTIVE = "relay_active"


GatewaySessionFactory = Callable[[RelayWalletProvider], GatewaySession]


class WalletActivationSelector:
    """
    One logical wallet session for the whole application.

    Construct once at startup and pass it to every consumer; ``activate``
    and ``deactivate`` are the only entry points that change which provider
    is in effect.

    Attributes:
        config: Runtime configuration.
        session_store: Store relay gateway sessions are persisted in.

    Usage:
        ```python
        selector = WalletActivationSelector(load_config(), FileSessionStore(path))
        await selector.activate(InjectedConnector(browser_provider))
        tx_hash = await selector.provider.send("eth_sendTransaction", [tx])
        await selector.deactivate()
        ```
    """

    def __init__(
        self,
        config: RelayConfig,
        session_store: SessionStore,
        session_factory: Optional[GatewaySessionFactory] = None,
    ):
        """
        Args:
            config: Runtime configuration.
            session_store: Session store shared by every gateway session.
            session_factory: Builds the gateway session for a relay wallet
                provider. Defaults to ``GatewaySession``.
        """
        self.config = config
        self.session_store = session_store
        self._session_factory = session_factory or (
            lambda wallet: GatewaySession(wallet, config, session_store)
        )

        self._state = ActivationState.DISCONNECTED
        self._connector: Optional[Connector] = None
        self._connection: Optional[DirectConnection] = None
        self._relay_wallet: Optional[RelayWalletProvider] = None
        self._gateway_session: Optional[GatewaySession] = None
        self._relay_provider: Optional[RelayRpcProvider] = None
        self._relay_account: Optional[str] = None
        self._last_relay_account: Optional[str] = None

    # =========================================================================
    # Exposed state
    # =========================================================================

    @property
    def state(self) -> ActivationState:
        return self._state

    @property
    def provider(self):
        """
        The provider to send transactions through.

        The direct wallet provider while no relay wallet provider is set,
        otherwise the relay provider bound to the gateway session. None when
        disconnected.
        """
        if self._relay_provider is not None:
            return self._relay_provider
        if self._connection is not None:
            return self._connection.provider
        return None

    @property
    def account(self) -> Optional[str]:
        """The relay contract account on the relay path, else the direct account."""
        if self._relay_wallet is not None:
            return self._relay_account
        return self.direct_account

    @property
    def direct_account(self) -> Optional[str]:
        return self._connection.account if self._connection else None

    @property
    def active(self) -> bool:
        """True while the direct provider is authoritative (no relay in place)."""
        return self._connection is not None and self._relay_wallet is None

    @property
    def chain_id(self) -> Optional[int]:
        return self._connection.chain_id if self._connection else None

    @property
    def relay_wallet(self) -> Optional[RelayWalletProvider]:
        return self._relay_wallet

    @property
    def gateway_session(self) -> Optional[GatewaySession]:
        return self._gateway_session

    # =========================================================================
    # Activation
    # =========================================================================

    async def activate(self, connector: Connector) -> ActivationState:
        """
        Connect ``connector`` and pick the direct or relay path.

        Args:
            connector: Wallet connector to activate.

        Returns:
            ActivationState: State after activation.

        Raises:
            WalletRejectedError: If the user refused the direct connection.
            Any error of a wallet-connect relay derivation; the direct
            connection stays active in that case.
        """
        await self._release_relay()

        self._state = ActivationState.CONNECTING
        try:
            connection = await connector.activate()
        except BaseException:
            self._state = ActivationState.DISCONNECTED
            raise
        self._connector = connector
        self._connection = connection
        self._state = ActivationState.DIRECT_ACTIVE

        if not self._relay_eligible(connector, connection.chain_id):
            logger.debug("Direct path on chain %s, relay not eligible", connection.chain_id)
            return self._state

        relay_wallet = await self._derive_relay_wallet(connector)
        if relay_wallet is None:
            return self._state

        await self._attach_relay_wallet(relay_wallet)
        return self._state

    def _relay_eligible(self, connector: Connector, chain_id: int) -> bool:
        # Wallets already on a relay chain keep the direct path
        return connector.supports_relay and not self.config.is_relay_chain(chain_id)

    async def _derive_relay_wallet(self, connector: Connector) -> Optional[RelayWalletProvider]:
        if isinstance(connector, WalletConnectConnector):
            return await WalletConnectWalletProvider.connect(connector.wallet_connect_provider)
        if isinstance(connector, InjectedConnector):
            return await InjectedWalletProvider.try_connect(connector.provider)
        return None

    async def _attach_relay_wallet(self, relay_wallet: RelayWalletProvider) -> None:
        session = self._session_factory(relay_wallet)
        self._relay_wallet = relay_wallet
        self._gateway_session = session
        self._relay_provider = RelayRpcProvider.from_config(self.config, session)
        self._state = ActivationState.RELAY_PENDING
        logger.info("Relay wallet provider set for %s", relay_wallet.address)
        await self.refresh_account()

    async def refresh_account(self) -> Optional[str]:
        """
        Compute the relay contract account (best effort).

        On failure the account stays unset and the state stays
        ``RELAY_PENDING``; calling again retries.

        Returns:
            The account address, or None.
        """
        if self._gateway_session is None:
            return None
        try:
            contract_account = await self._gateway_session.compute_contract_account(sync=True)
        except (httpx.HTTPError, RelayBridgeError, ValueError) as e:
            logger.warning("Relay account computation failed: %s", e)
            return None

        self._relay_account = contract_account.address
        self._last_relay_account = contract_account.address
        self._state = ActivationState.RELAY_ACTIVE
        return self._relay_account

    # =========================================================================
    # Deactivation
    # =========================================================================

    async def deactivate(self) -> None:
        """
        Disconnect the wallet and tear down any relay session.

        The stored gateway session is cleared for the last known relay
        account and for the relay signer, pending relayed submissions fail
        with ``RelaySessionClosedError``, and every field is reset.

        The relay teardown runs even if the connector fails to disconnect;
        that error is re-raised afterwards.
        """
        try:
            if self._connector is not None:
                await self._connector.deactivate()
        finally:
            if self._gateway_session is not None:
                if self._last_relay_account:
                    self.session_store.clear(self._last_relay_account)
                if self._relay_wallet is not None:
                    self.session_store.clear(self._relay_wallet.address)
            await self._release_relay()

            self._connector = None
            self._connection = None
            self._last_relay_account = None
            self._state = ActivationState.DISCONNECTED

    async def _release_relay(self) -> None:
        session = self._gateway_session
        self._relay_wallet = None
        self._gateway_session = None
        self._relay_provider = None
        self._relay_account = None
        if session is not None:
            await session.destroy()
