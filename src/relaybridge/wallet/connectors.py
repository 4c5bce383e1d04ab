"""
Direct wallet connectors.

A connector binds the application to the user's wallet over an RPC provider
(a browser-injected provider, a wallet-connect session, or a plain network
node) and reports the connected chain and account. Connectors that can
also back a relay wallet provider set ``supports_relay``.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Optional

from ..engine.exceptions import RpcError, WalletRejectedError

logger = logging.getLogger(__name__)

#: EIP-1193 "User Rejected Request" error code.
USER_REJECTED_CODE = 4001


@dataclass
class DirectConnection:
    """Result of activating a connector."""
    provider: Any
    chain_id: int
    account: Optional[str] = None


def parse_chain_id(value: Any) -> int:
    """Parse an ``eth_chainId`` result (hex string or int)."""
    if isinstance(value, int):
        return value
    text = str(value)
    return int(text, 16) if text.lower().startswith("0x") else int(text)


class Connector(ABC):
    """Abstract Base Class for wallet connectors."""

    #: Whether a relay wallet provider can be derived from this connector.
    supports_relay: bool = False

    def __init__(self, provider) -> None:
        """
        Args:
            provider: ``RpcProvider`` the wallet answers on.
        """
        self.provider = provider
        self.connection: Optional[DirectConnection] = None

    @abstractmethod
    async def activate(self) -> DirectConnection:
        """Connect to the wallet and report the chain and account."""
        pass

    async def deactivate(self) -> None:
        """Forget the connection. The wallet itself is left untouched."""
        self.connection = None


class _RequestAccountsConnector(Connector):
    """Connector for wallets that grant access through ``eth_requestAccounts``."""

    supports_relay = True

    async def activate(self) -> DirectConnection:
        """
        Request account access and read the chain id.

        Raises:
            WalletRejectedError: If the user declined the access request.
            RpcError: For any other wallet error.
        """
        try:
            accounts = await self.provider.send("eth_requestAccounts", [])
        except RpcError as e:
            if e.code == USER_REJECTED_CODE:
                raise WalletRejectedError("User rejected the account access request") from e
            raise
        chain_id = parse_chain_id(await self.provider.send("eth_chainId", []))

        account = accounts[0] if accounts else None
        self.connection = DirectConnection(provider=self.provider, chain_id=chain_id, account=account)
        logger.debug("%s connected %s on chain %d", type(self).__name__, account, chain_id)
        return self.connection


class InjectedConnector(_RequestAccountsConnector):
    """Connector for a browser-injected (EIP-1193) wallet provider."""


class WalletConnectConnector(_RequestAccountsConnector):
    """Connector for a wallet reached over a wallet-connect session."""

    @property
    def wallet_connect_provider(self):
        """The underlying wallet-connect session provider."""
        return self.provider


class NetworkConnector(Connector):
    """Read-only connector for a plain network node. Never relayed."""

    def __init__(self, provider, account: Optional[str] = None) -> None:
        super().__init__(provider)
        self.account = account

    async def activate(self) -> DirectConnection:
        chain_id = parse_chain_id(await self.provider.send("eth_chainId", []))
        self.connection = DirectConnection(provider=self.provider, chain_id=chain_id, account=self.account)
        return self.connection
