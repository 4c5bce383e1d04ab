"""
Relay Wallet Providers

Signing adapters that authorise gateway sessions on behalf of the user's
wallet. They never sign chain transactions; the only thing they sign is the
gateway's authentication challenge.

Core Classes:
    - RelayWalletProvider: Abstract signer (address + message signing)
    - InjectedWalletProvider: Derived from a browser-injected wallet
    - WalletConnectWalletProvider: Derived from a wallet-connect session
    - LocalAccountWalletProvider: Backed by a locally held private key
"""

import logging
import os
from abc import ABC, abstractmethod
from typing import Optional

from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from ..engine.exceptions import RpcError, WalletError, WalletRejectedError
from .connectors import USER_REJECTED_CODE

logger = logging.getLogger(__name__)


class RelayWalletProvider(ABC):
    """Abstract Base Class for relay wallet providers."""

    @property
    @abstractmethod
    def address(self) -> str:
        """Checksummed address of the signer."""
        pass

    @abstractmethod
    async def sign_message(self, message: str) -> str:
        """
        Sign a plain-text message (EIP-191 personal message).

        Args:
            message: Text to sign.

        Returns:
            str: 0x-prefixed signature.

        Raises:
            WalletRejectedError: If the user declined to sign.
        """
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.address})"


class _RpcWalletProvider(RelayWalletProvider):
    """Signer that delegates to a wallet over JSON-RPC (``personal_sign``)."""

    def __init__(self, provider, address: str):
        self.provider = provider
        self._address = Web3.to_checksum_address(address)

    @property
    def address(self) -> str:
        return self._address

    async def sign_message(self, message: str) -> str:
        try:
            return await self.provider.send(
                "personal_sign", [Web3.to_hex(text=message), self._address]
            )
        except RpcError as e:
            if e.code == USER_REJECTED_CODE:
                raise WalletRejectedError("User rejected the signature request") from e
            raise

    @classmethod
    async def connect(cls, provider) -> "_RpcWalletProvider":
        """
        Derive a relay wallet provider from a connected wallet.

        Args:
            provider: ``RpcProvider`` of the wallet.

        Returns:
            A provider bound to the wallet's first account.

        Raises:
            WalletRejectedError: If the user declined account access.
            WalletError: If the wallet exposes no account.
        """
        try:
            accounts = await provider.send("eth_requestAccounts", [])
        except RpcError as e:
            if e.code == USER_REJECTED_CODE:
                raise WalletRejectedError("User rejected the account access request") from e
            raise
        if not accounts:
            raise WalletError("Wallet exposes no account")
        return cls(provider, accounts[0])


class InjectedWalletProvider(_RpcWalletProvider):
    """Relay wallet provider for a browser-injected wallet."""

    @classmethod
    async def try_connect(cls, provider) -> Optional["InjectedWalletProvider"]:
        """
        Like ``connect``, but a refused or failed derivation yields None.

        Injected wallets commonly pop a prompt the user may dismiss; that
        must not stop the direct connection from being used.
        """
        try:
            return await cls.connect(provider)
        except (WalletError, RpcError) as e:
            logger.info("Injected relay wallet not derived: %s", e)
            return None


class WalletConnectWalletProvider(_RpcWalletProvider):
    """Relay wallet provider for a wallet-connect session. Errors propagate."""


class LocalAccountWalletProvider(RelayWalletProvider):
    """
    Relay wallet provider backed by a private key held in process.

    Intended for headless use (scripts, services, tests).

    Example:
        # In your .env file:
        # RELAY_SIGNER_PRIVATE_KEY="0x1234..."

        signer = LocalAccountWalletProvider.from_env()
    """

    def __init__(self, private_key: str):
        self._account = Account.from_key(private_key)

    @classmethod
    def from_env(cls, variable: str = "RELAY_SIGNER_PRIVATE_KEY") -> "LocalAccountWalletProvider":
        """
        Build a signer from a private key in the environment.

        Raises:
            WalletError: If the variable is not set.
        """
        private_key = os.getenv(variable)
        if not private_key:
            raise WalletError(f"{variable} is not set")
        return cls(private_key)

    @property
    def address(self) -> str:
        return self._account.address

    async def sign_message(self, message: str) -> str:
        signed = self._account.sign_message(encode_defunct(text=message))
        return Web3.to_hex(signed.signature)
