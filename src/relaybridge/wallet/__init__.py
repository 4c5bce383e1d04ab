from .storage import SessionStore, MemorySessionStore, FileSessionStore, session_key
from .connectors import (
    DirectConnection,
    Connector,
    InjectedConnector,
    WalletConnectConnector,
    NetworkConnector,
)
from .signers import (
    RelayWalletProvider,
    InjectedWalletProvider,
    WalletConnectWalletProvider,
    LocalAccountWalletProvider,
)
from .activation import ActivationState, WalletActivationSelector

__all__ = [
    "SessionStore",
    "MemorySessionStore",
    "FileSessionStore",
    "session_key",
    "DirectConnection",
    "Connector",
    "InjectedConnector",
    "WalletConnectConnector",
    "NetworkConnector",
    "RelayWalletProvider",
    "InjectedWalletProvider",
    "WalletConnectWalletProvider",
    "LocalAccountWalletProvider",
    "ActivationState",
    "WalletActivationSelector",
]
