"""
relaybridge: relay transactions through a smart-account gateway and bridge
funds from Ethereum to BSC.

Typical wiring:

    config = load_config()
    selector = WalletActivationSelector(config, FileSessionStore(config.session_store_path))
    await selector.activate(InjectedConnector(browser_provider))

    async with BridgeApiClient.from_config(config) as client:
        pipeline = BridgeQuotePipeline(client, selector)
        await pipeline.quote("1")
        await pipeline.confirm()
"""

from .config import RelayConfig, load_config
from .engine import (
    NotificationStream,
    BatchSubmitter,
    RelayBridgeError,
    RelayError,
    BatchSubmissionError,
    TransactionFailedError,
    RelayTimeoutError,
    RelaySessionClosedError,
)
from .gateway import GatewaySession, HttpBatchGateway
from .providers import JsonRpcProvider, RelayRpcProvider
from .wallet import (
    FileSessionStore,
    MemorySessionStore,
    InjectedConnector,
    WalletConnectConnector,
    LocalAccountWalletProvider,
    ActivationState,
    WalletActivationSelector,
)
from .bridge import BridgeApiClient, BridgeStage, BridgeQuotePipeline

__all__ = [
    "RelayConfig",
    "load_config",
    "NotificationStream",
    "BatchSubmitter",
    "RelayBridgeError",
    "RelayError",
    "BatchSubmissionError",
    "TransactionFailedError",
    "RelayTimeoutError",
    "RelaySessionClosedError",
    "GatewaySession",
    "HttpBatchGateway",
    "JsonRpcProvider",
    "RelayRpcProvider",
    "FileSessionStore",
    "MemorySessionStore",
    "InjectedConnector",
    "WalletConnectConnector",
    "LocalAccountWalletProvider",
    "ActivationState",
    "WalletActivationSelector",
    "BridgeApiClient",
    "BridgeStage",
    "BridgeQuotePipeline",
]
