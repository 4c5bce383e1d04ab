"""
Ethereum to BSC bridge: REST client and the quote/confirm pipeline.
"""

from .client import BridgeApiClient
from .pipeline import BridgeStage, BridgeQuotePipeline

__all__ = [
    "BridgeApiClient",
    "BridgeStage",
    "BridgeQuotePipeline",
]
