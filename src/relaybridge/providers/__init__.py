from .rpc import RpcProvider, JsonRpcProvider
from .relay import RelayRpcProvider

__all__ = [
    "RpcProvider",
    "JsonRpcProvider",
    "RelayRpcProvider",
]
