"""
JSON-RPC provider primitives.

``JsonRpcProvider`` is web3's ``AsyncHTTPProvider`` with a plain
``send(method, params)`` call that returns the unwrapped ``result`` member,
which is the shape wallets and the bridge pipeline use to talk to a chain.
"""

import logging
from typing import Any, List, Optional, Protocol, runtime_checkable

from web3 import AsyncHTTPProvider

from ..engine.exceptions import RpcError

logger = logging.getLogger(__name__)


@runtime_checkable
class RpcProvider(Protocol):
    """Anything that answers JSON-RPC calls with their ``result``.

    Implemented by ``JsonRpcProvider`` and by wallet providers handed to the
    connectors (browser-injected or wallet-connect sessions).
    """

    async def send(self, method: str, params: Optional[List[Any]] = None) -> Any:
        ...


class JsonRpcProvider(AsyncHTTPProvider):
    """
    Async HTTP JSON-RPC provider with a ``send`` shortcut.

    Usable anywhere web3 expects an async provider, for example
    ``AsyncWeb3(JsonRpcProvider(url))``.
    """

    async def send(self, method: str, params: Optional[List[Any]] = None) -> Any:
        """
        Call ``method`` and return its result.

        Args:
            method: JSON-RPC method name (e.g. 'eth_chainId').
            params: Positional parameters.

        Returns:
            The ``result`` member of the reply.

        Raises:
            RpcError: If the reply carries an ``error`` member.
            httpx.HTTPError / aiohttp errors: Transport failures, unchanged.
        """
        response = await self.make_request(method, list(params or []))
        error = response.get("error")
        if error:
            if isinstance(error, dict):
                raise RpcError(error.get("message", "JSON-RPC error"), error.get("code"), method)
            raise RpcError(str(error), rpc_method=method)
        return response.get("result")
