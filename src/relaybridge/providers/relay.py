"""
Transaction Relay Provider

A drop-in JSON-RPC provider that executes ``eth_sendTransaction`` through the
relay gateway instead of the chain node. Every other method is forwarded to
the configured network URL unchanged, so callers cannot tell the two paths
apart: ``send("eth_sendTransaction", [tx])`` returns the final on-chain
transaction hash either way.
"""

import itertools
import logging
from typing import Any, Optional

from ..engine.exceptions import RpcError
from ..engine.executors import BatchSubmitter
from ..schemas.bases import TransactionIntent
from .rpc import JsonRpcProvider

logger = logging.getLogger(__name__)

SEND_TRANSACTION = "eth_sendTransaction"

#: JSON-RPC "invalid params" code.
INVALID_PARAMS = -32602


class RelayRpcProvider(JsonRpcProvider):
    """
    JSON-RPC provider that relays transactions through a gateway session.

    Attributes:
        gateway_session: ``GatewaySession`` the batches are submitted on.
        submitter: ``BatchSubmitter`` running the submission protocol.

    Usage:
        ```python
        provider = RelayRpcProvider(config.network_url, session,
                                    timeout=config.submission_timeout)
        tx_hash = await provider.send("eth_sendTransaction", [{"to": ..., "value": "0x1"}])
        ```
    """

    def __init__(
        self,
        endpoint_uri: str,
        gateway_session,
        timeout: Optional[float] = 300.0,
        abort_on_estimate_failure: bool = False,
        **kwargs,
    ):
        """
        Initialize the provider.

        Args:
            endpoint_uri: Network URL non-transaction calls are forwarded to.
            gateway_session: Authenticated ``GatewaySession``.
            timeout: Seconds to wait for a relayed batch, ``None`` for no limit.
            abort_on_estimate_failure: Abort when the batch cannot be estimated.
            **kwargs: Extra ``AsyncHTTPProvider`` arguments.
        """
        super().__init__(endpoint_uri, **kwargs)
        self.gateway_session = gateway_session
        self.submitter = BatchSubmitter(
            gateway_session.batch,
            gateway_session.notifications,
            timeout=timeout,
            abort_on_estimate_failure=abort_on_estimate_failure,
        )
        self._relay_ids = itertools.count(1)

    @classmethod
    def from_config(cls, config, gateway_session, **kwargs) -> "RelayRpcProvider":
        """Build a provider for ``config.network_url`` using the configured policies."""
        return cls(
            config.network_url,
            gateway_session,
            timeout=config.submission_timeout,
            abort_on_estimate_failure=config.abort_on_estimate_failure,
            **kwargs,
        )

    async def make_request(self, method, params: Any):
        """
        Execute one JSON-RPC request.

        ``eth_sendTransaction`` runs the batch submission protocol and answers
        with the final transaction hash as ``result``. Relay failures
        (``RelayError`` subclasses) and transport errors are raised unchanged.
        """
        if method != SEND_TRANSACTION:
            return await super().make_request(method, params)

        if not params or not isinstance(params[0], dict):
            raise RpcError("eth_sendTransaction requires a transaction object", INVALID_PARAMS, method)

        intent = TransactionIntent.model_validate(params[0])
        logger.debug("Relaying transaction to %s", intent.to)
        tx_hash = await self.submitter.submit(intent)
        return {"jsonrpc": "2.0", "id": next(self._relay_ids), "result": tx_hash}

    def __repr__(self) -> str:
        return f"RelayRpcProvider({self.endpoint_uri!r}, signer={self.gateway_session.signer_address!r})"
