"""
Bridge REST client.

Thin client over the third-party bridge API. Every response is wrapped in a
``{"code", "message", "data"}`` envelope; a response without ``data`` is an
error carrying the service's message.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx

from ..engine.exceptions import BridgeApiError
from ..schemas.https import (
    BridgeApiEnvelope,
    BridgeEligibility,
    BridgeToken,
    DepositInfo,
    DepositIntentRequest,
)
from .constants import BRIDGE_API_URL, BRIDGE_SOURCE_ID, BSC_NETWORK, ETH_NETWORK

logger = logging.getLogger(__name__)


class BridgeApiClient(httpx.AsyncClient):
    """
    httpx.AsyncClient bound to the bridge API.

    Fully compatible with httpx.AsyncClient and usable as an async context
    manager.

    Usage:
        ```python
        async with BridgeApiClient() as client:
            info = await client.get_token_bridge_info("ETH", account)
        ```
    """

    def __init__(self, base_url: str = BRIDGE_API_URL, **kwargs):
        """
        Args:
            base_url: Bridge API root.
            **kwargs: All standard httpx.AsyncClient arguments.
        """
        super().__init__(base_url=base_url.rstrip("/"), **kwargs)

    @classmethod
    def from_config(cls, config, **kwargs) -> "BridgeApiClient":
        return cls(config.bridge_api_url, timeout=config.request_timeout, **kwargs)

    # =========================================================================
    # Endpoints
    # =========================================================================

    async def list_available_tokens(self) -> List[BridgeToken]:
        """
        List the tokens that can be bridged from Ethereum.

        Returns:
            List[BridgeToken]: Available tokens.

        Raises:
            BridgeApiError: If the service returned no data.
            httpx.HTTPError: Transport failures, unchanged.
        """
        response = await self.get("/v2/tokens", params={"walletNetwork": ETH_NETWORK})
        data = self._validate(response)
        tokens = data.get("tokens", []) if isinstance(data, dict) else data
        return [BridgeToken.model_validate(token) for token in tokens or []]

    async def get_token_bridge_info(self, symbol: str, account: Optional[str]) -> BridgeEligibility:
        """
        Fetch the limits and availability for bridging ``symbol`` to ``account``.

        The token list, the token's networks and the account's 24h quota are
        fetched concurrently. The maximum is the smaller of the remaining
        quota and the token's per-transfer maximum.

        Args:
            symbol: Bridge token symbol.
            account: Destination account the quota applies to.

        Returns:
            BridgeEligibility: Min/max amounts and whether deposits are enabled.
        """
        tokens, networks_response, quota_response = await asyncio.gather(
            self.list_available_tokens(),
            self.get(f"/v2/tokens/{symbol}/networks"),
            self.get(
                "/v1/swaps/quota/24hour",
                params={"symbol": symbol, "walletAddress": account or ""},
            ),
        )
        networks_response.raise_for_status()
        quota_response.raise_for_status()

        networks = self._payload(networks_response).get("networks") or []
        quota = self._payload(quota_response)

        token = next((t for t in tokens if t.symbol == symbol), None)
        network = next((n for n in networks if n.get("name") == ETH_NETWORK), None)

        token_max = (token.max_amount if token else None) or 0
        left = quota.get("left")
        max_amount = min(float(left) if left is not None else token_max, token_max)

        return BridgeEligibility(
            min_amount=token.min_amount if token else None,
            max_amount=max_amount,
            bridge_enabled=bool(network.get("depositEnabled")) if network else False,
        )

    async def register_deposit_intent(
        self,
        symbol: str,
        amount: str,
        from_address: Optional[str],
        to_address: str,
    ) -> DepositInfo:
        """
        Register a deposit from Ethereum to BSC.

        Args:
            symbol: Bridge token symbol.
            amount: Amount as entered by the user.
            from_address: Ethereum address the funds are sent from.
            to_address: BSC address credited with the funds.

        Returns:
            DepositInfo: Deposit address and swap fee.
        """
        request = DepositIntentRequest(
            amount=amount,
            from_network=ETH_NETWORK,
            source=BRIDGE_SOURCE_ID,
            symbol=symbol,
            to_address=to_address,
            to_network=BSC_NETWORK,
            wallet_address=from_address or "",
            wallet_network=ETH_NETWORK,
        )
        response = await self.post("/v2/swaps", json=request.model_dump(by_alias=True))
        return DepositInfo.model_validate(self._validate(response))

    async def get_deposit(self, deposit_id: str) -> DepositInfo:
        """Fetch a registered deposit, including its current status."""
        response = await self.get(f"/v2/swaps/{deposit_id}")
        return DepositInfo.model_validate(self._validate(response))

    # =========================================================================
    # Utility Methods
    # =========================================================================

    @staticmethod
    def _validate(response: httpx.Response) -> Any:
        response.raise_for_status()
        try:
            envelope = BridgeApiEnvelope.model_validate(response.json())
        except ValueError as e:
            raise BridgeApiError("Unable to get from bridge API") from e
        if not envelope.data:
            logger.warning("Bridge API returned no data: %s", envelope.message)
            raise BridgeApiError(envelope.message or "Unable to get from bridge API")
        return envelope.data

    @staticmethod
    def _payload(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        data = body.get("data") if isinstance(body, dict) else None
        return data if isinstance(data, dict) else {}
