"""
REST implementation of the relay gateway batch client.

The pending batch lives on the client side until it is estimated or
submitted; both calls send the full list of transactions to the gateway on
behalf of the session's contract account.
"""

import logging
from typing import Any, Dict, List

import httpx

from ..engine.exceptions import BatchSubmissionError, GatewayResponseError
from ..schemas.bases import (
    BatchEstimation,
    SubmittedBatch,
    TransactionIntent,
)
from .bases import BatchGateway
from .constants import BATCH_ESTIMATE_PATH, BATCH_STATUS_PATH, BATCH_SUBMIT_PATH

logger = logging.getLogger(__name__)


class HttpBatchGateway(BatchGateway):
    """Batch client bound to one authenticated ``GatewaySession``."""

    def __init__(self, session) -> None:
        """
        Args:
            session: ``GatewaySession`` providing authenticated requests and
                the contract account address.
        """
        self._session = session
        self._transactions: List[Dict[str, str]] = []

    @property
    def pending(self) -> List[Dict[str, str]]:
        """Copy of the transactions in the pending batch."""
        return list(self._transactions)

    def clear_batch(self) -> None:
        self._transactions.clear()

    async def add_transaction(self, intent: TransactionIntent) -> None:
        # The contract account is the sender, so ``from`` is not forwarded
        self._transactions.append({
            "to": intent.to,
            "value": intent.value or "0x0",
            "data": intent.data or "0x",
        })

    async def estimate_batch(self) -> BatchEstimation:
        payload = await self._post_batch(BATCH_ESTIMATE_PATH)
        return BatchEstimation.model_validate(payload)

    async def submit_batch(self) -> SubmittedBatch:
        payload = await self._post_batch(BATCH_SUBMIT_PATH)
        self.clear_batch()
        return self._parse_submitted(payload)

    async def get_submitted_batch(self, batch_hash: str) -> SubmittedBatch:
        response = await self._session.request(
            "GET", BATCH_STATUS_PATH.format(batch_hash=batch_hash)
        )
        return self._parse_submitted(read_json(response))

    async def _post_batch(self, path: str) -> Dict[str, Any]:
        if not self._transactions:
            raise BatchSubmissionError("Gateway batch is empty")

        body = {
            "account": await self._session.get_account_address(),
            "transactions": list(self._transactions),
        }
        response = await self._session.request("POST", path, json=body)
        return read_json(response)

    @staticmethod
    def _parse_submitted(payload: Dict[str, Any]) -> SubmittedBatch:
        """Flatten ``{"hash", "transaction": {"state", "hash"}}`` into a ``SubmittedBatch``."""
        transaction = payload.get("transaction") or {}
        return SubmittedBatch.model_validate({
            "hash": payload.get("hash") or "",
            "transactionState": transaction.get("state", payload.get("transactionState")),
            "transactionHash": transaction.get("hash", payload.get("transactionHash")),
        })


def read_json(response: httpx.Response) -> Dict[str, Any]:
    """Decode a gateway response body, which must be a JSON object."""
    try:
        payload = response.json()
    except ValueError as e:
        raise GatewayResponseError("Gateway returned a non-JSON body", response.status_code) from e
    if not isinstance(payload, dict):
        raise GatewayResponseError(
            f"Unexpected gateway payload: {type(payload).__name__}", response.status_code
        )
    return payload
