"""
Abstract Base Class for the relay gateway batch client.

Defines the operations the batch submission engine consumes from a relay
gateway. A gateway builds at most one pending batch at a time; callers clear
it, add the transaction, optionally estimate, submit and then query the
submitted batch while waiting for notifications.

Core Classes:
    - BatchGateway: Batch building, submission and status queries
"""

from abc import ABC, abstractmethod

from ..schemas.bases import (
    BatchEstimation,
    SubmittedBatch,
    TransactionIntent,
)


class BatchGateway(ABC):
    """
    Abstract Base Class for gateway batch clients.

    Key Responsibilities:
    1. clear_batch: Drop whatever is pending in the local batch
    2. add_transaction: Append a transaction to the pending batch
    3. estimate_batch: Ask the gateway for a fee/gas projection
    4. submit_batch: Hand the pending batch to the gateway
    5. get_submitted_batch: Query the outcome of a submitted batch

    Example Implementation:
        class HttpBatchGateway(BatchGateway):
            # REST implementation against the relay gateway
            pass
    """

    @abstractmethod
    def clear_batch(self) -> None:
        """Discard the pending batch."""
        pass

    @abstractmethod
    async def add_transaction(self, intent: TransactionIntent) -> None:
        """
        Append a transaction to the pending batch.

        Args:
            intent: Transaction to execute from the contract account.
        """
        pass

    @abstractmethod
    async def estimate_batch(self) -> BatchEstimation:
        """
        Estimate the pending batch.

        Returns:
            BatchEstimation: Gas and fee projection.

        Raises:
            BatchSubmissionError: If nothing is pending.
        """
        pass

    @abstractmethod
    async def submit_batch(self) -> SubmittedBatch:
        """
        Submit the pending batch.

        Returns:
            SubmittedBatch: The accepted batch. ``batch_hash`` is empty if the
            gateway did not assign one.

        Raises:
            BatchSubmissionError: If nothing is pending.
        """
        pass

    @abstractmethod
    async def get_submitted_batch(self, batch_hash: str) -> SubmittedBatch:
        """
        Fetch the current outcome of a submitted batch.

        Args:
            batch_hash: Hash returned by ``submit_batch``.

        Returns:
            SubmittedBatch: Latest state and, once known, transaction hash.
        """
        pass
