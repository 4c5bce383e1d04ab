"""
Batch submission engine.

Drives one transaction intent through the gateway batch lifecycle and
resolves its terminal outcome from the notification stream:

    clear -> add -> estimate -> submit -> subscribe -> (fetch status per event)

The outcome is held in a single future that is settled at most once; the
notification subscription is released exactly once, whether the batch
resolves, fails, times out or the stream is closed underneath it.
"""

import asyncio
import logging
from typing import Optional

import httpx

from ..schemas.bases import NotificationEvent, NotificationType, TransactionIntent
from .events import NotificationStream
from .exceptions import (
    BatchSubmissionError,
    GatewayError,
    RelaySessionClosedError,
    RelayTimeoutError,
    TransactionFailedError,
)

logger = logging.getLogger(__name__)


class BatchSubmitter:
    """Runs the batch submission protocol against one gateway session.

    Only one batch can be built at a time per gateway session, so
    submissions through the same submitter are serialised with a lock.
    """

    def __init__(
        self,
        gateway,
        notifications: NotificationStream,
        timeout: Optional[float] = 300.0,
        abort_on_estimate_failure: bool = False,
    ) -> None:
        """
        Initialize the submitter.

        Args:
            gateway: ``BatchGateway`` that builds, submits and reports batches.
            notifications: Stream delivering gateway state-change events.
            timeout: Seconds to wait for a terminal event after submission.
                ``None`` waits forever.
            abort_on_estimate_failure: Re-raise estimate failures instead of
                logging them and submitting anyway.
        """
        self.gateway = gateway
        self.notifications = notifications
        self.timeout = timeout
        self.abort_on_estimate_failure = abort_on_estimate_failure
        self._lock = asyncio.Lock()

    async def submit(self, intent: TransactionIntent) -> str:
        """
        Execute one intent through the gateway and wait for its outcome.

        Args:
            intent: The transaction to execute.

        Returns:
            The final on-chain transaction hash.

        Raises:
            BatchSubmissionError: If the gateway returned no batch hash.
            TransactionFailedError: If the batch reached a failure state.
            RelayTimeoutError: If no terminal event arrived in time.
            RelaySessionClosedError: If the stream closed while waiting.
            httpx.HTTPError: Transport failures, unchanged.
        """
        async with self._lock:
            batch_hash = await self._build_and_submit(intent)
            return await self._wait_for_outcome(batch_hash)

    async def _build_and_submit(self, intent: TransactionIntent) -> str:
        self.gateway.clear_batch()
        await self.gateway.add_transaction(intent)

        try:
            estimation = await self.gateway.estimate_batch()
            logger.info("Batch estimated: %s", estimation.to_canonical_json())
        except (httpx.HTTPError, GatewayError) as e:
            if self.abort_on_estimate_failure:
                raise
            logger.warning("Batch estimation failed, submitting anyway: %s", e)

        submission = await self.gateway.submit_batch()
        batch_hash = submission.batch_hash if submission else None
        if not batch_hash:
            raise BatchSubmissionError("failed to send")

        logger.info("Batch submitted: %s", batch_hash)
        return batch_hash

    async def _wait_for_outcome(self, batch_hash: str) -> str:
        loop = asyncio.get_running_loop()
        outcome: asyncio.Future = loop.create_future()

        def settle(result: Optional[str] = None, error: Optional[BaseException] = None) -> bool:
            # First terminal observation wins, later ones are ignored
            if outcome.done():
                return False
            if error is not None:
                outcome.set_exception(error)
            else:
                outcome.set_result(result)
            return True

        async def check_status() -> None:
            try:
                submitted = await self.gateway.get_submitted_batch(batch_hash)
            except Exception as e:
                settle(error=e)
                return

            state = submitted.transaction_state
            if state is not None and state.is_failure():
                if settle(error=TransactionFailedError(state, batch_hash)):
                    logger.warning("Batch %s failed with state %s", batch_hash, state.value)
            elif submitted.transaction_hash is not None:
                if settle(result=submitted.transaction_hash):
                    logger.info("Batch %s confirmed as %s", batch_hash, submitted.transaction_hash)

        async def on_notification(event: NotificationEvent) -> None:
            if event.type != NotificationType.GATEWAY_BATCH_UPDATED or outcome.done():
                return
            if event.batch_hash and event.batch_hash != batch_hash:
                return
            await check_status()

        def on_close() -> None:
            settle(error=RelaySessionClosedError(batch_hash))

        if self.notifications.closed:
            raise RelaySessionClosedError(batch_hash)
        subscription = self.notifications.subscribe(on_notification, on_close=on_close)
        try:
            # The batch may have settled before the subscription existed
            await check_status()
            if self.timeout is None:
                return await outcome
            try:
                return await asyncio.wait_for(outcome, timeout=self.timeout)
            except asyncio.TimeoutError:
                raise RelayTimeoutError(batch_hash, self.timeout) from None
        finally:
            self.notifications.unsubscribe(subscription)
