"""
Notification Transport Test Suite

Tests for the server-sent events transport:
- SSE line grouping and event parsing
- live connection opened on first subscription, events republished
- malformed events skipped, stream failures logged
- reconnect while subscribed, stream closed after repeated failures
"""

import asyncio
import json

import httpx
import pytest

from relaybridge.engine.events import NotificationStream
from relaybridge.gateway.notifications import (
    SseNotificationTransport,
    iter_event_data,
    parse_event,
)
from relaybridge.gateway.session import GatewaySession
from relaybridge.schemas.bases import NotificationType, WalletSession
from relaybridge.wallet.signers import LocalAccountWalletProvider

from conftest import MOCK_BATCH_HASH, MOCK_PRIVATE_KEY, MOCK_SIGNER_ADDRESS


def sse_body(*payloads) -> bytes:
    chunks = []
    for payload in payloads:
        data = payload if isinstance(payload, str) else json.dumps(payload)
        chunks.append(f"data: {data}\n\n")
    return "".join(chunks).encode()


async def wait_for(predicate, attempts: int = 100) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0.01)
    raise AssertionError("condition not reached")


# ========================================================================
# Test Fixtures
# ========================================================================

@pytest.fixture
def restored_store(store):
    store.save(MOCK_SIGNER_ADDRESS, WalletSession(token="tok-new", account=MOCK_SIGNER_ADDRESS))
    return store


def make_session(handler, config, store) -> GatewaySession:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GatewaySession(LocalAccountWalletProvider(MOCK_PRIVATE_KEY), config, store, http_client=client)


# ========================================================================
# Test Classes
# ========================================================================

class TestEventParsing:
    """Test SSE framing and payload parsing."""

    def test_groups_data_lines_by_blank_line(self):
        lines = [": keep-alive", "event: message", "data: {\"a\":", "data: 1}", "", "data: x", ""]
        assert list(iter_event_data(lines)) == ["{\"a\":\n1}", "x"]

    def test_trailing_event_without_blank_line(self):
        assert list(iter_event_data(["data:tail"])) == ["tail"]

    def test_parse_batch_update(self):
        event = parse_event(json.dumps({"type": "GatewayBatchUpdated", "batchHash": MOCK_BATCH_HASH}))
        assert event.type is NotificationType.GATEWAY_BATCH_UPDATED
        assert event.batch_hash == MOCK_BATCH_HASH

    def test_unknown_type_is_kept_as_unknown(self):
        """Test that new notification types do not break parsing."""
        assert parse_event('{"type": "SomethingNew"}').type is NotificationType.UNKNOWN

    @pytest.mark.parametrize("data", ["not json", "[1, 2]", '{"batchHash": "0x1"}'])
    def test_malformed_payload_is_skipped(self, data, caplog):
        """Test that malformed payloads yield None and a warning."""
        assert parse_event(data) is None
        assert "malformed notification" in caplog.text


class TestLiveConnection:
    """Test the transport against a streamed gateway response."""

    @pytest.mark.asyncio
    async def test_first_subscription_opens_stream_and_publishes(self, config, restored_store):
        """Test that events flow from GET /notifications to subscribers."""
        requests = []

        def handler(request):
            requests.append(request)
            assert request.url.path == "/mainnets/bsc/notifications"
            assert request.headers["Authorization"] == "Bearer tok-new"
            return httpx.Response(200, content=sse_body(
                {"type": "GatewayBatchUpdated", "batchHash": MOCK_BATCH_HASH},
                "garbage",
                {"type": "AccountUpdated"},
            ))

        session = make_session(handler, config, restored_store)
        received = []

        async def on_event(event):
            received.append(event)

        session.notifications.subscribe(on_event)
        await wait_for(lambda: len(received) == 2)

        assert [e.type for e in received] == [
            NotificationType.GATEWAY_BATCH_UPDATED,
            NotificationType.ACCOUNT_UPDATED,
        ]
        assert received[0].batch_hash == MOCK_BATCH_HASH
        assert len(requests) == 1
        await session.destroy()

    @pytest.mark.asyncio
    async def test_second_subscription_reuses_connection(self, config, restored_store):
        """Test that only the first subscriber opens the live connection."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, content=b"")

        session = make_session(handler, config, restored_store)

        async def on_event(event):
            pass

        session.notifications.subscribe(on_event)
        session.notifications.subscribe(on_event)
        await wait_for(lambda: len(requests) == 1)
        await asyncio.sleep(0.02)

        assert len(requests) == 1
        await session.destroy()

    @pytest.mark.asyncio
    async def test_stream_failure_is_logged(self, config, restored_store, caplog):
        """Test that an HTTP error on the stream is logged, not raised."""
        session = make_session(lambda request: httpx.Response(500), config, restored_store)
        transport = SseNotificationTransport(session, session.notifications)

        transport.start()
        await wait_for(lambda: not transport.running)

        assert "notification stream failed" in caplog.text
        await session.destroy()

    @pytest.mark.asyncio
    async def test_stop_without_start_is_noop(self, config, restored_store):
        session = make_session(lambda request: httpx.Response(200), config, restored_store)
        transport = SseNotificationTransport(session, session.notifications)
        await transport.stop()
        assert not transport.running


class TestReconnect:
    """Test the transport once the live connection drops."""

    @pytest.mark.asyncio
    async def test_repeated_failures_close_stream_and_release_subscribers(self, config, restored_store, caplog):
        """Test that a dead connection fails pending waiters instead of leaving them hanging."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(503)

        session = make_session(handler, config, restored_store)
        stream = NotificationStream()
        released = []

        async def on_event(event):
            pass

        stream.subscribe(on_event, on_close=lambda: released.append(1))
        transport = SseNotificationTransport(session, stream, reconnect_attempts=2, reconnect_delay=0)
        transport.start()
        await wait_for(lambda: stream.closed)

        assert released == [1]
        assert len(requests) == 2
        assert "notification stream lost" in caplog.text
        await wait_for(lambda: not transport.running)
        await session.destroy()

    @pytest.mark.asyncio
    async def test_reconnect_publishes_batch_update_without_hash(self, config, restored_store):
        """Test that subscribers are told to re-read status after the connection is reopened."""
        requests = []

        def handler(request):
            requests.append(request)
            if len(requests) == 2:
                return httpx.Response(200, content=sse_body(
                    {"type": "GatewayBatchUpdated", "batchHash": MOCK_BATCH_HASH},
                ))
            return httpx.Response(200, content=b"")

        session = make_session(handler, config, restored_store)
        stream = NotificationStream()
        received = []

        async def on_event(event):
            received.append(event)

        stream.subscribe(on_event)
        transport = SseNotificationTransport(session, stream, reconnect_delay=0)
        transport.start()
        await wait_for(lambda: len(received) >= 2)
        await transport.stop()

        assert received[0].type is NotificationType.GATEWAY_BATCH_UPDATED
        assert received[0].batch_hash is None
        assert received[1].batch_hash == MOCK_BATCH_HASH
        assert not stream.closed
        await session.destroy()

    @pytest.mark.asyncio
    async def test_no_reconnect_without_subscribers(self, config, restored_store):
        """Test that an ended connection is not reopened once nobody listens."""
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, content=b"")

        session = make_session(handler, config, restored_store)
        transport = SseNotificationTransport(session, NotificationStream(), reconnect_delay=0)
        transport.start()
        await wait_for(lambda: not transport.running)

        assert len(requests) == 1
        await session.destroy()
