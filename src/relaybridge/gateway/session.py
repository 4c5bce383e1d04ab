"""
Gateway Session

The context object for one relay signer: it authenticates against the relay
gateway, persists the resulting ``WalletSession`` through a ``SessionStore``,
and owns the batch client and the notification stream used by the relay
provider.

Authentication flow:
    1. Restore the stored session for the signer address, if any
    2. Otherwise POST /auth/challenge, sign the challenge with the relay
       wallet provider and POST /auth/session
    3. Persist the issued session under the signer address

A restored session the gateway rejects with 401 is renewed once and the
stored copy is overwritten.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

import httpx

from ..config import RelayConfig
from ..engine.events import NotificationStream
from ..engine.exceptions import (
    GatewayAuthenticationError,
    GatewayError,
    GatewayResponseError,
)
from ..schemas.bases import ContractAccount, WalletSession
from .client import HttpBatchGateway, read_json
from .constants import (
    AUTH_CHALLENGE_PATH,
    AUTH_SESSION_PATH,
    AUTHORIZATION_SCHEME,
    COMPUTE_ACCOUNT_PATH,
    gateway_root_url,
)
from .notifications import SseNotificationTransport

logger = logging.getLogger(__name__)


class GatewaySession:
    """
    Authenticated connection to the relay gateway for one relay signer.

    Attributes:
        wallet_provider: Relay wallet provider that signs gateway challenges.
        config: Runtime configuration.
        session_store: Store the ``WalletSession`` is persisted in.
        batch: Batch client bound to this session.
        notifications: Stream of gateway notifications for this session.

    Usage:
        ```python
        session = GatewaySession(wallet_provider, config, store)
        account = await session.compute_contract_account(sync=True)
        ...
        await session.destroy()
        ```
    """

    def __init__(
        self,
        wallet_provider,
        config: RelayConfig,
        session_store,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the session. No network call is made until first use.

        Args:
            wallet_provider: ``RelayWalletProvider`` for the signer.
            config: Runtime configuration (gateway URL, network, timeouts).
            session_store: ``SessionStore`` used to restore and persist sessions.
            http_client: Optional client to use instead of an owned one. A
                client passed in is not closed by ``destroy``.
        """
        self.wallet_provider = wallet_provider
        self.config = config
        self.session_store = session_store
        self.root_url = gateway_root_url(config)

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=config.request_timeout)
        self._wallet_session: Optional[WalletSession] = None
        self._restored = False
        self._destroyed = False
        self._account: Optional[ContractAccount] = None

        self.batch = HttpBatchGateway(self)
        self.notifications = NotificationStream()
        self._transport = SseNotificationTransport(self, self.notifications)
        self.notifications.on_first_subscribe(self._transport.start)

    # =========================================================================
    # State
    # =========================================================================

    @property
    def signer_address(self) -> str:
        return self.wallet_provider.address

    @property
    def wallet_session(self) -> Optional[WalletSession]:
        return self._wallet_session

    @property
    def contract_account(self) -> Optional[ContractAccount]:
        return self._account

    @property
    def destroyed(self) -> bool:
        return self._destroyed

    # =========================================================================
    # Authentication
    # =========================================================================

    async def connect(self) -> WalletSession:
        """
        Make sure an authenticated session exists.

        Returns:
            WalletSession: The restored or newly issued session.

        Raises:
            GatewayError: If the session was destroyed.
            GatewayAuthenticationError: If the gateway refused authentication.
            httpx.HTTPError: Transport failures, unchanged.
        """
        self._ensure_alive()
        if self._wallet_session is not None:
            return self._wallet_session

        stored = self.session_store.load(self.signer_address)
        if stored is not None and not stored.is_expired():
            logger.debug("Restored gateway session for %s", self.signer_address)
            self._wallet_session = stored
            self._restored = True
            return stored

        return await self._authenticate()

    async def _authenticate(self) -> WalletSession:
        address = self.signer_address

        response = await self._client.post(
            self._url(AUTH_CHALLENGE_PATH), json={"account": address}
        )
        response.raise_for_status()
        message = read_json(response).get("message")
        if not message:
            raise GatewayResponseError("Gateway challenge has no message", response.status_code)

        signature = await self.wallet_provider.sign_message(message)

        response = await self._client.post(
            self._url(AUTH_SESSION_PATH),
            json={"account": address, "message": message, "signature": signature},
        )
        if response.status_code in (401, 403):
            raise GatewayAuthenticationError(f"Gateway refused session for {address}")
        response.raise_for_status()

        payload = read_json(response)
        token = payload.pop("token", None)
        if not token:
            raise GatewayAuthenticationError("Gateway issued no session token")
        expires_at = payload.pop("expiresAt", None)

        session = WalletSession(
            token=token,
            account=address,
            expires_at=expires_at,
            data=payload,
        )
        self.session_store.save(address, session)
        self._wallet_session = session
        self._restored = False
        logger.info("Authenticated gateway session for %s", address)
        return session

    # =========================================================================
    # Requests
    # =========================================================================

    async def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """
        Send an authenticated request to the gateway.

        Args:
            method: HTTP method.
            path: Path relative to the gateway network root.
            **kwargs: Extra ``httpx`` request arguments.

        Returns:
            httpx.Response: A successful response.

        Raises:
            GatewayAuthenticationError: If the request is still unauthorized
                after renewing the session.
            httpx.HTTPStatusError: For any other error status.
        """
        await self.connect()
        response = await self._send(method, path, **kwargs)

        if response.status_code == 401 and self._restored:
            logger.info("Stored gateway session for %s rejected, renewing", self.signer_address)
            self._wallet_session = None
            self._restored = False
            await self._authenticate()
            response = await self._send(method, path, **kwargs)

        if response.status_code == 401:
            raise GatewayAuthenticationError(f"Gateway rejected session for {self.signer_address}")
        response.raise_for_status()
        return response

    @asynccontextmanager
    async def stream(self, method: str, path: str, **kwargs) -> AsyncIterator[httpx.Response]:
        """Open an authenticated streaming response."""
        await self.connect()
        headers = {**kwargs.pop("headers", {}), **self._auth_headers()}
        async with self._client.stream(
            method, self._url(path), headers=headers, timeout=None, **kwargs
        ) as response:
            yield response

    async def _send(self, method: str, path: str, **kwargs) -> httpx.Response:
        headers = {**kwargs.pop("headers", {}), **self._auth_headers()}
        return await self._client.request(method, self._url(path), headers=headers, **kwargs)

    # =========================================================================
    # Accounts
    # =========================================================================

    async def compute_contract_account(self, sync: bool = True) -> ContractAccount:
        """
        Compute the contract account of the signer.

        Args:
            sync: Wait for the gateway to finish computing instead of
                returning a pending account.

        Returns:
            ContractAccount: The signer's contract account.
        """
        response = await self.request(
            "POST", COMPUTE_ACCOUNT_PATH,
            json={"account": self.signer_address, "sync": sync},
        )
        account = ContractAccount.model_validate(read_json(response))
        self._account = account
        return account

    async def get_account_address(self) -> str:
        """Return the contract account address, computing it on first use."""
        if self._account is None:
            await self.compute_contract_account(sync=True)
        return self._account.address

    # =========================================================================
    # Teardown
    # =========================================================================

    async def destroy(self) -> None:
        """
        Release every resource held by the session.

        Closes the notification stream (pending submissions fail with
        ``RelaySessionClosedError``), stops the live connection and closes
        the owned HTTP client. Safe to call more than once.
        """
        if self._destroyed:
            return
        self._destroyed = True
        self.notifications.close()
        await self._transport.stop()
        if self._owns_client:
            await self._client.aclose()
        logger.debug("Gateway session for %s destroyed", self.signer_address)

    # =========================================================================
    # Utility Methods
    # =========================================================================

    def _ensure_alive(self) -> None:
        if self._destroyed:
            raise GatewayError("Gateway session was destroyed")

    def _url(self, path: str) -> str:
        return f"{self.root_url}{path}"

    def _auth_headers(self) -> Dict[str, str]:
        if self._wallet_session is None:
            return {}
        return {"Authorization": f"{AUTHORIZATION_SCHEME} {self._wallet_session.token}"}

