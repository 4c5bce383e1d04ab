"""
Relay Configuration Management

Loads runtime settings from the environment (and a ``.env`` file, if one is
present) into a validated ``RelayConfig``. Also derives the relay network
naming the gateway expects from the configured chain id.
"""

import os
from pathlib import Path
from typing import FrozenSet, Optional

import dotenv
from pydantic import BaseModel, Field, ValidationError

from .engine.exceptions import ConfigurationError

dotenv.load_dotenv()


#: Chain ids served by the relay gateway (BSC mainnet and testnet).
RELAY_CHAIN_IDS: FrozenSet[int] = frozenset({56, 97})

MAINNET_CHAIN_ID = 56

DEFAULT_NETWORK_URL = "https://bsc-dataseed.binance.org"
DEFAULT_GATEWAY_URL = "https://gateway.relaybridge.io"
DEFAULT_BRIDGE_API_URL = "https://api.binance.org/bridge/api"
DEFAULT_SESSION_STORE = "~/.relaybridge/sessions.json"


class RelayConfig(BaseModel):
    """Validated runtime settings.

    Attributes:
        network_url: JSON-RPC endpoint of the relay network.
        chain_id: Chain id the relay gateway operates on.
        gateway_url: Base URL of the relay gateway REST API.
        bridge_api_url: Base URL of the bridge REST API.
        submission_timeout: Seconds to wait for a relayed batch to reach a
            terminal state. ``None`` waits forever.
        abort_on_estimate_failure: Abort submission when the gateway cannot
            estimate the batch instead of submitting anyway.
        session_store_path: JSON file used by ``FileSessionStore``.
        request_timeout: Timeout for individual HTTP requests, in seconds.
    """
    network_url: str = Field(DEFAULT_NETWORK_URL, min_length=1)
    chain_id: int = Field(MAINNET_CHAIN_ID, gt=0)
    gateway_url: str = Field(DEFAULT_GATEWAY_URL, min_length=1)
    bridge_api_url: str = Field(DEFAULT_BRIDGE_API_URL, min_length=1)
    submission_timeout: Optional[float] = Field(300.0, gt=0)
    abort_on_estimate_failure: bool = False
    session_store_path: Path = Field(default_factory=lambda: Path(DEFAULT_SESSION_STORE).expanduser())
    request_timeout: float = Field(30.0, gt=0)

    @property
    def network_name(self) -> str:
        """Relay network name: ``bsc`` on mainnet, ``bscTest`` otherwise."""
        return "bsc" if self.chain_id == MAINNET_CHAIN_ID else "bscTest"

    @property
    def env_name(self) -> str:
        """Gateway environment: ``mainnets`` for ``bsc``, ``testnets`` otherwise."""
        return "mainnets" if self.network_name == "bsc" else "testnets"

    @property
    def relay_chain_ids(self) -> FrozenSet[int]:
        return RELAY_CHAIN_IDS

    def is_relay_chain(self, chain_id: Optional[int]) -> bool:
        """Check whether ``chain_id`` is one of the relay network chains."""
        return chain_id in RELAY_CHAIN_IDS


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.strip().lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off", ""):
        return False
    raise ConfigurationError(f"{name} must be a boolean, got {raw!r}")


def _parse_number(name: str, raw: str, cast=float):
    try:
        return cast(raw.strip())
    except ValueError as e:
        raise ConfigurationError(f"{name} must be numeric, got {raw!r}") from e


def load_config(**overrides) -> RelayConfig:
    """
    Build a ``RelayConfig`` from environment variables.

    Environment Variables:
        - RELAY_NETWORK_URL: JSON-RPC endpoint of the relay network
        - RELAY_CHAIN_ID: Relay chain id (default 56)
        - RELAY_GATEWAY_URL: Relay gateway base URL
        - RELAY_BRIDGE_API_URL: Bridge REST API base URL
        - RELAY_SUBMISSION_TIMEOUT: Seconds to wait for a batch, 0 waits forever
        - RELAY_ABORT_ON_ESTIMATE_FAILURE: true/false
        - RELAY_SESSION_STORE: Path of the session store file
        - RELAY_REQUEST_TIMEOUT: HTTP request timeout in seconds

    Args:
        **overrides: Field values that take precedence over the environment.

    Returns:
        RelayConfig: The validated configuration.

    Raises:
        ConfigurationError: If a value is missing, malformed or out of range.

    Example:
        # In your .env file:
        # RELAY_CHAIN_ID=97
        # RELAY_SUBMISSION_TIMEOUT=0

        config = load_config()
        config.network_name  # 'bscTest'
    """
    values = {}

    network_url = os.getenv("RELAY_NETWORK_URL")
    if network_url is not None:
        values["network_url"] = network_url.strip()

    chain_id = os.getenv("RELAY_CHAIN_ID")
    if chain_id is not None:
        values["chain_id"] = _parse_number("RELAY_CHAIN_ID", chain_id, int)

    gateway_url = os.getenv("RELAY_GATEWAY_URL")
    if gateway_url is not None:
        values["gateway_url"] = gateway_url.strip()

    bridge_api_url = os.getenv("RELAY_BRIDGE_API_URL")
    if bridge_api_url is not None:
        values["bridge_api_url"] = bridge_api_url.strip()

    submission_timeout = os.getenv("RELAY_SUBMISSION_TIMEOUT")
    if submission_timeout is not None:
        seconds = _parse_number("RELAY_SUBMISSION_TIMEOUT", submission_timeout)
        values["submission_timeout"] = None if seconds == 0 else seconds

    abort = os.getenv("RELAY_ABORT_ON_ESTIMATE_FAILURE")
    if abort is not None:
        values["abort_on_estimate_failure"] = _parse_bool("RELAY_ABORT_ON_ESTIMATE_FAILURE", abort)

    store_path = os.getenv("RELAY_SESSION_STORE")
    if store_path:
        values["session_store_path"] = Path(store_path).expanduser()

    request_timeout = os.getenv("RELAY_REQUEST_TIMEOUT")
    if request_timeout is not None:
        values["request_timeout"] = _parse_number("RELAY_REQUEST_TIMEOUT", request_timeout)

    values.update(overrides)
    if values.get("submission_timeout") == 0:
        values["submission_timeout"] = None
    try:
        return RelayConfig(**values)
    except ValidationError as e:
        raise ConfigurationError(str(e)) from e
