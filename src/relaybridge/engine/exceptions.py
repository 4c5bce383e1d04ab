"""
Exception and Error Definitions Module

Defines the exception hierarchy for the relay pipeline: gateway access,
batch submission outcomes, JSON-RPC passthrough, wallet derivation and the
bridge REST service. Transport failures (``httpx.HTTPError``) are never
wrapped; they reach the caller unchanged.

Exception Hierarchy:
    RelayBridgeError (root)
    ├── ConfigurationError
    ├── GatewayError
    │   ├── GatewayResponseError
    │   └── GatewayAuthenticationError
    ├── RelayError
    │   ├── BatchSubmissionError
    │   ├── TransactionFailedError
    │   ├── RelayTimeoutError
    │   └── RelaySessionClosedError
    ├── RpcError
    ├── WalletError
    │   └── WalletRejectedError
    ├── BridgeApiError
    └── InvalidTransition
"""

from typing import Optional


class RelayBridgeError(Exception):
    """
    Root exception class for all project-specific exceptions.

    All custom exceptions inherit from this class so callers can catch
    every relay, gateway and bridge failure in one place.
    """
    pass


class ConfigurationError(RelayBridgeError):
    """
    Raised when configuration is missing or invalid.

    This includes scenarios such as:
    - Non-numeric chain id or timeout in the environment
    - Empty network or gateway URL
    """
    pass


class GatewayError(RelayBridgeError):
    """Base exception for relay gateway failures that are not transport errors."""
    pass


class GatewayResponseError(GatewayError):
    """
    Raised when the gateway answers with a payload that cannot be used.

    Attributes:
        status_code: HTTP status code of the response, if any
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)


class GatewayAuthenticationError(GatewayError):
    """
    Raised when the gateway refuses to issue or accept a session.

    Typically occurs when the stored session was revoked and renewal
    with a fresh signature also failed.
    """
    pass


class RelayError(RelayBridgeError):
    """
    Base exception for failures of a relayed transaction.

    These are the protocol errors that cross the relay provider boundary,
    as opposed to transport errors, which propagate unchanged.
    """
    pass


class BatchSubmissionError(RelayError):
    """
    Raised when the gateway did not accept the batch.

    The gateway returned no batch hash, so nothing was submitted and no
    notification subscription was opened.
    """
    pass


class TransactionFailedError(RelayError):
    """
    Raised when a submitted batch reached a terminal failure state.

    Attributes:
        state: The failure state (Canceling, Canceled or Reverted)
        batch_hash: Hash of the batch that failed
    """

    def __init__(self, state, batch_hash: Optional[str] = None):
        self.state = state
        self.batch_hash = batch_hash
        state_value = getattr(state, "value", state)
        super().__init__(str(state_value))


class RelayTimeoutError(RelayError):
    """
    Raised when no terminal event arrived within the submission timeout.

    The batch may still complete on the gateway side; it cannot be aborted.

    Attributes:
        batch_hash: Hash of the pending batch
        timeout: Timeout that elapsed, in seconds
    """

    def __init__(self, batch_hash: str, timeout: float):
        self.batch_hash = batch_hash
        self.timeout = timeout
        super().__init__(f"Batch {batch_hash} not resolved after {timeout}s")


class RelaySessionClosedError(RelayError):
    """
    Raised when the relay session was torn down while a batch was pending.

    Attributes:
        batch_hash: Hash of the pending batch
    """

    def __init__(self, batch_hash: str):
        self.batch_hash = batch_hash
        super().__init__(f"Relay session closed before batch {batch_hash} resolved")


class RpcError(RelayBridgeError):
    """
    Raised when a JSON-RPC reply carries an ``error`` member.

    Attributes:
        code: JSON-RPC error code
        rpc_method: Method that was called (e.g. 'eth_call')
    """

    def __init__(self, message: str, code: Optional[int] = None, rpc_method: Optional[str] = None):
        self.code = code
        self.rpc_method = rpc_method
        super().__init__(message)


class WalletError(RelayBridgeError):
    """Base exception for wallet connector and signer failures."""
    pass


class WalletRejectedError(WalletError):
    """
    Raised when the user rejects a wallet request.

    This includes scenarios such as:
    - Declining the account access prompt
    - Declining to sign the gateway challenge
    """
    pass


class BridgeApiError(RelayBridgeError):
    """
    Raised when the bridge service answers without a ``data`` payload.

    The message is the one reported by the service when present.
    """
    pass


class InvalidTransition(RelayBridgeError):
    """
    Raised when a pipeline step is invoked from a stage that cannot take it.

    Attributes:
        current_state: Stage the pipeline was in
        event_type: Step that was attempted
    """

    def __init__(self, current_state: str, event_type: str):
        self.current_state = current_state
        self.event_type = event_type
        super().__init__(f"Cannot {event_type} while {current_state}")
