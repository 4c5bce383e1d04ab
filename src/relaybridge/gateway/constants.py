"""
Relay gateway endpoint layout.

The gateway serves each relay network under ``/<env>/<network>``, for
example ``https://gateway.relaybridge.io/mainnets/bsc``. All paths below are
relative to that root.
"""

from ..config import RelayConfig

# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------

AUTH_CHALLENGE_PATH = "/auth/challenge"
AUTH_SESSION_PATH = "/auth/session"

# ---------------------------------------------------------------------------
# Accounts and batches
# ---------------------------------------------------------------------------

COMPUTE_ACCOUNT_PATH = "/accounts/compute"
BATCH_ESTIMATE_PATH = "/batches/estimate"
BATCH_SUBMIT_PATH = "/batches"
BATCH_STATUS_PATH = "/batches/{batch_hash}"

# ---------------------------------------------------------------------------
# Notifications (server-sent events)
# ---------------------------------------------------------------------------

NOTIFICATIONS_PATH = "/notifications"

AUTHORIZATION_SCHEME = "Bearer"


def gateway_root_url(config: RelayConfig) -> str:
    """Return the gateway root for the configured relay network."""
    return f"{config.gateway_url.rstrip('/')}/{config.env_name}/{config.network_name}"
