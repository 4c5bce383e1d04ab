"""
HTTP Request/Response Schema Models for the bridge REST service

This module defines the Pydantic models exchanged with the third-party bridge
API and the models the quote/confirm pipeline keeps about a bridge transfer.

The bridge flow consists of:
1. Listing the tokens that can be bridged from Ethereum
2. Fetching eligibility (limits and deposit status) for a token and account
3. Registering a deposit intent, which returns a deposit address and fee
4. Sending the funds to the deposit address and tracking the deposit

All models accept the camelCase field names used on the wire.
"""

from typing import Optional, Any, Dict

from pydantic import BaseModel, Field, ConfigDict


# ============================================================================
# Response envelope
# ============================================================================

class BridgeApiEnvelope(BaseModel):
    """Envelope wrapped around every bridge API response.

    Attributes:
        code: Service status code (0 on success).
        message: Error message when ``data`` is missing.
        data: Response payload.
    """
    model_config = ConfigDict(extra="ignore")

    code: Optional[int] = None
    message: Optional[str] = None
    data: Optional[Any] = None


# ============================================================================
# Step 1: Available tokens
# ============================================================================

class BridgeToken(BaseModel):
    """A token that can be bridged from the Ethereum network.

    Attributes:
        symbol: Bridge symbol (e.g. "ETH").
        name: Human-readable token name.
        eth_symbol: Token symbol on Ethereum.
        eth_contract_address: ERC-20 contract address, empty for native ETH.
        eth_contract_decimal: Token decimals on Ethereum.
        min_amount: Per-transfer minimum.
        max_amount: Per-transfer maximum.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    symbol: str
    name: str = ""
    eth_symbol: Optional[str] = Field(None, alias="ethSymbol")
    eth_contract_address: Optional[str] = Field(None, alias="ethContractAddress")
    eth_contract_decimal: int = Field(18, alias="ethContractDecimal")
    min_amount: Optional[float] = Field(None, alias="minAmount")
    max_amount: Optional[float] = Field(None, alias="maxAmount")


# ============================================================================
# Step 2: Eligibility
# ============================================================================

class BridgeEligibility(BaseModel):
    """Bridge limits and availability for one (token, account) pair.

    Attributes:
        min_amount: Smallest amount accepted, if any.
        max_amount: Largest amount accepted, already capped by the 24h quota.
        bridge_enabled: Whether deposits from Ethereum are currently enabled.
    """
    model_config = ConfigDict(populate_by_name=True)

    min_amount: Optional[float] = Field(None, alias="minAmount")
    max_amount: Optional[float] = Field(None, alias="maxAmount")
    bridge_enabled: bool = Field(False, alias="bridgeEnabled")


# ============================================================================
# Step 3: Deposit intent
# ============================================================================

class DepositIntentRequest(BaseModel):
    """Request body for registering a deposit intent (POST /v2/swaps).

    Attributes:
        amount: Amount to bridge, as entered by the user.
        from_network: Source network name.
        source: Integrator source id.
        symbol: Token symbol.
        to_address: Address credited on the destination network.
        to_address_label: Destination memo/label.
        to_network: Destination network name.
        wallet_address: Address the funds are sent from.
        wallet_network: Network of ``wallet_address``.
    """
    model_config = ConfigDict(populate_by_name=True)

    amount: str
    from_network: str = Field(..., alias="fromNetwork")
    source: int
    symbol: str
    to_address: str = Field(..., alias="toAddress")
    to_address_label: str = Field("", alias="toAddressLabel")
    to_network: str = Field(..., alias="toNetwork")
    wallet_address: str = Field(..., alias="walletAddress")
    wallet_network: str = Field(..., alias="walletNetwork")


class DepositInfo(BaseModel):
    """Deposit target returned by the bridge for a registered intent.

    Attributes:
        id: Bridge-side deposit id, used to track the deposit.
        deposit_address: Address the funds must be sent to.
        swap_fee: Fee deducted by the bridge, in token units.
        status: Deposit status, when tracking.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: Optional[str] = None
    deposit_address: str = Field(..., alias="depositAddress")
    swap_fee: float = Field(0.0, alias="swapFee")
    status: Optional[str] = None


# ============================================================================
# Pipeline snapshot
# ============================================================================

class BridgeProgress(BaseModel):
    """Snapshot of the quote/confirm pipeline returned after every step.

    Attributes:
        stage: Current pipeline stage value.
        warning: Blocking validation message ("Cannot send", "Min. amount is 10").
        error_message: Transport or relay failure message.
        deposit: Deposit target once quoted.
        total_receive: Amount expected on the destination chain.
        transaction_hash: Funding transaction hash once completed.
    """
    stage: str
    warning: Optional[str] = None
    error_message: Optional[str] = None
    deposit: Optional[DepositInfo] = None
    total_receive: Optional[float] = None
    transaction_hash: Optional[str] = None

    @property
    def can_proceed(self) -> bool:
        return self.warning is None and self.error_message is None

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json")
