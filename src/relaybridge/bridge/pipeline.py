"""
Bridge Quote/Confirm Pipeline

Moves funds from Ethereum to the user's BSC account in two user-driven
steps, restartable at any point:

    IDLE -> QUOTING -> QUOTED -> CONFIRMING -> COMPLETED | FAILED
    IDLE -> FAILED (eligibility could not be fetched)

Amount and availability problems are reported as a ``warning`` on the
returned ``BridgeProgress``, never as exceptions. Calling a step from a
stage that cannot take it (e.g. ``confirm`` before a quote) raises
``InvalidTransition``.
"""

import logging
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Dict, List, Optional, Tuple

import httpx
from eth_abi import encode
from web3 import Web3

from ..engine.exceptions import BridgeApiError, InvalidTransition
from ..schemas.https import BridgeEligibility, BridgeProgress, BridgeToken, DepositInfo
from .constants import (
    DEFAULT_ASSET,
    ERC20_TRANSFER_SELECTOR,
    NATIVE_DECIMALS,
    amount_to_value,
    bridge_symbol,
    format_amount,
)

logger = logging.getLogger(__name__)

CANNOT_SEND = "Cannot send"
ENTER_AMOUNT = "Enter an amount"
CONNECT_WALLET = "Connect a wallet"


class BridgeStage(str, Enum):
    """Pipeline stages."""
    IDLE = "idle"
    QUOTING = "quoting"
    QUOTED = "quoted"
    CONFIRMING = "confirming"
    COMPLETED = "completed"
    FAILED = "failed"


def _parse_amount(amount: Optional[str]) -> Optional[Decimal]:
    if amount is None or not str(amount).strip():
        return None
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        return None
    return value if value.is_finite() and value > 0 else None


class BridgeQuotePipeline:
    """
    Quote and confirm a bridge transfer for the selector's current account.

    The destination is the selector's ``account`` (the relay contract
    account when the relay path is active). The funding transaction is sent
    through the selector's ``provider``, whichever path that is.

    Attributes:
        client: ``BridgeApiClient`` used for eligibility and deposits.
        selector: ``WalletActivationSelector`` providing accounts and provider.
        stage: Current ``BridgeStage``.
        eligibility: Last fetched ``BridgeEligibility``, if any.
        deposit: Deposit target of the current quote.
        transaction_hash: Funding transaction hash once completed.
        error_message: Last transport or relay failure.
        tokens: Bridgeable tokens keyed by Ethereum contract address.
    """

    def __init__(self, client, selector, asset: str = DEFAULT_ASSET):
        self.client = client
        self.selector = selector
        self._asset = bridge_symbol(asset)

        self.stage = BridgeStage.IDLE
        self.eligibility: Optional[BridgeEligibility] = None
        self._eligibility_key: Optional[Tuple[Optional[str], str]] = None
        self.amount: Optional[str] = None
        self.deposit: Optional[DepositInfo] = None
        self.transaction_hash: Optional[str] = None
        self.error_message: Optional[str] = None
        self.tokens: Dict[str, BridgeToken] = {}

    @property
    def asset(self) -> str:
        return self._asset

    @property
    def total_receive(self) -> Optional[float]:
        """Amount expected on BSC: the quoted amount minus the swap fee."""
        if self.deposit is None or self.amount is None:
            return None
        return float(Decimal(self.amount) - Decimal(str(self.deposit.swap_fee or 0)))

    def progress(self, warning: Optional[str] = None) -> BridgeProgress:
        """Snapshot of the pipeline."""
        return BridgeProgress(
            stage=self.stage.value,
            warning=warning,
            error_message=self.error_message,
            deposit=self.deposit,
            total_receive=self.total_receive,
            transaction_hash=self.transaction_hash,
        )

    # =========================================================================
    # Tokens and asset selection
    # =========================================================================

    async def load_tokens(self) -> Dict[str, BridgeToken]:
        """
        Load the bridgeable tokens, one per Ethereum contract address.

        Best effort: on failure the previously loaded tokens are kept.
        """
        try:
            tokens = await self.client.list_available_tokens()
        except (httpx.HTTPError, BridgeApiError) as e:
            logger.warning("Could not load bridge tokens: %s", e)
            return self.tokens

        by_address: Dict[str, BridgeToken] = {}
        for token in tokens:
            address = token.eth_contract_address
            if not address or address in by_address:
                continue
            by_address[address] = token
        self.tokens = by_address
        return self.tokens

    def select_asset(self, symbol: str) -> None:
        """Switch the bridged asset. Any quote in progress is discarded."""
        symbol = bridge_symbol(symbol)
        if symbol == self._asset:
            return
        self._asset = symbol
        self.reset()

    def reset(self) -> None:
        """Return to ``IDLE``, keeping the fetched eligibility."""
        self.stage = BridgeStage.IDLE
        self.amount = None
        self.deposit = None
        self.transaction_hash = None
        self.error_message = None

    # =========================================================================
    # Eligibility and validation
    # =========================================================================

    async def refresh_eligibility(self, force: bool = False) -> Optional[BridgeEligibility]:
        """
        Fetch eligibility when the account or the asset changed.

        A failure disables bridging, keeps the error message and moves the
        pipeline to ``FAILED``.
        """
        key = (self.selector.account, self._asset)
        if not force and key == self._eligibility_key and self.eligibility is not None:
            return self.eligibility
        self._eligibility_key = key

        try:
            self.eligibility = await self.client.get_token_bridge_info(self._asset, self.selector.account)
        except (httpx.HTTPError, BridgeApiError) as e:
            logger.warning("Could not fetch bridge details for %s: %s", self._asset, e)
            self.eligibility = BridgeEligibility(bridge_enabled=False)
            self._eligibility_key = None
            self.error_message = str(e) or "Failed to get token bridge details"
            self.stage = BridgeStage.FAILED
        return self.eligibility

    def submit_warning(self, amount: Optional[str] = None) -> Optional[str]:
        """
        Return the message blocking ``amount``, or None if it may be bridged.

        Args:
            amount: Amount to check, defaults to the quoted amount.
        """
        eligibility = self.eligibility
        if eligibility is None or not eligibility.bridge_enabled:
            return CANNOT_SEND

        value = _parse_amount(amount if amount is not None else self.amount)
        if value is None:
            return ENTER_AMOUNT
        if eligibility.min_amount and value < Decimal(str(eligibility.min_amount)):
            return f"Min. amount is {format_amount(eligibility.min_amount)}"
        if eligibility.max_amount and value > Decimal(str(eligibility.max_amount)):
            return f"Max. amount is {format_amount(eligibility.max_amount)}"
        decimals = self.asset_decimals()
        if (value * (Decimal(10) ** decimals)) % 1:
            return f"Max. {decimals} decimal places"
        return None

    # =========================================================================
    # Quote
    # =========================================================================

    async def quote(self, amount: str) -> BridgeProgress:
        """
        Register a deposit intent for ``amount``.

        Returns:
            BridgeProgress: ``QUOTED`` with the deposit target, the unchanged
            stage with a ``warning``, or ``FAILED`` with an error message.

        Raises:
            InvalidTransition: If a quote or confirmation is in flight.
        """
        if self.stage in (BridgeStage.QUOTING, BridgeStage.CONFIRMING):
            raise InvalidTransition(self.stage.value, "quote")

        await self.refresh_eligibility()
        warning = self.submit_warning(amount)
        if warning is not None:
            return self.progress(warning)

        account = self.selector.account
        if not account:
            return self.progress(CONNECT_WALLET)

        self.amount = str(amount).strip()
        self.deposit = None
        self.transaction_hash = None
        self.error_message = None
        self.stage = BridgeStage.QUOTING
        try:
            self.deposit = await self.client.register_deposit_intent(
                self._asset, self.amount, self.selector.direct_account, account
            )
        except (httpx.HTTPError, BridgeApiError) as e:
            logger.warning("Deposit intent for %s %s failed: %s", self.amount, self._asset, e)
            self.error_message = str(e) or "Failed to submit"
            self.stage = BridgeStage.FAILED
            return self.progress()

        self.stage = BridgeStage.QUOTED
        return self.progress()

    # =========================================================================
    # Confirm
    # =========================================================================

    def build_transaction(self) -> Dict[str, str]:
        """
        Build the funding transaction for the current quote.

        Native ETH is sent as ``value``; tokens with an Ethereum contract are
        sent with an ERC-20 ``transfer(deposit_address, value)`` call.
        """
        if self.deposit is None or self.amount is None:
            raise InvalidTransition(self.stage.value, "build a transaction")

        token = self._token_for(self._asset)
        tx: Dict[str, str] = {}
        if self.selector.direct_account:
            tx["from"] = self.selector.direct_account

        if token is not None and token.eth_contract_address:
            value = amount_to_value(amount=self.amount, decimals=token.eth_contract_decimal)
            call = encode(
                ["address", "uint256"],
                [Web3.to_checksum_address(self.deposit.deposit_address), value],
            )
            tx["to"] = Web3.to_checksum_address(token.eth_contract_address)
            tx["value"] = "0x0"
            tx["data"] = Web3.to_hex(ERC20_TRANSFER_SELECTOR + call)
        else:
            value = amount_to_value(amount=self.amount, decimals=NATIVE_DECIMALS)
            tx["to"] = self.deposit.deposit_address
            tx["value"] = Web3.to_hex(value)
        return tx

    async def confirm(self) -> BridgeProgress:
        """
        Send the funds to the quoted deposit address.

        Returns:
            BridgeProgress: ``COMPLETED`` with the transaction hash, the
            unchanged stage with a ``warning``, or ``FAILED`` with the error.
            A failed confirmation can be retried.

        Raises:
            InvalidTransition: If there is no quote to confirm.
        """
        if self.deposit is None or self.stage not in (BridgeStage.QUOTED, BridgeStage.FAILED):
            raise InvalidTransition(self.stage.value, "confirm")

        await self.refresh_eligibility()
        warning = self.submit_warning(self.amount)
        if warning is not None:
            return self.progress(warning)

        provider = self.selector.provider
        if provider is None:
            return self.progress(CONNECT_WALLET)

        self.error_message = None
        self.stage = BridgeStage.CONFIRMING
        try:
            tx = self.build_transaction()
            tx_hash = await provider.send("eth_sendTransaction", [tx])
        except Exception as e:
            logger.warning("Bridge transfer to %s failed: %s", self.deposit.deposit_address, e)
            self.error_message = str(e) or "Failed to send"
            self.stage = BridgeStage.FAILED
            return self.progress()

        if not tx_hash:
            self.error_message = "Failed to send"
            self.stage = BridgeStage.FAILED
            return self.progress()

        self.transaction_hash = tx_hash
        self.stage = BridgeStage.COMPLETED
        logger.info("Bridge transfer sent: %s", tx_hash)
        return self.progress()

    async def track_deposit(self) -> DepositInfo:
        """
        Refresh the quoted deposit from the bridge, including its status.

        Raises:
            InvalidTransition: If there is no quoted deposit with an id.
        """
        if self.deposit is None or not self.deposit.id:
            raise InvalidTransition(self.stage.value, "track a deposit")
        self.deposit = await self.client.get_deposit(self.deposit.id)
        return self.deposit

    def asset_decimals(self) -> int:
        """Decimals the selected asset is transferred with on Ethereum."""
        token = self._token_for(self._asset)
        if token is not None and token.eth_contract_address:
            return token.eth_contract_decimal
        return NATIVE_DECIMALS

    def _token_for(self, symbol: str) -> Optional[BridgeToken]:
        for token in self.tokens.values():
            if token.symbol == symbol:
                return token
        return None

    def available_symbols(self) -> List[str]:
        return sorted({token.symbol for token in self.tokens.values()})
