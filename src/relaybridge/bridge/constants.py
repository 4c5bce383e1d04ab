"""
Bridge constants and amount helpers.

Network names, the integrator source id and the token unit conversions used
by the bridge client and the quote/confirm pipeline.
"""

from decimal import Decimal, InvalidOperation

from web3 import Web3

from ..config import DEFAULT_BRIDGE_API_URL

BRIDGE_API_URL = DEFAULT_BRIDGE_API_URL

#: Network the funds leave from.
ETH_NETWORK = "ETH"

#: Network the funds arrive on.
BSC_NETWORK = "BSC"

#: Integrator id reported with every deposit intent.
BRIDGE_SOURCE_ID = 921

#: Decimals of native ETH.
NATIVE_DECIMALS = 18

DEFAULT_ASSET = "ETH"

#: First four bytes of keccak("transfer(address,uint256)").
ERC20_TRANSFER_SELECTOR: bytes = Web3.keccak(text="transfer(address,uint256)")[:4]


def bridge_symbol(symbol: str) -> str:
    """Map a wallet currency symbol to the symbol the bridge quotes.

    BNB is bridged as ETH.
    """
    return "ETH" if symbol.upper() == "BNB" else symbol


def format_amount(amount: float | int | str | Decimal) -> str:
    """Render an amount without float noise or trailing zeros (10.0 -> '10')."""
    dec_amount = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    return format(dec_amount.normalize(), "f")


def amount_to_value(*, amount: float | int | str | Decimal, decimals: int) -> int:
    """Convert a human-readable token `amount` into smallest-unit integer `value`.

    Args:
        amount: Human-readable amount (e.g. "1.5" ETH). Accepts float/int/str/Decimal.
        decimals: Token decimals (e.g. 18 for ETH).

    Returns:
        int: Smallest-unit integer value.

    Raises:
        ValueError: If inputs are invalid or the amount cannot be represented in smallest units.
    """
    if not isinstance(decimals, int) or decimals < 0:
        raise ValueError("decimals must be a non-negative int")

    try:
        # str() keeps 0.1 from becoming 0.1000000000000000055...
        dec_amount = amount if isinstance(amount, Decimal) else Decimal(str(amount))
    except (InvalidOperation, ValueError, TypeError) as e:
        raise ValueError(f"Invalid amount: {amount!r}") from e

    if dec_amount < 0:
        raise ValueError("amount must be non-negative")

    scaled = dec_amount * (Decimal(10) ** decimals)
    if scaled != scaled.to_integral_value():
        raise ValueError(
            f"amount {amount!r} is not representable with decimals={decimals}"
        )

    return int(scaled)
