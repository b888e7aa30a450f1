"""
Conversions between base units and display units.

Base units are the integers providers return (wei for the native currency,
the smallest token unit for ERC-20 tokens). Display units are Decimals
rounded to a fixed precision per kind of amount.
"""

from decimal import ROUND_HALF_UP, Decimal, localcontext
from typing import Optional, Union

from .errors import MalformedResponse

NATIVE_DECIMALS = 18
GWEI_DECIMALS = 9

# Enough significant digits for any uint256 amount plus display places
DECIMAL_CONTEXT_PRECISION = 100

# Display precision (decimal places)
NATIVE_PRECISION = 6
TOKEN_PRECISION = 2
GAS_PRICE_PRECISION = 2


def to_display(raw_amount: int, decimals: int, precision: Optional[int] = None) -> Decimal:
    """
    Convert a base-unit amount to display units.

    Args:
        raw_amount: Amount in the smallest unit (non-negative)
        decimals: Number of decimals of the asset
        precision: Decimal places to round to (defaults to TOKEN_PRECISION)

    Returns:
        raw_amount / 10**decimals, rounded half-up to the given precision

    Examples:
        to_display(10**18, 18, 6) -> Decimal("1.000000")
        to_display(1234567, 6) -> Decimal("1.23")
    """
    if precision is None:
        precision = TOKEN_PRECISION

    with localcontext() as ctx:
        ctx.prec = DECIMAL_CONTEXT_PRECISION
        value = Decimal(raw_amount) / Decimal(10**decimals)
        return value.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP)


def to_ether(wei_amount: int) -> Decimal:
    """Convert wei to the native display unit with NATIVE_PRECISION places."""
    return to_display(wei_amount, NATIVE_DECIMALS, NATIVE_PRECISION)


def to_gwei(wei_amount: int) -> Decimal:
    """Convert wei to Gwei with GAS_PRICE_PRECISION places."""
    return to_display(wei_amount, GWEI_DECIMALS, GAS_PRICE_PRECISION)


def to_base_units(display_amount: Union[Decimal, str], decimals: int) -> int:
    """
    Convert a display amount back to base units.

    The result is exact only up to the precision the display amount was
    rounded to.
    """
    with localcontext() as ctx:
        ctx.prec = DECIMAL_CONTEXT_PRECISION
        value = Decimal(display_amount) * Decimal(10**decimals)
        return int(value.to_integral_value(rounding=ROUND_HALF_UP))


def parse_hex_quantity(value: str) -> int:
    """
    Parse a hex-encoded quantity as returned by a JSON-RPC provider.

    "0x" (empty data from eth_call) is treated as zero.

    Raises:
        MalformedResponse: If the value is not a 0x-prefixed hex string
    """
    if not isinstance(value, str) or not value.lower().startswith("0x"):
        raise MalformedResponse(f"Expected hex quantity, got: {value!r}")

    digits = value[2:]
    if not digits:
        return 0

    try:
        return int(digits, 16)
    except ValueError as e:
        raise MalformedResponse(f"Expected hex quantity, got: {value!r}") from e


def format_amount(value: Decimal, precision: int) -> str:
    """
    Render a display amount as a fixed-point string.

    Examples:
        format_amount(Decimal("1"), 6) -> "1.000000"
        format_amount(Decimal("0"), 2) -> "0.00"
    """
    with localcontext() as ctx:
        ctx.prec = DECIMAL_CONTEXT_PRECISION
        quantized = value.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP)
    return format(quantized, "f")
