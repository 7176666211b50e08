"""
Bitcoin data structures shared by the monitor and the RPC client.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Union

# Constants for BTC to satoshis conversion
SATS_PER_BTC = Decimal("100000000")


@dataclass(frozen=True)
class BlockRef:
    """A block in the bitcoin blockchain, usually the chain tip.

    Two refs are equal only if both height and hash match, so a fork at the
    same height is still seen as a new tip.
    """

    block_height: int
    block_hash: str  # display format

    def __str__(self) -> str:
        return f"Block(hash={self.block_hash}, height={self.block_height})"


@dataclass(frozen=True)
class Utxo:
    """Unspent transaction output."""

    txid: str  # display format
    vout: int
    script_pub_key: bytes
    amount_sats: int
    block_height: int


def btc_to_sats(value: Union[int, float, str, Decimal]) -> int:
    """
    Convert BTC value to satoshis with exact precision.

    Bitcoin Core RPC returns amounts as JSON numbers in BTC, and
    float(0.1) * 1e8 = 9999999.999999998, not 10000000. The value is
    routed through Decimal to keep it exact.

    Examples:
        >>> btc_to_sats(0.1)
        10000000
        >>> btc_to_sats("0.00000001")
        1
    """
    if isinstance(value, Decimal):
        dec_value = value
    elif isinstance(value, str):
        dec_value = Decimal(value)
    else:
        # int or float: convert via string to avoid float representation issues
        dec_value = Decimal(str(value))

    sats = dec_value * SATS_PER_BTC

    if sats != sats.to_integral_value():
        raise ValueError(f"BTC value {value} results in fractional satoshis: {sats}")

    return int(sats)
