"""
sBTC deposit and reclaim scripts.

A deposit address is a taproot output with an unspendable internal key and
a script tree holding two leaves:

    deposit:  <max_fee || recipient> OP_DROP <signers x-only key> OP_CHECKSIG
    reclaim:  <lock_time> OP_CHECKSEQUENCEVERIFY <depositor's reclaim script>

The resulting scriptPubKey is what bitcoin-core is asked to scan for and is
the key the monitor uses to map a UTXO back to its deposit.
"""

import hashlib
from dataclasses import dataclass

from coincurve import PublicKey

OP_0 = 0x00
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_1NEGATE = 0x4F
OP_1 = 0x51
OP_DROP = 0x75
OP_CHECKSIG = 0xAC
OP_CHECKSEQUENCEVERIFY = 0xB2

TAPROOT_LEAF_VERSION = 0xC0

# BIP-341 "H" point: no known discrete log, so the key path is unspendable.
NUMS_X_COORDINATE = bytes.fromhex(
    "50929b74c1a04954b78b4b6035e97a5e078a5a0f28ec96d547bfee9ace803ac0"
)

MAX_LOCK_TIME = 0xFFFFFFFF
MAX_FEE = 2**64 - 1


def tagged_hash(tag: str, data: bytes) -> bytes:
    """BIP-340 tagged hash."""
    tag_hash = hashlib.sha256(tag.encode()).digest()
    return hashlib.sha256(tag_hash + tag_hash + data).digest()


def _encode_varint(n: int) -> bytes:
    if n < 0:
        raise ValueError("varint must be non-negative")
    if n < 0xFD:
        return bytes([n])
    if n <= 0xFFFF:
        return b"\xFD" + n.to_bytes(2, "little")
    if n <= 0xFFFFFFFF:
        return b"\xFE" + n.to_bytes(4, "little")
    return b"\xFF" + n.to_bytes(8, "little")


def push_data(data: bytes) -> bytes:
    """Encode a minimal data push."""
    n = len(data)
    if n < OP_PUSHDATA1:
        return bytes([n]) + data
    if n <= 0xFF:
        return bytes([OP_PUSHDATA1, n]) + data
    if n <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + n.to_bytes(2, "little") + data
    return bytes([OP_PUSHDATA4]) + n.to_bytes(4, "little") + data


def encode_script_num(n: int) -> bytes:
    """Minimal little-endian sign-magnitude encoding used by script numbers."""
    if n == 0:
        return b""
    magnitude = abs(n)
    out = bytearray()
    while magnitude:
        out.append(magnitude & 0xFF)
        magnitude >>= 8
    if out[-1] & 0x80:
        out.append(0x80 if n < 0 else 0x00)
    elif n < 0:
        out[-1] |= 0x80
    return bytes(out)


def push_int(n: int) -> bytes:
    """Push an integer, using the small-number opcodes where possible."""
    if n == 0:
        return bytes([OP_0])
    if n == -1:
        return bytes([OP_1NEGATE])
    if 1 <= n <= 16:
        return bytes([OP_1 + n - 1])
    return push_data(encode_script_num(n))


@dataclass(frozen=True)
class DepositScriptInputs:
    """Inputs of the deposit leaf."""

    signers_public_key: bytes  # 32-byte x-only key
    recipient: bytes  # consensus-serialized Stacks principal
    max_fee: int

    def __post_init__(self) -> None:
        if len(self.signers_public_key) != 32:
            raise ValueError(
                f"signers public key must be 32 bytes, got {len(self.signers_public_key)}"
            )
        if not self.recipient:
            raise ValueError("recipient must not be empty")
        if not 0 <= self.max_fee <= MAX_FEE:
            raise ValueError(f"max fee {self.max_fee} out of range")

    def deposit_script(self) -> bytes:
        deposit_data = self.max_fee.to_bytes(8, "big") + self.recipient
        return (
            push_data(deposit_data)
            + bytes([OP_DROP])
            + push_data(self.signers_public_key)
            + bytes([OP_CHECKSIG])
        )


@dataclass(frozen=True)
class ReclaimScriptInputs:
    """Inputs of the reclaim leaf.

    `lock_time` is the number of blocks after confirmation at which the
    depositor can take the funds back.
    """

    lock_time: int
    script: bytes

    def __post_init__(self) -> None:
        if not 0 <= self.lock_time <= MAX_LOCK_TIME:
            raise ValueError(f"lock time {self.lock_time} out of range")

    def reclaim_script(self) -> bytes:
        return push_int(self.lock_time) + bytes([OP_CHECKSEQUENCEVERIFY]) + self.script


def tap_leaf_hash(script: bytes) -> bytes:
    return tagged_hash(
        "TapLeaf", bytes([TAPROOT_LEAF_VERSION]) + _encode_varint(len(script)) + script
    )


def tap_branch_hash(left: bytes, right: bytes) -> bytes:
    if right < left:
        left, right = right, left
    return tagged_hash("TapBranch", left + right)


def to_script_pubkey(deposit_script: bytes, reclaim_script: bytes) -> bytes:
    """
    Build the P2TR scriptPubKey for a deposit/reclaim script pair.

    Returns the 34-byte script `OP_1 <32-byte output key>`.
    """
    merkle_root = tap_branch_hash(tap_leaf_hash(deposit_script), tap_leaf_hash(reclaim_script))
    tweak = tagged_hash("TapTweak", NUMS_X_COORDINATE + merkle_root)

    internal_key = PublicKey(b"\x02" + NUMS_X_COORDINATE)
    output_key = internal_key.add(tweak).format(compressed=True)[1:]

    return bytes([OP_1]) + push_data(output_key)
