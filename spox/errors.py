"""
Error types for sPoX.

Every failure the deposit monitor can see is one of these. Callers branch on
the exception class, never on the message text.
"""

from typing import Optional


class SpoxError(Exception):
    """Base class for all sPoX errors."""


class ConfigurationError(SpoxError):
    """Invalid configuration. Fatal at startup."""


class ChainDataError(SpoxError):
    """The chain data source (bitcoin-core) could not answer a request."""


class BitcoinRPCError(ChainDataError):
    """Error object returned by a Bitcoin RPC call."""

    def __init__(self, code: int, message: str):
        self.code = code
        self.message = message
        super().__init__(f"RPC Error {code}: {message}")


class NoChainTip(ChainDataError):
    """bitcoin-core reported no active chain tip."""

    def __init__(self) -> None:
        super().__init__("no bitcoin chain tip")


class ScanTxOutFailure(ChainDataError):
    """A call to `scantxoutset` did not complete successfully."""

    def __init__(self) -> None:
        super().__init__("a call to `scantxoutset` failed")


class DepositError(SpoxError):
    """A single UTXO could not be turned into a deposit request."""


class UnrecognizedOutput(DepositError):
    """The UTXO's scriptPubKey does not belong to any monitored deposit."""

    def __init__(self, script_pub_key: bytes):
        self.script_pub_key = script_pub_key
        super().__init__(f"missing monitored deposit for script {script_pub_key.hex()}")


class DepositExpired(DepositError):
    """The reclaim path of the deposit is (or is about to be) spendable."""

    def __init__(self, unlocking_height: int, chain_tip_height: int):
        self.unlocking_height = unlocking_height
        self.chain_tip_height = chain_tip_height
        super().__init__(
            f"deposit unlocks at height {unlocking_height}, "
            f"chain tip is at {chain_tip_height}"
        )


class ChainDataUnavailable(DepositError):
    """Block hash or raw transaction lookup failed for a single UTXO."""


class RegistryError(SpoxError):
    """The Emily API rejected a deposit or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.status_code = status_code
        super().__init__(message)
