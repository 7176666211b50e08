"""
Deposit monitor.

Maps UTXOs paying to monitored deposit addresses into Emily create-deposit
requests, skipping outputs that are unknown, expired, or whose transaction
cannot be fetched.
"""

from dataclasses import dataclass
from typing import Iterable, Optional, Protocol

import structlog

from .bitcoin import BlockRef, Utxo
from .cache import LRUCache
from .deposits import DepositScriptInputs, ReclaimScriptInputs, to_script_pubkey
from .emily import CreateDepositRequestBody
from .errors import (
    ChainDataError,
    ChainDataUnavailable,
    DepositError,
    DepositExpired,
    UnrecognizedOutput,
)

logger = structlog.get_logger()

DEFAULT_TX_CACHE_CAPACITY = 10_000


def _expect_hex(value: object, what: str) -> str:
    if not isinstance(value, str) or not value:
        raise ChainDataError(f"chain data source returned no {what}")
    try:
        bytes.fromhex(value)
    except ValueError as e:
        raise ChainDataError(f"chain data source returned a malformed {what}") from e
    return value


class ChainDataSource(Protocol):
    """What the monitor needs from bitcoin-core."""

    def get_chain_tip(self) -> BlockRef:
        ...

    def get_utxos(self, script_pubkeys: Iterable[bytes]) -> list[Utxo]:
        ...

    def get_block_hash(self, height: int) -> str:
        ...

    def get_raw_transaction_hex(self, txid: str, block_hash: str) -> str:
        ...


@dataclass(frozen=True)
class MonitoredDeposit:
    """A deposit address to monitor."""

    deposit_script_inputs: DepositScriptInputs
    reclaim_script_inputs: ReclaimScriptInputs
    alias: Optional[str] = None

    def to_script_pubkey(self) -> bytes:
        """Get the scriptPubKey for this deposit address."""
        return to_script_pubkey(
            self.deposit_script_inputs.deposit_script(),
            self.reclaim_script_inputs.reclaim_script(),
        )


class DepositRegistry:
    """
    Read-only mapping from deposit scriptPubKey to MonitoredDeposit.

    When two entries derive the same scriptPubKey the later one wins and a
    warning is logged.
    """

    def __init__(self, monitored: Iterable[MonitoredDeposit]):
        self._deposits: dict[bytes, MonitoredDeposit] = {}

        for deposit in monitored:
            script_pub_key = deposit.to_script_pubkey()
            previous = self._deposits.get(script_pub_key)
            if previous is not None:
                logger.warning(
                    "duplicate_monitored_deposit",
                    script_pub_key=script_pub_key.hex(),
                    replaced=previous.alias,
                    alias=deposit.alias,
                )
            self._deposits[script_pub_key] = deposit

    def __len__(self) -> int:
        return len(self._deposits)

    def lookup(self, script_pub_key: bytes) -> Optional[MonitoredDeposit]:
        return self._deposits.get(script_pub_key)

    def all_script_pubkeys(self) -> list[bytes]:
        return list(self._deposits)


class DepositMonitor:
    """Turns the current UTXO set of monitored addresses into deposits."""

    def __init__(
        self,
        bitcoin: ChainDataSource,
        monitored: Iterable[MonitoredDeposit],
        tx_cache_capacity: int = DEFAULT_TX_CACHE_CAPACITY,
    ):
        self.bitcoin = bitcoin
        self.registry = DepositRegistry(monitored)
        # (txid, block_hash) -> raw transaction hex
        self.tx_cache: LRUCache[tuple[str, str], str] = LRUCache(tx_cache_capacity)

    def get_deposit_from_utxo(
        self, utxo: Utxo, chain_tip: BlockRef
    ) -> CreateDepositRequestBody:
        """
        Process a UTXO to get a create deposit request for Emily.

        Raises:
            UnrecognizedOutput: the UTXO does not pay to a monitored address.
            DepositExpired: the reclaim lock time has been reached at the tip.
            ChainDataUnavailable: block hash or transaction lookup failed.
        """
        monitored = self.registry.lookup(utxo.script_pub_key)
        if monitored is None:
            raise UnrecognizedOutput(utxo.script_pub_key)

        # Checked before any lookup so expired deposits cost no round-trips.
        unlocking_height = utxo.block_height + monitored.reclaim_script_inputs.lock_time
        if unlocking_height <= chain_tip.block_height:
            raise DepositExpired(unlocking_height, chain_tip.block_height)

        try:
            block_hash = _expect_hex(
                self.bitcoin.get_block_hash(utxo.block_height), "block hash"
            )
            tx_hex = self.tx_cache.get_or_fetch(
                (utxo.txid, block_hash),
                lambda: _expect_hex(
                    self.bitcoin.get_raw_transaction_hex(utxo.txid, block_hash),
                    "raw transaction",
                ),
            )
        except ChainDataError as e:
            raise ChainDataUnavailable(str(e)) from e

        return CreateDepositRequestBody(
            bitcoin_txid=utxo.txid,
            bitcoin_tx_output_index=utxo.vout,
            deposit_script=monitored.deposit_script_inputs.deposit_script().hex(),
            reclaim_script=monitored.reclaim_script_inputs.reclaim_script().hex(),
            transaction_hex=tx_hex,
        )

    def get_pending_deposits(self, chain_tip: BlockRef) -> list[CreateDepositRequestBody]:
        """
        Check pending deposits confirmed to the monitored addresses.

        A failed UTXO scan raises ChainDataError. Individual UTXOs that fail
        are logged and left out of the result.
        """
        if not len(self.registry):
            logger.debug("no_monitored_deposits")
            return []

        utxos = self.bitcoin.get_utxos(self.registry.all_script_pubkeys())

        deposits = []
        for utxo in utxos:
            try:
                deposits.append(self.get_deposit_from_utxo(utxo, chain_tip))
            except DepositExpired as e:
                logger.info(
                    "deposit_expired_skipping_utxo",
                    error=str(e),
                    txid=utxo.txid,
                    vout=utxo.vout,
                    block_height=utxo.block_height,
                )
            except DepositError as e:
                logger.warning(
                    "deposit_from_utxo_failed",
                    error=str(e),
                    txid=utxo.txid,
                    vout=utxo.vout,
                    block_height=utxo.block_height,
                )

        logger.debug(
            "pending_deposits_resolved",
            chain_tip=str(chain_tip),
            utxos=len(utxos),
            deposits=len(deposits),
        )
        return deposits
