"""
Main forwarding loop - watches the bitcoin chain tip and pushes pending
deposits to Emily.
"""

import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Protocol

import structlog

from .bitcoin import BlockRef
from .deposit_monitor import ChainDataSource, DepositMonitor
from .emily import CreateDepositRequestBody
from .errors import ChainDataError, RegistryError

logger = structlog.get_logger()


class DepositSink(Protocol):
    """Where forwarded deposits go (the Emily API)."""

    def create_deposit(self, body: CreateDepositRequestBody) -> None:
        ...


@dataclass
class ForwardResult:
    """Result of forwarding a single deposit."""

    txid: str
    vout: int
    success: bool
    error: Optional[str] = None


@dataclass
class ForwarderState:
    """Current forwarder state."""

    is_running: bool = False
    last_tip: Optional[BlockRef] = None
    last_poll_time: Optional[datetime] = None
    deposits_forwarded: int = 0
    deposits_failed: int = 0


class DepositForwarder:
    """
    Polling loop that:
    1. Fetches the bitcoin chain tip
    2. Skips the cycle if the tip has not changed
    3. Collects pending deposits from the monitor
    4. Sends each one to Emily

    A failed tip fetch or UTXO scan leaves `last_tip` untouched so the same
    tip is retried on the next interval. Failed submissions do not hold the
    tip back; the UTXO is picked up again on the next tip change as long as
    it stays unspent and unexpired.
    """

    def __init__(
        self,
        bitcoin: ChainDataSource,
        monitor: DepositMonitor,
        emily: DepositSink,
        polling_interval: float,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if polling_interval <= 0:
            raise ValueError("polling interval must be positive")

        self.bitcoin = bitcoin
        self.monitor = monitor
        self.emily = emily
        self.polling_interval = polling_interval
        self.state = ForwarderState()
        self._sleep = sleep

    def poll_once(self) -> Optional[list[ForwardResult]]:
        """
        Run one cycle.

        Returns None when the cycle was skipped (tip unchanged or chain data
        unavailable), otherwise one ForwardResult per pending deposit.
        """
        self.state.last_poll_time = datetime.now()

        try:
            chain_tip = self.bitcoin.get_chain_tip()
        except ChainDataError as e:
            logger.warning("chain_tip_fetch_failed", error=str(e))
            return None

        if self.state.last_tip == chain_tip:
            logger.debug("chain_tip_unchanged", chain_tip=str(chain_tip))
            return None

        logger.info("new_chain_tip", chain_tip=str(chain_tip))

        try:
            deposits = self.monitor.get_pending_deposits(chain_tip)
        except ChainDataError as e:
            logger.warning(
                "pending_deposits_fetch_failed",
                chain_tip=str(chain_tip),
                error=str(e),
            )
            return None

        results = [self._forward(deposit) for deposit in deposits]

        self.state.last_tip = chain_tip
        return results

    def _forward(self, deposit: CreateDepositRequestBody) -> ForwardResult:
        """Send a single deposit to Emily."""
        txid = deposit.bitcoin_txid
        vout = deposit.bitcoin_tx_output_index

        try:
            self.emily.create_deposit(deposit)
        except RegistryError as e:
            self.state.deposits_failed += 1
            logger.warning(
                "deposit_forward_failed",
                txid=txid,
                vout=vout,
                status_code=e.status_code,
                error=str(e),
            )
            return ForwardResult(txid=txid, vout=vout, success=False, error=str(e))
        except Exception as e:
            self.state.deposits_failed += 1
            logger.error(
                "deposit_forward_error",
                txid=txid,
                vout=vout,
                error=str(e),
                exc_info=True,
            )
            return ForwardResult(txid=txid, vout=vout, success=False, error=str(e))

        self.state.deposits_forwarded += 1
        logger.info("deposit_forwarded", txid=txid, vout=vout)
        return ForwardResult(txid=txid, vout=vout, success=True)

    def run(self) -> None:
        """Run the forwarder continuously."""
        self.state.is_running = True
        logger.info("forwarder_starting", polling_interval=self.polling_interval)

        first_iteration = True
        while self.state.is_running:
            if not first_iteration:
                self._sleep(self.polling_interval)
                if not self.state.is_running:
                    break
            first_iteration = False

            try:
                results = self.poll_once()
            except Exception as e:
                logger.error("poll_cycle_error", error=str(e), exc_info=True)
                continue

            if results is not None:
                logger.info(
                    "poll_cycle_complete",
                    processed=len(results),
                    forwarded=self.state.deposits_forwarded,
                    failed=self.state.deposits_failed,
                )

    def stop(self) -> None:
        """Stop the forwarder after the current cycle."""
        self.state.is_running = False
        logger.info("forwarder_stopping")
