"""
Application context: the clients and monitor built from Settings.
"""

from dataclasses import dataclass

from .config import Settings
from .deposit_monitor import DepositMonitor
from .emily import EmilyClient
from .forwarder import DepositForwarder
from .rpc import BitcoinCoreClient


@dataclass
class Context:
    """Long-lived objects shared by the CLI commands."""

    settings: Settings
    bitcoin: BitcoinCoreClient
    emily: EmilyClient
    monitor: DepositMonitor

    @classmethod
    def from_settings(cls, settings: Settings) -> "Context":
        bitcoin = BitcoinCoreClient.from_url(
            settings.bitcoin_rpc_endpoint, timeout=settings.request_timeout
        )
        emily = EmilyClient(settings.emily_endpoint, timeout=settings.request_timeout)
        monitor = DepositMonitor(
            bitcoin,
            settings.monitored_deposits(),
            tx_cache_capacity=settings.tx_cache_capacity,
        )
        return cls(settings=settings, bitcoin=bitcoin, emily=emily, monitor=monitor)

    def forwarder(self) -> DepositForwarder:
        return DepositForwarder(
            bitcoin=self.bitcoin,
            monitor=self.monitor,
            emily=self.emily,
            polling_interval=self.settings.polling_interval,
        )

    def close(self) -> None:
        self.bitcoin.close()
        self.emily.close()
