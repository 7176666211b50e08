"""
sPoX

Watches the bitcoin UTXO set for funds sent to pre-registered sBTC deposit
addresses and forwards each still-valid deposit to the Emily API.

Usage:
    # List deposits pending at the current chain tip
    spox pending --config spox.toml

    # Run the forwarder
    spox run --config spox.toml

    # Run a single cycle (for testing)
    spox run --once --config spox.toml
"""

__version__ = "0.1.0"

from .bitcoin import BlockRef, Utxo
from .cache import LRUCache
from .config import DepositConfig, Settings
from .deposit_monitor import DepositMonitor, DepositRegistry, MonitoredDeposit
from .deposits import DepositScriptInputs, ReclaimScriptInputs
from .emily import CreateDepositRequestBody, EmilyClient
from .forwarder import DepositForwarder
from .rpc import BitcoinCoreClient

__all__ = [
    "__version__",
    "BlockRef",
    "Utxo",
    "LRUCache",
    "DepositConfig",
    "Settings",
    "DepositMonitor",
    "DepositRegistry",
    "MonitoredDeposit",
    "DepositScriptInputs",
    "ReclaimScriptInputs",
    "CreateDepositRequestBody",
    "EmilyClient",
    "DepositForwarder",
    "BitcoinCoreClient",
]
