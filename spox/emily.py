"""
Emily API client for registering deposits.
"""

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, Field

from .errors import RegistryError

logger = structlog.get_logger()

REQUEST_TIMEOUT = 10.0


class CreateDepositRequestBody(BaseModel):
    """Body of `POST /deposit` on the Emily API."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    bitcoin_txid: str = Field(alias="bitcoinTxid")
    bitcoin_tx_output_index: int = Field(alias="bitcoinTxOutputIndex", ge=0)
    deposit_script: str = Field(alias="depositScript")
    reclaim_script: str = Field(alias="reclaimScript")
    transaction_hex: str = Field(alias="transactionHex")


class EmilyClient:
    """Client for the Emily deposit API."""

    def __init__(self, base_url: str, timeout: float = REQUEST_TIMEOUT):
        self.base_url = base_url.rstrip("/")
        self.client = httpx.Client(timeout=timeout)

    def create_deposit(self, body: CreateDepositRequestBody) -> None:
        """
        Register a deposit with Emily.

        Emily is idempotent on (txid, output index), so re-sending a deposit
        it already knows is harmless.
        """
        url = f"{self.base_url}/deposit"
        try:
            response = self.client.post(url, json=body.model_dump(by_alias=True))
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise RegistryError(
                f"Emily rejected deposit: {e.response.status_code} {e.response.text}",
                status_code=e.response.status_code,
            ) from e
        except httpx.HTTPError as e:
            raise RegistryError(f"request to {url} failed: {e}") from e

        logger.debug(
            "emily_deposit_created",
            txid=body.bitcoin_txid,
            vout=body.bitcoin_tx_output_index,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()
