"""Investor side of the investment flow.

The investor pays first (a USDC transfer signed with their own key) and only
then asks the API to record the shares. If the transfer settled but the API
call fails, nothing is rolled back: the outcome is flagged for support with
the transaction hash.
"""
import asyncio
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, Optional

import httpx
from structlog import get_logger
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception

from marketplace.config import settings
from marketplace.services import chain

logger = get_logger()

SHARE_PRICE_PLACES = Decimal("0.000001")


class InvestmentError(Exception):
    pass


class TransferFailed(InvestmentError):
    def __init__(self, message: str, tx_hash: Optional[str] = None):
        super().__init__(message)
        self.tx_hash = tx_hash


@dataclass
class InvestmentOutcome:
    tx_hash: str
    recorded: bool
    message: str
    needs_support: bool = False


def share_price(prop: Dict[str, Any]) -> Decimal:
    total = prop.get("shares") or 0
    if total <= 0:
        raise InvestmentError("Property has no shares")
    return Decimal(str(prop["price"])) / Decimal(total)


def investment_amount(prop: Dict[str, Any], shares: int) -> Decimal:
    return (share_price(prop) * shares).quantize(SHARE_PRICE_PLACES)


def support_message(tx_hash: str, reason: str) -> str:
    return (
        f"Investment completed on blockchain ({tx_hash}), but {reason}. "
        "Your USDC transfer succeeded; please contact support so the investment can be recorded."
    )


class InvestmentClient:
    def __init__(self, private_key: str, api_base_url: Optional[str] = None,
                 http_client: Optional[httpx.AsyncClient] = None, w3: Optional[Web3] = None):
        self.private_key = private_key
        self.api_base_url = (api_base_url or settings.API_BASE_URL).rstrip("/")
        self._http = http_client
        self.w3 = w3 or chain.get_web3()
        self.address = self.w3.eth.account.from_key(private_key).address

    def _client(self) -> httpx.AsyncClient:
        if self._http is None:
            self._http = httpx.AsyncClient(base_url=self.api_base_url, timeout=settings.REQUEST_TIMEOUT_SECONDS)
        return self._http

    async def aclose(self):
        if self._http is not None:
            await self._http.aclose()

    async def fetch_property(self, property_id: str) -> Dict[str, Any]:
        response = await self._client().get(f"/api/properties/{property_id}")
        body = response.json()
        if response.status_code != 200 or not body.get("success"):
            raise InvestmentError(body.get("error") or "Property not found")
        return body["data"]

    async def transfer(self, amount: Decimal) -> str:
        units = chain.to_token_units(amount)
        try:
            tx_hash = await asyncio.to_thread(
                chain.send_token_transfer, self.w3, self.private_key, settings.TREASURY_ADDRESS, units
            )
        except (Web3Exception, ValueError, OSError) as e:
            logger.error("USDC transfer not submitted", error=str(e))
            raise InvestmentError(f"USDC transfer could not be submitted: {e}") from e

        # From here on the transfer may settle, so every failure carries the hash.
        logger.info("Waiting for transaction confirmation", tx_hash=tx_hash)
        try:
            receipt = await asyncio.to_thread(chain.wait_for_receipt, self.w3, tx_hash)
        except TimeExhausted as e:
            logger.error("USDC transfer not confirmed in time", tx_hash=tx_hash)
            raise TransferFailed(
                "USDC transfer was not confirmed in time; check it on the block explorer and contact "
                "support if it settled",
                tx_hash=tx_hash,
            ) from e
        except (Web3Exception, ValueError, OSError) as e:
            logger.error("USDC receipt lookup failed", tx_hash=tx_hash, error=str(e))
            raise TransferFailed(f"Could not confirm USDC transfer: {e}", tx_hash=tx_hash) from e

        if receipt["status"] != 1:
            raise TransferFailed("USDC transfer reverted", tx_hash=tx_hash)
        logger.info("USDC transfer confirmed", tx_hash=tx_hash, block_number=receipt["blockNumber"])
        return tx_hash

    async def record(self, prop: Dict[str, Any], shares: int, amount: Decimal, tx_hash: str) -> Dict[str, Any]:
        response = await self._client().post(
            "/api/investments",
            headers={"X-Wallet-Address": self.address},
            json={
                "propertyId": prop["id"],
                "shares": shares,
                "amountInvested": str(amount),
                "sharePrice": str(share_price(prop).quantize(SHARE_PRICE_PLACES)),
                "transactionHash": tx_hash,
            },
        )
        return response.json()

    async def invest(self, property_id: str, shares: int) -> InvestmentOutcome:
        if shares <= 0:
            raise InvestmentError("Shares must be a positive whole number")

        prop = await self.fetch_property(property_id)
        available = prop.get("availableShares") or 0
        if shares > available:
            raise InvestmentError(f"Only {available} shares available")

        amount = investment_amount(prop, shares)
        tx_hash = await self.transfer(amount)

        try:
            body = await self.record(prop, shares, amount, tx_hash)
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Backend recording failed", tx_hash=tx_hash, error=str(e))
            return InvestmentOutcome(
                tx_hash=tx_hash,
                recorded=False,
                message=support_message(tx_hash, "failed to record in backend"),
                needs_support=True,
            )

        if not body.get("success"):
            logger.error("Backend rejected investment", tx_hash=tx_hash, error=body.get("error"))
            return InvestmentOutcome(
                tx_hash=tx_hash,
                recorded=False,
                message=support_message(tx_hash, f"there was a backend error: {body.get('error')}"),
                needs_support=True,
            )

        return InvestmentOutcome(
            tx_hash=tx_hash,
            recorded=True,
            message="Investment successful! Your USDC has been transferred and recorded.",
        )
