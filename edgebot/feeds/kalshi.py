"""
Kalshi trade API client.

Every request is signed with RSA-PSS (SHA-256) over
``timestamp + METHOD + path`` and carries the ``KALSHI-ACCESS-*`` headers.
Amounts come back in cents; balances are converted to dollars here.

API Docs: https://trading-api.readme.io/reference
"""

import base64
import ssl
import time
from pathlib import Path
from typing import Any, Optional
from urllib.parse import urlparse

import certifi
import httpx
import structlog
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding
from pydantic import ValidationError

from config.settings import ConfigurationError, KalshiSettings
from edgebot.engine.identity import GameIdentityResolver
from edgebot.feeds.base import VenueClient
from edgebot.models.schemas import (
    MarketQuote,
    MarketSnapshot,
    Order,
    OrderSpec,
    OrderSubmission,
    Position,
    RawMarket,
    RawOrder,
    RawPosition,
    Side,
)

logger = structlog.get_logger()


# Title fragments of season-long and novelty markets that share game series
PROPOSITION_MARKERS = (
    "WILL ",
    "WHO ",
    "BEFORE ",
    "APPROVE",
    "OWNER",
    "COVER ATHLETE",
    "FRANCHISE",
)


def is_proposition(title: str) -> bool:
    title_upper = title.upper()
    return any(
        title_upper.startswith(marker) or f" {marker}" in title_upper
        for marker in PROPOSITION_MARKERS
    )


def build_quotes(
    markets: list[RawMarket],
    resolver: GameIdentityResolver,
) -> list[MarketQuote]:
    """
    Convert raw markets into quotes.

    Propositions, unpriced markets and symbols with no resolvable game
    are dropped.
    """
    quotes = []
    for market in markets:
        if is_proposition(market.title):
            continue
        price = market.display_price
        if price is None:
            continue
        identity = resolver.resolve(market.ticker, market.event_ticker, market.title)
        if identity is None:
            logger.debug("Dropping unresolvable market", ticker=market.ticker)
            continue
        quotes.append(MarketQuote(
            identity=identity,
            symbol=market.ticker,
            price=price,
            yes_bid=market.yes_bid or None,
            yes_ask=market.yes_ask or None,
            title=market.title,
        ))
    return quotes


def load_private_key(settings: KalshiSettings):
    """Load the RSA signing key from inline PEM or a file."""
    if settings.private_key_pem:
        pem = settings.private_key_pem.replace("\\n", "\n").encode()
    elif settings.private_key_path:
        pem = Path(settings.private_key_path).expanduser().read_bytes()
    else:
        raise ConfigurationError("No Kalshi private key configured")
    return serialization.load_pem_private_key(pem, password=None)


class KalshiClient(VenueClient):
    """
    Async Kalshi client.

    Usage:
        client = KalshiClient(settings.kalshi)
        await client.start()
        markets = await client.get_markets("KXNBAGAME")
        await client.close()
    """

    def __init__(
        self,
        settings: KalshiSettings,
        private_key: Any = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings
        self.base_url = settings.api_base_url.rstrip("/")
        self._sign_prefix = urlparse(self.base_url).path
        self._private_key = private_key if private_key is not None else load_private_key(settings)
        self._transport = transport

        self.logger = logger.bind(component="kalshi_client")
        self._http_client: Optional[httpx.AsyncClient] = None

        self._error_count = 0

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        if self._http_client is not None:
            return
        if self._transport is not None:
            self._http_client = httpx.AsyncClient(
                transport=self._transport,
                timeout=self.settings.request_timeout_seconds,
            )
            return
        ssl_context = ssl.create_default_context(cafile=certifi.where())
        self._http_client = httpx.AsyncClient(
            verify=ssl_context,
            timeout=self.settings.request_timeout_seconds,
            headers={"Accept": "application/json"},
        )

    async def close(self) -> None:
        if self._http_client:
            await self._http_client.aclose()
            self._http_client = None

    # =========================================================================
    # Signing
    # =========================================================================

    def _sign(self, text: str) -> str:
        signature = self._private_key.sign(
            text.encode("utf-8"),
            padding.PSS(
                mgf=padding.MGF1(hashes.SHA256()),
                salt_length=padding.PSS.DIGEST_LENGTH,
            ),
            hashes.SHA256(),
        )
        return base64.b64encode(signature).decode("utf-8")

    def _headers(self, method: str, path: str) -> dict[str, str]:
        timestamp = str(int(time.time() * 1000))
        signed_path = self._sign_prefix + path.split("?")[0]
        return {
            "Content-Type": "application/json",
            "KALSHI-ACCESS-KEY": self.settings.api_key_id,
            "KALSHI-ACCESS-SIGNATURE": self._sign(timestamp + method + signed_path),
            "KALSHI-ACCESS-TIMESTAMP": timestamp,
        }

    # =========================================================================
    # API Calls
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[dict] = None,
        body: Optional[dict] = None,
    ) -> tuple[Optional[dict], Optional[str]]:
        """Signed request; returns (json, None) on success or (None, error)."""
        if self._http_client is None:
            await self.start()

        try:
            response = await self._http_client.request(
                method,
                f"{self.base_url}{path}",
                params=params,
                json=body,
                headers=self._headers(method, path),
            )
        except httpx.HTTPError as e:
            self._error_count += 1
            self.logger.error("Request failed", method=method, path=path, error=str(e))
            return None, str(e)

        if response.status_code in (200, 201):
            try:
                return response.json(), None
            except ValueError as e:
                self._error_count += 1
                self.logger.error("Invalid JSON response", path=path, error=str(e))
                return None, "invalid JSON response"

        self._error_count += 1
        self.logger.warning(
            "API error",
            method=method,
            path=path,
            status=response.status_code,
            body=response.text[:200],
        )
        return None, f"HTTP {response.status_code}: {response.text[:200]}"

    async def get_markets(self, series_ticker: str) -> list[RawMarket]:
        markets: list[RawMarket] = []
        cursor: Optional[str] = None

        while True:
            params = {
                "series_ticker": series_ticker,
                "status": "open",
                "limit": self.settings.markets_page_limit,
            }
            if cursor:
                params["cursor"] = cursor

            data, _ = await self._request("GET", "/markets", params=params)
            if not data:
                break

            for raw in data.get("markets", []):
                try:
                    markets.append(RawMarket.model_validate(raw))
                except ValidationError:
                    self.logger.debug("Skipping malformed market", ticker=raw.get("ticker"))

            cursor = data.get("cursor")
            if not cursor:
                break

        self.logger.info("Fetched markets", series=series_ticker, count=len(markets))
        return markets

    async def get_market(self, symbol: str) -> Optional[MarketSnapshot]:
        data, _ = await self._request("GET", f"/markets/{symbol}")
        if not data or "market" not in data:
            return None
        try:
            return RawMarket.model_validate(data["market"]).to_snapshot()
        except ValidationError as e:
            self.logger.warning("Malformed market payload", symbol=symbol, error=str(e))
            return None

    async def get_balance(self) -> Optional[float]:
        """Available balance in dollars."""
        data, _ = await self._request("GET", "/portfolio/balance")
        if not data or "balance" not in data:
            return None
        return data["balance"] / 100

    async def get_positions(self) -> Optional[list[Position]]:
        data, _ = await self._request("GET", "/portfolio/positions")
        if data is None:
            return None
        positions = []
        for raw in data.get("market_positions", []):
            try:
                positions.append(RawPosition.model_validate(raw).to_position())
            except ValidationError:
                self.logger.debug("Skipping malformed position", ticker=raw.get("ticker"))
        return positions

    async def get_orders(self, status: Optional[str] = None) -> Optional[list[Order]]:
        params = {"status": status} if status else None
        data, _ = await self._request("GET", "/portfolio/orders", params=params)
        if data is None:
            return None
        orders = []
        for raw in data.get("orders", []):
            try:
                orders.append(RawOrder.model_validate(raw).to_order())
            except ValidationError:
                self.logger.debug("Skipping malformed order", order_id=raw.get("order_id"))
        return orders

    async def create_order(self, spec: OrderSpec) -> OrderSubmission:
        body = {
            "ticker": spec.symbol,
            "client_order_id": spec.client_order_id,
            "side": spec.side.value,
            "action": spec.action.value,
            "count": spec.quantity,
            "type": "limit",
        }
        price_field = "yes_price" if spec.side == Side.YES else "no_price"
        body[price_field] = spec.price

        data, error = await self._request("POST", "/portfolio/orders", body=body)
        if data is None:
            return OrderSubmission(success=False, error=error)

        order = data.get("order") or {}
        return OrderSubmission(success=True, order_id=order.get("order_id"))

    def get_metrics(self) -> dict:
        return {"errors": self._error_count, "connected": self._http_client is not None}
