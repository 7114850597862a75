"""
Finnhub Provider

Client for the Finnhub REST API: exchange symbol universe and company
profiles. Maps every failure onto TransportError, DecodeError or
RateLimitError so callers decide what is fatal and what is retried.
"""

from typing import Any, Dict, List

import httpx
from pydantic import TypeAdapter, ValidationError

from shared.models.finnhub import FinnhubProfile, FinnhubSymbol
from shared.utils.logger import get_logger

from ..exceptions import DecodeError, RateLimitError, TransportError

logger = get_logger(__name__)

SYMBOL_ENDPOINT = "symbol"
PROFILE_ENDPOINT = "profile2"

_universe_adapter = TypeAdapter(List[FinnhubSymbol])


class FinnhubProvider:
    """
    Provider for Finnhub /stock/symbol and /stock/profile2
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_key: str,
        base_url: str = "https://finnhub.io/api/v1"
    ):
        self.client = client
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")

    async def _get(self, endpoint: str, params: Dict[str, Any]) -> httpx.Response:
        url = f"{self.base_url}/stock/{endpoint}"
        try:
            return await self.client.get(url, params={**params, "token": self.api_key})
        except httpx.TimeoutException as e:
            raise TransportError(f"timeout calling {endpoint}: {e}") from e
        except httpx.HTTPError as e:
            raise TransportError(f"request to {endpoint} failed: {e}") from e

    async def fetch_universe(self, market: str) -> List[FinnhubSymbol]:
        """
        Get every symbol Finnhub lists for a market

        Endpoint: GET /stock/symbol?exchange={market}

        Raises:
            TransportError: the call did not complete with a 2xx status
            DecodeError: the body is not a list of symbol objects
        """
        response = await self._get(SYMBOL_ENDPOINT, {"exchange": market})

        if response.status_code != 200:
            logger.error(
                "finnhub_universe_bad_status",
                market=market,
                status_code=response.status_code
            )
            raise TransportError(
                f"symbol universe request returned HTTP {response.status_code}",
                status_code=response.status_code
            )

        try:
            symbols = _universe_adapter.validate_python(response.json())
        except (ValueError, ValidationError) as e:
            logger.error("finnhub_universe_decode_failed", market=market, error=str(e))
            raise DecodeError(f"could not decode symbol universe: {e}") from e

        logger.info("finnhub_universe_fetched", market=market, count=len(symbols))
        return symbols

    async def fetch_profile(self, symbol: str) -> FinnhubProfile:
        """
        Get the company profile of one symbol

        Endpoint: GET /stock/profile2?symbol={symbol}

        Raises:
            RateLimitError: HTTP 429
            TransportError: connection error, timeout or another non-2xx status
            DecodeError: the body is not a profile object
        """
        response = await self._get(PROFILE_ENDPOINT, {"symbol": symbol})

        if response.status_code == 429:
            raise RateLimitError(f"rate limited fetching profile for {symbol}")

        if response.status_code != 200:
            raise TransportError(
                f"profile request for {symbol} returned HTTP {response.status_code}",
                status_code=response.status_code
            )

        try:
            return FinnhubProfile.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            raise DecodeError(f"could not decode profile for {symbol}: {e}") from e
