"""
Profile Enricher

Turns newly listed symbols into symbol_master records, one symbol at a
time. Every profile request takes a rate limiter permit first.

Failure policy per symbol:
- HTTP 429: wait a fixed delay and retry while retries remain, then fall
  back to an empty profile
- transport error: fall back immediately
- undecodable body: fall back immediately

A failed enrichment never aborts the run; the symbol is still recorded with
the listing data alone.
"""

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Awaitable, Callable, Iterable, List, Optional, Tuple

from shared.enums.sync_status import SyncErrorType
from shared.models.finnhub import FinnhubProfile, FinnhubSymbol
from shared.models.symbol_master import SymbolMasterRecord
from shared.utils.logger import get_logger
from shared.utils.metrics import SyncMetrics

from .exceptions import DecodeError, RateLimitError, TransportError
from .providers.finnhub_provider import PROFILE_ENDPOINT, FinnhubProvider
from .rate_limiter import RateLimiter

logger = get_logger(__name__)

DATA_SOURCE = "Finnhub"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class EnrichmentResult:
    """Records built for the new symbols"""

    records: List[SymbolMasterRecord] = field(default_factory=list)
    fallback_symbols: List[str] = field(default_factory=list)

    @property
    def fallback_count(self) -> int:
        return len(self.fallback_symbols)


class ProfileEnricher:
    """
    Sequential, rate limited profile enrichment
    """

    def __init__(
        self,
        provider: FinnhubProvider,
        rate_limiter: RateLimiter,
        metrics: SyncMetrics,
        max_retries: int = 3,
        retry_delay_seconds: float = 2.0,
        data_source: str = DATA_SOURCE,
        sleep: Optional[Callable[[float], Awaitable[None]]] = None,
        now: Optional[Callable[[], datetime]] = None
    ):
        self.provider = provider
        self.rate_limiter = rate_limiter
        self.metrics = metrics
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds
        self.data_source = data_source
        self._sleep = sleep or asyncio.sleep
        self._now = now or _utcnow

    async def fetch_profile(self, symbol: str) -> Tuple[FinnhubProfile, bool]:
        """
        Fetch one profile applying the retry/fallback policy

        Returns:
            Tuple (profile, used_fallback)
        """
        await self.rate_limiter.acquire()

        retries_left = self.max_retries
        attempt = 0

        while True:
            attempt += 1
            try:
                profile = await self.provider.fetch_profile(symbol)

            except RateLimitError:
                self.metrics.error(SyncErrorType.RATE_LIMIT)
                if retries_left == 0:
                    logger.error(
                        "profile_retries_exhausted",
                        symbol=symbol,
                        attempts=attempt
                    )
                    return FinnhubProfile.fallback(), True

                logger.warning(
                    "profile_rate_limited",
                    symbol=symbol,
                    attempt=attempt,
                    max_retries=self.max_retries,
                    retry_in_seconds=self.retry_delay_seconds
                )
                await self._sleep(self.retry_delay_seconds)
                retries_left -= 1
                continue

            except TransportError as e:
                self.metrics.error(SyncErrorType.API_FETCH)
                logger.error("profile_fetch_failed", symbol=symbol, error=str(e))
                return FinnhubProfile.fallback(), True

            except DecodeError as e:
                self.metrics.error(SyncErrorType.API_PARSE)
                logger.error("profile_parse_failed", symbol=symbol, error=str(e))
                return FinnhubProfile.fallback(), True

            self.metrics.api_call(PROFILE_ENDPOINT)
            return profile, False

    async def enrich_symbol(self, raw: FinnhubSymbol) -> Tuple[SymbolMasterRecord, bool]:
        profile, used_fallback = await self.fetch_profile(raw.symbol)
        record = SymbolMasterRecord.from_finnhub(
            raw,
            profile,
            data_source=self.data_source,
            now=self._now()
        )
        return record, used_fallback

    async def enrich(self, new_symbols: Iterable[FinnhubSymbol]) -> EnrichmentResult:
        """
        Build one record per new symbol, strictly one symbol at a time
        """
        result = EnrichmentResult()
        pending = list(new_symbols)

        for index, raw in enumerate(pending, start=1):
            logger.info("processing_symbol", symbol=raw.symbol, position=index, total=len(pending))
            record, used_fallback = await self.enrich_symbol(raw)
            result.records.append(record)
            if used_fallback:
                result.fallback_symbols.append(raw.symbol)

        logger.info(
            "enrichment_completed",
            records=len(result.records),
            fallbacks=result.fallback_count
        )
        return result
