"""
Sync Symbol Master Task
Reconciles symbol_master with the Finnhub symbol universe

Steps:
1. Fetch the full universe for the target market
2. Read the active symbols from the database
3. Compute new and delisted symbols
4. Enrich new symbols with their company profile (rate limited)
5. Upsert new records and mark delisted symbols in one transaction
6. Check that the active count is close to the universe size
7. Append the run outcome to job_status

Safe to re-run: every write is keyed by symbol, so a run interrupted
before step 5 commits leaves nothing behind and the next run redoes it.
"""

from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Optional

from shared.enums.sync_status import JobStatus
from shared.models.symbol_master import JobRun
from shared.utils.logger import get_logger
from shared.utils.metrics import SyncMetrics

from ..enricher import ProfileEnricher
from ..exceptions import EmptyUniverseError
from ..persistence import SymbolMasterRepository
from ..providers.finnhub_provider import SYMBOL_ENDPOINT, FinnhubProvider
from ..reconciler import reconcile

logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class SyncSummary:
    """Counts describing one completed run"""

    market: str
    universe_size: int
    new_symbols: int
    delisted_symbols: int
    fallback_profiles: int
    active_symbols: int
    validation_passed: bool

    @property
    def details(self) -> str:
        return f"Added {self.new_symbols} new, delisted {self.delisted_symbols}"

    def as_dict(self) -> Dict[str, Any]:
        return asdict(self)


class SyncSymbolMasterTask:
    """
    Task: keep symbol_master in line with the provider universe

    A fatal error (universe fetch/decode, any database failure) stops the
    run, records a failure row in job_status and is re-raised. Per-symbol
    enrichment problems are absorbed by the enricher.
    """

    name = "symbol_sync"

    def __init__(
        self,
        provider: FinnhubProvider,
        repository: SymbolMasterRepository,
        enricher: ProfileEnricher,
        metrics: SyncMetrics,
        market: str = "US",
        active_ratio_threshold: float = 0.9,
        now: Optional[Callable[[], datetime]] = None
    ):
        self.provider = provider
        self.repository = repository
        self.enricher = enricher
        self.metrics = metrics
        self.market = market
        self.active_ratio_threshold = active_ratio_threshold
        self._now = now or _utcnow

    async def execute(self) -> SyncSummary:
        """
        Run one reconciliation

        Returns:
            SyncSummary with the run counts
        """
        started_at = self._now()
        logger.info("symbol_sync_starting", market=self.market, started_at=started_at.isoformat())

        try:
            summary = await self._run(started_at)
        except Exception as e:
            logger.error(
                "symbol_sync_failed",
                market=self.market,
                error=str(e),
                error_type=type(e).__name__
            )
            await self._record_failure(started_at, e)
            raise

        self.metrics.job_completed()
        logger.info("symbol_sync_completed", **summary.as_dict())
        return summary

    async def _run(self, started_at: datetime) -> SyncSummary:
        # 1. Universe
        universe = await self.provider.fetch_universe(self.market)
        if not universe:
            # Reconciling against nothing would delist every active symbol
            raise EmptyUniverseError(f"provider returned an empty universe for {self.market}")
        self.metrics.api_call(SYMBOL_ENDPOINT)
        self.metrics.set_total_symbols(len(universe))

        # 2-3. Differences against the active set
        active_symbols = await self.repository.get_active_symbols()
        result = reconcile(universe, active_symbols)
        self.metrics.set_new_symbols(len(result.new_symbols))
        self.metrics.set_delisted_symbols(len(result.delisted_symbols))

        logger.info(
            "sync_differences",
            universe=len(universe),
            active=len(active_symbols),
            new_count=len(result.new_symbols),
            delisted_count=len(result.delisted_symbols)
        )

        # 4. Enrichment
        enrichment = await self.enricher.enrich(result.new_symbols)

        # 5. Writes
        await self.repository.apply_changes(
            enrichment.records,
            result.delisted_symbols,
            now=self._now()
        )

        # 6. Advisory validation
        validation = await self.repository.validate_active_count(
            len(universe),
            ratio=self.active_ratio_threshold
        )

        summary = SyncSummary(
            market=self.market,
            universe_size=len(universe),
            new_symbols=len(enrichment.records),
            delisted_symbols=len(result.delisted_symbols),
            fallback_profiles=enrichment.fallback_count,
            active_symbols=validation.active_count,
            validation_passed=validation.passed,
        )

        # 7. Outcome
        await self.repository.record_job_run(JobRun(
            job_name=self.name,
            last_run=started_at,
            status=JobStatus.SUCCESS,
            details=summary.details,
        ))

        return summary

    async def _record_failure(self, started_at: datetime, error: Exception) -> None:
        """Best effort failure row; never hides the original error"""
        try:
            await self.repository.record_job_run(JobRun(
                job_name=self.name,
                last_run=started_at,
                status=JobStatus.FAILURE,
                details=f"{type(error).__name__}: {error}",
            ))
        except Exception as write_error:
            logger.error(
                "job_failure_record_failed",
                error=str(write_error),
                error_type=type(write_error).__name__
            )
