"""
Persistence Coordinator

All reads and writes of symbol_master and job_status. Rows in
symbol_master are never deleted; delisting only flips is_active.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, List, Set

from asyncpg import Connection

from shared.enums.sync_status import SyncErrorType
from shared.models.symbol_master import JobRun, SymbolMasterRecord
from shared.utils.logger import get_logger
from shared.utils.metrics import SyncMetrics
from shared.utils.postgres_client import PostgresClient

logger = get_logger(__name__)


# =============================================
# SQL
# =============================================

CREATE_SCHEMA_SQL = """
    CREATE TABLE IF NOT EXISTS symbol_master (
        symbol        TEXT PRIMARY KEY,
        exchange      TEXT,
        name          TEXT,
        sector        TEXT,
        industry      TEXT,
        currency      TEXT,
        country       TEXT,
        ipo_date      DATE,
        market_cap    BIGINT,
        is_active     BOOLEAN NOT NULL DEFAULT TRUE,
        data_source   TEXT NOT NULL,
        last_updated  TIMESTAMPTZ NOT NULL
    );
    CREATE INDEX IF NOT EXISTS idx_symbol_master_is_active
        ON symbol_master (is_active);
    CREATE TABLE IF NOT EXISTS job_status (
        id        BIGSERIAL PRIMARY KEY,
        job_name  TEXT NOT NULL,
        last_run  TIMESTAMPTZ NOT NULL,
        status    TEXT NOT NULL,
        details   TEXT
    );
"""

SELECT_ACTIVE_SYMBOLS_SQL = """
    SELECT symbol
    FROM symbol_master
    WHERE is_active = TRUE
"""

UPSERT_SYMBOL_SQL = """
    INSERT INTO symbol_master (
        symbol, exchange, name, sector, industry, currency, country,
        ipo_date, market_cap, is_active, data_source, last_updated
    )
    VALUES ($1, $2, $3, $4, $5, $6, $7, $8, $9, $10, $11, $12)
    ON CONFLICT (symbol) DO UPDATE SET
        exchange = EXCLUDED.exchange,
        name = EXCLUDED.name,
        sector = EXCLUDED.sector,
        industry = EXCLUDED.industry,
        currency = EXCLUDED.currency,
        country = EXCLUDED.country,
        ipo_date = EXCLUDED.ipo_date,
        market_cap = EXCLUDED.market_cap,
        is_active = EXCLUDED.is_active,
        data_source = EXCLUDED.data_source,
        last_updated = EXCLUDED.last_updated
"""

MARK_DELISTED_SQL = """
    UPDATE symbol_master
    SET is_active = FALSE, last_updated = $1
    WHERE symbol = ANY($2::text[])
"""

COUNT_ACTIVE_SQL = """
    SELECT COUNT(*) AS total
    FROM symbol_master
    WHERE is_active = TRUE
"""

INSERT_JOB_STATUS_SQL = """
    INSERT INTO job_status (job_name, last_run, status, details)
    VALUES ($1, $2, $3, $4)
"""


@dataclass(frozen=True)
class ValidationOutcome:
    """Result of the post-write active count check"""

    active_count: int
    universe_size: int
    minimum_expected: int

    @property
    def passed(self) -> bool:
        return self.active_count >= self.minimum_expected


class SymbolMasterRepository:
    """
    Reads and writes for the symbol sync job
    """

    def __init__(self, db: PostgresClient, metrics: SyncMetrics):
        self.db = db
        self.metrics = metrics

    async def ensure_schema(self) -> None:
        """Create symbol_master and job_status if they do not exist"""
        await self.db.execute(CREATE_SCHEMA_SQL)
        logger.info("schema_ensured", tables=["symbol_master", "job_status"])

    async def get_active_symbols(self) -> Set[str]:
        """Symbols currently marked active"""
        rows = await self.db.fetch(SELECT_ACTIVE_SYMBOLS_SQL)
        return {row["symbol"] for row in rows}

    # =============================================
    # WRITES
    # =============================================

    async def upsert_records(self, conn: Connection, records: List[SymbolMasterRecord]) -> int:
        """Insert or overwrite every record on the given connection"""
        if not records:
            return 0
        await conn.executemany(UPSERT_SYMBOL_SQL, [record.as_row() for record in records])
        return len(records)

    async def mark_delisted(self, conn: Connection, symbols: Iterable[str], now: datetime) -> int:
        """Flip is_active off for every symbol in one set-based update"""
        batch = sorted(symbols)
        if not batch:
            return 0
        await conn.execute(MARK_DELISTED_SQL, now, batch)
        return len(batch)

    async def apply_changes(
        self,
        records: List[SymbolMasterRecord],
        delisted_symbols: Iterable[str],
        now: datetime
    ) -> None:
        """
        Upsert new records and apply delistings in a single transaction

        Either every change is committed or none is. Errors propagate.
        """
        delisted = sorted(delisted_symbols)

        async with self.db.transaction() as conn:
            upserted = await self.upsert_records(conn, records)
            deactivated = await self.mark_delisted(conn, delisted, now)

        logger.info("symbol_master_changes_committed", upserted=upserted, delisted=deactivated)

    async def record_job_run(self, run: JobRun) -> None:
        """Append one job_status row"""
        await self.db.execute(
            INSERT_JOB_STATUS_SQL,
            run.job_name,
            run.last_run,
            str(run.status),
            run.details
        )
        logger.info("job_status_recorded", job_name=run.job_name, status=str(run.status))

    # =============================================
    # VALIDATION
    # =============================================

    async def count_active(self) -> int:
        total = await self.db.fetchval(COUNT_ACTIVE_SQL)
        return int(total or 0)

    async def validate_active_count(self, universe_size: int, ratio: float = 0.9) -> ValidationOutcome:
        """
        Compare the active count with the fetched universe size

        Advisory only: a low count is logged and counted, never raised.
        """
        active_count = await self.count_active()
        self.metrics.set_active_symbols(active_count)

        outcome = ValidationOutcome(
            active_count=active_count,
            universe_size=universe_size,
            minimum_expected=int(universe_size * ratio),
        )

        if not outcome.passed:
            logger.error(
                "active_symbols_below_expected",
                active=active_count,
                expected=universe_size,
                minimum=outcome.minimum_expected
            )
            self.metrics.error(SyncErrorType.DATA_VALIDATION)

        return outcome
