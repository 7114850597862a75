"""
Pytest configuration and fixtures for Symbol Sync tests.
"""

import copy
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional

import httpx
import pytest
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.metrics.export import InMemoryMetricReader

from shared.models.finnhub import FinnhubSymbol
from shared.utils.metrics import SyncMetrics
from services.symbol_sync.persistence import (
    COUNT_ACTIVE_SQL,
    CREATE_SCHEMA_SQL,
    INSERT_JOB_STATUS_SQL,
    MARK_DELISTED_SQL,
    SELECT_ACTIVE_SYMBOLS_SQL,
    UPSERT_SYMBOL_SQL,
)

BASE_URL = "https://finnhub.test/api/v1"
FIXED_NOW = datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)

SYMBOL_MASTER_COLUMNS = (
    "symbol", "exchange", "name", "sector", "industry", "currency", "country",
    "ipo_date", "market_cap", "is_active", "data_source", "last_updated",
)


# =============================================
# METRICS
# =============================================

class MetricsRecorder:
    """SyncMetrics backed by an in-memory OpenTelemetry reader."""

    def __init__(self):
        self.reader = InMemoryMetricReader()
        self.provider = MeterProvider(metric_readers=[self.reader])
        self.metrics = SyncMetrics.from_provider(self.provider)
        self._seen: Dict[tuple, float] = {}

    def _collect(self) -> None:
        data = self.reader.get_metrics_data()
        if data is None:
            return
        for resource_metrics in data.resource_metrics:
            for scope_metrics in resource_metrics.scope_metrics:
                for metric in scope_metrics.metrics:
                    for point in metric.data.data_points:
                        attributes = frozenset(dict(point.attributes or {}).items())
                        self._seen[(metric.name, attributes)] = point.value

    def value(self, name: str, **attributes: Any) -> Optional[float]:
        self._collect()
        return self._seen.get((name, frozenset(attributes.items())))

    def errors(self, error_type: str) -> float:
        return self.value("symbol_sync_errors", type=error_type) or 0


@pytest.fixture
def recorder() -> MetricsRecorder:
    return MetricsRecorder()


@pytest.fixture
def metrics(recorder: MetricsRecorder) -> SyncMetrics:
    return recorder.metrics


# =============================================
# DATABASE
# =============================================

class FakeConnection:
    """Connection handed out inside FakeDatabase.transaction()."""

    def __init__(self, db: "FakeDatabase"):
        self.db = db

    async def executemany(self, query: str, args: List[tuple]) -> None:
        self.db._check(query)
        assert query == UPSERT_SYMBOL_SQL, "unexpected bulk statement"
        for row in args:
            record = dict(zip(SYMBOL_MASTER_COLUMNS, row))
            self.db.symbol_master[record["symbol"]] = record

    async def execute(self, query: str, *args) -> str:
        self.db._check(query)
        assert query == MARK_DELISTED_SQL, "unexpected statement in transaction"
        now, symbols = args
        updated = 0
        for symbol in symbols:
            row = self.db.symbol_master.get(symbol)
            if row is not None:
                row["is_active"] = False
                row["last_updated"] = now
                updated += 1
        return f"UPDATE {updated}"


class FakeDatabase:
    """
    In-memory stand-in for PostgresClient.

    Understands exactly the statements SymbolMasterRepository issues.
    Set `fail_on` to one of those statements to make it raise.
    """

    def __init__(self):
        self.symbol_master: Dict[str, Dict[str, Any]] = {}
        self.job_status: List[Dict[str, Any]] = []
        self.fail_on: Optional[str] = None
        self.schema_created = False
        self.transactions = 0
        self.rollbacks = 0

    def seed(self, symbol: str, is_active: bool = True, **columns: Any) -> None:
        row = {column: None for column in SYMBOL_MASTER_COLUMNS}
        row.update(
            symbol=symbol,
            is_active=is_active,
            data_source="Finnhub",
            last_updated=datetime(2024, 1, 1, tzinfo=timezone.utc),
        )
        row.update(columns)
        self.symbol_master[symbol] = row

    def active(self) -> set:
        return {symbol for symbol, row in self.symbol_master.items() if row["is_active"]}

    def _check(self, query: str) -> None:
        if self.fail_on is not None and query == self.fail_on:
            raise RuntimeError("database unavailable")

    async def fetch(self, query: str, *args) -> List[Dict[str, Any]]:
        self._check(query)
        assert query == SELECT_ACTIVE_SYMBOLS_SQL
        return [{"symbol": symbol} for symbol in sorted(self.active())]

    async def fetchval(self, query: str, *args) -> Any:
        self._check(query)
        assert query == COUNT_ACTIVE_SQL
        return len(self.active())

    async def execute(self, query: str, *args) -> str:
        self._check(query)
        if query == INSERT_JOB_STATUS_SQL:
            job_name, last_run, status, details = args
            self.job_status.append({
                "job_name": job_name,
                "last_run": last_run,
                "status": status,
                "details": details,
            })
            return "INSERT 0 1"
        if query == CREATE_SCHEMA_SQL:
            self.schema_created = True
            return "CREATE TABLE"
        raise AssertionError(f"unexpected statement: {query[:60]}")

    @asynccontextmanager
    async def transaction(self):
        snapshot = copy.deepcopy(self.symbol_master)
        self.transactions += 1
        try:
            yield FakeConnection(self)
        except Exception:
            self.symbol_master = snapshot
            self.rollbacks += 1
            raise


@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


# =============================================
# CLOCK / HTTP
# =============================================

class FakeClock:
    """Monotonic clock advanced only by its own sleep()."""

    def __init__(self, start: float = 1000.0):
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


def make_http_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by `handler`."""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def symbols(*names: str, mic: str = "XNAS", currency: str = "USD") -> List[FinnhubSymbol]:
    return [FinnhubSymbol(symbol=name, mic=mic, currency=currency) for name in names]
