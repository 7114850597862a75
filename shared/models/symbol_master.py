"""
Pydantic models for the symbol_master and job_status tables
"""

import math
from datetime import date, datetime, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..enums.sync_status import JobStatus
from ..utils.logger import get_logger
from .finnhub import FinnhubProfile, FinnhubSymbol

logger = get_logger(__name__)

MARKET_CAP_MULTIPLIER = 1_000_000
BIGINT_MIN = -(2 ** 63)
BIGINT_MAX = 2 ** 63 - 1
IPO_DATE_FORMAT = "%Y-%m-%d"


def parse_ipo_date(raw: Optional[str]) -> Optional[date]:
    """Parse a YYYY-MM-DD string; anything else becomes None"""
    if not raw:
        return None
    try:
        return datetime.strptime(raw.strip(), IPO_DATE_FORMAT).date()
    except ValueError:
        return None


def market_cap_from_millions(millions: Optional[float]) -> Optional[int]:
    """
    Convert a market cap reported in millions to units, truncated toward zero

    Values that do not fit a BIGINT column become None.
    """
    if millions is None or not math.isfinite(millions):
        return None
    units = int(millions * MARKET_CAP_MULTIPLIER)
    if not BIGINT_MIN <= units <= BIGINT_MAX:
        logger.warning("market_cap_out_of_range", market_cap_millions=millions)
        return None
    return units


# =============================================
# SYMBOL MASTER
# =============================================

class SymbolMasterRecord(BaseModel):
    """
    One row of symbol_master (primary key: symbol)
    """
    model_config = ConfigDict(frozen=True)

    symbol: str = Field(..., description="Ticker symbol")
    exchange: Optional[str] = Field(None, description="Market identifier code")
    name: Optional[str] = Field(None, description="Company name")
    sector: Optional[str] = Field(None, description="Sector")
    industry: Optional[str] = Field(None, description="Industry")
    currency: Optional[str] = Field(None, description="Trading currency")
    country: Optional[str] = Field(None, description="Country")
    ipo_date: Optional[date] = Field(None, description="IPO date")
    market_cap: Optional[int] = Field(None, description="Market capitalization (absolute)")
    is_active: bool = Field(default=True, description="Listed in the latest universe")
    data_source: str = Field(..., description="Provenance tag")
    last_updated: datetime = Field(..., description="Time of the write")

    @classmethod
    def from_finnhub(
        cls,
        raw: FinnhubSymbol,
        profile: FinnhubProfile,
        data_source: str,
        now: Optional[datetime] = None
    ) -> "SymbolMasterRecord":
        """
        Merge a listing entry with its (possibly fallback) profile

        Finnhub only exposes an industry classification, so it fills
        both sector and industry.
        """
        return cls(
            symbol=raw.symbol,
            exchange=raw.mic,
            name=profile.name,
            sector=profile.finnhubIndustry,
            industry=profile.finnhubIndustry,
            currency=raw.currency,
            country=profile.country,
            ipo_date=parse_ipo_date(profile.ipo),
            market_cap=market_cap_from_millions(profile.marketCapitalization),
            is_active=True,
            data_source=data_source,
            last_updated=now or datetime.now(timezone.utc),
        )

    def as_row(self) -> tuple:
        """Positional parameters in symbol_master column order"""
        return (
            self.symbol,
            self.exchange,
            self.name,
            self.sector,
            self.industry,
            self.currency,
            self.country,
            self.ipo_date,
            self.market_cap,
            self.is_active,
            self.data_source,
            self.last_updated,
        )


# =============================================
# JOB STATUS
# =============================================

class JobRun(BaseModel):
    """
    One append-only row of job_status
    """
    model_config = ConfigDict(frozen=True)

    job_name: str = Field(..., description="Job identifier")
    last_run: datetime = Field(..., description="Run start time")
    status: JobStatus = Field(..., description="Run outcome")
    details: str = Field(default="", description="Human readable summary")
