"""
Pydantic models for the Finnhub API
Documentation: https://finnhub.io/docs/api
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# =============================================
# STOCK SYMBOL
# =============================================

class FinnhubSymbol(BaseModel):
    """
    One listing entry of an exchange universe
    Endpoint: /stock/symbol?exchange={market}
    """
    model_config = ConfigDict(extra="ignore", frozen=True)

    symbol: str = Field(..., description="Ticker symbol")
    mic: Optional[str] = Field(None, description="Market identifier code")
    currency: Optional[str] = Field(None, description="Trading currency")


# =============================================
# COMPANY PROFILE 2
# =============================================

class FinnhubProfile(BaseModel):
    """
    Company profile
    Endpoint: /stock/profile2?symbol={symbol}

    Unknown symbols come back as an empty object, which decodes into a
    profile with every field unset.
    """
    model_config = ConfigDict(extra="ignore", frozen=True)

    name: Optional[str] = Field(None, description="Company name")
    country: Optional[str] = Field(None, description="Country of domicile")
    ipo: Optional[str] = Field(None, description="IPO date (YYYY-MM-DD)")
    marketCapitalization: Optional[float] = Field(None, description="Market cap in millions")
    finnhubIndustry: Optional[str] = Field(None, description="Finnhub industry classification")

    @classmethod
    def fallback(cls) -> "FinnhubProfile":
        """Profile used when enrichment could not be completed"""
        return cls()
