"""
Pydantic models for data validation and serialization
"""

from .finnhub import *
from .symbol_master import *

__all__ = [
    # Finnhub models
    "FinnhubSymbol",
    "FinnhubProfile",
    # Symbol master models
    "SymbolMasterRecord",
    "JobRun",
    "parse_ipo_date",
    "market_cap_from_millions",
]
