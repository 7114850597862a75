from .finnhub_provider import FinnhubProvider

__all__ = ["FinnhubProvider"]
