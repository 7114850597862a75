"""
Utility modules
"""

from .logger import configure_logging, get_logger
from .metrics import SyncMetrics, build_meter_provider, shutdown_meter_provider
from .postgres_client import PostgresClient

__all__ = [
    "configure_logging",
    "get_logger",
    "SyncMetrics",
    "build_meter_provider",
    "shutdown_meter_provider",
    "PostgresClient",
]
