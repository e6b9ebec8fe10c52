"""
GotNodes: validator and chain metrics for Ethereum and Avalanche dashboards
"""

from .aggregator import MetricsAggregator, setup_logging
from .config import Settings
from .models import Chain, ChainStats, ChartSeries, NodeRecord, ValidatorRecord
from .exceptions import *


__version__ = "1.0.0"
__author__ = "GotNodes Team"

__all__ = [
    "MetricsAggregator",
    "Settings",
    "Chain",
    "ChainStats",
    "ChartSeries",
    "NodeRecord",
    "ValidatorRecord",
    "setup_logging",
    "GotNodesException",
    "ConfigurationError",
    "UpstreamError",
    "ValidationError",
    "PartialRecordError"
]
