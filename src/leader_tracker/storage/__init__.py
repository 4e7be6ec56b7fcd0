"""
Result storage and caching.
"""

from .cache import Cache
from .database import Database
from .results import (
    profitability_to_dict,
    result_to_dict,
    save_comparison,
    save_profitability,
    save_scan,
    scan_to_dict,
)

__all__ = [
    "Cache",
    "Database",
    "profitability_to_dict",
    "result_to_dict",
    "save_comparison",
    "save_profitability",
    "save_scan",
    "scan_to_dict",
]
