"""
Utility modules for the ERP sync core.
"""

from .json_utils import EnhancedJSONEncoder, dumps
from .logger import configure_logging, get_logger
from .retry_utils import calculate_exponential_backoff

__all__ = [
    "EnhancedJSONEncoder",
    "dumps",
    "configure_logging",
    "get_logger",
    "calculate_exponential_backoff",
]
