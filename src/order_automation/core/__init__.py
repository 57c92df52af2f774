"""Core module - Logging, monitoring, errors and business calendar helpers."""

from order_automation.core.logger import setup_logger
from order_automation.core.business_days import calculate_business_days

__all__ = ["setup_logger", "calculate_business_days"]
