"""
GlitchTip Error Monitoring Utilities

Helper functions for error tracking and context management.
"""

from typing import Any, Dict, Optional

import sentry_sdk

from order_automation.core.logger import setup_logger

logger = setup_logger(__name__)


def set_automation_context(trigger: str, pass_number: int, **extra_tags) -> None:
    """
    Set automation-pass context for error tracking.

    Args:
        trigger: What started the pass ("scheduled", "manual")
        pass_number: Sequence number of the pass in this process
        **extra_tags: Additional tags to add
    """
    try:
        sentry_sdk.set_tag("automation.trigger", trigger)
        for key, value in extra_tags.items():
            sentry_sdk.set_tag(key, value)

        context_data = {"trigger": trigger, "pass_number": pass_number}
        context_data.update(extra_tags)
        sentry_sdk.set_context("automation", context_data)

    except Exception as e:
        logger.warning(f"Failed to set automation context: {e}")


def capture_exception(
    error: Exception,
    context: Optional[Dict[str, Any]] = None,
    level: str = "error"
) -> None:
    """
    Capture an exception and send to GlitchTip.

    Args:
        error: The exception to capture
        context: Additional context data
        level: Error level (error, warning, info)
    """
    try:
        with sentry_sdk.new_scope() as scope:
            if context:
                scope.set_context("custom", context)
            scope.set_level(level)
            sentry_sdk.capture_exception(error)

    except Exception as e:
        logger.warning(f"Failed to capture exception in GlitchTip: {e}")
