"""
Logging helpers.
"""

import logging
from typing import Any, Dict

from core.logging_config import PAYMENTS_LOGGER


SENSITIVE_FIELDS = {
    'password', 'token', 'secret', 'api_key', 'server_key', 'signature',
    'authorization', 'credit_card', 'card_number', 'cvv'
}


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger instance for a module.

    Usage:
        from utils.logger import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


def get_payments_logger(name: str) -> logging.Logger:
    """
    Logger under the "payments" tree. Records also reach the root handlers
    and are additionally written to payments.log.
    """
    return logging.getLogger(f"{PAYMENTS_LOGGER}.{name}")


def sanitize_log_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Remove sensitive information from log data.

    Gateway webhooks carry a signature_key and checkout sessions return a
    token; neither may end up in the logs in full.

    Args:
        data: Dictionary that may contain sensitive fields

    Returns:
        Sanitized copy safe for logging
    """
    sanitized = data.copy()

    for key, value in sanitized.items():
        if any(sensitive in key.lower() for sensitive in SENSITIVE_FIELDS):
            if isinstance(value, str):
                # tokens keep a short prefix so they can still be correlated
                if 'token' in key.lower() and len(value) > 8:
                    sanitized[key] = f"{value[:8]}..."
                else:
                    sanitized[key] = "***REDACTED***"

        elif isinstance(value, dict):
            sanitized[key] = sanitize_log_data(value)

        elif isinstance(value, list):
            sanitized[key] = [
                sanitize_log_data(item) if isinstance(item, dict) else item
                for item in value
            ]

    return sanitized
