"""
logging.py — Application-Wide Logging Configuration

Purpose:
- Configure a standardized logging format for the gateway service.
- Keep API requests, ledger calls and enrollment runs in one uniform stream.

Uniform formatting: timestamp | level | module | message
"""

import logging

# -----------------------------------------------------------------------------
# Log Format
# -----------------------------------------------------------------------------

LOG_FORMAT = (
    "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
)

# Libraries whose INFO output drowns the ledger logs
_NOISY_LOGGERS = ("urllib3", "httpx", "uvicorn.access")

# -----------------------------------------------------------------------------
# Root Logger Initialization
# -----------------------------------------------------------------------------

def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging settings.

    Parameters:
        level (str): "DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"

    Behavior:
    - Sets logging format globally.
    - Ensures logs stream to stdout (FastAPI / Uvicorn picks this up).
    - Should be called ONCE, at app startup or from a script's main().
    """

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT
    )
    for name in _NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    logging.getLogger(__name__).info("Logging initialized with level %s", level)

# -----------------------------------------------------------------------------
# Logger Access Helper
# -----------------------------------------------------------------------------

def get_logger(name: str) -> logging.Logger:
    """
    Return a logger instance to be used in any module.

    In any module:
        from crowdledger.core.logging import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)


def preview(value: object, limit: int = 100) -> str:
    """Shorten a payload or argument list for log lines."""
    text = value if isinstance(value, str) else repr(value)
    if len(text) <= limit:
        return text
    return text[:limit] + "..."
