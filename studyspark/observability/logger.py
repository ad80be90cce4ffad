"""
Logger configuration.

One stdout handler on the root logger, shared by the API, both Lambda
handlers and the janitor console script. Values passed through `extra=`
are appended to the line as key=value pairs.

Dependencies: logging (stdlib)
System role: Centralized logging configuration
"""

import logging
import sys

# Attributes every LogRecord has; anything else came in through extra=
_STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {
    "message",
    "asctime",
}

NOISY_LOGGERS = ("urllib3", "botocore", "boto3", "s3transfer", "httpx", "google_genai", "aiosqlite")


class ContextFormatter(logging.Formatter):
    """Formatter that appends extra= context after the message."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {
            key: value for key, value in vars(record).items() if key not in _STANDARD_ATTRS
        }
        if not context:
            return line
        return line + " | " + " ".join(f"{key}={value}" for key, value in sorted(context.items()))


def configure_logging(level: str = "INFO") -> None:
    """
    Configure root logging.

    Safe to call once per Lambda invocation: existing handlers are replaced.

    Args:
        level: Root log level name (DEBUG, INFO, WARNING, ...)
    """
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ContextFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    root_logger.setLevel(level.upper())
    root_logger.addHandler(handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
