"""
Logging Configuration Module

Thread-safe logging for the collector. Request threads write to a queue and a
single listener thread formats and emits the records, so concurrent beacon
requests never interleave partial log lines.
"""

import ipaddress
import logging
import logging.handlers
import re
import sys
from queue import Queue
from typing import Optional


_ADDRESS_CANDIDATE = re.compile(r"[0-9A-Fa-f:.]*[:.][0-9A-Fa-f:.]*")


def _mask(match: "re.Match") -> str:
    text = match.group(0)
    candidate = text.rstrip(":.")
    try:
        ipaddress.ip_address(candidate)
    except ValueError:
        return text
    return "<ip>" + text[len(candidate):]


class RedactAddressFilter(logging.Filter):
    """Masks IP addresses in emitted messages; raw client IPs are never logged."""

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        message = record.getMessage()
        redacted = _ADDRESS_CANDIDATE.sub(_mask, message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


class ThreadSafeLoggingConfig:
    """Thread-safe logging configuration with queue-based logging."""

    def __init__(self):
        self._log_listener: Optional[logging.handlers.QueueListener] = None
        self._log_queue: Optional[Queue] = None

    def setup_logging(self, debug: bool = False) -> None:
        """
        Configure queue-based logging and silence chatty libraries.

        Args:
            debug: Whether to enable debug logging
        """
        # Calling twice would start a second listener on a fresh queue
        self.stop()

        self._log_queue = Queue()
        queue_handler = logging.handlers.QueueHandler(self._log_queue)

        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s")
        )
        console_handler.addFilter(RedactAddressFilter())

        self._log_listener = logging.handlers.QueueListener(
            self._log_queue, console_handler, respect_handler_level=True
        )
        self._log_listener.start()

        root_logger = logging.getLogger()
        root_logger.handlers.clear()
        root_logger.addHandler(queue_handler)
        root_logger.setLevel(logging.DEBUG if debug else logging.INFO)

        if not debug:
            self._silence_noisy_libraries()

    def _silence_noisy_libraries(self) -> None:
        """Silence noisy third-party libraries."""
        # Werkzeug logs one line per request, including the client address
        class _MuteAccessLogFilter(logging.Filter):
            def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
                return not (record.name or "").startswith("werkzeug")

        for handler in logging.getLogger().handlers:
            handler.addFilter(_MuteAccessLogFilter())

        noisy_loggers = [
            "werkzeug",
            "urllib3",
            "redis",
            "sqlalchemy.engine",
            "sqlalchemy.pool",
            "geoip2",
            "maxminddb",
        ]

        for name in noisy_loggers:
            logger = logging.getLogger(name)
            if name == "werkzeug":
                logger.setLevel(logging.ERROR)
            else:
                logger.setLevel(logging.WARNING)
            logger.handlers.clear()
            logger.addHandler(logging.NullHandler())
            logger.propagate = False

    def stop(self) -> None:
        """Stop the logging listener and cleanup."""
        if self._log_listener:
            self._log_listener.stop()
            self._log_listener = None
        if self._log_queue:
            self._log_queue = None


# Global logging configuration instance
logging_config = ThreadSafeLoggingConfig()


def setup_logging(debug: bool = False) -> None:
    """
    Setup thread-safe logging configuration.

    Args:
        debug: Whether to enable debug logging
    """
    logging_config.setup_logging(debug)


def stop_logging() -> None:
    """Stop the logging listener and cleanup."""
    logging_config.stop()


def get_logger(name: str) -> logging.Logger:
    """
    Get a logger with the specified name.

    Args:
        name: Logger name

    Returns:
        Configured logger instance
    """
    return logging.getLogger(name)
