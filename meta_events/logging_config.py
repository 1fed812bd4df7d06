"""
Logging for meta_events.

Every module logs through ``logging.getLogger(__name__)``, so all output sits
under the ``meta_events`` logger. ``setup_logging`` hangs a queue handler on
that logger only; the host application's root logger is left alone.
``create_meta_events_module`` calls it when tracking debug is switched on.
"""

import logging
import logging.handlers
import sys
from queue import Queue
from typing import IO, Optional

PACKAGE_LOGGER = "meta_events"

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DEBUG_LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"


class ThreadSafeLoggingConfig:
    """Queue-backed handler for the meta_events logger tree."""

    def __init__(self, logger_name: str = PACKAGE_LOGGER):
        self.logger_name = logger_name
        self._log_listener: Optional[logging.handlers.QueueListener] = None
        self._queue_handler: Optional[logging.handlers.QueueHandler] = None
        self._previous_level: Optional[int] = None
        self._previous_propagate: Optional[bool] = None

    @property
    def active(self) -> bool:
        return self._log_listener is not None

    def setup_logging(self, debug: bool = False, stream: Optional[IO[str]] = None) -> None:
        """
        Route meta_events log records through a queue to ``stream``.

        Request threads only enqueue records; one listener thread writes them,
        so lines from concurrent requests never interleave. Calling it again
        replaces the previous setup.

        Args:
            debug: Log at DEBUG (with source locations) instead of INFO
            stream: Destination, stdout when omitted
        """
        if self.active:
            self.stop()

        package_logger = logging.getLogger(self.logger_name)
        self._previous_level = package_logger.level
        self._previous_propagate = package_logger.propagate

        log_queue: Queue = Queue()
        self._queue_handler = logging.handlers.QueueHandler(log_queue)

        stream_handler = logging.StreamHandler(stream or sys.stdout)
        stream_handler.setFormatter(logging.Formatter(DEBUG_LOG_FORMAT if debug else LOG_FORMAT))

        self._log_listener = logging.handlers.QueueListener(
            log_queue, stream_handler, respect_handler_level=True
        )
        self._log_listener.start()

        package_logger.addHandler(self._queue_handler)
        package_logger.setLevel(logging.DEBUG if debug else logging.INFO)
        # Records are written here; don't print them again via the root logger
        package_logger.propagate = False

    def stop(self) -> None:
        """Flush queued records, detach the handler and restore the logger."""
        if not self.active:
            return
        package_logger = logging.getLogger(self.logger_name)
        package_logger.removeHandler(self._queue_handler)
        self._log_listener.stop()
        package_logger.setLevel(self._previous_level)
        package_logger.propagate = self._previous_propagate
        self._log_listener = None
        self._queue_handler = None


logging_config = ThreadSafeLoggingConfig()


def setup_logging(debug: bool = False, stream: Optional[IO[str]] = None) -> None:
    """Configure the shared meta_events log handler."""
    logging_config.setup_logging(debug, stream)


def stop_logging() -> None:
    logging_config.stop()
