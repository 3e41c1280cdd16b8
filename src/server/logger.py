"""Structured request logging (timestamp, IP, query, timing)."""

import logging
import logging.handlers
import queue
import sys
from pathlib import Path
from typing import Any, Union

LOG_FILE_PATH = Path(__file__).parent.parent.parent / "logs/server.log"
_LOG_LEVEL = logging.INFO

_log_queue: Union["queue.Queue[Any]", None] = None
_listener: Union[logging.handlers.QueueListener, None] = None


def _build_file_handler(log_file_path: Path) -> logging.Handler:
    """Create the rotating file handler the listener writes to.

    Args:
        log_file_path (Path): The file to write log records to.

    Returns:
        logging.Handler: The configured handler.

    """
    log_file_path.parent.mkdir(parents=True, exist_ok=True)
    file_handler = logging.handlers.RotatingFileHandler(
        log_file_path,
        maxBytes=10 * 1024 * 1024,
        backupCount=5,
        encoding="utf-8",
    )
    formatter = logging.Formatter(
        "level=%(levelname)s | time=%(asctime)s | process=%(process)d | "
        "thread=%(thread)d | module=%(module)s | funcName=%(funcName)s | "
        "lineno=%(lineno)d | message=%(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    file_handler.setFormatter(formatter)
    return file_handler


def setup_logging_queue() -> None:
    """Route the root logger through an in-memory queue.

    Records are only put on the queue by the caller; the file is written
    by the listener thread, so logging never blocks the event loop.
    """
    global _log_queue
    if _log_queue is not None:
        return

    _log_queue = queue.Queue(-1)
    root_logger = logging.getLogger()
    root_logger.setLevel(_LOG_LEVEL)

    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    root_logger.addHandler(logging.handlers.QueueHandler(_log_queue))


def start_logging_listener(log_file_path: Path = LOG_FILE_PATH) -> None:
    """Start the listener thread that writes queued records to the log file.

    This should be called ONCE after setup_logging_queue().

    Args:
        log_file_path (Path, optional): The log file.
        Defaults to LOG_FILE_PATH.

    Raises:
        RuntimeError: If the queue was not set up.

    """
    global _listener
    if _log_queue is None:
        raise RuntimeError(
            "Log queue not initialized. Call setup_logging_queue() first.",
        )
    if _listener is None:
        _listener = logging.handlers.QueueListener(
            _log_queue,
            _build_file_handler(log_file_path),
            respect_handler_level=True,
        )
        _listener.start()
        print(f"[LOGGER] Listener thread started, writing to {log_file_path}")


def stop_logging_listener() -> None:
    """Flush pending records and stop the listener thread."""
    global _listener, _log_queue
    if _listener is not None:
        try:
            _listener.stop()
        except Exception as e:
            print(
                f"[LOGGER ERROR] Error stopping logging listener: {e}",
                file=sys.stderr,
            )
        for handler in _listener.handlers:
            handler.close()
        _listener = None
        print("[LOGGER] Listener thread stopped.")

    if _log_queue is not None:
        root_logger = logging.getLogger()
        for handler in root_logger.handlers[:]:
            if isinstance(handler, logging.handlers.QueueHandler):
                root_logger.removeHandler(handler)
        _log_queue = None


def log(
    time_stamp: str,
    client_ip: str,
    query: str,
    execution_time_ms: float,
) -> None:
    """Log the details of a query execution using the configured
    logging system.

    Args:
        time_stamp (str): The timestamp of the query execution.
        client_ip (str): The IP address of the client.
        query (str): The query string.
        execution_time_ms (float): The execution time in milliseconds.

    """
    logging.info(
        "Timestamp: %s, Client IP: %s, Query: '%s', Execution Time: %.2f ms",
        time_stamp,
        client_ip,
        query,
        execution_time_ms,
    )
