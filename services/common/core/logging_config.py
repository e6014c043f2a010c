"""
Logging Configuration
Custom JSON Logger implementation for the image server.

Provides:
- CustomJsonFormatter: single-line JSON formatter with trace/request IDs
- setup_logging: YAML dictConfig loader with environment substitution
- configure_queue_logging: move root handlers behind a queue for request threads
"""

import atexit
import json
import logging
import logging.config
import logging.handlers
import os
import queue
import string
from datetime import datetime, timezone

import yaml

from .request_context import get_public_key, get_request_id, get_trace_id

# Attributes every LogRecord carries; anything else came in through `extra`.
STANDARD_ATTRS = frozenset(vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "taskName",
}


class CustomJsonFormatter(logging.Formatter):
    """
    JSON Formatter.

    Fields:
      - _time: ISO8601 timestamp (millisecond precision)
      - level: Log level
      - logger: Logger name (e.g. uvicorn.access, image_server.main)
      - message: Log message
      - trace_id / request_id / public_key: taken from the record or the request context
    """

    def __init__(self, *args, service_name: str = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        trace_id = getattr(record, "trace_id", None) or get_trace_id()
        request_id = getattr(record, "request_id", None) or get_request_id()
        public_key = getattr(record, "public_key", None) or get_public_key()

        log_data = {
            "_time": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        if self.service_name:
            log_data["service"] = self.service_name
        if trace_id:
            log_data["trace_id"] = trace_id
        if request_id:
            log_data["request_id"] = request_id
        if public_key:
            log_data["public_key"] = public_key

        # Include extra fields
        for key, value in record.__dict__.items():
            if key not in STANDARD_ATTRS and not key.startswith("_") and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)


def setup_logging(config_path: str = "logging.yml"):
    """
    Load the YAML config, substitute environment variables, and initialize logging.
    """
    if not os.path.exists(config_path):
        logging.basicConfig(level=os.environ.get("LOG_LEVEL", "INFO"))
        return

    with open(config_path, "r", encoding="utf-8") as f:
        # Supports ${LOG_LEVEL} format.
        template = string.Template(f.read())

        mapping = os.environ.copy()
        if "LOG_LEVEL" not in mapping:
            mapping["LOG_LEVEL"] = "INFO"

        content = template.safe_substitute(mapping)
        config = yaml.safe_load(content)
        logging.config.dictConfig(config)


class SafeQueueListener(logging.handlers.QueueListener):
    """QueueListener whose stop() may be called more than once."""

    def stop(self):
        if self._thread is None:
            return
        super().stop()
        atexit.unregister(self.stop)


def configure_queue_logging(service_name: str):
    """
    Move the root logger's handlers behind a QueueHandler.

    Request threads only enqueue records; a listener thread does the I/O.
    """
    root = logging.getLogger()
    handlers = [h for h in root.handlers if not isinstance(h, logging.handlers.QueueHandler)]
    if not handlers:
        return None

    for handler in handlers:
        if handler.formatter is None:
            handler.setFormatter(CustomJsonFormatter(service_name=service_name))
        root.removeHandler(handler)

    log_queue = queue.Queue(-1)
    root.addHandler(logging.handlers.QueueHandler(log_queue))

    listener = SafeQueueListener(log_queue, *handlers, respect_handler_level=True)
    listener.start()
    atexit.register(listener.stop)
    return listener
