import os

from services.common.core.logging_config import configure_queue_logging
from services.common.core.logging_config import setup_logging as common_setup_logging


def setup_logging():
    """
    Load the YAML config and initialize logging.
    Handlers are moved behind a queue so request threads never block on I/O.
    """
    config_path = os.getenv("LOG_CONFIG_PATH", "/app/config/image_server_log.yaml")
    common_setup_logging(config_path)
    return configure_queue_logging(service_name="image-server")
