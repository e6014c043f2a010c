"""
Where: services/image_server/tests/test_logging_config.py
What: Unit tests for image server logging configuration.
Why: Validate the config path override and queue handoff.
"""

from services.image_server.core import logging_config


def test_setup_logging_uses_config_path_and_queue(monkeypatch):
    captured = {}

    def fake_setup_logging(config_path):
        captured["config_path"] = config_path

    def fake_configure_queue_logging(service_name: str):
        captured["service_name"] = service_name
        return "listener"

    monkeypatch.setenv("LOG_CONFIG_PATH", "/tmp/image-server-logging.yml")
    monkeypatch.setattr(logging_config, "common_setup_logging", fake_setup_logging)
    monkeypatch.setattr(logging_config, "configure_queue_logging", fake_configure_queue_logging)

    assert logging_config.setup_logging() == "listener"
    assert captured == {
        "config_path": "/tmp/image-server-logging.yml",
        "service_name": "image-server",
    }


def test_setup_logging_default_path(monkeypatch):
    captured = {}
    monkeypatch.delenv("LOG_CONFIG_PATH", raising=False)
    monkeypatch.setattr(
        logging_config, "common_setup_logging", lambda path: captured.setdefault("path", path)
    )
    monkeypatch.setattr(logging_config, "configure_queue_logging", lambda service_name: None)

    logging_config.setup_logging()

    assert captured["path"] == "/app/config/image_server_log.yaml"
