"""
Where: services/image_server/tests/test_config_defaults.py
What: Validate default ImageServerConfig values and environment parsing.
Why: Keep access token and storage defaults stable as deployments evolve.
"""

import pytest
from pydantic import ValidationError

from services.image_server.config import ImageServerConfig

ENV_NAMES = (
    "AUTH_PROTOCOL",
    "ACCESS_TOKEN_ARGUMENT",
    "ACCESS_TOKEN_GENERATORS",
    "TRANSFORMATIONS_WHITELIST",
    "TRANSFORMATIONS_BLACKLIST",
    "STORAGE_BACKEND",
)


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_defaults(clean_env):
    config = ImageServerConfig(_env_file=None)

    assert config.AUTH_PROTOCOL == "incoming"
    assert config.ACCESS_TOKEN_ARGUMENT == "accessToken"
    assert config.ACCESS_TOKEN_GENERATORS == {}
    assert config.TRANSFORMATIONS_WHITELIST == []
    assert config.TRANSFORMATIONS_BLACKLIST == []
    assert config.STORAGE_BACKEND == "memory"


def test_json_environment_values(clean_env):
    clean_env.setenv("ACCESS_TOKEN_GENERATORS", '{"accessToken": "sha256", "sig": "sha256"}')
    clean_env.setenv("TRANSFORMATIONS_WHITELIST", '["border", "thumbnail"]')
    clean_env.setenv("AUTH_PROTOCOL", "both")

    config = ImageServerConfig(_env_file=None)

    assert config.ACCESS_TOKEN_GENERATORS == {"accessToken": "sha256", "sig": "sha256"}
    assert config.TRANSFORMATIONS_WHITELIST == ["border", "thumbnail"]
    assert config.AUTH_PROTOCOL == "both"


def test_invalid_protocol(clean_env):
    clean_env.setenv("AUTH_PROTOCOL", "ftp")
    with pytest.raises(ValidationError):
        ImageServerConfig(_env_file=None)
