"""
Image server configuration definition.

Loads configuration from environment variables and provides a Pydantic model.
Uses pydantic-settings for type safety and defaults.
"""

import sys
from typing import Dict, List, Literal

from pydantic import Field

from services.common.core.config import BaseAppConfig


class ImageServerConfig(BaseAppConfig):
    """
    Configuration management for the image server.
    """

    # Server settings
    UVICORN_WORKERS: int = Field(default=4, description="Number of worker processes")
    UVICORN_BIND_ADDR: str = Field(default="0.0.0.0:8000", description="Listen address")

    # Access tokens
    AUTH_PROTOCOL: Literal["incoming", "both", "http", "https"] = Field(
        default="incoming", description="Scheme used when rebuilding URLs for signing"
    )
    ACCESS_TOKEN_ARGUMENT: str = Field(
        default="accessToken", description="Query argument carrying the access token"
    )
    ACCESS_TOKEN_GENERATORS: Dict[str, str] = Field(
        default_factory=dict,
        description="Query argument -> algorithm map; a non-empty map enables composite mode",
    )
    TRANSFORMATIONS_WHITELIST: List[str] = Field(
        default_factory=list, description="Transformations readable without a token"
    )
    TRANSFORMATIONS_BLACKLIST: List[str] = Field(
        default_factory=list, description="Transformations that always require a token"
    )
    ACCESS_CONTROL_CONFIG_PATH: str = Field(
        default="/app/config/access_control.yml", description="Public/private key file path"
    )

    # Storage
    STORAGE_BACKEND: Literal["memory", "filesystem", "s3"] = Field(
        default="memory", description="Image blob storage backend"
    )
    STORAGE_ROOT_PATH: str = Field(default="/data/images", description="Filesystem storage root")
    S3_BUCKET: str = Field(default="", description="S3 bucket for image blobs")
    S3_REGION: str = Field(default="", description="S3 region")
    S3_ACCESS_KEY: str = Field(default="", description="S3 access key")
    S3_SECRET_KEY: str = Field(default="", description="S3 secret key")
    S3_ENDPOINT: str = Field(default="", description="S3 compatible endpoint URL")
    S3_USE_PATH_STYLE: bool = Field(default=False, description="Use path-style S3 addressing")

    # FastAPI settings
    root_path: str = Field(default="", description="API root path (for proxy)")

    # model_config is inherited


# Load config as a singleton.
# pydantic-settings reads environment variables during instantiation.
try:
    config = ImageServerConfig()
except Exception as e:
    sys.stderr.write(f"Failed to load configuration: {e}\n")
    raise
