"""
Data model definitions package.

Aggregates Pydantic models for use in other modules.
"""

from .image import Image
from .options import (
    AuthenticationOptions,
    ServerOptions,
    TransformationFilterOptions,
)
from .request import ImageRequest, Transformation
from .response import ImageResponse
from .result import PipelineResult
from .short_url import ShortUrl

__all__ = [
    "AuthenticationOptions",
    "Image",
    "ImageRequest",
    "ImageResponse",
    "PipelineResult",
    "ServerOptions",
    "ShortUrl",
    "Transformation",
    "TransformationFilterOptions",
]
