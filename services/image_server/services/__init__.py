"""
Services package.

Provides resources, plugins and storage integrations.
"""

from .access_control import FileAccessControl, StaticAccessControl
from .processor import ImageRequestProcessor

__all__ = [
    "FileAccessControl",
    "StaticAccessControl",
    "ImageRequestProcessor",
]
