"""
Core logic package.

Provides access token signing and validation, the event bus and the
resource pipeline.
"""

from .access_policy import is_whitelisted
from .access_token import AccessTokenValidator
from .events import Event, EventBus
from .pipeline import Phase, ResourcePipeline
from .signature import HmacSha256Generator, MultipleSignatureGenerators, SignatureGenerator

__all__ = [
    "is_whitelisted",
    "AccessTokenValidator",
    "Event",
    "EventBus",
    "Phase",
    "ResourcePipeline",
    "SignatureGenerator",
    "HmacSha256Generator",
    "MultipleSignatureGenerators",
]
