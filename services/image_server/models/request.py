"""
Request models.

Decouples the pipeline from FastAPI's Request object.
"""

from typing import Dict, List, Optional, Set

from pydantic import BaseModel, Field


class Transformation(BaseModel):
    """A single requested transformation, e.g. ``crop:x=10,y=10``."""

    name: str
    params: Dict[str, str] = Field(default_factory=dict)


class ImageRequest(BaseModel):
    """
    Rich context representing an incoming request against an image.

    ``raw_uri`` is the percent-decoded target URI, ``uri_as_is`` the URI
    exactly as the client sent it. Both are signing candidates.
    """

    method: str
    raw_uri: str
    uri_as_is: str
    public_key: str
    image_identifier: Optional[str] = None
    extension: Optional[str] = None
    query_params: Dict[str, List[str]] = Field(default_factory=dict)
    transformations: List[Transformation] = Field(default_factory=list)
    headers: Dict[str, str] = Field(default_factory=dict)
    body: bytes = b""

    @property
    def transformation_names(self) -> Set[str]:
        return {t.name for t in self.transformations}

    def has_query(self, key: str) -> bool:
        return bool(self.query_params.get(key))

    def get_query(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Return the last value sent for ``key``."""
        values = self.query_params.get(key)
        if not values:
            return default
        return values[-1]
