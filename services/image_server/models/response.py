"""
Response models.

The response the pipeline builds up; rendered by the HTTP layer.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from .image import Image


class ImageResponse(BaseModel):
    """
    Response-in-progress for a single request.
    """

    status_code: int = 200
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Dict[str, Any]] = None
    image: Optional[Image] = None
    error: Optional[Dict[str, Any]] = None

    def has_header(self, name: str) -> bool:
        lowered = name.lower()
        return any(key.lower() == lowered for key in self.headers)

    def set_headers(self, headers: Dict[str, Any]) -> None:
        for key, value in headers.items():
            self.headers[key] = str(value)
