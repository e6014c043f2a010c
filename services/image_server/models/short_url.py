"""
ShortUrl model.
"""

from typing import Optional

from pydantic import BaseModel


class ShortUrl(BaseModel):
    """
    A stored alias for an image URL with its query string.
    """

    id: str
    public_key: str
    image_identifier: str
    extension: Optional[str] = None
    query: str = ""
