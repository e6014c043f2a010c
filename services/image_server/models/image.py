"""
Image model.

Holds the raw bytes of an image together with what is known about it.
"""

from typing import Optional

from pydantic import BaseModel


class Image(BaseModel):
    """
    An image moving through the pipeline.
    """

    blob: bytes = b""
    mime_type: Optional[str] = None
    extension: Optional[str] = None
    width: int = 0
    height: int = 0
    original_filesize: int = 0
    transformed: bool = False

    @property
    def filesize(self) -> int:
        return len(self.blob) if self.blob else self.original_filesize

    @property
    def has_blob(self) -> bool:
        return bool(self.blob)

    def set_blob(self, blob: bytes) -> None:
        self.blob = blob
        self.transformed = True
