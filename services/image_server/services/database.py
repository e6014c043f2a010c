"""
Image metadata database adapters.
"""

import threading
from abc import ABC, abstractmethod
from typing import Dict, Tuple

from ..core.exceptions import DatabaseError
from ..models import Image


class DatabaseAdapter(ABC):
    @abstractmethod
    def insert_image(self, public_key: str, image_identifier: str, image: Image) -> None:
        pass

    @abstractmethod
    def load(self, public_key: str, image_identifier: str) -> Image:
        """Return the stored metadata as an Image without a blob."""
        pass

    @abstractmethod
    def delete_image(self, public_key: str, image_identifier: str) -> None:
        pass

    @abstractmethod
    def image_exists(self, public_key: str, image_identifier: str) -> bool:
        pass

    def get_status(self) -> bool:
        return True


class InMemoryDatabase(DatabaseAdapter):
    def __init__(self):
        self._images: Dict[Tuple[str, str], Image] = {}
        self._lock = threading.Lock()

    def insert_image(self, public_key: str, image_identifier: str, image: Image) -> None:
        metadata = image.model_copy(update={"blob": b"", "original_filesize": image.filesize})
        with self._lock:
            self._images[(public_key, image_identifier)] = metadata

    def load(self, public_key: str, image_identifier: str) -> Image:
        with self._lock:
            metadata = self._images.get((public_key, image_identifier))
        if metadata is None:
            raise DatabaseError("Image not found", status_code=404)
        return metadata.model_copy()

    def delete_image(self, public_key: str, image_identifier: str) -> None:
        with self._lock:
            if self._images.pop((public_key, image_identifier), None) is None:
                raise DatabaseError("Image not found", status_code=404)

    def image_exists(self, public_key: str, image_identifier: str) -> bool:
        with self._lock:
            return (public_key, image_identifier) in self._images

