"""
Image resource.

Core CRUD handlers for ``/users/{user}/images/{image}`` and the plugin
registrations that gate and post-process them.
"""

import logging
from contextlib import contextmanager

from ..core.access_token import AccessTokenValidator
from ..core.events import Event, EventBus
from ..core.exceptions import CollaboratorError, ImageNotFoundError, ResourceError
from ..core.pipeline import Phase, ResourcePipeline
from ..models import Image
from .database import DatabaseAdapter
from .plugins import IdentifyImage, ManipulateImage, PrepareImage
from .storage import StorageAdapter

logger = logging.getLogger("image_server.image_resource")

RESOURCE_NAME = "image"

ORIGINAL_WIDTH_HEADER = "X-ImageServer-OriginalWidth"
ORIGINAL_HEIGHT_HEADER = "X-ImageServer-OriginalHeight"
ORIGINAL_SIZE_HEADER = "X-ImageServer-OriginalFilesize"
ORIGINAL_MIME_TYPE_HEADER = "X-ImageServer-OriginalMimeType"


@contextmanager
def collaborator_call(label: str):
    """Wrap adapter failures as resource errors keeping their status."""
    try:
        yield
    except CollaboratorError as e:
        raise ResourceError(
            f"{label} error: {e.message}", status_code=e.status_code, kind=e.kind
        ) from e


class ImageResource:
    def __init__(self, storage: StorageAdapter, database: DatabaseAdapter):
        self.storage = storage
        self.database = database

    @property
    def handlers(self):
        return {
            "GET": self.get,
            "HEAD": self.head,
            "PUT": self.put,
            "DELETE": self.delete,
        }

    def put(self, event: Event) -> None:
        request = event.request
        image = event.get_argument("image")

        with collaborator_call("Database"):
            self.database.insert_image(request.public_key, request.image_identifier, image)

        with collaborator_call("Storage"):
            self.storage.store(request.public_key, request.image_identifier, image.blob)

        logger.info(
            "Stored image",
            extra={
                "public_key": request.public_key,
                "image_identifier": request.image_identifier,
                "filesize": image.filesize,
            },
        )
        event.response.status_code = 201
        event.response.body = {"imageIdentifier": request.image_identifier}

    def delete(self, event: Event) -> None:
        request = event.request

        with collaborator_call("Database"):
            self.database.delete_image(request.public_key, request.image_identifier)

        with collaborator_call("Storage"):
            self.storage.delete(request.public_key, request.image_identifier)

        event.response.status_code = 200
        event.response.body = {"imageIdentifier": request.image_identifier}

    def get(self, event: Event) -> None:
        request = event.request
        image = self._load_metadata(event)

        with collaborator_call("Storage"):
            image.blob = self.storage.fetch(request.public_key, request.image_identifier)

        event.set_argument("image", image)
        event.response.image = image

    def head(self, event: Event) -> None:
        image = self._load_metadata(event)
        event.set_argument("image", image)
        event.response.image = image

    def _load_metadata(self, event: Event) -> Image:
        request = event.request
        if not self.database.image_exists(request.public_key, request.image_identifier):
            raise ImageNotFoundError(request.public_key, request.image_identifier)

        with collaborator_call("Database"):
            image = self.database.load(request.public_key, request.image_identifier)

        event.response.set_headers(
            {
                ORIGINAL_WIDTH_HEADER: image.width,
                ORIGINAL_HEIGHT_HEADER: image.height,
                ORIGINAL_SIZE_HEADER: image.filesize,
                ORIGINAL_MIME_TYPE_HEADER: image.mime_type or "",
            }
        )
        return image


def build_image_pipeline(
    resource: ImageResource, bus: EventBus, validator: AccessTokenValidator
) -> ResourcePipeline:
    """
    Register the image plugins on ``bus``.

    PRE: access token (all methods), prepare and identify uploads.
    POST GET/HEAD: identify, then manipulate.
    """
    identify_image = IdentifyImage()

    return ResourcePipeline(RESOURCE_NAME, resource.handlers, bus).register_plugins(
        [
            (Phase.PRE, "GET", 100, validator),
            (Phase.PRE, "DELETE", 100, validator),
            (Phase.PRE, "PUT", 100, validator),
            (Phase.PRE, "PUT", 101, PrepareImage()),
            (Phase.PRE, "PUT", 102, identify_image),
            (Phase.POST, "GET", 100, identify_image),
            (Phase.POST, "GET", 101, ManipulateImage(bus)),
        ]
    )
