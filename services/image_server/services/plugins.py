"""
Image pipeline plugins.

PRE plugins prepare and identify uploaded images; POST plugins identify and
transform fetched images before they are returned.
"""

import hashlib
import logging

from ..core.events import Event, EventBus
from ..core.exceptions import InvalidImageError, TransformationError
from ..models import Image
from .image_transform import convert, identify, transformation_event

logger = logging.getLogger("image_server.plugins")

TRANSFORMATION_COUNT_HEADER = "X-ImageServer-TransformationCount"


def image_checksum(blob: bytes) -> str:
    return hashlib.md5(blob).hexdigest()


class PrepareImage:
    """
    Turn the request body into the event's ``image`` argument.

    The image identifier must be the MD5 checksum of the uploaded bytes.
    """

    def __call__(self, event: Event) -> None:
        request = event.request
        if not request.body:
            raise InvalidImageError("No image attached")

        checksum = image_checksum(request.body)
        if request.image_identifier != checksum:
            raise InvalidImageError(
                f"Image identifier does not match the image checksum: {checksum}"
            )

        event.set_argument("image", Image(blob=request.body))


class IdentifyImage:
    """Fill in type and dimensions of the event's image."""

    def __call__(self, event: Event) -> None:
        image = event.get_argument("image")
        if image is None or not image.has_blob:
            return

        mime_type, extension, width, height = identify(image.blob)
        image.mime_type = mime_type
        image.extension = extension
        image.width = width
        image.height = height


class ManipulateImage:
    """
    Apply the requested transformations by dispatching
    ``image.transformation.<name>`` on the bus, then convert the output
    format when the request asks for another extension.
    """

    def __init__(self, bus: EventBus):
        self.bus = bus

    def __call__(self, event: Event) -> None:
        image = event.get_argument("image")
        if image is None or not image.has_blob:
            return

        transformations = event.request.transformations
        for transformation in transformations:
            event_name = transformation_event(transformation.name)
            if not self.bus.has_listeners(event_name):
                raise TransformationError(f"Unknown transformation: {transformation.name}")

            event.set_argument("params", transformation.params)
            self.bus.dispatch(event_name, event)

        extension = event.request.extension
        if extension and extension != image.extension:
            convert(image, extension)

        if transformations:
            event.response.set_headers({TRANSFORMATION_COUNT_HEADER: len(transformations)})
            logger.debug(
                "Applied transformations",
                extra={"transformations": [t.name for t in transformations]},
            )
