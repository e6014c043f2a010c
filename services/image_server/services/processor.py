"""
Image Request Processor - Service Layer

Standardizes the flow: ImageRequest -> Event -> pipeline -> ImageResponse.
"""

import logging
from typing import Any, Dict, Mapping, Optional

from ..core.events import Event
from ..core.exceptions import ConfigurationError
from ..core.pipeline import ResourcePipeline
from ..models import ImageRequest, ImageResponse, ServerOptions
from .access_control import AccessControl

logger = logging.getLogger("image_server.processor")


class ImageRequestProcessor:
    """
    Orchestrates the request processing lifecycle.

    Creates one Event per request and hands it to the resource pipeline.
    """

    def __init__(
        self,
        pipelines: Mapping[str, ResourcePipeline],
        options: ServerOptions,
        access_control: AccessControl,
    ):
        self.pipelines = dict(pipelines)
        self.options = options
        self.access_control = access_control

    def process_request(
        self,
        resource_name: str,
        request: ImageRequest,
        response: Optional[ImageResponse] = None,
        arguments: Optional[Dict[str, Any]] = None,
    ) -> ImageResponse:
        """
        Process a request from ImageRequest to ImageResponse.

        Pipeline failures are recorded on the response (status and error),
        never raised.
        """
        pipeline = self.pipelines.get(resource_name)
        if pipeline is None:
            raise ConfigurationError(f"No pipeline registered for resource '{resource_name}'")

        if response is None:
            response = ImageResponse()
        event = Event(
            name=f"{resource_name}.{request.method.lower()}",
            request=request,
            response=response,
            config=self.options,
            access_control=self.access_control,
            arguments=arguments,
        )

        logger.info(
            f"Processing {event.name} for {request.public_key}/{request.image_identifier}",
            extra={"event": event.name, "public_key": request.public_key},
        )

        result = pipeline.run(request.method, event)
        if not result.success:
            response.status_code = result.status_code
            response.body = None
            response.image = None
            response.error = {
                "code": result.status_code,
                "message": result.error,
                "kind": result.error_kind,
            }

        return response
