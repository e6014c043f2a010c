"""
Image Server - signed-URL image delivery

Serves and stores images under /users/{public_key}/images/{image}. Every
request runs through its resource pipeline: access token check and other
plugins around the core handler.
"""

import json
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from starlette.concurrency import run_in_threadpool

from .api.deps import ComponentsDep, ProcessorDep, ShortUrlStoreDep, build_image_request
from .bootstrap import ServerComponents
from .config import config
from .core.access_token import SHORT_URL_HEADER
from .core.exceptions import InvalidRequestError
from .core.logging_config import setup_logging
from .exceptions import register_exception_handlers
from .lifecycle import manage_lifespan
from .middleware import trace_propagation_middleware
from .models import ImageRequest, ImageResponse
from .services.image_resource import RESOURCE_NAME as IMAGE_RESOURCE
from .services.short_urls import RESOURCE_NAME as SHORT_URL_RESOURCE

setup_logging()
logger = logging.getLogger("image_server.main")

IMAGE_PATH = "/users/{public_key}/images/{image}"


def render_response(image_request: ImageRequest, image_response: ImageResponse) -> Response:
    """Turn the pipeline's response into an HTTP response."""
    headers = dict(image_response.headers)

    if image_response.error is not None:
        return JSONResponse(
            status_code=image_response.status_code,
            content={"error": image_response.error},
            headers=headers,
        )

    image = image_response.image
    if image is not None:
        content = b"" if image_request.method == "HEAD" else (image.blob or b"")
        return Response(
            content=content,
            status_code=image_response.status_code,
            headers=headers,
            media_type=image.mime_type,
        )

    return JSONResponse(
        status_code=image_response.status_code,
        content=image_response.body or {},
        headers=headers,
    )


def create_app(components: Optional[ServerComponents] = None) -> FastAPI:
    """
    Assemble the FastAPI application.

    ``components`` are built from configuration at startup when omitted.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        async with manage_lifespan(app, config):
            yield

    app = FastAPI(
        title="Image Server", version="1.0.0", lifespan=lifespan, root_path=config.root_path
    )
    app.state.components = components

    app.middleware("http")(trace_propagation_middleware)
    register_exception_handlers(app)

    @app.get("/status")
    async def status_check(components: ComponentsDep):
        storage_ok = components.storage.get_status()
        database_ok = components.database.get_status()
        healthy = storage_ok and database_ok
        return JSONResponse(
            status_code=200 if healthy else 503,
            content={
                "date": datetime.now(timezone.utc).isoformat(),
                "storage": storage_ok,
                "database": database_ok,
            },
        )

    @app.api_route(IMAGE_PATH, methods=["GET", "HEAD", "PUT", "DELETE"])
    async def image_handler(
        request: Request, public_key: str, image: str, processor: ProcessorDep
    ):
        body = await request.body() if request.method == "PUT" else b""
        image_request = build_image_request(request, public_key, image, body=body)

        image_response = await run_in_threadpool(
            processor.process_request, IMAGE_RESOURCE, image_request
        )
        return render_response(image_request, image_response)

    @app.post(IMAGE_PATH + "/shorturls")
    async def create_short_url(
        request: Request, public_key: str, image: str, processor: ProcessorDep
    ):
        image_request = build_image_request(request, public_key, image)

        raw_body = await request.body()
        try:
            params = json.loads(raw_body) if raw_body else {}
        except ValueError as e:
            raise InvalidRequestError(f"Invalid JSON body: {e}") from e
        if not isinstance(params, dict):
            raise InvalidRequestError("Short URL parameters must be a JSON object")

        image_response = await run_in_threadpool(
            processor.process_request,
            SHORT_URL_RESOURCE,
            image_request,
            None,
            {"params": params},
        )
        return render_response(image_request, image_response)

    @app.get("/s/{short_url_id}")
    async def resolve_short_url(
        request: Request,
        short_url_id: str,
        processor: ProcessorDep,
        short_urls: ShortUrlStoreDep,
    ):
        short_url = short_urls.resolve(short_url_id)
        image_request = build_image_request(
            request,
            short_url.public_key,
            short_url.image_identifier,
            query_string=short_url.query,
            extension=short_url.extension,
        )

        image_response = ImageResponse()
        image_response.set_headers({SHORT_URL_HEADER: short_url.id})

        image_response = await run_in_threadpool(
            processor.process_request, IMAGE_RESOURCE, image_request, image_response
        )
        return render_response(image_request, image_response)

    return app


app = create_app()
