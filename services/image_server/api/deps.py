"""
Dependency Injection for the Image Server API.

Manage request handler dependencies using FastAPI Depends.
"""

import re
from typing import Annotated, Optional, Tuple
from urllib.parse import unquote

from fastapi import Depends, Request

from services.common.core.request_context import set_public_key

from ..bootstrap import ServerComponents
from ..core.exceptions import InvalidRequestError
from ..core.transformations import group_query_params, parse_query_string, parse_transformations
from ..models import ImageRequest
from ..services.processor import ImageRequestProcessor
from ..services.short_urls import ShortUrlStore

PUBLIC_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,}$")
IMAGE_SEGMENT_PATTERN = re.compile(r"^(?P<id>[A-Za-z0-9_-]+)(?:\.(?P<ext>[a-z]{3,4}))?$")


# ==========================================
# 1. Service Accessors
# ==========================================


def get_components(request: Request) -> ServerComponents:
    return request.app.state.components


def get_processor(request: Request) -> ImageRequestProcessor:
    return request.app.state.components.processor


def get_short_urls(request: Request) -> ShortUrlStore:
    return request.app.state.components.short_urls


# Service Dependency Type Aliases
ComponentsDep = Annotated[ServerComponents, Depends(get_components)]
ProcessorDep = Annotated[ImageRequestProcessor, Depends(get_processor)]
ShortUrlStoreDep = Annotated[ShortUrlStore, Depends(get_short_urls)]


# ==========================================
# 2. Request Translation
# ==========================================


def parse_image_segment(segment: str) -> Tuple[str, Optional[str]]:
    """
    Split ``<identifier>[.<extension>]``.

    Raises:
        InvalidRequestError: malformed segment
    """
    match = IMAGE_SEGMENT_PATTERN.match(segment)
    if not match:
        raise InvalidRequestError(f"Invalid image identifier: {segment}")
    return match.group("id"), match.group("ext")


def request_uri(request: Request, query_string: Optional[str] = None) -> str:
    """
    Rebuild the absolute URI exactly as the client sent it.

    ``query_string`` replaces the received query when given.
    """
    raw_path = request.scope.get("raw_path")
    path = raw_path.decode("latin-1") if raw_path else request.url.path
    if query_string is None:
        query_string = request.scope.get("query_string", b"").decode("latin-1")

    uri = f"{request.url.scheme}://{request.url.netloc}{path}"
    if query_string:
        uri = f"{uri}?{query_string}"
    return uri


def build_image_request(
    request: Request,
    public_key: str,
    image: Optional[str] = None,
    body: bytes = b"",
    method: Optional[str] = None,
    query_string: Optional[str] = None,
    extension: Optional[str] = None,
) -> ImageRequest:
    """
    Translate a Starlette request into an ImageRequest.

    Raises:
        InvalidRequestError: malformed public key or image identifier
        TransformationError: malformed transformation in the query
    """
    if not PUBLIC_KEY_PATTERN.match(public_key):
        raise InvalidRequestError(f"Invalid public key: {public_key}")
    set_public_key(public_key)

    image_identifier = None
    if image is not None:
        image_identifier, segment_extension = parse_image_segment(image)
        extension = extension or segment_extension

    uri_as_is = request_uri(request, query_string)
    _, _, raw_query = uri_as_is.partition("?")
    pairs = parse_query_string(raw_query)

    return ImageRequest(
        method=method or request.method,
        raw_uri=unquote(uri_as_is),
        uri_as_is=uri_as_is,
        public_key=public_key,
        image_identifier=image_identifier,
        extension=extension,
        query_params=group_query_params(pairs),
        transformations=parse_transformations(pairs),
        headers={key.lower(): value for key, value in request.headers.items()},
        body=body,
    )
