"""
Short URLs.

A short URL is a stored alias for an image URL including its query string.
It is checked for a valid access token when it is created, so requests made
through it are served without one.
"""

import logging
import secrets
import string
import threading
from typing import Dict, Optional

from ..core.access_token import AccessTokenValidator
from ..core.events import Event, EventBus
from ..core.exceptions import ImageNotFoundError, InvalidRequestError, ShortUrlNotFoundError
from ..core.pipeline import Phase, ResourcePipeline
from ..core.transformations import parse_query_string, parse_transformations
from ..models import ShortUrl
from .database import DatabaseAdapter
from .image_transform import FORMATS

logger = logging.getLogger("image_server.short_urls")

RESOURCE_NAME = "shorturl"

SHORT_URL_ID_LENGTH = 7
_ALPHABET = string.ascii_letters + string.digits


class ShortUrlStore:
    def __init__(self):
        self._urls: Dict[str, ShortUrl] = {}
        self._lock = threading.Lock()

    def create(
        self,
        public_key: str,
        image_identifier: str,
        query: str = "",
        extension: Optional[str] = None,
    ) -> ShortUrl:
        """Store an alias, reusing the existing ID for an identical URL."""
        query = query.lstrip("?")
        with self._lock:
            for short_url in self._urls.values():
                if (
                    short_url.public_key == public_key
                    and short_url.image_identifier == image_identifier
                    and short_url.query == query
                    and short_url.extension == extension
                ):
                    return short_url

            short_url_id = self._generate_id()
            short_url = ShortUrl(
                id=short_url_id,
                public_key=public_key,
                image_identifier=image_identifier,
                extension=extension,
                query=query,
            )
            self._urls[short_url_id] = short_url

        logger.info(
            "Created short URL",
            extra={"short_url_id": short_url_id, "public_key": public_key},
        )
        return short_url

    def resolve(self, short_url_id: str) -> ShortUrl:
        with self._lock:
            short_url = self._urls.get(short_url_id)
        if short_url is None:
            raise ShortUrlNotFoundError(short_url_id)
        return short_url

    def _generate_id(self) -> str:
        while True:
            candidate = "".join(secrets.choice(_ALPHABET) for _ in range(SHORT_URL_ID_LENGTH))
            if candidate not in self._urls:
                return candidate


class ShortUrlResource:
    """
    POST /users/{user}/images/{image}/shorturls

    The JSON body may carry ``query`` (e.g. ``?t[]=border``) and ``extension``.
    """

    def __init__(self, store: ShortUrlStore, database: DatabaseAdapter):
        self.store = store
        self.database = database

    @property
    def handlers(self):
        return {"POST": self.post}

    def post(self, event: Event) -> None:
        request = event.request
        if not self.database.image_exists(request.public_key, request.image_identifier):
            raise ImageNotFoundError(request.public_key, request.image_identifier)

        params = event.get_argument("params") or {}
        query = params.get("query") or ""
        extension = params.get("extension")
        if not isinstance(query, str) or (extension is not None and not isinstance(extension, str)):
            raise InvalidRequestError("Invalid short URL parameters")

        if extension is not None and extension not in FORMATS:
            raise InvalidRequestError(f"Unsupported extension: {extension}")
        parse_transformations(parse_query_string(query.lstrip("?")))

        short_url = self.store.create(
            request.public_key, request.image_identifier, query=query, extension=extension
        )
        event.response.status_code = 201
        event.response.body = {"id": short_url.id}


def build_short_url_pipeline(
    resource: ShortUrlResource, bus: EventBus, validator: AccessTokenValidator
) -> ResourcePipeline:
    return ResourcePipeline(RESOURCE_NAME, resource.handlers, bus).register_plugin(
        Phase.PRE, "POST", 100, validator
    )
