import hashlib
import hmac
import io
import os
from urllib.parse import unquote, urlsplit

import pytest

# The config singleton is created at import time; keep it away from real files.
os.environ.setdefault("ACCESS_CONTROL_CONFIG_PATH", "/nonexistent/access_control.yml")
os.environ.setdefault("LOG_CONFIG_PATH", "/nonexistent/image_server_log.yaml")

from fastapi.testclient import TestClient  # noqa: E402
from PIL import Image as PILImage  # noqa: E402

from services.image_server.bootstrap import build_components  # noqa: E402
from services.image_server.core.events import Event  # noqa: E402
from services.image_server.core.transformations import (  # noqa: E402
    group_query_params,
    parse_query_string,
    parse_transformations,
)
from services.image_server.main import create_app  # noqa: E402
from services.image_server.models import ImageRequest, ImageResponse, ServerOptions  # noqa: E402
from services.image_server.services.access_control import StaticAccessControl  # noqa: E402

PUBLIC_KEY = "christer"
PRIVATE_KEY = "private key"


def hmac_sha256(data: str, private_key: str = PRIVATE_KEY) -> str:
    return hmac.new(private_key.encode(), data.encode(), hashlib.sha256).hexdigest()


@pytest.fixture
def png_bytes():
    def _make(width=40, height=30, color=(255, 0, 0), fmt="PNG"):
        buffer = io.BytesIO()
        PILImage.new("RGB", (width, height), color).save(buffer, format=fmt)
        return buffer.getvalue()

    return _make


@pytest.fixture
def access_control():
    return StaticAccessControl({PUBLIC_KEY: PRIVATE_KEY})


@pytest.fixture
def make_event(access_control):
    """Build an Event for a request URL the way the HTTP layer would."""

    def _make(
        url,
        method="GET",
        resource="image",
        public_key=PUBLIC_KEY,
        image_identifier=None,
        options=None,
        uri_as_is=None,
        response=None,
        lookup=None,
    ):
        uri_as_is = uri_as_is or url
        pairs = parse_query_string(urlsplit(uri_as_is).query)
        request = ImageRequest(
            method=method,
            raw_uri=unquote(url),
            uri_as_is=uri_as_is,
            public_key=public_key,
            image_identifier=image_identifier,
            query_params=group_query_params(pairs),
            transformations=parse_transformations(pairs),
        )
        return Event(
            name=f"{resource}.{method.lower()}",
            request=request,
            response=response or ImageResponse(),
            config=options or ServerOptions(),
            access_control=lookup or access_control,
        )

    return _make


@pytest.fixture
def components(access_control):
    return build_components(access_control)


@pytest.fixture
def client(components):
    return TestClient(create_app(components))


@pytest.fixture
def signed_url():
    """Append a valid access token to a TestClient URL."""

    def _sign(path, private_key=PRIVATE_KEY, argument="accessToken"):
        url = f"http://testserver{path}"
        separator = "&" if "?" in path else "?"
        return f"{path}{separator}{argument}={hmac_sha256(url, private_key)}"

    return _sign


@pytest.fixture
def sign():
    return hmac_sha256
