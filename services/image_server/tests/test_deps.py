import pytest
from starlette.requests import Request

from services.common.core import request_context

from services.image_server.api.deps import build_image_request, parse_image_segment, request_uri
from services.image_server.core.exceptions import InvalidRequestError, TransformationError


def make_request(path="/users/christer/images/abc", query=b"", method="GET"):
    scope = {
        "type": "http",
        "method": method,
        "scheme": "http",
        "server": ("imbo", 80),
        "path": path,
        "raw_path": path.encode(),
        "query_string": query,
        "headers": [(b"host", b"imbo"), (b"x-custom", b"1")],
    }
    return Request(scope)


@pytest.mark.parametrize(
    "segment, expected",
    [
        ("abc", ("abc", None)),
        ("abc.png", ("abc", "png")),
        ("929db9c5fc3099f7576f5655207eba47.webp", ("929db9c5fc3099f7576f5655207eba47", "webp")),
    ],
)
def test_parse_image_segment(segment, expected):
    assert parse_image_segment(segment) == expected


@pytest.mark.parametrize("segment", ["abc.", "abc.x", "abc.PNG", "a/b", "abc.png.jpg"])
def test_parse_image_segment_invalid(segment):
    with pytest.raises(InvalidRequestError):
        parse_image_segment(segment)


def test_request_uri_keeps_encoding():
    request = make_request(query=b"t%5B0%5D=border&accessToken=x")
    assert request_uri(request) == (
        "http://imbo/users/christer/images/abc?t%5B0%5D=border&accessToken=x"
    )


def test_request_uri_with_replacement_query():
    request = make_request(query=b"ignored=1")
    assert request_uri(request, "t[]=crop") == "http://imbo/users/christer/images/abc?t[]=crop"
    assert request_uri(request, "") == "http://imbo/users/christer/images/abc"


def test_build_image_request():
    request = make_request(
        path="/users/christer/images/abc.jpg",
        query=b"t%5B%5D=thumbnail%3Awidth%3D40&t%5B%5D=border&accessToken=x",
    )

    image_request = build_image_request(request, "christer", "abc.jpg")

    assert image_request.method == "GET"
    assert image_request.public_key == "christer"
    assert image_request.image_identifier == "abc"
    assert image_request.extension == "jpg"
    assert image_request.uri_as_is.endswith(
        "?t%5B%5D=thumbnail%3Awidth%3D40&t%5B%5D=border&accessToken=x"
    )
    assert image_request.raw_uri.endswith("?t[]=thumbnail:width=40&t[]=border&accessToken=x")
    assert [t.name for t in image_request.transformations] == ["thumbnail", "border"]
    assert image_request.transformations[0].params == {"width": "40"}
    assert image_request.get_query("accessToken") == "x"
    assert image_request.headers["x-custom"] == "1"


def test_build_image_request_overrides():
    request = make_request(path="/s/abcdefg")
    image_request = build_image_request(
        request,
        "christer",
        "abc",
        method="GET",
        query_string="t[]=border",
        extension="png",
    )

    assert image_request.extension == "png"
    assert image_request.transformation_names == {"border"}


def test_build_image_request_invalid_public_key():
    with pytest.raises(InvalidRequestError):
        build_image_request(make_request(), "chris ter", "abc")


def test_build_image_request_invalid_transformation():
    with pytest.raises(TransformationError):
        build_image_request(make_request(query=b"t[]=1abc"), "christer", "abc")


def test_build_image_request_binds_public_key():
    request_context.clear_trace_id()

    build_image_request(make_request(), "christer", "abc")

    assert request_context.get_public_key() == "christer"
    request_context.clear_trace_id()
