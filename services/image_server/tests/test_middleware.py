import uuid
from unittest.mock import MagicMock

import pytest
from fastapi import Request, Response

from services.common.core import request_context
from services.image_server.middleware import (
    REQUEST_ID_HEADER,
    TRACE_ID_HEADER,
    trace_propagation_middleware,
)


def mock_request(headers=None):
    request = MagicMock(spec=Request)
    request.headers = headers or {}
    request.method = "GET"
    request.url.path = "/status"
    request.client = MagicMock()
    request.client.host = "127.0.0.1"
    request.state = MagicMock()
    return request


@pytest.mark.asyncio
async def test_generates_request_id_independent_of_trace_id():
    request = mock_request()

    async def call_next(req):
        req.state.captured_req_id = request_context.get_request_id()
        req.state.captured_trace_id = request_context.get_trace_id()
        return Response(status_code=200)

    request_context.clear_trace_id()
    response = await trace_propagation_middleware(request, call_next)

    req_id = request.state.captured_req_id
    uuid.UUID(req_id)
    assert response.headers[REQUEST_ID_HEADER] == req_id

    trace_id = request.state.captured_trace_id
    assert trace_id is not None
    assert response.headers[TRACE_ID_HEADER] == trace_id
    assert req_id not in trace_id


@pytest.mark.asyncio
async def test_propagates_valid_trace_id():
    trace_id = "5759e988-bd862e3fe1be46a994272793;parent=53995c3f42cd8ad8"
    request = mock_request({TRACE_ID_HEADER: trace_id})

    async def call_next(req):
        req.state.captured_trace_id = request_context.get_trace_id()
        return Response(status_code=204)

    response = await trace_propagation_middleware(request, call_next)

    assert request.state.captured_trace_id == trace_id
    assert response.headers[TRACE_ID_HEADER] == trace_id


@pytest.mark.asyncio
async def test_context_is_cleared_after_request():
    async def call_next(req):
        return Response(status_code=200)

    await trace_propagation_middleware(mock_request(), call_next)

    assert request_context.get_trace_id() is None
    assert request_context.get_request_id() is None


@pytest.mark.asyncio
async def test_context_is_cleared_on_error():
    async def call_next(req):
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError):
        await trace_propagation_middleware(mock_request(), call_next)

    assert request_context.get_trace_id() is None
