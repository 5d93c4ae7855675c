"""
Pytest configuration and fixtures for Coda MCP Server tests.
"""

import json

import httpx
import pytest
from unittest.mock import MagicMock, patch

from coda_mcp.client import CodaClient
from coda_mcp.config import CodaConfig


class RecordingWriter:
    """
    Page content writer double that records every call.

    Fails on the fail_on-th call (1-indexed) when fail_on is set.
    """

    def __init__(self, fail_on: int | None = None, error: Exception | None = None):
        self.calls = []
        self.fail_on = fail_on
        self.error = error or Exception("write rejected")

    async def __call__(self, chunk, mode, content_format):
        self.calls.append((chunk, mode, content_format))
        if self.fail_on is not None and len(self.calls) == self.fail_on:
            raise self.error
        return {"requestId": f"req-{len(self.calls)}"}

    @property
    def chunks(self):
        return [call[0] for call in self.calls]

    @property
    def modes(self):
        return [call[1] for call in self.calls]


@pytest.fixture
def recording_writer():
    """
    Provide a page content writer that records calls and always succeeds.
    """
    return RecordingWriter()


@pytest.fixture
def config():
    """
    Provide a client configuration with pacing and settle delays disabled.
    """
    return CodaConfig(api_key="test-key", pacing_delay=0, settle_delay=0)


@pytest.fixture
def mock_coda_client(config):
    """
    Provide a mock Coda API client and install it as the shared client.
    """
    client = MagicMock(spec=CodaClient)
    client.config = config
    with patch("coda_mcp.api.helpers.get_client", return_value=client):
        yield client


class MockCodaApi:
    """
    Route table for httpx.MockTransport.

    Maps (method, path below /apis/v1) to a response or a list of responses
    consumed in order, and records every request.
    """

    def __init__(self):
        self.routes = {}
        self.requests = []

    def add(self, method, path, *responses):
        self.routes[(method, path)] = list(responses)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.removeprefix("/apis/v1")
        responses = self.routes.get((request.method, path))
        if not responses:
            return httpx.Response(404, json={"message": f"No route for {request.method} {path}"})
        response = responses.pop(0) if len(responses) > 1 else responses[0]
        return response

    def bodies(self, method=None):
        return [
            json.loads(request.content)
            for request in self.requests
            if request.content and (method is None or request.method == method)
        ]


@pytest.fixture
def coda_api():
    """
    Provide a fake Coda API to route requests against.
    """
    return MockCodaApi()


@pytest.fixture
def http_client(config, coda_api):
    """
    Provide a real CodaClient whose HTTP traffic goes to the fake Coda API.
    """
    return CodaClient(config, transport=httpx.MockTransport(coda_api.handler))


@pytest.fixture
def sample_docs_response():
    """
    Provide a /docs response matching the Coda API structure.
    """
    return {
        "items": [
            {
                "id": "AbCDeFGH",
                "type": "doc",
                "name": "Project Tracker",
                "ownerName": "Jane Doe",
                "browserLink": "https://coda.io/d/_dAbCDeFGH",
                "createdAt": "2024-03-01T10:00:00.000Z",
                "updatedAt": "2024-05-19T12:30:00.000Z",
            },
            {
                "id": "XyZ12345",
                "type": "doc",
                "name": "Meeting Notes",
                "browserLink": "https://coda.io/d/_dXyZ12345",
                "createdAt": "2024-04-10T08:00:00.000Z",
            },
        ]
    }


@pytest.fixture
def sample_rows_response():
    """
    Provide a /rows response with values keyed by column name.
    """
    return {
        "items": [
            {
                "id": "i-row1",
                "type": "row",
                "name": "Write spec",
                "index": 0,
                "values": {"Task": "Write spec", "Status": "Done", "Points": 3},
            },
            {
                "id": "i-row2",
                "type": "row",
                "name": "Build client",
                "index": 1,
                "values": {"Task": "Build client", "Status": "In progress", "Points": 5},
            },
            {
                "id": "i-row3",
                "type": "row",
                "name": "Ship it",
                "index": 2,
                "values": {"Task": "Ship it", "Status": "done later", "Points": 1},
            },
        ]
    }
