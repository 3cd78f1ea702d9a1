"""Test fixtures and configuration for forge_request."""

import sys
import pytest
from pathlib import Path

# Add the repository root directory to the Python path
# This makes 'forge_request' importable without installing it
repo_root = Path(__file__).parent.parent
sys.path.insert(0, str(repo_root))

from forge_request.config import Config
from forge_request.request import Request
from forge_request.server_request import ServerRequest


@pytest.fixture
def config(monkeypatch):
    """Create a configuration instance unaffected by the environment."""
    for key in ("FORGE_REQUEST_LOG_LEVEL", "FORGE_REQUEST_FORM_MAX_DEPTH",
                "FORGE_REQUEST_PARSERS_JSON", "FORGE_REQUEST_PARSERS_XML",
                "FORGE_REQUEST_PARSERS_FORM"):
        monkeypatch.delenv(key, raising=False)
    return Config()


@pytest.fixture
def request_factory():
    """Create a factory function for wrapped test requests."""
    def _create_request(
        method="GET",
        uri="/",
        headers=None,
        body=b"",
        query_params=None,
        cookie_params=None,
        server_params=None,
        parsed_body=None,
        config=None,
    ):
        request = Request(
            method=method,
            uri=uri,
            headers=headers,
            body=body,
            query_params=query_params,
            cookie_params=cookie_params,
            server_params=server_params,
            parsed_body=parsed_body,
        )
        return ServerRequest(request, config=config)
    return _create_request


@pytest.fixture
def json_request(request_factory):
    """Create a test JSON request."""
    return request_factory(
        method="POST",
        uri="/api/data?name=query&page=2",
        headers={"Content-Type": "application/json"},
        body=b'{"name": "test", "value": 123}',
    )


@pytest.fixture
def form_request(request_factory):
    """Create a test form request."""
    return request_factory(
        method="POST",
        uri="/api/form",
        headers={"Content-Type": "application/x-www-form-urlencoded"},
        body=b"name=test&value=123",
    )
