"""Forge Request - content negotiated access to server request data.

This package provides the ServerRequest decorator, which wraps an
immutable server-side HTTP request and adds body parsing by media type,
merged body/query parameters, and HTTP method predicates.
"""

# Define version
__version__ = "0.1.0"

__all__ = [
    "BodyParserContractError",
    "BodyParserRegistry",
    "Config",
    "ConfigError",
    "ForgeRequestError",
    "IServerRequest",
    "MediaType",
    "Request",
    "ServerRequest",
    "Uri",
    "configure_logging",
    "default_parsers",
    "parse_media_type",
]

from forge_request.config import Config
from forge_request.exceptions import BodyParserContractError, ConfigError, ForgeRequestError
from forge_request.interfaces import IServerRequest
from forge_request.logging_utils import configure_logging
from forge_request.media_type import MediaType, parse_media_type
from forge_request.parsers import default_parsers
from forge_request.registry import BodyParserRegistry
from forge_request.request import Request
from forge_request.server_request import ServerRequest
from forge_request.uri import Uri
