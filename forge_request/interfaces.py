"""Interfaces for forge_request.

This module defines the protocol a server request object implements.
ServerRequest wraps any object satisfying IServerRequest and implements
the protocol itself, so wrappers and plain requests are interchangeable.
"""

from typing import Any, Dict, List, Mapping, Optional, Protocol, TypeVar

from forge_request.uri import Uri

T = TypeVar("T", bound="IServerRequest")


class IServerRequest(Protocol):
    """Protocol defining an immutable server-side HTTP request.

    Every ``with_*``/``without_*`` method returns a new object and leaves
    the receiver untouched.
    """

    def get_method(self) -> str:
        """Get the HTTP method."""
        ...

    def get_header(self, name: str) -> List[str]:
        """Get all values of a header (case-insensitive), or an empty list."""
        ...

    def get_header_line(self, name: str) -> str:
        """Get all values of a header joined with a comma, or ""."""
        ...

    def has_header(self, name: str) -> bool:
        """Check whether a header is present."""
        ...

    def get_headers(self) -> Dict[str, List[str]]:
        """Get all headers."""
        ...

    def get_body(self) -> bytes:
        """Get the raw request body."""
        ...

    def get_uri(self) -> Uri:
        """Get the request URI."""
        ...

    def get_query_params(self) -> Dict[str, Any]:
        """Get the materialized query parameters."""
        ...

    def get_cookie_params(self) -> Dict[str, Any]:
        """Get the cookies sent by the client."""
        ...

    def get_server_params(self) -> Dict[str, Any]:
        """Get the server environment parameters."""
        ...

    def get_parsed_body(self) -> Optional[Any]:
        """Get the parsed body, or None."""
        ...

    def get_attribute(self, name: str, default: Optional[Any] = None) -> Optional[Any]:
        """Get a derived request attribute."""
        ...

    def get_attributes(self) -> Dict[str, Any]:
        """Get all derived request attributes."""
        ...

    def get_protocol_version(self) -> str:
        """Get the HTTP protocol version, e.g. "1.1"."""
        ...

    def get_request_target(self) -> str:
        """Get the request target."""
        ...

    def get_uploaded_files(self) -> Dict[str, Any]:
        """Get the uploaded files."""
        ...

    def with_header(self: T, name: str, value: Any) -> T: ...

    def with_added_header(self: T, name: str, value: Any) -> T: ...

    def without_header(self: T, name: str) -> T: ...

    def with_body(self: T, body: bytes) -> T: ...

    def with_method(self: T, method: str) -> T: ...

    def with_parsed_body(self: T, data: Optional[Any]) -> T: ...

    def with_query_params(self: T, query: Mapping[str, Any]) -> T: ...

    def with_cookie_params(self: T, cookies: Mapping[str, Any]) -> T: ...

    def with_uri(self: T, uri: Uri, preserve_host: bool = False) -> T: ...

    def with_attribute(self: T, name: str, value: Any) -> T: ...

    def without_attribute(self: T, name: str) -> T: ...

    def with_protocol_version(self: T, version: str) -> T: ...

    def with_request_target(self: T, request_target: str) -> T: ...

    def with_uploaded_files(self: T, uploaded_files: Mapping[str, Any]) -> T: ...
