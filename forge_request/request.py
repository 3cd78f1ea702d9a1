"""HTTP server request message for forge_request.

This module provides the Request class, an immutable server-side HTTP
request holding the method, URI, headers, body, and the parameter bags a
server populates. It implements IServerRequest and is the default object
wrapped by ServerRequest.
"""

import re
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from multidict import CIMultiDict, CIMultiDictProxy

from forge_request.parsers import is_decoded_value
from forge_request.uri import Uri

HeadersInput = Union[Mapping[str, Any], Iterable[Tuple[str, str]], None]

# RFC 7230 token
_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_INVALID_VALUE = re.compile(r"[\r\n\x00]")


def _validate_header_name(name: str) -> None:
    if not isinstance(name, str) or not _TOKEN.match(name):
        raise ValueError(f"Invalid header name: {name!r}")


def _header_values(name: str, value: Any) -> List[str]:
    values = list(value) if isinstance(value, (list, tuple)) else [value]
    if not values:
        raise ValueError(f"Header {name!r} needs at least one value")

    result = []
    for item in values:
        if isinstance(item, (int, float)) and not isinstance(item, bool):
            item = str(item)
        if not isinstance(item, str) or _INVALID_VALUE.search(item):
            raise ValueError(f"Invalid value for header {name!r}: {item!r}")
        result.append(item.strip(" \t"))
    return result


def _build_headers(headers: HeadersInput) -> CIMultiDictProxy:
    if isinstance(headers, CIMultiDictProxy):
        return headers

    items = headers.items() if isinstance(headers, Mapping) else (headers or [])
    result: CIMultiDict = CIMultiDict()
    for name, value in items:
        _validate_header_name(name)
        for item in _header_values(name, value):
            result.add(name, item)
    return CIMultiDictProxy(result)


@dataclass(frozen=True, eq=False)
class Request:
    """Immutable server-side HTTP request.

    Mapping arguments are copied on construction. ``headers`` accepts a
    mapping (values may be lists) or an iterable of name/value pairs and
    is stored case-insensitively.
    """
    method: str = "GET"
    uri: Union[Uri, str] = field(default_factory=Uri)
    headers: HeadersInput = None
    body: bytes = b""
    query_params: Optional[Mapping[str, Any]] = None
    cookie_params: Optional[Mapping[str, Any]] = None
    server_params: Optional[Mapping[str, Any]] = None
    attributes: Optional[Mapping[str, Any]] = None
    parsed_body: Optional[Any] = None
    protocol_version: str = "1.1"
    uploaded_files: Optional[Mapping[str, Any]] = None
    request_target: Optional[str] = None

    def __post_init__(self) -> None:
        if not isinstance(self.method, str) or not _TOKEN.match(self.method):
            raise ValueError(f"Invalid HTTP method: {self.method!r}")
        if isinstance(self.uri, str):
            object.__setattr__(self, "uri", Uri.from_string(self.uri))
        if isinstance(self.body, str):
            object.__setattr__(self, "body", self.body.encode("utf-8"))
        object.__setattr__(self, "headers", _build_headers(self.headers))
        for name in ("query_params", "cookie_params", "server_params", "attributes", "uploaded_files"):
            object.__setattr__(self, name, dict(getattr(self, name) or {}))

    def _with_headers(self, headers: CIMultiDict) -> "Request":
        return replace(self, headers=CIMultiDictProxy(headers))

    def get_method(self) -> str:
        return self.method

    def get_uri(self) -> Uri:
        return self.uri

    def get_header(self, name: str) -> List[str]:
        return self.headers.getall(name, [])

    def get_header_line(self, name: str) -> str:
        return ",".join(self.get_header(name))

    def has_header(self, name: str) -> bool:
        return name in self.headers

    def get_headers(self) -> Dict[str, List[str]]:
        """Get all headers, keyed by the first spelling of each name."""
        result: Dict[str, List[str]] = {}
        for name in self.headers.keys():
            if any(existing.lower() == name.lower() for existing in result):
                continue
            result[name] = self.headers.getall(name)
        return result

    def get_body(self) -> bytes:
        return self.body

    def get_query_params(self) -> Dict[str, Any]:
        return self.query_params

    def get_cookie_params(self) -> Dict[str, Any]:
        return self.cookie_params

    def get_server_params(self) -> Dict[str, Any]:
        return self.server_params

    def get_parsed_body(self) -> Optional[Any]:
        return self.parsed_body

    def get_attribute(self, name: str, default: Optional[Any] = None) -> Optional[Any]:
        return self.attributes.get(name, default)

    def get_attributes(self) -> Dict[str, Any]:
        return self.attributes

    def get_protocol_version(self) -> str:
        return self.protocol_version

    def get_request_target(self) -> str:
        if self.request_target is not None:
            return self.request_target
        target = self.uri.path or "/"
        if self.uri.query:
            target = f"{target}?{self.uri.query}"
        return target

    def get_uploaded_files(self) -> Dict[str, Any]:
        return self.uploaded_files

    def with_header(self, name: str, value: Any) -> "Request":
        """Return a copy with the header replaced.

        Raises:
            ValueError: If the name is not a token or a value holds CR, LF or NUL.
        """
        _validate_header_name(name)
        values = _header_values(name, value)
        headers = CIMultiDict(self.headers)
        headers.popall(name, None)
        for item in values:
            headers.add(name, item)
        return self._with_headers(headers)

    def with_added_header(self, name: str, value: Any) -> "Request":
        """Return a copy with values appended to the header.

        Raises:
            ValueError: If the name is not a token or a value holds CR, LF or NUL.
        """
        _validate_header_name(name)
        headers = CIMultiDict(self.headers)
        for item in _header_values(name, value):
            headers.add(name, item)
        return self._with_headers(headers)

    def without_header(self, name: str) -> "Request":
        headers = CIMultiDict(self.headers)
        headers.popall(name, None)
        return self._with_headers(headers)

    def with_body(self, body: Union[bytes, str]) -> "Request":
        return replace(self, body=body)

    def with_method(self, method: str) -> "Request":
        return replace(self, method=method)

    def with_parsed_body(self, data: Optional[Any]) -> "Request":
        """Return a copy with the parsed body set.

        Raises:
            TypeError: If data is a scalar, tuple or set rather than a mapping,
                list, object or None.
        """
        if not is_decoded_value(data):
            raise TypeError("Parsed body must be a mapping, a list, an object, or None")
        return replace(self, parsed_body=data)

    def with_query_params(self, query: Mapping[str, Any]) -> "Request":
        return replace(self, query_params=query)

    def with_cookie_params(self, cookies: Mapping[str, Any]) -> "Request":
        return replace(self, cookie_params=cookies)

    def with_uri(self, uri: Union[Uri, str], preserve_host: bool = False) -> "Request":
        """Return a copy with a new URI.

        The Host header follows the new URI's host unless ``preserve_host``
        is set and the request already carries a Host header.
        """
        if isinstance(uri, str):
            uri = Uri.from_string(uri)
        request = replace(self, uri=uri)
        if not uri.host:
            return request
        if preserve_host and self.get_header_line("Host"):
            return request
        return request.with_header("Host", uri.authority)

    def with_attribute(self, name: str, value: Any) -> "Request":
        attributes = dict(self.attributes)
        attributes[name] = value
        return replace(self, attributes=attributes)

    def without_attribute(self, name: str) -> "Request":
        attributes = dict(self.attributes)
        attributes.pop(name, None)
        return replace(self, attributes=attributes)

    def with_protocol_version(self, version: str) -> "Request":
        return replace(self, protocol_version=version)

    def with_request_target(self, request_target: str) -> "Request":
        if any(char.isspace() for char in request_target):
            raise ValueError("Request target must not contain whitespace")
        return replace(self, request_target=request_target)

    def with_uploaded_files(self, uploaded_files: Mapping[str, Any]) -> "Request":
        return replace(self, uploaded_files=uploaded_files)
