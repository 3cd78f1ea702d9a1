"""Server request decorator for forge_request.

This module provides the ServerRequest class, an immutable wrapper around
any IServerRequest that adds content negotiated body parsing, merged
body/query parameter access, and HTTP method predicates.

Parsing is lazy and never cached: the parsed body is derived from the
current headers and body every time it is requested.
"""

import dataclasses
import logging
from typing import Any, Dict, List, Mapping, Optional

from forge_request.config import Config
from forge_request.exceptions import BodyParserContractError
from forge_request.interfaces import IServerRequest
from forge_request.media_type import MediaType, parse_media_type
from forge_request.parsers import (
    BodyParser, default_parsers, is_decoded_value, is_index_key, parse_query_string,
)
from forge_request.registry import BodyParserRegistry
from forge_request.uri import Uri

logger = logging.getLogger(__name__)

_MISSING = object()


def _record_fields(record: Any) -> Dict[str, Any]:
    """Get the public fields of a record-like parsed body."""
    if dataclasses.is_dataclass(record):
        return {f.name: getattr(record, f.name) for f in dataclasses.fields(record)}
    try:
        return vars(record)
    except TypeError:
        return {}


def _lookup(container: Any, key: Any) -> Any:
    """Look a key up in a mapping, list or record.

    Mapping and list entries holding None count as missing; a record field
    holding None is found.
    """
    if container is None:
        return _MISSING

    if isinstance(container, Mapping):
        value = container.get(key)
    elif isinstance(container, list):
        if isinstance(key, str) and is_index_key(key):
            key = int(key)
        if not isinstance(key, int) or isinstance(key, bool) or not 0 <= key < len(container):
            return _MISSING
        value = container[key]
    else:
        fields = _record_fields(container)
        return fields[key] if key in fields else _MISSING

    return _MISSING if value is None else value


def _as_mapping(container: Any) -> Dict[Any, Any]:
    if isinstance(container, Mapping):
        return dict(container)
    if isinstance(container, list):
        return dict(enumerate(container))
    return dict(_record_fields(container))


class ServerRequest:
    """Immutable decorator around a server request.

    Reads are delegated to the wrapped request. Every ``with_*`` and
    ``without_*`` method returns a new ServerRequest around the wrapped
    request's copy, carrying a snapshot of this wrapper's body parsers.

    ``register_media_type_parser`` is the one exception to immutability:
    it changes the parsers of this wrapper in place and returns it. A
    wrapper is meant to serve one request on one thread; the parser
    registry is locked, everything else is plain reads.
    """

    def __init__(
        self,
        request: IServerRequest,
        config: Optional[Config] = None,
        parsers: Optional[BodyParserRegistry] = None,
    ) -> None:
        """Wrap a server request.

        Args:
            request: The request to wrap.
            config: Configuration used to seed the default body parsers.
            parsers: Body parser registry to use as is instead of the defaults.
        """
        config = config or Config()
        if parsers is None:
            parsers = BodyParserRegistry(default_parsers(config))

        object.__setattr__(self, "_request", request)
        object.__setattr__(self, "_config", config)
        object.__setattr__(self, "_parsers", parsers)

    def __setattr__(self, name: str, value: Any) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable; use the with_* methods")

    def __delattr__(self, name: str) -> None:
        raise AttributeError(f"{type(self).__name__} is immutable; use the with_* methods")

    def __repr__(self) -> str:
        return f"<ServerRequest {self.get_method()} {self.get_request_target()}>"

    def _wrap(self, request: IServerRequest) -> "ServerRequest":
        return ServerRequest(request, config=self._config, parsers=self._parsers.copy())

    @property
    def request(self) -> IServerRequest:
        """Get the wrapped request."""
        return self._request

    @property
    def body_parsers(self) -> BodyParserRegistry:
        """Get this wrapper's body parser registry."""
        return self._parsers

    # Delegated reads

    def get_attribute(self, name: str, default: Optional[Any] = None) -> Optional[Any]:
        return self._request.get_attribute(name, default)

    def get_attributes(self) -> Dict[str, Any]:
        return self._request.get_attributes()

    def get_body(self) -> bytes:
        return self._request.get_body()

    def get_cookie_params(self) -> Dict[str, Any]:
        return self._request.get_cookie_params()

    def get_header(self, name: str) -> List[str]:
        return self._request.get_header(name)

    def get_header_line(self, name: str) -> str:
        return self._request.get_header_line(name)

    def get_headers(self) -> Dict[str, List[str]]:
        return self._request.get_headers()

    def get_method(self) -> str:
        return self._request.get_method()

    def get_protocol_version(self) -> str:
        return self._request.get_protocol_version()

    def get_request_target(self) -> str:
        return self._request.get_request_target()

    def get_server_params(self) -> Dict[str, Any]:
        return self._request.get_server_params()

    def get_uploaded_files(self) -> Dict[str, Any]:
        return self._request.get_uploaded_files()

    def get_uri(self) -> Uri:
        return self._request.get_uri()

    def has_header(self, name: str) -> bool:
        return self._request.has_header(name)

    # Body parsing

    def get_parsed_body(self) -> Optional[Any]:
        """Get the parsed request body.

        A parsed body already set on the wrapped request wins. Otherwise
        the body is parsed with the parser registered for the request's
        media type, falling back to ``application/<suffix>`` for types
        with a structured syntax suffix such as ``application/hal+json``.

        Returns:
            A mapping, list or record, or None when there is no media type,
            no matching parser, or the parser could not decode the body.

        Raises:
            BodyParserContractError: If the parser returned a scalar.
        """
        parsed_body = self._request.get_parsed_body()
        if parsed_body is not None:
            return parsed_body

        media_type = self.get_media_type()
        if media_type is None:
            return None

        parser = self._parsers.resolve(media_type)
        if parser is None:
            logger.debug("No body parser registered for %s", media_type)
            return None

        parsed = parser(bytes(self.get_body()))
        if not is_decoded_value(parsed):
            raise BodyParserContractError(media_type, parsed)
        return parsed

    def register_media_type_parser(self, media_type: str, parser: BodyParser) -> "ServerRequest":
        """Register a body parser on this wrapper.

        This mutates the wrapper in place. Wrappers created afterwards by
        ``with_*`` methods inherit the parser.

        Args:
            media_type: Media type without parameters, e.g. "application/csv".
            parser: Callable taking the raw body bytes and returning a
                mapping, list, object, or None.

        Returns:
            Self for method chaining.
        """
        self._parsers.register(media_type, parser)
        return self

    # Content type helpers

    def get_content_type(self) -> Optional[str]:
        values = self._request.get_header("Content-Type")
        return values[0] if values else None

    def _media_type(self) -> MediaType:
        return parse_media_type(self.get_content_type())

    def get_media_type(self) -> Optional[str]:
        """Get the media type without parameters, lowercased."""
        return self._media_type().type

    def get_media_type_params(self) -> Dict[str, str]:
        return self._media_type().parameters

    def get_content_charset(self) -> Optional[str]:
        return self.get_media_type_params().get("charset")

    def get_content_length(self) -> Optional[int]:
        values = self._request.get_header("Content-Length")
        if not values:
            return None
        try:
            return int(values[0])
        except ValueError:
            return None

    # Parameters

    def get_query_params(self) -> Dict[str, Any]:
        """Get the query parameters.

        The wrapped request's query parameters are used when present;
        otherwise the URI query string is decoded. The two can be set
        independently, so an empty parameter bag does not mean an empty
        query string.
        """
        query_params = self._request.get_query_params()
        if isinstance(query_params, Mapping) and query_params:
            return query_params
        return parse_query_string(self.get_uri().query, self._config.form_max_depth)

    def get_param(self, key: str, default: Optional[Any] = None) -> Optional[Any]:
        """Get a parameter from the body or the query string, in that order."""
        value = _lookup(self.get_parsed_body(), key)
        if value is _MISSING:
            value = _lookup(self.get_query_params(), key)
        return default if value is _MISSING else value

    def get_params(self) -> Dict[Any, Any]:
        """Get the query parameters merged with the body parameters.

        Body parameters override query parameters with the same key.
        """
        params = dict(self.get_query_params())
        parsed_body = self.get_parsed_body()
        if parsed_body:
            params.update(_as_mapping(parsed_body))
        return params

    def get_parsed_body_param(self, key: str, default: Optional[Any] = None) -> Optional[Any]:
        value = _lookup(self.get_parsed_body(), key)
        return default if value is _MISSING else value

    def get_query_param(self, key: str, default: Optional[Any] = None) -> Optional[Any]:
        value = _lookup(self.get_query_params(), key)
        return default if value is _MISSING else value

    def get_cookie_param(self, key: str, default: Optional[Any] = None) -> Optional[Any]:
        value = _lookup(self._request.get_cookie_params(), key)
        return default if value is _MISSING else value

    def get_server_param(self, key: str, default: Optional[Any] = None) -> Optional[Any]:
        value = _lookup(self._request.get_server_params(), key)
        return default if value is _MISSING else value

    # Predicates

    def is_method(self, method: str) -> bool:
        return self._request.get_method() == method

    def is_get(self) -> bool:
        return self.is_method("GET")

    def is_post(self) -> bool:
        return self.is_method("POST")

    def is_put(self) -> bool:
        return self.is_method("PUT")

    def is_patch(self) -> bool:
        return self.is_method("PATCH")

    def is_delete(self) -> bool:
        return self.is_method("DELETE")

    def is_head(self) -> bool:
        return self.is_method("HEAD")

    def is_options(self) -> bool:
        return self.is_method("OPTIONS")

    def is_xhr(self) -> bool:
        return self._request.get_header_line("X-Requested-With") == "XMLHttpRequest"

    # Copy-on-write mutators

    def with_header(self, name: str, value: Any) -> "ServerRequest":
        return self._wrap(self._request.with_header(name, value))

    def with_added_header(self, name: str, value: Any) -> "ServerRequest":
        return self._wrap(self._request.with_added_header(name, value))

    def without_header(self, name: str) -> "ServerRequest":
        return self._wrap(self._request.without_header(name))

    def with_body(self, body: bytes) -> "ServerRequest":
        return self._wrap(self._request.with_body(body))

    def with_method(self, method: str) -> "ServerRequest":
        return self._wrap(self._request.with_method(method))

    def with_parsed_body(self, data: Optional[Any]) -> "ServerRequest":
        return self._wrap(self._request.with_parsed_body(data))

    def with_query_params(self, query: Mapping[str, Any]) -> "ServerRequest":
        return self._wrap(self._request.with_query_params(query))

    def with_cookie_params(self, cookies: Mapping[str, Any]) -> "ServerRequest":
        return self._wrap(self._request.with_cookie_params(cookies))

    def with_uri(self, uri: Uri, preserve_host: bool = False) -> "ServerRequest":
        return self._wrap(self._request.with_uri(uri, preserve_host))

    def with_attribute(self, name: str, value: Any) -> "ServerRequest":
        return self._wrap(self._request.with_attribute(name, value))

    def with_attributes(self, attributes: Mapping[str, Any]) -> "ServerRequest":
        """Return a copy with several attributes set at once."""
        request = self._request
        for name, value in attributes.items():
            request = request.with_attribute(name, value)
        return self._wrap(request)

    def without_attribute(self, name: str) -> "ServerRequest":
        return self._wrap(self._request.without_attribute(name))

    def with_protocol_version(self, version: str) -> "ServerRequest":
        return self._wrap(self._request.with_protocol_version(version))

    def with_request_target(self, request_target: str) -> "ServerRequest":
        return self._wrap(self._request.with_request_target(request_target))

    def with_uploaded_files(self, uploaded_files: Mapping[str, Any]) -> "ServerRequest":
        return self._wrap(self._request.with_uploaded_files(uploaded_files))
