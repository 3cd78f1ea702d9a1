"""Body parser registry.

Maps media types to body parsers, with RFC 6839 structured syntax suffix
fallback: ``application/vnd.api+json`` resolves to the parser registered
for ``application/json`` unless it has one of its own.
"""

import logging
import threading
from typing import Dict, List, Optional

from forge_request.media_type import strip_parameters
from forge_request.parsers import BodyParser

logger = logging.getLogger(__name__)


class BodyParserRegistry:
    """Registry of body parsers keyed by lowercase media type.

    Registration mutates the registry in place; a lock keeps registration
    and lookup consistent when one registry is reached from several threads.
    """

    def __init__(self, parsers: Optional[Dict[str, BodyParser]] = None) -> None:
        """Initialize a new registry.

        Args:
            parsers: Initial media type to parser mapping.
        """
        self._lock = threading.RLock()
        self._parsers: Dict[str, BodyParser] = {}
        for media_type, parser in (parsers or {}).items():
            self.register(media_type, parser)

    def register(self, media_type: str, parser: BodyParser) -> "BodyParserRegistry":
        """Register a parser, replacing any parser for the same media type.

        Args:
            media_type: Media type; case and parameters are ignored.
            parser: Callable taking the raw body bytes.

        Returns:
            Self for method chaining.

        Raises:
            TypeError: If the parser is not callable.
            ValueError: If the media type is empty.
        """
        if not callable(parser):
            raise TypeError(f"Body parser for '{media_type}' must be callable")
        key = strip_parameters(media_type)
        if not key:
            raise ValueError("Media type must not be empty")

        with self._lock:
            self._parsers[key] = parser
        return self

    def unregister(self, media_type: str) -> bool:
        """Remove the parser for a media type.

        Returns:
            True if a parser was removed, False otherwise.
        """
        with self._lock:
            return self._parsers.pop(strip_parameters(media_type), None) is not None

    def resolve(self, media_type: Optional[str]) -> Optional[BodyParser]:
        """Find the parser for a media type.

        Exact matches win. Otherwise a type carrying a structured syntax
        suffix is retried once as ``application/<suffix>``.

        Args:
            media_type: Lowercase media type without parameters.

        Returns:
            The parser, or None if neither lookup matches.
        """
        if not media_type:
            return None

        with self._lock:
            parser = self._parsers.get(media_type)
            if parser is not None or "+" not in media_type:
                return parser

            fallback = "application/" + media_type.rsplit("+", 1)[1]
            parser = self._parsers.get(fallback)

        if parser is not None:
            logger.debug("Using %s parser for %s", fallback, media_type)
        return parser

    def copy(self) -> "BodyParserRegistry":
        """Return an independent registry with the same entries."""
        with self._lock:
            return BodyParserRegistry(dict(self._parsers))

    def media_types(self) -> List[str]:
        with self._lock:
            return list(self._parsers)

    def __contains__(self, media_type: object) -> bool:
        if not isinstance(media_type, str):
            return False
        with self._lock:
            return strip_parameters(media_type) in self._parsers

    def __len__(self) -> int:
        with self._lock:
            return len(self._parsers)

    def __repr__(self) -> str:
        return f"BodyParserRegistry({self.media_types()!r})"
