"""Content-Type header parsing.

This module splits a raw Content-Type header value into its media type
and parameters, e.g. ``"Application/JSON; Charset=utf-8"`` becomes
``MediaType("application/json", {"charset": "utf-8"})``.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, Optional

_SEGMENT_SEPARATOR = re.compile(r"\s*[;,]\s*")


@dataclass(frozen=True)
class MediaType:
    """A parsed media type with its parameters."""
    type: Optional[str] = None
    parameters: Dict[str, str] = field(default_factory=dict)

    @property
    def suffix(self) -> Optional[str]:
        """Get the structured syntax suffix (RFC 6839), if any."""
        if self.type is None or "+" not in self.type:
            return None
        return self.type.rsplit("+", 1)[1]

    def __bool__(self) -> bool:
        return self.type is not None


def parse_media_type(header_value: Optional[str]) -> MediaType:
    """Parse a Content-Type header value.

    Args:
        header_value: Raw header value, or None when the header is missing.

    Returns:
        The parsed media type. Missing or empty headers give an empty
        MediaType whose ``type`` is None.
    """
    if not header_value:
        return MediaType()

    segments = _SEGMENT_SEPARATOR.split(header_value.strip())
    media_type = segments[0].lower()
    if not media_type:
        return MediaType()

    parameters: Dict[str, str] = {}
    for segment in segments[1:]:
        # Malformed segments ("foo", "") carry no parameter
        if "=" not in segment:
            continue
        key, value = segment.split("=", 1)
        parameters[key.lower()] = value

    return MediaType(media_type, parameters)


def strip_parameters(media_type: str) -> str:
    """Normalize a media type to its lowercase, parameter-free form."""
    parsed = parse_media_type(media_type)
    return parsed.type or ""
