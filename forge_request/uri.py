"""URI value object used by Request."""

from dataclasses import dataclass, replace
from typing import Optional
from urllib.parse import urlsplit, urlunsplit


@dataclass(frozen=True)
class Uri:
    """An immutable URI.

    Only the components the request layer reads are modelled; user info
    stays inside ``host`` as given.
    """
    scheme: str = ""
    host: str = ""
    port: Optional[int] = None
    path: str = ""
    query: str = ""
    fragment: str = ""

    @classmethod
    def from_string(cls, uri: str) -> "Uri":
        """Parse a URI string.

        Raises:
            ValueError: If the port is not a valid integer.
        """
        parts = urlsplit(uri)
        return cls(
            scheme=parts.scheme.lower(),
            host=(parts.hostname or "").lower(),
            port=parts.port,
            path=parts.path,
            query=parts.query,
            fragment=parts.fragment,
        )

    @property
    def authority(self) -> str:
        if not self.host:
            return ""
        if self.port is None:
            return self.host
        return f"{self.host}:{self.port}"

    def with_query(self, query: str) -> "Uri":
        return replace(self, query=query.lstrip("?"))

    def with_path(self, path: str) -> "Uri":
        return replace(self, path=path)

    def __str__(self) -> str:
        return urlunsplit((self.scheme, self.authority, self.path, self.query, self.fragment))
