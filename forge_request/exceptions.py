"""Exceptions raised by forge_request.

Decoding failures caused by malformed input are never raised; decoders
absorb them and report "no parsed body". The exceptions here cover
misconfiguration only.
"""


class ForgeRequestError(Exception):
    """Base class for all forge_request errors."""
    pass


class BodyParserContractError(ForgeRequestError, RuntimeError):
    """Exception raised when a registered body parser returns an invalid value.

    A body parser must return None, a mapping, a list or a record-like
    object. Anything else points at a misconfigured parser registration.
    """

    def __init__(self, media_type: str, value: object) -> None:
        self.media_type = media_type
        self.value_type = type(value).__name__
        super().__init__(
            f"Request body media type parser for '{media_type}' returned "
            f"{self.value_type}; the return value must be a mapping, a list, "
            f"an object, or None"
        )


class ConfigError(ForgeRequestError, ValueError):
    """Exception raised for invalid configuration."""
    pass
