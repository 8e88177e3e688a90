"""Exceptions raised across the search pipeline."""


class BizFinderError(Exception):
    """Base exception for all bizfinder errors."""
    pass


class InputInvalidError(BizFinderError):
    """Raised when the inbound request is missing a query or carries bad options."""
    pass


class CredentialMissingError(BizFinderError):
    """Raised when no upstream API key is configured."""
    pass


class LocationUnresolvableError(BizFinderError):
    """Raised when every geocoding variant of a location phrase failed."""

    def __init__(self, phrase: str, attempts: int):
        super().__init__(f"could not geocode location {phrase!r} after {attempts} attempt(s)")
        self.phrase = phrase
        self.attempts = attempts


class UpstreamError(BizFinderError):
    """Raised when an upstream request keeps failing at the transport level."""
    pass
