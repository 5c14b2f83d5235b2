class OceanDataError(Exception):
    """Base exception for ocean data errors."""
    pass

class SourceError(OceanDataError):
    """Raised when an upstream adapter cannot produce readings."""

    def __init__(self, source: str, message: str):
        self.source = source
        super().__init__(f"{source}: {message}")

class FeedUnavailableError(SourceError):
    """Raised on network errors, timeouts and non-2xx responses."""
    pass

class MalformedPayloadError(SourceError):
    """Raised when a feed answers with a payload we cannot interpret."""
    pass

class StoreError(OceanDataError):
    """Raised when the historical store is unreachable or rejects a request."""
    pass
