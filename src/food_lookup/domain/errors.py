"""Error types raised by the lookup core."""


class FoodLookupError(Exception):
    """Base class for lookup errors."""


class CallerInputError(FoodLookupError):
    """Raised when a caller supplies an empty or invalid query."""


class UpstreamUnavailable(FoodLookupError):
    """Raised when the remote food database fails or times out.

    Retryable. No cache write happens on this path.
    """


class StoreConflictError(FoodLookupError):
    """Raised when a compare-and-swap write keeps losing to concurrent writers."""
