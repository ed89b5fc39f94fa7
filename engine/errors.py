"""Error taxonomy for the result cache."""


class CacheError(Exception):
    """Base class for result cache errors."""
    def __init__(self, message: str):
        self.message = message
        super().__init__(self.message)


class StoreUnavailable(CacheError):
    """Backing store is misconfigured or unreachable at startup."""


class StoreIOError(CacheError):
    """A single read or write against the backing store failed."""


class MalformedEntry(CacheError):
    """A stored row cannot be turned back into an Entry."""


class ValidationError(CacheError):
    """An entry was rejected before being written."""
