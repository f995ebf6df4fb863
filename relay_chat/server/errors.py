"""Domain errors raised by the relay core."""


class RelayError(Exception):
    """Base class for failures the relay reports back to a client."""

    kind = "relay_error"

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail


class InvalidMessage(RelayError):
    """Message content is empty or whitespace only."""

    kind = "invalid_message"


class StorageError(RelayError):
    """Storage is unreachable or rejected a read/write."""

    kind = "storage_error"


class NotFound(RelayError):
    """A message id that should exist could not be read back."""

    kind = "not_found"
