"""Simple wrappers for the failure states we can hit while polling / decoding the hub"""

from util.const import ErrorKind


class FieldDecodeError(Exception):
    """Exception for a field value that could not be decoded."""

    def __init__(self, kind: ErrorKind, message: str, field: str | None = None):
        super().__init__(message)
        self.kind = kind
        self.message = message
        self.field = field


class RouterNotOkError(Exception):
    """Exception for non-200/OK responses from the hub."""

    def __init__(self, message, status_code=None, payload=None):
        super().__init__(message, status_code, payload)
        self.message = message
        self.status_code = status_code
        self.payload = payload
