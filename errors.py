# errors.py


class TwitterAPIError(Exception):
    """Base class for every error raised by this client."""


class ConstructionError(TwitterAPIError, ValueError):
    def __init__(self, field: str):
        self.field = field
        super().__init__(f"You must provide a valid {field.replace('_', ' ')}.")


class EmptyTextError(TwitterAPIError, ValueError):
    def __init__(self):
        super().__init__("No text to tweet.")


class MutualExclusionError(TwitterAPIError):
    def __init__(self):
        super().__init__("You can only choose get OR post fields.")


class MalformedQueryError(TwitterAPIError, ValueError):
    def __init__(self, segment: str):
        self.segment = segment
        super().__init__(f"Query field {segment!r} has no '=' separator.")


class InvalidMethodError(TwitterAPIError, ValueError):
    def __init__(self, method):
        self.method = method
        super().__init__(f"Request method must be get or post, got {method!r}.")


class TransportError(TwitterAPIError):
    """The HTTP call itself failed (DNS, TLS, connection, timeout)."""

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(f"HTTP transport failed: {detail}")
