class PostbackError(Exception):
    """Base class for postback processing errors."""


class ConfigurationError(PostbackError):
    """Endpoint is missing a secret or setting its validation type needs."""


class ValidationFailure(PostbackError):
    """Checksum, signature, key or IP check rejected the request."""


class TransformError(PostbackError):
    """A named field transform could not convert a value."""


class RelayDeliveryError(PostbackError):
    """Outbound relay call returned a non-2xx status or failed in transport."""

    def __init__(self, message: str, status_code=None, response_body=None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class StatusTransitionError(PostbackError):
    """Audit record status may only move forward."""
