class ServiceError(Exception):
    code = 500

    def __init__(self, message, code=None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ClientInputError(ServiceError):
    """Malformed event or missing identity."""
    code = 400

    def __init__(self, message, details=None):
        super().__init__(message)
        self.details = details


class NotFoundError(ServiceError):
    """No recipient document, or a recipient without tokens."""
    code = 404


class InternalError(ServiceError):
    code = 500

    def __init__(self, message="Internal error while processing event."):
        super().__init__(message)


class StoreError(ServiceError):
    """Token database failure. Never shown to clients."""


class GatewayError(ServiceError):
    """Push gateway failure. Never shown to clients."""
