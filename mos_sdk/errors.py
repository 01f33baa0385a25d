from typing import Optional


class MosError(Exception):
    """Base class for every error raised by mos_sdk."""


class InvalidArgumentError(MosError, ValueError):
    pass


class ConfigurationError(MosError, RuntimeError):
    pass


class APIError(MosError):
    """The storage API answered with an unexpected HTTP status.

    The response body is kept verbatim. 5xx responses are worth retrying,
    4xx responses are not.
    """

    def __init__(self, operation: str, status_code: int, body: str, code: Optional[str] = None):
        self.operation = operation
        self.status_code = status_code
        self.body = body
        self.code = code
        super().__init__(f"{operation} failed with status {status_code}: {body}")

    @property
    def retryable(self) -> bool:
        return self.status_code >= 500


class TransportError(MosError):
    retryable = True


class ResponseDecodeError(MosError):
    pass


class PresignError(MosError):
    code = "PRESIGN_ERROR"
    status_code = 401


class InvalidAccessKeyError(PresignError):
    code = "INVALID_ACCESS_KEY"


class ExpiredSignatureError(PresignError):
    code = "EXPIRED_SIGNATURE"


class InvalidSignatureError(PresignError):
    code = "INVALID_SIGNATURE"


class PermissionDeniedError(PresignError):
    code = "PERMISSION_DENIED"
    status_code = 403
