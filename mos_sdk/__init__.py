"""Python client for the Miphira Object Storage API.

Generates time-limited presigned URLs for object access and wraps the
upload, download and delete calls made against them.
"""
from .auth import (
    ACCESS_KEY_PARAM,
    EXPIRES_PARAM,
    SIGNATURE_PARAM,
    canonical_payload,
    compute_signature,
    presign_authorizer,
    verify_presigned,
)
from .client import Client
from .config import load_credentials, load_timeout
from .errors import (
    APIError,
    ConfigurationError,
    ExpiredSignatureError,
    InvalidAccessKeyError,
    InvalidArgumentError,
    InvalidSignatureError,
    MosError,
    PermissionDeniedError,
    PresignError,
    ResponseDecodeError,
    TransportError,
)
from .paths import object_path, public_object_url
from .schemas import (
    AccessKey,
    Credentials,
    FileResponse,
    PresignedURLOptions,
    UploadOptions,
    default_options,
)

__version__ = "1.0.0"

__all__ = [
    "ACCESS_KEY_PARAM",
    "EXPIRES_PARAM",
    "SIGNATURE_PARAM",
    "AccessKey",
    "APIError",
    "Client",
    "ConfigurationError",
    "Credentials",
    "ExpiredSignatureError",
    "FileResponse",
    "InvalidAccessKeyError",
    "InvalidArgumentError",
    "InvalidSignatureError",
    "MosError",
    "PermissionDeniedError",
    "PresignError",
    "PresignedURLOptions",
    "ResponseDecodeError",
    "TransportError",
    "UploadOptions",
    "canonical_payload",
    "compute_signature",
    "default_options",
    "load_credentials",
    "load_timeout",
    "object_path",
    "presign_authorizer",
    "public_object_url",
    "verify_presigned",
]
