"""Presigned URL signing and verification.

A presigned URL carries three query parameters: the access key, the expiry
as unix seconds and an HMAC-SHA256 signature over::

    METHOD + "\\n" + PATH + "\\n" + EXPIRES

keyed with the UTF-8 bytes of the secret key and encoded as URL-safe base64
with padding kept. Signer and server must build those bytes identically.
"""
import base64
import hashlib
import hmac
import time
from typing import Callable, Mapping, Optional

from fastapi import HTTPException, Request

from .errors import (
    ExpiredSignatureError,
    InvalidAccessKeyError,
    InvalidArgumentError,
    InvalidSignatureError,
    PermissionDeniedError,
    PresignError,
)
from .schemas import AccessKey

ACCESS_KEY_PARAM = "X-Mos-AccessKey"
EXPIRES_PARAM = "X-Mos-Expires"
SIGNATURE_PARAM = "X-Mos-Signature"

METHOD_PERMISSIONS = {
    "GET": "read",
    "POST": "write",
    "DELETE": "delete",
}
SIGNABLE_METHODS = tuple(METHOD_PERMISSIONS)

AccessKeyLookup = Callable[[str], Optional[AccessKey]]


def canonical_payload(method: str, path: str, expires_at: int) -> bytes:
    if method not in SIGNABLE_METHODS:
        raise InvalidArgumentError(f"method must be one of {', '.join(SIGNABLE_METHODS)}, got {method!r}")
    if not isinstance(path, str) or not path.startswith("/"):
        raise InvalidArgumentError(f"path must start with '/', got {path!r}")
    if isinstance(expires_at, bool) or not isinstance(expires_at, int) or expires_at <= 0:
        raise InvalidArgumentError(f"expires_at must be a positive integer, got {expires_at!r}")
    return f"{method}\n{path}\n{expires_at}".encode("utf-8")


def compute_signature(secret_key: str, method: str, path: str, expires_at: int) -> str:
    if not secret_key:
        raise InvalidArgumentError("secret key is empty")
    msg = canonical_payload(method, path, expires_at)
    digest = hmac.new(secret_key.encode("utf-8"), msg, hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii")


def verify_presigned(
    method: str,
    path: str,
    query: Mapping[str, str],
    lookup: AccessKeyLookup,
    now: Optional[float] = None,
) -> AccessKey:
    """Check a presigned request the way the storage server does.

    ``query`` holds the already percent-decoded query parameters. Returns the
    matching access key record, or raises a ``PresignError`` subclass.
    """
    access_key = query.get(ACCESS_KEY_PARAM)
    expires_str = query.get(EXPIRES_PARAM)
    sig = query.get(SIGNATURE_PARAM)

    if not access_key or not expires_str or not sig:
        raise InvalidSignatureError("Missing presign parameters")

    try:
        expires = int(expires_str)
    except ValueError:
        raise InvalidSignatureError("Invalid expires")
    # only the canonical decimal form was signed
    if str(expires) != expires_str:
        raise InvalidSignatureError("Invalid expires")

    record = lookup(access_key)
    if record is None:
        raise InvalidAccessKeyError("Unknown access key")

    if now is None:
        now = time.time()
    if now > expires:
        raise ExpiredSignatureError("Presigned URL expired")

    try:
        expected = compute_signature(record.secret_key.get_secret_value(), method, path, expires)
    except InvalidArgumentError as exc:
        raise InvalidSignatureError(str(exc))
    if not hmac.compare_digest(expected.encode("utf-8"), sig.encode("utf-8")):
        raise InvalidSignatureError("Invalid signature")

    permission = METHOD_PERMISSIONS[method]
    if permission not in record.permissions:
        raise PermissionDeniedError(f"Access key lacks '{permission}' permission")

    return record


def presign_authorizer(
    lookup: AccessKeyLookup,
    clock: Callable[[], float] = time.time,
) -> Callable[[Request], AccessKey]:
    """Build a FastAPI dependency that only lets valid presigned requests through."""

    def authorize(request: Request) -> AccessKey:
        try:
            return verify_presigned(
                request.method, request.url.path, request.query_params, lookup, now=clock()
            )
        except PresignError as exc:
            raise HTTPException(
                status_code=exc.status_code,
                detail={"error": exc.code, "message": str(exc)},
            )

    return authorize
