import json
import logging
import math
import os
import time
from datetime import timedelta
from typing import IO, Any, Callable, Dict, Optional, Union
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .auth import ACCESS_KEY_PARAM, EXPIRES_PARAM, SIGNATURE_PARAM, compute_signature
from .config import DEFAULT_HTTP_TIMEOUT, load_credentials, load_timeout
from .errors import APIError, InvalidArgumentError, ResponseDecodeError, TransportError
from .paths import object_path, public_object_url
from .schemas import DEFAULT_EXPIRES_IN, Credentials, FileResponse, PresignedURLOptions, UploadOptions

log = logging.getLogger(__name__)

Duration = Union[int, float, timedelta, PresignedURLOptions]

CHUNK_SIZE = 1024 * 1024


def _seconds(expires_in: Duration) -> float:
    if isinstance(expires_in, PresignedURLOptions):
        expires_in = expires_in.expires_in
    if isinstance(expires_in, timedelta):
        seconds = expires_in.total_seconds()
    elif isinstance(expires_in, (int, float)) and not isinstance(expires_in, bool):
        try:
            seconds = float(expires_in)
        except OverflowError:
            raise InvalidArgumentError(f"expires_in is too large, got {expires_in!r}")
    else:
        raise InvalidArgumentError(f"expires_in must be seconds or a timedelta, got {expires_in!r}")
    if not math.isfinite(seconds) or seconds <= 0:
        raise InvalidArgumentError(f"expires_in must be positive, got {expires_in!r}")
    return seconds


def _error_code(resp: httpx.Response) -> Optional[str]:
    try:
        body = resp.json()
    except ValueError:
        return None
    if not isinstance(body, dict):
        return None
    detail = body.get("detail")
    if isinstance(detail, dict):
        body = detail
    code = body.get("error") or body.get("code")
    return code if isinstance(code, str) else None


class Client:
    """Client for a Miphira Object Storage bucket.

    URL generation is pure and thread-safe: it only reads the immutable
    credentials and the clock. The upload/download/delete helpers issue one
    HTTP request each through ``httpx`` and never retry; a failed request
    raises ``APIError`` (with the verbatim status and body) or
    ``TransportError``.

    Example::

        client = Client.create(
            "https://storage.miphira.com",
            "550e8400-e29b-41d4-a716-446655440000",
            "images",
            "MOS_YourAccessKey12345678",
            "your-secret-key-here",
        )
        url = client.get_object_url("photo.jpg", timedelta(hours=1))
    """

    def __init__(
        self,
        credentials: Credentials,
        http_client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_HTTP_TIMEOUT,
        clock: Callable[[], float] = time.time,
    ):
        self.credentials = credentials
        self._owns_http = http_client is None
        self._timeout = timeout
        if http_client is None:
            http_client = httpx.Client(timeout=timeout)
        self._http = http_client
        self._clock = clock

    @classmethod
    def create(
        cls,
        base_url: str,
        project_id: str,
        bucket_name: str,
        access_key: str,
        secret_key: str,
        **kwargs: Any,
    ) -> "Client":
        try:
            credentials = Credentials(
                base_url=base_url,
                project_id=project_id,
                bucket_name=bucket_name,
                access_key=access_key,
                secret_key=secret_key,
            )
        except ValidationError as exc:
            raise InvalidArgumentError(str(exc))
        return cls(credentials, **kwargs)

    @classmethod
    def from_env(cls, environ=None, **kwargs: Any) -> "Client":
        kwargs.setdefault("timeout", load_timeout(environ))
        return cls(load_credentials(environ), **kwargs)

    @property
    def base_url(self) -> str:
        return self.credentials.base_url

    @property
    def project_id(self) -> str:
        return self.credentials.project_id

    @property
    def bucket_name(self) -> str:
        return self.credentials.bucket_name

    @property
    def access_key(self) -> str:
        return self.credentials.access_key

    def __repr__(self) -> str:
        return (
            f"Client(base_url={self.base_url!r}, project_id={self.project_id!r}, "
            f"bucket_name={self.bucket_name!r}, access_key={self.access_key!r})"
        )

    # --- URL generation ---

    def generate_signature(self, method: str, path: str, expires_at: int) -> str:
        return compute_signature(self.credentials.secret_key.get_secret_value(), method, path, expires_at)

    def generate_presigned_url(self, method: str, path: str, expires_in: Duration) -> str:
        # fractional seconds are floored
        expires_at = math.floor(self._clock() + _seconds(expires_in))
        signature = self.generate_signature(method, path, expires_at)
        log.debug("presigned %s %s until %d", method, path, expires_at)
        return (
            f"{self.base_url}{path}"
            f"?{ACCESS_KEY_PARAM}={self.access_key}"
            f"&{EXPIRES_PARAM}={expires_at}"
            f"&{SIGNATURE_PARAM}={quote(signature, safe='')}"
        )

    def get_object_url(self, filename: str, expires_in: Duration = DEFAULT_EXPIRES_IN) -> str:
        path = object_path(self.project_id, self.bucket_name, filename)
        return self.generate_presigned_url("GET", path, expires_in)

    def upload_object_url(self, expires_in: Duration = DEFAULT_EXPIRES_IN) -> str:
        path = object_path(self.project_id, self.bucket_name)
        return self.generate_presigned_url("POST", path, expires_in)

    def delete_object_url(self, filename: str, expires_in: Duration = DEFAULT_EXPIRES_IN) -> str:
        path = object_path(self.project_id, self.bucket_name, filename)
        return self.generate_presigned_url("DELETE", path, expires_in)

    def get_public_object_url(self, filename: str) -> str:
        """Unsigned, non-expiring URL; only for objects that are meant to be public."""
        return public_object_url(self.base_url, self.project_id, self.bucket_name, filename)

    # --- HTTP operations ---

    def upload(self, file_path: str, options: Optional[UploadOptions] = None) -> FileResponse:
        """Upload a local file.

        The server stores it under a generated name; use ``name`` or ``url``
        from the returned ``FileResponse`` to reach it afterwards.
        """
        with open(file_path, "rb") as fh:
            return self._upload(os.path.basename(file_path), fh, options)

    def upload_bytes(self, filename: str, data: bytes, options: Optional[UploadOptions] = None) -> FileResponse:
        return self._upload(filename, data, options)

    def download(
        self,
        filename: str,
        local_path: str,
        expires_in: Duration = DEFAULT_EXPIRES_IN,
        public: bool = False,
    ) -> None:
        if public:
            url = self.get_public_object_url(filename)
        else:
            url = self.get_object_url(filename, expires_in)

        opened = False
        try:
            with self._http_client().stream("GET", url) as resp:
                if resp.status_code != 200:
                    resp.read()
                    raise APIError("download", resp.status_code, resp.text, _error_code(resp))
                opened = True
                with open(local_path, "wb") as fh:
                    for chunk in resp.iter_bytes(chunk_size=CHUNK_SIZE):
                        fh.write(chunk)
        except httpx.TransportError as exc:
            # no partial file on a broken stream
            if opened and os.path.exists(local_path):
                os.remove(local_path)
            raise TransportError(f"download request failed: {exc}")

        log.info("downloaded %s to %s", filename, local_path)

    def delete(self, filename: str, expires_in: Duration = DEFAULT_EXPIRES_IN) -> None:
        url = self.delete_object_url(filename, expires_in)
        resp = self._send("delete", "DELETE", url)
        self._check("delete", resp, 204)
        log.info("deleted %s", filename)

    def _upload(self, filename: str, content: Union[bytes, IO[bytes]], options: Optional[UploadOptions]) -> FileResponse:
        if options is None:
            options = UploadOptions()

        form: Dict[str, str] = {}
        if options.metadata is not None:
            try:
                form["metadata"] = json.dumps(options.metadata)
            except (TypeError, ValueError) as exc:
                raise InvalidArgumentError(f"metadata is not JSON serializable: {exc}")

        url = self.upload_object_url(options.expires_in)
        resp = self._send("upload", "POST", url, files={"file": (filename, content)}, data=form)
        self._check("upload", resp, 201)

        try:
            result = FileResponse.model_validate(resp.json())
        except ValueError as exc:
            raise ResponseDecodeError(f"failed to parse upload response: {exc}")

        log.info("uploaded %s as %s (%s)", filename, result.name, result.size_formatted)
        return result

    def _send(self, operation: str, method: str, url: str, **kwargs: Any) -> httpx.Response:
        try:
            return self._http_client().request(method, url, **kwargs)
        except httpx.TransportError as exc:
            raise TransportError(f"{operation} request failed: {exc}")

    @staticmethod
    def _check(operation: str, resp: httpx.Response, expected: int) -> None:
        if resp.status_code != expected:
            raise APIError(operation, resp.status_code, resp.text, _error_code(resp))

    def _http_client(self) -> httpx.Client:
        return self._http

    def close(self) -> None:
        if self._owns_http:
            self._http.close()

    def __enter__(self) -> "Client":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()
