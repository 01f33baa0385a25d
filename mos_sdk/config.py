import os
from typing import Mapping, Optional

from pydantic import ValidationError

from .errors import ConfigurationError
from .schemas import Credentials

BASE_URL_ENV = "STORAGE_BASE_URL"
PROJECT_ID_ENV = "STORAGE_PROJECT_ID"
BUCKET_ENV = "STORAGE_BUCKET"
ACCESS_KEY_ENV = "STORAGE_ACCESS_KEY"
SECRET_KEY_ENV = "STORAGE_SECRET_KEY"
HTTP_TIMEOUT_ENV = "STORAGE_HTTP_TIMEOUT"

DEFAULT_HTTP_TIMEOUT = 30.0

_REQUIRED = (
    ("base_url", BASE_URL_ENV),
    ("project_id", PROJECT_ID_ENV),
    ("bucket_name", BUCKET_ENV),
    ("access_key", ACCESS_KEY_ENV),
    ("secret_key", SECRET_KEY_ENV),
)


def load_credentials(environ: Optional[Mapping[str, str]] = None) -> Credentials:
    env = os.environ if environ is None else environ
    values = {field: env.get(name, "").strip() for field, name in _REQUIRED}

    missing = [name for field, name in _REQUIRED if not values[field]]
    if missing:
        raise ConfigurationError(f"Storage env vars not set ({'/'.join(missing)})")

    try:
        return Credentials(**values)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid storage configuration: {exc}")


def load_timeout(environ: Optional[Mapping[str, str]] = None) -> float:
    env = os.environ if environ is None else environ
    raw = env.get(HTTP_TIMEOUT_ENV, "").strip()
    if not raw:
        return DEFAULT_HTTP_TIMEOUT
    try:
        timeout = float(raw)
    except ValueError:
        raise ConfigurationError(f"{HTTP_TIMEOUT_ENV} must be a number of seconds, got {raw!r}")
    if timeout <= 0:
        raise ConfigurationError(f"{HTTP_TIMEOUT_ENV} must be positive, got {raw!r}")
    return timeout
