from typing import Any, Dict, FrozenSet, Optional

from pydantic import BaseModel, Field, SecretStr, field_validator

DEFAULT_EXPIRES_IN = 3600  # 1h


class Credentials(BaseModel):
    base_url: str = Field(min_length=1)
    project_id: str = Field(min_length=1)
    bucket_name: str = Field(min_length=1)
    access_key: str = Field(min_length=1)
    secret_key: SecretStr

    class Config:
        frozen = True

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("secret_key")
    @classmethod
    def secret_not_empty(cls, v: SecretStr) -> SecretStr:
        if not v.get_secret_value():
            raise ValueError("secret_key must not be empty")
        return v


class AccessKey(BaseModel):
    access_key: str
    secret_key: SecretStr
    permissions: FrozenSet[str] = frozenset({"read", "write", "delete"})

    class Config:
        frozen = True


class FileResponse(BaseModel):
    """Object metadata returned by the server after an upload.

    ``name`` is the server-assigned stored filename and ``url`` is ready to
    use; the original filename does not address the object.
    """

    id: str
    name: str
    original_name: str
    size: int
    size_formatted: str
    mime_type: str
    bucket_id: str
    url: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    created_at: str
    updated_at: str

    @field_validator("metadata", mode="before")
    @classmethod
    def null_metadata(cls, v: Any) -> Any:
        return {} if v is None else v


class PresignedURLOptions(BaseModel):
    """Accepted wherever the client takes an ``expires_in``."""

    expires_in: float = Field(default=DEFAULT_EXPIRES_IN, gt=0)


def default_options() -> PresignedURLOptions:
    return PresignedURLOptions()


class UploadOptions(BaseModel):
    metadata: Optional[Dict[str, Any]] = None
    expires_in: Optional[float] = DEFAULT_EXPIRES_IN

    @field_validator("expires_in")
    @classmethod
    def default_expiry(cls, v: Optional[float]) -> float:
        # 0 or None means "use the default", like an unset option
        if not v:
            return DEFAULT_EXPIRES_IN
        return v
