"""
StreamShare SDK Data Models

Pydantic models for client configuration and StreamShare API responses.
"""

from typing import Callable, NewType, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_BASE_URL = "https://streamshare.wireway.ch"
DEFAULT_TIMEOUT = 300.0
DEFAULT_CHUNK_SIZE = 64 * 1024

# Opaque values handed out by the service. Kept distinct so that an
# identifier and a token cannot be swapped silently at a call site.
FileIdentifier = NewType("FileIdentifier", str)
DeletionToken = NewType("DeletionToken", str)


class ClientConfig(BaseModel):
    """Immutable settings for one client instance."""

    model_config = ConfigDict(frozen=True)

    base_url: str = Field(default=DEFAULT_BASE_URL, description="Service root URL")
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0, description="Request timeout in seconds")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")
    chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, gt=0, description="Upload chunk size in bytes")

    @field_validator("base_url")
    @classmethod
    def strip_trailing_slash(cls, value: str) -> str:
        value = value.rstrip("/")
        if not value.lower().startswith(("http://", "https://")):
            raise ValueError("base_url must be an http:// or https:// URL")
        return value


class UploadResult(BaseModel):
    """Result of a successful file upload."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    file_identifier: FileIdentifier = Field(
        alias="fileIdentifier",
        min_length=1,
        description="Identifier used to download or delete the file",
    )
    deletion_token: DeletionToken = Field(
        alias="deletionToken",
        min_length=1,
        repr=False,
        description="Secret required to delete the file",
    )

    def as_tuple(self) -> Tuple[FileIdentifier, DeletionToken]:
        """Return the ``(file_identifier, deletion_token)`` pair."""
        return self.file_identifier, self.deletion_token


# Type aliases for progress callbacks: (bytes so far, total bytes)
ProgressCallback = Callable[[int, int], None]
DownloadProgressCallback = Callable[[int, Optional[int]], None]
