"""
StreamShare Python SDK

A Python client library for the StreamShare file sharing service.

Example usage:
    from streamshare import StreamShareClient

    with StreamShareClient() as client:
        # Upload a file
        result = client.upload("video.mp4", progress_callback=lambda done, total: None)
        print(f"Download URL: {client.download_url(result.file_identifier)}")

        # Download it back
        client.download(result.file_identifier, "copy.mp4")

        # Delete it with the token returned by upload
        client.delete(result.file_identifier, result.deletion_token)
"""

import logging

from streamshare.client import AsyncStreamShareClient, StreamShareClient
from streamshare.exceptions import (
    AuthenticationError,
    FileTooLargeError,
    IoError,
    NetworkError,
    NotFoundError,
    RateLimitError,
    ServerError,
    StreamShareError,
    ValidationError,
)
from streamshare.models import (
    DEFAULT_BASE_URL,
    ClientConfig,
    DeletionToken,
    FileIdentifier,
    UploadResult,
)
from streamshare.progress import ProgressReader

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"
__all__ = [
    "StreamShareClient",
    "AsyncStreamShareClient",
    "StreamShareError",
    "IoError",
    "NetworkError",
    "ServerError",
    "AuthenticationError",
    "NotFoundError",
    "FileTooLargeError",
    "RateLimitError",
    "ValidationError",
    "DEFAULT_BASE_URL",
    "ClientConfig",
    "FileIdentifier",
    "DeletionToken",
    "UploadResult",
    "ProgressReader",
]
