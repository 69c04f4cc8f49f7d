"""
StreamShare Client

Client classes for uploading, downloading and deleting files on a
StreamShare server.

Uploads are announced over HTTP and streamed over a WebSocket: every
binary frame must be acknowledged with a text ``ACK`` before the next one
is sent, and the socket is closed with reason ``FILE_UPLOAD_DONE`` once
the whole file has been transferred.
"""

import asyncio
import logging
import os
import re
import ssl
import stat
import warnings
from pathlib import Path
from typing import BinaryIO, Optional, Tuple, Union
from urllib.parse import quote

import httpx
from pydantic import ValidationError as PydanticValidationError
from websockets.asyncio.client import connect as ws_connect_async
from websockets.exceptions import (
    ConnectionClosed,
    InvalidStatus,
    WebSocketException,
)
from websockets.frames import CloseCode
from websockets.sync.client import connect as ws_connect

from streamshare.exceptions import (
    IoError,
    NetworkError,
    ServerError,
    StreamShareError,
    ValidationError,
    raise_for_status,
)
from streamshare.models import (
    DEFAULT_BASE_URL,
    DEFAULT_CHUNK_SIZE,
    DEFAULT_TIMEOUT,
    ClientConfig,
    DeletionToken,
    DownloadProgressCallback,
    FileIdentifier,
    ProgressCallback,
    UploadResult,
)
from streamshare.progress import ProgressReader

logger = logging.getLogger(__name__)

USER_AGENT = "StreamShare-Python-SDK/0.1.0"
UPLOAD_ACK = "ACK"
UPLOAD_DONE_REASON = "FILE_UPLOAD_DONE"

PathLike = Union[str, os.PathLike]

_DELETE_PATH = re.compile(r"(/api/delete/[^/\s]+/)[^/\s\"?#]+")


class DeletionTokenFilter(logging.Filter):
    """Mask deletion tokens in delete URLs logged by httpx."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        redacted = _DELETE_PATH.sub(r"\1***", message)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


# httpx logs every request URL at INFO; delete URLs carry the token.
logging.getLogger("httpx").addFilter(DeletionTokenFilter())


def _error_details(response: httpx.Response, default: str) -> Tuple[str, Optional[str]]:
    """Extract a message and error code from an already-read error response."""
    try:
        data = response.json()
    except ValueError:
        data = None

    if isinstance(data, dict):
        message = data.get("error") or data.get("message") or default
        error_code = data.get("code")
        return str(message), str(error_code) if error_code else None

    text = response.text.strip()
    return text or default, None


def _retry_after(response: httpx.Response) -> Optional[int]:
    value = response.headers.get("retry-after")
    if value and value.isdigit():
        return int(value)
    return None


def _content_length(response: httpx.Response) -> Optional[int]:
    value = response.headers.get("content-length")
    if value and value.isdigit():
        return int(value)
    return None


def _open_source(path: Path) -> Tuple[BinaryIO, int]:
    """Open a local regular file for upload and return it with its size."""
    try:
        st = path.stat()
    except FileNotFoundError as e:
        raise IoError(f"File not found: {path}") from e
    except OSError as e:
        raise IoError(f"Cannot stat {path}: {e.strerror or e}") from e

    # Checked before opening: opening a FIFO would block.
    if not stat.S_ISREG(st.st_mode):
        raise IoError(f"Not a regular file: {path}")

    try:
        file_obj: BinaryIO = open(path, "rb")  # type: ignore
    except OSError as e:
        raise IoError(f"Cannot open {path}: {e.strerror or e}") from e

    return file_obj, st.st_size


class _BaseClient:
    """Configuration, URL building and response parsing shared by both clients."""

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        try:
            self._config = ClientConfig(
                base_url=base_url,
                timeout=timeout,
                verify_ssl=verify_ssl,
                chunk_size=chunk_size,
            )
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid client configuration: {e}") from e

        if not verify_ssl:
            warnings.warn(
                "SSL verification is disabled. This is insecure and should only "
                "be used for local development with self-signed certificates.",
                UserWarning,
                stacklevel=3,
            )

    @property
    def config(self) -> ClientConfig:
        """Immutable client configuration."""
        return self._config

    @property
    def base_url(self) -> str:
        return self._config.base_url

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(base_url={self.base_url!r}, "
            f"timeout={self._config.timeout})"
        )

    def _client_options(self) -> dict:
        return {
            "base_url": self._config.base_url,
            "timeout": self._config.timeout,
            "verify": self._config.verify_ssl,
            "headers": {"User-Agent": USER_AGENT},
        }

    def _ws_options(self, url: str) -> dict:
        options: dict = {
            "open_timeout": self._config.timeout,
            "user_agent_header": USER_AGENT,
        }
        if url.startswith("wss://") and not self._config.verify_ssl:
            context = ssl.create_default_context()
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE
            options["ssl"] = context
        return options

    # ==================== URLs ====================

    @staticmethod
    def _segment(value: str) -> str:
        return quote(value, safe="")

    def _upload_url(self, file_identifier: FileIdentifier) -> str:
        """WebSocket URL of the upload stream (http -> ws, https -> wss)."""
        scheme, rest = self._config.base_url.split("://", 1)
        ws_scheme = "wss" if scheme.lower() == "https" else "ws"
        return f"{ws_scheme}://{rest}/api/upload/{self._segment(file_identifier)}"

    def _download_path(self, file_identifier: FileIdentifier) -> str:
        return f"/download/{self._segment(file_identifier)}"

    def _delete_path(self, file_identifier: FileIdentifier, deletion_token: DeletionToken) -> str:
        return (
            f"/api/delete/{self._segment(file_identifier)}"
            f"/{self._segment(deletion_token)}"
        )

    def download_url(self, file_identifier: FileIdentifier) -> str:
        """
        Build the public download URL for a file.

        Args:
            file_identifier: Identifier returned by upload

        Returns:
            Absolute URL that can be shared with anyone
        """
        self._validate_value(file_identifier, "File identifier")
        return self._config.base_url + self._download_path(file_identifier)

    # ==================== Validation & parsing ====================

    @staticmethod
    def _validate_value(value: str, what: str) -> None:
        if not value:
            raise ValidationError(f"{what} cannot be empty")

    @staticmethod
    def _raise_for_response(response: httpx.Response, default_message: str) -> None:
        """
        Raise a ServerError subclass unless the response is a 2xx.

        The response body must already be read.
        """
        if response.is_success:
            return

        message, error_code = _error_details(response, default_message)
        if response.status_code < 400:
            raise ServerError(message, response.status_code, error_code)
        raise_for_status(response.status_code, message, error_code, _retry_after(response))

    def _parse_create(self, response: httpx.Response) -> UploadResult:
        self._raise_for_response(response, "Failed to create upload")
        try:
            return UploadResult.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise ServerError(
                f"Malformed create response: {e}", response.status_code
            ) from e

    # ==================== Upload stream ====================

    @staticmethod
    def _check_ack(reply) -> None:
        if reply != UPLOAD_ACK:
            raise ServerError(f"Unexpected reply to upload chunk: {reply!r}")

    @staticmethod
    def _raise_for_handshake(e: InvalidStatus) -> None:
        response = e.response
        body = response.body.decode(errors="replace").strip() if response.body else ""
        message = body or "Upload stream rejected"
        if response.status_code < 400:
            raise ServerError(message, response.status_code) from e
        try:
            raise_for_status(response.status_code, message)
        except ServerError as error:
            raise error from e

    @staticmethod
    def _closed_error(e: ConnectionClosed) -> StreamShareError:
        """A close frame from the server is a refusal; no close frame is a lost connection."""
        if e.rcvd is not None:
            reason = f": {e.rcvd.reason}" if e.rcvd.reason else ""
            return ServerError(f"Upload closed by server with code {int(e.rcvd.code)}{reason}")
        return NetworkError(f"Upload connection lost: {e}")


class StreamShareClient(_BaseClient):
    """
    StreamShare API client.

    Example:
        >>> with StreamShareClient() as client:
        ...     result = client.upload("video.mp4", progress_callback=print)
        ...     client.download(result.file_identifier, "copy.mp4")
        ...     client.delete(result.file_identifier, result.deletion_token)
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        """
        Initialize StreamShare client.

        Args:
            base_url: Base URL of the StreamShare server
            timeout: Request timeout in seconds (default: 300s for large uploads)
            verify_ssl: Whether to verify SSL certificates (default: True).
                        WARNING: Setting this to False is a security risk and should
                        only be used for local development with self-signed certificates.
            chunk_size: Number of bytes sent per upload frame
        """
        super().__init__(base_url, timeout, verify_ssl, chunk_size)
        self._client = httpx.Client(**self._client_options())

    def close(self) -> None:
        """Close the HTTP client connection."""
        self._client.close()

    def __enter__(self) -> "StreamShareClient":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise NetworkError(f"{method} request failed: {e}") from e

    # ==================== File Upload ====================

    def upload(
        self,
        file_path: PathLike,
        progress_callback: Optional[ProgressCallback] = None,
        filename: Optional[str] = None,
    ) -> UploadResult:
        """
        Upload a file to StreamShare.

        Args:
            file_path: Path of the local file to upload
            progress_callback: Called with (bytes_uploaded, total_bytes) per acknowledged chunk
            filename: Name announced to the server (defaults to the file's name)

        Returns:
            UploadResult with file identifier and deletion token

        Raises:
            IoError: If the file cannot be opened or read
            NetworkError: If the connection fails
            ServerError: On a non-success status, a missing ACK or a malformed response
        """
        path = Path(file_path)
        file_obj, file_size = _open_source(path)
        try:
            name = filename or path.name
            logger.debug(f"Creating upload for {name} ({file_size} bytes)")
            response = self._send("POST", "/api/create", json={"name": name})
            result = self._parse_create(response)

            reader = ProgressReader(
                file_obj, file_size, progress_callback, self._config.chunk_size
            )
            self._stream_upload(reader, result.file_identifier, path)
        finally:
            file_obj.close()

        logger.info(f"Uploaded {name} ({file_size} bytes) as {result.file_identifier}")
        return result

    def _stream_upload(
        self, reader: ProgressReader, file_identifier: FileIdentifier, path: Path
    ) -> None:
        url = self._upload_url(file_identifier)
        logger.debug(f"Streaming {reader.total_bytes} bytes to {url}")
        chunks = reader.iter_chunks()
        try:
            with ws_connect(url, **self._ws_options(url)) as websocket:
                while True:
                    try:
                        chunk = next(chunks, None)
                    except OSError as e:
                        raise IoError(f"Failed to read {path}: {e.strerror or e}") from e
                    if chunk is None:
                        break
                    websocket.send(chunk)
                    self._check_ack(websocket.recv(timeout=self._config.timeout))
                websocket.close(CloseCode.NORMAL_CLOSURE, UPLOAD_DONE_REASON)
        except InvalidStatus as e:
            self._raise_for_handshake(e)
        except ConnectionClosed as e:
            raise self._closed_error(e) from e
        except (WebSocketException, OSError) as e:
            raise NetworkError(f"Upload failed: {e}") from e

    # ==================== File Download ====================

    def download(
        self,
        file_identifier: FileIdentifier,
        destination: PathLike,
        progress_callback: Optional[DownloadProgressCallback] = None,
    ) -> Path:
        """
        Download a file by identifier, overwriting the destination.

        Args:
            file_identifier: Identifier returned by upload
            destination: Destination file path
            progress_callback: Called with (bytes_downloaded, total_bytes or None)

        Returns:
            Resolved path of the downloaded file

        Raises:
            NotFoundError: If the identifier is unknown
            IoError: If the destination cannot be written
            NetworkError: If the connection fails
        """
        self._validate_value(file_identifier, "File identifier")
        url = self._download_path(file_identifier)
        dest_path = Path(destination).resolve()
        logger.debug(f"GET {url}")

        try:
            with self._client.stream("GET", url) as response:
                if not response.is_success:
                    response.read()
                    self._raise_for_response(response, "Download failed")

                total_size = _content_length(response)
                dest_path.parent.mkdir(parents=True, exist_ok=True)
                bytes_downloaded = 0
                with open(dest_path, "wb") as file_obj:
                    for chunk in response.iter_bytes(chunk_size=self._config.chunk_size):
                        file_obj.write(chunk)
                        bytes_downloaded += len(chunk)
                        if progress_callback:
                            progress_callback(bytes_downloaded, total_size)
        except httpx.TransportError as e:
            raise NetworkError(f"Download failed: {e}") from e
        except OSError as e:
            raise IoError(f"Cannot write {dest_path}: {e.strerror or e}") from e

        logger.info(f"Downloaded {file_identifier} ({bytes_downloaded} bytes) to {dest_path}")
        return dest_path

    # ==================== File Deletion ====================

    def delete(self, file_identifier: FileIdentifier, deletion_token: DeletionToken) -> None:
        """
        Delete a file using its deletion token.

        Args:
            file_identifier: Identifier returned by upload
            deletion_token: Token returned alongside the identifier

        Raises:
            AuthenticationError: If the token does not match
            NotFoundError: If the identifier is unknown
            NetworkError: If the connection fails
        """
        self._validate_value(file_identifier, "File identifier")
        self._validate_value(deletion_token, "Deletion token")
        logger.debug(f"Deleting {file_identifier}")

        response = self._send("DELETE", self._delete_path(file_identifier, deletion_token))
        self._raise_for_response(response, "Failed to delete file")
        logger.info(f"Deleted {file_identifier}")


class AsyncStreamShareClient(_BaseClient):
    """
    Asynchronous StreamShare API client built on ``httpx.AsyncClient``.

    Same operations and errors as :class:`StreamShareClient`. Local file
    access runs in worker threads; progress callbacks run on the awaiting
    task.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        verify_ssl: bool = True,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ) -> None:
        super().__init__(base_url, timeout, verify_ssl, chunk_size)
        self._client = httpx.AsyncClient(**self._client_options())

    async def aclose(self) -> None:
        """Close the HTTP client connection."""
        await self._client.aclose()

    async def __aenter__(self) -> "AsyncStreamShareClient":
        return self

    async def __aexit__(self, *args) -> None:
        await self.aclose()

    async def _send(self, method: str, url: str, **kwargs) -> httpx.Response:
        try:
            return await self._client.request(method, url, **kwargs)
        except httpx.TransportError as e:
            raise NetworkError(f"{method} request failed: {e}") from e

    async def upload(
        self,
        file_path: PathLike,
        progress_callback: Optional[ProgressCallback] = None,
        filename: Optional[str] = None,
    ) -> UploadResult:
        """Upload a file. See :meth:`StreamShareClient.upload`."""
        path = Path(file_path)
        file_obj, file_size = await asyncio.to_thread(_open_source, path)
        try:
            name = filename or path.name
            logger.debug(f"Creating upload for {name} ({file_size} bytes)")
            response = await self._send("POST", "/api/create", json={"name": name})
            result = self._parse_create(response)

            reader = ProgressReader(
                file_obj, file_size, progress_callback, self._config.chunk_size
            )
            await self._stream_upload(reader, result.file_identifier, path)
        finally:
            await asyncio.to_thread(file_obj.close)

        logger.info(f"Uploaded {name} ({file_size} bytes) as {result.file_identifier}")
        return result

    async def _stream_upload(
        self, reader: ProgressReader, file_identifier: FileIdentifier, path: Path
    ) -> None:
        url = self._upload_url(file_identifier)
        logger.debug(f"Streaming {reader.total_bytes} bytes to {url}")
        chunks = reader.aiter_chunks()
        try:
            async with ws_connect_async(url, **self._ws_options(url)) as websocket:
                while True:
                    try:
                        chunk = await chunks.__anext__()
                    except StopAsyncIteration:
                        break
                    except OSError as e:
                        raise IoError(f"Failed to read {path}: {e.strerror or e}") from e
                    await websocket.send(chunk)
                    reply = await asyncio.wait_for(websocket.recv(), self._config.timeout)
                    self._check_ack(reply)
                await websocket.close(CloseCode.NORMAL_CLOSURE, UPLOAD_DONE_REASON)
        except InvalidStatus as e:
            self._raise_for_handshake(e)
        except ConnectionClosed as e:
            raise self._closed_error(e) from e
        except (WebSocketException, OSError, asyncio.TimeoutError) as e:
            raise NetworkError(f"Upload failed: {e}") from e

    async def download(
        self,
        file_identifier: FileIdentifier,
        destination: PathLike,
        progress_callback: Optional[DownloadProgressCallback] = None,
    ) -> Path:
        """Download a file. See :meth:`StreamShareClient.download`."""
        self._validate_value(file_identifier, "File identifier")
        url = self._download_path(file_identifier)
        dest_path = Path(destination).resolve()
        logger.debug(f"GET {url}")

        try:
            async with self._client.stream("GET", url) as response:
                if not response.is_success:
                    await response.aread()
                    self._raise_for_response(response, "Download failed")

                total_size = _content_length(response)
                await asyncio.to_thread(dest_path.parent.mkdir, parents=True, exist_ok=True)
                bytes_downloaded = 0
                file_obj = await asyncio.to_thread(open, dest_path, "wb")
                try:
                    async for chunk in response.aiter_bytes(chunk_size=self._config.chunk_size):
                        await asyncio.to_thread(file_obj.write, chunk)
                        bytes_downloaded += len(chunk)
                        if progress_callback:
                            progress_callback(bytes_downloaded, total_size)
                finally:
                    await asyncio.to_thread(file_obj.close)
        except httpx.TransportError as e:
            raise NetworkError(f"Download failed: {e}") from e
        except OSError as e:
            raise IoError(f"Cannot write {dest_path}: {e.strerror or e}") from e

        logger.info(f"Downloaded {file_identifier} ({bytes_downloaded} bytes) to {dest_path}")
        return dest_path

    async def delete(self, file_identifier: FileIdentifier, deletion_token: DeletionToken) -> None:
        """Delete a file. See :meth:`StreamShareClient.delete`."""
        self._validate_value(file_identifier, "File identifier")
        self._validate_value(deletion_token, "Deletion token")
        logger.debug(f"Deleting {file_identifier}")

        response = await self._send("DELETE", self._delete_path(file_identifier, deletion_token))
        self._raise_for_response(response, "Failed to delete file")
        logger.info(f"Deleted {file_identifier}")
