"""HTTP payload downloader backed by httpx."""

from __future__ import annotations

import base64
import hashlib
import os
import time
from collections.abc import Callable
from pathlib import Path

import httpx
from loguru import logger

from adu_pvcontrol.config.schema import DownloadConfig
from adu_pvcontrol.core.models import FileEntity, Result, ResultCode
from adu_pvcontrol.core.result_codes import ExtendedResultCode


class DownloadError(RuntimeError):
    """Raised when a payload cannot be downloaded or verified."""

    extended_result_code: int = ExtendedResultCode.DOWNLOAD_FAILURE_TRANSPORT
    retryable: bool = False


class TransientDownloadError(DownloadError):
    """Raised for failures worth retrying (network errors, 5xx, 429)."""

    retryable = True


class HashMismatchError(DownloadError):
    """Raised when the downloaded bytes do not match the manifest hash."""

    extended_result_code = ExtendedResultCode.DOWNLOAD_FAILURE_HASH_MISMATCH


class SizeMismatchError(DownloadError):
    """Raised when the downloaded size differs from the manifest size."""

    extended_result_code = ExtendedResultCode.DOWNLOAD_FAILURE_SIZE_MISMATCH


def file_sha256_b64(path: Path, chunk_size: int = 64 * 1024) -> str:
    """Base64-encoded SHA-256 digest of a file, as used in update manifests."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        while chunk := f.read(chunk_size):
            digest.update(chunk)
    return base64.b64encode(digest.digest()).decode("ascii")


def verify_file(path: Path, entity: FileEntity) -> None:
    """Check size and SHA-256 of ``path`` against ``entity``.

    Raises:
        SizeMismatchError: if the manifest size is known and differs.
        HashMismatchError: if the manifest carries a sha256 that differs.
    """
    if entity.size_in_bytes is not None:
        actual = path.stat().st_size
        if actual != entity.size_in_bytes:
            raise SizeMismatchError(
                f"{path.name}: expected {entity.size_in_bytes} bytes, got {actual}"
            )
    expected = {k.lower(): v for k, v in entity.hashes.items()}.get("sha256")
    if expected and file_sha256_b64(path) != expected:
        raise HashMismatchError(f"{path.name}: sha256 mismatch")


class HttpxDownloader:
    """Downloads one payload file over HTTP(S) with retries until a deadline."""

    def __init__(
        self,
        config: DownloadConfig | None = None,
        *,
        client: httpx.Client | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.config = config or DownloadConfig()
        self._client = client
        self._sleep = sleep
        self._clock = clock

    def download(
        self,
        entity: FileEntity,
        workflow_id: str,
        work_folder: str,
        retry_timeout: int,
    ) -> Result:
        if not entity.download_uri or not entity.target_filename:
            logger.error("[{}] File entity has no download URI or target filename", workflow_id)
            return Result(ResultCode.FAILURE, ExtendedResultCode.DOWNLOAD_BAD_FILE_ENTITY)

        target = Path(work_folder) / entity.target_filename
        if target.is_file() and self._already_downloaded(target, entity):
            logger.info("[{}] {} already downloaded", workflow_id, target)
            return Result(ResultCode.DOWNLOAD_SUCCESS)

        deadline = self._clock() + retry_timeout
        attempt = 0
        while True:
            attempt += 1
            try:
                self._fetch(entity.download_uri, target)
                verify_file(target, entity)
            except DownloadError as e:
                if e.retryable and self._clock() < deadline:
                    logger.warning(
                        "[{}] Download attempt {} of {} failed: {}; retrying",
                        workflow_id,
                        attempt,
                        entity.download_uri,
                        e,
                    )
                    self._sleep(self.config.retry_interval_seconds)
                    continue
                target.unlink(missing_ok=True)
                code = e.extended_result_code
                if e.retryable:
                    code = ExtendedResultCode.DOWNLOAD_FAILURE_TIMEOUT
                logger.error("[{}] Download of {} failed: {}", workflow_id, entity.download_uri, e)
                return Result(ResultCode.FAILURE, code)

            logger.info("[{}] Downloaded {} to {}", workflow_id, entity.download_uri, target)
            return Result(ResultCode.DOWNLOAD_SUCCESS)

    def _already_downloaded(self, target: Path, entity: FileEntity) -> bool:
        if not entity.hashes and entity.size_in_bytes is None:
            return False
        try:
            verify_file(target, entity)
        except (DownloadError, OSError):
            return False
        return True

    def _fetch(self, url: str, target: Path) -> None:
        partial = target.with_name(f".{target.name}.part")
        client = self._client or httpx.Client(
            follow_redirects=True,
            timeout=self.config.http_timeout_seconds,
        )
        try:
            with client.stream("GET", url) as response:
                if response.status_code == 429 or response.status_code >= 500:
                    raise TransientDownloadError(f"HTTP {response.status_code}")
                if response.status_code >= 400:
                    raise DownloadError(f"HTTP {response.status_code}")
                with open(partial, "wb") as f:
                    for chunk in response.iter_bytes(self.config.chunk_size):
                        f.write(chunk)
            os.replace(partial, target)
        except (httpx.UnsupportedProtocol, httpx.InvalidURL) as e:
            raise DownloadError(f"Bad download URI {url}: {e}") from e
        except httpx.TransportError as e:
            raise TransientDownloadError(str(e) or type(e).__name__) from e
        except OSError as e:
            raise DownloadError(f"Cannot write {target}: {e}") from e
        finally:
            partial.unlink(missing_ok=True)
            if self._client is None:
                client.close()
