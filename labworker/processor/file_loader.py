from pathlib import Path

import httpx

from labworker.database.models import UploadJob
from labworker.processor.exceptions import (
    DocumentFetchError,
    DocumentFetchTimeoutError,
    UnsupportedStorageDiskError,
)


def document_file_path(files_root: Path, storage_path: str) -> Path:
    """Build path to document file: {files_root}/{storage_path}"""
    return files_root / storage_path.lstrip("/")


class FileLoader:
    """Resolves where an upload's PDF lives and reads its bytes."""

    FILES_ROOT = Path("/app/files")

    def __init__(
        self,
        files_root: Path | None = None,
        base_url: str = "",
        timeout_seconds: float = 60,
        http_client: httpx.Client | None = None,
    ) -> None:
        self._files_root = files_root if files_root is not None else self.FILES_ROOT
        self._base_url = base_url.rstrip("/")
        self._timeout_seconds = timeout_seconds
        self._http_client = http_client

    def load(self, job: UploadJob) -> bytes:
        """Read the upload's document bytes.

        Raises:
            DocumentFetchError: if the document is missing or unreadable.
            DocumentFetchTimeoutError: if a remote fetch exceeds its deadline.
            UnsupportedStorageDiskError: if storage_disk is not 'local' or 'remote'.
        """
        if job.storage_disk == "local":
            return self._load_local(job)
        if job.storage_disk == "remote":
            return self._load_remote(job)
        raise UnsupportedStorageDiskError(
            f"storage_disk '{job.storage_disk}' is not supported"
        )

    def _load_local(self, job: UploadJob) -> bytes:
        path = document_file_path(self._files_root, job.storage_path)
        if not path.exists():
            raise DocumentFetchError(f"File not found: {path}")
        try:
            return path.read_bytes()
        except OSError as exc:
            raise DocumentFetchError(f"Failed to read {path}: {exc}") from exc

    def _load_remote(self, job: UploadJob) -> bytes:
        if not self._base_url:
            raise DocumentFetchError("storage_base_url is required for storage_disk=remote")
        url = f"{self._base_url}/{job.storage_path.lstrip('/')}"
        client = self._http_client or httpx.Client()
        try:
            response = client.get(url, timeout=self._timeout_seconds)
            response.raise_for_status()
        except httpx.TimeoutException as exc:
            raise DocumentFetchTimeoutError(
                f"Document download timed out after {self._timeout_seconds}s: {url}"
            ) from exc
        except httpx.HTTPStatusError as exc:
            raise DocumentFetchError(
                f"Failed to download document: HTTP {exc.response.status_code}"
            ) from exc
        except httpx.HTTPError as exc:
            raise DocumentFetchError(f"Failed to download document: {exc}") from exc
        finally:
            if self._http_client is None:
                client.close()
        return response.content
