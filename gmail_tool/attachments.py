"""Turn attachment sources (local files, Drive files) into MIME-ready payloads."""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple

from .decoder import Payload, b64encode, normalize_bytes
from .errors import AttachmentNotFound, GmailToolError
from .transport import HttpFactory, execute, http_factory_for
from .types import AttachmentSource, DriveAttachment, LocalAttachment, ResolvedAttachment

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"
DEFAULT_LOCAL_FILENAME = "attachment.bin"

# First match wins.
EXTENSION_MIME_TYPES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    ((".png",), "image/png"),
    ((".jpg", ".jpeg"), "image/jpeg"),
    ((".webp",), "image/webp"),
    ((".gif",), "image/gif"),
    ((".pdf",), "application/pdf"),
    ((".txt",), "text/plain"),
    ((".csv",), "text/csv"),
)


class FileReader(Protocol):
    async def exists(self, path: str) -> bool: ...

    async def read_all(self, path: str) -> bytes: ...

    async def type_of(self, path: str) -> Optional[str]: ...


class BlobStore(Protocol):
    async def metadata(self, file_id: str) -> Dict[str, Any]: ...

    async def content(self, file_id: str) -> Payload: ...


def infer_mime_type(filename: str) -> str:
    lower = filename.lower()
    for suffixes, mime_type in EXTENSION_MIME_TYPES:
        if lower.endswith(suffixes):
            return mime_type
    return DEFAULT_MIME_TYPE


class LocalFileReader:
    """Reads attachments from the local filesystem in worker threads."""

    async def exists(self, path: str) -> bool:
        return await asyncio.to_thread(Path(path).is_file)

    async def read_all(self, path: str) -> bytes:
        return await asyncio.to_thread(Path(path).read_bytes)

    async def type_of(self, path: str) -> Optional[str]:
        return mimetypes.guess_type(path)[0]


class DriveBlobStore:
    """
    Fetches file metadata and content from a Drive v3 service built with
    googleapiclient.discovery.build("drive", "v3", ...).
    """

    def __init__(self, drive_service, *, http_factory: Optional[HttpFactory] = None):
        self._drive = drive_service
        self._http_factory = http_factory or http_factory_for(drive_service)

    async def metadata(self, file_id: str) -> Dict[str, Any]:
        request = self._drive.files().get(
            fileId=file_id, fields="name,mimeType", supportsAllDrives=True
        )
        return await execute(request, "drive metadata get", self._http_factory)

    async def content(self, file_id: str) -> Payload:
        request = self._drive.files().get_media(fileId=file_id, supportsAllDrives=True)
        return await execute(request, "drive media get", self._http_factory)


async def _resolve_local(source: LocalAttachment, files: FileReader) -> ResolvedAttachment:
    if not await files.exists(source.path):
        raise AttachmentNotFound(source.path)

    filename = source.filename or os.path.basename(source.path) or DEFAULT_LOCAL_FILENAME
    mime_type = (
        source.mime_type
        or await files.type_of(source.path)
        or infer_mime_type(filename)
    )
    data = await files.read_all(source.path)
    logger.debug("Read local attachment %s (%d bytes)", source.path, len(data))
    return ResolvedAttachment(filename=filename, mime_type=mime_type, base64_data=b64encode(data))


async def _resolve_drive(source: DriveAttachment, drive: BlobStore) -> ResolvedAttachment:
    meta, content = await asyncio.gather(
        drive.metadata(source.file_id),
        drive.content(source.file_id),
    )
    meta = meta or {}

    filename = source.filename or meta.get("name") or f"drive-file-{source.file_id}"
    mime_type = source.mime_type or meta.get("mimeType") or infer_mime_type(filename)
    data = await normalize_bytes(content)
    logger.debug("Fetched Drive attachment %s (%d bytes)", source.file_id, len(data))
    return ResolvedAttachment(filename=filename, mime_type=mime_type, base64_data=b64encode(data))


async def resolve_attachment(
    source: AttachmentSource,
    *,
    files: Optional[FileReader] = None,
    drive: Optional[BlobStore] = None,
) -> ResolvedAttachment:
    match source:
        case LocalAttachment():
            return await _resolve_local(source, files or LocalFileReader())
        case DriveAttachment():
            if drive is None:
                raise GmailToolError(
                    f"Drive attachment {source.file_id} requested but no Drive service is configured."
                )
            return await _resolve_drive(source, drive)
        case _:
            raise TypeError(f"Unknown attachment source: {type(source).__name__}")


async def resolve_attachments(
    sources: Sequence[AttachmentSource],
    *,
    files: Optional[FileReader] = None,
    drive: Optional[BlobStore] = None,
) -> List[ResolvedAttachment]:
    """
    Resolve every source concurrently. The result lines up with `sources`;
    the first failure propagates and no partial list is returned.
    """
    files = files or LocalFileReader()
    resolved = await asyncio.gather(
        *(resolve_attachment(s, files=files, drive=drive) for s in sources)
    )
    return list(resolved)


__all__ = [
    "BlobStore",
    "DriveBlobStore",
    "FileReader",
    "LocalFileReader",
    "infer_mime_type",
    "resolve_attachment",
    "resolve_attachments",
]
