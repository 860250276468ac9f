"""Errors raised by the MIME and attachment helpers."""

from __future__ import annotations


class GmailToolError(RuntimeError):
    """Base class for gmail_tool failures."""


class AttachmentNotFound(GmailToolError):
    """Raised when a local attachment path does not exist."""

    def __init__(self, path: str):
        super().__init__(f"Attachment file not found: {path}")
        self.path = path


class UnsupportedPayloadType(GmailToolError):
    """Raised when downloaded content arrives in a shape we cannot turn into bytes."""

    def __init__(self, type_name: str):
        super().__init__(f"Unsupported attachment payload type: {type_name}")
        self.type_name = type_name


class AttachmentPartNotFound(GmailToolError):
    """Raised when a message has no MIME part with the requested part id."""

    def __init__(self, part_id: str):
        super().__init__(f"Attachment part not found: {part_id}")
        self.part_id = part_id


class AttachmentDataUnavailable(GmailToolError):
    """Raised when a located part has neither inline data nor an attachment id."""

    def __init__(self, part_id: str):
        super().__init__(f"Part {part_id} does not contain attachment data.")
        self.part_id = part_id


__all__ = [
    "AttachmentDataUnavailable",
    "AttachmentNotFound",
    "AttachmentPartNotFound",
    "GmailToolError",
    "UnsupportedPayloadType",
]
