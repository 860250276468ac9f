from .attachments import infer_mime_type, resolve_attachments
from .builder import build_raw_email, build_raw_email_with_attachments
from .decoder import normalize_bytes
from .errors import (
    AttachmentDataUnavailable,
    AttachmentNotFound,
    AttachmentPartNotFound,
    GmailToolError,
    UnsupportedPayloadType,
)
from .parser import attachment_descriptors, extract_body, flatten_parts, parse_message
from .summaries import summarize
from .tool import GmailClient
from .types import (
    AttachmentDescriptor,
    DriveAttachment,
    LocalAttachment,
    MessageListSummary,
    MessageRef,
    MimePart,
    ResolvedAttachment,
)

__all__ = [
    "AttachmentDataUnavailable",
    "AttachmentDescriptor",
    "AttachmentNotFound",
    "AttachmentPartNotFound",
    "DriveAttachment",
    "GmailClient",
    "GmailToolError",
    "LocalAttachment",
    "MessageListSummary",
    "MessageRef",
    "MimePart",
    "ResolvedAttachment",
    "UnsupportedPayloadType",
    "attachment_descriptors",
    "build_raw_email",
    "build_raw_email_with_attachments",
    "extract_body",
    "flatten_parts",
    "infer_mime_type",
    "normalize_bytes",
    "parse_message",
    "resolve_attachments",
    "summarize",
]
