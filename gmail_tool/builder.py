"""Assemble outbound RFC 2822 / MIME messages as base64url `raw` strings."""

from __future__ import annotations

import time
import uuid
from typing import Dict, List, Optional, Sequence

from .decoder import b64url_encode
from .types import ResolvedAttachment

CRLF = "\r\n"
BOUNDARY_PREFIX = "gmail_tool_boundary_"
BASE64_LINE_LENGTH = 76
REPLY_PREFIX = "Re:"


def sanitize_header_value(value: str) -> str:
    """Replace characters that could break out of a quoted header value."""
    return value.replace("\r", "_").replace("\n", "_").replace('"', "_")


def wrap_base64(data: str, width: int = BASE64_LINE_LENGTH) -> str:
    return CRLF.join(data[i:i + width] for i in range(0, len(data), width))


def new_boundary() -> str:
    return f"{BOUNDARY_PREFIX}{time.time_ns()}_{uuid.uuid4().hex[:12]}"


def reply_subject(subject: str) -> str:
    # Only the exact "Re:" prefix counts; "re:" or "Re :" get prefixed again.
    if subject.startswith(REPLY_PREFIX):
        return subject
    return f"Re: {subject}"


def reply_headers(message_id: str) -> Dict[str, str]:
    return {"In-Reply-To": message_id, "References": message_id}


def _base_headers(to: str, subject: str, content_type: str) -> List[str]:
    return [
        f"To: {to}",
        f"Subject: {subject}",
        "MIME-Version: 1.0",
        f"Content-Type: {content_type}",
    ]


def build_raw_email(
    to: str,
    subject: str,
    body: str,
    content_type: str = "text/plain",
    extra_headers: Optional[Dict[str, str]] = None,
) -> str:
    """
    Build a single-part message and return it base64url encoded.

    `extra_headers` are appended verbatim, in order, after the standard ones.
    Callers must not pass values containing CR or LF.
    """
    headers = _base_headers(to, subject, f'{content_type}; charset="UTF-8"')
    for name, value in (extra_headers or {}).items():
        headers.append(f"{name}: {value}")

    email = CRLF.join(headers) + CRLF + CRLF + body
    return b64url_encode(email.encode("utf-8"))


def _attachment_part(boundary: str, attachment: ResolvedAttachment) -> str:
    safe_name = sanitize_header_value(attachment.filename)
    return (
        f"--{boundary}{CRLF}"
        f'Content-Type: {attachment.mime_type}; name="{safe_name}"{CRLF}'
        f'Content-Disposition: attachment; filename="{safe_name}"{CRLF}'
        f"Content-Transfer-Encoding: base64{CRLF}{CRLF}"
        f"{wrap_base64(attachment.base64_data)}{CRLF}"
    )


def build_raw_email_with_attachments(
    to: str,
    subject: str,
    body: str,
    attachments: Sequence[ResolvedAttachment],
    *,
    boundary: Optional[str] = None,
) -> str:
    """
    Build a multipart/mixed message: the text body first, then each
    attachment in the given order. Without attachments this is exactly
    `build_raw_email(to, subject, body, "text/plain")`.
    """
    if not attachments:
        return build_raw_email(to, subject, body, "text/plain")

    boundary = boundary or new_boundary()
    headers = _base_headers(to, subject, f'multipart/mixed; boundary="{boundary}"')

    parts = [
        f"--{boundary}{CRLF}"
        f'Content-Type: text/plain; charset="UTF-8"{CRLF}'
        f"Content-Transfer-Encoding: 7bit{CRLF}{CRLF}"
        f"{body}{CRLF}"
    ]
    parts.extend(_attachment_part(boundary, a) for a in attachments)
    parts.append(f"--{boundary}--")

    email = CRLF.join(headers) + CRLF + CRLF + "".join(parts)
    return b64url_encode(email.encode("utf-8"))


__all__ = [
    "build_raw_email",
    "build_raw_email_with_attachments",
    "new_boundary",
    "reply_headers",
    "reply_subject",
    "sanitize_header_value",
    "wrap_base64",
]
