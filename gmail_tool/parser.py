from __future__ import annotations
from typing import Any, Dict, List, Optional
from .types import AttachmentDescriptor, Message, MimePart
from .decoder import b64url_decode, decode_header_str

DEFAULT_ATTACHMENT_MIME = "application/octet-stream"

# ------------------ Public API ------------------

def parse_message(msg: Dict[str, Any]) -> Message:
    """
    Map a Gmail API message dict returned by:
      gmail.users().messages().get(userId="me", id=..., format="full")
    into a Message carrying the preferred textual body.
    """
    payload = msg.get("payload") or {}

    # Normalize headers to a case-insensitive map
    headers = {(h.get("name", "") or "").lower(): h.get("value", "") for h in payload.get("headers") or []}

    return Message(
        id=msg.get("id", ""),
        thread_id=msg.get("threadId", ""),
        snippet=msg.get("snippet", "") or "",
        from_=decode_header_str(headers.get("from")),
        to=decode_header_str(headers.get("to")),
        subject=decode_header_str(headers.get("subject")),
        date=decode_header_str(headers.get("date")),
        body=extract_body(MimePart.from_api(payload)),
        label_ids=list(msg.get("labelIds") or []),
    )

def extract_body(root: Optional[MimePart]) -> str:
    """
    Return the preferred readable body of a MIME tree, or "" when none exists.

    Order: the node's own inline data; then the first direct text/plain
    child with data; then the first direct text/html child with data; then
    each child recursively, first non-empty result wins. Plain beats HTML and
    shallow beats deep, so a multipart/alternative nested in multipart/mixed
    still yields its plain text.
    """
    if root is None:
        return ""

    # Simple single-part message
    if root.body.data:
        return _decode_text(root.body.data)

    for mime in ("text/plain", "text/html"):
        part = next((p for p in root.parts if p.mime_type == mime and p.body.data), None)
        if part is not None:
            return _decode_text(part.body.data)

    for part in root.parts:
        nested = extract_body(part)
        if nested:
            return nested
    return ""

def flatten_parts(root: Optional[MimePart]) -> List[MimePart]:
    """
    Flatten the MIME tree (root + parts[]) into a simple list of parts.
    Every node appears once; the order is not document order.
    """
    if root is None:
        return []
    stack = [root]
    out: List[MimePart] = []
    while stack:
        p = stack.pop()
        out.append(p)
        stack.extend(p.parts)
    return out

def attachment_descriptors(root: Optional[MimePart]) -> List[AttachmentDescriptor]:
    """
    Describe every part that carries a filename or an externalized attachment id.
    Structural containers (multipart/* with neither) are skipped.
    """
    return [
        AttachmentDescriptor(
            part_id=p.part_id or "",
            attachment_id=p.body.attachment_id or None,
            filename=p.filename or "",
            mime_type=p.mime_type or DEFAULT_ATTACHMENT_MIME,
            size=p.body.size or 0,
        )
        for p in flatten_parts(root)
        if p.filename or p.body.attachment_id
    ]

def find_part(root: Optional[MimePart], part_id: str) -> Optional[MimePart]:
    return next((p for p in flatten_parts(root) if p.part_id == part_id), None)

# ------------------ utilities ------------------

def _decode_text(data: str) -> str:
    return b64url_decode(data).decode("utf-8", "replace")
