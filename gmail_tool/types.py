from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

# ------------------ outbound ------------------

@dataclass(frozen=True)
class LocalAttachment:
    """
    A file on local disk to attach.
    - `filename` defaults to the last path segment.
    - `mime_type` defaults to what the file reader reports, then the extension.
    """
    path: str
    filename: Optional[str] = None
    mime_type: Optional[str] = None

@dataclass(frozen=True)
class DriveAttachment:
    """
    A Google Drive file to attach, fetched by id at send time.
    """
    file_id: str
    filename: Optional[str] = None
    mime_type: Optional[str] = None

AttachmentSource = Union[LocalAttachment, DriveAttachment]

@dataclass(frozen=True)
class ResolvedAttachment:
    filename: str
    mime_type: str
    base64_data: str                          # standard alphabet, unwrapped

# ------------------ inbound MIME tree ------------------

@dataclass(frozen=True)
class PartBody:
    data: Optional[str] = None                # base64url inline content
    attachment_id: Optional[str] = None       # Gmail body.attachmentId when data omitted
    size: Optional[int] = None

@dataclass(frozen=True)
class MimePart:
    """
    One node of a Gmail `payload` tree. Children are owned by their parent.
    """
    mime_type: str = ""
    part_id: Optional[str] = None
    filename: Optional[str] = None
    body: PartBody = field(default_factory=PartBody)
    headers: Dict[str, str] = field(default_factory=dict)
    parts: List["MimePart"] = field(default_factory=list)

    @classmethod
    def from_api(cls, payload: Optional[Dict[str, Any]]) -> Optional["MimePart"]:
        """
        Build a tree from the `payload` dict of a messages.get(format="full") response.
        """
        if payload is None:
            return None
        body = payload.get("body") or {}
        return cls(
            mime_type=payload.get("mimeType") or "",
            part_id=payload.get("partId"),
            filename=payload.get("filename"),
            body=PartBody(
                data=body.get("data"),
                attachment_id=body.get("attachmentId"),
                size=body.get("size"),
            ),
            headers={(h.get("name", "") or "").lower(): h.get("value", "") for h in payload.get("headers") or []},
            parts=[cls.from_api(p) for p in payload.get("parts") or []],
        )

@dataclass(frozen=True)
class AttachmentDescriptor:
    part_id: str
    filename: str
    mime_type: str
    size: int
    attachment_id: Optional[str] = None

# ------------------ message store records ------------------

@dataclass(frozen=True)
class MessageRef:
    id: str
    thread_id: str
    snippet: str = ""

@dataclass(frozen=True)
class MessageListSummary:
    id: str
    thread_id: str
    from_: str
    subject: str
    date: str
    snippet: str

@dataclass
class Message:
    """
    A fetched message with its preferred textual body.
    """
    id: str
    thread_id: str
    snippet: str = ""
    from_: str = ""
    to: str = ""
    subject: str = ""
    date: str = ""
    body: str = ""
    label_ids: List[str] = field(default_factory=list)

@dataclass(frozen=True)
class SentMessage:
    id: str
    thread_id: str
    label_ids: List[str] = field(default_factory=list)

@dataclass(frozen=True)
class Label:
    id: str
    name: str
    type: str = "user"

@dataclass(frozen=True)
class DraftSummary:
    id: str
    message_id: str = ""
    snippet: str = ""

@dataclass(frozen=True)
class DownloadResult:
    output_path: str
    size_bytes: int

# ------------------ filters ------------------

@dataclass
class FilterCriteria:
    from_: Optional[str] = None
    to: Optional[str] = None
    subject: Optional[str] = None
    query: Optional[str] = None
    negated_query: Optional[str] = None
    has_attachment: Optional[bool] = None
    exclude_chats: Optional[bool] = None
    size: Optional[int] = None
    size_comparison: Optional[str] = None     # "larger" | "smaller"

@dataclass
class FilterAction:
    add_label_ids: Optional[List[str]] = None
    remove_label_ids: Optional[List[str]] = None
    forward: Optional[str] = None

@dataclass
class GmailFilter:
    id: str
    criteria: FilterCriteria = field(default_factory=FilterCriteria)
    action: FilterAction = field(default_factory=FilterAction)
