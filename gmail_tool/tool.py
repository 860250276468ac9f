"""Gmail and Drive service wiring plus an async client over the Gmail API."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .attachments import DriveBlobStore, FileReader, LocalFileReader, resolve_attachments
from .builder import (
    build_raw_email,
    build_raw_email_with_attachments,
    reply_headers,
    reply_subject,
)
from .config import DEFAULT_SCOPES
from .decoder import b64url_decode
from .errors import AttachmentDataUnavailable, AttachmentPartNotFound
from .parser import attachment_descriptors, find_part, parse_message
from .summaries import DEFAULT_BATCH_SIZE, summarize
from .transport import HttpFactory, execute, http_factory_for
from .types import (
    AttachmentDescriptor,
    AttachmentSource,
    DownloadResult,
    DraftSummary,
    FilterAction,
    FilterCriteria,
    GmailFilter,
    Label,
    Message,
    MessageListSummary,
    MessageRef,
    MimePart,
    SentMessage,
)

logger = logging.getLogger(__name__)

SUMMARY_HEADERS = ("From", "Subject", "Date")
SIZE_COMPARISONS = ("larger", "smaller")

_CRITERIA_KEYS = {
    "from_": "from",
    "to": "to",
    "subject": "subject",
    "query": "query",
    "negated_query": "negatedQuery",
    "has_attachment": "hasAttachment",
    "exclude_chats": "excludeChats",
    "size": "size",
    "size_comparison": "sizeComparison",
}
_ACTION_KEYS = {
    "add_label_ids": "addLabelIds",
    "remove_label_ids": "removeLabelIds",
    "forward": "forward",
}


def _ensure_google_imports():
    from google.auth.transport.requests import Request
    from google.oauth2.credentials import Credentials
    from google_auth_oauthlib.flow import InstalledAppFlow
    from googleapiclient.discovery import build

    return Request, Credentials, InstalledAppFlow, build


def load_credentials(
    *,
    token_path: str | Path = "token.json",
    client_secret_path: str | Path = "client_secret.json",
    scopes: Sequence[str] = DEFAULT_SCOPES,
):
    """
    Load cached OAuth credentials, refreshing or prompting the user if needed.
    """
    Request, Credentials, InstalledAppFlow, _ = _ensure_google_imports()

    token_path = Path(token_path)
    client_secret_path = Path(client_secret_path)

    creds = None
    if token_path.exists():
        creds = Credentials.from_authorized_user_file(str(token_path), list(scopes))
    if not creds or not creds.valid:
        if creds and creds.expired and creds.refresh_token:
            logger.info("Refreshing cached Google credentials")
            creds.refresh(Request())
        else:
            if not client_secret_path.exists():
                raise FileNotFoundError(
                    f"client_secret file not found at {client_secret_path}. "
                    "Download it from Google Cloud Console."
                )
            flow = InstalledAppFlow.from_client_secrets_file(str(client_secret_path), list(scopes))
            creds = flow.run_local_server(port=0)
        token_path.write_text(creds.to_json())

    return creds


def build_gmail_service(credentials, *, cache_discovery: bool = False):
    _, _, _, build = _ensure_google_imports()
    return build("gmail", "v1", credentials=credentials, cache_discovery=cache_discovery)


def build_drive_service(credentials, *, cache_discovery: bool = False):
    _, _, _, build = _ensure_google_imports()
    return build("drive", "v3", credentials=credentials, cache_discovery=cache_discovery)


# ------------------ record mapping ------------------

def _sent(data: Dict[str, Any]) -> SentMessage:
    return SentMessage(
        id=data.get("id", ""),
        thread_id=data.get("threadId", ""),
        label_ids=list(data.get("labelIds") or []),
    )


def _draft(data: Dict[str, Any]) -> DraftSummary:
    return DraftSummary(id=data.get("id", ""), message_id=(data.get("message") or {}).get("id", ""))


def filter_to_api(criteria: FilterCriteria, action: FilterAction) -> Dict[str, Any]:
    """Request body for settings.filters.create; unset fields are omitted."""
    return {
        "criteria": {
            _CRITERIA_KEYS[k]: v for k, v in asdict(criteria).items() if v is not None
        },
        "action": {
            _ACTION_KEYS[k]: v for k, v in asdict(action).items() if v is not None
        },
    }


def filter_from_api(data: Dict[str, Any]) -> GmailFilter:
    criteria = data.get("criteria") or {}
    action = data.get("action") or {}
    size_comparison = criteria.get("sizeComparison")
    return GmailFilter(
        id=data.get("id", ""),
        criteria=FilterCriteria(
            from_=criteria.get("from"),
            to=criteria.get("to"),
            subject=criteria.get("subject"),
            query=criteria.get("query"),
            negated_query=criteria.get("negatedQuery"),
            has_attachment=criteria.get("hasAttachment"),
            exclude_chats=criteria.get("excludeChats"),
            size=criteria.get("size"),
            size_comparison=size_comparison if size_comparison in SIZE_COMPARISONS else None,
        ),
        action=FilterAction(
            add_label_ids=action.get("addLabelIds"),
            remove_label_ids=action.get("removeLabelIds"),
            forward=action.get("forward"),
        ),
    )


# ------------------ client ------------------

class GmailClient:
    """
    Async facade over a googleapiclient Gmail service (and optionally Drive).

    Each API call runs `request.execute()` in a worker thread on a fresh
    transport, so concurrent calls never share an httplib2.Http. Remote errors
    are logged and re-raised as googleapiclient.errors.HttpError.
    """

    def __init__(
        self,
        gmail_service,
        drive_service=None,
        *,
        files: Optional[FileReader] = None,
        user_id: str = "me",
        batch_size: int = DEFAULT_BATCH_SIZE,
        http_factory: Optional[HttpFactory] = None,
    ):
        self._gmail = gmail_service
        self._http_factory = http_factory or http_factory_for(gmail_service)
        self._drive = DriveBlobStore(drive_service) if drive_service is not None else None
        self._files = files or LocalFileReader()
        self.user_id = user_id
        self.batch_size = batch_size

    async def _execute(self, request, action: str) -> Dict[str, Any]:
        result = await execute(request, f"gmail {action}", self._http_factory)
        return result or {}

    def _messages(self):
        return self._gmail.users().messages()

    # -- list / get --

    async def list_messages(self, query: Optional[str] = None, max_results: int = 20) -> List[MessageRef]:
        data = await self._execute(
            self._messages().list(userId=self.user_id, q=query, maxResults=max_results),
            "list",
        )
        return [
            MessageRef(id=m["id"], thread_id=m.get("threadId", ""), snippet=m.get("snippet", ""))
            for m in data.get("messages", [])
        ]

    async def _message_metadata(self, message_id: str) -> Dict[str, Any]:
        return await self._execute(
            self._messages().get(
                userId=self.user_id,
                id=message_id,
                format="metadata",
                metadataHeaders=list(SUMMARY_HEADERS),
            ),
            "metadata get",
        )

    async def list_message_summaries(
        self, query: Optional[str] = None, max_results: int = 20
    ) -> List[MessageListSummary]:
        refs = await self.list_messages(query, max_results)
        return await summarize(refs, self._message_metadata, batch_size=self.batch_size)

    async def _full_message(self, message_id: str) -> Dict[str, Any]:
        return await self._execute(
            self._messages().get(userId=self.user_id, id=message_id, format="full"),
            "get",
        )

    async def get_message(self, message_id: str) -> Message:
        return parse_message(await self._full_message(message_id))

    # -- send / reply --

    async def _send(self, raw: str, thread_id: Optional[str] = None) -> SentMessage:
        body: Dict[str, Any] = {"raw": raw}
        if thread_id:
            body["threadId"] = thread_id
        sent = _sent(await self._execute(self._messages().send(userId=self.user_id, body=body), "send"))
        logger.info("Sent message %s (thread %s)", sent.id, sent.thread_id)
        return sent

    async def send_message(self, to: str, subject: str, body: str) -> SentMessage:
        return await self._send(build_raw_email(to, subject, body, "text/plain"))

    async def send_html_message(self, to: str, subject: str, html_body: str) -> SentMessage:
        return await self._send(build_raw_email(to, subject, html_body, "text/html"))

    async def reply_to_message(self, message_id: str, body: str) -> SentMessage:
        original = await self.get_message(message_id)
        raw = build_raw_email(
            original.from_,
            reply_subject(original.subject),
            body,
            "text/plain",
            reply_headers(message_id),
        )
        return await self._send(raw, original.thread_id)

    async def _build_with_attachments(
        self, to: str, subject: str, body: str, attachments: Sequence[AttachmentSource]
    ) -> str:
        payloads = await resolve_attachments(attachments, files=self._files, drive=self._drive)
        return build_raw_email_with_attachments(to, subject, body, payloads)

    async def send_message_with_attachments(
        self, to: str, subject: str, body: str, attachments: Sequence[AttachmentSource]
    ) -> SentMessage:
        return await self._send(await self._build_with_attachments(to, subject, body, attachments))

    # -- trash --

    async def trash_message(self, message_id: str) -> None:
        await self._execute(self._messages().trash(userId=self.user_id, id=message_id), "trash")

    async def untrash_message(self, message_id: str) -> None:
        await self._execute(self._messages().untrash(userId=self.user_id, id=message_id), "untrash")

    # -- labels --

    async def list_labels(self) -> List[Label]:
        data = await self._execute(self._gmail.users().labels().list(userId=self.user_id), "labels list")
        return [
            Label(id=l["id"], name=l["name"], type=l.get("type") or "user")
            for l in data.get("labels", [])
        ]

    async def modify_labels(
        self, message_id: str, add: Sequence[str] = (), remove: Sequence[str] = ()
    ) -> None:
        await self._execute(
            self._messages().modify(
                userId=self.user_id,
                id=message_id,
                body={"addLabelIds": list(add), "removeLabelIds": list(remove)},
            ),
            "modify",
        )

    async def add_labels(self, message_id: str, label_ids: Sequence[str]) -> None:
        await self.modify_labels(message_id, add=label_ids)

    async def remove_labels(self, message_id: str, label_ids: Sequence[str]) -> None:
        await self.modify_labels(message_id, remove=label_ids)

    # -- drafts --

    async def _create_draft(self, raw: str) -> DraftSummary:
        data = await self._execute(
            self._gmail.users().drafts().create(userId=self.user_id, body={"message": {"raw": raw}}),
            "draft create",
        )
        draft = _draft(data)
        logger.info("Created draft %s", draft.id)
        return draft

    async def create_draft(self, to: str, subject: str, body: str) -> DraftSummary:
        return await self._create_draft(build_raw_email(to, subject, body, "text/plain"))

    async def create_draft_with_attachments(
        self, to: str, subject: str, body: str, attachments: Sequence[AttachmentSource]
    ) -> DraftSummary:
        return await self._create_draft(await self._build_with_attachments(to, subject, body, attachments))

    async def list_drafts(self) -> List[DraftSummary]:
        data = await self._execute(self._gmail.users().drafts().list(userId=self.user_id), "drafts list")
        return [_draft(d) for d in data.get("drafts", [])]

    # -- attachments --

    async def list_attachments(self, message_id: str) -> List[AttachmentDescriptor]:
        data = await self._full_message(message_id)
        return attachment_descriptors(MimePart.from_api(data.get("payload")))

    async def _write(self, output_path: str, data: bytes) -> DownloadResult:
        await asyncio.to_thread(Path(output_path).write_bytes, data)
        logger.info("Wrote %d bytes to %s", len(data), output_path)
        return DownloadResult(output_path=output_path, size_bytes=len(data))

    async def download_attachment(
        self, message_id: str, attachment_id: str, output_path: str
    ) -> DownloadResult:
        data = await self._execute(
            self._messages().attachments().get(userId=self.user_id, messageId=message_id, id=attachment_id),
            "attachment get",
        )
        return await self._write(output_path, b64url_decode(data.get("data", ""), strict=True))

    async def download_attachment_part(
        self, message_id: str, part_id: str, output_path: str
    ) -> DownloadResult:
        data = await self._full_message(message_id)
        part = find_part(MimePart.from_api(data.get("payload")), part_id)
        if part is None:
            raise AttachmentPartNotFound(part_id)
        if part.body.data:
            return await self._write(output_path, b64url_decode(part.body.data, strict=True))
        if part.body.attachment_id:
            return await self.download_attachment(message_id, part.body.attachment_id, output_path)
        raise AttachmentDataUnavailable(part_id)

    # -- filters --

    def _filters(self):
        return self._gmail.users().settings().filters()

    async def list_filters(self) -> List[GmailFilter]:
        data = await self._execute(self._filters().list(userId=self.user_id), "filters list")
        return [filter_from_api(f) for f in data.get("filter", [])]

    async def create_filter(self, criteria: FilterCriteria, action: FilterAction) -> GmailFilter:
        data = await self._execute(
            self._filters().create(userId=self.user_id, body=filter_to_api(criteria, action)),
            "filter create",
        )
        created = filter_from_api(data)
        logger.info("Created filter %s", created.id)
        return created

    async def delete_filter(self, filter_id: str) -> None:
        await self._execute(self._filters().delete(userId=self.user_id, id=filter_id), "filter delete")
        logger.info("Deleted filter %s", filter_id)


__all__ = [
    "GmailClient",
    "build_drive_service",
    "build_gmail_service",
    "filter_from_api",
    "filter_to_api",
    "load_credentials",
]
