"""Build list summaries by fetching message metadata in bounded batches."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, Iterator, List, Optional, Sequence

from .decoder import decode_header_str
from .types import MessageListSummary, MessageRef

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 5

FetchDetail = Callable[[str], Awaitable[Optional[Dict[str, Any]]]]


def batched(items: Sequence[Any], size: int) -> Iterator[Sequence[Any]]:
    """Yield consecutive slices of at most `size` items."""
    if size < 1:
        raise ValueError(f"batch size must be at least 1, got {size}")
    for start in range(0, len(items), size):
        yield items[start:start + size]


def _headers(detail: Optional[Dict[str, Any]]) -> Optional[Dict[str, str]]:
    if not isinstance(detail, dict):
        return None
    raw = (detail.get("payload") or {}).get("headers")
    if raw is None:
        return None
    return {(h.get("name", "") or "").lower(): h.get("value", "") or "" for h in raw}


def summary_from_detail(ref: MessageRef, detail: Optional[Dict[str, Any]]) -> MessageListSummary:
    """
    Join a list reference with its metadata response. Anything the detail
    lacks falls back to the reference, then to "".
    """
    headers = _headers(detail)
    if headers is None:
        return MessageListSummary(
            id=ref.id, thread_id=ref.thread_id, from_="", subject="", date="", snippet=ref.snippet,
        )
    return MessageListSummary(
        id=detail.get("id") or ref.id,
        thread_id=detail.get("threadId") or ref.thread_id,
        from_=decode_header_str(headers.get("from")),
        subject=decode_header_str(headers.get("subject")),
        date=decode_header_str(headers.get("date")),
        snippet=detail.get("snippet") or ref.snippet,
    )


async def summarize(
    refs: Sequence[MessageRef],
    fetch_detail: FetchDetail,
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
) -> List[MessageListSummary]:
    """
    Fetch details for `refs` in groups of `batch_size`.

    Fetches inside a group run concurrently; the next group starts only after
    the whole previous group has finished. Output order equals `refs` order.
    A fetch that raises degrades to the reference-only summary.
    """
    summaries: List[MessageListSummary] = []
    for index, batch in enumerate(batched(list(refs), batch_size)):
        logger.debug("Fetching summary batch %d (%d messages)", index, len(batch))
        details = await asyncio.gather(
            *(fetch_detail(ref.id) for ref in batch), return_exceptions=True
        )
        for ref, detail in zip(batch, details):
            if isinstance(detail, BaseException):
                if not isinstance(detail, Exception):
                    raise detail
                logger.warning("Failed to fetch metadata for message %s: %s", ref.id, detail)
                detail = None
            summaries.append(summary_from_detail(ref, detail))
    return summaries


__all__ = ["DEFAULT_BATCH_SIZE", "batched", "summarize", "summary_from_detail"]
