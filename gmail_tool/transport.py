"""Run googleapiclient requests in worker threads, one HTTP transport per call."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable

import httplib2
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.errors import HttpError

logger = logging.getLogger(__name__)

HttpFactory = Callable[[], httplib2.Http]


def http_factory_for(service) -> HttpFactory:
    """
    Return a factory of fresh transports for `service`.

    httplib2.Http is not thread-safe, so requests that run concurrently must
    not share the service's own Http. Credentials of an authorized service
    carry over to every new transport.
    """
    base = getattr(service, "_http", None)
    if isinstance(base, AuthorizedHttp):
        credentials = base.credentials
        timeout = getattr(base.http, "timeout", None)
        return lambda: AuthorizedHttp(credentials, http=httplib2.Http(timeout=timeout))
    timeout = base.timeout if isinstance(base, httplib2.Http) else None
    return lambda: httplib2.Http(timeout=timeout)


async def execute(request, action: str, http_factory: HttpFactory) -> Any:
    """
    Execute `request` in a worker thread on its own transport.
    Remote errors are logged with `action` and re-raised.
    """
    try:
        return await asyncio.to_thread(request.execute, http=http_factory())
    except HttpError as exc:
        logger.error("Google API %s failed: %s", action, exc)
        raise


__all__ = ["HttpFactory", "execute", "http_factory_for"]
