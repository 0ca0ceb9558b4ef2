# SPDX-License-Identifier: AGPL-3.0-or-later
# Copyright (C) 2026 Sellsy SDK Authors

"""
HTTP transport and per-call futures.

The transport only moves bytes: it POSTs multipart form fields and hands back
the raw body, or raises TransportError. Envelope decoding is the client's job.
"""

import concurrent.futures
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

import requests
from loguru import logger

from .errors import TransportError


DEFAULT_TIMEOUT = 90
DEFAULT_MAX_WORKERS = 4


# -----------------------------------------------------------------------------
# Transport
# -----------------------------------------------------------------------------

class Transport:
    """
    Interface for the HTTP layer used by SellsyClient.

    post() blocks and returns the response body. post_async() returns a
    concurrent.futures.Future resolving to the body; cancelling that future
    must abort the request if it has not been sent yet.
    """

    def post(
        self,
        url: str,
        headers: Dict[str, str],
        fields: List[Tuple[str, str]],
        verify: bool,
    ) -> bytes:
        raise NotImplementedError

    def post_async(
        self,
        url: str,
        headers: Dict[str, str],
        fields: List[Tuple[str, str]],
        verify: bool,
    ) -> "concurrent.futures.Future[bytes]":
        raise NotImplementedError

    def close(self):
        pass


class RequestsTransport(Transport):
    """
    Transport backed by requests.

    Blocking posts run on the calling thread; asynchronous posts run on a
    private thread pool. Timeouts belong here, not in the client.
    """

    def __init__(
        self,
        timeout: Optional[float] = DEFAULT_TIMEOUT,
        max_workers: int = DEFAULT_MAX_WORKERS,
        session: Optional[requests.Session] = None,
    ):
        """
        Args:
            timeout: Per-request timeout in seconds (None waits forever)
            max_workers: Thread pool size for post_async()
            session: Optional pre-configured requests session
        """
        self.timeout = timeout
        self.session = session or requests.Session()
        self._executor = concurrent.futures.ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="sellsy-transport",
        )

    def post(
        self,
        url: str,
        headers: Dict[str, str],
        fields: List[Tuple[str, str]],
        verify: bool,
    ) -> bytes:
        # (None, value) parts are sent as plain form fields, without filename
        files = [(name, (None, value)) for name, value in fields]
        try:
            resp = self.session.post(
                url,
                headers=headers,
                files=files,
                verify=verify,
                timeout=self.timeout,
            )
            resp.raise_for_status()
        except requests.HTTPError as e:
            resp = e.response
            raise TransportError(
                f"HTTP {resp.status_code} from {url}",
                status_code=resp.status_code,
                body=resp.text,
            ) from e
        except requests.RequestException as e:
            raise TransportError(f"Failed to connect: {e}") from e

        return resp.content

    def post_async(
        self,
        url: str,
        headers: Dict[str, str],
        fields: List[Tuple[str, str]],
        verify: bool,
    ) -> "concurrent.futures.Future[bytes]":
        try:
            return self._executor.submit(self.post, url, headers, fields, verify)
        except RuntimeError as e:
            # executor already shut down
            raise TransportError(f"Transport closed: {e}") from e

    def close(self):
        """Stop the thread pool and release pooled connections."""
        self._executor.shutdown(wait=False, cancel_futures=True)
        self.session.close()


# -----------------------------------------------------------------------------
# Call futures
# -----------------------------------------------------------------------------

class CallState(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class CallFuture(concurrent.futures.Future):
    """
    Future for one asynchronous API call.

    Never enters the RUNNING state, so cancel() succeeds until the call
    settles. Cancelling forwards to the underlying transport future, and a
    transport result arriving after cancellation is dropped by _settle().
    """

    def __init__(self, call_id: str):
        super().__init__()
        self.call_id = call_id
        self._transport_future: Optional[concurrent.futures.Future] = None

    @property
    def state(self) -> CallState:
        if self.cancelled():
            return CallState.CANCELLED
        if not self.done():
            return CallState.PENDING
        if self.exception() is not None:
            return CallState.REJECTED
        return CallState.RESOLVED

    def cancel(self) -> bool:
        cancelled = super().cancel()
        if cancelled and self._transport_future is not None:
            self._transport_future.cancel()
        return cancelled

    def _attach(self, transport_future: concurrent.futures.Future):
        self._transport_future = transport_future
        if self.cancelled():
            transport_future.cancel()

    def _settle(self, result: Any = None, error: Optional[BaseException] = None) -> bool:
        """
        Resolve or reject the future.

        Returns:
            False if the future was already cancelled or settled
        """
        try:
            if error is not None:
                self.set_exception(error)
            else:
                self.set_result(result)
        except concurrent.futures.InvalidStateError:
            logger.debug(f"Dropping late result for call {self.call_id} ({self.state.value})")
            return False
        return True
