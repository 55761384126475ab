"""Correlation of outbound requests with inbound responses."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable

from rpclink.protocol.errors import RequestTimeout
from rpclink.protocol.messages import JSONRPCError, JSONRPCRequest, MessageId

logger = logging.getLogger(__name__)


@dataclass
class MatchContext:
    """Arguments handed to a filter for one pending request."""

    message: Any
    """The raw inbound message being matched."""

    current: JSONRPCRequest
    """The pending request it is compared against."""

    resolve: Callable[[Any], bool]
    reject: Callable[[BaseException], bool]

    params: dict[str, Any]
    """Per-request options given to register()."""

    context: Any = None


# A filter decides whether an inbound message answers `current` and, if so,
# completes it through resolve() or reject().
MessageFilter = Callable[[MatchContext], None]


@dataclass
class PendingCorrelation:
    """Bookkeeping for one request awaiting its response."""

    message: JSONRPCRequest
    deadline: float
    future: asyncio.Future[Any]
    filter: MessageFilter
    timeout_reject_with: JSONRPCError
    params: dict[str, Any] = field(default_factory=dict)
    context: Any = None


class MessageTracker:
    """
    Tracks pending requests and fails them once their deadline passes.

    Entries are completed exactly once: by a filter calling resolve/reject
    or by the timeout sweep. Whichever runs first removes the entry, so
    the other becomes a no-op.

    The sweep task runs every `check_interval` seconds while at least one
    request is pending and is restarted by the next register().
    """

    def __init__(self, timeout: float = 5.0, check_interval: float = 1.0):
        """
        Initialize message tracker.

        Args:
            timeout: Seconds a request may wait for its response.
            check_interval: Seconds between deadline sweeps.
        """
        if timeout <= 0:
            raise ValueError("timeout must be positive")
        if check_interval <= 0:
            raise ValueError("check_interval must be positive")

        self.timeout = timeout
        self.check_interval = check_interval
        self._pending: dict[MessageId, PendingCorrelation] = {}
        self._sweep_task: asyncio.Task[None] | None = None

    @property
    def pending_count(self) -> int:
        """Number of requests awaiting a response."""
        return len(self._pending)

    @property
    def is_running(self) -> bool:
        """Whether the deadline sweep is active."""
        return self._sweep_task is not None and not self._sweep_task.done()

    def __contains__(self, request_id: object) -> bool:
        return request_id in self._pending

    def register(
        self,
        message: JSONRPCRequest,
        filter: MessageFilter,
        timeout_reject_with: JSONRPCError,
        params: dict[str, Any] | None = None,
        context: Any = None,
    ) -> asyncio.Future[Any]:
        """
        Start tracking a request.

        Args:
            message: The outbound request; its id is the correlation key.
            filter: Called for each inbound message while the request is pending.
            timeout_reject_with: Error the future fails with on timeout.
            params: Options passed back to the filter.
            context: Arbitrary value passed back to the filter.

        Returns:
            Future completed by the filter or failed by the sweep.
        """
        loop = asyncio.get_running_loop()
        future: asyncio.Future[Any] = loop.create_future()
        entry = PendingCorrelation(
            message=message,
            deadline=loop.time() + self.timeout,
            future=future,
            filter=filter,
            timeout_reject_with=timeout_reject_with,
            params=params or {},
            context=context,
        )
        self._pending[message.id] = entry
        future.add_done_callback(lambda f: self._forget_cancelled(entry, f))

        logger.debug(f"Tracking request {message.id} (timeout {self.timeout}s)")
        self.start()
        return future

    def match_message(self, message: Any) -> bool:
        """
        Offer an inbound message to every pending request.

        Args:
            message: The raw inbound message.

        Returns:
            True if the message completed at least one pending request.
        """
        matched = False

        for entry in list(self._pending.values()):
            if self._pending.get(entry.message.id) is not entry:
                continue

            entry.filter(
                MatchContext(
                    message=message,
                    current=entry.message,
                    resolve=lambda value, e=entry: self._complete(e, result=value),
                    reject=lambda error, e=entry: self._complete(e, error=error),
                    params=entry.params,
                    context=entry.context,
                )
            )

            if self._pending.get(entry.message.id) is not entry:
                matched = True

        return matched

    def check_timeouts(self) -> int:
        """
        Fail every request whose deadline has passed.

        Returns:
            Number of requests that timed out.
        """
        now = asyncio.get_running_loop().time()
        expired = [e for e in self._pending.values() if e.deadline <= now]

        count = 0
        for entry in expired:
            error = RequestTimeout.for_request(entry.message.id, entry.timeout_reject_with)
            if self._complete(entry, error=error):
                logger.debug(f"Request {entry.message.id} timed out")
                count += 1
        return count

    def discard(self, request_id: MessageId) -> bool:
        """
        Stop tracking a request without completing its future.

        Returns:
            True if the request was pending.
        """
        return self._pending.pop(request_id, None) is not None

    def start(self) -> None:
        """Start the deadline sweep if it is not already running."""
        if self.is_running:
            return
        self._sweep_task = asyncio.get_running_loop().create_task(
            self._sweep_loop(),
            name="rpclink-timeout-sweep",
        )

    async def stop(self, cancel_pending: bool = False) -> None:
        """
        Stop the deadline sweep.

        Args:
            cancel_pending: Also cancel the futures of pending requests.
        """
        if self._sweep_task and not self._sweep_task.done():
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
        self._sweep_task = None

        if cancel_pending:
            pending = list(self._pending.values())
            self._pending.clear()
            for entry in pending:
                if not entry.future.done():
                    entry.future.cancel()

    async def _sweep_loop(self) -> None:
        """Background task that expires overdue requests."""
        while self._pending:
            await asyncio.sleep(self.check_interval)
            self.check_timeouts()

    def _complete(
        self,
        entry: PendingCorrelation,
        result: Any = None,
        error: BaseException | None = None,
    ) -> bool:
        """Remove the entry and settle its future, unless already removed."""
        if self._pending.get(entry.message.id) is not entry:
            return False
        del self._pending[entry.message.id]

        if entry.future.done():
            return False

        if error is not None:
            entry.future.set_exception(error)
        else:
            entry.future.set_result(result)
        return True

    def _forget_cancelled(self, entry: PendingCorrelation, future: asyncio.Future[Any]) -> None:
        if future.cancelled() and self._pending.get(entry.message.id) is entry:
            del self._pending[entry.message.id]
