"""Compute host protocol and shared request/response bookkeeping.

A compute host runs the optimizer and validator in an isolated context and
talks to it purely by message passing. Every public operation returns a
``concurrent.futures.Future`` that eventually settles with a typed result or
a ``ComputeError``.

Correlation flow:

1. ``send`` allocates a process-unique id and registers a pending entry
   (future, deadline timer, result decoder) *before* posting the message.
2. The isolated context answers with an envelope carrying the same id.
3. ``_handle_response`` pops the entry and resolves or rejects the future.
4. If the deadline fires first, the entry is dropped and the future fails
   with ``ComputeTimeoutError``; a late answer is logged and ignored.

Subclasses only implement ``_post`` (deliver one request envelope) and,
when they own resources, ``_shutdown``.
"""

from __future__ import annotations

import itertools
import logging
import threading
import time
from concurrent.futures import Future, InvalidStateError
from dataclasses import dataclass
from typing import Any, Callable, Dict, Mapping, Optional, Protocol, runtime_checkable

from formation.compute.protocol import (
    OPTIMIZE_FORMATION,
    OPTIMIZE_FORMATION_OPTIMAL,
    VALIDATE_POSITION,
    ComputeRequest,
    ComputeResponse,
)
from formation.config.compute import DEFAULT_REQUEST_TIMEOUT_SECONDS
from formation.exceptions import (
    ComputeError,
    ComputeRequestError,
    ComputeTerminatedError,
    ComputeTimeoutError,
    ConfigurationError,
    FormationError,
    HostFatalError,
    PayloadError,
)
from formation.models import (
    AssignmentResult,
    FormationOptimizationRequest,
    PositionValidationRequest,
    PositionValidationResult,
)

logger = logging.getLogger(__name__)

# Shared by every host in the process so ids never repeat across hosts.
_message_ids = itertools.count(1)
_message_ids_lock = threading.Lock()


def next_message_id() -> str:
    with _message_ids_lock:
        return f"msg_{next(_message_ids)}"


@runtime_checkable
class ComputeHost(Protocol):
    """Asynchronous front door to the formation computations."""

    @property
    def pending_count(self) -> int:
        """Requests sent but not yet settled."""
        ...

    @property
    def healthy(self) -> bool:
        """False once the host is terminated or its isolated context has died."""
        ...

    def validate_position(self, request: PositionValidationRequest) -> Future:
        """Validate one agent's proposed position (settles to PositionValidationResult)."""
        ...

    def optimize_formation(self, request: FormationOptimizationRequest) -> Future:
        """Greedy agent-to-slot assignment (settles to AssignmentResult)."""
        ...

    def optimize_formation_optimal(self, request: FormationOptimizationRequest) -> Future:
        """Optimal agent-to-slot assignment (settles to AssignmentResult)."""
        ...

    def terminate(self) -> None:
        """Tear down the isolated context and reject everything pending."""
        ...


@dataclass
class _PendingRequest:
    future: Future
    timer: threading.Timer
    message_type: str
    decode: Callable[[Any], Any]
    sent_at: float


def _settle(future: Future, *, result: Any = None, error: Optional[BaseException] = None) -> None:
    """Resolve a future, tolerating callers that already cancelled it."""
    try:
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(result)
    except InvalidStateError:
        logger.debug("Future already settled or cancelled; dropping outcome")


class BaseComputeHost:
    """Correlation-id and pending-request bookkeeping shared by all hosts."""

    mode = "base"

    def __init__(self, timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS):
        if timeout_seconds <= 0:
            raise ConfigurationError(f"timeout_seconds must be positive, got {timeout_seconds}")
        self.timeout_seconds = timeout_seconds
        self._pending: Dict[str, _PendingRequest] = {}
        self._lock = threading.Lock()
        self._terminated = False

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._pending)

    @property
    def terminated(self) -> bool:
        return self._terminated

    @property
    def healthy(self) -> bool:
        """Whether new requests can still be served."""
        return not self._terminated

    def validate_position(self, request: PositionValidationRequest) -> Future:
        return self.send(VALIDATE_POSITION, request.to_dict(), PositionValidationResult.from_dict)

    def optimize_formation(self, request: FormationOptimizationRequest) -> Future:
        return self.send(OPTIMIZE_FORMATION, request.to_dict(), AssignmentResult.from_dict)

    def optimize_formation_optimal(self, request: FormationOptimizationRequest) -> Future:
        return self.send(OPTIMIZE_FORMATION_OPTIMAL, request.to_dict(), AssignmentResult.from_dict)

    def send(
        self,
        message_type: str,
        payload: Mapping[str, Any],
        decode: Optional[Callable[[Any], Any]] = None,
    ) -> Future:
        """Post a request envelope and return a future for its result.

        Args:
            message_type: Envelope ``type``
            payload: Envelope ``payload`` (plain data)
            decode: Converts the SUCCESS ``result`` dict into the value the
                future resolves to (identity when omitted)
        """
        future: Future = Future()
        request_id = next_message_id()
        timer = threading.Timer(self.timeout_seconds, self._expire, args=(request_id,))
        timer.daemon = True

        # Checked under the lock so terminate() cannot slip in before the insert
        with self._lock:
            if self._terminated:
                future.set_exception(ComputeTerminatedError("Compute host terminated"))
                return future
            self._pending[request_id] = _PendingRequest(
                future=future,
                timer=timer,
                message_type=message_type,
                decode=decode or (lambda result: result),
                sent_at=time.monotonic(),
            )
        timer.start()

        try:
            request = ComputeRequest(id=request_id, type=message_type, payload=dict(payload))
            self._post(request.to_dict())
        except ComputeError as e:
            self._reject(request_id, e)
        except (FormationError, OSError, TypeError, ValueError) as e:
            # Delivery failed: nothing will ever answer this id
            self._reject(request_id, ComputeError(f"Could not deliver request {request_id}: {e}"))

        return future

    def terminate(self) -> None:
        """Shut the host down; every pending request fails with ComputeTerminatedError."""
        with self._lock:
            if self._terminated:
                return
            self._terminated = True
        try:
            self._shutdown()
        finally:
            rejected = self._reject_all(lambda: ComputeTerminatedError("Compute host terminated"))
            logger.info("%s compute host terminated (%d pending rejected)", self.mode, rejected)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.terminate()

    # ------------------------------------------------------------------
    # Subclass hooks
    # ------------------------------------------------------------------

    def _post(self, message: Dict[str, Any]) -> None:
        """Deliver one request envelope to the isolated context."""
        raise NotImplementedError

    def _shutdown(self) -> None:
        """Release the isolated context's resources."""

    # ------------------------------------------------------------------
    # Settlement
    # ------------------------------------------------------------------

    def _pop(self, request_id: str) -> Optional[_PendingRequest]:
        with self._lock:
            entry = self._pending.pop(request_id, None)
        if entry is not None:
            entry.timer.cancel()
        return entry

    def _handle_response(self, message: Mapping[str, Any]) -> None:
        """Settle the future correlated with a response envelope."""
        try:
            response = ComputeResponse.from_dict(message)
        except PayloadError as e:
            logger.warning("Dropping malformed response envelope: %s", e)
            return

        entry = self._pop(response.id)
        if entry is None:
            logger.debug("Late or unknown response %s dropped", response.id)
            return

        if not response.ok:
            _settle(entry.future, error=ComputeRequestError(response.id, response.error or "Unknown error"))
            return

        try:
            value = entry.decode(response.result)
        except FormationError as e:
            _settle(entry.future, error=ComputeRequestError(response.id, f"Undecodable result: {e}"))
            return

        logger.debug(
            "Request %s (%s) settled in %.1f ms",
            response.id,
            entry.message_type,
            (time.monotonic() - entry.sent_at) * 1000,
        )
        _settle(entry.future, result=value)

    def _expire(self, request_id: str) -> None:
        entry = self._pop(request_id)
        if entry is None:
            return
        logger.warning(
            "Request %s (%s) timed out after %.1fs", request_id, entry.message_type, self.timeout_seconds
        )
        _settle(
            entry.future,
            error=ComputeTimeoutError(
                f"Request {request_id} timed out after {self.timeout_seconds:g}s"
            ),
        )

    def _reject(self, request_id: str, error: ComputeError) -> None:
        entry = self._pop(request_id)
        if entry is not None:
            _settle(entry.future, error=error)

    def _reject_all(self, make_error: Callable[[], ComputeError]) -> int:
        with self._lock:
            entries = list(self._pending.values())
            self._pending.clear()
        for entry in entries:
            entry.timer.cancel()
            _settle(entry.future, error=make_error())
        return len(entries)

    def _handle_fatal_error(self, error: BaseException) -> None:
        """The isolated context failed as a whole: reject every pending request."""
        logger.error("%s compute host fatal error: %s", self.mode, error)
        self._reject_all(lambda: HostFatalError(str(error)))
