"""Process-isolated compute host.

The optimizer and validator run in a dedicated worker process. The caller
and the worker share no memory: envelopes travel as orjson bytes over two
``multiprocessing`` queues. A daemon listener thread in the caller reads the
response queue and settles the correlated futures; it also notices when the
worker dies and reports that as a fatal host error.
"""

from __future__ import annotations

import logging
import multiprocessing
import queue
import threading
from typing import Any, Dict, Optional

from formation.compute.host import BaseComputeHost
from formation.compute.protocol import decode_message, encode_message, handle_request
from formation.config.compute import (
    DEFAULT_REQUEST_TIMEOUT_SECONDS,
    DEFAULT_START_METHOD,
    LISTENER_POLL_SECONDS,
    SHUTDOWN_JOIN_SECONDS,
)
from formation.exceptions import HostFatalError, PayloadError

logger = logging.getLogger(__name__)


def _worker_main(requests, responses) -> None:
    """Worker process loop: one response per decodable request, until ``None``."""
    while True:
        try:
            data = requests.get()
        except (EOFError, OSError, KeyboardInterrupt):
            break
        if data is None:
            break

        try:
            message = decode_message(data)
        except PayloadError as e:
            # No id to correlate; the caller's timeout will fire
            logger.error("Compute worker received an undecodable request: %s", e)
            continue

        responses.put(encode_message(handle_request(message)))


class ProcessComputeHost(BaseComputeHost):
    """Runs requests in a separate worker process."""

    mode = "process"

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS,
        start_method: Optional[str] = None,
    ):
        super().__init__(timeout_seconds)
        self.start_method = start_method or DEFAULT_START_METHOD

        ctx = multiprocessing.get_context(self.start_method)
        self._requests = ctx.Queue()
        self._responses = ctx.Queue()
        self._process = ctx.Process(
            target=_worker_main,
            args=(self._requests, self._responses),
            name="formation-compute-worker",
            daemon=True,
        )
        self._stopping = threading.Event()
        self._worker_failed = False

        self._process.start()
        self._listener = threading.Thread(
            target=self._listen, name="formation-compute-listener", daemon=True
        )
        self._listener.start()

        logger.info(
            "Process compute host started (pid=%s, start_method=%s)",
            self._process.pid,
            self.start_method,
        )

    @property
    def worker_alive(self) -> bool:
        return self._process.is_alive()

    @property
    def worker_failed(self) -> bool:
        """The worker died or its channel broke; this host cannot recover."""
        return self._worker_failed

    @property
    def healthy(self) -> bool:
        return not self._terminated and not self._worker_failed

    def _post(self, message: Dict[str, Any]) -> None:
        if self._worker_failed:
            raise HostFatalError("Compute worker is not running")
        self._requests.put(encode_message(message))

    def _listen(self) -> None:
        while not self._stopping.is_set():
            try:
                data = self._responses.get(timeout=LISTENER_POLL_SECONDS)
            except queue.Empty:
                if not self._process.is_alive() and not self._stopping.is_set():
                    self._worker_failed = True
                    self._handle_fatal_error(
                        HostFatalError(
                            f"Compute worker exited unexpectedly (exitcode={self._process.exitcode})"
                        )
                    )
                    return
                continue
            except (EOFError, OSError) as e:
                if not self._stopping.is_set():
                    self._worker_failed = True
                    self._handle_fatal_error(HostFatalError(f"Response channel failed: {e}"))
                return

            try:
                message = decode_message(data)
            except PayloadError as e:
                self._handle_fatal_error(HostFatalError(f"Undecodable response from worker: {e}"))
                continue

            self._handle_response(message)

    def _shutdown(self) -> None:
        self._stopping.set()

        try:
            self._requests.put(None)
        except (ValueError, OSError):
            pass  # queue already closed

        self._process.join(timeout=SHUTDOWN_JOIN_SECONDS)
        if self._process.is_alive():
            logger.warning("Compute worker did not stop in time; terminating pid=%s", self._process.pid)
            self._process.terminate()
            self._process.join(timeout=SHUTDOWN_JOIN_SECONDS)

        if self._listener is not threading.current_thread():
            self._listener.join(timeout=SHUTDOWN_JOIN_SECONDS)

        for channel in (self._requests, self._responses):
            channel.close()
            channel.cancel_join_thread()
