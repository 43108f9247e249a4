"""Synchronous in-process compute host.

Used when process isolation is unavailable. The message protocol is honoured
exactly: envelopes are serialized and decoded on both legs so no object is
shared with the caller, but the work runs in the calling thread and the
returned future is already settled.
"""

import logging
from typing import Any, Dict

from formation.compute.host import BaseComputeHost
from formation.compute.protocol import decode_message, encode_message, handle_request
from formation.config.compute import DEFAULT_REQUEST_TIMEOUT_SECONDS

logger = logging.getLogger(__name__)


class InlineComputeHost(BaseComputeHost):
    """Executes requests synchronously in the caller's thread."""

    mode = "inline"

    def __init__(self, timeout_seconds: float = DEFAULT_REQUEST_TIMEOUT_SECONDS):
        super().__init__(timeout_seconds)
        logger.info("Inline compute host ready (no process isolation)")

    def _post(self, message: Dict[str, Any]) -> None:
        request = decode_message(encode_message(message))
        response = handle_request(request)
        self._handle_response(decode_message(encode_message(response)))
