"""Formation engine exception hierarchy.

Centralised base classes so callers can catch engine failures narrowly
instead of relying on bare ``except Exception`` blocks.
"""


class FormationError(Exception):
    """Root of all formation-engine exceptions."""


class PayloadError(FormationError):
    """A request payload or domain dictionary is malformed."""


class ConfigurationError(FormationError):
    """Invalid or missing configuration."""


class ComputeError(FormationError):
    """Errors raised by the compute host (message passing, lifecycle)."""


class UnknownMessageTypeError(ComputeError):
    """A request envelope named a message type no handler serves."""

    def __init__(self, message_type: object):
        super().__init__(f"Unknown message type: {message_type}")
        self.message_type = message_type


class ComputeRequestError(ComputeError):
    """The isolated context answered a single request with an ERROR response."""

    def __init__(self, request_id: str, error: str):
        super().__init__(error)
        self.request_id = request_id


class ComputeTimeoutError(ComputeError):
    """No response arrived before the request deadline."""


class HostFatalError(ComputeError):
    """The isolated context failed independently of any single request."""


class ComputeTerminatedError(ComputeError):
    """The compute host was shut down while (or before) the request was pending."""
