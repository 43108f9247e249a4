"""Execution host configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from formation.exceptions import ConfigurationError

# Per-request deadline before the caller's future is rejected.
DEFAULT_REQUEST_TIMEOUT_SECONDS = 5.0

COMPUTE_MODE_AUTO = "auto"
COMPUTE_MODE_PROCESS = "process"
COMPUTE_MODE_INLINE = "inline"
COMPUTE_MODES = (COMPUTE_MODE_AUTO, COMPUTE_MODE_PROCESS, COMPUTE_MODE_INLINE)

# "spawn" gives the worker a fresh interpreter with nothing inherited.
DEFAULT_START_METHOD = "spawn"

# Listener poll interval; bounds how quickly a dead worker is noticed.
LISTENER_POLL_SECONDS = 0.2
SHUTDOWN_JOIN_SECONDS = 2.0


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc


@dataclass
class ComputeConfig:
    """Compute host settings, defaulting from the environment."""

    mode: str = field(
        default_factory=lambda: os.getenv("FORMATION_COMPUTE_MODE", COMPUTE_MODE_AUTO)
    )
    timeout_seconds: float = field(
        default_factory=lambda: _env_float(
            "FORMATION_COMPUTE_TIMEOUT_SECONDS", DEFAULT_REQUEST_TIMEOUT_SECONDS
        )
    )
    start_method: str = field(
        default_factory=lambda: os.getenv("FORMATION_COMPUTE_START_METHOD", DEFAULT_START_METHOD)
    )

    def __post_init__(self) -> None:
        self.mode = self.mode.strip().lower()
        if self.mode not in COMPUTE_MODES:
            raise ConfigurationError(
                f"Invalid compute mode {self.mode!r} (expected one of {', '.join(COMPUTE_MODES)})"
            )
        if self.timeout_seconds <= 0:
            raise ConfigurationError(f"timeout_seconds must be positive, got {self.timeout_seconds}")
