"""Compute host selection based on runtime capability."""

from __future__ import annotations

import logging
from typing import Optional

from formation.compute.host import BaseComputeHost
from formation.compute.inline import InlineComputeHost
from formation.config.compute import (
    COMPUTE_MODE_INLINE,
    COMPUTE_MODE_PROCESS,
    ComputeConfig,
)

logger = logging.getLogger(__name__)


def process_isolation_available(start_method: str) -> bool:
    """Whether this interpreter can run a worker process with queues.

    Platforms without a working ``sem_open`` (some sandboxes, WASM builds)
    fail to import ``multiprocessing.synchronize``; unknown start methods
    raise ``ValueError``.
    """
    try:
        import multiprocessing.synchronize  # noqa: F401

        multiprocessing.get_context(start_method)
    except (ImportError, ValueError, OSError) as e:
        logger.info("Process isolation unavailable (%s): %s", start_method, e)
        return False
    return True


def create_compute_host(
    mode: Optional[str] = None,
    timeout_seconds: Optional[float] = None,
    config: Optional[ComputeConfig] = None,
) -> BaseComputeHost:
    """Build the compute host for ``mode`` (auto, process or inline).

    Explicit arguments override ``config``, which defaults from the
    environment. In auto mode a worker that cannot be started falls back to
    the inline host; an explicit ``process`` mode lets the failure propagate.
    """
    overrides = {}
    if mode is not None:
        overrides["mode"] = mode
    if timeout_seconds is not None:
        overrides["timeout_seconds"] = timeout_seconds
    if config is None:
        config = ComputeConfig(**overrides)
    elif overrides:
        config = ComputeConfig(
            mode=overrides.get("mode", config.mode),
            timeout_seconds=overrides.get("timeout_seconds", config.timeout_seconds),
            start_method=config.start_method,
        )

    if config.mode == COMPUTE_MODE_INLINE:
        return InlineComputeHost(timeout_seconds=config.timeout_seconds)

    # Imported lazily so inline-only deployments never load multiprocessing
    from formation.compute.process import ProcessComputeHost

    if config.mode == COMPUTE_MODE_PROCESS:
        return ProcessComputeHost(
            timeout_seconds=config.timeout_seconds, start_method=config.start_method
        )

    if process_isolation_available(config.start_method):
        try:
            return ProcessComputeHost(
                timeout_seconds=config.timeout_seconds, start_method=config.start_method
            )
        except (OSError, RuntimeError) as e:
            logger.warning("Could not start compute worker, falling back to inline: %s", e)

    return InlineComputeHost(timeout_seconds=config.timeout_seconds)
