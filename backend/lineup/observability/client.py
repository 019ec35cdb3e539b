"""Process-wide Opik client."""
from __future__ import annotations

import logging
from threading import Lock
from typing import Any, Dict, Optional

from opik import Opik

from lineup.core.config import settings

logger = logging.getLogger(__name__)

_client: Optional[Opik] = None
_client_lock = Lock()
_init_attempted = False


def _client_options() -> Dict[str, Any]:
    options: Dict[str, Any] = {"project_name": settings.opik_project, "api_key": settings.opik_api_key}
    # Self-hosted deployments set a host and usually no workspace.
    if settings.opik_workspace:
        options["workspace"] = settings.opik_workspace
    if settings.opik_host:
        options["host"] = settings.opik_host
    return options


def init_opik() -> Optional[Opik]:
    """Build the client on first use; later calls return the cached result."""
    global _client, _init_attempted

    with _client_lock:
        if _init_attempted:
            return _client
        _init_attempted = True

        if not settings.opik_enabled:
            logger.debug("Opik tracing disabled")
            return None
        if not settings.opik_api_key and not settings.opik_host:
            logger.warning("OPIK_ENABLED is set without OPIK_API_KEY or OPIK_HOST; tracing stays off.")
            return None

        try:
            _client = Opik(**_client_options())
        except Exception as exc:  # pragma: no cover - third-party init
            logger.warning("Failed to initialize Opik, tracing will be disabled: %s", exc)
            return None

    logger.info("Opik enabled (project=%s).", settings.opik_project)
    return _client


def get_opik_client() -> Optional[Opik]:
    if _client is not None:
        return _client
    return init_opik()


def flush_opik() -> None:
    """Send buffered traces; called on API and worker shutdown."""
    if _client is None:
        return
    try:
        _client.flush()
    except Exception as exc:  # pragma: no cover - third-party failure
        logger.warning("Failed to flush Opik traces: %s", exc)
