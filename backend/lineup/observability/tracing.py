"""Opik traces tagged with the current request context."""
from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any, Dict, Iterator, Optional

from lineup.core.context import get_actor, get_request_id
from lineup.observability.client import get_opik_client

if TYPE_CHECKING:  # pragma: no cover - typing helper
    from opik.api_objects.trace.trace_client import Trace

logger = logging.getLogger(__name__)


def _trace_metadata(
    metadata: Optional[Dict[str, Any]],
    user_id: Optional[str],
    request_id: Optional[str],
) -> Dict[str, Any]:
    merged = dict(metadata or {})
    actor = user_id or get_actor()
    request = request_id or get_request_id()
    if actor:
        merged.setdefault("user_id", str(actor))
    if request:
        merged.setdefault("request_id", request)
    return merged


def _close(opik_trace: "Trace", name: str, error: Optional[BaseException]) -> None:
    try:
        if error is not None:
            opik_trace.update(error_info={"exception_type": type(error).__name__, "message": str(error)})
        opik_trace.end()
    except Exception:  # pragma: no cover - third-party failure
        logger.debug("Failed to close Opik trace %s cleanly", name, exc_info=True)


@contextmanager
def trace(
    name: str,
    metadata: Optional[Dict[str, Any]] = None,
    user_id: Optional[str] = None,
    request_id: Optional[str] = None,
) -> Iterator[Optional["Trace"]]:
    """Trace the enclosed block in Opik.

    ``user_id`` and ``request_id`` default to the actor and id of the request
    being served, so services called from a route are tagged without passing
    them along. Yields ``None`` when Opik is disabled; errors raised inside the
    block are attached to the trace and re-raised.
    """
    client = get_opik_client()
    if not client:
        yield None
        return

    opik_trace: Optional["Trace"] = None
    try:
        opik_trace = client.trace(name=name, metadata=_trace_metadata(metadata, user_id, request_id) or None)
    except Exception as exc:  # pragma: no cover - third-party failure
        logger.debug("Unable to start Opik trace %s: %s", name, exc)

    try:
        yield opik_trace
    except Exception as exc:
        if opik_trace is not None:
            _close(opik_trace, name, exc)
        raise
    else:
        if opik_trace is not None:
            _close(opik_trace, name, None)
