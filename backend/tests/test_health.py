import logging

from fastapi.testclient import TestClient

from lineup.core.context import actor_ctx_var, request_id_ctx_var
from lineup.core.logging import RequestContextFilter


def _get_client() -> TestClient:
    from lineup.main import app

    return TestClient(app)


def test_health_endpoint_returns_ok() -> None:
    client = _get_client()
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_request_id_generated_and_returned() -> None:
    client = _get_client()
    response = client.get("/health")

    assert response.headers.get("X-Request-Id")


def test_request_id_echoed_from_header() -> None:
    client = _get_client()
    req_id = "lineup-request-7"
    response = client.get("/health", headers={"X-Request-Id": req_id})

    assert response.headers.get("X-Request-Id") == req_id


class _CapturingHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__(level=logging.DEBUG)
        self.addFilter(RequestContextFilter())
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


def test_request_log_carries_request_id_and_anonymous_actor() -> None:
    client = _get_client()
    handler = _CapturingHandler()
    middleware_logger = logging.getLogger("lineup.core.middleware")
    previous_level = middleware_logger.level
    middleware_logger.addHandler(handler)
    middleware_logger.setLevel(logging.DEBUG)
    try:
        client.get("/health", headers={"X-Request-Id": "lineup-request-8"})
    finally:
        middleware_logger.removeHandler(handler)
        middleware_logger.setLevel(previous_level)

    assert handler.records
    assert handler.records[-1].request_id == "lineup-request-8"
    assert handler.records[-1].actor == "-"


def test_context_filter_stamps_the_authenticated_actor() -> None:
    record = logging.LogRecord("lineup", logging.INFO, __file__, 1, "listing tasks", None, None)
    request_token = request_id_ctx_var.set("req-3")
    actor_token = actor_ctx_var.set("admin")
    try:
        RequestContextFilter().filter(record)
    finally:
        actor_ctx_var.reset(actor_token)
        request_id_ctx_var.reset(request_token)

    assert (record.request_id, record.actor) == ("req-3", "admin")
    assert actor_ctx_var.get() is None
