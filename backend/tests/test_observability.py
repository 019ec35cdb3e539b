"""Tests ensuring observability wiring is safe by default."""
from __future__ import annotations

import importlib


def test_app_import_succeeds_when_opik_is_disabled(monkeypatch) -> None:
    monkeypatch.setenv("OPIK_ENABLED", "false")
    monkeypatch.delenv("OPIK_API_KEY", raising=False)

    import lineup.core.config as core_config
    import lineup.observability.client as client_module
    import lineup.main as main_module

    importlib.reload(core_config)
    importlib.reload(client_module)
    reloaded_app = importlib.reload(main_module)

    assert hasattr(reloaded_app, "app")
    assert client_module.get_opik_client() is None


def test_enabled_without_key_or_host_stays_off(monkeypatch) -> None:
    import lineup.observability.client as client_module

    monkeypatch.setattr(client_module, "_client", None)
    monkeypatch.setattr(client_module, "_init_attempted", False)
    monkeypatch.setattr(client_module.settings, "opik_enabled", True)
    monkeypatch.setattr(client_module.settings, "opik_api_key", None)
    monkeypatch.setattr(client_module.settings, "opik_host", None)

    assert client_module.init_opik() is None
    assert client_module._init_attempted is True
    client_module.flush_opik()


def test_self_hosted_options_carry_host_but_no_workspace(monkeypatch) -> None:
    import lineup.observability.client as client_module

    monkeypatch.setattr(client_module.settings, "opik_api_key", None)
    monkeypatch.setattr(client_module.settings, "opik_workspace", None)
    monkeypatch.setattr(client_module.settings, "opik_host", "http://opik.internal:5173/api")

    options = client_module._client_options()

    assert options["host"] == "http://opik.internal:5173/api"
    assert options["project_name"] == client_module.settings.opik_project
    assert "workspace" not in options
