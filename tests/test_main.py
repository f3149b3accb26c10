from __future__ import annotations

import corrector.__main__ as entrypoint


def test_entrypoint_serves_the_app_with_uvicorn(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(entrypoint, "load_env_file", lambda: None)
    monkeypatch.setattr(entrypoint.uvicorn, "run", lambda app, **options: calls.append((app, options)))
    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("PORT", "9000")

    entrypoint.main()

    assert calls == [("corrector.main:app", {"host": "127.0.0.1", "port": 9000, "log_config": None})]


def test_entrypoint_falls_back_to_default_port(monkeypatch) -> None:
    calls = []
    monkeypatch.setattr(entrypoint, "load_env_file", lambda: None)
    monkeypatch.setattr(entrypoint.uvicorn, "run", lambda app, **options: calls.append(options["port"]))
    monkeypatch.setenv("PORT", "not a port")

    entrypoint.main()

    assert calls == [8000]
