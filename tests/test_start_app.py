import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

import start_app  # noqa: E402
from start_app import main  # noqa: E402


def _fake_uvicorn(called):
    def fake_uvicorn_run(*args, **kwargs):
        called["uvicorn"] = args[0]

    return type("U", (), {"run": staticmethod(fake_uvicorn_run)})


def test_failed_migration_stops_startup(monkeypatch, capsys):
    async def broken(tenant_id):
        raise RuntimeError("connection refused")

    called = {}
    monkeypatch.setattr(start_app, "run_tenant_migrations", broken)
    monkeypatch.setattr(start_app, "uvicorn", _fake_uvicorn(called))

    with pytest.raises(SystemExit) as excinfo:
        main(["--tenant", "outlet-1"])

    captured = capsys.readouterr()
    assert "outlet-1" in captured.err
    assert "connection refused" in captured.err
    assert excinfo.value.code == 1
    assert called == {}


def test_each_tenant_is_migrated(monkeypatch):
    migrated = []

    async def fake_migrate(tenant_id):
        migrated.append(tenant_id)

    called = {}
    monkeypatch.setattr(start_app, "run_tenant_migrations", fake_migrate)
    monkeypatch.setattr(start_app, "uvicorn", _fake_uvicorn(called))
    main(["--tenant", "outlet-1", "--tenant", "outlet-2"])
    assert migrated == ["outlet-1", "outlet-2"]
    assert called["uvicorn"] == "api.app.main:app"


def test_skip_db_migrations(monkeypatch):
    async def fake_migrate(tenant_id):
        raise AssertionError("migrations should be skipped")

    called = {}
    monkeypatch.setattr(start_app, "run_tenant_migrations", fake_migrate)
    monkeypatch.setattr(start_app, "uvicorn", _fake_uvicorn(called))
    main(["--skip-db-migrations", "--tenant", "outlet-1"])
    assert called["uvicorn"] == "api.app.main:app"
