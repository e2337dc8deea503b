from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from classgrid.api.routes import health as health_routes
from classgrid.db import bootstrap


def test_health_endpoints(client):
    assert client.get("/api/health").json() == {"status": "ok"}

    live = client.get("/api/health/live")
    assert live.status_code == 200
    assert live.json()["status"] == "ok"


def test_ready_reports_schema_state(client, engine, monkeypatch):
    monkeypatch.setattr(health_routes, "engine", engine)

    ready = client.get("/api/health/ready")

    assert ready.status_code == 200
    payload = ready.json()
    assert payload["status"] == "ok"
    assert payload["database"]["schema_ok"] is True
    assert payload["database"]["missing_tables"] == []


def test_find_schema_gaps_lists_missing_tables(engine):
    with engine.begin() as connection:
        connection.exec_driver_sql("DROP TABLE activity_logs")

    missing_tables, missing_columns = bootstrap.find_schema_gaps(engine)

    assert missing_tables == ["activity_logs"]
    assert missing_columns == {}


def test_ensure_runtime_schema_creates_tables_when_enabled(monkeypatch):
    fresh = create_engine("sqlite+pysqlite://", poolclass=StaticPool)
    settings = bootstrap.get_settings().model_copy(update={"auto_create_schema": True})
    monkeypatch.setattr(bootstrap, "get_settings", lambda: settings)

    bootstrap.ensure_runtime_schema(fresh)

    assert bootstrap.find_schema_gaps(fresh) == ([], {})
    fresh.dispose()
