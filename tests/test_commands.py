from __future__ import annotations

import json

import pytest
from fastapi.testclient import TestClient

from stack_scaler.main import app
from stack_scaler.services.command_service import CommandService, UnknownCommandError
from stack_scaler.services.dependencies import get_command_service
from stack_scaler.services.errors import SolrOperationError
from stack_scaler.services.notifier import RecordingNotifier
from stack_scaler.services.session_store import SessionStore


class _Orchestrator:
    def __init__(self, session, notifier, *, fail: Exception = None) -> None:
        self.session = session
        self.notifier = notifier
        self.fail = fail
        self.called: list[str] = []
        self.closed = False

    def suspend(self):
        self.called.append("suspend")
        if self.fail is not None:
            raise self.fail
        self.session.backups = {"articles": "scaling_articles_backup_20240101000000"}
        self.notifier.info("Suspend complete")

    def resolr(self, collection: str):
        self.called.append(f"resolr:{collection}")
        self.notifier.info(f"Deleting collection: {collection}")

    def status(self):
        self.notifier.info("site-webapp: 1 instance running (Green)")

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def store(tmp_path) -> SessionStore:
    path = tmp_path / "scaling.json"
    path.write_text(json.dumps({"dns_zone": "example.edu", "collections": ["articles"]}), encoding="utf-8")
    return SessionStore(path)


def _service(store: SessionStore, built: list, *, fail: Exception = None) -> tuple[CommandService, RecordingNotifier]:
    sink = RecordingNotifier()

    def build(session, notifier):
        orchestrator = _Orchestrator(session, notifier, fail=fail)
        built.append(orchestrator)
        return orchestrator

    return CommandService(store=store, build=build, notifier=sink), sink


@pytest.mark.parametrize("text", ["", "reboot", "resolr", "resolr a b"])
def test_parse_rejects_unknown_commands(text: str) -> None:
    with pytest.raises(UnknownCommandError):
        CommandService.parse(text)


def test_parse_splits_arguments() -> None:
    assert CommandService.parse(" resolr  articles ") == ("resolr", ["articles"])


def test_suspend_persists_backups(store) -> None:
    built: list = []
    service, sink = _service(store, built)

    result = service.run("suspend")

    assert result.command == "suspend"
    assert result.output == ["Suspend complete"]
    assert sink.lines == ["Suspend complete"]
    assert built[0].closed
    assert store.load().backups == {"articles": "scaling_articles_backup_20240101000000"}


def test_failure_is_reported_as_fatal_and_reraised(store) -> None:
    built: list = []
    service, sink = _service(store, built, fail=SolrOperationError("Backup of `articles` failed"))

    with pytest.raises(SolrOperationError):
        service.run("suspend")

    assert sink.messages[-1] == ("FATAL", "SolrOperationError: Backup of `articles` failed")
    assert built[0].closed
    assert store.load().backups == {}


def test_resolr_passes_collection(store) -> None:
    built: list = []
    service, _ = _service(store, built)

    service.run("resolr articles")

    assert built[0].called == ["resolr:articles"]


def test_command_route_returns_output(store) -> None:
    built: list = []
    service, _ = _service(store, built)
    app.dependency_overrides[get_command_service] = lambda: service
    try:
        client = TestClient(app)
        ok = client.post("/commands", json={"text": "status"})
        unknown = client.post("/commands", json={"text": "reboot"})
    finally:
        app.dependency_overrides.clear()

    assert ok.status_code == 200
    assert ok.json() == {"command": "status", "output": ["site-webapp: 1 instance running (Green)"]}
    assert unknown.status_code == 400


def test_command_route_maps_failures_to_bad_gateway(store) -> None:
    built: list = []
    service, _ = _service(store, built, fail=SolrOperationError("Backup of `articles` failed"))
    app.dependency_overrides[get_command_service] = lambda: service
    try:
        response = TestClient(app).post("/commands", json={"text": "suspend"})
    finally:
        app.dependency_overrides.clear()

    assert response.status_code == 502
    assert response.json() == {"detail": "Backup of `articles` failed", "error": "SolrOperationError"}
