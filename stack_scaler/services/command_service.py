from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from stack_scaler.models.session import SessionConfig
from stack_scaler.services.notifier import Notifier, RecordingNotifier
from stack_scaler.services.orchestrator import Orchestrator
from stack_scaler.services.session_store import SessionStore


logger = logging.getLogger(__name__)

OrchestratorFactory = Callable[[SessionConfig, Notifier], Orchestrator]

COMMANDS = (
    "suspend",
    "resume",
    "force-up",
    "force-down",
    "status",
    "solr-status",
    "replace-leaders",
    "replicate",
    "resolr",
)


class UnknownCommandError(ValueError):
    pass


@dataclass
class CommandResult:
    command: str
    output: list[str] = field(default_factory=list)


class CommandService:
    """Runs one operator command against a freshly built orchestrator.

    Every failure is reported through the notifier as `fatal` and re-raised.
    """

    def __init__(self, *, store: SessionStore, build: OrchestratorFactory, notifier: Notifier) -> None:
        self._store = store
        self._build = build
        self._notifier = notifier

    @staticmethod
    def parse(text: str) -> tuple[str, list[str]]:
        words = (text or "").split()
        if not words or words[0] not in COMMANDS:
            raise UnknownCommandError(f"`{text.strip()}` is an unknown command")
        command, args = words[0], words[1:]
        if command == "resolr" and len(args) != 1:
            raise UnknownCommandError("usage: resolr <collection>")
        return command, args

    def run(self, text: str) -> CommandResult:
        command, args = self.parse(text)
        logger.info("Running command: %s", " ".join([command, *args]))
        recorder = RecordingNotifier(forward=self._notifier)
        try:
            session = self._store.load()
            orchestrator = self._build(session, recorder)
            try:
                self._dispatch(orchestrator, command, args)
            finally:
                orchestrator.close()
            if command == "suspend":
                self._store.save(session)
        except Exception as exc:
            recorder.fatal(f"{type(exc).__name__}: {exc}")
            raise
        return CommandResult(command=command, output=recorder.lines)

    @staticmethod
    def _dispatch(orchestrator: Orchestrator, command: str, args: list[str]) -> None:
        if command == "suspend":
            orchestrator.suspend()
        elif command == "resume":
            orchestrator.resume()
        elif command == "force-up":
            orchestrator.force_up()
        elif command == "force-down":
            orchestrator.force_down()
        elif command == "status":
            orchestrator.status()
        elif command == "solr-status":
            orchestrator.solr_status()
        elif command == "replace-leaders":
            orchestrator.replace_leaders()
        elif command == "replicate":
            orchestrator.reconcile_replicas()
        elif command == "resolr":
            orchestrator.resolr(args[0])
