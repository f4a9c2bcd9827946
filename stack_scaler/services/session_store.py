from __future__ import annotations

import logging
from pathlib import Path

from stack_scaler.models.session import SessionConfig
from stack_scaler.services.errors import ConfigurationError


logger = logging.getLogger(__name__)


class SessionStore:
    """Loads and saves the session document as JSON."""

    def __init__(self, path: Path) -> None:
        self._path = path

    def load(self) -> SessionConfig:
        if not self._path.exists() or not self._path.is_file():
            raise ConfigurationError(f"Session file not found: {self._path}")
        return SessionConfig.load_json(self._path.read_bytes())

    def save(self, session: SessionConfig) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp.write_text(session.model_dump_json(indent=2, exclude_none=True), encoding="utf-8")
        tmp.replace(self._path)
        logger.info("Saved session (%d backups) to %s", len(session.backups), self._path)
