from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, Optional

from stack_scaler.services.errors import ConfigurationError


@dataclass(frozen=True)
class ScalerConfig:
    """Process-level runtime configuration.

    This is wiring configuration (where the session document lives, which
    tag names an environment, HTTP timeouts), not the per-command session
    document itself, which is `SessionConfig`.
    """

    session_file: Path
    region_name: Optional[str] = None
    environment_tag: str = "name"
    backup_location: str = "/data/backup"
    _DEFAULT_HTTP_TIMEOUT_SECONDS: ClassVar[float] = 30.0
    http_timeout_seconds: float = _DEFAULT_HTTP_TIMEOUT_SECONDS
    _DEFAULT_SETTLE_SECONDS: ClassVar[float] = 15.0
    settle_seconds: float = _DEFAULT_SETTLE_SECONDS

    @staticmethod
    def _float_from_env(name: str, default: float) -> float:
        raw = os.getenv(name)
        if not raw:
            return default
        try:
            value = float(raw)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid {name}; must be a number") from exc
        if value < 0:
            raise ConfigurationError(f"Invalid {name}; must not be negative")
        return value

    @staticmethod
    def from_env() -> "ScalerConfig":
        session_file = Path(os.getenv("STACK_SCALER_SESSION_FILE", "config/scaling.json"))
        region_name = (
            os.getenv("STACK_SCALER_REGION") or os.getenv("AWS_REGION") or os.getenv("AWS_DEFAULT_REGION")
        )

        return ScalerConfig(
            session_file=session_file,
            region_name=region_name,
            environment_tag=os.getenv("STACK_SCALER_ENVIRONMENT_TAG", "").strip() or "name",
            backup_location=os.getenv("SOLR_BACKUP_LOCATION", "").strip() or "/data/backup",
            http_timeout_seconds=ScalerConfig._float_from_env(
                "STACK_SCALER_HTTP_TIMEOUT_SECONDS", ScalerConfig._DEFAULT_HTTP_TIMEOUT_SECONDS
            ),
            settle_seconds=ScalerConfig._float_from_env(
                "STACK_SCALER_SETTLE_SECONDS", ScalerConfig._DEFAULT_SETTLE_SECONDS
            ),
        )
