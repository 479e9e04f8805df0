import os
from pathlib import Path
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator


class BridgeConfig(BaseModel):
    """Process-wide settings, read once at startup."""

    model_config = ConfigDict(frozen=True)

    uri: str = "mongodb://localhost:27017"
    default_db: str = "claude_db"
    server_selection_timeout_ms: int = Field(5000, ge=0)
    # Seconds; 0 disables the per-request deadline
    request_timeout: float = Field(30.0, ge=0)
    ordered: bool = False
    shutdown_grace: float = Field(5.0, ge=0)
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level {value!r}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "BridgeConfig":
        if environ is None:
            # Load env from .env.local in the working directory if it exists
            env_path = Path.cwd() / ".env.local"
            if env_path.exists():
                load_dotenv(env_path, override=False)
            environ = os.environ

        values = {}
        for field, var in _ENV_VARS.items():
            raw = environ.get(var)
            if raw is not None and raw != "":
                values[field] = raw
        return cls.model_validate(values)

    @property
    def timeout_ms(self) -> Optional[int]:
        if not self.request_timeout:
            return None
        return int(self.request_timeout * 1000)


_ENV_VARS = {
    "uri": "MONGODB_URI",
    "default_db": "MONGODB_DB",
    "server_selection_timeout_ms": "MONGODB_SERVER_SELECTION_TIMEOUT_MS",
    "request_timeout": "MONGODB_BRIDGE_TIMEOUT",
    "ordered": "MONGODB_BRIDGE_ORDERED",
    "shutdown_grace": "MONGODB_BRIDGE_SHUTDOWN_GRACE",
    "log_level": "MONGODB_BRIDGE_LOG_LEVEL",
    "log_file": "MONGODB_BRIDGE_LOG_FILE",
}
