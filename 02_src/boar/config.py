"""Agent configuration and path helpers."""

import os
from dataclasses import dataclass
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_LOG_PATH = LOGS_DIR / "boar.log"

DEFAULT_ENDPOINT = "https://push.boar.io"
DEFAULT_BATCH_SIZE = 10
DEFAULT_FLUSH_INTERVAL = 5.0
DEFAULT_REQUEST_TIMEOUT = 10.0


def resolve_endpoint(env_value: str | None = None) -> str:
    """Resolve the collector endpoint, honouring BOAR_ENDPOINT."""
    if env_value is None:
        env_value = os.getenv("BOAR_ENDPOINT")

    if not env_value:
        return DEFAULT_ENDPOINT

    return env_value.rstrip("/")


@dataclass(frozen=True)
class AgentConfig:
    """Immutable process-wide settings, built once at startup."""

    token: str = ""
    env: str = ""
    app: str = ""
    endpoint: str = DEFAULT_ENDPOINT
    batch_size: int = DEFAULT_BATCH_SIZE
    flush_interval: float = DEFAULT_FLUSH_INTERVAL  # seconds
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT  # seconds
    flush_on_stop: bool = True

    def __post_init__(self):
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be positive, got {self.batch_size}")
        if self.flush_interval <= 0:
            raise ValueError(
                f"flush_interval must be positive, got {self.flush_interval}"
            )

    @property
    def transmit(self) -> bool:
        """Transmission is enabled only when a token is configured."""
        return bool(self.token)

    @property
    def queue_size(self) -> int:
        """Ingest queue capacity."""
        return self.batch_size * 2

    @classmethod
    def create(
        cls,
        token: str,
        env: str,
        app: str,
        **overrides,
    ) -> "AgentConfig":
        """
        One-time initialization from credential, environment and app name.

        The BOAR_ENDPOINT override is only consulted when a token is given;
        without a token every send is a no-op anyway.
        """
        if token and "endpoint" not in overrides:
            overrides["endpoint"] = resolve_endpoint()
        return cls(token=token, env=env, app=app, **overrides)

    @classmethod
    def from_env(cls) -> "AgentConfig":
        """Build configuration from BOAR_* environment variables."""
        return cls.create(
            token=os.getenv("BOAR_TOKEN", ""),
            env=os.getenv("BOAR_ENV", ""),
            app=os.getenv("BOAR_APP", ""),
            batch_size=int(os.getenv("BOAR_BATCH_SIZE", str(DEFAULT_BATCH_SIZE))),
            flush_interval=float(
                os.getenv("BOAR_FLUSH_INTERVAL", str(DEFAULT_FLUSH_INTERVAL))
            ),
        )
