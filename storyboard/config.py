"""Client configuration, read from SB_* environment variables."""

import os
from dataclasses import dataclass
from pathlib import Path

from .core.constants import DEBOUNCE_SECONDS, FLUSH_TIMEOUT_SECONDS


@dataclass(frozen=True)
class StoryboardConfig:
    """Editing session configuration."""
    api_url: str = "http://127.0.0.1:8766"
    token: str | None = None
    principal: str = "local"
    passphrase: str | None = None
    debounce_seconds: float = DEBOUNCE_SECONDS
    flush_timeout: float = FLUSH_TIMEOUT_SECONDS
    http_timeout: float = 10.0
    store_path: Path = Path.home() / ".storyboard/storyboard.json"

    @classmethod
    def from_env(cls) -> "StoryboardConfig":
        """Create configuration from environment variables."""
        return cls(
            api_url=os.getenv("SB_API_URL", cls.api_url),
            token=os.getenv("SB_TOKEN") or None,
            principal=os.getenv("SB_PRINCIPAL", cls.principal),
            passphrase=os.getenv("SB_PASSPHRASE") or None,
            debounce_seconds=float(os.getenv("SB_DEBOUNCE_SECONDS", str(DEBOUNCE_SECONDS))),
            flush_timeout=float(os.getenv("SB_FLUSH_TIMEOUT", str(FLUSH_TIMEOUT_SECONDS))),
            http_timeout=float(os.getenv("SB_HTTP_TIMEOUT", "10.0")),
            store_path=Path(os.getenv("SB_STORE_PATH", str(cls.store_path))),
        )
