"""Bearer token registry mapping tokens to principals."""

import logging
import secrets
import threading
import time
from dataclasses import dataclass

from ..core.constants import TOKEN_LENGTH, TOKEN_TTL_SECONDS
from ..core.exceptions import TokenNotFoundError

logger = logging.getLogger(__name__)


@dataclass
class IssuedToken:
    principal: str
    start_ts: float
    last_used: float


class TokenManager:
    """
    Issues development-grade bearer tokens and resolves them to principals.

    A token expires `token_ttl` seconds after its last use. Requests and the
    store's saver thread share the registry, so every access holds `lock`.
    """

    def __init__(self, token_ttl: int = TOKEN_TTL_SECONDS):
        self.token_ttl = token_ttl
        self.lock = threading.Lock()
        self._tokens: dict[str, IssuedToken] = {}

    def _expired(self, entry: IssuedToken, now: float) -> bool:
        return now - entry.last_used > self.token_ttl

    def issue(self, principal: str) -> dict:
        """Returns {"token", "principal", "start_ts"} for the session response."""
        token = secrets.token_hex(TOKEN_LENGTH // 2)
        now = time.time()
        with self.lock:
            self._tokens[token] = IssuedToken(principal, now, now)

        logger.info(f"Token issued for principal '{principal}'")
        return {"token": token, "principal": principal, "start_ts": now}

    def resolve(self, token: str) -> str:
        """Principal for `token`, refreshing its expiry. Raises TokenNotFoundError."""
        now = time.time()
        with self.lock:
            entry = self._tokens.get(token)
            if entry is None or self._expired(entry, now):
                raise TokenNotFoundError(token)
            entry.last_used = now
            return entry.principal

    def is_valid(self, token: str) -> bool:
        with self.lock:
            entry = self._tokens.get(token)
            return entry is not None and not self._expired(entry, time.time())

    def revoke(self, token: str) -> bool:
        with self.lock:
            return self._tokens.pop(token, None) is not None

    def cleanup_expired(self) -> int:
        """Drop expired tokens. Returns how many were dropped."""
        now = time.time()
        with self.lock:
            expired = {
                token: entry for token, entry in self._tokens.items()
                if self._expired(entry, now)
            }
            for token in expired:
                del self._tokens[token]

        for entry in expired.values():
            logger.info(f"Token expired for principal '{entry.principal}'")
        return len(expired)

    def count(self) -> int:
        with self.lock:
            return len(self._tokens)
