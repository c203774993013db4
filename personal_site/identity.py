from __future__ import annotations

from dataclasses import dataclass
from http.client import HTTPException
import json
import logging
from typing import Any, Optional, Protocol
from urllib.request import Request, urlopen

logger = logging.getLogger(__name__)


class AuthenticationFailed(RuntimeError):
    """Raised when the identity provider rejects a sign-in."""


class IdentityProvider(Protocol):
    def sign_in(self, email: str, password: str) -> dict:
        ...

    def sign_out(self, access_token: Optional[str] = None) -> None:
        ...


@dataclass
class SupabaseIdentityProvider:
    url: str
    anon_key: str
    timeout_seconds: float = 8

    def sign_in(self, email: str, password: str) -> dict:
        if not self.url:
            raise AuthenticationFailed("Identity provider is not configured")
        try:
            session = self._post(
                "/auth/v1/token?grant_type=password",
                {"email": email, "password": password},
            )
        except (OSError, ValueError, HTTPException) as exc:
            raise AuthenticationFailed("Invalid credentials") from exc
        if not isinstance(session, dict) or "access_token" not in session:
            raise AuthenticationFailed("Invalid credentials")
        return session

    def sign_out(self, access_token: Optional[str] = None) -> None:
        if not self.url or not access_token:
            return
        try:
            self._post("/auth/v1/logout", None, access_token=access_token)
        except (OSError, HTTPException) as exc:
            logger.warning("Identity provider logout failed: %s", exc)

    def _post(self, path: str, body: Any, access_token: Optional[str] = None) -> Any:
        headers = {
            "apikey": self.anon_key,
            "Content-Type": "application/json",
            "Authorization": f"Bearer {access_token or self.anon_key}",
        }
        data = json.dumps(body).encode("utf-8") if body is not None else b""
        request = Request(
            f"{self.url.rstrip('/')}{path}", data=data, headers=headers, method="POST"
        )
        with urlopen(request, timeout=self.timeout_seconds) as response:
            raw = response.read()
        return json.loads(raw) if raw else None
