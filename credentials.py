"""Credential providers for the speech service."""

from __future__ import annotations

import logging
import os
from typing import Optional

import httpx

from errors import CredentialError

logger = logging.getLogger(__name__)


class HttpCredentialProvider:
    """Fetch a short-lived token from a backend endpoint returning ``{"token": ...}``."""

    def __init__(
        self,
        url: str,
        timeout_s: float = 5.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._url = url
        self._client = client or httpx.Client(timeout=httpx.Timeout(timeout_s))

    def fetch_token(self) -> str:
        try:
            response = self._client.get(self._url)
        except httpx.HTTPError as exc:
            raise CredentialError(f"token request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            detail = payload.get("error") if isinstance(payload, dict) else None
            raise CredentialError(
                f"token endpoint returned {response.status_code}: {detail or response.reason_phrase}"
            )

        token = payload.get("token") if isinstance(payload, dict) else None
        if not isinstance(token, str) or not token.strip():
            raise CredentialError("No token in credential response")
        logger.debug("fetched speech token from %s", self._url)
        return token.strip()

    def close(self) -> None:
        self._client.close()


class StaticCredentialProvider:
    """Use a configured API key, falling back to ``DASHSCOPE_API_KEY``."""

    def __init__(self, api_key: str = "") -> None:
        self._api_key = api_key

    def fetch_token(self) -> str:
        key = (self._api_key or os.getenv("DASHSCOPE_API_KEY", "")).strip()
        if not key:
            raise CredentialError("No API key configured")
        return key


def close_provider(provider: object) -> None:
    """Release whatever the provider holds open; providers without ``close`` are left alone."""
    close = getattr(provider, "close", None)
    if close is None:
        return
    try:
        close()
    except Exception:
        logger.warning("failed to close credential provider", exc_info=True)
