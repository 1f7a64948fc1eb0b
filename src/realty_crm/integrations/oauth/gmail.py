"""Gmail OAuth Client.

Authorization-code flow used to link a Gmail mailbox:

1. ``build_auth_url`` produces the Google consent URL (offline access so a
   refresh token is issued)
2. Google redirects back with ``code``; ``exchange_code`` trades it for
   tokens and resolves the mailbox address
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from urllib.parse import urlencode

import httpx

from realty_crm.config import GmailOAuthSettings
from realty_crm.core.exceptions import OAuthExchangeError
from realty_crm.core.logging_setup import get_logger
from realty_crm.db.base import utcnow

log = get_logger(__name__)

AUTH_ENDPOINT = "https://accounts.google.com/o/oauth2/v2/auth"
TOKEN_ENDPOINT = "https://oauth2.googleapis.com/token"
USERINFO_ENDPOINT = "https://www.googleapis.com/oauth2/v2/userinfo"

GMAIL_IMAP = ("imap.gmail.com", 993)
GMAIL_SMTP = ("smtp.gmail.com", 587)


@dataclass
class GmailTokens:
    """Tokens and identity returned by a successful exchange."""

    email: str
    access_token: str
    refresh_token: str | None
    expires_at: datetime


class GmailOAuthClient:
    """Google OAuth 2.0 client for Gmail mailbox linking."""

    def __init__(
        self,
        settings: GmailOAuthSettings,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the client.

        Args:
            settings: Gmail OAuth client configuration
            http_client: Optional shared client (tests inject one)
        """
        self.settings = settings
        self._client = http_client or httpx.AsyncClient(timeout=settings.timeout)

    @property
    def configured(self) -> bool:
        return bool(self.settings.client_id and self.settings.client_secret)

    def build_auth_url(self, state: str | None = None) -> str:
        """Google consent URL for the configured scopes."""
        params = {
            "client_id": self.settings.client_id,
            "redirect_uri": self.settings.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.settings.scopes),
            "access_type": "offline",
            "prompt": "consent",
        }
        if state:
            params["state"] = state
        return f"{AUTH_ENDPOINT}?{urlencode(params)}"

    async def _post_token(self, data: dict[str, str]) -> dict[str, Any]:
        if not self.configured:
            raise OAuthExchangeError("Gmail OAuth client is not configured")

        try:
            response = await self._client.post(TOKEN_ENDPOINT, data=data)
        except httpx.HTTPError as e:
            log.error("Gmail token request failed", error=str(e))
            raise OAuthExchangeError("Could not reach Google token endpoint", cause=e)

        try:
            payload = response.json()
        except ValueError:
            payload = {}

        if response.status_code != 200 or "access_token" not in payload:
            message = (
                payload.get("error_description")
                or payload.get("error")
                or f"HTTP {response.status_code}"
            )
            log.error(
                "Gmail token exchange rejected",
                status_code=response.status_code,
                error=message,
            )
            raise OAuthExchangeError(
                f"Failed to exchange Gmail authorization code: {message}",
                details={"status_code": response.status_code},
            )

        return payload

    async def exchange_code(self, code: str) -> GmailTokens:
        """Trade an authorization code for tokens and the mailbox address.

        Raises:
            OAuthExchangeError: On any rejected or failed request
        """
        payload = await self._post_token(
            {
                "code": code,
                "client_id": self.settings.client_id,
                "client_secret": self.settings.client_secret,
                "redirect_uri": self.settings.redirect_uri,
                "grant_type": "authorization_code",
            }
        )

        access_token = payload["access_token"]
        email = await self.fetch_email(access_token)

        log.info("Gmail authorization code exchanged", email=email)
        return GmailTokens(
            email=email,
            access_token=access_token,
            refresh_token=payload.get("refresh_token"),
            expires_at=_expiry(payload),
        )

    async def fetch_email(self, access_token: str) -> str:
        """Mailbox address for an access token."""
        try:
            response = await self._client.get(
                USERINFO_ENDPOINT,
                headers={"Authorization": f"Bearer {access_token}"},
            )
        except httpx.HTTPError as e:
            raise OAuthExchangeError("Could not reach Google userinfo endpoint", cause=e)

        if response.status_code != 200:
            raise OAuthExchangeError(
                "Failed to resolve Gmail account address",
                details={"status_code": response.status_code},
            )

        try:
            email = response.json().get("email")
        except ValueError:
            log.error("Gmail userinfo response is not JSON")
            raise OAuthExchangeError("Google returned an unreadable userinfo response")

        if not email:
            raise OAuthExchangeError("Google did not return an email address")
        return email

    async def close(self) -> None:
        await self._client.aclose()


def _expiry(payload: dict[str, Any]) -> datetime:
    return utcnow() + timedelta(seconds=int(payload.get("expires_in", 3600)))
