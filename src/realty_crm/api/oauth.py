"""Gmail OAuth Endpoints.

The callback is hit by the browser after Google's consent screen, so
every outcome is a redirect back to the frontend's email page with
``?success=`` or ``?error=`` (URL-encoded).
"""
from typing import Annotated, AsyncGenerator
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from realty_crm.api.auth import CurrentUser, create_state_token, decode_state_token
from realty_crm.api.mail import get_credential_cipher
from realty_crm.api.rate_limits import RateLimits, limiter
from realty_crm.config import get_settings
from realty_crm.core.crypto import CredentialCipher
from realty_crm.core.exceptions import CRMError
from realty_crm.core.logging_setup import get_logger
from realty_crm.db import get_db
from realty_crm.integrations.oauth import GmailOAuthClient
from realty_crm.services.accounts import EmailAccountService


router = APIRouter()
log = get_logger(__name__)

GMAIL_LINKED = "Gmail account added successfully"


async def get_gmail_client() -> AsyncGenerator[GmailOAuthClient, None]:
    """Gmail OAuth client for one request."""
    client = GmailOAuthClient(get_settings().integrations.gmail)
    try:
        yield client
    finally:
        await client.close()


GmailClient = Annotated[GmailOAuthClient, Depends(get_gmail_client)]


def _email_page(**params: str) -> RedirectResponse:
    query = "&".join(f"{key}={quote(value, safe='')}" for key, value in params.items())
    return RedirectResponse(url=f"{get_settings().app_url}/email?{query}", status_code=302)


@router.get("/auth/gmail/url")
@limiter.limit(RateLimits.SENSITIVE)
async def get_gmail_auth_url(
    request: Request,
    client: GmailClient,
    user: CurrentUser,
) -> dict[str, str]:
    """Consent URL; ``state`` carries the signed user id through Google."""
    return {"url": client.build_auth_url(state=create_state_token(user.id))}


@router.get("/auth/gmail/callback")
@limiter.limit(RateLimits.SENSITIVE)
async def gmail_callback(
    request: Request,
    client: GmailClient,
    session: Annotated[AsyncSession, Depends(get_db)],
    cipher: Annotated[CredentialCipher, Depends(get_credential_cipher)],
    code: str | None = None,
    error: str | None = None,
    state: str | None = None,
) -> RedirectResponse:
    """Exchange the authorization code and store the Gmail account."""
    if error:
        log.warning("Gmail consent denied", error=error)
        return _email_page(error=error)

    if not code:
        return _email_page(error="No authorization code provided")

    if not state:
        return _email_page(error="Missing OAuth state")

    try:
        user_id = decode_state_token(state)
        tokens = await client.exchange_code(code)
        await EmailAccountService(session, cipher).link_gmail(tokens, user_id=user_id)
    except HTTPException as e:
        log.warning("Gmail callback rejected state", error=str(e.detail))
        return _email_page(error=str(e.detail))
    except CRMError as e:
        log.error("Gmail callback failed", error_code=e.error_code, error=e.message)
        return _email_page(error=e.message)
    except Exception as e:
        log.exception("Gmail callback crashed", error_type=type(e).__name__)
        await session.rollback()
        return _email_page(error="Failed to link Gmail account")

    return _email_page(success=GMAIL_LINKED)
