"""Mail Dispatch and Email Account Endpoints.

The two dispatch endpoints answer every failure, malformed JSON
included, with HTTP 400 and ``{"success": false, "message": ...}``
rather than the application-wide error format.
"""
import json
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from realty_crm.api.auth import CurrentUser
from realty_crm.api.rate_limits import RateLimits, limiter
from realty_crm.core.crypto import CredentialCipher, get_cipher
from realty_crm.core.exceptions import CRMError
from realty_crm.core.logging_setup import get_logger
from realty_crm.db import get_db
from realty_crm.services.accounts import (
    ConnectionTestInput,
    EmailAccountInput,
    EmailAccountService,
)
from realty_crm.services.mail import MailDispatchService, MailRequest


router = APIRouter()
log = get_logger(__name__)


class InvalidMailBody(Exception):
    """Request body is not a JSON object matching MailRequest."""


class TestEmailRequest(BaseModel):
    """Recipient of an account verification message."""

    recipient: str


class ConnectionResult(BaseModel):
    """Outcome of a connection test or test email."""

    success: bool
    message: str


class AccountDeleteResponse(BaseModel):
    deleted: bool


# ============================================================================
# Dependencies
# ============================================================================

def get_credential_cipher() -> CredentialCipher:
    """Process-wide credential cipher."""
    return get_cipher()


async def get_mail_service(
    session: Annotated[AsyncSession, Depends(get_db)],
    cipher: Annotated[CredentialCipher, Depends(get_credential_cipher)],
) -> MailDispatchService:
    """Get a per-request mail dispatcher."""
    return MailDispatchService(session, cipher)


async def get_account_service(
    session: Annotated[AsyncSession, Depends(get_db)],
    cipher: Annotated[CredentialCipher, Depends(get_credential_cipher)],
) -> EmailAccountService:
    """Get a per-request email account service."""
    return EmailAccountService(session, cipher)


MailService = Annotated[MailDispatchService, Depends(get_mail_service)]
AccountService = Annotated[EmailAccountService, Depends(get_account_service)]


# ============================================================================
# Helpers
# ============================================================================

async def _parse_mail_request(request: Request) -> MailRequest:
    raw = await request.body()
    try:
        data = json.loads(raw)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise InvalidMailBody(f"Invalid JSON: {e}")

    if not isinstance(data, dict):
        raise InvalidMailBody("Invalid JSON: expected an object")

    try:
        return MailRequest.model_validate(data)
    except ValidationError as e:
        error = e.errors()[0]
        field = ".".join(str(loc) for loc in error["loc"]) or "body"
        raise InvalidMailBody(f"Invalid field '{field}': {error['msg']}")


def _failure(message: str, *, dry_run: bool = False) -> JSONResponse:
    content: dict[str, Any] = {"success": False, "message": message}
    if dry_run:
        content["dry_run"] = True
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=content)


async def _dispatch(request: Request, send) -> JSONResponse | dict[str, Any]:
    try:
        mail_request = await _parse_mail_request(request)
    except InvalidMailBody as e:
        log.warning("Rejected mail request", path=request.url.path, error=str(e))
        return _failure(str(e))

    try:
        return await send(mail_request)
    except CRMError as e:
        log.warning(
            "Mail dispatch failed",
            path=request.url.path,
            error_code=e.error_code,
            error=e.message,
        )
        return _failure(e.message, dry_run=bool(e.details.get("dry_run")))


# ============================================================================
# Dispatch
# ============================================================================

@router.post("/mail/smtp")
@limiter.limit(RateLimits.MAIL)
async def send_via_smtp(
    request: Request,
    service: MailService,
    user: CurrentUser,
) -> Any:
    """Send through a stored account's SMTP server.

    Body: ``{to, subject, text?, html?, from?, account_id, dry_run?,
    attachments?}``. ``dry_run`` connects and authenticates only.
    """
    return await _dispatch(
        request,
        lambda mail_request: service.send_via_smtp(mail_request, user_id=user.id),
    )


@router.post("/mail/resend")
@limiter.limit(RateLimits.MAIL)
async def send_via_resend(
    request: Request,
    service: MailService,
    user: CurrentUser,
) -> Any:
    """Send through the Resend API.

    Body: ``{to, subject, text?, html?, from?, dry_run?, attachments?}``.
    """
    return await _dispatch(
        request,
        lambda mail_request: service.send_via_resend(mail_request, user_id=user.id),
    )


# ============================================================================
# Accounts
# ============================================================================

@router.get("/mail/accounts")
@limiter.limit(RateLimits.READ)
async def list_accounts(
    request: Request,
    service: AccountService,
    user: CurrentUser,
) -> list[dict[str, Any]]:
    """Linked mailboxes; secrets are never returned."""
    accounts = await service.list_accounts(user_id=user.id)
    return [a.to_dict() for a in accounts]


@router.post("/mail/accounts", status_code=status.HTTP_201_CREATED)
@limiter.limit(RateLimits.SENSITIVE)
async def create_account(
    request: Request,
    account_in: EmailAccountInput,
    service: AccountService,
    user: CurrentUser,
) -> dict[str, Any]:
    """Store an SMTP mailbox; the password is encrypted at rest."""
    account = await service.create_account(account_in, user_id=user.id)
    return account.to_dict()


@router.post("/mail/accounts/test", response_model=ConnectionResult)
@limiter.limit(RateLimits.SENSITIVE)
async def test_account_settings(
    request: Request,
    settings_in: ConnectionTestInput,
    service: AccountService,
    user: CurrentUser,
) -> ConnectionResult:
    """Test SMTP settings before the account is saved."""
    return ConnectionResult(**await service.test_settings(settings_in))


@router.post("/mail/accounts/{account_id}/test", response_model=ConnectionResult)
@limiter.limit(RateLimits.SENSITIVE)
async def test_account(
    request: Request,
    account_id: str,
    service: AccountService,
    user: CurrentUser,
) -> ConnectionResult:
    """Connect and authenticate with a stored account."""
    return ConnectionResult(**await service.test_account(account_id, user_id=user.id))


@router.post("/mail/accounts/{account_id}/test-email", response_model=ConnectionResult)
@limiter.limit(RateLimits.MAIL)
async def send_test_email(
    request: Request,
    account_id: str,
    body: TestEmailRequest,
    service: AccountService,
    user: CurrentUser,
) -> ConnectionResult:
    """Send a fixed verification message through a stored account."""
    result = await service.send_test_email(account_id, body.recipient, user_id=user.id)
    return ConnectionResult(**result)


@router.delete("/mail/accounts/{account_id}", response_model=AccountDeleteResponse)
@limiter.limit(RateLimits.WRITE)
async def delete_account(
    request: Request,
    account_id: str,
    service: AccountService,
    user: CurrentUser,
) -> AccountDeleteResponse:
    """Unlink a mailbox; unknown ids report ``deleted: false``."""
    return AccountDeleteResponse(deleted=await service.delete_account(account_id, user_id=user.id))
