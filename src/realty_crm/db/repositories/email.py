"""Email Repositories.

Linked mailbox accounts and the dispatch log.
"""
from __future__ import annotations

from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from realty_crm.db.models.email import EmailAccountModel, EmailLogModel
from realty_crm.db.repositories.base import BaseRepository, coerce_id


class EmailAccountRepository(BaseRepository[EmailAccountModel]):
    """Repository for linked email accounts."""

    def __init__(self, session: AsyncSession):
        super().__init__(EmailAccountModel, session)

    async def find_by_email(
        self,
        email: str,
        *,
        user_id: str | None = None,
    ) -> EmailAccountModel | None:
        """Account for an address, if this user linked it already."""
        accounts = await self.find_many(user_id=user_id, email=email.lower(), limit=1)
        return accounts[0] if accounts else None



class EmailLogRepository(BaseRepository[EmailLogModel]):
    """Repository for dispatch outcomes."""

    def __init__(self, session: AsyncSession):
        super().__init__(EmailLogModel, session)

    async def record(
        self,
        *,
        recipients: list[str],
        subject: str,
        provider: str,
        status: str,
        user_id: str | None = None,
        account_id: UUID | str | None = None,
        message_id: str | None = None,
        error: str | None = None,
    ) -> EmailLogModel:
        """Append one dispatch outcome to the log."""
        entry = EmailLogModel(
            user_id=user_id,
            account_id=coerce_id(account_id) if account_id else None,
            recipients=list(recipients),
            subject=subject,
            provider=provider,
            status=status,
            message_id=message_id,
            error=error,
        )
        return await self.create(entry)
