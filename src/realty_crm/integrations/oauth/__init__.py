"""OAuth integrations for linking external mailboxes."""

from realty_crm.integrations.oauth.gmail import (
    GMAIL_IMAP,
    GMAIL_SMTP,
    GmailOAuthClient,
    GmailTokens,
)

__all__ = ["GMAIL_IMAP", "GMAIL_SMTP", "GmailOAuthClient", "GmailTokens"]
