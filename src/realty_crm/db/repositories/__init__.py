"""Repository Layer for the CRM.

Provides data access with async SQLAlchemy:
- BaseRepository: Generic CRUD operations
- AutomationRuleRepository, DeadlineAlertRepository: Automation data
- LeadRepository, PropertyRepository, TaskRepository, CommunicationRepository: CRM data
- EmailAccountRepository, EmailLogRepository: Linked mailboxes and dispatch log
- AnalyticsService: Dashboard aggregation over the CRM repositories
"""
from realty_crm.db.repositories.base import BaseRepository
from realty_crm.db.repositories.automation import (
    AutomationRuleRepository,
    DeadlineAlertRepository,
)
from realty_crm.db.repositories.crm import (
    LeadRepository,
    PropertyRepository,
    TaskRepository,
    CommunicationRepository,
)
from realty_crm.db.repositories.email import (
    EmailAccountRepository,
    EmailLogRepository,
)
from realty_crm.db.repositories.analytics import AnalyticsService

__all__ = [
    "BaseRepository",
    "AutomationRuleRepository",
    "DeadlineAlertRepository",
    "LeadRepository",
    "PropertyRepository",
    "TaskRepository",
    "CommunicationRepository",
    "EmailAccountRepository",
    "EmailLogRepository",
    "AnalyticsService",
]
