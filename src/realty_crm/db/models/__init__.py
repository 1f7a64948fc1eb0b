"""Database Models for the CRM.

Automation Models:
- AutomationRuleModel: Rule definitions with inline actions
- DeadlineAlertModel: Payment/contract/follow-up deadlines

CRM Models:
- LeadModel, PropertyModel, TaskModel, CommunicationModel

Email Models:
- EmailAccountModel: Linked mailboxes (encrypted credentials)
- EmailLogModel: Dispatch outcomes
"""
from realty_crm.db.models.automation import AutomationRuleModel, DeadlineAlertModel
from realty_crm.db.models.crm import (
    LeadModel,
    PropertyModel,
    TaskModel,
    CommunicationModel,
)
from realty_crm.db.models.email import EmailAccountModel, EmailLogModel

__all__ = [
    "AutomationRuleModel",
    "DeadlineAlertModel",
    "LeadModel",
    "PropertyModel",
    "TaskModel",
    "CommunicationModel",
    "EmailAccountModel",
    "EmailLogModel",
]
