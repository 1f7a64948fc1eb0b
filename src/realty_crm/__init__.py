"""Realty CRM backend.

Automation rules, CRM analytics and mail dispatch for real-estate agents.
"""

__version__ = "0.1.0"
