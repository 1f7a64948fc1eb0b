"""HTTP API routers, mounted under /api/v1 by realty_crm.main."""
