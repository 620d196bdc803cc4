"""API router package for endpoint composition."""

from .aggregates import api_create_aggregates_router
from .health import api_create_health_router
from .instruments import api_create_instruments_router
from .reports import api_create_reports_router
from .transactions import api_create_transactions_router

__all__ = [
    "api_create_aggregates_router",
    "api_create_health_router",
    "api_create_instruments_router",
    "api_create_reports_router",
    "api_create_transactions_router",
]
