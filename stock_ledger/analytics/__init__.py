"""Analytics layer package for realized-profit and activity reporting."""

from .activity_reports import ActivityReportService, analytics_build_portfolio_distribution
from .daywise_report import DaywiseReportService, analytics_build_daywise_report
from .interfaces import (
    ActivityReportPort,
    AnalyticsPort,
    DaywiseLossDetail,
    DaywiseProfitBucket,
    PortfolioHolding,
    TransactionVolumeEntry,
)

__all__ = [
    "ActivityReportPort",
    "ActivityReportService",
    "AnalyticsPort",
    "DaywiseLossDetail",
    "DaywiseProfitBucket",
    "DaywiseReportService",
    "PortfolioHolding",
    "TransactionVolumeEntry",
    "analytics_build_daywise_report",
    "analytics_build_portfolio_distribution",
]
