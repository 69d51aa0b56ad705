"""Input datamodels and historical analytics for the valuation engine."""

from .historical import HistoricalMetrics, compute_historical_metrics, statements_to_frame
from .models import (
    CompanyProfile,
    DCFAssumptions,
    FinancialStatement,
    TerminalValueInputs,
    TerminalValueMethod,
    ValueRange,
    WACCInputs,
)

__all__ = [
    "CompanyProfile",
    "DCFAssumptions",
    "FinancialStatement",
    "HistoricalMetrics",
    "TerminalValueInputs",
    "TerminalValueMethod",
    "ValueRange",
    "WACCInputs",
    "compute_historical_metrics",
    "statements_to_frame",
]
