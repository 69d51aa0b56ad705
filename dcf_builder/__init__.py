"""Discounted cash flow valuation engine."""

import logging

from .analyze import (
    DCFResult,
    SensitivityTable,
    build_default_scenarios,
    build_sensitivity_table,
    implied_growth,
    run_dcf,
    run_full_analysis,
    run_scenarios,
)
from .data_pipeline import (
    CompanyProfile,
    DCFAssumptions,
    FinancialStatement,
    TerminalValueInputs,
    TerminalValueMethod,
    ValueRange,
    WACCInputs,
)

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "CompanyProfile",
    "DCFAssumptions",
    "DCFResult",
    "FinancialStatement",
    "SensitivityTable",
    "TerminalValueInputs",
    "TerminalValueMethod",
    "ValueRange",
    "WACCInputs",
    "build_default_scenarios",
    "build_sensitivity_table",
    "implied_growth",
    "run_dcf",
    "run_full_analysis",
    "run_scenarios",
]
