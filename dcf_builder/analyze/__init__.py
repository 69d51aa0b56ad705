"""Valuation analytics: WACC, projection, terminal value, DCF and extensions."""

from .deterministic import DCFResult, run_dcf, value_enterprise
from .projection import ProjectedFinancials, project_financials
from .reverse_dcf import ImpliedGrowthResult, assess_implied_growth, implied_growth, solve_implied_growth
from .scenario_analysis import (
    ScenarioSet,
    ScenarioType,
    ValuationReport,
    build_default_scenarios,
    run_full_analysis,
    run_scenarios,
)
from .sensitivity import SensitivityTable, build_sensitivity_table
from .terminal_value import TerminalValueResult, compute_terminal_value
from .wacc import WACCResult, compute_wacc

__all__ = [
    "DCFResult",
    "ImpliedGrowthResult",
    "ProjectedFinancials",
    "ScenarioSet",
    "ScenarioType",
    "SensitivityTable",
    "TerminalValueResult",
    "ValuationReport",
    "WACCResult",
    "assess_implied_growth",
    "build_default_scenarios",
    "build_sensitivity_table",
    "compute_terminal_value",
    "compute_wacc",
    "implied_growth",
    "project_financials",
    "run_dcf",
    "run_full_analysis",
    "run_scenarios",
    "solve_implied_growth",
    "value_enterprise",
]
