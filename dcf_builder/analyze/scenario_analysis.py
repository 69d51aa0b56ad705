"""
Scenario Analysis Module
Values bull/base/bear assumption sets and bundles the full analysis
(valuation, sensitivity grid, market-implied growth) for one company.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, replace
from enum import Enum
from typing import Any, Dict, Mapping, Optional

from dcf_builder.analyze.deterministic import DCFResult, run_dcf
from dcf_builder.analyze.reverse_dcf import assess_implied_growth, implied_growth
from dcf_builder.analyze.sensitivity import SensitivityTable, build_sensitivity_table
from dcf_builder.analyze.wacc import compute_wacc
from dcf_builder.data_pipeline.historical import compute_historical_metrics
from dcf_builder.data_pipeline.models import (
    CompanyProfile,
    DCFAssumptions,
    TerminalValueInputs,
    ValueRange,
    WACCInputs,
)
from dcf_builder.utils.config import get_section
from dcf_builder.utils.data_validator import InputValidator, ValidationResult
from dcf_builder.utils.exceptions import ConvergenceError, DCFError
from dcf_builder.utils.logging_config import performance_monitor

logger = logging.getLogger(__name__)


class ScenarioType(str, Enum):
    BULL = "bull"
    BASE = "base"
    BEAR = "bear"


@dataclass(frozen=True)
class ScenarioSet:
    """Per-scenario assumptions sharing one set of WACC and terminal inputs."""

    assumptions: Dict[str, DCFAssumptions]
    wacc_inputs: WACCInputs
    terminal_inputs: TerminalValueInputs

    def to_dict(self) -> Dict[str, Any]:
        return {
            "assumptions": {name: a.to_dict() for name, a in self.assumptions.items()},
            "wacc_inputs": self.wacc_inputs.to_dict(),
            "terminal_inputs": self.terminal_inputs.to_dict(),
        }


@dataclass(frozen=True)
class ValuationReport:
    result: DCFResult
    sensitivity: Optional[SensitivityTable]
    implied_growth: Optional[float]
    implied_growth_assessment: Optional[Dict[str, Any]]
    validation: ValidationResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            "result": self.result.to_dict(),
            "sensitivity_table": self.sensitivity.to_dict() if self.sensitivity else None,
            "implied_growth": self.implied_growth,
            "implied_growth_assessment": self.implied_growth_assessment,
            "validation": {
                "is_valid": self.validation.is_valid,
                "errors": list(self.validation.errors),
                "warnings": list(self.validation.warnings),
                "score": self.validation.score,
            },
        }


@performance_monitor("run_scenarios")
def run_scenarios(
    company: CompanyProfile,
    scenarios: Mapping[str, DCFAssumptions],
    wacc_inputs: WACCInputs,
    terminal_inputs: TerminalValueInputs,
    max_workers: Optional[int] = None,
    allow_negative_revenue: bool = True,
) -> Dict[str, DCFResult]:
    """Value each named scenario on a thread pool.

    Scenarios share no state, so they run in any order; results come back
    keyed in the order ``scenarios`` was given. The first failure is
    re-raised to the caller.
    """
    if not scenarios:
        return {}

    workers = max_workers or get_section(None, 'scenarios')['max_workers']
    results: Dict[str, Optional[DCFResult]] = {name: None for name in scenarios}

    with ThreadPoolExecutor(max_workers=min(workers, len(scenarios))) as executor:
        future_to_name = {
            executor.submit(
                run_dcf, company, assumptions, wacc_inputs, terminal_inputs, allow_negative_revenue
            ): name
            for name, assumptions in scenarios.items()
        }

        for future in as_completed(future_to_name):
            name = future_to_name[future]
            results[name] = future.result()
            logger.debug("Scenario %s valued at %.2f/share", name, results[name].intrinsic_value_per_share)

    return results


def build_default_scenarios(
    company: CompanyProfile,
    risk_free_rate: float,
    beta: float,
    market_cap: Optional[float] = None,
    config: Optional[Mapping[str, Any]] = None,
) -> ScenarioSet:
    """Rule-based bull/base/bear assumptions derived from history.

    Base growth starts at the historical revenue CAGR (capped) and fades a
    fixed amount each year, with a floor on the final year; margins are
    trimmed slightly from their historical averages. Bull and bear scale the
    base growth path and the historical margins.
    """
    scenario_cfg = get_section(config, 'scenarios')
    valuation_cfg = get_section(config, 'valuation')

    metrics = compute_historical_metrics(company.historical_financials)
    horizon = int(valuation_cfg['projection_years'])
    fade = scenario_cfg['fade_rate']

    base_growth = min(metrics.revenue_cagr, scenario_cfg['max_base_growth'])
    growth_path = [base_growth - fade * i for i in range(horizon)]
    growth_path[-1] = max(scenario_cfg['final_year_growth_floor'], growth_path[-1])

    base = DCFAssumptions(
        revenue_growth_rates=tuple(growth_path),
        gross_margin=metrics.avg_gross_margin * scenario_cfg['base_gross_margin_factor'],
        operating_margin=metrics.avg_operating_margin * scenario_cfg['base_operating_margin_factor'],
        tax_rate=max(metrics.avg_tax_rate, scenario_cfg['min_tax_rate']),
        depreciation_pct_of_revenue=metrics.avg_depreciation_pct,
        capex_pct_of_revenue=metrics.avg_capex_pct,
        nwc_pct_of_revenue=valuation_cfg['nwc_pct_of_revenue'],
        projection_years=horizon,
    )

    def _variant(factors: Mapping[str, float]) -> DCFAssumptions:
        return replace(
            base,
            revenue_growth_rates=tuple(g * factors['growth_factor'] for g in base.revenue_growth_rates),
            gross_margin=metrics.avg_gross_margin * factors['gross_margin_factor'],
            operating_margin=metrics.avg_operating_margin * factors['operating_margin_factor'],
        )

    wacc_inputs = WACCInputs(
        risk_free_rate=risk_free_rate,
        beta=beta,
        equity_risk_premium=valuation_cfg['equity_risk_premium'],
        cost_of_debt=valuation_cfg['cost_of_debt'],
        market_cap_equity=company.market_cap if market_cap is None else market_cap,
        total_debt=company.base_year.total_debt,
        tax_rate=base.tax_rate,
    )

    logger.info(
        "%s default scenarios: base growth %.2f%% fading %.2f%%/yr (historical CAGR %.2f%%)",
        company.ticker, base_growth * 100, fade * 100, metrics.revenue_cagr * 100,
    )

    return ScenarioSet(
        assumptions={
            ScenarioType.BULL.value: _variant(scenario_cfg['bull']),
            ScenarioType.BASE.value: base,
            ScenarioType.BEAR.value: _variant(scenario_cfg['bear']),
        },
        wacc_inputs=wacc_inputs,
        terminal_inputs=TerminalValueInputs.perpetuity(valuation_cfg['perpetuity_growth_rate']),
    )


@performance_monitor("run_full_analysis")
def run_full_analysis(
    company: CompanyProfile,
    assumptions: DCFAssumptions,
    wacc_inputs: WACCInputs,
    terminal_inputs: TerminalValueInputs,
    include_sensitivity: bool = True,
    include_implied_growth: bool = True,
    config: Optional[Mapping[str, Any]] = None,
) -> ValuationReport:
    """Valuation plus the optional sensitivity grid and market-implied growth.

    The validation report is attached for display only; structural failures
    surface as the typed errors raised by the engine itself. Implied growth
    is optional: if the solver cannot value the company (for example its
    perpetuity rate is not below WACC) it is left as ``None``.
    """
    valuation_cfg = get_section(config, 'valuation')
    sensitivity_cfg = get_section(config, 'sensitivity')
    reverse_cfg = get_section(config, 'reverse_dcf')

    validation = InputValidator().validate_all(
        company, assumptions, wacc_inputs, terminal_inputs, wacc=compute_wacc(wacc_inputs).wacc
    )
    if not validation.is_valid:
        logger.warning("%s: input validation failed: %s", company.ticker, "; ".join(validation.errors))

    result = run_dcf(
        company, assumptions, wacc_inputs, terminal_inputs,
        allow_negative_revenue=valuation_cfg['allow_negative_revenue'],
    )

    sensitivity = None
    if include_sensitivity:
        sensitivity = build_sensitivity_table(
            company,
            assumptions,
            wacc_inputs,
            terminal_inputs,
            wacc_range=ValueRange.centered(result.wacc, sensitivity_cfg['wacc_spread'], sensitivity_cfg['wacc_step']),
            growth_range=ValueRange(
                sensitivity_cfg['growth_min'], sensitivity_cfg['growth_max'], sensitivity_cfg['growth_step']
            ),
            decimals=sensitivity_cfg['axis_decimals'],
        )

    growth = None
    assessment = None
    if include_implied_growth and company.current_price > 0:
        try:
            growth = implied_growth(
                company.current_price,
                company,
                assumptions,
                result.wacc,
                terminal_inputs.method,
                terminal_inputs.exit_multiple,
                raise_on_failure=reverse_cfg['raise_on_failure'],
                perpetuity_growth_rate=reverse_cfg['perpetuity_growth_rate'],
                low=reverse_cfg['growth_low'],
                high=reverse_cfg['growth_high'],
                tolerance=reverse_cfg['tolerance'],
                max_iterations=reverse_cfg['max_iterations'],
            )
        except ConvergenceError:
            raise
        except DCFError as exc:
            logger.warning("%s: implied growth unavailable: %s", company.ticker, exc)

        if growth is not None:
            history = company.historical_financials
            historical_growth = compute_historical_metrics(history).revenue_cagr if len(history) > 1 else None
            assessment = assess_implied_growth(growth, historical_growth)

    return ValuationReport(
        result=result,
        sensitivity=sensitivity,
        implied_growth=growth,
        implied_growth_assessment=assessment,
        validation=validation,
    )
