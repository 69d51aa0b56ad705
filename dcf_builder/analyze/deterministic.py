"""Deterministic DCF valuation: WACC, projection, terminal value, equity bridge."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Tuple

import logging

import pandas as pd

from dcf_builder.analyze.projection import ProjectedFinancials, project_financials
from dcf_builder.analyze.terminal_value import TerminalValueResult, compute_terminal_value
from dcf_builder.analyze.wacc import compute_wacc
from dcf_builder.data_pipeline.models import (
    CompanyProfile,
    DCFAssumptions,
    FinancialStatement,
    TerminalValueInputs,
    TerminalValueMethod,
    WACCInputs,
)
from dcf_builder.utils.exceptions import MalformedInputError
from dcf_builder.utils.formatting import format_currency, format_percent
from dcf_builder.utils.logging_config import performance_monitor

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnterpriseValuation:
    projections: Tuple[ProjectedFinancials, ...]
    sum_of_pvs: float
    terminal: TerminalValueResult
    enterprise_value: float


@dataclass(frozen=True)
class DCFResult:
    projections: Tuple[ProjectedFinancials, ...]
    wacc: float
    cost_of_equity: float
    after_tax_cost_of_debt: float
    terminal_value: float
    terminal_value_pv: float
    terminal_value_method: TerminalValueMethod
    sum_of_pvs: float
    enterprise_value: float
    net_debt: float
    equity_value: float
    shares_outstanding: float
    intrinsic_value_per_share: float
    current_price: float
    implied_upside: Optional[float]
    calculated_at: datetime
    ticker: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation for the presentation/export layer."""
        return {
            "ticker": self.ticker,
            "projections": [p.to_dict() for p in self.projections],
            "wacc": self.wacc,
            "cost_of_equity": self.cost_of_equity,
            "after_tax_cost_of_debt": self.after_tax_cost_of_debt,
            "terminal_value": self.terminal_value,
            "terminal_value_pv": self.terminal_value_pv,
            "terminal_value_method": self.terminal_value_method.value,
            "sum_of_pvs": self.sum_of_pvs,
            "enterprise_value": self.enterprise_value,
            "net_debt": self.net_debt,
            "equity_value": self.equity_value,
            "shares_outstanding": self.shares_outstanding,
            "intrinsic_value_per_share": self.intrinsic_value_per_share,
            "current_price": self.current_price,
            "implied_upside": self.implied_upside,
            "calculated_at": self.calculated_at.isoformat(),
        }

    def projections_frame(self) -> pd.DataFrame:
        return pd.DataFrame([p.to_dict() for p in self.projections]).set_index("year")


def value_enterprise(
    base_year: FinancialStatement,
    assumptions: DCFAssumptions,
    wacc: float,
    terminal_inputs: TerminalValueInputs,
    allow_negative_revenue: bool = True,
) -> EnterpriseValuation:
    """Projection plus terminal value at a given discount rate.

    Shared by the full valuation, the sensitivity grid and the reverse
    solver so every path values the enterprise identically.
    """
    projections = project_financials(base_year, assumptions, wacc, allow_negative_revenue)
    sum_of_pvs = sum(p.present_value for p in projections)

    final_year = projections[-1]
    terminal = compute_terminal_value(
        final_year.fcf,
        final_year.ebitda,
        wacc,
        terminal_inputs,
        assumptions.projection_years,
    )

    return EnterpriseValuation(
        projections=tuple(projections),
        sum_of_pvs=sum_of_pvs,
        terminal=terminal,
        enterprise_value=sum_of_pvs + terminal.terminal_value_pv,
    )


def per_share_value(enterprise_value: float, company: CompanyProfile) -> float:
    """Equity value per share after removing net debt."""
    return (enterprise_value - company.net_debt) / company.shares_outstanding


def require_positive_shares(company: CompanyProfile) -> None:
    if company.shares_outstanding <= 0:
        raise MalformedInputError(
            f"{company.ticker}: shares outstanding must be positive, got {company.shares_outstanding}"
        )


@performance_monitor("run_dcf")
def run_dcf(
    company: CompanyProfile,
    assumptions: DCFAssumptions,
    wacc_inputs: WACCInputs,
    terminal_inputs: TerminalValueInputs,
    allow_negative_revenue: bool = True,
) -> DCFResult:
    """Full DCF valuation of ``company`` for one scenario.

    Errors from any stage propagate unchanged; no partial result is returned.
    """
    base_year = company.base_year
    require_positive_shares(company)

    wacc_result = compute_wacc(wacc_inputs)
    valuation = value_enterprise(
        base_year, assumptions, wacc_result.wacc, terminal_inputs, allow_negative_revenue
    )

    net_debt = company.net_debt
    equity_value = valuation.enterprise_value - net_debt
    intrinsic_value = equity_value / company.shares_outstanding

    implied_upside: Optional[float] = None
    if company.current_price > 0:
        implied_upside = (intrinsic_value - company.current_price) / company.current_price
    else:
        logger.warning("%s: current price %s is not positive; implied upside undefined",
                       company.ticker, company.current_price)

    logger.info(
        "%s DCF: EV %s, equity %s, %.2f/share (%s upside) at WACC %s",
        company.ticker,
        format_currency(valuation.enterprise_value),
        format_currency(equity_value),
        intrinsic_value,
        format_percent(implied_upside),
        format_percent(wacc_result.wacc, 2),
    )

    return DCFResult(
        projections=valuation.projections,
        wacc=wacc_result.wacc,
        cost_of_equity=wacc_result.cost_of_equity,
        after_tax_cost_of_debt=wacc_result.after_tax_cost_of_debt,
        terminal_value=valuation.terminal.terminal_value,
        terminal_value_pv=valuation.terminal.terminal_value_pv,
        terminal_value_method=valuation.terminal.method,
        sum_of_pvs=valuation.sum_of_pvs,
        enterprise_value=valuation.enterprise_value,
        net_debt=net_debt,
        equity_value=equity_value,
        shares_outstanding=company.shares_outstanding,
        intrinsic_value_per_share=intrinsic_value,
        current_price=company.current_price,
        implied_upside=implied_upside,
        calculated_at=datetime.now(timezone.utc),
        ticker=company.ticker,
    )
