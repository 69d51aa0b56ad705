"""Discount rate from capital structure and CAPM inputs."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Dict

from dcf_builder.data_pipeline.models import WACCInputs
from dcf_builder.utils.exceptions import InvalidCapitalStructureError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WACCResult:
    wacc: float
    cost_of_equity: float
    after_tax_cost_of_debt: float
    equity_weight: float
    debt_weight: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def compute_wacc(inputs: WACCInputs) -> WACCResult:
    """Weighted average cost of capital.

    Cost of equity is CAPM (rf + beta * ERP); debt is taken after tax.
    Negative betas or rates are accepted. Only a non-positive total
    capital (E + D <= 0) is rejected, since the weights are undefined.
    """
    total_capital = inputs.market_cap_equity + inputs.total_debt
    if total_capital <= 0:
        raise InvalidCapitalStructureError(
            f"Total capital must be positive (equity={inputs.market_cap_equity}, debt={inputs.total_debt})"
        )

    cost_of_equity = inputs.risk_free_rate + inputs.beta * inputs.equity_risk_premium
    after_tax_cost_of_debt = inputs.cost_of_debt * (1 - inputs.tax_rate)

    equity_weight = inputs.market_cap_equity / total_capital
    debt_weight = inputs.total_debt / total_capital

    wacc = equity_weight * cost_of_equity + debt_weight * after_tax_cost_of_debt
    logger.debug(
        "WACC %.4f (Re=%.4f, Rd_after_tax=%.4f, E/V=%.3f, D/V=%.3f)",
        wacc, cost_of_equity, after_tax_cost_of_debt, equity_weight, debt_weight,
    )

    return WACCResult(
        wacc=wacc,
        cost_of_equity=cost_of_equity,
        after_tax_cost_of_debt=after_tax_cost_of_debt,
        equity_weight=equity_weight,
        debt_weight=debt_weight,
    )
