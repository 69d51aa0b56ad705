"""
Reverse DCF: the uniform revenue growth rate implied by a target share price.
"""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Union

from dcf_builder.analyze.deterministic import require_positive_shares, value_enterprise
from dcf_builder.data_pipeline.models import (
    CompanyProfile,
    DCFAssumptions,
    TerminalValueInputs,
    TerminalValueMethod,
)
from dcf_builder.utils.config import DEFAULT_CONFIG
from dcf_builder.utils.exceptions import ConvergenceError
from dcf_builder.utils.formatting import format_percent
from dcf_builder.utils.logging_config import performance_monitor

logger = logging.getLogger(__name__)

_DEFAULTS = DEFAULT_CONFIG['reverse_dcf']

# (upper bound, label, description); first band whose bound exceeds the growth wins
_GROWTH_BANDS = (
    (0.0, "Decline Expected", "Market is pricing in revenue decline"),
    (0.03, "Low Growth", "Market expects near-GDP growth"),
    (0.10, "Moderate Growth", "Reasonable expectations"),
    (0.20, "High Growth", "Market expects strong performance"),
    (float("inf"), "Very High Growth", "Aggressive expectations - high bar to clear"),
)


@dataclass(frozen=True)
class ImpliedGrowthResult:
    implied_growth: float
    converged: bool
    iterations: int
    target_enterprise_value: float
    calculated_enterprise_value: float

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _terminal_inputs_for(
    terminal_method: Union[TerminalValueMethod, str],
    exit_multiple: Optional[float],
    perpetuity_growth_rate: float,
) -> TerminalValueInputs:
    method = TerminalValueMethod.parse(terminal_method)
    if method is TerminalValueMethod.PERPETUITY:
        return TerminalValueInputs.perpetuity(perpetuity_growth_rate)
    return TerminalValueInputs(method=method, exit_multiple=exit_multiple)


@performance_monitor("solve_implied_growth")
def solve_implied_growth(
    target_price: float,
    company: CompanyProfile,
    assumptions: DCFAssumptions,
    wacc: float,
    terminal_method: Union[TerminalValueMethod, str],
    exit_multiple: Optional[float] = None,
    perpetuity_growth_rate: float = _DEFAULTS['perpetuity_growth_rate'],
    low: float = _DEFAULTS['growth_low'],
    high: float = _DEFAULTS['growth_high'],
    tolerance: float = _DEFAULTS['tolerance'],
    max_iterations: int = _DEFAULTS['max_iterations'],
) -> ImpliedGrowthResult:
    """Binary search for the uniform growth rate whose EV matches ``target_price``.

    The growth rate replaces every year of ``assumptions.revenue_growth_rates``.
    The target EV is ``target_price * shares + net debt`` and a match is a
    relative EV error below ``tolerance``.

    Precondition: enterprise value must increase monotonically with growth
    over ``[low, high]``. This holds whenever free cash flow rises with
    revenue, i.e. ``operating_margin * (1 - tax) + depreciation% - capex%``
    exceeds the NWC build; inputs that break it can return a wrong bracket.

    If the cap is reached without a match the midpoint of the final bracket
    is returned with ``converged=False``.
    """
    require_positive_shares(company)
    base_year = company.base_year
    terminal_inputs = _terminal_inputs_for(terminal_method, exit_multiple, perpetuity_growth_rate)

    target_ev = target_price * company.shares_outstanding + company.net_debt

    calculated_ev = float("nan")
    for iteration in range(1, max_iterations + 1):
        mid = (low + high) / 2
        valuation = value_enterprise(base_year, assumptions.with_uniform_growth(mid), wacc, terminal_inputs)
        calculated_ev = valuation.enterprise_value

        if abs(calculated_ev - target_ev) < tolerance * abs(target_ev):
            logger.debug("Implied growth %.6f converged after %d iterations", mid, iteration)
            return ImpliedGrowthResult(
                implied_growth=mid,
                converged=True,
                iterations=iteration,
                target_enterprise_value=target_ev,
                calculated_enterprise_value=calculated_ev,
            )

        if calculated_ev < target_ev:
            low = mid
        else:
            high = mid

    return ImpliedGrowthResult(
        implied_growth=(low + high) / 2,
        converged=False,
        iterations=max_iterations,
        target_enterprise_value=target_ev,
        calculated_enterprise_value=calculated_ev,
    )


def implied_growth(
    target_price: float,
    company: CompanyProfile,
    assumptions: DCFAssumptions,
    wacc: float,
    terminal_method: Union[TerminalValueMethod, str],
    exit_multiple: Optional[float] = None,
    raise_on_failure: bool = _DEFAULTS['raise_on_failure'],
    **solver_options: Any,
) -> float:
    """Implied uniform growth rate for ``target_price``.

    When the solver does not converge the final bracket midpoint is returned
    and a warning logged, or :class:`ConvergenceError` is raised if
    ``raise_on_failure`` is set.
    """
    result = solve_implied_growth(
        target_price, company, assumptions, wacc, terminal_method, exit_multiple, **solver_options
    )
    if not result.converged:
        message = (
            f"{company.ticker}: implied growth did not converge after {result.iterations} iterations "
            f"(target EV {result.target_enterprise_value:,.0f}, last EV {result.calculated_enterprise_value:,.0f})"
        )
        if raise_on_failure:
            raise ConvergenceError(message, result=result)
        logger.warning(message)
    return result.implied_growth


def assess_implied_growth(growth: float, historical_growth: Optional[float] = None) -> Dict[str, Any]:
    """Label what the market-implied growth rate means relative to history."""
    label, description = next(
        (label, description) for bound, label, description in _GROWTH_BANDS if growth < bound
    )
    assessment: Dict[str, Any] = {
        "implied_growth": growth,
        "display": format_percent(growth),
        "label": label,
        "description": description,
    }
    if historical_growth is not None:
        aggressive = growth > historical_growth * 1.5
        conservative = growth < historical_growth * 0.5
        assessment.update({
            "historical_growth": historical_growth,
            "is_aggressive": aggressive,
            "is_conservative": conservative,
            "is_realistic": not aggressive and not conservative,
        })
    return assessment
