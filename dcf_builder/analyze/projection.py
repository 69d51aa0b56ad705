"""Year-by-year projection of free cash flow from a historical base year."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, List

from dcf_builder.data_pipeline.models import DCFAssumptions, FinancialStatement
from dcf_builder.utils.exceptions import InvalidDiscountRateError, NegativeRevenueError

logger = logging.getLogger(__name__)

# Cash flows are assumed to arrive halfway through each projection year
MID_YEAR_OFFSET = 0.5


@dataclass(frozen=True)
class ProjectedFinancials:
    year: int
    revenue: float
    gross_profit: float
    operating_income: float
    nopat: float
    depreciation: float
    capex: float
    change_in_nwc: float
    fcf: float
    discount_factor: float
    present_value: float

    @property
    def ebitda(self) -> float:
        return self.operating_income + self.depreciation

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def project_financials(
    base_year: FinancialStatement,
    assumptions: DCFAssumptions,
    wacc: float,
    allow_negative_revenue: bool = True,
) -> List[ProjectedFinancials]:
    """Project ``assumptions.projection_years`` years forward from ``base_year``.

    Each year grows the previous year's revenue; working capital is seeded
    from the base year's revenue so year one carries a real NWC change.
    Discounting uses the mid-year convention, (1 + wacc) ** (i + 0.5).

    Negative revenue is propagated unless ``allow_negative_revenue`` is False,
    in which case :class:`NegativeRevenueError` is raised.
    """
    if wacc <= -1:
        raise InvalidDiscountRateError(f"WACC must be greater than -100%, got {wacc}")

    projections: List[ProjectedFinancials] = []
    previous_revenue = base_year.revenue
    previous_nwc = base_year.revenue * assumptions.nwc_pct_of_revenue

    for i in range(assumptions.projection_years):
        growth = assumptions.growth_rate_for_year(i)
        revenue = previous_revenue * (1 + growth)
        if revenue < 0 and not allow_negative_revenue:
            raise NegativeRevenueError(
                f"Projected revenue for {base_year.year + i + 1} is negative ({revenue:,.0f})"
            )

        gross_profit = revenue * assumptions.gross_margin
        operating_income = revenue * assumptions.operating_margin
        nopat = operating_income * (1 - assumptions.tax_rate)

        depreciation = revenue * assumptions.depreciation_pct_of_revenue
        capex = revenue * assumptions.capex_pct_of_revenue
        current_nwc = revenue * assumptions.nwc_pct_of_revenue
        change_in_nwc = current_nwc - previous_nwc

        fcf = nopat + depreciation - capex - change_in_nwc
        discount_factor = 1 / (1 + wacc) ** (i + MID_YEAR_OFFSET)

        projections.append(ProjectedFinancials(
            year=base_year.year + i + 1,
            revenue=revenue,
            gross_profit=gross_profit,
            operating_income=operating_income,
            nopat=nopat,
            depreciation=depreciation,
            capex=capex,
            change_in_nwc=change_in_nwc,
            fcf=fcf,
            discount_factor=discount_factor,
            present_value=fcf * discount_factor,
        ))

        previous_revenue = revenue
        previous_nwc = current_nwc

    return projections
