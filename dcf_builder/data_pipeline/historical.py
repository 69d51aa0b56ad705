"""Historical statement analytics used to seed scenario assumptions."""
from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Dict, Sequence

import numpy as np
import pandas as pd

from dcf_builder.data_pipeline.models import FinancialStatement
from dcf_builder.utils.exceptions import MalformedInputError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HistoricalMetrics:
    years: int
    latest_revenue: float
    revenue_cagr: float
    avg_gross_margin: float
    avg_operating_margin: float
    avg_tax_rate: float
    avg_capex_pct: float
    avg_depreciation_pct: float

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)


def statements_to_frame(statements: Sequence[FinancialStatement]) -> pd.DataFrame:
    """One row per fiscal year, oldest first."""
    if not statements:
        raise MalformedInputError("At least one historical statement is required")
    frame = pd.DataFrame([s.to_dict() for s in statements])
    return frame.sort_values("year").set_index("year")


def _ratio_mean(numerator: pd.Series, denominator: pd.Series) -> float:
    ratio = (numerator / denominator).replace([np.inf, -np.inf], np.nan)
    mean = ratio.mean(skipna=True)
    return 0.0 if pd.isna(mean) else float(mean)


def revenue_cagr(statements: Sequence[FinancialStatement], max_years: int = 5) -> float:
    """Compound annual revenue growth over at most ``max_years`` periods."""
    revenue = statements_to_frame(statements)["revenue"]
    periods = min(max_years, len(revenue) - 1)
    if periods < 1:
        logger.warning("Revenue CAGR needs two fiscal years; got %d", len(revenue))
        return 0.0
    start, end = revenue.iloc[-1 - periods], revenue.iloc[-1]
    if start <= 0 or end <= 0:
        logger.warning("Revenue CAGR undefined for non-positive revenue (%s -> %s)", start, end)
        return 0.0
    return float((end / start) ** (1 / periods) - 1)


def compute_historical_metrics(statements: Sequence[FinancialStatement], max_years: int = 5) -> HistoricalMetrics:
    frame = statements_to_frame(statements)
    revenue = frame["revenue"]

    # effective tax guards against zero or negative pre-tax income
    pre_tax = frame["income_before_tax"].clip(lower=1.0)

    return HistoricalMetrics(
        years=len(frame),
        latest_revenue=float(revenue.iloc[-1]),
        revenue_cagr=revenue_cagr(statements, max_years),
        avg_gross_margin=_ratio_mean(frame["gross_profit"], revenue),
        avg_operating_margin=_ratio_mean(frame["operating_income"], revenue),
        avg_tax_rate=_ratio_mean(frame["income_tax_expense"], pre_tax),
        avg_capex_pct=_ratio_mean(frame["capital_expenditures"], revenue),
        avg_depreciation_pct=_ratio_mean(frame["depreciation"], revenue),
    )
