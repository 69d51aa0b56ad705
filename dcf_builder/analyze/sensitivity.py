"""WACC x terminal growth sensitivity grid of per-share values."""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import numpy as np
import pandas as pd

from dcf_builder.analyze.deterministic import require_positive_shares, per_share_value, value_enterprise
from dcf_builder.analyze.wacc import compute_wacc
from dcf_builder.data_pipeline.models import (
    CompanyProfile,
    DCFAssumptions,
    TerminalValueInputs,
    ValueRange,
    WACCInputs,
)
from dcf_builder.utils.config import DEFAULT_CONFIG
from dcf_builder.utils.exceptions import DCFError
from dcf_builder.utils.logging_config import performance_monitor

logger = logging.getLogger(__name__)

_DEFAULTS = DEFAULT_CONFIG['sensitivity']

# Value reported for cells that cannot be computed (e.g. growth >= WACC)
FAILED_CELL = 0.0

# Absorbs float error when deciding whether max is reachable from min in whole steps
_STEP_TOLERANCE = 1e-9


@dataclass(frozen=True)
class SensitivityTable:
    """Per-share prices indexed ``matrix[wacc_index][growth_index]``."""

    wacc_values: Tuple[float, ...]
    growth_values: Tuple[float, ...]
    matrix: Tuple[Tuple[float, ...], ...]

    def __post_init__(self) -> None:
        if len(self.matrix) != len(self.wacc_values) or any(
            len(row) != len(self.growth_values) for row in self.matrix
        ):
            raise ValueError("Sensitivity matrix must be len(wacc_values) x len(growth_values)")

    def price_at(self, wacc_index: int, growth_index: int) -> float:
        return self.matrix[wacc_index][growth_index]

    def to_frame(self) -> pd.DataFrame:
        frame = pd.DataFrame(
            [list(row) for row in self.matrix],
            index=pd.Index(self.wacc_values, name="wacc"),
            columns=pd.Index(self.growth_values, name="growth"),
        )
        return frame

    def to_dict(self) -> Dict[str, Any]:
        return {
            "wacc_values": list(self.wacc_values),
            "growth_values": list(self.growth_values),
            "matrix": [list(row) for row in self.matrix],
        }


def axis_values(value_range: ValueRange, decimals: int = _DEFAULTS['axis_decimals']) -> List[float]:
    """Values from min to max in ``step`` increments, max included when reachable.

    Values are rounded half up to ``decimals`` places.
    """
    if value_range.max == value_range.min:
        count = 1
    else:
        span = (value_range.max - value_range.min) / value_range.step
        count = int(math.floor(span + _STEP_TOLERANCE)) + 1
    scale = 10 ** decimals
    raw = value_range.min + value_range.step * np.arange(count)
    values = np.floor(raw * scale + 0.5) / scale
    return [float(v) for v in values]


def default_wacc_range(wacc: float) -> ValueRange:
    return ValueRange.centered(wacc, _DEFAULTS['wacc_spread'], _DEFAULTS['wacc_step'])


def default_growth_range() -> ValueRange:
    return ValueRange(_DEFAULTS['growth_min'], _DEFAULTS['growth_max'], _DEFAULTS['growth_step'])


@performance_monitor("build_sensitivity_table")
def build_sensitivity_table(
    company: CompanyProfile,
    assumptions: DCFAssumptions,
    wacc_inputs: WACCInputs,
    terminal_inputs: TerminalValueInputs,
    wacc_range: Optional[ValueRange] = None,
    growth_range: Optional[ValueRange] = None,
    decimals: int = _DEFAULTS['axis_decimals'],
) -> SensitivityTable:
    """Re-value the company across a WACC x growth grid.

    WACC is an independent axis substituted straight into the projection; it
    is never re-derived from capital structure. ``wacc_inputs`` only centres
    the default WACC axis when ``wacc_range`` is omitted. The growth axis
    replaces the perpetuity growth rate; under the exit-multiple method it
    has no effect and every cell in a row is the same.

    A cell that cannot be valued is reported as 0.0 so the grid is always
    fully populated.
    """
    base_year = company.base_year
    require_positive_shares(company)

    if wacc_range is None:
        wacc_range = default_wacc_range(compute_wacc(wacc_inputs).wacc)
    if growth_range is None:
        growth_range = default_growth_range()

    wacc_values = axis_values(wacc_range, decimals)
    growth_values = axis_values(growth_range, decimals)

    matrix = []
    failed_cells = 0
    for wacc in wacc_values:
        row = []
        for growth in growth_values:
            try:
                valuation = value_enterprise(base_year, assumptions, wacc, terminal_inputs.with_growth(growth))
                price = per_share_value(valuation.enterprise_value, company)
            except (DCFError, ArithmeticError) as exc:
                logger.debug("Sensitivity cell wacc=%.4f growth=%.4f failed: %s", wacc, growth, exc)
                failed_cells += 1
                row.append(FAILED_CELL)
                continue
            row.append(round(price, 2))
        matrix.append(tuple(row))

    if failed_cells:
        logger.info("%s sensitivity: %d of %d cells could not be valued",
                    company.ticker, failed_cells, len(wacc_values) * len(growth_values))

    return SensitivityTable(
        wacc_values=tuple(wacc_values),
        growth_values=tuple(growth_values),
        matrix=tuple(matrix),
    )
