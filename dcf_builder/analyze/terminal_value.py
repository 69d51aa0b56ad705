"""Terminal value beyond the explicit projection horizon."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

from dcf_builder.data_pipeline.models import TerminalValueInputs, TerminalValueMethod
from dcf_builder.utils.exceptions import (
    DivergentTerminalValueError,
    InvalidDiscountRateError,
    InvalidTerminalValueConfigError,
    MalformedInputError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TerminalValueResult:
    terminal_value: float
    terminal_value_pv: float
    method: TerminalValueMethod
    discount_factor: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            "terminal_value": self.terminal_value,
            "terminal_value_pv": self.terminal_value_pv,
            "method": self.method.value,
            "discount_factor": self.discount_factor,
        }


def _gordon_growth(final_year_fcf: float, wacc: float, growth: float) -> float:
    if growth >= wacc:
        raise DivergentTerminalValueError(
            f"Perpetuity growth {growth:.4f} must be below WACC {wacc:.4f}"
        )
    return final_year_fcf * (1 + growth) / (wacc - growth)


def compute_terminal_value(
    final_year_fcf: float,
    final_year_ebitda: float,
    wacc: float,
    inputs: TerminalValueInputs,
    projection_years: int,
) -> TerminalValueResult:
    """Terminal value and its present value.

    The terminal value sits at the end of the final projection year, so it
    is discounted a full ``projection_years`` periods, unlike the mid-year
    discounting of the annual cash flows.
    """
    if wacc <= -1:
        raise InvalidDiscountRateError(f"WACC must be greater than -100%, got {wacc}")
    if projection_years <= 0:
        raise MalformedInputError(f"projection_years must be >= 1, got {projection_years}")

    if inputs.method is TerminalValueMethod.PERPETUITY:
        if inputs.perpetuity_growth_rate is None:
            raise InvalidTerminalValueConfigError("Perpetuity method requires perpetuity_growth_rate")
        terminal_value = _gordon_growth(final_year_fcf, wacc, inputs.perpetuity_growth_rate)
    elif inputs.method is TerminalValueMethod.EXIT_MULTIPLE:
        if inputs.exit_multiple is None:
            raise InvalidTerminalValueConfigError("Exit multiple method requires exit_multiple")
        if inputs.exit_multiple <= 0:
            raise InvalidTerminalValueConfigError(
                f"Exit multiple must be positive, got {inputs.exit_multiple}"
            )
        terminal_value = final_year_ebitda * inputs.exit_multiple
    else:
        raise InvalidTerminalValueConfigError(f"Unsupported terminal value method: {inputs.method!r}")

    discount_factor = 1 / (1 + wacc) ** projection_years
    return TerminalValueResult(
        terminal_value=terminal_value,
        terminal_value_pv=terminal_value * discount_factor,
        method=inputs.method,
        discount_factor=discount_factor,
    )
