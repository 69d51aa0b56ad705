# dcf_builder/utils/data_validator.py
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from dcf_builder.data_pipeline.models import (
    CompanyProfile,
    DCFAssumptions,
    TerminalValueInputs,
    TerminalValueMethod,
    WACCInputs,
)
from dcf_builder.utils.exceptions import MalformedInputError

logger = logging.getLogger(__name__)


@dataclass
class ValidationResult:
    """Result of input validation with details"""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    score: float = 100.0  # 0-100 validation score

    def raise_for_errors(self):
        if self.errors:
            raise MalformedInputError("; ".join(self.errors))


class InputValidator:
    """Structural checks on valuation inputs.

    Only invariants the engine depends on are errors; implausible but legal
    values (negative betas, steep declines) are warnings at most.
    """

    def __init__(self):
        self.validation_rules = {
            'min_history_years': 2,
            'max_abs_growth': 1.0,  # >100% a year is flagged
            'max_margin': 1.0,
            'tax_rate_range': (0.0, 0.6),
            'max_perpetuity_growth': 0.05,
            'error_penalty': 25,
            'warning_penalty': 5,
        }

    def validate_company(self, company: CompanyProfile) -> ValidationResult:
        errors = []
        warnings = []

        history = company.historical_financials
        if not history:
            errors.append("Historical financials are empty")
        elif len(history) < self.validation_rules['min_history_years']:
            warnings.append(f"Only {len(history)} historical year(s); growth history unavailable")

        years = [s.year for s in history]
        if years != sorted(years):
            warnings.append("Historical financials are not ordered oldest to newest; last entry is used as base year")

        if company.shares_outstanding <= 0:
            errors.append(f"Shares outstanding must be positive (got {company.shares_outstanding})")
        if company.current_price <= 0:
            warnings.append("Current price is not positive; implied upside and reverse DCF are undefined")
        if history and history[-1].revenue <= 0:
            warnings.append(f"Base year revenue is not positive ({history[-1].revenue})")

        return self._build_result(errors, warnings, company.ticker)

    def validate_assumptions(self, assumptions: DCFAssumptions, label: str = "assumptions") -> ValidationResult:
        errors = []
        warnings = []

        rates = assumptions.revenue_growth_rates
        horizon = assumptions.projection_years
        if len(rates) < horizon:
            warnings.append(
                f"{len(rates)} growth rate(s) for {horizon} years; last rate {rates[-1]:.2%} is reused"
            )
        elif len(rates) > horizon:
            warnings.append(f"{len(rates) - horizon} growth rate(s) beyond the horizon are ignored")

        for i, rate in enumerate(rates[:horizon]):
            if rate <= -1:
                warnings.append(f"Year {i + 1} growth {rate:.2%} drives revenue to zero or below")
            elif abs(rate) > self.validation_rules['max_abs_growth']:
                warnings.append(f"Year {i + 1} growth {rate:.2%} is outside +/-100%")

        for name in ('gross_margin', 'operating_margin'):
            value = getattr(assumptions, name)
            if value > self.validation_rules['max_margin']:
                warnings.append(f"{name} {value:.2%} exceeds 100%")
        if assumptions.operating_margin > assumptions.gross_margin:
            warnings.append("Operating margin exceeds gross margin")

        low, high = self.validation_rules['tax_rate_range']
        if not low <= assumptions.tax_rate <= high:
            warnings.append(f"Tax rate {assumptions.tax_rate:.2%} outside {low:.0%}-{high:.0%}")

        return self._build_result(errors, warnings, label)

    def validate_wacc_inputs(self, inputs: WACCInputs) -> ValidationResult:
        errors = []
        warnings = []

        if inputs.market_cap_equity + inputs.total_debt <= 0:
            errors.append("Market cap plus total debt must be positive")
        if inputs.beta < 0:
            warnings.append(f"Negative beta ({inputs.beta})")
        if inputs.risk_free_rate < 0:
            warnings.append(f"Negative risk-free rate ({inputs.risk_free_rate:.2%})")

        return self._build_result(errors, warnings, "wacc_inputs")

    def validate_terminal_inputs(self, inputs: TerminalValueInputs,
                                 wacc: Optional[float] = None) -> ValidationResult:
        errors = []
        warnings = []

        if inputs.method is TerminalValueMethod.PERPETUITY:
            growth = inputs.perpetuity_growth_rate
            if growth is None:
                errors.append("Perpetuity method requires a perpetuity growth rate")
            else:
                if wacc is not None and growth >= wacc:
                    errors.append(f"Perpetuity growth {growth:.2%} must be below WACC {wacc:.2%}")
                if growth > self.validation_rules['max_perpetuity_growth']:
                    warnings.append(f"Perpetuity growth {growth:.2%} exceeds long-run GDP growth")
        elif inputs.exit_multiple is None or inputs.exit_multiple <= 0:
            errors.append("Exit multiple method requires a positive EV/EBITDA multiple")

        return self._build_result(errors, warnings, "terminal_inputs")

    def validate_all(self, company: CompanyProfile, assumptions: DCFAssumptions,
                     wacc_inputs: WACCInputs, terminal_inputs: TerminalValueInputs,
                     wacc: Optional[float] = None) -> ValidationResult:
        """Combined report across every input group"""
        parts = [
            self.validate_company(company),
            self.validate_assumptions(assumptions),
            self.validate_wacc_inputs(wacc_inputs),
            self.validate_terminal_inputs(terminal_inputs, wacc),
        ]
        errors = [e for part in parts for e in part.errors]
        warnings = [w for part in parts for w in part.warnings]
        return self._build_result(errors, warnings, company.ticker, log=False)

    def _build_result(self, errors: List[str], warnings: List[str], subject: str,
                      log: bool = True) -> ValidationResult:
        score = self._calculate_validation_score(errors, warnings)

        if log and errors:
            logger.error(f"Input validation failed for {subject}: {errors}")
        if log and warnings:
            logger.warning(f"Input validation warnings for {subject}: {warnings}")

        return ValidationResult(
            is_valid=not errors,
            errors=errors,
            warnings=warnings,
            score=score
        )

    def _calculate_validation_score(self, errors: List[str], warnings: List[str]) -> float:
        penalty = (len(errors) * self.validation_rules['error_penalty'] +
                   len(warnings) * self.validation_rules['warning_penalty'])
        return float(max(0, 100 - penalty))
