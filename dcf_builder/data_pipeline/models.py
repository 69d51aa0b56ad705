"""Datamodels for valuation inputs supplied by the data provider and assumption source."""
from __future__ import annotations

import math
import re
from dataclasses import asdict, dataclass, field, fields, replace
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from dcf_builder.utils.exceptions import InvalidTerminalValueConfigError, MalformedInputError

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

# Provider keys that do not follow the plain camelCase -> snake_case rule
_FIELD_ALIASES = {
    "depreciationAsPercentOfRevenue": "depreciation_pct_of_revenue",
    "capexAsPercentOfRevenue": "capex_pct_of_revenue",
    "nwcAsPercentOfRevenue": "nwc_pct_of_revenue",
    "incomeBeforeTax": "income_before_tax",
    "changeInWorkingCapital": "change_in_working_capital",
}


def _snake_case(key: str) -> str:
    if key in _FIELD_ALIASES:
        return _FIELD_ALIASES[key]
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def _normalise_payload(cls, payload: Mapping[str, Any]) -> Dict[str, Any]:
    """Map provider keys onto dataclass field names, dropping unknown keys."""
    known = {f.name for f in fields(cls)}
    normalised: Dict[str, Any] = {}
    for key, value in payload.items():
        name = key if key in known else _snake_case(key)
        if name in known:
            normalised[name] = value
    return normalised


@dataclass(frozen=True)
class FinancialStatement:
    """One fiscal year of reported financials. Capex is stored as a magnitude."""

    year: int
    revenue: float
    cost_of_revenue: float = 0.0
    gross_profit: float = 0.0
    operating_expenses: float = 0.0
    operating_income: float = 0.0
    interest_expense: float = 0.0
    income_before_tax: float = 0.0
    income_tax_expense: float = 0.0
    net_income: float = 0.0
    depreciation: float = 0.0
    capital_expenditures: float = 0.0
    change_in_working_capital: float = 0.0
    total_debt: float = 0.0
    total_equity: float = 0.0
    shares_outstanding: float = 0.0

    def __post_init__(self) -> None:
        # cash flow statements report capex as an outflow
        object.__setattr__(self, "capital_expenditures", abs(float(self.capital_expenditures)))

    @property
    def ebitda(self) -> float:
        return self.operating_income + self.depreciation

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "FinancialStatement":
        return cls(**_normalise_payload(cls, payload))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CompanyProfile:
    """Market and balance-sheet context for the company being valued."""

    ticker: str
    current_price: float
    shares_outstanding: float
    total_debt: float
    cash: float
    historical_financials: Tuple[FinancialStatement, ...] = field(default_factory=tuple)
    name: Optional[str] = None
    sector: Optional[str] = None
    industry: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "historical_financials", tuple(self.historical_financials))

    @property
    def base_year(self) -> FinancialStatement:
        """Most recent statement; historicals are ordered oldest to newest."""
        if not self.historical_financials:
            raise MalformedInputError(f"{self.ticker}: no historical financial statements supplied")
        return self.historical_financials[-1]

    @property
    def net_debt(self) -> float:
        return self.total_debt - self.cash

    @property
    def market_cap(self) -> float:
        return self.current_price * self.shares_outstanding

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "CompanyProfile":
        values = _normalise_payload(cls, payload)
        statements = values.get("historical_financials") or ()
        values["historical_financials"] = tuple(
            item if isinstance(item, FinancialStatement) else FinancialStatement.from_dict(item)
            for item in statements
        )
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class DCFAssumptions:
    """Forward-looking assumptions for one scenario. Rates are decimal fractions."""

    revenue_growth_rates: Tuple[float, ...]
    gross_margin: float
    operating_margin: float
    tax_rate: float
    depreciation_pct_of_revenue: float
    capex_pct_of_revenue: float
    nwc_pct_of_revenue: float
    projection_years: int = 5

    def __post_init__(self) -> None:
        object.__setattr__(self, "revenue_growth_rates", tuple(float(g) for g in self.revenue_growth_rates))
        if isinstance(self.projection_years, bool) or not isinstance(self.projection_years, int):
            raise MalformedInputError(f"projection_years must be an integer, got {self.projection_years!r}")
        if self.projection_years <= 0:
            raise MalformedInputError(f"projection_years must be >= 1, got {self.projection_years}")
        if not self.revenue_growth_rates:
            raise MalformedInputError("revenue_growth_rates must contain at least one rate")

    def growth_rate_for_year(self, index: int) -> float:
        """Growth rate for projection year ``index`` (0-based).

        Fade-forward policy: when fewer rates than projection years are
        supplied, the last supplied rate is reused for every remaining year.
        Scenario sets are routinely authored with fewer explicit years than
        the horizon and rely on this.
        """
        if index < len(self.revenue_growth_rates):
            return self.revenue_growth_rates[index]
        return self.revenue_growth_rates[-1]

    def with_uniform_growth(self, rate: float) -> "DCFAssumptions":
        return replace(self, revenue_growth_rates=(rate,) * self.projection_years)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "DCFAssumptions":
        return cls(**_normalise_payload(cls, payload))

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["revenue_growth_rates"] = list(self.revenue_growth_rates)
        return payload


@dataclass(frozen=True)
class WACCInputs:
    risk_free_rate: float
    beta: float
    equity_risk_premium: float
    cost_of_debt: float
    market_cap_equity: float
    total_debt: float
    tax_rate: float

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "WACCInputs":
        return cls(**_normalise_payload(cls, payload))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


class TerminalValueMethod(str, Enum):
    PERPETUITY = "perpetuity"
    EXIT_MULTIPLE = "exitMultiple"

    @classmethod
    def parse(cls, value: Any) -> "TerminalValueMethod":
        if isinstance(value, cls):
            return value
        for member in cls:
            if value in (member.value, member.name, member.name.lower()):
                return member
        raise InvalidTerminalValueConfigError(f"Unknown terminal value method: {value!r}")


@dataclass(frozen=True)
class TerminalValueInputs:
    """Terminal value configuration.

    ``perpetuity`` needs ``perpetuity_growth_rate``; ``exitMultiple`` needs a
    positive ``exit_multiple`` (EV/EBITDA). Missing companions are reported by
    the terminal value calculator, not at construction.
    """

    method: TerminalValueMethod
    perpetuity_growth_rate: Optional[float] = None
    exit_multiple: Optional[float] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "method", TerminalValueMethod.parse(self.method))

    @classmethod
    def perpetuity(cls, growth_rate: float) -> "TerminalValueInputs":
        return cls(method=TerminalValueMethod.PERPETUITY, perpetuity_growth_rate=growth_rate)

    @classmethod
    def multiple(cls, exit_multiple: float) -> "TerminalValueInputs":
        return cls(method=TerminalValueMethod.EXIT_MULTIPLE, exit_multiple=exit_multiple)

    def with_growth(self, growth_rate: float) -> "TerminalValueInputs":
        """Substitute the perpetuity growth rate; exit-multiple inputs are returned as-is."""
        if self.method is TerminalValueMethod.PERPETUITY:
            return replace(self, perpetuity_growth_rate=growth_rate)
        return self

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "TerminalValueInputs":
        return cls(**_normalise_payload(cls, payload))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "method": self.method.value,
            "perpetuity_growth_rate": self.perpetuity_growth_rate,
            "exit_multiple": self.exit_multiple,
        }


@dataclass(frozen=True)
class ValueRange:
    """Inclusive axis specification for the sensitivity grid."""

    min: float
    max: float
    step: float

    def __post_init__(self) -> None:
        if not all(math.isfinite(v) for v in (self.min, self.max, self.step)):
            raise MalformedInputError(f"Range bounds must be finite: {self}")
        if self.max < self.min:
            raise MalformedInputError(f"Range max {self.max} is below min {self.min}")
        if self.step <= 0 and self.max != self.min:
            raise MalformedInputError(f"Range step must be positive, got {self.step}")

    @classmethod
    def centered(cls, center: float, spread: float, step: float) -> "ValueRange":
        return cls(min=center - spread, max=center + spread, step=step)

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "ValueRange":
        return cls(**_normalise_payload(cls, payload))


def statements_from_records(records: Sequence[Mapping[str, Any]]) -> List[FinancialStatement]:
    """Build statements from provider records, ordered oldest to newest."""
    statements = [FinancialStatement.from_dict(record) for record in records]
    return sorted(statements, key=lambda statement: statement.year)
