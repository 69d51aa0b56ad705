"""Error taxonomy for the valuation engine."""


class DCFError(ValueError):
    """Base class for every valuation failure raised by the engine."""


class InvalidCapitalStructureError(DCFError):
    """Raised when equity plus debt is zero or negative."""


class InvalidDiscountRateError(DCFError):
    """Raised when the discount rate is -100% or lower."""


class DivergentTerminalValueError(DCFError):
    """Raised when the perpetuity growth rate is not below WACC."""


class InvalidTerminalValueConfigError(DCFError):
    """Raised when the terminal method or its companion parameter is unusable."""


class MalformedInputError(DCFError):
    """Raised when inputs violate a structural invariant."""


class NegativeRevenueError(DCFError):
    """Raised when a projection goes negative and negative revenue is disallowed."""


class ConvergenceError(DCFError):
    """Raised when the reverse solver exhausts its iteration cap."""

    def __init__(self, message: str, result=None):
        super().__init__(message)
        self.result = result
