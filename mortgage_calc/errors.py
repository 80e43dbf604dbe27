"""Exceptions raised by the mortgage calculation engine."""


class InvalidInput(ValueError):
    """A required parameter is missing or holds an unusable value.

    Raised before any computation starts, so no partial result exists.
    """


class NumericDivergence(ArithmeticError):
    """The IRR root-finder did not meet its tolerance within the iteration budget."""

    def __init__(self, message: str, estimate=None, iterations: int = 0) -> None:
        super().__init__(message)
        self.estimate = estimate
        self.iterations = iterations
