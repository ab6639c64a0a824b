"""
Exception types shared by the solver, the 3D plotting utilities and the API layer.
"""

from typing import Any, Optional


class MathError(Exception):
    """Base class for failures raised by the math delegate."""


class ExpressionError(MathError):
    """The input could not be parsed or uses a disallowed construct."""


class EvaluationError(MathError):
    """The expression parsed but could not be computed to a usable value."""


class ApiError(Exception):
    """Raised by route handlers and rendered as the JSON error envelope."""

    def __init__(
        self,
        status_code: int,
        error: str,
        type: str = "server",
        details: Optional[Any] = None,
    ):
        super().__init__(error)
        self.status_code = status_code
        self.error = error
        self.type = type
        self.details = details
