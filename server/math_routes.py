"""
/api/math endpoints: step-by-step solving, validation and examples.
"""

import logging

from fastapi import APIRouter

from errors import ApiError
from math_solver import get_expression_type, solve_math_expression, validate_expression
from presets import SOLVER_EXAMPLES
from schemas import (
    ErrorResponse,
    ExamplesResponse,
    ExpressionRequest,
    SolveResponse,
    ValidateExpressionResponse,
)

logger = logging.getLogger("mathsolver.api")

router = APIRouter(prefix="/api/math", tags=["math"])


def _require_expression(request: ExpressionRequest) -> str:
    expression = (request.expression or "").strip()
    if not expression:
        raise ApiError(400, "Expression is required", "validation")
    return expression


@router.post(
    "/solve",
    response_model=SolveResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}},
)
async def solve(request: ExpressionRequest) -> dict:
    """Solve an expression and return the narrated steps.

    Solver failures are reported in the body with ``success: false``.
    """
    expression = _require_expression(request)
    result = solve_math_expression(expression)
    logger.info("Solved %r as %s (success=%s)", expression, result["type"], result["success"])
    return {
        **result,
        "inputExpression": request.expression,
        "detectedType": get_expression_type(expression),
    }


@router.post(
    "/validate",
    response_model=ValidateExpressionResponse,
    response_model_exclude_none=True,
    responses={400: {"model": ErrorResponse}},
)
async def validate(request: ExpressionRequest) -> dict:
    return validate_expression(_require_expression(request))


@router.get("/examples", response_model=ExamplesResponse)
async def examples() -> dict:
    return {
        "success": True,
        "examples": {group: list(items) for group, items in SOLVER_EXAMPLES.items()},
    }
