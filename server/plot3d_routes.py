"""
/api/plot3d endpoints: point evaluation, surface meshes, validation,
analysis, presets and statistics.
"""

import logging
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter

from errors import ApiError, ExpressionError
from plot3d_solver import (
    DEFAULT_DOMAIN,
    analyze_surface,
    clamp_resolution,
    evaluate_point,
    generate_surface,
    validate_surface_expression,
)
from presets import SURFACE_PRESETS, preset_categories
from schemas import (
    AnalysisResponse,
    Domain,
    ErrorResponse,
    EvaluateRequest,
    PointResponse,
    PresetsResponse,
    StatsResponse,
    SurfaceExpressionRequest,
    SurfaceRequest,
    SurfaceResponse,
    ValidationResponse,
)

logger = logging.getLogger("mathsolver.api")

router = APIRouter(
    prefix="/api/plot3d",
    tags=["plot3d"],
    responses={400: {"model": ErrorResponse}, 500: {"model": ErrorResponse}},
)


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _domain_dict(domain: Optional[Domain]) -> dict:
    if domain is None:
        return {"x": list(DEFAULT_DOMAIN["x"]), "y": list(DEFAULT_DOMAIN["y"])}
    return {"x": list(domain.x), "y": list(domain.y)}


@router.post("/evaluate", response_model=PointResponse)
async def evaluate(request: EvaluateRequest) -> dict:
    """Evaluate z = f(x, y) at a single point."""
    if not request.equation or not _is_number(request.x) or not _is_number(request.y):
        raise ApiError(
            400,
            "Invalid input: equation, x, and y coordinates are required",
            "validation",
            {
                "equation": "provided" if request.equation else "missing",
                "x": "valid" if _is_number(request.x) else "invalid",
                "y": "valid" if _is_number(request.y) else "invalid",
            },
        )
    try:
        result = evaluate_point(request.equation, request.x, request.y, request.parameters)
    except ExpressionError as e:
        logger.warning("Rejected 3D function %r: %s", request.equation, e)
        raise ApiError(400, "Invalid 3D function", "validation", str(e))
    except Exception as e:
        logger.error("3D function evaluation error for %r: %s", request.equation, e)
        raise ApiError(500, "Failed to evaluate 3D function", "server", str(e))

    return {
        "success": True,
        "data": {
            "x": request.x,
            "y": request.y,
            "z": result["z"],
            "equation": request.equation,
            "parameters": request.parameters,
        },
        "metadata": {
            "timestamp": _timestamp(),
            "computationTime": result["computationTime"],
            "expression": result["expression"],
        },
    }


@router.post("/surface", response_model=SurfaceResponse)
async def surface(request: SurfaceRequest) -> dict:
    """Sample the equation over the domain and return a triangle mesh."""
    if not request.equation:
        raise ApiError(400, "Equation is required for 3D surface generation", "validation")
    domain = _domain_dict(request.domain)
    resolution = clamp_resolution(request.resolution)
    try:
        data = generate_surface(request.equation, domain, resolution, request.parameters)
    except ExpressionError as e:
        logger.warning("Rejected surface equation %r: %s", request.equation, e)
        raise ApiError(400, "Invalid 3D surface equation", "validation", str(e))
    except Exception as e:
        logger.error("3D surface generation error for %r: %s", request.equation, e)
        raise ApiError(500, "Failed to generate 3D surface data", "server", str(e))

    statistics = data["statistics"]
    logger.info(
        "Generated surface %r at resolution %d (%d/%d valid points) in %.1f ms",
        request.equation,
        resolution,
        statistics["validPoints"],
        statistics["totalPoints"],
        statistics["computationTime"],
    )
    return {
        "success": True,
        "data": data,
        "metadata": {
            "equation": request.equation,
            "domain": domain,
            "resolution": resolution,
            "parameters": request.parameters,
            "computationTime": statistics["computationTime"],
            "pointCount": len(data["vertices"]) // 3,
            "timestamp": _timestamp(),
        },
    }


@router.post("/validate", response_model=ValidationResponse)
async def validate(request: SurfaceExpressionRequest) -> dict:
    if not request.equation:
        raise ApiError(400, "Equation is required for validation", "validation")
    try:
        validation = validate_surface_expression(request.equation, request.parameters)
    except Exception as e:
        logger.error("3D expression validation error for %r: %s", request.equation, e)
        raise ApiError(500, "Failed to validate 3D expression", "server", str(e))
    return {
        "success": True,
        "data": validation,
        "metadata": {"equation": request.equation, "timestamp": _timestamp()},
    }


@router.post("/analyze", response_model=AnalysisResponse)
async def analyze(request: SurfaceExpressionRequest) -> dict:
    """Classify the surface and report symmetry, stationary points and z range."""
    if not request.equation:
        raise ApiError(400, "Equation is required for analysis", "validation")
    domain = _domain_dict(request.domain)
    try:
        analysis = analyze_surface(request.equation, domain, request.parameters)
    except ExpressionError as e:
        logger.warning("Rejected equation for analysis %r: %s", request.equation, e)
        raise ApiError(400, "Invalid 3D function", "validation", str(e))
    except Exception as e:
        logger.error("3D function analysis error for %r: %s", request.equation, e)
        raise ApiError(500, "Failed to analyze 3D function", "server", str(e))
    return {
        "success": True,
        "data": analysis,
        "metadata": {"equation": request.equation, "timestamp": _timestamp()},
    }


@router.get("/presets", response_model=PresetsResponse)
async def presets() -> dict:
    return {
        "success": True,
        "data": list(SURFACE_PRESETS),
        "metadata": {
            "count": len(SURFACE_PRESETS),
            "categories": preset_categories(),
            "timestamp": _timestamp(),
        },
    }


@router.get("/stats", response_model=StatsResponse)
async def stats() -> dict:
    # Usage is not tracked; the shape is kept for clients that display it.
    now = _timestamp()
    return {
        "success": True,
        "data": {
            "totalRequests": 0,
            "averageComputationTime": 0,
            "mostPopularFunctions": [],
            "errorRate": 0,
            "lastUpdated": now,
        },
        "metadata": {"timestamp": now},
    }
