"""
Surface sampling and mesh generation for the /api/plot3d endpoints.

``generate_surface`` samples ``z = f(x, y)`` on an inclusive
``(resolution + 1) x (resolution + 1)`` grid and emits a flat vertex array
plus two triangles per grid quad. Samples that cannot be evaluated keep
their place in the grid with ``z = INVALID_Z`` so the indices stay valid.
"""

import logging
import math
import time
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

import sympy as sp

from errors import EvaluationError, ExpressionError, MathError
from evaluator import (
    SymPyEvaluator,
    default_evaluator,
    find_dangerous_identifiers,
    is_variable_name,
)

logger = logging.getLogger("mathsolver.plot3d")

MIN_RESOLUTION = 10
MAX_RESOLUTION = 100
DEFAULT_RESOLUTION = 50
DEFAULT_DOMAIN = {"x": (-5.0, 5.0), "y": (-5.0, 5.0)}
INVALID_Z = 0.0
RESERVED_VARIABLES = ("x", "y")

_TRIG = (sp.sin, sp.cos, sp.tan, sp.cot, sp.sec, sp.csc)


def clamp_resolution(resolution: Optional[int]) -> int:
    if resolution is None:
        return DEFAULT_RESOLUTION
    return max(MIN_RESOLUTION, min(MAX_RESOLUTION, int(resolution)))


def bind_parameters(parameters: Optional[Mapping[str, Any]]) -> Dict[str, float]:
    """Parameters usable as bindings: valid names other than x/y with finite numeric values."""
    bound = {}
    for name, value in (parameters or {}).items():
        if name in RESERVED_VARIABLES or not is_variable_name(name):
            continue
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            continue
        try:
            value = float(value)
        except OverflowError:
            continue
        if math.isfinite(value):
            bound[name] = value
    return bound


def _domain_bounds(domain: Optional[Mapping[str, Sequence[float]]]) -> Tuple[Tuple[float, float], Tuple[float, float]]:
    domain = domain or DEFAULT_DOMAIN
    x_min, x_max = domain.get("x") or DEFAULT_DOMAIN["x"]
    y_min, y_max = domain.get("y") or DEFAULT_DOMAIN["y"]
    return (float(x_min), float(x_max)), (float(y_min), float(y_max))


def _elapsed_ms(start: float) -> float:
    return round((time.perf_counter() - start) * 1000, 3)


def _sample(fn: Callable[..., float], x: float, y: float, values: Tuple[float, ...]) -> Optional[float]:
    """The z value at (x, y), or None when the point cannot be evaluated."""
    try:
        return fn(x, y, *values)
    except EvaluationError as e:
        logger.debug("Invalid sample at (%s, %s): %s", x, y, e)
        return None


def build_indices(resolution: int) -> List[int]:
    """Triangle indices for a ``resolution x resolution`` quad grid.

    Quad ``(i, j)`` with corners ``a = i*(res+1)+j``, ``b = a+1``,
    ``c = a+res+1``, ``d = c+1`` becomes triangles ``(a, b, c)`` and ``(b, d, c)``.
    """
    indices = []
    for i in range(resolution):
        for j in range(resolution):
            a = i * (resolution + 1) + j
            b = a + 1
            c = a + resolution + 1
            d = c + 1
            indices.extend((a, b, c))
            indices.extend((b, d, c))
    return indices


def generate_surface(
    equation: str,
    domain: Optional[Mapping[str, Sequence[float]]] = None,
    resolution: Optional[int] = None,
    parameters: Optional[Mapping[str, Any]] = None,
    evaluator: Optional[SymPyEvaluator] = None,
) -> Dict[str, Any]:
    evaluator = evaluator or default_evaluator
    start = time.perf_counter()
    expr = evaluator.parse(equation)
    try:
        params = bind_parameters(parameters)
        fn = evaluator.compile(expr, [*RESERVED_VARIABLES, *params])
        values = tuple(params.values())
        (x_min, x_max), (y_min, y_max) = _domain_bounds(domain)
        res = clamp_resolution(resolution)

        vertices: List[float] = []
        min_z = math.inf
        max_z = -math.inf
        valid_count = 0
        for i in range(res + 1):
            x = x_min + (x_max - x_min) * (i / res)
            for j in range(res + 1):
                y = y_min + (y_max - y_min) * (j / res)
                z = _sample(fn, x, y, values)
                if z is None:
                    vertices.extend((x, y, INVALID_Z))
                    continue
                vertices.extend((x, y, z))
                min_z = min(min_z, z)
                max_z = max(max_z, z)
                valid_count += 1

        indices = build_indices(res)
        total = (res + 1) * (res + 1)
        z_bounds = [min_z, max_z] if valid_count else [None, None]
        return {
            "vertices": vertices,
            "indices": indices,
            "bounds": {"x": [x_min, x_max], "y": [y_min, y_max], "z": z_bounds},
            "statistics": {
                "totalPoints": total,
                "validPoints": valid_count,
                "invalidPoints": total - valid_count,
                "computationTime": _elapsed_ms(start),
                "resolution": res,
            },
        }
    except MathError:
        raise
    except Exception as e:
        raise EvaluationError(f"3D data generation failed: {e}") from e


def evaluate_point(
    equation: str,
    x: float,
    y: float,
    parameters: Optional[Mapping[str, Any]] = None,
    evaluator: Optional[SymPyEvaluator] = None,
) -> Dict[str, Any]:
    evaluator = evaluator or default_evaluator
    start = time.perf_counter()
    if not all(isinstance(v, (int, float)) and math.isfinite(v) for v in (x, y)):
        raise ExpressionError("Invalid coordinates: x and y must be finite numbers")
    expr = evaluator.parse(equation)
    params = bind_parameters(parameters)
    z = evaluator.evaluate(expr, {"x": x, "y": y, **params})
    bound = expr.subs({sp.Symbol(name): value for name, value in params.items()})
    return {
        "z": z,
        "computationTime": _elapsed_ms(start),
        "expression": evaluator.format(bound),
    }


def _function_names(expr: sp.Expr) -> List[str]:
    names = {fn.func.__name__ for fn in expr.atoms(sp.Function)}
    if any(p.exp == sp.S.Half for p in expr.atoms(sp.Pow)):
        names.add("sqrt")
    return sorted(names)


def validate_surface_expression(
    equation: str,
    parameters: Optional[Mapping[str, Any]] = None,
    evaluator: Optional[SymPyEvaluator] = None,
) -> Dict[str, Any]:
    evaluator = evaluator or default_evaluator
    if not isinstance(equation, str) or not equation.strip():
        return {
            "isValid": False,
            "error": "Equation must be a non-empty string",
            "variables": [],
            "functions": [],
            "warnings": [],
            "suggestions": [],
        }

    dangerous = find_dangerous_identifiers(equation)
    if dangerous:
        return {
            "isValid": False,
            "error": f"Dangerous functions detected: {', '.join(dangerous)}",
            "variables": [],
            "functions": [],
            "warnings": [],
            "suggestions": ["Remove dangerous functions for security"],
        }

    try:
        expr = evaluator.parse(equation)
    except ExpressionError as e:
        return {
            "isValid": False,
            "error": f"Expression validation failed: {e}",
            "variables": [],
            "functions": [],
            "warnings": ["Invalid mathematical expression"],
            "suggestions": ["Check equation syntax and mathematical notation"],
        }

    params = bind_parameters(parameters)
    names = sorted(s.name for s in expr.free_symbols)
    # only symbols still waiting for a value are reported
    variables = [n for n in names if n not in RESERVED_VARIABLES and n not in params]
    warnings = []
    suggestions = []

    if not set(names) & set(RESERVED_VARIABLES):
        warnings.append("Expression does not contain x or y variables")
        suggestions.append("Add x and/or y variables to create a 3D surface")

    undefined = variables
    if undefined:
        warnings.append(f"Undefined variables: {', '.join(undefined)}")
        suggestions.append("Define values for undefined variables in parameters")

    reserved = [n for n in (parameters or {}) if n in RESERVED_VARIABLES]
    if reserved:
        warnings.append(f"Parameters named {', '.join(reserved)} are ignored")
        suggestions.append("Rename parameters so they do not shadow x or y")

    if not undefined:
        try:
            evaluator.compile(expr, [*RESERVED_VARIABLES, *params])(0.0, 0.0, *params.values())
        except EvaluationError as e:
            warnings.append(f"Function evaluation test failed at (0, 0): {e}")
            suggestions.append("Check for division by zero or undefined operations")

    return {
        "isValid": not warnings,
        "variables": variables,
        "functions": _function_names(expr),
        "warnings": warnings,
        "suggestions": suggestions,
    }


def _classify_surface(expr: sp.Expr, x: sp.Symbol, y: sp.Symbol) -> str:
    if not expr.has(x) and not expr.has(y):
        return "constant"
    functions = expr.atoms(sp.Function)
    if any(isinstance(fn, _TRIG) for fn in functions):
        return "trigonometric"
    if any(isinstance(fn, (sp.exp, sp.log)) for fn in functions):
        return "exponential"
    if expr.is_polynomial(x, y):
        return "quadratic" if sp.Poly(expr, x, y).total_degree() == 2 else "polynomial"
    return "algebraic"


def _is_radial(expr: sp.Expr, x: sp.Symbol, y: sp.Symbol) -> bool:
    """True when z depends on x and y only through x^2 + y^2."""
    if sp.simplify(expr.subs({x: y, y: x}, simultaneous=True) - expr) != 0:
        return False
    r = sp.Symbol("r", positive=True)
    t = sp.Symbol("t", real=True)
    polar = expr.subs({x: r * sp.cos(t), y: r * sp.sin(t)}, simultaneous=True)
    return sp.simplify(sp.diff(polar, t)) == 0


def _symmetry(expr: sp.Expr, x: sp.Symbol, y: sp.Symbol) -> str:
    even_x = sp.simplify(expr.subs(x, -x) - expr) == 0
    even_y = sp.simplify(expr.subs(y, -y) - expr) == 0
    if even_x and even_y:
        if expr.has(x) and _is_radial(expr, x, y):
            return "radial"
        return "both-axes"
    if even_x:
        return "x-axis"
    if even_y:
        return "y-axis"
    return "none"


def _critical_points(expr, x, y, bounds) -> List[Dict[str, Any]]:
    """Stationary points of polynomial surfaces inside the domain, classified by the Hessian test."""
    if not expr.is_polynomial(x, y) or sp.Poly(expr, x, y).total_degree() > 3:
        return []
    fx, fy = sp.diff(expr, x), sp.diff(expr, y)
    fxx, fyy, fxy = sp.diff(fx, x), sp.diff(fy, y), sp.diff(fx, y)
    (x_min, x_max), (y_min, y_max) = bounds
    points = []
    for solution in sp.solve([fx, fy], [x, y], dict=True):
        if x not in solution or y not in solution:
            continue
        px, py = solution[x], solution[y]
        if not (px.is_real and py.is_real):
            continue
        if not (x_min <= px <= x_max and y_min <= py <= y_max):
            continue
        at = {x: px, y: py}
        z = expr.subs(at)
        if not z.is_number:
            continue
        det = (fxx * fyy - fxy ** 2).subs(at)
        curvature = fxx.subs(at)
        if not (det.is_number and curvature.is_number):
            # the Hessian depends on an unbound parameter
            kind = "undetermined"
        elif det > 0:
            kind = "minimum" if curvature > 0 else "maximum"
        elif det < 0:
            kind = "saddle"
        else:
            kind = "degenerate"
        points.append({
            "x": float(px),
            "y": float(py),
            "z": float(z),
            "kind": kind,
        })
    return points


def analyze_surface(
    equation: str,
    domain: Optional[Mapping[str, Sequence[float]]] = None,
    parameters: Optional[Mapping[str, Any]] = None,
    evaluator: Optional[SymPyEvaluator] = None,
) -> Dict[str, Any]:
    """Classify the surface and report its symmetry, stationary points and sampled z range."""
    evaluator = evaluator or default_evaluator
    expr = evaluator.parse(equation)
    params = bind_parameters(parameters)
    expr = expr.subs({sp.Symbol(name): value for name, value in params.items()})
    x, y = sp.Symbol("x"), sp.Symbol("y")
    bounds = _domain_bounds(domain)
    try:
        extrema = _critical_points(expr, x, y, bounds)
        symmetry = _symmetry(expr, x, y)
    except Exception as e:
        raise EvaluationError(f"3D function analysis failed: {e}") from e
    sampled = generate_surface(
        equation,
        {"x": bounds[0], "y": bounds[1]},
        MIN_RESOLUTION,
        parameters,
        evaluator,
    )
    return {
        "type": _classify_surface(expr, x, y),
        "symmetry": symmetry,
        "extrema": extrema,
        "domain": {"x": list(bounds[0]), "y": list(bounds[1])},
        "range": {"z": sampled["bounds"]["z"]},
    }
