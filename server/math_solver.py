"""
Step-by-step solver behind the /api/math endpoints.

An input string is classified by keyword (derivative, integral, equation,
limit, or plain simplification), its operands are pulled out of the
command-like syntax, and the computation is delegated to the evaluator.
The returned steps narrate the operation around the computed result.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple

import sympy as sp

from errors import EvaluationError, ExpressionError, MathError
from evaluator import SymPyEvaluator, default_evaluator

logger = logging.getLogger("mathsolver.solver")

DERIVATIVE = "derivative"
INTEGRAL = "integral"
EQUATION = "equation"
LIMIT = "limit"
SIMPLIFICATION = "simplification"

# Checked in order; the first match wins.
_TYPE_PATTERNS = (
    (DERIVATIVE, re.compile(r"derivative", re.IGNORECASE)),
    (INTEGRAL, re.compile(r"integra(?:l|te)", re.IGNORECASE)),
    (EQUATION, re.compile(r"\bsolve\b|(?<![<>=!])=(?!=)", re.IGNORECASE)),
    (LIMIT, re.compile(r"\blim(?:it)?\b", re.IGNORECASE)),
)

_CALL_HEADS = {
    DERIVATIVE: re.compile(r"derivative\s*\(", re.IGNORECASE),
    INTEGRAL: re.compile(r"integra(?:l|te)\s*\(", re.IGNORECASE),
    EQUATION: re.compile(r"\bsolve\s*\(", re.IGNORECASE),
    LIMIT: re.compile(r"\blim(?:it)?\s*\(", re.IGNORECASE),
}

_EQUALS_RE = re.compile(r"(?<![<>=!])=(?!=)")
_SOLVE_KEYWORD_RE = re.compile(r"\bsolve\b", re.IGNORECASE)

_OPENERS = "([{"
_CLOSERS = ")]}"

DERIVATIVE_SYNTAX = "Invalid derivative syntax. Use derivative(expression, variable)"
INTEGRAL_SYNTAX = (
    "Invalid integral syntax. Use integral(expression, variable) "
    "or integral(expression, variable, lower, upper)"
)
SOLVE_SYNTAX = (
    "Invalid solve syntax. Use solve(expression, variable) "
    "or solve(equation = value, variable)"
)
LIMIT_SYNTAX = "Invalid limit syntax. Use limit(variable, approach, function)"

_TRIG = (sp.sin, sp.cos, sp.tan, sp.cot, sp.sec, sp.csc)


def get_expression_type(expression: str) -> str:
    for kind, pattern in _TYPE_PATTERNS:
        if pattern.search(expression or ""):
            return kind
    return SIMPLIFICATION


def _call_arguments(text: str, kind: str) -> Optional[List[str]]:
    """Arguments of the first ``kind(...)`` call in ``text``, split on top-level commas."""
    match = _CALL_HEADS[kind].search(text)
    if match is None:
        return None
    args: List[str] = []
    current: List[str] = []
    depth = 0
    for ch in text[match.end():]:
        if depth == 0 and ch == ",":
            args.append("".join(current).strip())
            current = []
            continue
        if depth == 0 and ch in _CLOSERS:
            args.append("".join(current).strip())
            return args
        if ch in _OPENERS:
            depth += 1
        elif ch in _CLOSERS:
            depth -= 1
        current.append(ch)
    raise ExpressionError(f"Unbalanced parentheses in {kind} expression")


def _default_variable(expr: sp.Expr) -> sp.Symbol:
    x = sp.Symbol("x")
    free = expr.free_symbols
    if x in free or not free:
        return x
    return sorted(free, key=lambda s: s.name)[0]


def _parse_order(text: str) -> int:
    try:
        order = int(text)
    except ValueError:
        raise ExpressionError(f"Derivative order must be a positive integer, got '{text}'")
    if order < 1:
        raise ExpressionError(f"Derivative order must be a positive integer, got '{text}'")
    return order


# --- Pattern extractors ---

def parse_derivative_input(
    expression: str, evaluator: SymPyEvaluator
) -> Tuple[sp.Expr, sp.Symbol, int]:
    args = _call_arguments(expression, DERIVATIVE)
    if not args or not args[0] or len(args) > 3:
        raise ExpressionError(DERIVATIVE_SYNTAX)
    func = evaluator.parse(args[0])
    var = evaluator.symbol(args[1]) if len(args) > 1 else _default_variable(func)
    order = _parse_order(args[2]) if len(args) == 3 else 1
    return func, var, order


def parse_integral_input(
    expression: str, evaluator: SymPyEvaluator
) -> Tuple[sp.Expr, sp.Symbol, Optional[Tuple[sp.Expr, sp.Expr]]]:
    args = _call_arguments(expression, INTEGRAL)
    if not args or not args[0] or len(args) not in (1, 2, 4):
        raise ExpressionError(INTEGRAL_SYNTAX)
    func = evaluator.parse(args[0])
    var = evaluator.symbol(args[1]) if len(args) > 1 else _default_variable(func)
    bounds = None
    if len(args) == 4:
        bounds = (evaluator.parse(args[2]), evaluator.parse(args[3]))
    return func, var, bounds


def parse_solve_input(
    expression: str, evaluator: SymPyEvaluator
) -> Tuple[sp.Expr, sp.Expr, sp.Symbol]:
    """Returns ``(lhs, rhs, variable)``; ``rhs`` is 0 when no ``=`` is given."""
    args = _call_arguments(expression, EQUATION)
    if args is None:
        if _SOLVE_KEYWORD_RE.search(expression):
            raise ExpressionError(SOLVE_SYNTAX)
        body, var_text = expression, None
    else:
        if not args or not args[0] or len(args) > 2:
            raise ExpressionError(SOLVE_SYNTAX)
        body = args[0]
        var_text = args[1] if len(args) == 2 else None

    sides = _EQUALS_RE.split(body)
    if len(sides) > 2:
        raise ExpressionError("Equation must contain at most one '=' sign")
    lhs = evaluator.parse(sides[0])
    rhs = evaluator.parse(sides[1]) if len(sides) == 2 else sp.Integer(0)
    var = evaluator.symbol(var_text) if var_text else _default_variable(lhs - rhs)
    return lhs, rhs, var


def parse_limit_input(
    expression: str, evaluator: SymPyEvaluator
) -> Tuple[sp.Expr, sp.Symbol, sp.Expr]:
    args = _call_arguments(expression, LIMIT)
    if not args or len(args) != 3 or not all(args):
        raise ExpressionError(LIMIT_SYNTAX)
    var = evaluator.symbol(args[0])
    point = evaluator.parse(args[1])
    func = evaluator.parse(args[2])
    return func, var, point


# --- Step narration ---

class _Steps:
    def __init__(self):
        self.items: List[Dict] = []

    def add(self, description: str, expression: str, explanation: str) -> None:
        self.items.append({
            "step": len(self.items) + 1,
            "description": description,
            "expression": expression,
            "explanation": explanation,
        })


def _join_names(names: List[str]) -> str:
    if len(names) == 1:
        return names[0]
    return ", ".join(names[:-1]) + " and " + names[-1]


def _derivative_rules(expr: sp.Expr, var: sp.Symbol) -> List[str]:
    rules = []
    if expr.is_Add and sum(1 for t in expr.args if t.has(var)) > 1:
        rules.append("sum rule")
    powers = [p for p in expr.atoms(sp.Pow) if p.base.has(var)]
    if powers:
        rules.append("power rule")
    if any(sum(1 for a in m.args if a.has(var)) > 1 for m in expr.atoms(sp.Mul)):
        rules.append("product rule")
    functions = expr.atoms(sp.Function)
    if any(isinstance(fn, _TRIG) for fn in functions):
        rules.append("trigonometric derivatives")
    if any(isinstance(fn, (sp.exp, sp.log)) for fn in functions):
        rules.append("exponential and logarithmic derivatives")
    nested = [fn.args[0] for fn in functions if fn.args] + [p.base for p in powers]
    if any(inner.has(var) and inner != var for inner in nested):
        rules.append("chain rule")
    return rules or ["basic differentiation rules"]


def _integral_method(expr: sp.Expr, var: sp.Symbol) -> str:
    if not expr.has(var):
        return f"The integrand does not depend on {var}, so it integrates as a constant."
    parts = []
    if expr.is_Add:
        parts.append("integrate term by term using linearity")
    if any(p.base.has(var) for p in expr.atoms(sp.Pow)) or expr == var:
        parts.append(f"apply the power rule ∫{var}^n d{var} = {var}^(n+1)/(n+1)")
    functions = expr.atoms(sp.Function)
    if any(isinstance(fn, _TRIG) for fn in functions):
        parts.append("use the standard trigonometric antiderivatives")
    if any(isinstance(fn, (sp.exp, sp.log)) for fn in functions):
        parts.append("use the exponential and logarithmic antiderivatives")
    if not parts:
        return "Find a function whose derivative equals the integrand."
    text = _join_names(parts)
    return text[0].upper() + text[1:] + "."


def _equation_method(expr: sp.Expr, var: sp.Symbol) -> str:
    if expr.is_polynomial(var):
        degree = sp.degree(expr, var)
        if degree == 1:
            return f"The equation is linear in {var}: isolate {var} with inverse operations."
        if degree == 2:
            return f"The equation is quadratic in {var}: factor it or apply the quadratic formula."
        return f"The equation is a degree-{degree} polynomial in {var}: find all of its roots."
    return f"Isolate {var} algebraically using inverse operations."


def _render(expr, evaluator: SymPyEvaluator) -> Dict[str, str]:
    try:
        return {"latex": evaluator.latex(expr), "mathml": evaluator.mathml(expr)}
    except Exception as e:
        logger.debug("Could not render %s: %s", expr, e)
        return {}


def _success(steps: _Steps, answer: str, kind: str, rendered=None, evaluator=None) -> Dict:
    result = {"success": True, "steps": steps.items, "finalAnswer": answer, "type": kind}
    if rendered is not None:
        result.update(_render(rendered, evaluator))
    return result


def _failure(kind: str, error: Exception) -> Dict:
    return {
        "success": False,
        "steps": [],
        "finalAnswer": "",
        "type": kind,
        "error": str(error) or error.__class__.__name__,
    }


# --- Operation handlers ---

def solve_derivative(expression: str, evaluator: SymPyEvaluator) -> Dict:
    func, var, order = parse_derivative_input(expression, evaluator)
    fmt = evaluator.format
    steps = _Steps()
    steps.add("Original function", fmt(func), f"Starting function f({var}) = {fmt(func)}")
    operator = f"d/d{var}" if order == 1 else f"d^{order}/d{var}^{order}"
    steps.add(
        "Identify the variable",
        f"{operator} [{fmt(func)}]",
        f"Differentiate with respect to {var}; every other symbol is treated as a constant.",
    )
    raw = evaluator.differentiate(func, var, order)
    explanation = f"Apply the {_join_names(_derivative_rules(func, var))}."
    if order > 1:
        explanation += f" Repeat {order} times."
    steps.add("Apply differentiation rules", fmt(raw), explanation)
    result = evaluator.simplify(raw)
    if result != raw:
        steps.add("Simplify", fmt(result), "Combine and simplify the terms of the derivative.")
    steps.add("Derivative", fmt(result), f"Computed derivative of {fmt(func)} with respect to {var}.")
    return _success(steps, fmt(result), DERIVATIVE, result, evaluator)


def solve_integral(expression: str, evaluator: SymPyEvaluator) -> Dict:
    func, var, bounds = parse_integral_input(expression, evaluator)
    fmt = evaluator.format
    steps = _Steps()
    if bounds is None:
        steps.add(
            "Integral setup",
            f"∫ {fmt(func)} d{var}",
            f"Set up the indefinite integral of {fmt(func)} with respect to {var}.",
        )
    else:
        lower, upper = bounds
        steps.add(
            "Integral setup",
            f"∫[{fmt(lower)}, {fmt(upper)}] {fmt(func)} d{var}",
            f"Set up the definite integral of {fmt(func)} from {var} = {fmt(lower)} to {var} = {fmt(upper)}.",
        )
    steps.add("Choose an integration method", fmt(func), _integral_method(func, var))
    antiderivative = evaluator.integrate(func, var)
    steps.add("Antiderivative", fmt(antiderivative), "Computed antiderivative F of the integrand.")

    if bounds is None:
        answer = f"{fmt(antiderivative)} + C"
        steps.add(
            "Add the constant of integration",
            answer,
            "An indefinite integral is determined up to an additive constant C.",
        )
        return _success(steps, answer, INTEGRAL, antiderivative + sp.Symbol("C"), evaluator)

    value = evaluator.simplify(evaluator.integrate(func, var, lower, upper))
    steps.add(
        "Apply the limits",
        f"F({fmt(upper)}) - F({fmt(lower)})",
        "Evaluate the antiderivative at the upper and lower limits and subtract.",
    )
    steps.add("Integral result", fmt(value), "Computed value of the definite integral.")
    return _success(steps, fmt(value), INTEGRAL, value, evaluator)


def solve_equation(expression: str, evaluator: SymPyEvaluator) -> Dict:
    lhs, rhs, var = parse_solve_input(expression, evaluator)
    fmt = evaluator.format
    expr = lhs if rhs == 0 else lhs - rhs
    steps = _Steps()
    steps.add("Original equation", f"{fmt(lhs)} = {fmt(rhs)}", f"Solve the equation for {var}.")
    if rhs != 0:
        steps.add(
            "Move all terms to one side",
            f"{fmt(expr)} = 0",
            "Subtract the right-hand side from both sides so the equation reads f = 0.",
        )
    if not expr.has(var):
        raise EvaluationError(f"The equation does not contain the variable {var}")

    solutions = evaluator.solve(expr, var)
    if not solutions:
        answer = f"No solution for {var}"
        steps.add("Solutions", answer, f"No value of {var} satisfies the equation.")
        return _success(steps, answer, EQUATION)

    answer = f"{var} = {evaluator.format_all(solutions)}"
    steps.add("Solutions", answer, _equation_method(expr, var))
    residuals = [evaluator.simplify(expr.subs(var, s)) for s in solutions]
    if all(r == 0 for r in residuals):
        steps.add(
            "Verify",
            "; ".join(f"{fmt(expr.subs(var, s))} = 0" for s in solutions),
            "Substituting each solution back into the equation gives 0.",
        )
    return _success(steps, answer, EQUATION, sp.FiniteSet(*solutions), evaluator)


def solve_limit(expression: str, evaluator: SymPyEvaluator) -> Dict:
    func, var, point = parse_limit_input(expression, evaluator)
    fmt = evaluator.format
    steps = _Steps()
    steps.add(
        "Limit setup",
        f"{fmt(func)} as {var}->{fmt(point)}",
        f"Find the value {fmt(func)} approaches as {var} approaches {fmt(point)}.",
    )
    if point.is_finite:
        direct = func.subs(var, point)
        # is_finite is None when other symbols remain, which is still a valid substitution
        if not (direct.is_finite is False or direct.has(sp.nan, sp.zoo)):
            steps.add(
                "Direct substitution",
                fmt(direct),
                f"The function is continuous at {var} = {fmt(point)}, so substitution gives the limit.",
            )
        else:
            steps.add(
                "Direct substitution",
                fmt(direct),
                f"Substituting {var} = {fmt(point)} gives an undefined or indeterminate form, "
                "so the limit is evaluated analytically.",
            )
    result = evaluator.limit(func, var, point)
    steps.add("Limit evaluation", fmt(result), "Evaluated limit.")
    return _success(steps, fmt(result), LIMIT, result, evaluator)


def simplify_expression(expression: str, evaluator: SymPyEvaluator) -> Dict:
    expr = evaluator.parse(expression)
    fmt = evaluator.format
    steps = _Steps()
    if not expr.free_symbols:
        steps.add("Original expression", expression, "Evaluate the arithmetic expression.")
        value = evaluator.simplify(expr)
        if value.has(sp.zoo, sp.nan):
            raise EvaluationError("Expression is undefined (division by zero)")
        steps.add(
            "Evaluate",
            fmt(value),
            "Apply the order of operations: parentheses and exponents first, "
            "then multiplication and division, then addition and subtraction.",
        )
        if value.is_number and not value.is_Integer and not value.is_infinite:
            approx = sp.N(value, 10)
            if fmt(approx) != fmt(value):
                steps.add("Decimal approximation", fmt(approx), "Approximate value to 10 significant digits.")
        return _success(steps, fmt(value), SIMPLIFICATION, value, evaluator)

    steps.add("Original expression", expression, "Simplify expression.")
    simplified = evaluator.simplify(expr)
    steps.add(
        "Simplified",
        fmt(simplified),
        "Combine like terms, cancel common factors and apply algebraic identities.",
    )
    return _success(steps, fmt(simplified), SIMPLIFICATION, simplified, evaluator)


_HANDLERS = {
    DERIVATIVE: solve_derivative,
    INTEGRAL: solve_integral,
    EQUATION: solve_equation,
    LIMIT: solve_limit,
    SIMPLIFICATION: simplify_expression,
}

_EXTRACTORS = {
    DERIVATIVE: parse_derivative_input,
    INTEGRAL: parse_integral_input,
    EQUATION: parse_solve_input,
    LIMIT: parse_limit_input,
    SIMPLIFICATION: lambda expression, evaluator: evaluator.parse(expression),
}


def solve_math_expression(expression: str, evaluator: Optional[SymPyEvaluator] = None) -> Dict:
    """Classify ``expression``, solve it and narrate the steps.

    Never raises: parse and evaluation failures come back as
    ``{"success": False, "error": ..., "type": ...}``.
    """
    evaluator = evaluator or default_evaluator
    expression = (expression or "").strip()
    kind = get_expression_type(expression)
    try:
        return _HANDLERS[kind](expression, evaluator)
    except MathError as e:
        logger.warning("Could not solve %r as %s: %s", expression, kind, e)
        return _failure(kind, e)
    except Exception as e:
        logger.exception("Unexpected failure solving %r as %s", expression, kind)
        return _failure(kind, e)


def validate_expression(expression: str, evaluator: Optional[SymPyEvaluator] = None) -> Dict:
    """Check that ``expression`` parses for its detected operation without computing it."""
    evaluator = evaluator or default_evaluator
    expression = (expression or "").strip()
    kind = get_expression_type(expression)
    try:
        _EXTRACTORS[kind](expression, evaluator)
    except MathError as e:
        return {"valid": False, "error": str(e), "type": kind}
    return {"valid": True, "type": kind}
