"""
SymPy-backed math delegate.

Every parse, evaluation, simplification and calculus operation used by the
solver and the 3D plotting utilities goes through ``SymPyEvaluator`` so the
rest of the code never calls SymPy directly.
"""

import math
import re
from typing import Callable, Dict, Iterable, List, Optional, Sequence

import sympy as sp
from lxml import etree
from sympy.parsing.sympy_parser import (
    parse_expr,
    standard_transformations,
    implicit_multiplication,
    convert_xor,
)
from sympy.printing.mathml import mathml as sympy_mathml

from errors import EvaluationError, ExpressionError

MATHML_NS = "http://www.w3.org/1998/Math/MathML"

TRANSFORMATIONS = standard_transformations + (implicit_multiplication, convert_xor)

# mathjs-style names that map onto SymPy objects
LOCAL_NAMES = {
    "e": sp.E,
    "E": sp.E,
    "pi": sp.pi,
    "ln": sp.log,
    "abs": sp.Abs,
    "max": sp.Max,
    "min": sp.Min,
    "oo": sp.oo,
    "inf": sp.oo,
    "infinity": sp.oo,
    "Infinity": sp.oo,
}

DANGEROUS_IDENTIFIERS = (
    "eval", "exec", "import", "require", "lambda", "open", "compile",
    "globals", "locals", "getattr", "setattr", "delattr", "vars", "input",
)

_DANGEROUS_RE = re.compile(
    r"\b(" + "|".join(DANGEROUS_IDENTIFIERS) + r")\b|\b(__\w*)", re.IGNORECASE
)
_ATTRIBUTE_RE = re.compile(r"[A-Za-z_)\]]\s*\.\s*[A-Za-z_]")
_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")

LAMBDIFY_MODULES = ["math", "mpmath"]


def find_dangerous_identifiers(text: str) -> List[str]:
    """Return the disallowed identifiers found in ``text``, in order of appearance."""
    found = []
    for match in _DANGEROUS_RE.finditer(text or ""):
        name = match.group(1) or match.group(2)
        if name not in found:
            found.append(name)
    return found


def is_variable_name(name: str) -> bool:
    return bool(_NAME_RE.match(name or ""))


class SymPyEvaluator:
    """Parse, evaluate and transform expressions with SymPy."""

    def parse(self, text: str) -> sp.Expr:
        if not isinstance(text, str) or not text.strip():
            raise ExpressionError("Expression is empty")
        dangerous = find_dangerous_identifiers(text)
        if dangerous:
            raise ExpressionError(f"Dangerous functions detected: {', '.join(dangerous)}")
        if _ATTRIBUTE_RE.search(text):
            raise ExpressionError("Attribute access is not allowed in expressions")
        try:
            expr = parse_expr(
                text.strip(),
                local_dict=dict(LOCAL_NAMES),
                transformations=TRANSFORMATIONS,
            )
        except Exception as e:
            raise ExpressionError(f"Could not parse expression '{text.strip()}': {e}") from e
        if not isinstance(expr, sp.Expr):
            raise ExpressionError(f"'{text.strip()}' is not a mathematical expression")
        return expr

    def symbol(self, name: str) -> sp.Symbol:
        name = (name or "").strip()
        if not is_variable_name(name):
            raise ExpressionError(f"Invalid variable name: '{name}'")
        return sp.Symbol(name)

    def compile(self, expr: sp.Expr, names: Sequence[str]) -> Callable[..., float]:
        """Bind ``names`` (in order) as the positional arguments of a float function.

        The returned callable raises ``EvaluationError`` whenever the value
        cannot be computed or is not a finite real number, including when
        ``expr`` has free symbols that are not in ``names``.
        """
        symbols = [sp.Symbol(n) for n in names]
        unbound = sorted(s.name for s in expr.free_symbols - set(symbols))
        if unbound:
            return _failing(f"Undefined variables: {', '.join(unbound)}")
        try:
            fn = sp.lambdify(symbols, expr, modules=LAMBDIFY_MODULES)
        except Exception as e:
            return _failing(f"Expression cannot be evaluated numerically: {e}")

        def evaluate(*values: float) -> float:
            try:
                z = float(fn(*values))
            except (ArithmeticError, ValueError, TypeError, NameError) as e:
                raise EvaluationError(f"Evaluation failed: {e}") from e
            if not math.isfinite(z):
                raise EvaluationError("Function evaluation resulted in invalid number")
            return z

        return evaluate

    def evaluate(self, expr: sp.Expr, bindings: Optional[Dict[str, float]] = None) -> float:
        bindings = bindings or {}
        return self.compile(expr, list(bindings))(*bindings.values())

    def simplify(self, expr: sp.Expr) -> sp.Expr:
        try:
            return sp.simplify(expr)
        except Exception as e:
            raise EvaluationError(f"Simplification failed: {e}") from e

    def differentiate(self, expr: sp.Expr, var: sp.Symbol, order: int = 1) -> sp.Expr:
        try:
            return sp.diff(expr, var, order)
        except Exception as e:
            raise EvaluationError(f"Differentiation failed: {e}") from e

    def integrate(self, expr: sp.Expr, var: sp.Symbol, lower=None, upper=None) -> sp.Expr:
        try:
            if lower is None:
                result = sp.integrate(expr, var)
            else:
                result = sp.integrate(expr, (var, lower, upper))
        except Exception as e:
            raise EvaluationError(f"Integration failed: {e}") from e
        if result.has(sp.Integral):
            raise EvaluationError(f"No closed form found for the integral of {self.format(expr)}")
        return result

    def solve(self, expr: sp.Expr, var: sp.Symbol) -> List[sp.Expr]:
        try:
            return list(sp.solve(expr, var))
        except Exception as e:
            raise EvaluationError(f"Could not solve for {var}: {e}") from e

    def limit(self, expr: sp.Expr, var: sp.Symbol, point: sp.Expr) -> sp.Expr:
        try:
            if point.is_infinite:
                result = sp.limit(expr, var, point)
            else:
                result = sp.limit(expr, var, point, "+-")
        except Exception as e:
            raise EvaluationError(f"Limit evaluation failed: {e}") from e
        if result.has(sp.Limit):
            raise EvaluationError("Limit could not be determined")
        # a two-sided limit with opposite infinite sides comes back as zoo
        if result.has(sp.zoo, sp.nan):
            raise EvaluationError("The limit does not exist")
        return result

    def format(self, expr) -> str:
        return sp.sstr(expr).replace("**", "^")

    def format_all(self, exprs: Iterable) -> str:
        return ", ".join(self.format(e) for e in exprs)

    def latex(self, expr) -> str:
        return sp.latex(expr)

    def mathml(self, expr) -> str:
        """Presentation MathML wrapped in a ``<math>`` element."""
        inner = sympy_mathml(expr, printer="presentation")
        source = f'<math xmlns="{MATHML_NS}" display="block">{inner}</math>'
        try:
            root = etree.fromstring(source)
        except etree.XMLSyntaxError:
            root = etree.fromstring(source, etree.XMLParser(recover=True))
        if root is None:
            raise EvaluationError("MathML rendering failed")
        return etree.tostring(root, encoding="unicode")


def _failing(message: str) -> Callable[..., float]:
    def evaluate(*values: float) -> float:
        raise EvaluationError(message)

    return evaluate


default_evaluator = SymPyEvaluator()
