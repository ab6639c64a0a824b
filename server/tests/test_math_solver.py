"""
Tests for expression classification, operand extraction and step narration.
"""

import pytest
import sympy as sp

from errors import ExpressionError
from math_solver import (
    get_expression_type,
    parse_derivative_input,
    parse_limit_input,
    parse_solve_input,
    solve_math_expression,
    validate_expression,
)

x = sp.Symbol('x')


def same(evaluator, text: str, expected) -> bool:
    return sp.simplify(evaluator.parse(text) - expected) == 0


@pytest.mark.parametrize("expression, expected", [
    ("derivative(x^2, x)", "derivative"),
    ("DERIVATIVE(x^2, x)", "derivative"),
    ("integral(x^2, x)", "integral"),
    ("integrate(x^2, x)", "integral"),
    ("solve(x^2 - 4, x)", "equation"),
    ("2*x + 3 = 7", "equation"),
    ("limit(x, 0, sin(x)/x)", "limit"),
    ("lim(x, 0, sin(x)/x)", "limit"),
    ("x^2 + 2*x + 1", "simplification"),
    ("2 + 3 * 4", "simplification"),
])
def test_classifier(expression, expected):
    assert get_expression_type(expression) == expected


def test_classifier_priority_derivative_before_solve():
    assert get_expression_type("solve(derivative(x^2, x), x)") == "derivative"
    result = solve_math_expression("solve(derivative(x^2, x), x)")
    assert result["type"] == "derivative"


def test_classifier_priority_integral_before_limit():
    assert get_expression_type("limit(x, 0, integral(x, x))") == "integral"


def test_comparison_operators_do_not_count_as_equations():
    assert get_expression_type("x >= 1") == "simplification"
    assert get_expression_type("x == 1") == "simplification"


def test_extractor_handles_nested_commas(evaluator):
    func, var, point = parse_limit_input("limit(x, 0, max(x, 1) - sin(x))", evaluator)
    assert var == x
    assert point == 0
    assert func == sp.Max(x, 1) - sp.sin(x)


def test_derivative_extractor_defaults(evaluator):
    func, var, order = parse_derivative_input("derivative(t^3)", evaluator)
    assert var == sp.Symbol('t')
    assert order == 1
    _, _, order = parse_derivative_input("derivative(x^3, x, 2)", evaluator)
    assert order == 2


@pytest.mark.parametrize("expression", [
    "derivative x^2",
    "derivative(x^2, x, 0)",
    "derivative(x^2, 2x)",
    "derivative(x^2, x",
])
def test_derivative_extractor_rejects_bad_syntax(evaluator, expression):
    with pytest.raises(ExpressionError):
        parse_derivative_input(expression, evaluator)


def test_solve_extractor_forms(evaluator):
    lhs, rhs, var = parse_solve_input("solve(2*x + 3 = 7, x)", evaluator)
    assert (lhs, rhs, var) == (2*x + 3, 7, x)
    lhs, rhs, var = parse_solve_input("y^2 = 9", evaluator)
    assert var == sp.Symbol('y')
    with pytest.raises(ExpressionError):
        parse_solve_input("solve x = 1", evaluator)
    with pytest.raises(ExpressionError):
        parse_solve_input("solve(x = 1 = 2, x)", evaluator)


def test_derivative_result(evaluator):
    result = solve_math_expression("derivative(x^3 + 2*x^2, x)")
    assert result["success"] is True
    assert result["type"] == "derivative"
    assert same(evaluator, result["finalAnswer"], 3*x**2 + 4*x)
    assert result["steps"][0]["description"] == "Original function"
    assert [s["step"] for s in result["steps"]] == list(range(1, len(result["steps"]) + 1))
    assert "power rule" in result["steps"][2]["explanation"]
    assert result["latex"]
    assert result["mathml"].startswith("<math")


def test_derivative_chain_rule_narration(evaluator):
    result = solve_math_expression("derivative(sin(x)^2, x)")
    assert same(evaluator, result["finalAnswer"], 2*sp.sin(x)*sp.cos(x))
    assert "chain rule" in result["steps"][2]["explanation"]


def test_indefinite_integral_adds_constant(evaluator):
    result = solve_math_expression("integral(x^2, x)")
    assert result["success"] is True
    assert result["type"] == "integral"
    assert result["finalAnswer"].endswith(" + C")
    assert same(evaluator, result["finalAnswer"][:-len(" + C")], x**3/3)


def test_definite_integral():
    result = solve_math_expression("integral(x, x, 0, 2)")
    assert result["success"] is True
    assert result["finalAnswer"] == "2"


def test_integral_without_closed_form_fails():
    result = solve_math_expression("integral(x^x, x)")
    assert result["success"] is False
    assert result["type"] == "integral"


def test_solve_quadratic():
    result = solve_math_expression("solve(x^2 - 4, x)")
    assert result["success"] is True
    assert result["type"] == "equation"
    assert result["finalAnswer"] == "x = -2, 2"
    assert result["steps"][-1]["description"] == "Verify"


def test_solve_equation_with_equals():
    result = solve_math_expression("solve(2*x + 3 = 7, x)")
    assert result["finalAnswer"] == "x = 2"
    assert result["steps"][1]["expression"] == "2*x - 4 = 0"


def test_bare_equation():
    result = solve_math_expression("x^2 - 5*x + 6 = 0")
    assert result["type"] == "equation"
    assert result["finalAnswer"] == "x = 2, 3"


def test_equation_without_solution():
    result = solve_math_expression("solve(sqrt(x) + 1, x)")
    assert result["success"] is True
    assert result["finalAnswer"] == "No solution for x"


def test_equation_missing_variable_fails():
    result = solve_math_expression("solve(y + 1, x)")
    assert result["success"] is False
    assert "does not contain" in result["error"]


def test_limit():
    result = solve_math_expression("limit(x, 0, sin(x)/x)")
    assert result["success"] is True
    assert result["type"] == "limit"
    assert result["finalAnswer"] == "1"
    assert result["steps"][0]["expression"] == "sin(x)/x as x->0"
    assert "indeterminate" in result["steps"][1]["explanation"]


def test_limit_at_infinity():
    result = solve_math_expression("limit(x, inf, 1/x)")
    assert result["finalAnswer"] == "0"


def test_limit_that_does_not_exist():
    result = solve_math_expression("limit(x, 0, 1/x)")
    assert result["success"] is False
    assert result["type"] == "limit"


def test_arithmetic():
    result = solve_math_expression("2 + 3 * 4")
    assert result["success"] is True
    assert result["type"] == "simplification"
    assert result["finalAnswer"] == "14"


def test_arithmetic_fraction_has_decimal_step():
    result = solve_math_expression("1/3 + 1/6")
    assert result["finalAnswer"] == "1/2"
    assert result["steps"][-1]["description"] == "Decimal approximation"
    assert float(result["steps"][-1]["expression"]) == 0.5


def test_division_by_zero_fails():
    result = solve_math_expression("1/0")
    assert result["success"] is False
    assert result["error"]


def test_simplification(evaluator):
    result = solve_math_expression("(x + 1)^2 - (x - 1)^2")
    assert result["success"] is True
    assert same(evaluator, result["finalAnswer"], 4*x)


def test_failure_shape():
    result = solve_math_expression("derivative(x^2")
    assert result == {
        "success": False,
        "steps": [],
        "finalAnswer": "",
        "type": "derivative",
        "error": result["error"],
    }
    assert "Unbalanced" in result["error"]


def test_validate_expression():
    assert validate_expression("derivative(x^2, x)") == {"valid": True, "type": "derivative"}
    invalid = validate_expression("limit(x, 0)")
    assert invalid["valid"] is False
    assert invalid["type"] == "limit"
    assert "limit(variable, approach, function)" in invalid["error"]


def test_limit_with_free_parameter_uses_direct_substitution():
    result = solve_math_expression("limit(x, 1, a*x)")
    assert result["success"] is True
    assert result["finalAnswer"] == "a"
    assert "continuous" in result["steps"][1]["explanation"]
