"""
Tests for the /api/math endpoints.
"""

import pytest
from fastapi.testclient import TestClient

from main import app

client = TestClient(app)


def test_solve_endpoint_derivative():
    response = client.post("/api/math/solve", json={"expression": "derivative(x^2, x)"})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["type"] == "derivative"
    assert data["detectedType"] == "derivative"
    assert data["inputExpression"] == "derivative(x^2, x)"
    assert data["finalAnswer"] == "2*x"
    assert len(data["steps"]) > 0
    assert set(data["steps"][0]) == {"step", "description", "expression", "explanation"}
    assert "error" not in data


def test_solve_endpoint_equation():
    response = client.post("/api/math/solve", json={"expression": "solve(x^2 - 4, x)"})
    data = response.json()
    assert data["success"] is True
    assert data["type"] == "equation"
    assert data["finalAnswer"] == "x = -2, 2"


def test_solve_endpoint_keeps_raw_input():
    response = client.post("/api/math/solve", json={"expression": "  2 + 3 * 4  "})
    data = response.json()
    assert data["inputExpression"] == "  2 + 3 * 4  "
    assert data["finalAnswer"] == "14"


@pytest.mark.parametrize("body", [{}, {"expression": ""}, {"expression": "   "}])
def test_solve_endpoint_requires_expression(body):
    response = client.post("/api/math/solve", json=body)
    assert response.status_code == 400
    data = response.json()
    assert data["success"] is False
    assert data["error"] == "Expression is required"
    assert data["type"] == "validation"


def test_solve_endpoint_reports_solver_failure_in_body():
    """A solver failure is a result, not an HTTP error."""
    response = client.post("/api/math/solve", json={"expression": "integral(x^2"})
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is False
    assert data["type"] == "integral"
    assert data["steps"] == []
    assert data["finalAnswer"] == ""
    assert data["error"]


def test_validate_endpoint():
    response = client.post("/api/math/validate", json={"expression": "limit(x, 0, sin(x)/x)"})
    assert response.status_code == 200
    assert response.json() == {"valid": True, "type": "limit"}

    response = client.post("/api/math/validate", json={"expression": "x + * 2"})
    data = response.json()
    assert data["valid"] is False
    assert data["type"] == "simplification"
    assert data["error"]


def test_validate_endpoint_requires_expression():
    response = client.post("/api/math/validate", json={})
    assert response.status_code == 400


def test_examples_endpoint():
    response = client.get("/api/math/examples")
    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert set(data["examples"]) == {"basic", "calculus", "algebra"}


def test_every_example_solves():
    examples = client.get("/api/math/examples").json()["examples"]
    for group in examples.values():
        for expression in group:
            data = client.post("/api/math/solve", json={"expression": expression}).json()
            assert data["success"] is True, (expression, data)
